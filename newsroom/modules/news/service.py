"""
News Lifecycle
==============

active -> soft-deleted -> (restored -> active) | (hard-deleted -> gone)

Create, update, soft-delete, restore and hard-delete news rows, composing
the slug generator and the upload service. Routes stay thin; everything
that can fail raises a NewsroomError subclass.
"""

from datetime import datetime, timezone
from urllib.parse import urlparse

from flask import has_request_context, url_for
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .models import News
from .slugs import generate_unique_slug
from ...core.database import db, is_unique_violation, utcnow
from ...core.errors import ConflictError, NotDeletedError, NotFoundError, ValidationError
from ...core.logging_service import LoggingService
from ...core.storage import LOCAL_MARKER, delete_local_file, is_local_url

PER_PAGE = 10
TOP_LIMIT = 10
SLUG_RETRIES = 3
MAX_TEXT = 255
MAX_URL = 2048

NOT_FOUND_MESSAGE = 'Noticia no encontrada'
DUPLICATE_SLUG_MESSAGE = 'Ya existe una noticia con un título similar. Intenta con un título diferente.'

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off'}


# ===== Field parsing & validation =====

def parse_bool(value):
    """Parse a JSON/form boolean. Raises ValueError when it isn't one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"not a boolean: {value!r}")


def parse_datetime(value):
    """Parse an ISO 8601 timestamp into naive UTC. Raises ValueError."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    else:
        raise ValueError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_valid_ruta(value):
    """A local /storage/ path or an absolute http(s) URL outside local storage, never both"""
    if value.startswith(LOCAL_MARKER):
        return True
    parsed = urlparse(value)
    return (parsed.scheme in ('http', 'https') and bool(parsed.netloc)
            and LOCAL_MARKER not in parsed.path)


def _validate(data, partial=False):
    """Return (cleaned, errors). On update every field is optional."""
    cleaned, errors = {}, {}

    for field in ('titulo', 'sub_titulo'):
        if partial and field not in data:
            continue
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors[field] = [f'El campo {field} es obligatorio']
        elif len(value.strip()) > MAX_TEXT:
            errors[field] = [f'El campo {field} no debe superar {MAX_TEXT} caracteres']
        else:
            cleaned[field] = value.strip()

    if 'ruta' in data:
        ruta = data.get('ruta')
        if ruta in (None, ''):
            cleaned['ruta'] = None
        elif not isinstance(ruta, str) or len(ruta) > MAX_URL or not is_valid_ruta(ruta):
            errors['ruta'] = ['La ruta debe ser una ruta local de /storage/ o una URL completa']
        else:
            cleaned['ruta'] = ruta

    if data.get('link_final') not in (None, ''):
        link = data['link_final']
        if not isinstance(link, str) or len(link) > MAX_URL:
            errors['link_final'] = ['El enlace final no es válido']
        else:
            cleaned['link_final'] = link

    if data.get('fecha_hora') not in (None, ''):
        try:
            cleaned['fecha_hora'] = parse_datetime(data['fecha_hora'])
        except ValueError:
            errors['fecha_hora'] = ['La fecha debe tener formato ISO 8601']

    if data.get('display') not in (None, ''):
        try:
            cleaned['display'] = parse_bool(data['display'])
        except ValueError:
            errors['display'] = ['El campo display debe ser verdadero o falso']

    return cleaned, errors


def validate_news_data(data, partial=False):
    """Validate create (partial=False) or update (partial=True) input"""
    cleaned, errors = _validate(data or {}, partial=partial)
    if errors:
        raise ValidationError(errors)
    return cleaned


# ===== Queries =====

def _ordered(query):
    return query.order_by(News.fecha_hora.desc(), News.created_at.desc())


def paginate_news(page=1):
    return _ordered(News.active()).paginate(page=max(page, 1), per_page=PER_PAGE, error_out=False)


def paginate_trashed(page=1):
    return News.only_trashed().order_by(News.deleted_at.desc()).paginate(
        page=max(page, 1), per_page=PER_PAGE, error_out=False
    )


def top_visible_news(limit=TOP_LIMIT):
    return _ordered(News.active().filter(News.display.is_(True))).limit(limit).all()


def get_news(news_id, include_deleted=False):
    query = News.with_trashed() if include_deleted else News.active()
    news = query.filter(News.id == news_id).first()
    if news is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return news


# ===== Lifecycle =====

def image_link(slug):
    """Public display link for a slug"""
    if has_request_context():
        return url_for('images.show', slug=slug, _external=True)
    return f"/images/{slug}"


def _persist_new(fields, user):
    """Insert a row, regenerating the slug if the unique constraint trips"""
    for attempt in range(1, SLUG_RETRIES + 1):
        slug = generate_unique_slug(fields['titulo'])
        news = News(
            titulo=fields['titulo'],
            sub_titulo=fields['sub_titulo'],
            ruta=fields.get('ruta'),
            link_final=fields.get('link_final') or image_link(slug),
            fecha_hora=fields.get('fecha_hora') or utcnow(),
            display=fields.get('display', True),
            user_id=user.id,
            slug=slug,
        )
        db.session.add(news)
        try:
            db.session.commit()
            return news
        except IntegrityError as e:
            db.session.rollback()
            if not is_unique_violation(e, 'news_slug_unique', 'news.slug'):
                raise
            LoggingService.warning('news', 'Slug collision on insert', {
                'slug': slug,
                'attempt': attempt,
            })

    raise ConflictError(DUPLICATE_SLUG_MESSAGE, payload={'error_type': 'duplicate_slug'})


def create_news(data, user):
    """Create a news row from validated metadata"""
    fields = validate_news_data(data)
    news = _persist_new(fields, user)
    LoggingService.log_user_action('news', 'create', user_id=user.id,
                                   details={'news_id': news.id, 'slug': news.slug})
    return news


def create_news_with_upload(data, file, filename, user, uploads):
    """
    Upload the image, then persist the row pointing at it.

    If persisting fails after a successful upload, a local file is removed
    again; remote files cannot be and are left orphaned (logged).
    Returns (news, upload_result).
    """
    fields, errors = _validate(data or {}, partial=False)
    if file is None or (isinstance(file, str) and not file.strip()):
        errors['file'] = ['El archivo es obligatorio']
    if not filename:
        errors['filename'] = ['El nombre del archivo es obligatorio']
    elif len(filename) > MAX_TEXT:
        errors['filename'] = [f'El nombre del archivo no debe superar {MAX_TEXT} caracteres']
    if errors:
        raise ValidationError(errors)

    result = uploads.upload(file, filename)
    fields['ruta'] = result['url']

    try:
        news = _persist_new(fields, user)
    except (SQLAlchemyError, ConflictError):
        if uploads.delete(result['url']):
            LoggingService.info('news', 'Removed upload after failed insert', {'url': result['url']})
        else:
            LoggingService.warning('news', 'Uploaded file left orphaned after failed insert', {
                'url': result['url'],
                'method': uploads.method,
            })
        raise

    LoggingService.log_user_action('news', 'upload-and-save', user_id=user.id,
                                   details={'news_id': news.id, 'slug': news.slug,
                                            'url': result['url']})
    return news, result


def update_news(news_id, data):
    """Partial update. The slug and owner never change."""
    news = get_news(news_id)
    fields = validate_news_data(data, partial=True)
    for name, value in fields.items():
        setattr(news, name, value)
    db.session.commit()
    return news


def soft_delete_news(news_id):
    news = get_news(news_id)
    news.soft_delete()
    db.session.commit()
    LoggingService.info('news', 'News soft-deleted', {'news_id': news.id})
    return news


def restore_news(news_id):
    news = get_news(news_id, include_deleted=True)
    if not news.trashed:
        raise NotDeletedError()
    news.restore()
    db.session.commit()
    LoggingService.info('news', 'News restored', {'news_id': news.id})
    return news


def force_delete_news(news_id, storage_root):
    """Delete the row for good, plus its file when it is stored locally"""
    news = get_news(news_id, include_deleted=True)

    removed_file = False
    if is_local_url(news.ruta):
        try:
            removed_file = delete_local_file(news.ruta, storage_root)
        except OSError as e:
            LoggingService.warning('news', 'Could not remove local file', {
                'news_id': news.id,
                'ruta': news.ruta,
                'error': str(e),
            })

    db.session.delete(news)
    db.session.commit()
    LoggingService.info('news', 'News permanently deleted', {
        'news_id': news_id,
        'removed_file': removed_file,
    })
    return removed_file
