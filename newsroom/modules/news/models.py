from ...core.database import db, utcnow
from ..auth.models import User


class News(db.Model):
    """A news article. Soft-deleted rows keep every field, including the slug."""
    __tablename__ = 'news'
    __table_args__ = (
        db.UniqueConstraint('slug', name='news_slug_unique'),
    )

    id = db.Column(db.Integer, primary_key=True)
    titulo = db.Column(db.String(255), nullable=False)
    sub_titulo = db.Column(db.String(255), nullable=False)
    ruta = db.Column(db.String(2048))
    link_final = db.Column(db.String(2048))
    fecha_hora = db.Column(db.DateTime, nullable=False, default=utcnow)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    slug = db.Column(db.String(255), nullable=False)
    display = db.Column(db.Boolean, nullable=False, default=True)
    deleted_at = db.Column(db.DateTime, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship(User)

    @classmethod
    def active(cls):
        """Query over rows that are not soft-deleted"""
        return cls.query.filter(cls.deleted_at.is_(None))

    @classmethod
    def with_trashed(cls):
        return cls.query

    @classmethod
    def only_trashed(cls):
        return cls.query.filter(cls.deleted_at.isnot(None))

    @property
    def trashed(self):
        return self.deleted_at is not None

    def soft_delete(self):
        self.deleted_at = utcnow()

    def restore(self):
        self.deleted_at = None

    def to_dict(self, include_user=True):
        data = {
            'id': self.id,
            'titulo': self.titulo,
            'sub_titulo': self.sub_titulo,
            'ruta': self.ruta,
            'link_final': self.link_final,
            'fecha_hora': _iso(self.fecha_hora),
            'user_id': self.user_id,
            'slug': self.slug,
            'display': bool(self.display),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'deleted_at': _iso(self.deleted_at),
        }
        if include_user:
            data['user'] = self.user.to_dict() if self.user else None
        return data


def _iso(value):
    return value.isoformat() if value else None
