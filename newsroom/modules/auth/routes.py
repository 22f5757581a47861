"""
Auth Routes
===========

POST /login        - check credentials with the external API, issue a local token
POST /register     - create a local account
GET  /user         - current user
POST /logout       - revoke the current token (and the external one, if sent)
POST /logout-all   - revoke every token of the current user
"""

from flask import current_app, g, jsonify, request, session

from . import auth_bp
from .external import upstream_user_name
from .models import AccessToken, User
from .utils import MIN_PASSWORD_LENGTH, current_user, is_valid_email, login_required
from ...core.database import db
from ...core.errors import TransportError, ValidationError
from ...core.logging_service import LoggingService
from ...core.throttle import throttle


def _request_data():
    return request.get_json(silent=True) or request.form.to_dict()


def _auth_payload(user, token):
    return {
        'user': user.to_dict(),
        'token': token,
        'token_type': 'Bearer',
    }


@auth_bp.route('/login', methods=['POST'])
@throttle('auth')
def login():
    """Login through the external auth API"""
    data = _request_data()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    errors = {}
    if not is_valid_email(email):
        errors['email'] = ['El correo electrónico no es válido']
    if len(password) < MIN_PASSWORD_LENGTH:
        errors['password'] = [f'La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres']
    if errors:
        raise ValidationError(errors)

    auth_api = current_app.extensions['newsroom'].auth_api
    upstream = auth_api.login(email, password)
    name = upstream_user_name(upstream, fallback=email.split('@')[0])

    # Find or create the local mirror of the user
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(name=name, email=email)
        user.set_password(password)
        db.session.add(user)
    else:
        user.name = name

    token = AccessToken.issue(user)
    db.session.commit()
    session['user_id'] = user.id

    LoggingService.log_user_action('auth', 'login', user_id=user.id)
    return jsonify({
        'success': True,
        'message': 'Login exitoso',
        'data': _auth_payload(user, token),
    })


@auth_bp.route('/register', methods=['POST'])
@throttle('auth')
def register():
    """Create a local account"""
    data = _request_data()
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    errors = {}
    if not name or len(name) > 255:
        errors['name'] = ['El nombre es obligatorio (máximo 255 caracteres)']
    if not is_valid_email(email):
        errors['email'] = ['El correo electrónico no es válido']
    elif User.query.filter_by(email=email).first() is not None:
        errors['email'] = ['El correo electrónico ya está registrado']
    if len(password) < MIN_PASSWORD_LENGTH:
        errors['password'] = [f'La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres']
    elif password != data.get('password_confirmation'):
        errors['password'] = ['La confirmación de la contraseña no coincide']
    if errors:
        raise ValidationError(errors)

    user = User(name=name, email=email)
    user.set_password(password)
    db.session.add(user)
    token = AccessToken.issue(user)
    db.session.commit()
    session['user_id'] = user.id

    LoggingService.log_user_action('auth', 'register', user_id=user.id)
    return jsonify({
        'success': True,
        'message': 'Usuario registrado exitosamente',
        'data': _auth_payload(user, token),
    }), 201


@auth_bp.route('/user', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'data': current_user().to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout locally, and externally when X-External-Token is sent"""
    user = current_user()

    external_token = request.headers.get('X-External-Token')
    if external_token:
        try:
            current_app.extensions['newsroom'].auth_api.logout(external_token)
        except TransportError as e:
            # Local logout still goes ahead
            LoggingService.warning('auth', 'External logout failed', {
                'user_id': user.id,
                'error': str(e),
            })

    if g.access_token is not None:
        db.session.delete(g.access_token)
        db.session.commit()
    session.pop('user_id', None)

    return jsonify({'success': True, 'message': 'Logout exitoso'})


@auth_bp.route('/logout-all', methods=['POST'])
@login_required
def logout_all():
    user = current_user()
    AccessToken.query.filter_by(user_id=user.id).delete()
    db.session.commit()
    session.pop('user_id', None)

    return jsonify({'success': True, 'message': 'Logout de todos los dispositivos exitoso'})
