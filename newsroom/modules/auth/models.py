import hashlib
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

from ...core.database import db, utcnow

TOKEN_PREFIX = 'nws'


def hash_token(token):
    """Hash an access token using SHA-256"""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token():
    """Generate a new access token (prefix_randomstring format)"""
    return f"{TOKEN_PREFIX}_{secrets.token_urlsafe(32)}"


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tokens = db.relationship('AccessToken', backref='user', lazy='dynamic',
                             cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class AccessToken(db.Model):
    """Bearer tokens. Only the hash is stored; the plain token is shown once."""
    __tablename__ = 'access_tokens'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False, default='auth-token')
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    token_prefix = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime)

    @classmethod
    def issue(cls, user, name='auth-token'):
        """Create a token for user. Returns the plain token; caller commits."""
        token = generate_token()
        db.session.add(cls(
            user=user,
            name=name,
            token_hash=hash_token(token),
            token_prefix=token[:12] + '...',
        ))
        return token

    @classmethod
    def find_valid(cls, token):
        """Look up a plain token and touch last_used_at"""
        if not token:
            return None
        access = cls.query.filter_by(token_hash=hash_token(token)).first()
        if access is not None:
            access.last_used_at = utcnow()
            db.session.commit()
        return access
