from werkzeug.security import generate_password_hash, check_password_hash
from modulecms.extensions import db
from .base import BaseModel


class User(BaseModel):
    """Staff account. Public site visitors never authenticate."""
    __tablename__ = 'users'

    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(200), nullable=True)

    # Resolved against the in-code role registry
    role = db.Column(db.String(50), nullable=False, default='editor')
    is_active = db.Column(db.Boolean, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def display_name(self):
        return self.full_name or self.email

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)
