import secrets

from flask_login import UserMixin

from ..extensions import db
from .mixins import TimestampMixin


class User(UserMixin, TimestampMixin, db.Model):
    """Operator account. Only used for actor attribution and the admin capability."""
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    display_name = db.Column(db.String(120), nullable=True)
    api_token = db.Column(db.String(64), unique=True, nullable=True, index=True)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<User {self.email}>'

    @staticmethod
    def generate_token() -> str:
        return secrets.token_hex(24)

    def issue_token(self) -> str:
        self.api_token = self.generate_token()
        return self.api_token

    @property
    def label(self) -> str:
        return self.display_name or self.email
