from modulecms.extensions import db
from .base import BaseModel


class FormSubmission(BaseModel):
    __tablename__ = "form_submissions"

    form_slug = db.Column(db.String(100), nullable=False, index=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
