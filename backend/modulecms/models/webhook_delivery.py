from modulecms.extensions import db
from .base import BaseModel


class WebhookDelivery(BaseModel):
    __tablename__ = "webhook_deliveries"

    webhook_id = db.Column(db.String(100), nullable=False, index=True)
    event = db.Column(db.String(50), nullable=False, index=True)
    payload = db.Column(db.JSON, nullable=False)
    attempt = db.Column(db.Integer, nullable=False, default=1)
    status_code = db.Column(db.Integer, nullable=True)
    success = db.Column(db.Boolean, nullable=False, default=False)
    error = db.Column(db.Text, nullable=True)
    duration_ms = db.Column(db.Integer, nullable=True)
