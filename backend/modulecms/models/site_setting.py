from modulecms.extensions import db
from .base import BaseModel


class SiteSetting(BaseModel):
    """Single-row settings table; logic lives in site_settings_service."""
    __tablename__ = "site_settings"

    site_title = db.Column(db.String(200), nullable=False, default="ModuleCMS")
    default_meta_description = db.Column(db.Text, nullable=True)
    favicon_media_id = db.Column(db.String(36), nullable=True)
    default_og_media_id = db.Column(db.String(36), nullable=True)
    logo_media_id = db.Column(db.String(36), nullable=True)
    is_maintenance_mode = db.Column(db.Boolean, nullable=False, default=False)
    profile_roles_enabled = db.Column(db.JSON, nullable=False, default=list)
    social_settings = db.Column(db.JSON, nullable=True)
    custom_fields = db.Column(db.JSON, nullable=False, default=dict)
