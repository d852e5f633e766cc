from modulecms.extensions import db
from .base import BaseModel


class MediaAsset(BaseModel):
    __tablename__ = "media_assets"

    url = db.Column(db.String(512), nullable=False, unique=True)
    original_filename = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(100), nullable=True)
    size = db.Column(db.Integer, nullable=False, default=0)
    alt_text = db.Column(db.String(500), nullable=True)
    caption = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    categories = db.Column(db.JSON, nullable=False, default=list)

    # WebP derivative of the original
    optimized_url = db.Column(db.String(512), nullable=True)
    optimized_size = db.Column(db.Integer, nullable=True)
    optimized_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # variants, focalPoint, cropRect, darkSourceUrl, ...
    metadata_json = db.Column("metadata", db.JSON, nullable=False, default=dict)

    uploaded_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    @property
    def is_image(self) -> bool:
        return (self.mime_type or "").startswith("image/")

    @property
    def derived_urls(self) -> list:
        """URLs of every file generated from the original, as recorded on the asset."""
        meta = self.metadata_json if isinstance(self.metadata_json, dict) else {}
        urls = [self.optimized_url, meta.get("darkSourceUrl"), meta.get("darkOptimizedUrl")]
        for variant in meta.get("variants") or []:
            if isinstance(variant, dict):
                urls.extend([variant.get("url"), variant.get("optimizedUrl")])
        return list(dict.fromkeys(url for url in urls if url))
