from modulecms.extensions import db
from .base import BaseModel


class UrlPattern(BaseModel):
    __tablename__ = "url_patterns"

    post_type = db.Column(db.String(100), nullable=False, index=True)
    locale = db.Column(db.String(10), nullable=False)
    # Tokens: {locale} {slug} {path} {yyyy} {mm} {dd}
    pattern = db.Column(db.String(255), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        db.Index("idx_url_pattern_type_locale", "post_type", "locale"),
    )


class UrlRedirect(BaseModel):
    __tablename__ = "url_redirects"

    from_path = db.Column(db.String(512), nullable=False)
    to_path = db.Column(db.String(512), nullable=False)
    locale = db.Column(db.String(10), nullable=True)
    status_code = db.Column(db.Integer, nullable=False, default=301)

    __table_args__ = (
        db.UniqueConstraint("from_path", "locale", name="uq_redirect_from_locale"),
    )
