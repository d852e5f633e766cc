import os
from dotenv import load_dotenv

load_dotenv()


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # -------------------------------------------------
    # Media
    # -------------------------------------------------
    PUBLIC_ROOT = os.getenv("PUBLIC_ROOT", os.path.join(os.getcwd(), "public"))
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
    MEDIA_MAX_FILE_SIZE = int(os.getenv("MEDIA_MAX_FILE_SIZE", 10 * 1024 * 1024))
    MEDIA_ALLOWED_EXTENSIONS = set(
        os.getenv(
            "MEDIA_ALLOWED_EXTENSIONS",
            "png,jpg,jpeg,gif,webp,avif,svg,pdf,mp4,webm",
        ).split(",")
    )
    MEDIA_DERIVATIVES = os.getenv(
        "MEDIA_DERIVATIVES", "thumb:200x200_crop,small:400x,medium:800x,large:1600x"
    )
    MEDIA_WEBP_QUALITY = int(os.getenv("MEDIA_WEBP_QUALITY", 82))
    MEDIA_DARK_BRIGHTNESS = float(os.getenv("MEDIA_DARK_BRIGHTNESS", 0.55))
    MEDIA_DARK_SATURATION = float(os.getenv("MEDIA_DARK_SATURATION", 0.75))

    # -------------------------------------------------
    # Locales
    # -------------------------------------------------
    DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "en")
    SUPPORTED_LOCALES = os.getenv("SUPPORTED_LOCALES", "en,es,fr,de").split(",")

    # -------------------------------------------------
    # Rate limiting (Redis sliding window)
    # -------------------------------------------------
    REDIS_URL = os.getenv("REDIS_URL")
    RATE_LIMIT_ENABLED = _bool("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", 100))
    RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", 60))
    RATE_LIMIT_AUTH_REQUESTS = int(os.getenv("RATE_LIMIT_AUTH_REQUESTS", 5))
    RATE_LIMIT_AUTH_WINDOW = int(os.getenv("RATE_LIMIT_AUTH_WINDOW", 60))
    RATE_LIMIT_API_REQUESTS = int(os.getenv("RATE_LIMIT_API_REQUESTS", 120))
    RATE_LIMIT_API_WINDOW = int(os.getenv("RATE_LIMIT_API_WINDOW", 60))

    # -------------------------------------------------
    # Webhooks
    # -------------------------------------------------
    WEBHOOKS_ENABLED = _bool("WEBHOOKS_ENABLED", False)
    WEBHOOK_TIMEOUT = float(os.getenv("WEBHOOK_TIMEOUT", 5))
    WEBHOOK_MAX_RETRIES = int(os.getenv("WEBHOOK_MAX_RETRIES", 3))
    WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", "")
    WEBHOOKS = os.getenv("WEBHOOKS", "[]")
    WEBHOOK_RETRY_BACKOFF = float(os.getenv("WEBHOOK_RETRY_BACKOFF", 1))

    # -------------------------------------------------
    # Misc CMS
    # -------------------------------------------------
    SITE_SETTINGS_TTL = float(os.getenv("SITE_SETTINGS_TTL", 10))
    REVISIONS_LIMIT = int(os.getenv("REVISIONS_LIMIT", 20))
    SITE_URL = os.getenv("SITE_URL", "http://localhost:5000")

    # -------------------------------------------------
    # Protected posts
    # -------------------------------------------------
    PROTECTED_ACCESS_USERNAME = os.getenv("PROTECTED_ACCESS_USERNAME", "")
    PROTECTED_ACCESS_PASSWORD = os.getenv("PROTECTED_ACCESS_PASSWORD", "")
    PROTECTED_ACCESS_LIFETIME = int(os.getenv("PROTECTED_ACCESS_LIFETIME", 8 * 60 * 60))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///modulecms-dev.db")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    RATE_LIMIT_ENABLED = False
    WEBHOOKS_ENABLED = False
    WEBHOOK_RETRY_BACKOFF = 0
    SUPPORTED_LOCALES = ["en", "es", "fr"]


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
