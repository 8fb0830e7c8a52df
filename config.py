import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite file next to the app unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "electro.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin session cookie
    AUTH_COOKIE_NAME = "electro_session"
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 20 * 60
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = 12

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 15

    # Security event log
    SECURITY_EVENTS_MAX = 100
    SECURITY_EVENTS_RETENTION_DAYS = 7
    SUSPICIOUS_EVENT_THRESHOLD = 5
    SUSPICIOUS_WINDOW_MINUTES = 60
    SUSPICIOUS_INPUT_PREVIEW_CHARS = 100

    # Orders
    ORDER_TOTAL_TOLERANCE = 0.01
    ORDER_CURRENCY = os.getenv("ORDER_CURRENCY", "ARS")
    CHALLENGE_TTL_SECONDS = 10 * 60

    # Product images
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    UPLOAD_BASE_URL = os.getenv("UPLOAD_BASE_URL", "/uploads")
    IMAGE_MAX_BYTES = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
    ALLOWED_IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp"]

    # Stripe checkout
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_SUCCESS_URL = os.getenv("STRIPE_SUCCESS_URL")
    STRIPE_CANCEL_URL = os.getenv("STRIPE_CANCEL_URL")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Bootstrap admin, seeded at startup when both are set
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_ROUNDS = 4

    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = None
    SMTP_HOST = None
    ADMIN_EMAIL = None
    ADMIN_PASSWORD = None
