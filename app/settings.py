import os

from app.auth import parse_admin_emails

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

admin_emails = parse_admin_emails(
    os.environ.get("ADMIN_EMAILS") or os.environ.get("ADMIN_EMAIL", "")
)
admin_salt = os.environ.get("ADMIN_SALT", "gigbook-default-salt")
admin_jwt_secret = os.environ.get(
    "ADMIN_JWT_SECRET", os.environ.get("ADMIN_SALT", "gigbook-jwt-secret")
)
admin_password_hash = os.environ.get("ADMIN_PASSWORD_HASH", "")
admin_password = os.environ.get("ADMIN_PASSWORD", "")

resend_api_url = os.environ.get("RESEND_API_URL", "https://api.resend.com")
resend_api_key = os.environ.get("RESEND_API_KEY", "")
from_email = os.environ.get("FROM_EMAIL", "Gig Bookings <bookings@example.com>")
site_url = os.environ.get("SITE_URL", "http://localhost:3000")

cors_origins = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]
