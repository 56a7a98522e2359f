import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./eventdesk.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12)))
MAGIC_LINK_MAX_AGE = int(os.getenv("MAGIC_LINK_MAX_AGE", "900"))  # 15 minutes

# Frontend base URL for login links and faculty response pages
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
# Public URL used inside QR codes and certificate verification links
APP_URL = os.getenv("APP_URL", FRONTEND_URL)

# Resend Email Configuration (fallback when an event has no custom SMTP)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "EventDesk <noreply@eventdesk.app>")

# Fernet key for provider credentials (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
CREDENTIALS_ENCRYPTION_KEY = os.getenv("CREDENTIALS_ENCRYPTION_KEY")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "eventdesk")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL")

REDIS_URL = os.getenv("REDIS_URL")

# Rate limiting is ENABLED by default; set RATE_LIMIT_ENABLED=false only for development/testing
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
