"""
Security Utilities
Token issuance, credential encryption and input sanitization
"""

import base64
import hashlib
import hmac
import html
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

# Input sanitization
import bleach
from bleach.css_sanitizer import CSSSanitizer

# Credential encryption
from cryptography.fernet import Fernet, InvalidToken

# Token generation and validation
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import CREDENTIALS_ENCRYPTION_KEY, SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MASK_PREFIX = "••••"


# ============================================================================
# TOKENS
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def generate_timed_token(data: dict[str, Any], salt: str = "security-token") -> str:
    """
    Generate a time-limited token using itsdangerous
    Used for magic-link login emails
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(
    token: str, max_age: int = 3600, salt: str = "security-token"
) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning("Token expired")
        return None
    except BadSignature:
        logger.warning("Invalid token signature")
        return None


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time (default 15 minutes)
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# CREDENTIAL ENCRYPTION
# ============================================================================


def get_fernet_key() -> bytes:
    """Use the configured Fernet key, or derive one from SECRET_KEY"""
    if CREDENTIALS_ENCRYPTION_KEY:
        return CREDENTIALS_ENCRYPTION_KEY.encode()
    key = hashlib.sha256(SECRET_KEY.encode()).digest()
    return base64.urlsafe_b64encode(key)


cipher = Fernet(get_fernet_key())


def encrypt_credential(value: Optional[str]) -> Optional[str]:
    """Encrypt a provider credential for storage"""
    if not value:
        return value
    return cipher.encrypt(value.encode()).decode()


def decrypt_credential(value: Optional[str]) -> Optional[str]:
    """Decrypt a stored provider credential"""
    if not value:
        return value
    try:
        return cipher.decrypt(value.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt stored credential - key mismatch?")
        raise


def mask_secret(value: Optional[str], visible_chars: int = 4) -> Optional[str]:
    """
    Mask a secret for display: "••••" followed by the last characters.
    Stored secrets are decrypted first so the suffix is meaningful.
    """
    if not value:
        return None
    try:
        plain = decrypt_credential(value)
    except InvalidToken:
        plain = ""
    if len(plain) <= visible_chars:
        return MASK_PREFIX
    return MASK_PREFIX + plain[-visible_chars:]


def is_masked(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(MASK_PREFIX)


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_html(html_content: str, allowed_tags: Optional[list] = None) -> str:
    """
    Sanitize HTML content to prevent XSS attacks

    Args:
        html_content: Raw HTML content
        allowed_tags: List of allowed HTML tags (default: safe subset)
    """
    if not html_content:
        return ""

    if allowed_tags is None:
        allowed_tags = [
            "p",
            "br",
            "strong",
            "b",
            "em",
            "i",
            "u",
            "a",
            "ul",
            "ol",
            "li",
            "h1",
            "h2",
            "h3",
            "h4",
            "blockquote",
            "span",
            "table",
            "tr",
            "td",
            "th",
        ]

    allowed_attributes = {"a": ["href", "title", "target"], "*": ["class", "style"]}

    css_sanitizer = CSSSanitizer(
        allowed_css_properties=["color", "background-color", "font-weight", "text-align"]
    )

    return bleach.clean(
        html_content,
        tags=allowed_tags,
        attributes=allowed_attributes,
        css_sanitizer=css_sanitizer,
        strip=True,
    )


def escape_html(value: Any) -> str:
    """Escape a value before interpolating it into HTML"""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


# ============================================================================
# WEBHOOKS
# ============================================================================


def sign_webhook_payload(body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex signature sent as X-Webhook-Signature"""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
