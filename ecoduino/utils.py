"""
Utility functions used across the application
Keep these pure functions without side effects
"""
import hashlib
import hmac
import re
import uuid
from datetime import datetime, timezone
from typing import Any

# ============================================================
# ID Generation
# ============================================================

def generate_request_id() -> str:
    """Generate unique request ID for tracing"""
    return f"req_{uuid.uuid4().hex[:12]}"

# ============================================================
# Device Tokens
# ============================================================

def token_digest(token: str) -> str:
    """
    SHA-256 hex digest of a device token

    Lookups go through this digest so the database never compares the
    raw token against candidate rows.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def tokens_match(expected: str, presented: str) -> bool:
    """Constant-time token comparison"""
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))

def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging, keeping the tail
    Example: "ESP32-ABCD-1234" -> "***********1234"
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]

# ============================================================
# Validation Helpers
# ============================================================

def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace-only strings"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False

def is_valid_email(email: str) -> bool:
    """Basic email validation"""
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    return bool(re.match(pattern, email))

# ============================================================
# Time Utilities
# ============================================================

def utcnow() -> datetime:
    """Get current UTC time with timezone info"""
    return datetime.now(timezone.utc)
