"""
Field-level encryption for protected health information (DOB, Medicaid ID).
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import PHI_ENCRYPTION_KEY, SUPABASE_JWT_SECRET

logger = logging.getLogger(__name__)

_cipher_suite: Optional[Fernet] = None


def get_cipher() -> Fernet:
    global _cipher_suite
    if _cipher_suite is None:
        if PHI_ENCRYPTION_KEY:
            _cipher_suite = Fernet(PHI_ENCRYPTION_KEY.encode())
        else:
            logger.warning("⚠️ PHI_ENCRYPTION_KEY not set - deriving key from JWT secret (dev only)")
            derived = hashlib.sha256(SUPABASE_JWT_SECRET.encode()).digest()
            _cipher_suite = Fernet(base64.urlsafe_b64encode(derived))
    return _cipher_suite


def encrypt_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return get_cipher().encrypt(value.encode()).decode()


def decrypt_value(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        return get_cipher().decrypt(token.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt PHI value - key mismatch or corrupted data")
        raise
