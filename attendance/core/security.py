"""Event password hashing and verification.

Protected events store a passlib hash of their attendance password. The
registry only ever asks whether a supplied password matches; setting
passwords belongs to whoever manages events.
"""
import logging

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_ctx = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(plain: str) -> str:
    """Return a pbkdf2_sha256 hash for the plain password."""
    return pwd_ctx.hash(plain)


def verify_password(plain: str | None, hashed: str | None) -> bool:
    """Verify plain password against hash."""
    if not plain or not hashed:
        return False
    try:
        return pwd_ctx.verify(plain, hashed)
    except ValueError:
        # Unparseable hash counts as a mismatch
        logger.warning("Stored event password hash could not be parsed")
        return False
