"""One-way PIN hashing."""

from passlib.context import CryptContext

pin_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_pin(pin: str) -> str:
    return pin_context.hash(pin)


def verify_pin(plain_pin: str, pin_hash: str) -> bool:
    return pin_context.verify(plain_pin, pin_hash)


def normalize_username(username: str) -> str:
    """Case-folded form used for uniqueness and as the user id."""
    return username.strip().lower()
