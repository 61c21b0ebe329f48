import secrets

from keysmith.config import settings

KEY_TYPES = frozenset({"dev", "prod"})
PREVIEW_TAIL_LEN = 4


def generate_plaintext_key(prefix: str | None = None, nbytes: int | None = None) -> str:
    prefix = prefix or settings.key_prefix
    return f"{prefix}_{secrets.token_urlsafe(nbytes or settings.key_secret_bytes)}"


def key_preview(plain: str) -> str:
    """Recognizable but non-secret rendering of a key: ``sk_****abcd``."""
    head, sep, _ = plain.partition("_")
    tail = plain[-PREVIEW_TAIL_LEN:] if len(plain) > PREVIEW_TAIL_LEN * 2 else ""
    return f"{head}{sep}****{tail}" if sep else f"****{tail}"
