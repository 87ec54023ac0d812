# MDTasks Hashing Utilities
# Content hashing for version identity and change detection

import hashlib


def content_hash(content: str | bytes, *, algorithm: str = "sha256") -> str:
    """
    Calculate hash of content.

    Args:
        content: String or bytes content.
        algorithm: Hash algorithm (default sha256).

    Returns:
        Hex digest of hash.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    hasher = hashlib.new(algorithm)
    hasher.update(content)
    return hasher.hexdigest()


def short_hash(content: str | bytes, length: int = 12) -> str:
    """Shortened content hash, used for display-friendly identifiers."""
    return content_hash(content)[:length]
