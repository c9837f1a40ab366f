"""
Helpers for deriving task ids and collision-resistant storage names.
"""
import re
import secrets
import string
import time
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_lowercase

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]')


def epoch_millis() -> int:
    return int(time.time() * 1000)


def random_base36(length: int = 6) -> str:
    """Return a random lowercase base36 token of the given length."""
    return ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def sanitize_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``_``.

    An empty name becomes ``file`` so the result is never blank.
    """
    return _UNSAFE_CHARS.sub('_', name or '') or 'file'


def derive_storage_name(original_name: str, timestamp: Optional[int] = None) -> str:
    """Build ``<epoch-millis>-<6-char-base36>-<sanitized-name>``.

    Args:
        original_name: Name supplied by the uploader
        timestamp: Submission time in epoch milliseconds, defaults to now

    Returns:
        Storage name that does not reuse the caller's name verbatim
    """
    if timestamp is None:
        timestamp = epoch_millis()
    return f"{timestamp}-{random_base36(6)}-{sanitize_name(original_name)}"


def new_task_id(name: str) -> str:
    return f"{name}-{epoch_millis()}-{random_base36(8)}"
