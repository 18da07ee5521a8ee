"""
Local Identifier Generation

Identifiers for entities created locally before the backend assigns one.
Format: ``{prefix}_{epoch-millis}_{9-char base36 suffix}``.
"""

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9


def generate_id(prefix: str = "id") -> str:
    """Create a collision-resistant opaque identifier."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}_{millis}_{suffix}"
