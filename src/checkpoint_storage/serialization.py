"""JSON encoding shared by every checkpoint backend.

All providers route ``state`` and ``config`` through :func:`encode_payload` on
the way in and :func:`decode_payload` on the way out, so the three backends
apply exactly the same JSON semantics. Identifier parsing lives here for the
same reason.
"""

import json
from typing import Any, Optional

from checkpoint_storage.exceptions import DeserializationError, SerializationError

# Largest value a signed 64-bit auto-increment column can hold.
MAX_CHECKPOINT_ID = 2**63 - 1


def encode_payload(value: Any, field: str) -> str:
    """Encode a checkpoint payload as JSON text.

    Args:
        value: Any JSON-serializable value. ``None`` encodes as ``"null"``.
        field: Name of the payload field, used in error messages.

    Returns:
        JSON text.

    Raises:
        SerializationError: If the value cannot round-trip through JSON
            (circular references, unsupported types, NaN or infinity).
    """
    try:
        return json.dumps(value, allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(field, str(e)) from e


def decode_payload(text: str, field: str, checkpoint_id: str) -> Any:
    """Decode JSON text read back from the store.

    Args:
        text: Stored JSON text.
        field: Name of the payload field, used in error messages.
        checkpoint_id: Identifier of the row the text came from.

    Returns:
        The decoded JSON value.

    Raises:
        DeserializationError: If the stored text is not valid JSON.
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise DeserializationError(field, checkpoint_id, str(e)) from e


def parse_checkpoint_id(checkpoint_id: str) -> Optional[int]:
    """Convert a textual checkpoint identifier into a native key.

    Returns ``None`` for anything that cannot be a stored key, so callers can
    report "not found" without querying the backend.
    """
    if not isinstance(checkpoint_id, str):
        return None
    text = checkpoint_id.strip()
    if not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    if value < 1 or value > MAX_CHECKPOINT_ID:
        return None
    return value
