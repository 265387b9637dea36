"""Queue message codec.

Producers always write base64-encoded JSON. Consumers cannot rely on that:
depending on the queue runtime (or emulator) a message may arrive still
base64-encoded, already base64-decoded to a JSON string, or already parsed
into an object. :func:`decode` accepts all three.

Example:
    >>> raw = encode({"jobId": "j1", "docId": "d1"})
    >>> decode(raw) == decode('{"jobId": "j1", "docId": "d1"}')
    True
"""

from __future__ import annotations

import base64
import json
from typing import Any

from pdf_annotator_jobs.jobs.exceptions import DecodeError


__all__ = ["decode", "encode"]


def encode(payload: Any) -> str:  # noqa: ANN401
    """Serialize ``payload`` as base64 of its UTF-8 JSON text."""
    text = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _decode_base64_json(raw: str) -> Any:  # noqa: ANN401
    data = base64.b64decode(raw, validate=True)
    return json.loads(data.decode("utf-8"))


def decode(raw: Any) -> Any:  # noqa: ANN401
    """Normalize a received queue message into its payload.

    Non-string input is returned unchanged. Strings are tried as base64
    JSON first, then as plain JSON. Raw ``bytes`` are read as UTF-8 text.

    Args:
        raw: The message as delivered by the transport.

    Returns:
        The decoded payload.

    Raises:
        DecodeError: The string is neither base64 JSON nor JSON.
    """
    if isinstance(raw, bytes | bytearray):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = "Queue message is not valid UTF-8"
            raise DecodeError(msg, raw_length=len(raw)) from exc

    if not isinstance(raw, str):
        return raw

    try:
        return _decode_base64_json(raw)
    except ValueError:
        # binascii.Error, UnicodeDecodeError and JSONDecodeError
        pass

    try:
        return json.loads(raw)
    except ValueError as exc:
        msg = "Queue message is neither base64-encoded JSON nor JSON"
        raise DecodeError(msg, raw_length=len(raw)) from exc
