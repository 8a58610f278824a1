"""
Envelope codec.

Every cache entry is stored as an envelope pairing the caller's payload with
the tag timestamps captured when it was written. The wire format is canonical
JSON so that any process running the same codec version decodes it
identically::

    {"data":"<base64 payload>","tags":{"<name>":"<timestamp>"},"v":1}
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Dict, Mapping

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from shared.errors import MalformedEnvelopeError

ENVELOPE_VERSION = 1


@dataclass(frozen=True)
class Envelope:
    """Decoded cache entry."""

    data: bytes
    tags: Dict[str, str] = field(default_factory=dict)


class _WireEnvelope(BaseModel):
    """Shape of the serialized envelope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    v: StrictInt
    tags: Dict[StrictStr, StrictStr]
    data: StrictStr


def encode(data: bytes, tags: Mapping[str, str]) -> bytes:
    """Serialize ``data`` and its tag snapshot."""
    document = {
        "v": ENVELOPE_VERSION,
        "tags": dict(tags),
        "data": base64.b64encode(bytes(data)).decode("ascii"),
    }
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("ascii")


def decode(raw: bytes) -> Envelope:
    """Deserialize an envelope read back from the store.

    Raises:
        MalformedEnvelopeError: For any input that is not a valid envelope.
            No other exception escapes, whatever the bytes contain.
    """
    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise MalformedEnvelopeError(f"Envelope must be bytes, got {type(raw).__name__}")

    try:
        document = json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedEnvelopeError("Envelope is not valid JSON", {"error": str(e)}) from e

    if not isinstance(document, dict):
        raise MalformedEnvelopeError("Envelope is not a JSON object")

    try:
        wire = _WireEnvelope.model_validate(document)
    except PydanticValidationError as e:
        raise MalformedEnvelopeError(
            "Envelope has the wrong shape",
            {"errors": [err["msg"] for err in e.errors()]}
        ) from e

    if wire.v != ENVELOPE_VERSION:
        raise MalformedEnvelopeError("Unsupported envelope version", {"version": wire.v})

    if "" in wire.tags:
        raise MalformedEnvelopeError("Envelope snapshot contains an empty tag name")

    try:
        data = base64.b64decode(wire.data.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise MalformedEnvelopeError("Envelope payload is not valid base64", {"error": str(e)}) from e

    return Envelope(data=data, tags=dict(wire.tags))
