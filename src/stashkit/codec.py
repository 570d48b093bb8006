"""Envelope codec and the reversible obfuscation transform.

The codec turns an Envelope into one opaque string and back. Obfuscation
is a separate, invertible text transform layered over the serialized
envelope when a caller asks for it.

Obfuscation is NOT encryption. ``Base64Obfuscator`` only hides values
from a casual glance at the backing store; anyone holding the stored
string can recover the envelope. Callers that need confidentiality must
pass a transform built on an authenticated-encryption primitive.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Protocol

import jsonschema
from jsonschema.exceptions import best_match

from stashkit.envelope import Envelope
from stashkit.errors import DecodeError, EncodeError

# Year 1 through year 9999, the range a datetime can represent.
_MIN_EPOCH_MS = -62_135_596_800_000
_MAX_EPOCH_MS = 253_402_300_799_999

ENVELOPE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["data", "timestamp", "version"],
    "properties": {
        "data": {},
        "timestamp": {"type": "integer", "minimum": _MIN_EPOCH_MS, "maximum": _MAX_EPOCH_MS},
        "expiresAt": {
            "oneOf": [
                {"type": "null"},
                {"type": "integer", "minimum": _MIN_EPOCH_MS, "maximum": _MAX_EPOCH_MS},
            ]
        },
        "version": {"type": "string"},
    },
}

_validator = jsonschema.Draft7Validator(ENVELOPE_SCHEMA)


class Transform(Protocol):
    """Protocol for a reversible text transform applied to encoded envelopes.

    ``reverse`` must raise ``ValueError`` (or ``DecodeError``) when its
    input was not produced by ``apply``.
    """

    name: str

    def apply(self, text: str) -> str:
        """Transform serialized envelope text before it is stored."""
        ...

    def reverse(self, text: str) -> str:
        """Undo ``apply`` on text read back from the store."""
        ...


class Base64Obfuscator:
    """UTF-8 then standard base64. Reversible by anyone; not confidential."""

    name = "base64"

    def apply(self, text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    def reverse(self, text: str) -> str:
        return base64.b64decode(text.encode("ascii"), validate=True).decode("utf-8")


class EnvelopeCodec:
    """Serializes envelopes to strings and fails closed on decode."""

    def __init__(self, obfuscator: Transform | None = None) -> None:
        self._obfuscator = obfuscator or Base64Obfuscator()

    @property
    def obfuscator(self) -> Transform:
        return self._obfuscator

    def encode(self, envelope: Envelope, obfuscate: bool = False) -> str:
        """Serialize *envelope*, metadata included, to one string.

        Only values that decode back to an equal value are accepted: dict
        keys must be strings, and tuples (which would come back as lists)
        are refused.

        Raises:
            EncodeError: If the payload is not JSON-serializable, would not
                round-trip, or is nested too deeply to serialize.
        """
        _check_round_trips(envelope.payload)
        try:
            serialized = json.dumps(envelope.to_dict(), separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Payload is not JSON-serializable: {e}") from e
        except RecursionError as e:
            raise EncodeError("Payload is nested too deeply to serialize") from e
        if obfuscate:
            return self._obfuscator.apply(serialized)
        return serialized

    def decode(self, raw: str, obfuscated: bool = False) -> Envelope:
        """Rebuild an envelope from a stored string.

        Raises:
            DecodeError: If the transform, the JSON parse or the structural
                check fails. No partial envelope is ever returned.
        """
        text = raw
        if obfuscated:
            try:
                text = self._obfuscator.reverse(raw)
            except (ValueError, UnicodeError) as e:
                raise DecodeError(f"Failed to reverse {self._obfuscator.name} transform: {e}") from e

        try:
            data = json.loads(text)
        except ValueError as e:
            raise DecodeError(f"Stored value is not valid JSON: {e}") from e
        except RecursionError as e:
            raise DecodeError("Stored value is nested too deeply to parse") from e

        try:
            error = best_match(_validator.iter_errors(data))
        except RecursionError as e:
            raise DecodeError("Stored value is nested too deeply to validate") from e
        if error is not None:
            raise DecodeError(f"Stored value is not a valid envelope: {error.message}")

        try:
            return Envelope.from_dict(data)
        except (OverflowError, ValueError) as e:
            raise DecodeError(f"Stored envelope has unusable timestamps: {e}") from e


def _check_round_trips(payload: Any) -> None:
    """Reject payloads JSON would silently change on the way back."""
    stack = [payload]
    seen: set[int] = set()
    while stack:
        value = stack.pop()
        if isinstance(value, (dict, list)):
            # circular references are left for json.dumps to report
            if id(value) in seen:
                continue
            seen.add(id(value))
        if isinstance(value, tuple):
            raise EncodeError("Tuples do not round-trip through JSON; store a list instead")
        if isinstance(value, dict):
            for key, item in value.items():
                if not isinstance(key, str):
                    raise EncodeError(f"Dict keys must be strings, got {type(key).__name__} key {key!r}")
                stack.append(item)
        elif isinstance(value, list):
            stack.extend(value)
