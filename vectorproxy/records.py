"""Decoding of queue payloads into metadata records and dedup key construction."""

from __future__ import annotations

import hashlib
import json
import uuid
from typing import Any, Dict, Mapping, Optional, Sequence

from .errors import DecodeError, MissingPrimaryKeyError

DEFAULT_ENVELOPE_KEY = "_airbyte_data"
INDEX_FIELD = "index"
PAGE_CONTENT_FIELD = "page_content"

MetadataRecord = Dict[str, str]


def decode_payload(payload: str) -> Any:
    """Parse a raw payload as JSON."""

    try:
        return json.loads(payload)
    except (TypeError, ValueError, RecursionError) as exc:
        raise DecodeError(f"Payload is not valid JSON: {exc}") from exc


def unwrap_envelope(
    data: Dict[str, Any],
    envelope_key: Optional[str] = DEFAULT_ENVELOPE_KEY,
) -> Dict[str, Any]:
    """Return the nested object under ``envelope_key`` when there is one.

    Some delivery paths wrap the user record in a transport envelope; a
    non-object value under the key leaves the payload untouched.
    """

    if envelope_key:
        nested = data.get(envelope_key)
        if isinstance(nested, dict):
            return nested
    return data


def stringify_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def to_metadata(data: Mapping[str, Any]) -> MetadataRecord:
    """Flatten a decoded object into a string-valued record."""

    return {str(key): stringify_value(value) for key, value in data.items()}


def hash_string_to_uuid(salt: str, value: str) -> str:
    """Deterministically map ``value`` to a UUID string using a salted SHA-256."""

    digest = hashlib.sha256(f"{salt}{value}".encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=4))


def build_dedup_id(record: Mapping[str, str], primary_key_fields: Sequence[str], salt: str) -> str:
    """Hash the ordered primary key values of ``record`` into a storage key."""

    values = []
    for field in primary_key_fields:
        try:
            values.append(record[field])
        except KeyError:
            raise MissingPrimaryKeyError(field) from None
    serialized = json.dumps(values, ensure_ascii=False, separators=(",", ":"))
    return hash_string_to_uuid(salt, serialized)


__all__ = [
    "DEFAULT_ENVELOPE_KEY",
    "INDEX_FIELD",
    "PAGE_CONTENT_FIELD",
    "MetadataRecord",
    "decode_payload",
    "unwrap_envelope",
    "stringify_value",
    "to_metadata",
    "hash_string_to_uuid",
    "build_dedup_id",
]
