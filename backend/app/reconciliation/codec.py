"""Spread structured data across provider metadata values.

Provider metadata values are capped at 500 characters, so larger payloads are
JSON-encoded and split into ``data_chunk_<n>`` keys of at most
``chunk_size`` characters each. Decoding concatenates the chunks in numeric
index order and ignores every other metadata key.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional

from .errors import MalformedEventError

CHUNK_PREFIX = "data_chunk_"
DEFAULT_CHUNK_SIZE = 450
MAX_METADATA_VALUE_LENGTH = 500

_CHUNK_KEY_PATTERN = re.compile(rf"^{CHUNK_PREFIX}(\d+)$")


def encode_metadata_chunks(data: Mapping[str, Any], *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Dict[str, str]:
    if chunk_size < 1 or chunk_size > MAX_METADATA_VALUE_LENGTH:
        raise ValueError(f"chunk_size must be between 1 and {MAX_METADATA_VALUE_LENGTH}")

    serialized = json.dumps(data, separators=(",", ":"), default=str)
    return {
        f"{CHUNK_PREFIX}{index // chunk_size}": serialized[index : index + chunk_size]
        for index in range(0, len(serialized), chunk_size)
    }


def decode_metadata_chunks(metadata: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    """Reassemble chunked data; ``None`` when the metadata carries no chunks."""

    indexed = []
    for key, value in metadata.items():
        match = _CHUNK_KEY_PATTERN.match(key)
        if match:
            indexed.append((int(match.group(1)), value))

    if not indexed:
        return None

    indexed.sort()
    expected = list(range(len(indexed)))
    if [index for index, _ in indexed] != expected:
        raise MalformedEventError("metadata chunks are not contiguous")

    try:
        decoded = json.loads("".join(value for _, value in indexed))
    except ValueError as exc:
        raise MalformedEventError("metadata chunks do not hold valid JSON") from exc

    if not isinstance(decoded, dict):
        raise MalformedEventError("metadata chunks must decode to an object")
    return decoded


__all__ = [
    "CHUNK_PREFIX",
    "DEFAULT_CHUNK_SIZE",
    "decode_metadata_chunks",
    "encode_metadata_chunks",
]
