from __future__ import annotations

import json

import pytest

from backend.app.reconciliation import MalformedEventError, decode_metadata_chunks, encode_metadata_chunks
from backend.app.reconciliation.codec import CHUNK_PREFIX, DEFAULT_CHUNK_SIZE


def _listing(size: int) -> dict:
    return {"title": "Loft", "description": "x" * size, "price": 1800}


def test_every_chunk_fits_in_a_metadata_value():
    chunks = encode_metadata_chunks(_listing(2000))

    assert len(chunks) > 1
    assert all(len(value) <= DEFAULT_CHUNK_SIZE for value in chunks.values())
    assert all(key.startswith(CHUNK_PREFIX) for key in chunks)


def test_decoding_orders_chunks_numerically():
    data = _listing(5000)
    chunks = encode_metadata_chunks(data, chunk_size=400)
    assert "data_chunk_10" in chunks

    shuffled = dict(sorted(chunks.items(), reverse=True))
    shuffled["correlation_id"] = "lst_1"

    assert decode_metadata_chunks(shuffled) == data


def test_metadata_without_chunks_decodes_to_none():
    assert decode_metadata_chunks({"correlation_id": "apt_1"}) is None


def test_missing_chunk_is_rejected():
    chunks = encode_metadata_chunks(_listing(1500))
    del chunks["data_chunk_1"]

    with pytest.raises(MalformedEventError):
        decode_metadata_chunks(chunks)


def test_chunks_holding_invalid_json_are_rejected():
    with pytest.raises(MalformedEventError):
        decode_metadata_chunks({"data_chunk_0": '{"title": '})


def test_chunks_must_decode_to_an_object():
    with pytest.raises(MalformedEventError):
        decode_metadata_chunks({"data_chunk_0": json.dumps(["a", "b"])})


@pytest.mark.parametrize("chunk_size", [0, 501])
def test_chunk_size_is_bounded(chunk_size):
    with pytest.raises(ValueError):
        encode_metadata_chunks({"a": 1}, chunk_size=chunk_size)
