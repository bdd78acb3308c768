# tests/unit/core/test_unit_hashing.py — v1
"""Tests for core/hashing.py."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import BaseModel

from weaverkit.core.hashing import (
    MISSING_FILE_HASH,
    UNREADABLE_FILE_HASH,
    canonical_json,
    hash_bytes,
    hash_file,
    hash_files,
    hash_object,
    hash_string,
)


class TestPrimitives:
    def test_hash_bytes_is_sha256(self):
        assert hash_bytes(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_hash_string_utf8(self):
        assert hash_string("é") == hashlib.sha256("é".encode()).hexdigest()

    def test_hash_file_streams(self, tmp_path):
        data = b"x" * (3 * 1024 + 7)
        path = tmp_path / "blob.bin"
        path.write_bytes(data)
        assert hash_file(path, chunk_size=1024) == hashlib.sha256(data).hexdigest()

    def test_hash_file_missing_raises(self, tmp_path):
        with pytest.raises(OSError):
            hash_file(tmp_path / "nope")


class TestHashFiles:
    def test_maps_paths_to_digests(self, write_file):
        a = write_file("a.yaml", "one")
        b = write_file("b.yaml", "two")
        hashes = hash_files([b, a])
        assert list(hashes) == sorted([str(a), str(b)])
        assert hashes[str(a)] == hash_string("one")

    def test_missing_file_sentinel(self, tmp_path):
        missing = tmp_path / "gone.yaml"
        assert hash_files([missing]) == {str(missing): MISSING_FILE_HASH}

    def test_directory_counts_as_missing(self, tmp_path):
        assert hash_files([tmp_path]) == {str(tmp_path): MISSING_FILE_HASH}

    def test_unreadable_file_sentinel(self, write_file, monkeypatch):
        path = write_file("locked.yaml", "secret")

        def deny(*_args, **_kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("weaverkit.core.hashing.hash_file", deny)
        assert hash_files([path]) == {str(path): UNREADABLE_FILE_HASH}

    def test_empty_input(self):
        assert hash_files([]) == {}


class _Sample(BaseModel):
    schema_directory: str


class TestCanonicalJson:
    def test_key_order_irrelevant(self):
        assert hash_object({"a": 1, "b": [1, 2]}) == hash_object({"b": [1, 2], "a": 1})

    def test_list_order_matters(self):
        assert hash_object([1, 2]) != hash_object([2, 1])

    def test_compact_separators(self):
        assert canonical_json({"b": 1, "a": None}) == '{"a":null,"b":1}'

    def test_normalizes_special_types(self):
        when = datetime(2026, 1, 1, tzinfo=timezone.utc)
        text = canonical_json({"when": when, "path": Path("x/y"), "tags": {"b", "a"}})
        assert '"when":"2026-01-01T00:00:00+00:00"' in text
        assert '"path":"x/y"' in text
        assert '"tags":["a","b"]' in text

    def test_pydantic_model(self):
        assert hash_object(_Sample(schema_directory="s")) == hash_object({"schema_directory": "s"})

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            canonical_json({"x": object()})
