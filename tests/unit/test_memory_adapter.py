"""Tests for storage_engine/adapters/memory.py."""

import threading

import pytest

from storage_engine.adapters.memory import MemoryAdapter
from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import ObjectNotFound, UrlNotAvailable


@pytest.fixture
def adapter():
    return MemoryAdapter(BackendDefinition.create("scratch", "memory"))


class TestMemoryAdapter:
    """Tests for the in-memory adapter."""

    def test_write_read(self, adapter):
        assert adapter.write_bytes("a/b", b"hello").bytes_written == 5
        assert adapter.read_bytes("a/b") == b"hello"
        assert adapter.open_read("a/b").read() == b"hello"
        assert adapter.size("a/b") == 5
        assert adapter.last_modified("a/b") > 0

    def test_stores_a_copy(self, adapter):
        data = bytearray(b"abc")
        adapter.write_bytes("x", data)
        data[0] = ord("z")
        assert adapter.read_bytes("x") == b"abc"

    def test_missing(self, adapter):
        assert not adapter.exists("x")
        with pytest.raises(ObjectNotFound):
            adapter.read_bytes("x")
        with pytest.raises(ObjectNotFound):
            adapter.delete("x")

    def test_copy_and_move_defaults(self, adapter):
        adapter.write_bytes("src", b"data")
        adapter.copy("src", "copy")
        adapter.move("src", "moved")
        assert adapter.read_bytes("copy") == b"data"
        assert adapter.read_bytes("moved") == b"data"
        assert not adapter.exists("src")

    def test_move_onto_itself(self, adapter):
        adapter.write_bytes("src", b"data")
        result = adapter.move("src", "src")
        assert result.success
        assert adapter.read_bytes("src") == b"data"

    def test_stores_are_per_adapter(self, adapter):
        other = MemoryAdapter(BackendDefinition.create("other", "memory"))
        adapter.write_bytes("x", b"1")
        assert not other.exists("x")

    def test_close_clears(self, adapter):
        adapter.write_bytes("x", b"1")
        adapter.close()
        assert not adapter.exists("x")

    def test_no_urls(self, adapter):
        with pytest.raises(UrlNotAvailable, match="memory servers"):
            adapter.url("x")

    def test_concurrent_writes(self, adapter):
        def worker(n):
            for i in range(50):
                adapter.write_bytes(f"{n}/{i}", b"x")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(adapter.exists(f"{n}/{i}") for n in range(8) for i in range(50))
