import pytest

from import_engine.bulk import chunked, write_in_chunks


class RecordingStore:
    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def upsert(self, table, rows, conflict_key):
        self.calls.append(len(rows))
        if len(self.calls) in self.fail_on:
            raise RuntimeError("payload too large")
        return len(rows)


def test_chunked():
    assert [len(c) for c in chunked(list(range(1201)), 500)] == [500, 500, 201]
    assert list(chunked([], 500)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_writes_in_chunks_of_500():
    store = RecordingStore()
    report = write_in_chunks(store, "schedules", [{}] * 1100, ("id",))
    assert store.calls == [500, 500, 100]
    assert report.written == 1100
    assert report.ok


def test_failed_chunk_does_not_stop_later_chunks():
    store = RecordingStore(fail_on={2})
    report = write_in_chunks(store, "schedules", [{}] * 1100, ("id",), chunk_size=500)
    assert store.calls == [500, 500, 100]
    assert report.written == 600
    assert report.errors == ["Chunk 2: payload too large"]
    assert report.to_dict()["chunks"] == 3
