from modpack_sync.adapters.loader_marker.filesystem import MARKER_FILENAME, FileLoaderMarker


def test_read_and_invalidate(tmp_path):
    marker = FileLoaderMarker(tmp_path)
    assert marker.read() is None
    assert marker.invalidate() is False

    (tmp_path / MARKER_FILENAME).write_text('{"loader": "fabric", "version": "0.15.7"}')
    assert marker.read() == {"loader": "fabric", "version": "0.15.7"}
    assert marker.invalidate() is True
    assert not (tmp_path / MARKER_FILENAME).exists()


def test_unreadable_marker_reads_as_none(tmp_path):
    (tmp_path / MARKER_FILENAME).write_text("garbage")
    assert FileLoaderMarker(tmp_path).read() is None
