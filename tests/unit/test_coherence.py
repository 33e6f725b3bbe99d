"""Unit tests for the host/device coherence state machine."""

import pytest

from accelvec.errors import ConsistencyError
from accelvec.linalg import Coherence, CoherenceState


class Recorder:
    def __init__(self):
        self.calls: list[str] = []

    def upload(self):
        self.calls.append("upload")

    def download(self):
        self.calls.append("download")


@pytest.fixture
def rec():
    return Recorder()


@pytest.fixture
def coh(rec):
    return Coherence(rec.upload, rec.download)


class TestCoherence:
    """Tests for dirty-flag transitions."""

    def test_starts_synced(self, coh):
        assert coh.state is CoherenceState.SYNCED

    def test_device_write_then_host_read_downloads_once(self, coh, rec):
        coh.device_written()
        assert coh.state is CoherenceState.DEVICE_AUTHORITATIVE

        coh.ensure_host_current()
        coh.ensure_host_current()

        assert rec.calls == ["download"]
        assert coh.transfers == 1
        assert coh.state is CoherenceState.SYNCED

    def test_host_write_then_device_read_uploads_once(self, coh, rec):
        coh.host_written()
        assert coh.state is CoherenceState.HOST_AUTHORITATIVE

        coh.ensure_device_current()
        coh.ensure_device_current()

        assert rec.calls == ["upload"]
        assert coh.state is CoherenceState.SYNCED

    def test_no_copy_when_synced(self, coh, rec):
        coh.ensure_host_current()
        coh.ensure_device_current()
        coh.make_coherent()
        assert rec.calls == []

    def test_both_dirty_raises(self, coh):
        coh.device_written()
        with pytest.raises(ConsistencyError):
            coh.host_written()
        with pytest.raises(ConsistencyError):
            coh.make_coherent()
        with pytest.raises(ConsistencyError):
            _ = coh.state

    def test_both_dirty_never_copies(self, coh, rec):
        coh.host_dirty = True
        coh.device_dirty = True
        with pytest.raises(ConsistencyError):
            coh.ensure_host_current()
        with pytest.raises(ConsistencyError):
            coh.ensure_device_current()
        assert rec.calls == []

    def test_overwrites_void_the_other_side(self, coh, rec):
        coh.host_written()
        coh.device_overwritten()
        assert coh.state is CoherenceState.DEVICE_AUTHORITATIVE

        coh.host_overwritten()
        assert coh.state is CoherenceState.HOST_AUTHORITATIVE
        assert rec.calls == []

    @pytest.mark.parametrize(
        "mark,expected",
        [("device_written", ["download"]), ("host_written", ["upload"])],
    )
    def test_make_coherent_resolves_dirty_side(self, coh, rec, mark, expected):
        getattr(coh, mark)()
        coh.make_coherent()
        assert rec.calls == expected
        assert coh.state is CoherenceState.SYNCED
