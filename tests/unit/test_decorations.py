"""Unit tests for decoration ranges, hover text and EditorDecorations."""

import pytest
import json
from urllib.parse import unquote

from devvoice.exceptions import PlaybackError, WorkspaceError
from devvoice.models.messages import EditorInfo
from devvoice.models.recording import LineRange, RecordingRecord
from devvoice.services.decorations import (
    EditorDecorations,
    compute_ranges,
    decode_play_arguments,
    encode_play_arguments,
    find_record_at,
    render_hover,
)
from devvoice.services.publisher import publish_recording_saved, publish_recordings_cleared
from devvoice.storage.metadata_store import MetadataStore


def make_record(start_line, end_line, record_id="rec-1-aaaaaaaaa", source_file="/proj/a.ts", duration=None):
    return RecordingRecord(
        id=record_id,
        audio_file=f"recordings/{record_id}.wav",
        source_file=source_file,
        language="typescript",
        start_line=start_line,
        end_line=end_line,
        timestamp="2024-05-01T10:00:00.000Z",
        duration=duration,
    )


@pytest.mark.unit
class TestRanges:

    def test_ranges_are_zero_based(self):
        """Test ranges are zero based."""
        metadata = {"/proj/a.ts": [make_record(10, 12)]}

        assert compute_ranges(metadata, "/proj/a.ts") == [LineRange(9, 11)]

    def test_ranges_round_trip(self):
        """Test ranges are computed zero-based from one-based records."""
        records = [make_record(1, 1, "rec-1-a"), make_record(5, 9, "rec-2-b"), make_record(7, 8, "rec-3-c")]
        metadata = {"/proj/a.ts": records}

        ranges = compute_ranges(metadata, "/proj/a.ts")

        assert [(r.start + 1, r.end + 1) for r in ranges] == [(1, 1), (5, 9), (7, 8)]

    def test_unknown_file_has_no_ranges(self):
        """Test unknown file has no ranges."""
        assert compute_ranges({"/proj/a.ts": [make_record(1, 2)]}, "/proj/b.ts") == []

    def test_find_record_at(self):
        """Test finding the record covering a zero-based line."""
        first = make_record(5, 9, "rec-1-a")
        second = make_record(7, 8, "rec-2-b")
        metadata = {"/proj/a.ts": [first, second]}

        assert find_record_at(metadata, "/proj/a.ts", 3) is None
        assert find_record_at(metadata, "/proj/a.ts", 4) is first
        assert find_record_at(metadata, "/proj/a.ts", 7) is first
        assert find_record_at(metadata, "/proj/a.ts", 8) is first
        assert find_record_at(metadata, "/proj/a.ts", 9) is None

    def test_find_record_at_is_idempotent(self):
        """Test find record at is idempotent."""
        metadata = {"/proj/a.ts": [make_record(2, 4)]}

        results = [find_record_at(metadata, "/proj/a.ts", 2) for _ in range(3)]

        assert results[0] is results[1] is results[2]
        assert metadata == {"/proj/a.ts": [make_record(2, 4)]}


@pytest.mark.unit
class TestHover:

    def test_render_hover(self):
        """Test hover markdown carries the recording details and a play link."""
        markdown = render_hover(make_record(10, 12, duration=7), "/proj/a.ts")

        assert "**Audio Recording**" in markdown
        assert "Lines: 10-12" in markdown
        assert "Duration: 7s" in markdown
        assert "(command:devvoice.playAudio?" in markdown

    def test_render_hover_unknown_duration(self):
        """Test render hover unknown duration."""
        assert "Duration: ?s" in render_hover(make_record(1, 1), "/proj/a.ts")

    def test_play_link_payload(self):
        """Test the play link encodes the audio file and source path."""
        markdown = render_hover(make_record(1, 1), "/proj/my file.ts")
        payload = markdown.split("command:devvoice.playAudio?", 1)[1].rstrip(")")

        assert " " not in payload
        assert json.loads(unquote(payload)) == ["recordings/rec-1-aaaaaaaaa.wav", "/proj/my file.ts"]
        assert decode_play_arguments(payload) == ("recordings/rec-1-aaaaaaaaa.wav", "/proj/my file.ts")

    def test_encode_escapes_like_encode_uri_component(self):
        """Test encode escapes like encode uri component."""
        assert encode_play_arguments("a b", "/c") == "%5B%22a%20b%22%2C%20%22%2Fc%22%5D"

    @pytest.mark.parametrize("payload", [
        "not-json",
        "%5B%5D",
        "%5B%22only-one%22%5D",
        "%5B%22%22%2C%20%22%2Fa.ts%22%5D",
        "%7B%7D",
    ])
    def test_decode_rejects_bad_payloads(self, payload):
        """Test decode rejects bad payloads."""
        with pytest.raises(PlaybackError):
            decode_play_arguments(payload)


@pytest.mark.unit
class TestEditorDecorations:

    @pytest.fixture
    def store(self, workspace_dir):
        return MetadataStore(str(workspace_dir))

    @pytest.fixture
    def decorations(self, store):
        return EditorDecorations(lambda source_file: store)

    def test_focus_computes_ranges(self, decorations, store, sample_audio):
        """Test focusing a file computes its decoration ranges."""
        store.append("/proj/a.ts", sample_audio, 10, 12)
        store.append("/proj/b.ts", sample_audio, 1, 1)

        assert decorations.focus("/proj/a.ts") == [LineRange(9, 11)]
        assert decorations.active_file == "/proj/a.ts"

    def test_focus_none_clears(self, decorations, store, sample_audio):
        """Test focusing no file clears the decoration ranges."""
        store.append("/proj/a.ts", sample_audio, 10, 12)
        decorations.focus("/proj/a.ts")

        assert decorations.focus(None) == []
        assert decorations.ranges == []

    def test_refresh_on_saved_event(self, decorations, store, sample_audio):
        """Test refresh on saved event."""
        decorations.focus("/proj/a.ts")
        record = store.append("/proj/a.ts", sample_audio, 3, 4)

        publish_recording_saved(str(store.workspace_root), record)

        assert decorations.ranges == [LineRange(2, 3)]

    def test_saved_event_for_other_file_is_ignored(self, decorations, store, sample_audio):
        """Test saved event for other file is ignored."""
        decorations.focus("/proj/a.ts")
        record = store.append("/proj/b.ts", sample_audio, 3, 4)
        store.append("/proj/a.ts", sample_audio, 1, 1)

        publish_recording_saved(str(store.workspace_root), record)

        assert decorations.ranges == []

    def test_refresh_on_cleared_event(self, decorations, store, sample_audio):
        """Test refresh on cleared event."""
        store.append("/proj/a.ts", sample_audio, 3, 4)
        decorations.focus("/proj/a.ts")

        store.clear_all()
        publish_recordings_cleared(str(store.workspace_root))

        assert decorations.ranges == []

    def test_corrupt_store_keeps_previous_ranges(self, decorations, store, sample_audio):
        """Test corrupt store keeps previous ranges."""
        store.append("/proj/a.ts", sample_audio, 3, 4)
        decorations.focus("/proj/a.ts")
        store.metadata_file.write_text("[broken", encoding='utf-8')

        assert decorations.refresh() == [LineRange(2, 3)]
        assert decorations.last_error is not None
        assert decorations.last_error.code == "CORRUPT_METADATA"

    def test_hover(self, decorations, store, sample_audio):
        """Test hovering a decorated line returns its markdown."""
        store.append("/proj/a.ts", sample_audio, 10, 12)
        decorations.focus("/proj/a.ts")

        assert decorations.hover("/proj/a.ts", 8) is None
        assert "Lines: 10-12" in decorations.hover("/proj/a.ts", 9)

    def test_missing_workspace(self):
        """Test decorations stay empty when no workspace is open."""
        def no_workspace(source_file):
            raise WorkspaceError()

        decorations = EditorDecorations(no_workspace)

        assert decorations.focus("/proj/a.ts") == []
        assert decorations.hover("/proj/a.ts", 0) is None

    def test_highlight_marks_selection(self, decorations, store, sample_audio):
        """Test opening a recorder highlights the selected lines of its file."""
        store.append("/proj/a.ts", sample_audio, 1, 1)

        selection = decorations.highlight(EditorInfo(filepath="/proj/a.ts", start_line=10, end_line=12))

        assert selection == LineRange(9, 11)
        assert decorations.selection == LineRange(9, 11)
        assert decorations.active_file == "/proj/a.ts"
        assert decorations.ranges == [LineRange(0, 0)]

    def test_focus_change_clears_selection(self, decorations):
        """Test moving focus to another editor drops the selection highlight."""
        decorations.highlight(EditorInfo(filepath="/proj/a.ts", start_line=3, end_line=3))

        decorations.focus("/proj/b.ts")

        assert decorations.selection is None

    def test_refresh_keeps_selection(self, decorations, store, sample_audio):
        """Test a saved recording refreshes ranges without dropping the highlight."""
        decorations.highlight(EditorInfo(filepath="/proj/a.ts", start_line=3, end_line=4))
        record = store.append("/proj/a.ts", sample_audio, 3, 4)

        publish_recording_saved(str(store.workspace_root), record)

        assert decorations.selection == LineRange(2, 3)
        assert decorations.ranges == [LineRange(2, 3)]
