"""Unit tests for storycloak.session."""

import json

import pytest

from storycloak.core.exceptions import (
    ExportError,
    InputValidationError,
    StoryCloakError,
    StructureValidationError,
)
from storycloak.formats.capture import PNG_SIGNATURE
from storycloak.session import StorySession


class PngRenderer:
    def render(self, projection, document):
        return PNG_SIGNATURE + b"\x00" * 8


class BrokenRenderer:
    def render(self, projection, document):
        raise OSError("display unavailable")


class TestLoading:
    """Test session loading and the empty state."""

    def test_load_builds_view_state(self, engine, story_file):
        session = StorySession(engine)
        result = session.load(story_file)
        assert session.loaded
        assert session.current is session.original is result.document
        assert len(session.projection) == 6
        assert session.statistics.total == 8
        assert session.anonymization_set.usernames == {"alice", "bob"}
        assert not session.redaction_enabled

    def test_unfiltered_session(self, engine, story_file):
        session = StorySession(engine, filtered=False)
        session.load(story_file)
        assert len(session.projection) == 8

    def test_operations_require_a_story(self, engine):
        session = StorySession(engine)
        with pytest.raises(StoryCloakError) as exc_info:
            session.export_command_lines()
        assert exc_info.value.error_code == "NO_STORY_LOADED"
        with pytest.raises(StoryCloakError):
            session.set_redaction(True)
        with pytest.raises(StoryCloakError):
            session.zoom("p1")
        for operation in (session.snapshot, session.exit_zoom, session.collapse_all):
            with pytest.raises(StoryCloakError) as exc_info:
                operation()
            assert exc_info.value.error_code == "NO_STORY_LOADED"

    def test_failed_load_leaves_session_empty(self, engine, story_file, tmp_path):
        session = StorySession(engine)
        session.load(story_file)
        bad = tmp_path / "bad.json"
        bad.write_text('{"items": []}', encoding="utf-8")
        with pytest.raises(StructureValidationError):
            session.load(bad)
        assert not session.loaded
        assert session.projection is None

    def test_wrong_extension(self, engine, tmp_path):
        path = tmp_path / "story.yaml"
        path.write_text("items: []", encoding="utf-8")
        with pytest.raises(InputValidationError):
            StorySession(engine).load(path)

    def test_load_text(self, engine, sample_story):
        session = StorySession(engine)
        session.load_text(json.dumps(sample_story), source="clipboard")
        assert session.snapshot().stage == "baseline"


class TestViewState:
    """Test redaction toggling, zoom and expand state."""

    @pytest.fixture(autouse=True)
    def _loaded(self, engine, story_file):
        self.session = StorySession(engine)
        self.session.load(story_file)

    def test_redaction_toggle(self):
        redacted = self.session.set_redaction(True)
        assert redacted.main_user.name == "REDACTED"
        assert self.session.original.main_user.name == "alice"
        assert self.session.redaction_enabled
        restored = self.session.set_redaction(False)
        assert restored is self.session.original

    def test_redaction_keeps_zoom_and_collapse(self):
        self.session.collapse_all()
        self.session.zoom("p1")
        self.session.set_redaction(True)
        assert self.session.projection.zoom_root == "p1"
        assert self.session.projection.collapsed == {"r1"}
        assert self.session.projection.node_ids == ("p1", "f2", "s1", "node-0.3")
        self.session.exit_zoom()
        assert self.session.projection.collapsed == {"p1", "r1"}

    def test_zoom_and_exit(self):
        projection = self.session.zoom("r1")
        assert self.session.zoomed
        assert projection.node_ids == ("r1", "node-1.0")
        self.session.exit_zoom()
        assert not self.session.zoomed
        assert len(self.session.projection) == 6

    def test_stale_zoom_keeps_view(self):
        before = self.session.projection
        assert self.session.zoom("nope") is before

    def test_expand_collapse(self):
        self.session.collapse_all()
        assert len(self.session.projection.visible) == 2
        self.session.expand_all()
        assert len(self.session.projection.visible) == 6
        self.session.toggle("p1")
        assert not self.session.projection.is_expanded("p1")

    def test_reports_follow_current_view(self):
        self.session.set_redaction(True)
        report = self.session.export_command_lines()
        assert "alice" not in report.lower()
        assert "REDACTED" in report
        self.session.zoom("p1")
        scripts = self.session.export_scripts()
        assert scripts.startswith("# 2024-05-01T10:00:03Z")

    def test_snapshot(self):
        self.session.set_redaction(True)
        snapshot = self.session.snapshot()
        assert snapshot.redaction_enabled
        assert snapshot.document is self.session.current
        assert snapshot.statistics.total == 8
        assert snapshot.stage == "baseline"


class TestExports:
    """Test exports and the error boundary."""

    @pytest.fixture(autouse=True)
    def _loaded(self, engine, story_file):
        self.session = StorySession(engine)
        self.session.load(story_file)

    def test_export_json_defaults_to_configured_directory(self, config):
        self.session.set_redaction(True)
        path = self.session.export_json()
        assert str(path.parent) == config.export.output_dir
        assert path.name.startswith("xdr_story_data_anonymized_")
        assert json.loads(path.read_text(encoding="utf-8"))["mainUser"]["name"] == "REDACTED"

    def test_export_json_explicit_directory(self, tmp_path):
        path = self.session.export_json(tmp_path / "elsewhere")
        assert path.parent == tmp_path / "elsewhere"
        assert "anonymized" not in path.name

    def test_capture(self, tmp_path):
        self.session.zoom("r1")
        result = self.session.capture(PngRenderer(), tmp_path)
        assert result.zoomed
        assert not result.anonymized
        assert "_zoomed_" in result.path.name
        assert result.path.exists()

    def test_capture_failure_resets_transient_state(self, tmp_path):
        self.session.set_redaction(True)
        self.session.zoom("r1")
        with pytest.raises(ExportError) as exc_info:
            self.session.capture(BrokenRenderer(), tmp_path)
        assert exc_info.value.context["artifact"] == "capture"
        assert not self.session.redaction_enabled
        assert not self.session.zoomed
        assert self.session.current is self.session.original
        assert self.session.loaded

    def test_unexpected_failure_wrapped(self, monkeypatch, tmp_path):
        self.session.set_redaction(True)

        def explode(*args, **kwargs):
            raise KeyError("boom")

        monkeypatch.setattr(self.session.engine, "report", explode)
        with pytest.raises(ExportError) as exc_info:
            self.session.export_command_lines()
        assert exc_info.value.context["artifact"] == "command_lines"
        assert exc_info.value.context["original_error_type"] == "KeyError"
        assert not self.session.redaction_enabled
