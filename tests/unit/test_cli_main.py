"""Unit tests for the StoryCloak CLI."""

import json

import pytest
from click.testing import CliRunner

from storycloak import __version__
from storycloak.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, *args):
    return runner.invoke(cli, ["--log-level", "ERROR", *args])


class TestCLI:
    """Test the click command group."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("parse", "stats", "tree", "export", "commands", "scripts", "version"):
            assert command in result.output

    def test_version(self, runner):
        result = _invoke(runner, "version")
        assert result.exit_code == 0
        assert f"StoryCloak v{__version__}" in result.output

    def test_parse_reports_recovery_stage(self, runner, malformed_story_file):
        result = _invoke(runner, "parse", str(malformed_story_file))
        assert result.exit_code == 0
        assert "Stage: structural_cleanup" in result.output
        assert "failed baseline" in result.output
        assert "Items: 2" in result.output
        assert "Nodes: 8" in result.output
        assert "Device: ws-alice.corp.contoso.com" in result.output

    def test_stats(self, runner, story_file):
        result = _invoke(runner, "stats", str(story_file))
        assert result.exit_code == 0
        assert "Total:     8" in result.output
        assert "Registry:  1" in result.output

    def test_stats_json(self, runner, story_file):
        result = _invoke(runner, "stats", "--json", str(story_file))
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total"] == 8
        assert data["processes"] == 2

    def test_tree(self, runner, story_file):
        result = _invoke(runner, "tree", str(story_file))
        assert result.exit_code == 0
        assert result.output.splitlines()[0] == "powershell.exe (Process)"
        assert "run.ps1" not in result.output

    def test_tree_unfiltered_zoomed(self, runner, story_file):
        result = _invoke(runner, "tree", "--no-filter", "-z", "p1", str(story_file))
        assert result.exit_code == 0
        assert "└── run.ps1 (PE metadata)" in result.output
        assert "HKLM" not in result.output

    def test_tree_unknown_zoom_warns(self, runner, story_file):
        result = _invoke(runner, "tree", "-z", "missing", str(story_file))
        assert result.exit_code == 0
        assert "node 'missing' not found" in result.output

    def test_export_anonymized(self, runner, story_file, tmp_path):
        out = tmp_path / "out"
        result = _invoke(runner, "export", "-a", "-o", str(out), str(story_file))
        assert result.exit_code == 0
        assert "Exported story to" in result.output
        files = list(out.glob("xdr_story_data_anonymized_*.json"))
        assert len(files) == 1
        assert "alice" not in files[0].read_text(encoding="utf-8")

    def test_commands_to_stdout(self, runner, story_file):
        result = _invoke(runner, "commands", str(story_file))
        assert result.exit_code == 0
        assert result.output.startswith("# 2024-05-01T09:59:00Z - cmd.exe")

    def test_scripts_to_file(self, runner, story_file, tmp_path):
        output = tmp_path / "reports" / "scripts.txt"
        result = _invoke(runner, "scripts", "-a", "-o", str(output), str(story_file))
        assert result.exit_code == 0
        assert "Report written to" in result.output
        content = output.read_text(encoding="utf-8")
        assert 'Write-Host "hi"' in content
        assert "User: REDACTED\\REDACTED" in content

    def test_unwritable_report_path_fails_cleanly(self, runner, story_file, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        result = _invoke(runner, "commands", "-o", str(blocker / "commands.txt"), str(story_file))
        assert result.exit_code == 1
        assert "Could not write report to" in result.output
        assert not isinstance(result.exception, OSError)

    def test_invalid_story_fails_with_hint(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text('{"items": []}', encoding="utf-8")
        result = _invoke(runner, "stats", str(path))
        assert result.exit_code == 1
        assert "items" in result.output

    def test_wrong_extension_fails_with_hint(self, runner, tmp_path):
        path = tmp_path / "story.txt"
        path.write_text("{}", encoding="utf-8")
        result = _invoke(runner, "tree", str(path))
        assert result.exit_code == 1
        assert "Hint: Select a .json or .jsonc attack story export" in result.output

    def test_config_file(self, runner, story_file, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("anonymization:\n  placeholder: '[HIDDEN]'\n", encoding="utf-8")
        result = runner.invoke(
            cli, ["--config", str(config), "--log-level", "ERROR", "commands", "-a", str(story_file)]
        )
        assert result.exit_code == 0
        assert "[HIDDEN]" in result.output
