"""Shared fixtures for StoryCloak tests."""

import copy
import json
import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from storycloak.core.config import StoryCloakConfig, reset_config
from storycloak.document.model import StoryDocument
from storycloak.engine import StoryEngine

MAIN_SID = "S-1-5-21-1111-2222-3333-1001"
BOB_SID = "S-1-5-21-1111-2222-3333-1002"

SAMPLE_STORY: dict[str, Any] = {
    "mainUser": {"name": "alice", "domainName": "CORP", "sid": MAIN_SID},
    "deviceId": "a1b2c3d4e5f6",
    "deviceName": "ws-alice.corp.contoso.com",
    "items": [
        {
            "id": "p1",
            "type": "process",
            "time": "2024-05-01T10:00:05.1234567Z",
            "title": {"prefix": "", "main": "powershell.exe", "intro": "Process"},
            "entity": {
                "ProcessId": 4242,
                "Commandline": "powershell.exe -ExecutionPolicy Bypass -File C:\\Users\\alice\\run.ps1",
                "CreationTime": "2024-05-01T10:00:05Z",
                "ImageFile": {
                    "FileName": "powershell.exe",
                    "FullPath": "C:\\Windows\\System32\\WindowsPowerShell\\v1.0\\powershell.exe",
                    "Sha256": "ab" * 32,
                },
                "User": {"DomainName": "CORP", "UserName": "alice", "Sid": MAIN_SID},
            },
            "children": [
                {
                    "id": "f1",
                    "type": "file",
                    "title": {"main": "run.ps1", "intro": "PE metadata"},
                    "children": [
                        {
                            "id": "f2",
                            "type": "file",
                            "title": {"main": "payload.dll", "intro": "File created"},
                        }
                    ],
                },
                {
                    "id": "s1",
                    "type": "process",
                    "time": "2024-05-01T10:00:03Z",
                    "title": {"main": "powershell.exe executed a script", "intro": "Script"},
                    "initiatingProcessAccountName": "alice",
                    "initiatingProcessAccountDomain": "CORP",
                    "details": [
                        {"key": "Content", "value": 'Write-Host \\"hi\\"\\nGet-Process'},
                    ],
                },
            ],
            "nestedItems": [
                {
                    "id": "a1",
                    "type": "account",
                    "title": {"main": "bob", "intro": "User"},
                    "entity": {
                        "User": {"DomainName": "CORP", "UserName": "bob", "Sid": BOB_SID}
                    },
                },
                {
                    "type": "network",
                    "time": "2024-05-01T10:00:01Z",
                    "title": {"main": "10.0.0.5:443", "intro": "Network connection"},
                },
            ],
        },
        {
            "id": "r1",
            "type": "Registry",
            "title": {"main": "HKLM\\Software\\Run", "intro": "Registry value set"},
            "details": [{"key": "WMI Query", "value": "SELECT * FROM Win32_Process"}],
            "children": [
                {
                    "type": "weird",
                    "title": {"main": "cmd.exe"},
                    "entity": {
                        "ProcessId": 7,
                        "Commandline": "cmd.exe /c whoami",
                        "CreationTime": "2024-05-01T09:59:00Z",
                        "User": {
                            "DomainName": "NT AUTHORITY",
                            "UserName": "SYSTEM",
                            "Sid": "S-1-5-18",
                        },
                    },
                }
            ],
        },
    ],
}


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None, None, None]:
    """Reset global configuration and drop CLI log handlers between tests."""
    reset_config()
    yield
    reset_config()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if handler.get_name() == "storycloak":
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def sample_story() -> dict[str, Any]:
    """A fresh copy of the sample attack story."""
    return copy.deepcopy(SAMPLE_STORY)


@pytest.fixture
def sample_document(sample_story: dict[str, Any]) -> StoryDocument:
    return StoryDocument.from_dict(sample_story)


@pytest.fixture
def story_file(tmp_path: Path, sample_story: dict[str, Any]) -> Path:
    """The sample story written as a well-formed .json file."""
    path = tmp_path / "story.json"
    path.write_text(json.dumps(sample_story, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def malformed_story_file(tmp_path: Path, sample_story: dict[str, Any]) -> Path:
    """The sample story as JSONC with comments, trailing commas and junk around it."""
    body = json.dumps(sample_story, indent=2)
    body = body.replace('"items": [', '"items": [ // exported items', 1)
    body = body[: body.rindex("]")] + ",\n  ]\n}"
    path = tmp_path / "story.JSONC"
    path.write_text(f"/* copied from devtools */\n{body}", encoding="utf-8")
    return path


@pytest.fixture
def config(tmp_path: Path) -> StoryCloakConfig:
    """Default configuration exporting into a temporary directory."""
    config = StoryCloakConfig()
    config.export.output_dir = str(tmp_path / "exports")
    return config


@pytest.fixture
def engine(config: StoryCloakConfig) -> StoryEngine:
    return StoryEngine(config)
