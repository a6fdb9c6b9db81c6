"""Unit tests for storycloak.core configuration and exceptions."""

import pytest
import yaml

from storycloak.core.config import (
    DEFAULT_MAX_SIZE_BYTES,
    StoryCloakConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)
from storycloak.core.exceptions import (
    ConfigurationError,
    ExportError,
    InputValidationError,
    ParseRecoveryExhausted,
    StoryCloakError,
    StructureValidationError,
    create_export_error,
    create_input_error,
)


class TestStoryCloakConfig:
    """Test configuration defaults and loading."""

    def test_defaults(self):
        config = StoryCloakConfig()
        assert config.input.max_size_bytes == DEFAULT_MAX_SIZE_BYTES == 50 * 1024 * 1024
        assert config.input.allowed_extensions == [".json", ".jsonc"]
        assert config.anonymization.placeholder == "REDACTED"
        assert "SYSTEM" in config.anonymization.system_accounts
        assert "NT AUTHORITY" in config.anonymization.system_domains
        assert config.shaping.suppressed_subtitles == ["PE metadata", "User", "Web data file"]
        assert config.logging.format == "text"

    def test_from_file_nested_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {"storycloak": {"anonymization": {"placeholder": "[HIDDEN]"}, "logging": {"format": "JSON"}}}
            ),
            encoding="utf-8",
        )
        config = StoryCloakConfig.from_file(path)
        assert config.anonymization.placeholder == "[HIDDEN]"
        assert config.logging.format == "json"

    def test_from_file_top_level(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("input:\n  max_size_bytes: 1024\n", encoding="utf-8")
        assert StoryCloakConfig.from_file(path).input.max_size_bytes == 1024

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            StoryCloakConfig.from_file(tmp_path / "absent.yaml")
        assert exc_info.value.component == "config"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("input: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            StoryCloakConfig.from_file(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            StoryCloakConfig.from_file(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("anonymization:\n  placeholder: ''\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid configuration values"):
            StoryCloakConfig.from_file(path)

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORYCLOAK_PLACEHOLDER", "<gone>")
        monkeypatch.setenv("STORYCLOAK_MAX_SIZE_BYTES", "2048")
        monkeypatch.setenv("STORYCLOAK_LOG_FILE", str(tmp_path / "log.txt"))
        monkeypatch.setenv("STORYCLOAK_OUTPUT_DIR", str(tmp_path))
        config = StoryCloakConfig.from_env()
        assert config.anonymization.placeholder == "<gone>"
        assert config.input.max_size_bytes == 2048
        assert config.logging.output == "file"
        assert config.export.output_dir == str(tmp_path)

    def test_invalid_size_environment(self, monkeypatch):
        monkeypatch.setenv("STORYCLOAK_MAX_SIZE_BYTES", "lots")
        with pytest.raises(ConfigurationError) as exc_info:
            StoryCloakConfig.from_env()
        assert exc_info.value.context["config_section"] == "input"

    def test_to_dict(self):
        data = StoryCloakConfig().to_dict()
        assert set(data) == {"logging", "input", "anonymization", "shaping", "export"}


class TestGlobalConfig:
    """Test the process-wide configuration."""

    def test_set_and_reset(self):
        config = StoryCloakConfig()
        set_config(config)
        assert get_config() is config
        reset_config()
        assert get_config() is not config

    def test_load_config_file_then_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("anonymization:\n  placeholder: FILE\n", encoding="utf-8")
        monkeypatch.setenv("STORYCLOAK_PLACEHOLDER", "ENV")
        config = load_config(path)
        assert config.anonymization.placeholder == "ENV"
        assert get_config() is config


class TestExceptions:
    """Test the exception hierarchy."""

    def test_defaults(self):
        error = StoryCloakError("boom")
        assert error.error_code == "STORYCLOAK_ERROR"
        assert error.component == "core"
        assert str(error) == "boom"

    @pytest.mark.parametrize(
        "cls,component",
        [
            (InputValidationError, "loader"),
            (ParseRecoveryExhausted, "parser"),
            (StructureValidationError, "validation"),
            (ExportError, "export"),
            (ConfigurationError, "config"),
        ],
    )
    def test_component_inferred(self, cls, component):
        error = cls("x")
        assert error.component == component
        assert isinstance(error, StoryCloakError)

    def test_error_code_from_class_name(self):
        assert InputValidationError("x").error_code == "INPUTVALIDATION_ERROR"

    def test_to_dict(self):
        error = StructureValidationError("bad shape", field_name="items")
        error.add_recovery_suggestion("retry")
        error.add_recovery_suggestion("retry")
        data = error.to_dict()
        assert data["message"] == "bad shape"
        assert data["context"] == {"field_name": "items"}
        assert data["recovery_suggestions"] == ["retry"]
        assert data["component"] == "validation"

    def test_parse_recovery_exhausted_context(self):
        error = ParseRecoveryExhausted("fail", stage="repair", original_error=ValueError("v"))
        assert error.context == {
            "stage": "repair",
            "original_error": "v",
            "original_error_type": "ValueError",
        }

    def test_create_input_error(self):
        error = create_input_error("too big", file_path="a.json", size_bytes=10)
        assert error.context == {"file_path": "a.json", "size_bytes": 10}
        assert len(error.recovery_suggestions) == 2

    def test_create_export_error(self):
        error = create_export_error(
            "failed", artifact="json", original_error=OSError("disk full"), output_path="/x"
        )
        assert error.context["artifact"] == "json"
        assert error.context["output_path"] == "/x"
        assert error.context["original_error_type"] == "OSError"
