"""StoryCloak exception hierarchy.

Every error raised by the load, parse, redaction and export pipeline derives
from :class:`StoryCloakError`, which carries a machine-readable error code,
structured context and recovery suggestions so the CLI (or any other view
layer) can report failures uniformly.
"""

from typing import Any, Dict, List, Optional


class StoryCloakError(Exception):
    """Base exception for all StoryCloak errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional error context and metadata
        recovery_suggestions: List of suggested recovery actions
        component: Component where the error originated
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._default_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.component = component or self._infer_component()

    def _default_error_code(self) -> str:
        """Generate default error code based on exception class name."""
        return self.__class__.__name__.upper().replace("ERROR", "_ERROR")

    def _infer_component(self) -> str:
        """Infer component name from exception class."""
        name = self.__class__.__name__.lower()
        if "input" in name:
            return "loader"
        elif "parse" in name:
            return "parser"
        elif "structure" in name:
            return "validation"
        elif "export" in name:
            return "export"
        elif "configuration" in name:
            return "config"
        else:
            return "core"

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context to the error."""
        self.context[key] = value

    def add_recovery_suggestion(self, suggestion: str) -> None:
        """Add a recovery suggestion to help users resolve the error."""
        if suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary for logging/reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
        }


class InputValidationError(StoryCloakError):
    """Raised when an input file is rejected before any parse attempt.

    Covers unsupported extensions, oversized files and unreadable paths.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        size_bytes: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if file_path:
            self.add_context("file_path", file_path)
        if size_bytes is not None:
            self.add_context("size_bytes", size_bytes)


class ParseRecoveryExhausted(StoryCloakError):
    """Raised when the repair stage's own pattern fixes fail."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if stage:
            self.add_context("stage", stage)
        if original_error is not None:
            self.add_context("original_error", str(original_error))
            self.add_context("original_error_type", type(original_error).__name__)


class StructureValidationError(StoryCloakError):
    """Raised when parsing succeeded but the value is not an attack story."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)


class ExportError(StoryCloakError):
    """Raised when serialization, report generation or capture fails."""

    def __init__(
        self,
        message: str,
        artifact: Optional[str] = None,
        output_path: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if artifact:
            self.add_context("artifact", artifact)
        if output_path:
            self.add_context("output_path", output_path)


class ConfigurationError(StoryCloakError):
    """Raised when configuration is invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        config_section: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if config_file:
            self.add_context("config_file", config_file)
        if config_section:
            self.add_context("config_section", config_section)


def create_input_error(
    message: str,
    file_path: str,
    size_bytes: Optional[int] = None,
) -> InputValidationError:
    """Create an input validation error with standard recovery guidance."""
    error = InputValidationError(
        message=message,
        file_path=file_path,
        size_bytes=size_bytes,
    )
    error.add_recovery_suggestion("Select a .json or .jsonc attack story export")
    if size_bytes is not None:
        error.add_recovery_suggestion("Export a smaller time window of the story")
    return error


def create_export_error(
    message: str,
    artifact: str,
    original_error: Optional[Exception] = None,
    output_path: Optional[str] = None,
) -> ExportError:
    """Create an export error wrapping the underlying failure."""
    error = ExportError(message=message, artifact=artifact, output_path=output_path)
    if original_error is not None:
        error.add_context("original_error", str(original_error))
        error.add_context("original_error_type", type(original_error).__name__)
    error.add_recovery_suggestion("Check that the output directory is writable")
    return error
