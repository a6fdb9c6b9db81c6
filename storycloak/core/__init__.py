"""Core configuration and error types shared by every StoryCloak component."""

from .config import (
    AnonymizationConfig,
    ExportConfig,
    InputConfig,
    LoggingConfig,
    ShapingConfig,
    StoryCloakConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)
from .exceptions import (
    ConfigurationError,
    ExportError,
    InputValidationError,
    ParseRecoveryExhausted,
    StoryCloakError,
    StructureValidationError,
)

__all__ = [
    "AnonymizationConfig",
    "ExportConfig",
    "InputConfig",
    "LoggingConfig",
    "ShapingConfig",
    "StoryCloakConfig",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
    "ConfigurationError",
    "ExportError",
    "InputValidationError",
    "ParseRecoveryExhausted",
    "StoryCloakError",
    "StructureValidationError",
]
