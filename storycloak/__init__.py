"""StoryCloak: recovery, redaction and shaping of XDR attack story exports.

StoryCloak parses copy-pasted (often malformed) JSON/JSONC exports of attack
story process trees, redacts account, domain and device identifiers
deterministically, and reshapes the tree for display with noise suppression
and zoom.
"""

__version__ = "0.1.0"
__author__ = "StoryCloak Team"

# Core API exports
from .anonymization import AnonymizationEngine, AnonymizationResult, AnonymizationSet
from .core import (
    ConfigurationError,
    ExportError,
    InputValidationError,
    ParseRecoveryExhausted,
    StoryCloakConfig,
    StoryCloakError,
    StructureValidationError,
    load_config,
)
from .diagnostics import StoryStatistics, compute_statistics
from .document import StoryDocument, StoryLoader, StoryNode, load_story

# Simplified API
from .engine import StoryEngine
from .engine_builder import StoryEngineBuilder
from .parsing import ParseOutcome, ParseStage, RecoveryParser
from .session import SessionSnapshot, StorySession
from .shaping import Projection, ProjectedNode, TreeShaper

__all__ = [
    "__version__",
    "__author__",
    # Parsing
    "ParseOutcome",
    "ParseStage",
    "RecoveryParser",
    # Document
    "StoryDocument",
    "StoryLoader",
    "StoryNode",
    "load_story",
    # Statistics
    "StoryStatistics",
    "compute_statistics",
    # Redaction
    "AnonymizationEngine",
    "AnonymizationResult",
    "AnonymizationSet",
    # Shaping
    "Projection",
    "ProjectedNode",
    "TreeShaper",
    # Facade
    "StoryEngine",
    "StoryEngineBuilder",
    "StorySession",
    "SessionSnapshot",
    # Configuration and errors
    "StoryCloakConfig",
    "load_config",
    "StoryCloakError",
    "InputValidationError",
    "ParseRecoveryExhausted",
    "StructureValidationError",
    "ExportError",
    "ConfigurationError",
]
