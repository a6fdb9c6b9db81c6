"""Builder pattern for advanced StoryEngine configuration."""

from typing import Optional

from storycloak.core.config import StoryCloakConfig
from storycloak.engine import StoryEngine


class StoryEngineBuilder:
    """Fluent builder for StoryEngine.

    Examples:
        engine = StoryEngine.builder()
            .with_placeholder("[HIDDEN]")
            .with_max_size_bytes(10 * 1024 * 1024)
            .build()
    """

    def __init__(self) -> None:
        """Initialize builder with default values."""
        self._base: Optional[StoryCloakConfig] = None
        self._placeholder: Optional[str] = None
        self._max_size_bytes: Optional[int] = None
        self._suppressed_subtitles: Optional[list[str]] = None
        self._extra_system_accounts: list[str] = []

    def with_config(self, config: StoryCloakConfig) -> "StoryEngineBuilder":
        """Start from an existing configuration instead of the defaults."""
        self._base = config
        return self

    def with_placeholder(self, placeholder: str) -> "StoryEngineBuilder":
        """Set the redaction placeholder token.

        Raises:
            ValueError: If the placeholder is empty
        """
        if not placeholder:
            raise ValueError("Placeholder cannot be empty")
        self._placeholder = placeholder
        return self

    def with_max_size_bytes(self, max_size_bytes: int) -> "StoryEngineBuilder":
        """Set the largest accepted input file.

        Raises:
            ValueError: If the limit is not positive
        """
        if max_size_bytes <= 0:
            raise ValueError("Maximum size must be positive")
        self._max_size_bytes = max_size_bytes
        return self

    def with_suppressed_subtitles(self, subtitles: list[str]) -> "StoryEngineBuilder":
        """Replace the subtitle substrings that mark noise nodes."""
        self._suppressed_subtitles = list(subtitles)
        return self

    def with_system_accounts(self, accounts: list[str]) -> "StoryEngineBuilder":
        """Add account names that are never redacted."""
        self._extra_system_accounts.extend(accounts)
        return self

    def build(self) -> StoryEngine:
        """Build and return the configured StoryEngine instance."""
        config = (
            self._base.model_copy(deep=True) if self._base is not None else StoryCloakConfig()
        )
        if self._placeholder is not None:
            config.anonymization.placeholder = self._placeholder
        if self._max_size_bytes is not None:
            config.input.max_size_bytes = self._max_size_bytes
        if self._suppressed_subtitles is not None:
            config.shaping.suppressed_subtitles = self._suppressed_subtitles
        for account in self._extra_system_accounts:
            if account.upper() not in {a.upper() for a in config.anonymization.system_accounts}:
                config.anonymization.system_accounts.append(account)
        return StoryEngine(config=config)

    def reset(self) -> "StoryEngineBuilder":
        """Reset builder to default values."""
        self.__init__()  # type: ignore[misc]
        return self
