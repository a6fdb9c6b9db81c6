"""Collection of identifiers to redact from an attack story."""

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from ..core.config import AnonymizationConfig
from ..document.model import StoryDocument

USERNAMES = "usernames"
DOMAINS = "domains"
DEVICE_IDS = "device_ids"
DEVICE_NAMES = "device_names"
SIDS = "sids"

# Substitution order: full device names go before domains so FQDNs are
# replaced whole.
CATEGORY_ORDER = (DEVICE_NAMES, USERNAMES, DOMAINS, DEVICE_IDS, SIDS)

_DOMAIN_SUFFIX = re.compile(r"^[a-zA-Z0-9-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class AnonymizationSet:
    """Distinct identifiers to redact, grouped by category."""

    usernames: frozenset[str] = field(default_factory=frozenset)
    domains: frozenset[str] = field(default_factory=frozenset)
    device_ids: frozenset[str] = field(default_factory=frozenset)
    device_names: frozenset[str] = field(default_factory=frozenset)
    sids: frozenset[str] = field(default_factory=frozenset)

    def category(self, name: str) -> frozenset[str]:
        return getattr(self, name)

    def ordered(self) -> list[tuple[str, frozenset[str]]]:
        """Categories in substitution order."""
        return [(name, self.category(name)) for name in CATEGORY_ORDER]

    def is_empty(self) -> bool:
        return not any(values for _, values in self.ordered())

    def __len__(self) -> int:
        return sum(len(values) for _, values in self.ordered())

    def to_dict(self) -> dict[str, list[str]]:
        return {name: sorted(values) for name, values in self.ordered()}


class IdentifierExtractor:
    """Walk a document once and collect every identifier worth redacting.

    Account names and domains on the configured allow-lists (built-in
    Windows principals such as ``SYSTEM`` or ``NT AUTHORITY``) are never
    collected, and neither are empty or whitespace-only values.
    """

    def __init__(self, config: Optional[AnonymizationConfig] = None) -> None:
        self.config = config or AnonymizationConfig()
        self._system_accounts = {a.upper() for a in self.config.system_accounts}
        self._system_domains = {d.upper() for d in self.config.system_domains}

    def is_system_account(self, name: str) -> bool:
        return name.upper() in self._system_accounts

    def is_system_domain(self, name: str) -> bool:
        return name.upper() in self._system_domains

    def extract(self, document: StoryDocument) -> AnonymizationSet:
        """Fold the document's candidates into an :class:`AnonymizationSet`."""
        collected: dict[str, set[str]] = {name: set() for name in CATEGORY_ORDER}
        for category, value in self.candidates(document):
            if value and value.strip():
                collected[category].add(value)
        return AnonymizationSet(
            **{name: frozenset(values) for name, values in collected.items()}
        )

    def candidates(self, document: StoryDocument) -> Iterator[tuple[str, str]]:
        """Yield ``(category, value)`` pairs in document order."""
        if document.main_user is not None:
            yield from self._account(
                document.main_user.name,
                document.main_user.domain_name,
                document.main_user.sid,
            )

        if document.device_id:
            yield DEVICE_IDS, document.device_id
        if document.device_name:
            yield from self._device_name(document.device_name)

        for node in document.iter_nodes():
            user = node.user
            if user is not None:
                yield from self._account(user.user_name, user.domain_name, user.sid)

    def _account(
        self, name: Optional[str], domain: Optional[str], sid: Optional[str]
    ) -> Iterable[tuple[str, str]]:
        if name and not self.is_system_account(name):
            yield USERNAMES, name
        if domain and not self.is_system_domain(domain):
            yield DOMAINS, domain
        if sid:
            yield SIDS, sid

    def _device_name(self, device_name: str) -> Iterable[tuple[str, str]]:
        yield DEVICE_NAMES, device_name
        labels = device_name.split(".")
        if len(labels) < 2:
            return
        yield DEVICE_NAMES, labels[0]
        if len(labels) >= 3:
            suffix = ".".join(labels[-2:])
            if _DOMAIN_SUFFIX.match(suffix) and not self.is_system_domain(suffix):
                yield DOMAINS, suffix


def extract_identifiers(
    document: StoryDocument, config: Optional[AnonymizationConfig] = None
) -> AnonymizationSet:
    """Extract the :class:`AnonymizationSet` of ``document``."""
    return IdentifierExtractor(config).extract(document)
