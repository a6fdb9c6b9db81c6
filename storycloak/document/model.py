"""Typed model of an XDR attack story export.

A :class:`StoryDocument` is built once from the parsed JSON value and is never
mutated afterwards. It keeps the raw mapping it was built from so exports and
redaction work on the full payload, including fields the model does not type.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterator, Mapping, Optional, Union


def _text(value: Any) -> str:
    """Coerce an optional scalar to a string ('' for missing values)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


@dataclass(frozen=True)
class NodeTitle:
    """Three-part title of a node as shown by the portal."""

    prefix: str = ""
    main: str = ""
    intro: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "NodeTitle":
        data = _mapping(data)
        return cls(
            prefix=_text(data.get("prefix")),
            main=_text(data.get("main")),
            intro=_text(data.get("intro")),
        )


@dataclass(frozen=True)
class Detail:
    """A ``{key, value, valueType}`` display pair."""

    key: str
    value: Any
    value_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Detail":
        data = _mapping(data)
        return cls(
            key=_text(data.get("key")),
            value=data.get("value"),
            value_type=_optional_text(data.get("valueType")),
        )

    @property
    def has_value(self) -> bool:
        return bool(self.key) and self.value is not None and self.value != ""


@dataclass(frozen=True)
class AdditionalDetailSection:
    """A titled group of details."""

    title: str
    details: tuple[Detail, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "AdditionalDetailSection":
        data = _mapping(data)
        title = data.get("title")
        title_text = _text(title.get("main")) if isinstance(title, dict) else _text(title)
        return cls(
            title=title_text,
            details=tuple(Detail.from_dict(d) for d in _sequence(data.get("details"))),
        )


@dataclass(frozen=True)
class AssociatedAlert:
    """An alert attached to a node."""

    display_name: str
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> "AssociatedAlert":
        data = _mapping(data)
        return cls(display_name=_text(data.get("alertDisplayName")), raw=data)


@dataclass(frozen=True)
class Entity:
    """Base of the entity tagged union."""

    kind: ClassVar[str] = "unknown"

    def has_meaningful_data(self) -> bool:
        """Whether the entity carries anything worth showing."""
        return False


@dataclass(frozen=True)
class ImageFileEntity(Entity):
    """An executable or file image."""

    kind: ClassVar[str] = "image_file"

    full_path: Optional[str] = None
    file_name: Optional[str] = None
    size: Optional[Union[int, float]] = None
    sha256: Optional[str] = None
    sha1: Optional[str] = None
    md5: Optional[str] = None
    creation_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ImageFileEntity":
        data = _mapping(data)
        size = data.get("Size")
        return cls(
            full_path=_optional_text(data.get("FullPath")),
            file_name=_optional_text(data.get("FileName")),
            size=size if isinstance(size, (int, float)) and not isinstance(size, bool) else None,
            sha256=_optional_text(data.get("Sha256")),
            sha1=_optional_text(data.get("Sha1")),
            md5=_optional_text(data.get("Md5")),
            creation_time=_optional_text(data.get("CreationTime")),
        )

    def has_meaningful_data(self) -> bool:
        return any(
            (self.full_path, self.size, self.sha256, self.sha1, self.md5, self.creation_time)
        )


@dataclass(frozen=True)
class UserEntity(Entity):
    """A user account."""

    kind: ClassVar[str] = "user"

    domain_name: Optional[str] = None
    user_name: Optional[str] = None
    sid: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "UserEntity":
        data = _mapping(data)
        return cls(
            domain_name=_optional_text(data.get("DomainName")),
            user_name=_optional_text(data.get("UserName")),
            sid=_optional_text(data.get("Sid")),
        )

    @property
    def qualified_name(self) -> Optional[str]:
        """``DOMAIN\\user``, ``user``, or None without a user name."""
        if not self.user_name:
            return None
        if self.domain_name:
            return f"{self.domain_name}\\{self.user_name}"
        return self.user_name

    def has_meaningful_data(self) -> bool:
        return any((self.domain_name, self.user_name, self.sid))


@dataclass(frozen=True)
class ProcessEntity(Entity):
    """A process, optionally carrying its image file and token user."""

    kind: ClassVar[str] = "process"

    process_id: Optional[Union[int, str]] = None
    command_line: Optional[str] = None
    creating_process_id: Optional[Union[int, str]] = None
    creating_process_name: Optional[str] = None
    creation_time: Optional[str] = None
    integrity_level: Optional[str] = None
    token_elevation: Optional[str] = None
    image_file: Optional[ImageFileEntity] = None
    user: Optional[UserEntity] = None

    FIELDS: ClassVar[tuple[str, ...]] = (
        "ProcessId",
        "Commandline",
        "CreatingProcessId",
        "CreatingProcessName",
        "CreationTime",
        "IntegrityLevel",
        "TokenElevation",
    )

    @classmethod
    def from_dict(cls, data: Any) -> "ProcessEntity":
        data = _mapping(data)
        image = data.get("ImageFile")
        user = data.get("User")
        return cls(
            process_id=_id_value(data.get("ProcessId")),
            command_line=_optional_text(data.get("Commandline")),
            creating_process_id=_id_value(data.get("CreatingProcessId")),
            creating_process_name=_optional_text(data.get("CreatingProcessName")),
            creation_time=_optional_text(data.get("CreationTime")),
            integrity_level=_optional_text(data.get("IntegrityLevel")),
            token_elevation=_optional_text(data.get("TokenElevation")),
            image_file=ImageFileEntity.from_dict(image) if isinstance(image, dict) else None,
            user=UserEntity.from_dict(user) if isinstance(user, dict) else None,
        )

    def has_meaningful_data(self) -> bool:
        own = any(
            (
                self.process_id,
                self.command_line,
                self.creating_process_id,
                self.creating_process_name,
                self.creation_time,
                self.integrity_level,
                self.token_elevation,
            )
        )
        nested = any(
            part is not None and part.has_meaningful_data()
            for part in (self.image_file, self.user)
        )
        return own or nested


@dataclass(frozen=True)
class UnknownEntity(Entity):
    """An entity payload of a shape the model does not know."""

    payload: Mapping[str, Any] = field(default_factory=dict, compare=False)


def _id_value(value: Any) -> Optional[Union[int, str]]:
    if isinstance(value, bool) or value is None or value == "":
        return None
    if isinstance(value, (int, str)):
        return value
    return _optional_text(value)


def parse_entity(data: Any) -> Optional[Entity]:
    """Classify an entity payload into its tagged-union variant.

    Process fields win: a payload with any of them is a :class:`ProcessEntity`
    carrying its nested ``ImageFile``/``User``. Otherwise a payload with both
    an image and a user is also treated as a process (its image and token
    user), then single ``User`` and ``ImageFile`` payloads map to their own
    variants.
    """
    if not isinstance(data, dict):
        return None
    has_image = isinstance(data.get("ImageFile"), dict)
    has_user = isinstance(data.get("User"), dict)
    if any(key in data for key in ProcessEntity.FIELDS) or (has_image and has_user):
        return ProcessEntity.from_dict(data)
    if has_user:
        return UserEntity.from_dict(data["User"])
    if has_image:
        return ImageFileEntity.from_dict(data["ImageFile"])
    return UnknownEntity(payload=data)


@dataclass(frozen=True)
class StoryNode:
    """One event of the story tree.

    ``children`` and ``nested_items`` are two distinct ordered collections;
    consumers that need a single ordered child list use :attr:`all_children`
    (children first, then nested items).
    """

    id: str
    path: str = ""
    title: NodeTitle = field(default_factory=NodeTitle)
    type: Optional[str] = None
    action_type: Optional[str] = None
    time: Optional[str] = None
    entity: Optional[Entity] = None
    details: tuple[Detail, ...] = ()
    additional_details: tuple[AdditionalDetailSection, ...] = ()
    children: tuple["StoryNode", ...] = ()
    nested_items: tuple["StoryNode", ...] = ()
    associated_alerts: tuple[AssociatedAlert, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        path: str,
        node_ids: Optional[Mapping[str, str]] = None,
    ) -> "StoryNode":
        """Build a node and its subtree.

        Args:
            data: Raw node mapping
            path: Positional path (``0.2.1``), used for the identifier when
                  ``id`` is absent
            node_ids: Identifiers to reuse by path, so a derived copy keeps
                      the identifiers of the document it was derived from
        """
        if node_ids is not None and path in node_ids:
            node_id = node_ids[path]
        else:
            node_id = _text(data.get("id")) or f"node-{path}"
        children_raw = _sequence(data.get("children"))
        nested_raw = _sequence(data.get("nestedItems"))
        offset = len(children_raw)
        return cls(
            id=node_id,
            path=path,
            title=NodeTitle.from_dict(data.get("title")),
            type=_optional_text(data.get("type")),
            action_type=_optional_text(data.get("actionType")),
            time=_optional_text(data.get("time")),
            entity=parse_entity(data.get("entity")),
            details=tuple(Detail.from_dict(d) for d in _sequence(data.get("details"))),
            additional_details=tuple(
                AdditionalDetailSection.from_dict(s)
                for s in _sequence(data.get("additionalDetails"))
            ),
            children=tuple(
                cls.from_dict(child, f"{path}.{index}", node_ids)
                for index, child in enumerate(children_raw)
                if isinstance(child, dict)
            ),
            nested_items=tuple(
                cls.from_dict(nested, f"{path}.{offset + index}", node_ids)
                for index, nested in enumerate(nested_raw)
                if isinstance(nested, dict)
            ),
            associated_alerts=tuple(
                AssociatedAlert.from_dict(a)
                for a in _sequence(data.get("associatedAlerts"))
                if isinstance(a, dict)
            ),
            raw=data,
        )

    @property
    def kind(self) -> str:
        """``type``, falling back to ``actionType``, then ``'other'``."""
        return self.type or self.action_type or "other"

    @property
    def subtitle(self) -> Optional[str]:
        return self.title.intro or None

    @property
    def display_title(self) -> str:
        """Title prefix and main joined, else an entity-derived name."""
        parts = [p for p in (self.title.prefix.strip() and self.title.prefix, self.title.main) if p]
        if parts:
            return " ".join(parts)
        image = self.image_file
        if image is not None and image.file_name:
            return image.file_name
        user = self.user
        if user is not None and user.user_name:
            return f"{user.domain_name or ''}\\{user.user_name}"
        return "Unknown"

    @property
    def all_children(self) -> tuple["StoryNode", ...]:
        return self.children + self.nested_items

    @property
    def has_children(self) -> bool:
        return bool(self.children or self.nested_items)

    @property
    def image_file(self) -> Optional[ImageFileEntity]:
        if isinstance(self.entity, ImageFileEntity):
            return self.entity
        if isinstance(self.entity, ProcessEntity):
            return self.entity.image_file
        return None

    @property
    def user(self) -> Optional[UserEntity]:
        if isinstance(self.entity, UserEntity):
            return self.entity
        if isinstance(self.entity, ProcessEntity):
            return self.entity.user
        return None

    @property
    def command_line(self) -> Optional[str]:
        """Entity command line, else ``WMI: <query>`` from the details."""
        if isinstance(self.entity, ProcessEntity) and self.entity.command_line:
            return self.entity.command_line
        for detail in self.details:
            if "wmi query" in detail.key.lower() and detail.value:
                return f"WMI: {_text(detail.value)}"
        return None

    @property
    def has_details(self) -> bool:
        entity_data = self.entity is not None and self.entity.has_meaningful_data()
        return bool(self.details or self.additional_details or entity_data)

    def has_alerts_in_tree(self) -> bool:
        """Whether this node or any descendant has associated alerts."""
        return bool(self.associated_alerts) or any(
            child.has_alerts_in_tree() for child in self.all_children
        )

    def iter_tree(self) -> Iterator["StoryNode"]:
        """Pre-order traversal of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.all_children))


@dataclass(frozen=True)
class MainUser:
    """The story's primary account."""

    name: Optional[str] = None
    domain_name: Optional[str] = None
    sid: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "MainUser":
        data = _mapping(data)
        return cls(
            name=_optional_text(data.get("name")),
            domain_name=_optional_text(data.get("domainName")),
            sid=_optional_text(data.get("sid")),
        )


@dataclass(frozen=True)
class StoryDocument:
    """Root of one loaded attack story.

    Attributes:
        items: Top-level nodes in their original order
        main_user: Primary account, if the export names one
        device_id: Device identifier
        device_name: Device name, possibly fully qualified
        error: Set only on the parser's fabricated fallback document
        raw: The parsed JSON mapping the document was built from
    """

    items: tuple[StoryNode, ...] = ()
    main_user: Optional[MainUser] = None
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    error: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        node_ids: Optional[Mapping[str, str]] = None,
    ) -> "StoryDocument":
        """Build the typed document from a parsed JSON object.

        ``node_ids`` maps positional paths to identifiers to reuse; pass
        :meth:`node_ids` of the source document when building a derived copy.
        """
        main_user = data.get("mainUser")
        return cls(
            items=tuple(
                StoryNode.from_dict(item, str(index), node_ids)
                for index, item in enumerate(_sequence(data.get("items")))
                if isinstance(item, dict)
            ),
            main_user=MainUser.from_dict(main_user) if isinstance(main_user, dict) else None,
            device_id=_optional_text(data.get("deviceId")),
            device_name=_optional_text(data.get("deviceName")),
            error=_optional_text(data.get("error")),
            raw=data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Deep copy of the raw mapping, safe for callers to modify."""
        return copy.deepcopy(dict(self.raw))

    def node_ids(self) -> dict[str, str]:
        """Map of positional path to node identifier."""
        return {node.path: node.id for node in self.iter_nodes()}

    def iter_nodes(self) -> Iterator[StoryNode]:
        """Pre-order traversal over every node of every top-level item."""
        for item in self.items:
            yield from item.iter_tree()

    def find_node(self, node_id: str) -> Optional[StoryNode]:
        """First node (pre-order) with identifier ``node_id``."""
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())
