"""Attack story document model and loader."""

from .loader import LoadResult, StoryLoader, load_story, validate_structure
from .model import (
    AdditionalDetailSection,
    AssociatedAlert,
    Detail,
    Entity,
    ImageFileEntity,
    MainUser,
    NodeTitle,
    ProcessEntity,
    StoryDocument,
    StoryNode,
    UnknownEntity,
    UserEntity,
    parse_entity,
)

__all__ = [
    "LoadResult",
    "StoryLoader",
    "load_story",
    "validate_structure",
    "AdditionalDetailSection",
    "AssociatedAlert",
    "Detail",
    "Entity",
    "ImageFileEntity",
    "MainUser",
    "NodeTitle",
    "ProcessEntity",
    "StoryDocument",
    "StoryNode",
    "UnknownEntity",
    "UserEntity",
    "parse_entity",
]
