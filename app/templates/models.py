from dataclasses import dataclass, field
from typing import Literal

PlaceholderType = Literal["STRING", "NUMBER", "DATE", "PERCENT", "MONEY", "UNKNOWN"]

PLACEHOLDER_TYPES: frozenset[str] = frozenset(
    {"STRING", "NUMBER", "DATE", "PERCENT", "MONEY", "UNKNOWN"}
)

MAX_DESCRIPTION_LENGTH = 30


@dataclass(frozen=True)
class PlaceholderContext:
    """Where a placeholder was found and how its token originally read."""

    index: int | None = None
    chunk_index: int | None = None
    paragraph_index: int | None = None
    surrounding_text: str | None = None
    original_raw: str | None = None


@dataclass(frozen=True)
class TextNode:
    """Literal document text."""

    content: str
    type: str = "text"


@dataclass(frozen=True)
class PlaceholderNode:
    """Inline reference to a placeholder by key."""

    key: str
    raw: str
    instance_id: str | None = None
    context: PlaceholderContext | None = None
    type: str = "placeholder"


ContentNode = TextNode | PlaceholderNode


@dataclass(frozen=True)
class Placeholder:
    """A named field awaiting a concrete value."""

    key: str
    raw: str
    type: str = "UNKNOWN"
    description: str = ""
    required: bool = True
    value: str | None = None
    instance_id: str | None = None
    context: PlaceholderContext | None = None

    @property
    def original_raw(self) -> str:
        """Token text as first seen in the source document."""
        if self.context is not None and self.context.original_raw:
            return self.context.original_raw
        return self.raw

    @property
    def chunk_index(self) -> int | None:
        return self.context.chunk_index if self.context is not None else None

    @property
    def has_value(self) -> bool:
        return bool(self.value and self.value.strip())


@dataclass(frozen=True)
class Template:
    """Ordered content nodes plus placeholders in discovery order."""

    content_nodes: list[ContentNode] = field(default_factory=list)
    placeholders: list[Placeholder] = field(default_factory=list)

    def concat(self, other: "Template") -> "Template":
        """Append another fragment after this one."""
        return Template(
            content_nodes=[*self.content_nodes, *other.content_nodes],
            placeholders=[*self.placeholders, *other.placeholders],
        )

    @property
    def keys(self) -> list[str]:
        return [placeholder.key for placeholder in self.placeholders]


def node_chunk_index(node: PlaceholderNode) -> int | None:
    return node.context.chunk_index if node.context is not None else None
