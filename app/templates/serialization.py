"""Template <-> JSON-ready dict conversion for the ``template`` jsonb column."""

from dataclasses import asdict
from typing import Any

from app.templates.models import (
    ContentNode,
    Placeholder,
    PlaceholderContext,
    PlaceholderNode,
    Template,
    TextNode,
)


def template_to_dict(template: Template) -> dict[str, Any]:
    return {
        "content_nodes": [_node_to_dict(node) for node in template.content_nodes],
        "placeholders": [_drop_none(asdict(p)) for p in template.placeholders],
    }


def template_from_dict(data: dict[str, Any] | None) -> Template:
    """Build a Template from stored JSON, tolerating missing optional fields."""
    if not data:
        return Template()
    nodes = [_node_from_dict(raw) for raw in data.get("content_nodes") or []]
    placeholders = [_placeholder_from_dict(raw) for raw in data.get("placeholders") or []]
    return Template(
        content_nodes=[node for node in nodes if node is not None],
        placeholders=placeholders,
    )


def _node_to_dict(node: ContentNode) -> dict[str, Any]:
    if isinstance(node, TextNode):
        return {"type": "text", "content": node.content}
    if isinstance(node, PlaceholderNode):
        return _drop_none(asdict(node))
    raise TypeError(f"Unsupported content node: {node!r}")


def _node_from_dict(raw: dict[str, Any]) -> ContentNode | None:
    node_type = raw.get("type")
    if node_type == "text":
        return TextNode(content=raw.get("content") or raw.get("text") or "")
    if node_type == "placeholder":
        key = raw.get("key") or ""
        return PlaceholderNode(
            key=key,
            raw=raw.get("raw") or key,
            instance_id=raw.get("instance_id"),
            context=_context_from_dict(raw.get("context")),
        )
    return None


def _placeholder_from_dict(raw: dict[str, Any]) -> Placeholder:
    key = raw.get("key") or ""
    return Placeholder(
        key=key,
        raw=raw.get("raw") or key,
        type=raw.get("type") or "UNKNOWN",
        description=raw.get("description") or "",
        required=raw.get("required", True),
        value=raw.get("value"),
        instance_id=raw.get("instance_id"),
        context=_context_from_dict(raw.get("context")),
    )


def _context_from_dict(raw: dict[str, Any] | None) -> PlaceholderContext | None:
    if not raw:
        return None
    return PlaceholderContext(
        index=raw.get("index"),
        chunk_index=raw.get("chunk_index"),
        paragraph_index=raw.get("paragraph_index"),
        surrounding_text=raw.get("surrounding_text"),
        original_raw=raw.get("original_raw"),
    )


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for name, value in data.items():
        if isinstance(value, dict):
            value = _drop_none(value)
            if not value:
                continue
        if value is None and name != "value":
            continue
        cleaned[name] = value
    return cleaned
