"""Validates a parsed extraction response and builds a Template fragment."""

import re
from typing import Any

from app.extraction.exceptions import ExtractionValidationError
from app.templates.models import (
    MAX_DESCRIPTION_LENGTH,
    PLACEHOLDER_TYPES,
    ContentNode,
    Placeholder,
    PlaceholderContext,
    PlaceholderNode,
    Template,
    TextNode,
)

_MAX_PLACEHOLDERS = 200
_ANONYMOUS_RAW = re.compile(r"^\s*[\[\(\{«“]?[_\s.\-]{2,}[\]\)\}»”]?\s*$")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def validate_and_build(data: dict[str, Any], chunk_index: int) -> Template:
    """Validate raw parsed JSON and build the chunk's template fragment.

    Keys are normalized to snake_case and every placeholder is stamped with
    the chunk index and the raw token as first seen.

    Raises:
        ExtractionValidationError: on any validation failure.
    """
    for field in ("content_nodes", "placeholders"):
        if field not in data:
            raise ExtractionValidationError(f"Missing required top-level field: {field}")
    raw_nodes = data["content_nodes"]
    raw_placeholders = data["placeholders"]
    if not isinstance(raw_nodes, list):
        raise ExtractionValidationError("'content_nodes' must be a list")
    if not isinstance(raw_placeholders, list):
        raise ExtractionValidationError("'placeholders' must be a list")
    if len(raw_placeholders) > _MAX_PLACEHOLDERS:
        raise ExtractionValidationError(
            f"Too many placeholders: {len(raw_placeholders)} (max {_MAX_PLACEHOLDERS})"
        )

    bindings = KeyBindings()
    placeholders = [
        _build_placeholder(item, index, chunk_index, bindings)
        for index, item in enumerate(raw_placeholders)
    ]
    nodes = [_build_node(item, index, chunk_index, bindings) for index, item in enumerate(raw_nodes)]
    return Template(
        content_nodes=[node for node in nodes if node is not None],
        placeholders=placeholders,
    )


class KeyBindings:
    """Resolved placeholder keys, handed out to content nodes one occurrence at a time.

    A node is matched by ``instance_id`` when one is known, otherwise it takes the
    next unbound key for its source key. Surplus nodes share the last key.
    """

    def __init__(self) -> None:
        self._by_instance: dict[str, str] = {}
        self._pending: dict[str, list[str]] = {}

    def add(self, source_key: str, key: str, instance_id: str | None) -> None:
        self._pending.setdefault(source_key, []).append(key)
        if instance_id:
            self._by_instance.setdefault(instance_id, key)

    def bind(self, source_key: str, instance_id: str | None) -> str | None:
        queue = self._pending.get(source_key, [])
        if instance_id and instance_id in self._by_instance:
            key = self._by_instance[instance_id]
            if key in queue and len(queue) > 1:
                queue.remove(key)
            return key
        if not queue:
            return None
        return queue.pop(0) if len(queue) > 1 else queue[0]


def normalize_key(value: str | None) -> str:
    """Slug a key candidate: ``Company Name`` -> ``company_name``."""
    if not value:
        return ""
    return _NON_SLUG.sub("_", value.lower()).strip("_")


def sanitize(value: str) -> str:
    return value.replace("\x00", "")


def _build_placeholder(
    raw: Any,
    index: int,
    chunk_index: int,
    bindings: KeyBindings,
) -> Placeholder:
    if not isinstance(raw, dict):
        raise ExtractionValidationError(f"Placeholder at index {index} must be an object")
    source_key = raw.get("key")
    if not source_key or not isinstance(source_key, str):
        raise ExtractionValidationError(
            f"Placeholder at index {index}: 'key' must be a non-empty string"
        )
    token = raw.get("raw")
    if token is not None and not isinstance(token, str):
        raise ExtractionValidationError(
            f"Placeholder at index {index}: 'raw' must be a string"
        )
    token = sanitize(token or source_key)

    key = _resolve_key(source_key, token, index, chunk_index)
    instance_id = _optional_str(raw.get("instance_id"))
    bindings.add(source_key, key, instance_id)

    required = raw.get("required", True)
    if not isinstance(required, bool):
        raise ExtractionValidationError(
            f"Placeholder at index {index}: 'required' must be a boolean"
        )
    value = raw.get("value")
    value = sanitize(value).strip() if isinstance(value, str) and value.strip() else None

    return Placeholder(
        key=key,
        raw=token,
        type=_build_type(raw.get("type")),
        description=_build_description(raw.get("description")),
        required=required,
        value=value,
        instance_id=instance_id,
        context=PlaceholderContext(
            index=index,
            chunk_index=chunk_index,
            surrounding_text=_optional_str(raw.get("surrounding_text")),
            original_raw=token,
        ),
    )


def _build_node(
    raw: Any,
    index: int,
    chunk_index: int,
    bindings: KeyBindings,
) -> ContentNode | None:
    if not isinstance(raw, dict):
        raise ExtractionValidationError(f"Content node at index {index} must be an object")
    node_type = raw.get("type")
    if node_type == "text":
        content = raw.get("content") or raw.get("text") or ""
        return TextNode(content=sanitize(content)) if content else None
    if node_type != "placeholder":
        raise ExtractionValidationError(
            f"Content node at index {index}: 'type' must be 'text' or 'placeholder', "
            f"got {node_type!r}"
        )
    source_key = raw.get("key")
    if not source_key or not isinstance(source_key, str):
        raise ExtractionValidationError(
            f"Content node at index {index}: placeholder 'key' must be a non-empty string"
        )
    token = sanitize(raw.get("raw") or source_key)
    instance_id = _optional_str(raw.get("instance_id"))
    key = bindings.bind(source_key, instance_id) or normalize_key(source_key) or normalize_key(token)
    return PlaceholderNode(
        key=key or source_key,
        raw=token,
        instance_id=instance_id,
        context=PlaceholderContext(chunk_index=chunk_index, original_raw=token),
    )


def _resolve_key(source_key: str, token: str, index: int, chunk_index: int) -> str:
    if _ANONYMOUS_RAW.match(token):
        return f"placeholder_{chunk_index + 1}_{index + 1}"
    return normalize_key(source_key) or normalize_key(token) or f"placeholder_{index + 1}"


def _build_type(raw: Any) -> str:
    if isinstance(raw, str) and raw.upper() in PLACEHOLDER_TYPES:
        return raw.upper()
    return "UNKNOWN"


def _build_description(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return sanitize(raw).strip()[:MAX_DESCRIPTION_LENGTH]


def _optional_str(raw: Any) -> str | None:
    return sanitize(raw) if isinstance(raw, str) and raw else None
