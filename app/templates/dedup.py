"""Resolve placeholder key collisions left by independent chunk extractions.

Runs once over the fully merged template. Collisions are tracked per exact key
string: the second ``company_name`` becomes ``company_name_2`` and a repeated
``company_name_2`` becomes ``company_name_2_2``.
"""

import re
from dataclasses import dataclass, replace

from app.templates.models import (
    ContentNode,
    Placeholder,
    PlaceholderNode,
    Template,
    TextNode,
    node_chunk_index,
)


@dataclass(frozen=True)
class _Occurrence:
    """One logical placeholder occurrence after renaming."""

    old_key: str
    new_key: str
    new_raw: str
    renamed: bool


def deduplicate_placeholder_keys(template: Template) -> Template:
    """Return a template whose placeholder keys are unique.

    Content nodes are rebound to the occurrence that produced them: by
    instance_id when both sides carry one, otherwise by ordinal position of the
    key within the same chunk.
    """
    tally: dict[str, int] = {}
    placeholders: list[Placeholder] = []
    occurrences: list[_Occurrence] = []

    for placeholder in template.placeholders:
        seen = tally.get(placeholder.key, 0) + 1
        tally[placeholder.key] = seen
        if seen == 1:
            placeholders.append(placeholder)
            occurrences.append(
                _Occurrence(placeholder.key, placeholder.key, placeholder.raw, False)
            )
            continue
        new_key = f"{placeholder.key}_{seen}"
        new_raw = rename_key_in_raw(placeholder.raw, placeholder.key, new_key)
        placeholders.append(replace(placeholder, key=new_key, raw=new_raw))
        occurrences.append(_Occurrence(placeholder.key, new_key, new_raw, True))

    if not any(occurrence.renamed for occurrence in occurrences):
        return template

    nodes = _rebind_nodes(template, occurrences)
    return Template(content_nodes=nodes, placeholders=placeholders)


def rename_key_in_raw(raw: str, old_key: str, new_key: str) -> str:
    """Rewrite an embedded ``old_key`` inside ``raw`` to ``new_key``.

    Casing and word separator follow the raw token: ``[COMPANY_NAME]`` becomes
    ``[COMPANY_NAME_2]`` and ``[Company Name]`` becomes ``[Company Name 2]``.
    Returns ``raw`` unchanged when the key is not embedded in it.
    """
    if not old_key or not new_key.startswith(old_key):
        return raw
    parts = [re.escape(part) for part in old_key.split("_") if part]
    if not parts:
        return raw
    pattern = re.compile(
        r"(?<![A-Za-z0-9])" + r"[\s_\-]+".join(parts) + r"(?![A-Za-z0-9])",
        re.IGNORECASE,
    )
    match = pattern.search(raw)
    if match is None:
        return raw

    matched = match.group(0)
    separator = _separator_of(matched)
    suffix_parts = [part for part in new_key[len(old_key):].split("_") if part]
    suffix = "".join(separator + _match_case(part, matched) for part in suffix_parts)
    return raw[: match.end()] + suffix + raw[match.end():]


def _separator_of(matched: str) -> str:
    for char in matched:
        if char in "_- ":
            return char
        if char.isspace():
            return " "
    return "_"


def _match_case(part: str, sample: str) -> str:
    letters = [char for char in sample if char.isalpha()]
    if letters and all(char.isupper() for char in letters):
        return part.upper()
    return part


def _rebind_nodes(template: Template, occurrences: list[_Occurrence]) -> list[ContentNode]:
    by_instance: dict[tuple[str, int | None], _Occurrence] = {}
    by_group: dict[tuple[str, int | None], list[_Occurrence]] = {}
    for placeholder, occurrence in zip(template.placeholders, occurrences):
        if placeholder.instance_id:
            by_instance.setdefault((placeholder.instance_id, placeholder.chunk_index), occurrence)
        group = (placeholder.key, placeholder.chunk_index)
        by_group.setdefault(group, []).append(occurrence)

    seen_in_group: dict[tuple[str, int | None], int] = {}
    nodes: list[ContentNode] = []
    for node in template.content_nodes:
        if isinstance(node, TextNode):
            nodes.append(node)
            continue
        occurrence = _occurrence_for_node(node, by_instance, by_group, seen_in_group)
        if occurrence is None or not occurrence.renamed:
            nodes.append(node)
            continue
        nodes.append(replace(node, key=occurrence.new_key, raw=occurrence.new_raw))
    return nodes


def _occurrence_for_node(
    node: PlaceholderNode,
    by_instance: dict[tuple[str, int | None], _Occurrence],
    by_group: dict[tuple[str, int | None], list[_Occurrence]],
    seen_in_group: dict[tuple[str, int | None], int],
) -> _Occurrence | None:
    if node.instance_id:
        occurrence = by_instance.get((node.instance_id, node_chunk_index(node)))
        if occurrence is not None and occurrence.old_key == node.key:
            return occurrence

    group = (node.key, node_chunk_index(node))
    candidates = by_group.get(group)
    if not candidates:
        group = (node.key, None)
        candidates = by_group.get(group)
    if not candidates:
        return None
    position = seen_in_group.get(group, 0)
    seen_in_group[group] = position + 1
    return candidates[min(position, len(candidates) - 1)]
