import re
from collections.abc import Mapping
from dataclasses import replace

from app.templates.models import Placeholder, Template


def apply_updates(template: Template, updates: Mapping[str, object]) -> Template:
    """Merge key -> value assignments into the template.

    Only non-empty string values are applied, stored trimmed. Unknown keys are
    ignored and existing values are never erased.
    """
    placeholders: list[Placeholder] = []
    for placeholder in template.placeholders:
        update = updates.get(placeholder.key)
        if not isinstance(update, str) or not update.strip():
            placeholders.append(placeholder)
            continue
        placeholders.append(replace(placeholder, value=update.strip()))
    return replace(template, placeholders=placeholders)


def is_complete(template: Template) -> bool:
    """True when every required placeholder has a non-empty value."""
    return all(p.has_value for p in template.placeholders if p.required)


def get_missing_placeholders(template: Template) -> list[Placeholder]:
    return [p for p in template.placeholders if p.required and not p.has_value]


def get_outstanding_placeholders(template: Template) -> list[Placeholder]:
    return [p for p in template.placeholders if not p.has_value]


def completion_ratio(template: Template | None) -> int:
    """Percentage (0-100) of required placeholders that are filled."""
    if template is None:
        return 0
    required = [p for p in template.placeholders if p.required]
    if not required:
        return 0
    filled = sum(1 for p in required if p.has_value)
    return max(0, min(100, int(filled * 100 / len(required) + 0.5)))


def placeholder_map(template: Template) -> dict[str, Placeholder]:
    return {placeholder.key: placeholder for placeholder in template.placeholders}


def unknown_keys(template: Template, keys: list[str]) -> list[str]:
    known = placeholder_map(template)
    return [key for key in keys if key not in known]


def build_placeholder_summary(template: Template) -> str:
    """One line per placeholder: ``key (raw): status``."""
    lines = []
    for placeholder in template.placeholders:
        if placeholder.has_value:
            status = f"filled: {placeholder.value}"
        elif placeholder.required:
            status = "missing"
        else:
            status = "optional"
        lines.append(f"{placeholder.key} ({placeholder.raw}): {status}")
    return "\n".join(lines)


def placeholder_label(placeholder: Placeholder | None) -> str:
    """Human-readable name, e.g. ``company_name`` -> ``Company Name``."""
    if placeholder is None:
        return "this field"
    source = (
        placeholder.description.strip()
        or placeholder.key.strip()
        or placeholder.raw.strip()
    )
    return format_label(source)


def format_label(value: str | None) -> str:
    if not value:
        return "this field"
    cleaned = re.sub(r"[\[\]{}<>]", "", value)
    cleaned = re.sub(r"[_-]+", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if not cleaned:
        return "this field"
    return " ".join(part[:1].upper() + part[1:].lower() for part in cleaned.split(" "))
