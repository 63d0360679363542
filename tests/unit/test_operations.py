from app.templates.models import Placeholder, Template
from app.templates.operations import (
    apply_updates,
    build_placeholder_summary,
    completion_ratio,
    format_label,
    get_missing_placeholders,
    get_outstanding_placeholders,
    is_complete,
    placeholder_label,
    placeholder_map,
    unknown_keys,
)


def _template(*placeholders: Placeholder) -> Template:
    return Template(placeholders=list(placeholders))


class TestApplyUpdates:
    def test_sets_trimmed_value(self) -> None:
        template = _template(Placeholder(key="name", raw="[NAME]"))
        result = apply_updates(template, {"name": "  Acme Corp  "})
        assert result.placeholders[0].value == "Acme Corp"

    def test_ignores_empty_and_non_string_values(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="kept"),
            Placeholder(key="b", raw="[B]"),
        )
        result = apply_updates(template, {"a": "   ", "b": 42})
        assert result.placeholders[0].value == "kept"
        assert result.placeholders[1].value is None

    def test_ignores_unknown_keys(self) -> None:
        template = _template(Placeholder(key="a", raw="[A]"))
        assert apply_updates(template, {"zzz": "value"}) == template

    def test_leaves_absent_keys_untouched(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="old"),
            Placeholder(key="b", raw="[B]"),
        )
        result = apply_updates(template, {"b": "new"})
        assert result.placeholders[0].value == "old"
        assert result.placeholders[1].value == "new"

    def test_is_idempotent(self) -> None:
        template = _template(Placeholder(key="a", raw="[A]"))
        once = apply_updates(template, {"a": "x"})
        assert apply_updates(once, {"a": "x"}) == once

    def test_does_not_mutate_input(self) -> None:
        template = _template(Placeholder(key="a", raw="[A]"))
        apply_updates(template, {"a": "x"})
        assert template.placeholders[0].value is None


class TestCompletion:
    def test_complete_when_required_values_present(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="1"),
            Placeholder(key="b", raw="[B]", required=False),
        )
        assert is_complete(template)

    def test_incomplete_when_required_value_blank(self) -> None:
        template = _template(Placeholder(key="a", raw="[A]", value="   "))
        assert not is_complete(template)
        assert [p.key for p in get_missing_placeholders(template)] == ["a"]

    def test_empty_template_is_complete(self) -> None:
        assert is_complete(Template())

    def test_outstanding_includes_optional(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="1"),
            Placeholder(key="b", raw="[B]", required=False),
        )
        assert [p.key for p in get_outstanding_placeholders(template)] == ["b"]

    def test_completion_ratio(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="1"),
            Placeholder(key="b", raw="[B]"),
            Placeholder(key="c", raw="[C]"),
            Placeholder(key="d", raw="[D]", required=False),
        )
        assert completion_ratio(template) == 33

    def test_completion_ratio_without_required(self) -> None:
        assert completion_ratio(_template(Placeholder(key="a", raw="[A]", required=False))) == 0
        assert completion_ratio(None) == 0


class TestLookupHelpers:
    def test_placeholder_map_and_unknown_keys(self) -> None:
        template = _template(Placeholder(key="a", raw="[A]"), Placeholder(key="b", raw="[B]"))
        assert set(placeholder_map(template)) == {"a", "b"}
        assert unknown_keys(template, ["a", "x", "b", "y"]) == ["x", "y"]

    def test_summary_lists_status(self) -> None:
        template = _template(
            Placeholder(key="a", raw="[A]", value="done"),
            Placeholder(key="b", raw="[B]"),
            Placeholder(key="c", raw="[C]", required=False),
        )
        assert build_placeholder_summary(template).splitlines() == [
            "a ([A]): filled: done",
            "b ([B]): missing",
            "c ([C]): optional",
        ]


class TestLabels:
    def test_prefers_description(self) -> None:
        placeholder = Placeholder(key="x", raw="[X]", description="investor name")
        assert placeholder_label(placeholder) == "Investor Name"

    def test_falls_back_to_key(self) -> None:
        assert placeholder_label(Placeholder(key="company_name", raw="[?]")) == "Company Name"

    def test_none_and_blank(self) -> None:
        assert placeholder_label(None) == "this field"
        assert format_label("[__]") == "this field"
