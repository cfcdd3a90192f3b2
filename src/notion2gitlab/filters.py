"""Column filters applied to CSV rows before validation."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence, TypeVar, get_args

from .models.wizard import FilterOperator, FilterRule

RowT = TypeVar("RowT", bound=Mapping[str, str])

FILTER_OPERATORS: dict[str, str] = {
    "equals": "equals",
    "not_equals": "does not equal",
    "contains": "contains",
    "not_contains": "does not contain",
    "is_empty": "is empty",
    "is_not_empty": "is not empty",
}


def active_rules(rules: Iterable[FilterRule]) -> list[FilterRule]:
    return [rule for rule in rules if rule.enabled and rule.column]


def apply_filters(rows: Sequence[RowT], rules: Iterable[FilterRule]) -> Sequence[RowT]:
    """Keep rows satisfying every active rule; with no active rule ``rows`` is returned as is."""

    active = active_rules(rules)
    if not active:
        return rows

    return [
        row
        for row in rows
        if all(evaluate_filter(row.get(rule.column, ""), rule.operator, rule.value) for rule in active)
    ]


def evaluate_filter(value: str, operator: FilterOperator, filter_value: str) -> bool:
    normalized_value = value.lower().strip()
    normalized_filter = filter_value.lower().strip()

    if operator == "equals":
        return normalized_value == normalized_filter
    if operator == "not_equals":
        return normalized_value != normalized_filter
    if operator == "contains":
        return normalized_filter in normalized_value
    if operator == "not_contains":
        return normalized_filter not in normalized_value
    if operator == "is_empty":
        return normalized_value == ""
    if operator == "is_not_empty":
        return normalized_value != ""
    return True


def create_filter_rule(column: str = "", operator: FilterOperator = "equals", value: str = "") -> FilterRule:
    return FilterRule(column=column, operator=operator, value=value, enabled=True)


def parse_filter_expression(expression: str) -> FilterRule:
    """Build a rule from ``Column:operator[:value]``.

    The value may itself contain colons; only the first two separators split.
    """

    parts = expression.split(":", 2)
    if len(parts) < 2 or not parts[0].strip():
        raise ValueError(f"Invalid filter {expression!r}; expected 'Column:operator[:value]'.")

    column, operator = parts[0].strip(), parts[1].strip().lower()
    if operator not in get_args(FilterOperator):
        valid = ", ".join(FILTER_OPERATORS)
        raise ValueError(f"Unknown filter operator {operator!r}; choose one of: {valid}.")

    value = parts[2] if len(parts) == 3 else ""
    return create_filter_rule(column, operator, value)  # type: ignore[arg-type]
