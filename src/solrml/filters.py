"""Filter query (``fq``) construction from condition groups."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from solrml.escaping import QueryHelper, SolrQueryHelper
from solrml.models import Condition, ConditionGroup, Conjunction, Operator


def _format_value(value: Any, helper: QueryHelper) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return helper.escape_phrase(str(value))


def _range_value(value: Any, helper: QueryHelper) -> str:
    return "*" if value is None else _format_value(value, helper)


def _pair(value: Any) -> tuple[Any, Any]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"BETWEEN needs exactly two values, got {value!r}")
    return value[0], value[1]


def create_filter_query(
    field: str,
    value: Any,
    operator: Operator | str = Operator.EQ,
    *,
    query_helper: QueryHelper | None = None,
) -> str:
    """Render one ``field <operator> value`` condition as a Solr filter query."""
    helper = query_helper or SolrQueryHelper()
    op = Operator(operator)

    if value is None and op in (Operator.EQ, Operator.NE):
        # NULL checks test for the (non-)existence of the field.
        return f"{field}:[* TO *]" if op is Operator.NE else f"(*:* -{field}:[* TO *])"

    if op is Operator.NE:
        return f"(*:* -{field}:{_format_value(value, helper)})"
    if op is Operator.LT:
        return f"{field}:{{* TO {_range_value(value, helper)}}}"
    if op is Operator.LE:
        return f"{field}:[* TO {_range_value(value, helper)}]"
    if op is Operator.GT:
        return f"{field}:{{{_range_value(value, helper)} TO *}}"
    if op is Operator.GE:
        return f"{field}:[{_range_value(value, helper)} TO *]"
    if op in (Operator.BETWEEN, Operator.NOT_BETWEEN):
        low, high = _pair(value)
        clause = f"{field}:[{_range_value(low, helper)} TO {_range_value(high, helper)}]"
        return clause if op is Operator.BETWEEN else f"(*:* -{clause})"
    if op in (Operator.IN, Operator.NOT_IN):
        values = [_format_value(v, helper) for v in (value or [])]
        if op is Operator.IN:
            return "(" + " ".join(f"{field}:{v}" for v in values) + ")"
        return "(*:* " + " ".join(f"-{field}:{v}" for v in values) + ")"
    return f"{field}:{_format_value(value, helper)}"


def reduce_filter_queries(fqs: Sequence[str], conjunction: Conjunction | str = Conjunction.AND) -> str:
    """Combine several filter queries into one; ``""`` when there are none."""
    fqs = [fq for fq in fqs if fq]
    if not fqs:
        return ""
    if len(fqs) == 1:
        return fqs[0]
    glue = " OR " if Conjunction(conjunction) is Conjunction.OR else " AND "
    return "(" + glue.join(fqs) + ")"


def create_filter_queries(
    group: ConditionGroup,
    field_names: Mapping[str, str] | None = None,
    *,
    query_helper: QueryHelper | None = None,
) -> list[str]:
    """Render every member of *group*, mapping field names through *field_names*.

    Nested groups are reduced to a single filter query with their own
    conjunction.
    """
    field_names = field_names or {}
    fqs: list[str] = []
    for item in group.conditions:
        if isinstance(item, ConditionGroup):
            fq = reduce_filter_queries(
                create_filter_queries(item, field_names, query_helper=query_helper),
                item.conjunction,
            )
        else:
            fq = _condition_query(item, field_names, query_helper)
        if fq:
            fqs.append(fq)
    return fqs


def _condition_query(
    condition: Condition, field_names: Mapping[str, str], helper: QueryHelper | None
) -> str:
    field = field_names.get(condition.field, condition.field)
    return create_filter_query(field, condition.value, condition.operator, query_helper=helper)


def build_filter_queries(
    group: ConditionGroup,
    field_names: Mapping[str, str] | None = None,
    *,
    query_helper: QueryHelper | None = None,
) -> list[str]:
    """Return the ``fq`` list for a query's top-level condition group.

    ``AND`` groups yield one filter query per condition so Solr can cache them
    separately; ``OR`` groups collapse into a single filter query.
    """
    fqs = create_filter_queries(group, field_names, query_helper=query_helper)
    if group.conjunction is Conjunction.OR:
        reduced = reduce_filter_queries(fqs, Conjunction.OR)
        return [reduced] if reduced else []
    return fqs
