"""Flattening of structured search keys into a Solr query string.

A key expression is a tree of :class:`~solrml.models.Group` and
:class:`~solrml.models.Term` nodes. Each group is rendered bottom-up:

* ``AND`` groups prefix every clause with ``+``, ``OR`` groups with nothing.
* Negated groups are prefixed with ``-`` and parenthesised.
* Terms are escaped (unless the group is marked as escaped) and then emitted
  according to the parse mode and the queried fields.

Examples (no escaping needed)::

    AND [A, B], keys                -> +A +B
    AND [A, B], phrase, ["x"]       -> +(x:(+A +B)^1)
    OR  [A, B], edismax, ["x", "y"] -> +({!edismax qf='x^1 y^1'}A B)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from solrml.errors import IncompatibleModeError
from solrml.escaping import QueryHelper, SolrQueryHelper, escape_token
from solrml.models import (
    PHRASE_MODES,
    SLOPPY_MODES,
    TERMS_MODES,
    Conjunction,
    FlattenOptions,
    Group,
    ParseMode,
    Term,
)

DEFAULT_BOOST = "^1"

# Splits "title^2" / "title^=5" into the field name and its boost suffix.
_FIELD_BOOST = re.compile(r"^([^^]+)(\^.*)?$")

_REQUIRED_PREFIXES = ("+(", "-(")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def split_field_boost(field: str) -> tuple[str, str]:
    """Split *field* into ``(name, boost)``; the boost is ``""`` when absent."""
    m = _FIELD_BOOST.match(field)
    if m is None:
        return field, ""
    return m.group(1), m.group(2) or ""


def _normalize_fields(fields: Sequence[str]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for field in fields:
        name, boost = split_field_boost(field)
        out.append((name, boost or DEFAULT_BOOST))
    return out


def _coerce_mode(parse_mode: ParseMode | str) -> ParseMode:
    try:
        return ParseMode(parse_mode)
    except ValueError:
        raise IncompatibleModeError(f"Unknown parse mode {parse_mode!r}.") from None


def _coerce_options(options: FlattenOptions | Mapping[str, Any] | None) -> FlattenOptions:
    if options is None:
        return FlattenOptions()
    if isinstance(options, FlattenOptions):
        return options
    return FlattenOptions.model_validate(dict(options))


def _check_arity(mode: ParseMode, fields: Sequence[str]) -> None:
    if mode is ParseMode.KEYS and fields:
        raise IncompatibleModeError(f"Parse mode {mode.value} could not handle fields.")
    if mode in (ParseMode.EDISMAX, ParseMode.DIRECT) and not fields:
        raise IncompatibleModeError(f"Parse mode {mode.value} requires fields.")


def _format_number(value: int | float) -> str:
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _is_phrase(token: str) -> bool:
    return " " in token and token.startswith('"')


def _is_single_term(token: str) -> bool:
    return " " not in token and not token.startswith('"')


def _apply_tolerances(tokens: list[str], mode: ParseMode, options: FlattenOptions) -> list[str]:
    """Append sloppiness to phrases or fuzziness to single terms, once per token."""
    if mode in SLOPPY_MODES and options.slop is not None:
        suffix = "~" + _format_number(options.slop)
        return [t + suffix if _is_phrase(t) else t for t in tokens]
    if mode is ParseMode.FUZZY_TERMS and options.fuzzy is not None:
        suffix = "~" + _format_number(options.fuzzy)
        return [t + suffix if _is_single_term(t) else t for t in tokens]
    return tokens


def _emit_tokens(
    tokens: list[str],
    pre: str,
    fields: list[tuple[str, str]],
    mode: ParseMode,
    options: FlattenOptions,
) -> list[str]:
    if mode is ParseMode.EDISMAX:
        qf = " ".join(name + boost for name, boost in fields)
        return ["({!edismax qf='" + qf + "'}" + pre + (" " + pre).join(tokens) + ")"]

    tokens = _apply_tolerances(tokens, mode, options)
    joined = pre + (" " + pre).join(tokens)
    if not fields:
        return [joined]

    parts: list[str] = []
    if mode in TERMS_MODES and len(fields) > 1 and len(tokens) > 1:
        # Every token must match in at least one of the fields.
        blocks = [
            pre + "(" + " ".join(f"{name}:{token}{boost}" for name, boost in fields) + ")"
            for token in tokens
        ]
        parts.append("(" + " ".join(blocks) + ")")
    for name, boost in fields:
        parts.append(f"{name}:({joined}){boost}")
    return parts


def _nest(sub: str, pre: str) -> str:
    if sub.startswith("-"):
        return sub
    if sub.startswith("("):
        return pre + sub
    return f"{pre}({sub})"


def _combine(parts: list[str], neg: str) -> str:
    if not parts:
        return ""
    if len(parts) == 1:
        part = parts[0]
        if neg and not part.startswith("("):
            return f"{neg}({part})"
        return neg + part
    return neg + "(" + " ".join(parts) + ")"


def _flatten(
    keys: Group | str,
    fields: list[tuple[str, str]],
    mode: ParseMode,
    options: FlattenOptions,
    helper: QueryHelper,
    escaped: bool = False,
) -> str:
    tokens: list[str] = []
    parts: list[str] = []
    pre = "+"
    neg = ""

    if isinstance(keys, str):
        if mode is not ParseMode.DIRECT:
            raise IncompatibleModeError(f"Incompatible parse mode {mode.value} for raw keys.")
        pre = ""
        if keys.strip():
            tokens.append(keys.strip())
    else:
        if keys.conjunction is Conjunction.OR:
            pre = ""
        if keys.negated:
            neg = "-"
        escaped = escaped or keys.escaped
        verbatim = escaped or mode is ParseMode.DIRECT
        phrase_mode = mode in PHRASE_MODES

        for child in keys.children:
            if isinstance(child, Group):
                if mode is ParseMode.EDISMAX:
                    raise IncompatibleModeError("Parse mode edismax cannot handle nested key groups.")
                if not child.children:
                    continue
                sub = _flatten(child, fields, mode, options, helper, escaped)
                if sub:
                    parts.append(_nest(sub, pre))
                continue
            value = child.value.strip()
            if not value:
                continue
            tokens.append(value if verbatim else escape_token(helper, value, phrase_mode=phrase_mode))

    if tokens:
        parts.extend(_emit_tokens(tokens, pre, fields, mode, options))
    return _combine(parts, neg)


def _require(flat: str) -> str:
    if flat.startswith(_REQUIRED_PREFIXES):
        return flat
    if flat.startswith("("):
        return "+" + flat
    return f"+({flat})"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def flatten_keys(
    keys: Group | Term | str | None,
    fields: Sequence[str] = (),
    parse_mode: ParseMode | str = ParseMode.PHRASE,
    options: FlattenOptions | Mapping[str, Any] | None = None,
    *,
    query_helper: QueryHelper | None = None,
) -> str:
    """Flatten *keys* into a Solr query string for the given fields.

    Raises :class:`IncompatibleModeError` when the parse mode cannot handle
    the field list, when ``edismax`` meets a nested group, or when raw string
    keys are used outside ``direct`` mode. Empty keys yield ``""``.
    """
    mode = _coerce_mode(parse_mode)
    field_list = list(fields)
    _check_arity(mode, field_list)
    if keys is None:
        return ""
    if isinstance(keys, Term):
        keys = Group([keys])

    flat = _flatten(
        keys,
        _normalize_fields(field_list),
        mode,
        _coerce_options(options),
        query_helper or SolrQueryHelper(),
    )
    if flat and field_list:
        return _require(flat)
    return flat
