"""Language-specific Solr field names.

A fulltext field is stored once per language. The language id is inserted
right after the field's type prefix (the part before the first ``_``),
separated by ``;``, and the result is encoded::

    tm_title  + en     ->  tm;en_title     ->  tm_X3b_en_title
    title     + en     ->  title;en        ->  title_X3b_en
    tm_title  + pt_br  ->  tm;pt;br_title  ->  tm_X3b_pt_X3b_br_title

Underscores inside the language id are written as ``;`` so the language
segment always ends at the next ``_``. Language ids must not contain ``;``.
Canonical names must not carry a ``;`` in their prefix segment, otherwise
they would read as projected names.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import NamedTuple

from solrml.codec import decode_solr_name, encode_solr_name
from solrml.flatten import split_field_boost

_SEPARATOR = ";"

_PROJECTED = re.compile(r"^([^;_]*);([^_]+)(?:_(.*))?$", re.DOTALL)


class ResolvedName(NamedTuple):
    """A projected field name split into its canonical name and language."""

    field_name: str
    language_id: str


def _language_segment(language_id: str) -> str:
    return language_id.replace("_", _SEPARATOR)


def language_specific_prefix(prefix: str, language_id: str) -> str:
    """Return the unencoded dynamic field prefix, e.g. ``tm;en_``."""
    return f"{prefix}{_SEPARATOR}{_language_segment(language_id)}_"


def _interleave(name: str, language_id: str) -> str:
    prefix, sep, rest = name.partition("_")
    if not sep:
        return f"{prefix}{_SEPARATOR}{_language_segment(language_id)}"
    return language_specific_prefix(prefix, language_id) + rest


def project_field(base: str, language_id: str) -> str:
    """Return the encoded language-specific name of *base* for *language_id*.

    *base* may be plain or already encoded; a ``^boost`` suffix is detached
    first and re-attached unchanged.
    """
    name, boost = split_field_boost(base)
    return encode_solr_name(_interleave(decode_solr_name(name), language_id)) + boost


def project_field_map(bases: Iterable[str], language_id: str) -> dict[str, str]:
    """Map every name in *bases* to its projected name for *language_id*."""
    return {base: project_field(base, language_id) for base in bases}


def resolve(name: str) -> ResolvedName | None:
    """Split a projected name back into ``(canonical name, language id)``.

    Returns ``None`` for names that do not embed a language segment. The
    canonical name comes back in encoded form, like the input.
    """
    m = _PROJECTED.match(decode_solr_name(name))
    if m is None:
        return None
    prefix, language_id, rest = m.groups()
    canonical = prefix if rest is None else f"{prefix}_{rest}"
    return ResolvedName(encode_solr_name(canonical), language_id.replace(_SEPARATOR, "_"))


def language_of(name: str) -> str | None:
    """Return the language embedded in *name*, or ``None``."""
    resolved = resolve(name)
    return resolved.language_id if resolved else None


def field_type_name(language_id: str) -> str:
    """Return the encoded name of the text field type for *language_id*."""
    return encode_solr_name(f"text_{language_id}")


def dynamic_field_pattern(prefix: str, language_id: str) -> str:
    """Return the encoded dynamic field pattern, e.g. ``tm_X3b_en_*``."""
    return encode_solr_name(language_specific_prefix(prefix, language_id)) + "*"
