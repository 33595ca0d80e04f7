"""Query-string safety helpers: escaping terms and phrases for the Lucene grammar."""

from __future__ import annotations

import re
from typing import Protocol

# Lucene special characters (plus the blank) that must be backslash-escaped
# inside a bare term.
_TERM_SPECIAL = re.compile(r'( |\+|-|&&|\|\||!|\(|\)|\{|\}|\[|\]|\^|"|~|\*|\?|:|/|\\)')

# Inside a quoted phrase only the quote and the backslash are special.
_PHRASE_SPECIAL = re.compile(r'("|\\)')

_WHITESPACE = re.compile(r"\s")


class QueryHelper(Protocol):
    """Escapes user input so it can be embedded in a Solr query string."""

    def escape_term(self, value: str) -> str: ...

    def escape_phrase(self, value: str) -> str: ...


class SolrQueryHelper:
    """Default escaper following the standard Lucene query parser rules."""

    def escape_term(self, value: str) -> str:
        """Escape *value* for use as an unquoted term."""
        return _TERM_SPECIAL.sub(r"\\\1", value)

    def escape_phrase(self, value: str) -> str:
        """Escape *value* and wrap it in double quotes."""
        return '"' + _PHRASE_SPECIAL.sub(r"\\\1", value) + '"'


def escape_token(helper: QueryHelper, value: str, *, phrase_mode: bool) -> str:
    """Escape a single key token.

    Phrase-family parse modes keep multi-word tokens together as a quoted
    phrase; single words and every token in ``keys`` mode are escaped as terms.
    """
    if phrase_mode and _WHITESPACE.search(value):
        return helper.escape_phrase(value)
    return helper.escape_term(value)
