"""Post-processing of raw Solr responses from multilingual indexes.

Documents, highlighting snippets and facet counts come back keyed by
language-specific field names. They are folded back into canonical names so
callers never see the per-language storage layout.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from solrml.config import MultilingualSettings
from solrml.errors import ResponseDecodeError
from solrml.language import resolve

logger = logging.getLogger("solrml.results")

HIGHLIGHT_OPEN = "[HIGHLIGHT]"
HIGHLIGHT_CLOSE = "[/HIGHLIGHT]"

_HIGHLIGHTED = re.compile(re.escape(HIGHLIGHT_OPEN) + r"(.+?)" + re.escape(HIGHLIGHT_CLOSE))


# ---------------------------------------------------------------------------
# Facet bucket shapes
# ---------------------------------------------------------------------------


def _to_counts(terms: Any) -> dict[Any, int]:
    """Read a facet bucket given as a dict, a flat list or a list of pairs."""
    if isinstance(terms, Mapping):
        return dict(terms)
    if not isinstance(terms, list):
        return {}
    if terms and all(isinstance(t, (list, tuple)) and len(t) == 2 for t in terms):
        return {k: v for k, v in terms}
    return dict(zip(terms[0::2], terms[1::2]))


def _from_counts(counts: dict[Any, int], like: Any) -> Any:
    if isinstance(like, Mapping):
        return counts
    if like and isinstance(like[0], (list, tuple)):
        return [[k, v] for k, v in counts.items()]
    flat: list[Any] = []
    for k, v in counts.items():
        flat.extend((k, v))
    return flat


def merge_facet_terms(first: Any, second: Any) -> Any:
    """Add the counts of two facet buckets key-wise, keeping the shape of *first*."""
    counts = _to_counts(first)
    for term, count in _to_counts(second).items():
        counts[term] = counts.get(term, 0) + count
    return _from_counts(counts, first)


# ---------------------------------------------------------------------------
# Highlighting helpers
# ---------------------------------------------------------------------------


def highlighted_keys(snippets: str | list[str]) -> list[str]:
    """Return the unique terms wrapped in highlight markers, in order of appearance."""
    if isinstance(snippets, str):
        snippets = [snippets]
    keys: list[str] = []
    for snippet in snippets:
        for match in _HIGHLIGHTED.finditer(snippet):
            if match.group(1) not in keys:
                keys.append(match.group(1))
    return keys


def format_highlighting(snippet: str, prefix: str = "<strong>", suffix: str = "</strong>") -> str:
    """Replace the HTML-safe highlight markers by real tags."""
    return snippet.replace(HIGHLIGHT_OPEN, prefix).replace(HIGHLIGHT_CLOSE, suffix)


# ---------------------------------------------------------------------------
# Rewriter
# ---------------------------------------------------------------------------


def _single(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _localize_fields(item: dict[str, Any], language_id: str) -> None:
    """Rename projected keys of *item* in *language_id*, drop other languages."""
    for key in list(item):
        resolved = resolve(key)
        if resolved is None:
            continue
        value = item.pop(key)
        if resolved.language_id == language_id:
            item[resolved.field_name] = value


class MultilingualResultRewriter:
    """Maps language-specific field names in a Solr response back to canonical ones."""

    def __init__(self, settings: MultilingualSettings | None = None) -> None:
        self.settings = settings or MultilingualSettings()

    def rewrite(self, response: Mapping[str, Any]) -> dict[str, Any]:
        """Return a rewritten copy of a decoded Solr response."""
        data = copy.deepcopy(dict(response))
        doc_languages = self._rewrite_documents(data)
        self._rewrite_highlighting(data, doc_languages)
        self._rewrite_facets(data)
        return data

    def rewrite_body(self, body: str | bytes) -> str:
        """Decode a JSON response body, rewrite it and encode it again."""
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise ResponseDecodeError(f"Undecodable Solr response: {exc}") from exc
        if not isinstance(data, dict):
            raise ResponseDecodeError("Solr response body is not a JSON object.")
        return json.dumps(self.rewrite(data))

    def _rewrite_documents(self, data: dict[str, Any]) -> dict[str, str]:
        doc_languages: dict[str, str] = {}
        response = data.get("response")
        if not isinstance(response, dict):
            return doc_languages

        for doc in response.get("docs") or []:
            language_id = _single(doc.get(self.settings.language_field))
            doc_id = doc.get(self.settings.id_field)
            if language_id is None:
                logger.warning("Document %s has no language, leaving its fields as they are", doc_id)
                continue
            if doc_id is not None:
                doc_languages[str(doc_id)] = str(language_id)
            _localize_fields(doc, str(language_id))
        return doc_languages

    def _rewrite_highlighting(self, data: dict[str, Any], doc_languages: dict[str, str]) -> None:
        highlighting = data.get("highlighting")
        if not isinstance(highlighting, dict):
            return
        for solr_id, item in highlighting.items():
            language_id = doc_languages.get(str(solr_id))
            if language_id is None or not isinstance(item, dict):
                continue
            _localize_fields(item, language_id)

    def _rewrite_facets(self, data: dict[str, Any]) -> None:
        facet_counts = data.get("facet_counts")
        if not isinstance(facet_counts, dict):
            return
        facet_fields = facet_counts.get("facet_fields")
        if not isinstance(facet_fields, dict):
            return

        for name in list(facet_fields):
            resolved = resolve(name)
            if resolved is None:
                continue
            terms = facet_fields.pop(name)
            canonical = resolved.field_name
            if canonical in facet_fields:
                facet_fields[canonical] = merge_facet_terms(facet_fields[canonical], terms)
            else:
                facet_fields[canonical] = merge_facet_terms(terms, [])
