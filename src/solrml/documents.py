"""Language fan-out of Solr documents at indexing time.

Before documents are sent to Solr their fulltext fields are renamed to the
language-specific field of the document's own language. The Solr schema must
know a ``text_<lang>`` field type and ``ts;<lang>_*`` / ``tm;<lang>_*``
dynamic fields for every language that shows up.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from solrml.config import MultilingualSettings
from solrml.errors import MissingSchemaElementError, SolrMultilingualError
from solrml.language import dynamic_field_pattern, field_type_name, project_field

logger = logging.getLogger("solrml.documents")

FIELD_TYPES = "fieldTypes"
DYNAMIC_FIELDS = "dynamicFields"

# Dynamic field prefixes that get a language-specific variant.
LANGUAGE_SPECIFIC_PREFIXES = ("ts", "tm")

# The suggester field is shared by all languages.
SUGGEST_FIELD = "twm_suggest"


# ---------------------------------------------------------------------------
# Schema inspection
# ---------------------------------------------------------------------------


class SchemaCreator(Protocol):
    """Deploys missing schema elements on servers that support it."""

    def create_field_type(self, name: str) -> bool: ...

    def create_dynamic_field(self, name: str, field_type: str) -> bool: ...


class SchemaPartsCache:
    """Caches the names of schema elements per kind.

    *fetch* receives a kind (``fieldTypes``, ``dynamicFields``) and returns the
    element names the server currently knows. A miss triggers one refetch per
    kind; after that, misses are answered from the cache until
    :meth:`invalidate` is called.
    """

    def __init__(self, fetch: Callable[[str], Iterable[str]]) -> None:
        self._fetch = fetch
        self._parts: dict[str, set[str]] = {}
        self._refreshed: set[str] = set()

    def contains(self, kind: str, name: str) -> bool:
        parts = self._parts.get(kind)
        if not parts or (name not in parts and kind not in self._refreshed):
            parts = self._load(kind)
        return name in parts

    def invalidate(self, kind: str | None = None) -> None:
        """Forget cached names for *kind*, or for every kind."""
        if kind is None:
            self._parts.clear()
            self._refreshed.clear()
        else:
            self._parts.pop(kind, None)
            self._refreshed.discard(kind)

    def _load(self, kind: str) -> set[str]:
        names = set(self._fetch(kind))
        if not names:
            raise SolrMultilingualError(f"Missing information about {kind} in schema response.")
        self._parts[kind] = names
        self._refreshed.add(kind)
        logger.debug("Loaded %d %s from schema", len(names), kind)
        return names


def ensure_language_schema(
    language_id: str,
    schema: SchemaPartsCache,
    *,
    creator: SchemaCreator | None = None,
    fallback: bool = True,
) -> None:
    """Check (and optionally create) the schema elements for *language_id*.

    Raises :class:`MissingSchemaElementError` when an element is missing, could
    not be created and the language-unspecific fallback is disabled.
    """
    type_name = field_type_name(language_id)
    if not schema.contains(FIELD_TYPES, type_name) and not (
        creator is not None and creator.create_field_type(type_name)
    ):
        if not fallback:
            raise MissingSchemaElementError("field type", type_name)
        logger.warning("Missing field type %s, falling back to language-unspecific fields", type_name)

    for prefix in LANGUAGE_SPECIFIC_PREFIXES:
        pattern = dynamic_field_pattern(prefix, language_id)
        if not schema.contains(DYNAMIC_FIELDS, pattern) and not (
            creator is not None and creator.create_dynamic_field(pattern, type_name)
        ):
            if not fallback:
                raise MissingSchemaElementError("dynamic field", pattern)
            logger.warning("Missing dynamic field %s, falling back to language-unspecific fields", pattern)


def schema_language_statistics(
    languages: Iterable[str], schema: SchemaPartsCache, *, available: bool = True
) -> dict[str, bool]:
    """Report for each language whether its text field type is deployed."""
    return {
        lang: available and schema.contains(FIELD_TYPES, field_type_name(lang)) for lang in languages
    }


# ---------------------------------------------------------------------------
# Document fan-out
# ---------------------------------------------------------------------------


def _document_language(document: Mapping[str, Any], language_field: str) -> str | None:
    value = document.get(language_field)
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value is None else str(value)


def localize_documents(
    documents: Iterable[Mapping[str, Any]],
    fulltext_fields: Iterable[str],
    *,
    settings: MultilingualSettings | None = None,
    schema: SchemaPartsCache | None = None,
    creator: SchemaCreator | None = None,
) -> list[dict[str, Any]]:
    """Return copies of *documents* with fulltext fields renamed per language."""
    settings = settings or MultilingualSettings()
    docs = list(documents)
    fulltext = set(fulltext_fields) - {SUGGEST_FIELD}

    maps: dict[str, dict[str, str]] = {}
    for doc in docs:
        lang = _document_language(doc, settings.language_field)
        if lang is None:
            continue
        mapping = maps.setdefault(lang, {})
        for name in doc:
            if name in fulltext and name not in mapping:
                mapping[name] = project_field(name, lang)

    if schema is not None:
        for lang in maps:
            ensure_language_schema(
                lang,
                schema,
                creator=creator,
                fallback=settings.language_unspecific_fallback,
            )

    out: list[dict[str, Any]] = []
    for doc in docs:
        lang = _document_language(doc, settings.language_field)
        mapping = maps.get(lang, {}) if lang is not None else {}
        out.append({mapping.get(name, name): value for name, value in doc.items()})
    return out
