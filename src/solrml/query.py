"""Outgoing query rewriting for multilingual indexes.

Fulltext fields are stored once per language (see :mod:`solrml.language`).
Before a query is sent to Solr every reference to a canonical fulltext field
is replaced by its language-specific variants: the keys are flattened once
per language and OR-ed together, highlighting / more-like-this / facet field
lists are fanned out, and filters are wrapped in per-language clauses.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from solrml.config import MultilingualSettings
from solrml.escaping import QueryHelper, SolrQueryHelper
from solrml.filters import build_filter_queries, create_filter_queries, reduce_filter_queries
from solrml.flatten import flatten_keys, split_field_boost
from solrml.language import project_field_map
from solrml.models import (
    LANGCODE_NOT_APPLICABLE,
    LANGCODE_NOT_SPECIFIED,
    TAG_MLT,
    TAG_SERVER_INDEX_STATUS,
    TAG_VIEWS,
    Condition,
    ConditionGroup,
    Conjunction,
    Group,
    ParseMode,
    SolrQuery,
    Term,
)

logger = logging.getLogger("solrml.query")

MULTILINGUAL_CONTEXT_TAG = "drupal/langcode:multilingual"


def flatten_query(query: SolrQuery, *, query_helper: QueryHelper | None = None) -> str:
    """Flatten the keys of *query* against its query fields."""
    return flatten_keys(
        query.keys,
        query.query_fields,
        query.parse_mode,
        query.options,
        query_helper=query_helper,
    )


def _substitute(fields: Sequence[str], mapping: Mapping[str, str]) -> list[str]:
    out: list[str] = []
    for field in fields:
        name, boost = split_field_boost(field)
        out.append(mapping.get(name, name) + boost)
    return out


def _as_alternative(flat: str) -> str:
    # A leading "+" would make the fragment mandatory within the OR group.
    if flat.startswith("+("):
        return flat[1:]
    if flat.startswith(("(", "-(")):
        return flat
    return f"({flat})"


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


class MultilingualQueryRewriter:
    """Rewrites a :class:`SolrQuery` to target language-specific fields."""

    def __init__(
        self,
        settings: MultilingualSettings | None = None,
        *,
        query_helper: QueryHelper | None = None,
    ) -> None:
        self.settings = settings or MultilingualSettings()
        self.query_helper = query_helper or SolrQueryHelper()

    # ------------------------------------------------------------------
    # Languages
    # ------------------------------------------------------------------

    def resolve_languages(
        self,
        query: SolrQuery,
        *,
        current_language: str | None = None,
        available_languages: Iterable[str] = (),
    ) -> list[str]:
        """Fill in the query languages when the caller did not set any.

        Queries without languages are limited to *current_language* when the
        settings ask for it (and the query does not come from a view);
        otherwise they search all *available_languages*.
        """
        if query.tags & {TAG_SERVER_INDEX_STATUS, TAG_MLT}:
            return query.languages

        languages = list(query.languages)
        if not languages:
            if (
                TAG_VIEWS not in query.tags
                and self.settings.limit_to_content_language
                and current_language
            ):
                languages = [current_language]
            else:
                languages = list(available_languages)
            logger.debug("Resolved query languages to %s", languages)

        if self.settings.include_language_independent:
            _append_unique(languages, LANGCODE_NOT_SPECIFIED)
            _append_unique(languages, LANGCODE_NOT_APPLICABLE)

        query.languages = languages
        return languages

    def field_maps(self, query: SolrQuery) -> dict[str, dict[str, str]]:
        """Return ``{language: {canonical: projected}}`` for the fulltext fields."""
        return {lang: project_field_map(query.fulltext_fields, lang) for lang in query.languages}

    # ------------------------------------------------------------------
    # Query rewrite
    # ------------------------------------------------------------------

    def rewrite_query(self, query: SolrQuery) -> SolrQuery:
        """Replace canonical fulltext fields by language-specific ones, in place."""
        if TAG_SERVER_INDEX_STATUS in query.tags or not query.languages:
            return query

        maps = self.field_maps(query)
        self._rewrite_highlighting(query, maps)
        self._rewrite_facets(query, maps)

        if not self.settings.retrieve_data:
            # Results can only be mapped back when their language is returned.
            _append_unique(query.fields, self.settings.language_field)

        if TAG_MLT in query.tags:
            self._rewrite_mlt(query, maps)
        elif query.keys is not None and query.query_fields:
            self._rewrite_keys(query, maps)
        return query

    def _rewrite_keys(self, query: SolrQuery, maps: dict[str, dict[str, str]]) -> bool:
        first = query.languages[0]
        if _substitute(query.query_fields, maps[first]) == query.query_fields:
            # No multilingual field is queried, no other language will differ.
            logger.debug("No language-specific query fields, keeping canonical keys")
            return False

        fragments: list[str] = []
        for lang in query.languages:
            fields = _substitute(query.query_fields, maps[lang])
            flat = flatten_query(
                query.model_copy(update={"query_fields": fields}),
                query_helper=self.query_helper,
            )
            if flat:
                fragments.append(_as_alternative(flat))
        if not fragments:
            return False

        query.original_keys = query.keys
        query.original_parse_mode = query.parse_mode
        query.original_query_fields = list(query.query_fields)
        query.keys = Group([Term(f) for f in fragments], Conjunction.OR, escaped=True)
        query.parse_mode = ParseMode.KEYS
        query.query_fields = []
        logger.debug("Rewrote keys into %d language-specific fragments", len(fragments))
        return True

    def _rewrite_highlighting(self, query: SolrQuery, maps: dict[str, dict[str, str]]) -> None:
        for field in list(query.highlight_fields):
            options = query.highlight_fields[field]
            exchanged = False
            for lang in query.languages:
                projected = maps[lang].get(field)
                if projected is not None:
                    query.highlight_fields[projected] = dict(options)
                    exchanged = True
            if exchanged:
                del query.highlight_fields[field]

    def _rewrite_mlt(self, query: SolrQuery, maps: dict[str, dict[str, str]]) -> None:
        mlt_fields: list[str] = []
        for lang in query.languages:
            for field in query.mlt_fields:
                # Untranslated fields are kept as they are.
                _append_unique(mlt_fields, maps[lang].get(field, field))
        query.mlt_fields = mlt_fields

    def _rewrite_facets(self, query: SolrQuery, maps: dict[str, dict[str, str]]) -> None:
        for lang in query.languages:
            for field in list(query.facet_fields):
                projected = maps[lang].get(field)
                if projected is not None:
                    _append_unique(query.facet_fields, projected)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def filter_queries(self, query: SolrQuery) -> list[str]:
        """Return the ``fq`` list, wrapping each condition per language.

        Each language clause requires the document language and the condition
        (with language-specific field names); the clauses are OR-ed.
        """
        conditions = query.conditions.conditions
        if not conditions or not query.languages:
            return build_filter_queries(query.conditions, query_helper=self.query_helper)

        maps = self.field_maps(query)
        fqs: list[str] = []
        for condition in conditions:
            language_fqs: list[str] = []
            for lang in query.languages:
                group = ConditionGroup(
                    conditions=[Condition(field=self.settings.language_field, value=lang), condition]
                )
                language_fqs.append(
                    reduce_filter_queries(
                        create_filter_queries(group, maps[lang], query_helper=self.query_helper)
                    )
                )
            fqs.append(reduce_filter_queries(language_fqs, Conjunction.OR))

        if query.conditions.conjunction is Conjunction.OR:
            return [reduce_filter_queries(fqs, Conjunction.OR)]
        return fqs

    # ------------------------------------------------------------------
    # Autocomplete
    # ------------------------------------------------------------------

    def autocomplete_fields(self, query: SolrQuery) -> list[str]:
        """Return the language-specific names of all queried fulltext fields."""
        maps = self.field_maps(query)
        fields: list[str] = []
        for lang in query.languages:
            for field in query.fulltext_fields:
                fields.append(maps[lang][field])
        return fields

    def suggester_options(self, query: SolrQuery, options: Mapping[str, Any]) -> dict[str, Any]:
        """Resolve the multilingual context filter tag of suggester options."""
        result = dict(options)
        tags = list(result.get("context_filter_tags") or [])
        if MULTILINGUAL_CONTEXT_TAG not in tags:
            return result

        if len(query.languages) == 1:
            lang = query.languages[0]
            result["context_filter_tags"] = [
                t.replace(MULTILINGUAL_CONTEXT_TAG, f"drupal/langcode:{lang}") for t in tags
            ]
            result["dictionary"] = lang
        else:
            tags.remove(MULTILINGUAL_CONTEXT_TAG)
            result["context_filter_tags"] = tags
        return result
