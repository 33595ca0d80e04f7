"""Shared fixtures and factories for solrml tests."""

from __future__ import annotations

from typing import Any

import pytest

from solrml.config import MultilingualSettings
from solrml.language import project_field
from solrml.models import Group, ParseMode, SolrQuery
from solrml.query import MultilingualQueryRewriter
from solrml.results import MultilingualResultRewriter

LANGUAGE_FIELD = "ss_search_api_language"

EN_TITLE = project_field("tm_title", "en")
DE_TITLE = project_field("tm_title", "de")

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> MultilingualSettings:
    return MultilingualSettings()


@pytest.fixture()
def query_rewriter(settings: MultilingualSettings) -> MultilingualQueryRewriter:
    return MultilingualQueryRewriter(settings)


@pytest.fixture()
def result_rewriter(settings: MultilingualSettings) -> MultilingualResultRewriter:
    return MultilingualResultRewriter(settings)


@pytest.fixture()
def title_query() -> SolrQuery:
    """A phrase query for "foo" on the title field in English and German."""
    return make_query()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_query(**overrides: Any) -> SolrQuery:
    values: dict[str, Any] = {
        "keys": Group(["foo"]),
        "parse_mode": ParseMode.PHRASE,
        "query_fields": ["tm_title"],
        "fulltext_fields": ["tm_title"],
        "languages": ["en", "de"],
    }
    values.update(overrides)
    return SolrQuery(**values)


def make_doc(doc_id: str, language: str | list[str] | None, **fields: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {"id": doc_id}
    if language is not None:
        doc[LANGUAGE_FIELD] = language
    doc.update(fields)
    return doc
