"""Tests for solrml.query — outgoing multilingual query rewriting."""

from __future__ import annotations

import pytest

from solrml.config import MultilingualSettings
from solrml.errors import IncompatibleModeError
from solrml.models import (
    Condition,
    ConditionGroup,
    Conjunction,
    Group,
    ParseMode,
    SolrQuery,
)
from solrml.query import MultilingualQueryRewriter, flatten_query

from tests.conftest import DE_TITLE, EN_TITLE, LANGUAGE_FIELD, make_query

# ---------------------------------------------------------------------------
# Language resolution
# ---------------------------------------------------------------------------


class TestResolveLanguages:
    def test_explicit_languages_kept(self, query_rewriter) -> None:
        q = make_query(languages=["de"])
        assert query_rewriter.resolve_languages(q, available_languages=["en", "de"]) == ["de"]

    def test_defaults_to_all_languages(self, query_rewriter) -> None:
        q = make_query(languages=[])
        langs = query_rewriter.resolve_languages(
            q, current_language="en", available_languages=["en", "de", "fr"]
        )
        assert langs == ["en", "de", "fr"]
        assert q.languages == ["en", "de", "fr"]

    def test_limit_to_content_language(self) -> None:
        rewriter = MultilingualQueryRewriter(MultilingualSettings(limit_to_content_language=True))
        q = make_query(languages=[])
        assert rewriter.resolve_languages(q, current_language="fr", available_languages=["en"]) == [
            "fr"
        ]

    def test_views_ignore_content_language_limit(self) -> None:
        rewriter = MultilingualQueryRewriter(MultilingualSettings(limit_to_content_language=True))
        q = make_query(languages=[], tags={"views"})
        langs = rewriter.resolve_languages(q, current_language="fr", available_languages=["en", "de"])
        assert langs == ["en", "de"]

    def test_include_language_independent(self) -> None:
        rewriter = MultilingualQueryRewriter(
            MultilingualSettings(include_language_independent=True)
        )
        q = make_query(languages=["en"])
        assert rewriter.resolve_languages(q) == ["en", "und", "zxx"]

    def test_language_independent_not_duplicated(self) -> None:
        rewriter = MultilingualQueryRewriter(
            MultilingualSettings(include_language_independent=True)
        )
        q = make_query(languages=["und"])
        assert rewriter.resolve_languages(q) == ["und", "zxx"]

    @pytest.mark.parametrize("tag", ["server_index_status", "mlt"])
    def test_special_queries_untouched(self, query_rewriter, tag: str) -> None:
        q = make_query(languages=[], tags={tag})
        assert query_rewriter.resolve_languages(q, available_languages=["en"]) == []
        assert q.languages == []


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestRewriteKeys:
    def test_fans_out_per_language(self, query_rewriter, title_query) -> None:
        query_rewriter.rewrite_query(title_query)
        assert flatten_query(title_query) == (
            f"({EN_TITLE}:(+foo)^1) ({DE_TITLE}:(+foo)^1)"
        )

    def test_rewritten_keys_are_escaped_or_group(self, query_rewriter, title_query) -> None:
        query_rewriter.rewrite_query(title_query)
        assert isinstance(title_query.keys, Group)
        assert title_query.keys.escaped is True
        assert title_query.keys.conjunction is Conjunction.OR
        assert title_query.parse_mode is ParseMode.KEYS
        assert title_query.query_fields == []
        assert title_query.rewritten

    def test_boosts_and_other_fields_preserved(self, query_rewriter) -> None:
        q = make_query(query_fields=["tm_title^2", "ss_id"], languages=["en"])
        query_rewriter.rewrite_query(q)
        assert flatten_query(q) == f"({EN_TITLE}:(+foo)^2 ss_id:(+foo)^1)"

    def test_edismax(self, query_rewriter) -> None:
        q = make_query(parse_mode="edismax", query_fields=["tm_title", "ss_id^3"])
        query_rewriter.rewrite_query(q)
        assert flatten_query(q) == (
            f"({{!edismax qf='{EN_TITLE}^1 ss_id^3'}}+foo) "
            f"({{!edismax qf='{DE_TITLE}^1 ss_id^3'}}+foo)"
        )

    def test_short_circuit_without_multilingual_fields(self, query_rewriter) -> None:
        q = make_query(query_fields=["ss_id"])
        query_rewriter.rewrite_query(q)
        assert q.keys == Group(["foo"])
        assert not q.rewritten
        assert flatten_query(q) == "+(ss_id:(+foo)^1)"

    def test_short_circuit_single_language(self, query_rewriter) -> None:
        q = make_query(query_fields=["ss_id"], fulltext_fields=[], languages=["en"])
        canonical = flatten_query(q)
        query_rewriter.rewrite_query(q)
        assert flatten_query(q) == canonical

    def test_restore(self, query_rewriter, title_query) -> None:
        query_rewriter.rewrite_query(title_query)
        title_query.restore()
        assert title_query.keys == Group(["foo"])
        assert title_query.parse_mode is ParseMode.PHRASE
        assert title_query.query_fields == ["tm_title"]
        assert not title_query.rewritten

    def test_empty_keys_not_rewritten(self, query_rewriter) -> None:
        q = make_query(keys=Group([]))
        query_rewriter.rewrite_query(q)
        assert not q.rewritten
        assert flatten_query(q) == ""

    def test_negated_keys(self, query_rewriter) -> None:
        q = make_query(keys=Group(["foo"], negated=True), languages=["en"])
        query_rewriter.rewrite_query(q)
        assert flatten_query(q) == f"-({EN_TITLE}:(+foo)^1)"

    def test_incompatible_mode_propagates(self, query_rewriter) -> None:
        q = make_query(parse_mode="keys")
        with pytest.raises(IncompatibleModeError):
            query_rewriter.rewrite_query(q)

    def test_server_index_status_untouched(self, query_rewriter) -> None:
        q = make_query(tags={"server_index_status"})
        query_rewriter.rewrite_query(q)
        assert not q.rewritten
        assert q.fields == []

    def test_no_languages_untouched(self, query_rewriter) -> None:
        q = make_query(languages=[])
        query_rewriter.rewrite_query(q)
        assert not q.rewritten


# ---------------------------------------------------------------------------
# Side effects on the carried query
# ---------------------------------------------------------------------------


class TestQuerySideEffects:
    def test_language_field_added_to_field_list(self, query_rewriter, title_query) -> None:
        title_query.fields = ["id"]
        query_rewriter.rewrite_query(title_query)
        assert title_query.fields == ["id", LANGUAGE_FIELD]

    def test_language_field_not_added_when_retrieving_data(self, title_query) -> None:
        rewriter = MultilingualQueryRewriter(MultilingualSettings(retrieve_data=True))
        rewriter.rewrite_query(title_query)
        assert title_query.fields == []

    def test_highlighting_fields_exchanged(self, query_rewriter) -> None:
        q = make_query(highlight_fields={"tm_title": {"fragsize": 100}, "ss_id": {}})
        query_rewriter.rewrite_query(q)
        assert q.highlight_fields == {
            "ss_id": {},
            EN_TITLE: {"fragsize": 100},
            DE_TITLE: {"fragsize": 100},
        }

    def test_highlighting_options_are_copied(self, query_rewriter) -> None:
        q = make_query(highlight_fields={"tm_title": {"fragsize": 100}})
        query_rewriter.rewrite_query(q)
        q.highlight_fields[EN_TITLE]["fragsize"] = 5
        assert q.highlight_fields[DE_TITLE]["fragsize"] == 100

    def test_highlighting_rewritten_even_on_short_circuit(self, query_rewriter) -> None:
        q = make_query(query_fields=["ss_id"], highlight_fields={"tm_title": {}})
        query_rewriter.rewrite_query(q)
        assert set(q.highlight_fields) == {EN_TITLE, DE_TITLE}

    def test_mlt_fields(self, query_rewriter) -> None:
        q = make_query(tags={"mlt"}, mlt_fields=["tm_title", "ss_id"])
        query_rewriter.rewrite_query(q)
        assert q.mlt_fields == [EN_TITLE, "ss_id", DE_TITLE]
        assert not q.rewritten

    def test_facet_fields(self, query_rewriter) -> None:
        q = make_query(facet_fields=["tm_title", "ss_type"])
        query_rewriter.rewrite_query(q)
        assert q.facet_fields == ["tm_title", "ss_type", EN_TITLE, DE_TITLE]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class TestFilterQueries:
    def test_no_conditions(self, query_rewriter, title_query) -> None:
        assert query_rewriter.filter_queries(title_query) == []

    def test_no_languages_passes_through(self, query_rewriter) -> None:
        q = make_query(
            languages=[],
            conditions=ConditionGroup(conditions=[Condition(field="tm_title", value="x")]),
        )
        assert query_rewriter.filter_queries(q) == ['tm_title:"x"']

    def test_or_of_ands_across_languages(self, query_rewriter) -> None:
        q = make_query(
            conditions=ConditionGroup(conditions=[Condition(field="tm_title", value="x")])
        )
        assert query_rewriter.filter_queries(q) == [
            f'(({LANGUAGE_FIELD}:"en" AND {EN_TITLE}:"x") OR '
            f'({LANGUAGE_FIELD}:"de" AND {DE_TITLE}:"x"))'
        ]

    def test_single_language(self, query_rewriter) -> None:
        q = make_query(
            languages=["en"],
            conditions=ConditionGroup(
                conditions=[Condition(field="ss_type", value="a"), Condition(field="its_n", value=1)]
            ),
        )
        assert query_rewriter.filter_queries(q) == [
            f'({LANGUAGE_FIELD}:"en" AND ss_type:"a")',
            f'({LANGUAGE_FIELD}:"en" AND its_n:1)',
        ]

    def test_top_level_or(self, query_rewriter) -> None:
        q = make_query(
            languages=["en"],
            conditions=ConditionGroup(
                conjunction="OR",
                conditions=[Condition(field="ss_type", value="a"), Condition(field="its_n", value=1)],
            ),
        )
        assert query_rewriter.filter_queries(q) == [
            f'(({LANGUAGE_FIELD}:"en" AND ss_type:"a") OR ({LANGUAGE_FIELD}:"en" AND its_n:1))'
        ]


# ---------------------------------------------------------------------------
# Autocomplete
# ---------------------------------------------------------------------------


class TestAutocomplete:
    def test_fields(self, query_rewriter, title_query) -> None:
        assert query_rewriter.autocomplete_fields(title_query) == [EN_TITLE, DE_TITLE]

    def test_suggester_single_language(self, query_rewriter) -> None:
        q = make_query(languages=["de"])
        options = {"context_filter_tags": ["drupal/langcode:multilingual", "other"]}
        result = query_rewriter.suggester_options(q, options)
        assert result["context_filter_tags"] == ["drupal/langcode:de", "other"]
        assert result["dictionary"] == "de"
        assert options["context_filter_tags"][0] == "drupal/langcode:multilingual"

    def test_suggester_several_languages(self, query_rewriter, title_query) -> None:
        options = {"context_filter_tags": ["drupal/langcode:multilingual", "other"]}
        result = query_rewriter.suggester_options(title_query, options)
        assert result["context_filter_tags"] == ["other"]
        assert "dictionary" not in result

    def test_suggester_without_tag(self, query_rewriter, title_query) -> None:
        assert query_rewriter.suggester_options(title_query, {"dictionary": "x"}) == {
            "dictionary": "x"
        }


def test_flatten_query_without_keys() -> None:
    assert flatten_query(SolrQuery(query_fields=["x"])) == ""
