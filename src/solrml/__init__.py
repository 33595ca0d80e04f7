"""solrml — query flattening and language fan-out for multilingual Solr indexes."""

from __future__ import annotations

try:
    from solrml._version import __version__
except ImportError:
    __version__ = "0.0.0"

from solrml.codec import decode_solr_name, encode_solr_name
from solrml.config import MultilingualSettings, load_settings
from solrml.errors import (
    IncompatibleModeError,
    MissingSchemaElementError,
    ResponseDecodeError,
    SolrMultilingualError,
)
from solrml.flatten import flatten_keys
from solrml.language import ResolvedName, project_field, project_field_map, resolve
from solrml.models import (
    Condition,
    ConditionGroup,
    Conjunction,
    FlattenOptions,
    Group,
    KeyExpression,
    ParseMode,
    SolrQuery,
    Term,
)
from solrml.query import MultilingualQueryRewriter
from solrml.results import MultilingualResultRewriter

__all__ = [
    "Condition",
    "ConditionGroup",
    "Conjunction",
    "FlattenOptions",
    "Group",
    "IncompatibleModeError",
    "KeyExpression",
    "MissingSchemaElementError",
    "MultilingualQueryRewriter",
    "MultilingualResultRewriter",
    "MultilingualSettings",
    "ParseMode",
    "ResolvedName",
    "ResponseDecodeError",
    "SolrMultilingualError",
    "SolrQuery",
    "Term",
    "decode_solr_name",
    "encode_solr_name",
    "flatten_keys",
    "load_settings",
    "project_field",
    "project_field_map",
    "resolve",
]
