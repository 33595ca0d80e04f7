"""Exception types raised by solrml."""

from __future__ import annotations


class SolrMultilingualError(Exception):
    """Base class for all solrml errors."""


class IncompatibleModeError(SolrMultilingualError):
    """A parse mode cannot handle the given keys or field list."""


class MissingSchemaElementError(SolrMultilingualError):
    """A language-specific field type or dynamic field is missing on the server."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Missing {kind} {name} in schema.")


class ResponseDecodeError(SolrMultilingualError, ValueError):
    """A raw Solr response body could not be decoded."""
