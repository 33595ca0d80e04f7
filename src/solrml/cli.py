"""Typer CLI for solrml — encode, decode, project, resolve, flatten, rewrite-response."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import TypeAdapter, ValidationError

from solrml.codec import decode_solr_name, encode_solr_name
from solrml.config import load_settings
from solrml.errors import SolrMultilingualError
from solrml.flatten import flatten_keys
from solrml.language import project_field, resolve as resolve_name
from solrml.models import FlattenOptions, KeyExpression, ParseMode
from solrml.results import MultilingualResultRewriter

logger = logging.getLogger("solrml.cli")

app = typer.Typer(
    name="solrml",
    help="Field-name codec, key flattening and language fan-out for Solr.",
    no_args_is_help=True,
)

_KEYS_ADAPTER: TypeAdapter[KeyExpression] = TypeAdapter(KeyExpression)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(stream=sys.stderr, level=logging.DEBUG if verbose else logging.WARNING)


# ---------------------------------------------------------------------------
# Field names
# ---------------------------------------------------------------------------


@app.command()
def encode(name: str = typer.Argument(..., help="Field name to encode")) -> None:
    """Encode a field name into Solr-safe characters."""
    from solrml.display import display_value

    display_value(encode_solr_name(name))


@app.command()
def decode(name: str = typer.Argument(..., help="Encoded field name")) -> None:
    """Decode an encoded Solr field name."""
    from solrml.display import display_value

    display_value(decode_solr_name(name))


@app.command()
def project(
    name: str = typer.Argument(..., help="Canonical Solr field name"),
    languages: list[str] = typer.Argument(..., help="Language ids"),
) -> None:
    """Show the language-specific field names of a canonical field."""
    from solrml.display import display_projections

    display_projections(name, {lang: project_field(name, lang) for lang in languages})


@app.command()
def resolve(name: str = typer.Argument(..., help="Solr field name")) -> None:
    """Split a language-specific field name into canonical name and language."""
    from solrml.display import display_resolved

    display_resolved(name, resolve_name(name))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@app.command()
def flatten(
    keys: str = typer.Argument(..., help="Key expression as JSON (or a raw string with --raw)"),
    field: Optional[list[str]] = typer.Option(None, "--field", "-f", help="Field to search"),
    mode: ParseMode = typer.Option(ParseMode.PHRASE, "--mode", "-m", help="Parse mode"),
    slop: Optional[int] = typer.Option(None, "--slop", help="Phrase slop for sloppy modes"),
    fuzzy: Optional[float] = typer.Option(None, "--fuzzy", help="Edit distance for fuzzy_terms"),
    raw: bool = typer.Option(False, "--raw", help="Pass KEYS through untouched (direct mode)"),
) -> None:
    """Flatten a key expression into a Solr query string."""
    from solrml.display import display_error, display_value

    try:
        expr = keys if raw else _KEYS_ADAPTER.validate_json(keys)
        options = FlattenOptions(slop=slop, fuzzy=fuzzy)
        display_value(flatten_keys(expr, field or [], mode, options))
    except ValidationError as exc:
        display_error(f"invalid key expression: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=1) from None
    except SolrMultilingualError as exc:
        display_error(str(exc))
        raise typer.Exit(code=1) from None


@app.command("rewrite-response")
def rewrite_response(
    path: str = typer.Argument("-", help="Response JSON file ('-' for stdin)"),
    indent: int = typer.Option(2, "--indent", help="JSON indentation"),
) -> None:
    """Rewrite a raw Solr response to canonical field names."""
    from solrml.display import display_error, display_value

    body = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    try:
        rewriter = MultilingualResultRewriter(load_settings())
        rewritten = rewriter.rewrite_body(body)
    except ValueError as exc:
        display_error(str(exc))
        raise typer.Exit(code=1) from None
    display_value(json.dumps(json.loads(rewritten), indent=indent or None, ensure_ascii=False))
