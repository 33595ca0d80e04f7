"""Multilingual backend settings and their environment overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel

ENV_PREFIX = "SOLRML_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class MultilingualSettings(BaseModel):
    """Switches controlling how queries, results and documents are localized."""

    # Limit queries without explicit languages to the current content language.
    limit_to_content_language: bool = False
    # Also search content tagged "und" / "zxx".
    include_language_independent: bool = False
    # Tolerate missing language-specific schema parts (use the unspecific ones).
    language_unspecific_fallback: bool = True
    # Solr returns stored data itself; the language field is not added to fl.
    retrieve_data: bool = False
    language_field: str = "ss_search_api_language"
    id_field: str = "id"


# ---------------------------------------------------------------------------
# Environment resolution
# ---------------------------------------------------------------------------


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_settings(env: Mapping[str, str] | None = None) -> MultilingualSettings:
    """Build settings from ``SOLRML_*`` environment variables.

    Priority:
    1. ``SOLRML_<FIELD_NAME>`` in *env* (default: ``os.environ``)
    2. the model defaults
    """
    env = os.environ if env is None else env
    values: dict[str, object] = {}
    for name, info in MultilingualSettings.model_fields.items():
        key = ENV_PREFIX + name.upper()
        if key not in env:
            continue
        raw = env[key]
        values[name] = _parse_bool(key, raw) if info.annotation is bool else raw
    return MultilingualSettings(**values)
