"""Pydantic models for solrml — the shared data contracts."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Language sentinels
# ---------------------------------------------------------------------------

LANGCODE_NOT_SPECIFIED = "und"
LANGCODE_NOT_APPLICABLE = "zxx"

# Query tags with special meaning for the multilingual rewrite.
TAG_SERVER_INDEX_STATUS = "server_index_status"
TAG_MLT = "mlt"
TAG_VIEWS = "views"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Conjunction(str, Enum):
    """How the children of a key group are combined."""

    AND = "AND"
    OR = "OR"


class ParseMode(str, Enum):
    """How search keys are turned into a Solr query string."""

    TERMS = "terms"
    SLOPPY_TERMS = "sloppy_terms"
    PHRASE = "phrase"
    SLOPPY_PHRASE = "sloppy_phrase"
    FUZZY_TERMS = "fuzzy_terms"
    EDISMAX = "edismax"
    DIRECT = "direct"
    KEYS = "keys"


PHRASE_MODES = frozenset(
    {
        ParseMode.TERMS,
        ParseMode.SLOPPY_TERMS,
        ParseMode.FUZZY_TERMS,
        ParseMode.PHRASE,
        ParseMode.SLOPPY_PHRASE,
        ParseMode.EDISMAX,
    }
)
TERMS_MODES = frozenset({ParseMode.TERMS, ParseMode.SLOPPY_TERMS, ParseMode.FUZZY_TERMS})
SLOPPY_MODES = frozenset({ParseMode.SLOPPY_TERMS, ParseMode.SLOPPY_PHRASE})


# ---------------------------------------------------------------------------
# Key expressions
# ---------------------------------------------------------------------------


class Term(BaseModel):
    """A literal search token."""

    kind: Literal["term"] = "term"
    value: str

    def __init__(self, value: str | None = None, /, **data: Any) -> None:
        if value is not None:
            data["value"] = value
        super().__init__(**data)


class Group(BaseModel):
    """A nested sub-expression.

    Conjunction and negation apply to the whole group. ``escaped`` marks the
    children as ready-made query fragments that must not be escaped again.
    """

    kind: Literal["group"] = "group"
    children: list[KeyExpression] = Field(default_factory=list)
    conjunction: Conjunction = Conjunction.AND
    negated: bool = False
    escaped: bool = False

    def __init__(
        self,
        children: list[Any] | None = None,
        conjunction: Conjunction | str | None = None,
        negated: bool | None = None,
        /,
        **data: Any,
    ) -> None:
        if children is not None:
            data["children"] = children
        if conjunction is not None:
            data["conjunction"] = conjunction
        if negated is not None:
            data["negated"] = negated
        super().__init__(**data)

    @field_validator("children", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [{"kind": "term", "value": v} if isinstance(v, str) else v for v in value]
        return value


KeyExpression = Annotated[Union[Term, Group], Field(discriminator="kind")]

Group.model_rebuild()


class FlattenOptions(BaseModel):
    """Per-query tolerances for the sloppy and fuzzy parse modes."""

    slop: int | None = Field(default=None, ge=0)
    fuzzy: int | float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Filter conditions
# ---------------------------------------------------------------------------


class Operator(str, Enum):
    """Comparison operators supported in filter conditions."""

    EQ = "="
    NE = "<>"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "IN"
    NOT_IN = "NOT IN"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT BETWEEN"


class Condition(BaseModel):
    """A single ``field <operator> value`` filter."""

    field: str
    value: Any = None
    operator: Operator = Operator.EQ


class ConditionGroup(BaseModel):
    """A set of filters combined with one conjunction."""

    conjunction: Conjunction = Conjunction.AND
    conditions: list[Condition | ConditionGroup] = Field(default_factory=list)


ConditionGroup.model_rebuild()


# ---------------------------------------------------------------------------
# Carried query
# ---------------------------------------------------------------------------


class SolrQuery(BaseModel):
    """A search request on its way to Solr.

    Field names are Solr field names (possibly with a ``^boost`` suffix in
    ``query_fields``). The multilingual rewrite mutates the query in place and
    remembers the original keys so they can be restored after execution.
    """

    keys: KeyExpression | str | None = None
    parse_mode: ParseMode = ParseMode.PHRASE
    options: FlattenOptions = Field(default_factory=FlattenOptions)
    query_fields: list[str] = Field(default_factory=list)
    fulltext_fields: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    tags: set[str] = Field(default_factory=set)
    highlight_fields: dict[str, dict[str, Any]] = Field(default_factory=dict)
    mlt_fields: list[str] = Field(default_factory=list)
    facet_fields: list[str] = Field(default_factory=list)
    fields: list[str] = Field(default_factory=list)
    conditions: ConditionGroup = Field(default_factory=ConditionGroup)

    original_keys: KeyExpression | str | None = None
    original_parse_mode: ParseMode | None = None
    original_query_fields: list[str] | None = None

    @property
    def rewritten(self) -> bool:
        return self.original_parse_mode is not None

    def restore(self) -> None:
        """Put back the keys, parse mode and query fields saved by a rewrite."""
        if not self.rewritten:
            return
        self.keys = self.original_keys
        self.parse_mode = self.original_parse_mode  # type: ignore[assignment]
        self.query_fields = list(self.original_query_fields or [])
        self.original_keys = None
        self.original_parse_mode = None
        self.original_query_fields = None
