"""
Structured query filters.

Callers describe predicates as data; only the gateway turns them into the
store's filter expression syntax.
"""
from __future__ import annotations
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from timeclock.utils.dates import to_store_datetime

_FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


class Operator(str, Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


class Condition(BaseModel):
    """One field compared against one or more values (values are OR-ed)."""
    field: str
    operator: Operator = Operator.EQ
    values: List[Any] = Field(min_length=1)

    @field_validator("field")
    @classmethod
    def _safe_field(cls, value: str) -> str:
        if not _FIELD_PATTERN.match(value):
            raise ValueError(f"Invalid filter field: {value!r}")
        return value

    def to_expression(self) -> str:
        parts = [f"{self.field} {self.operator.value} {render_value(v)}" for v in self.values]
        if len(parts) == 1:
            return parts[0]
        return "(" + " || ".join(parts) + ")"


class Filter(BaseModel):
    """Conjunction of conditions."""
    conditions: List[Condition] = Field(default_factory=list)

    @classmethod
    def where(cls, field: str, operator: Operator | str, *values: Any) -> "Filter":
        return cls().and_where(field, operator, *values)

    def and_where(self, field: str, operator: Operator | str, *values: Any) -> "Filter":
        condition = Condition(field=field, operator=Operator(operator), values=list(values))
        return Filter(conditions=[*self.conditions, condition])

    def __and__(self, other: "Filter") -> "Filter":
        return Filter(conditions=[*self.conditions, *other.conditions])

    def is_empty(self) -> bool:
        return not self.conditions

    def to_expression(self) -> str:
        return " && ".join(c.to_expression() for c in self.conditions)


def render_value(value: Any) -> str:
    """Render a literal in the store's filter syntax."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, datetime):
        value = to_store_datetime(value)
    elif isinstance(value, date):
        value = value.isoformat()
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"
