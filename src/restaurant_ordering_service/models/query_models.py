"""Structured list queries: equality filters, one ordering column, a limit."""

from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, Field

RowT = TypeVar("RowT", bound=BaseModel)


class RowQuery(BaseModel):
    """Query applied to a list of visible rows.

    Attributes:
        filters: Column name to required value (all must match)
        order_by: Column to sort on, or None to keep store order
        ascending: Sort direction
        limit: Maximum number of rows to return
    """

    filters: dict[str, Any] = Field(default_factory=dict)
    order_by: str | None = None
    ascending: bool = True
    limit: int | None = Field(None, gt=0)

    def apply(self, rows: Sequence[RowT]) -> list[RowT]:
        """Filter, sort and truncate rows.

        Unknown filter or ordering columns raise ValueError so a typo never
        silently returns everything.

        Args:
            rows: Rows already passed through the row policies

        Returns:
            list: Matching rows in the requested order
        """
        if not rows:
            return []

        fields = type(rows[0]).model_fields
        for column in [*self.filters, *([self.order_by] if self.order_by else [])]:
            if column not in fields:
                raise ValueError(f"Unknown column: {column}")

        matched = [
            row
            for row in rows
            if all(_matches(getattr(row, column), value) for column, value in self.filters.items())
        ]

        if self.order_by:
            matched.sort(key=lambda row: getattr(row, self.order_by), reverse=not self.ascending)

        if self.limit is not None:
            matched = matched[: self.limit]

        return matched


def _matches(actual: Any, expected: Any) -> bool:
    # enum columns compare against their raw value
    if hasattr(actual, "value") and not hasattr(expected, "value"):
        return bool(actual.value == expected)
    return bool(actual == expected)
