"""Data models for real-time row change events."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Kind of row change."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A row change pushed to subscribers.

    `record` holds the row as JSON-compatible values. For deletes it holds
    at least the primary key and the filter columns of the removed row.
    """

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    table: str = Field(description="Table the row belongs to")
    record: dict[str, Any] = Field(default_factory=dict)

    def matches(self, table: str, filters: dict[str, str] | None) -> bool:
        """Check whether this event passes a subscription filter.

        Args:
            table: Subscribed table name, or "*" for every table
            filters: Column equality filters, all of which must hold

        Returns:
            True if the event should be delivered
        """
        if table != "*" and table != self.table:
            return False
        if not filters:
            return True
        return all(str(self.record.get(column)) == value for column, value in filters.items())
