"""
In-process row-change notification.

Writes to ``complaints`` and ``complaint_messages`` publish a ``RowChange``
once their transaction commits. Subscribers (the live WebSocket streams) hold
a ``Subscription`` with its own queue, optionally filtered by column equality.
``LiveView`` applies those changes as deltas to an index keyed by row id.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect

logger = logging.getLogger(__name__)


class ChangeEvent(str, enum.Enum):
    """Kinds of row change"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RowChange:
    """A committed change to one row, carrying the row's JSON-safe column values"""
    table: str
    event: ChangeEvent
    row: Dict[str, Any]

    def matches(self, filters: Dict[str, Any]) -> bool:
        return all(str(self.row.get(column)) == str(value) for column, value in filters.items())


def row_snapshot(instance: Any) -> Dict[str, Any]:
    """Column values of an ORM instance, encoded for JSON"""
    mapper = inspect(instance).mapper
    return jsonable_encoder(
        {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
    )


@dataclass(eq=False)
class Subscription:
    """One subscriber's view of a table's changes"""
    table: str
    filters: Dict[str, Any] = field(default_factory=dict)
    queue: "asyncio.Queue[RowChange]" = field(default_factory=asyncio.Queue)

    def wants(self, change: RowChange) -> bool:
        return change.table == self.table and change.matches(self.filters)

    async def get(self) -> RowChange:
        return await self.queue.get()


class ChangeBroker:
    """Fan committed row changes out to every matching subscription"""

    def __init__(self):
        self._subscriptions: Set[Subscription] = set()

    def subscribe(self, table: str, filters: Optional[Dict[str, Any]] = None) -> Subscription:
        subscription = Subscription(table=table, filters=dict(filters or {}))
        self._subscriptions.add(subscription)
        logger.debug("Subscribed to %s %s", table, subscription.filters)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        logger.debug("Unsubscribed from %s %s", subscription.table, subscription.filters)

    def publish(self, change: RowChange) -> int:
        """Queue the change for each matching subscriber; returns how many received it"""
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.wants(change):
                subscription.queue.put_nowait(change)
                delivered += 1
        return delivered

    def publish_rows(self, table: str, event: ChangeEvent, instances: Iterable[Any]) -> None:
        for instance in instances:
            self.publish(RowChange(table=table, event=event, row=row_snapshot(instance)))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


class LiveView:
    """
    Rows of one subscription, indexed by id.

    Inserts and updates upsert by id, deletes remove; ``reset`` replaces the
    whole index after a full reload.
    """

    def __init__(
        self,
        key: str = "id",
        sort_key: Optional[Callable[[Dict[str, Any]], Any]] = None,
        reverse: bool = False,
    ):
        self.key = key
        self.sort_key = sort_key
        self.reverse = reverse
        self._rows: Dict[str, Dict[str, Any]] = {}

    def reset(self, rows: Iterable[Dict[str, Any]]) -> None:
        self._rows = {str(row[self.key]): row for row in rows}

    def apply(self, event: ChangeEvent, row: Dict[str, Any]) -> bool:
        """Apply one delta; returns False when it changed nothing"""
        row_id = str(row[self.key])
        if event == ChangeEvent.DELETE:
            return self._rows.pop(row_id, None) is not None
        if self._rows.get(row_id) == row:
            return False
        self._rows[row_id] = row
        return True

    def get(self, row_id: Any) -> Optional[Dict[str, Any]]:
        return self._rows.get(str(row_id))

    def items(self) -> List[Dict[str, Any]]:
        rows = list(self._rows.values())
        if self.sort_key is not None:
            rows.sort(key=self.sort_key, reverse=self.reverse)
        return rows

    def __len__(self) -> int:
        return len(self._rows)


# Singleton
_change_broker: Optional[ChangeBroker] = None


def get_change_broker() -> ChangeBroker:
    """Get or create change broker singleton"""
    global _change_broker
    if _change_broker is None:
        _change_broker = ChangeBroker()
    return _change_broker
