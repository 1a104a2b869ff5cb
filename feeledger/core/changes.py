"""In-process change notifications for fee tables.

Subscribers register per table and are called after a write has been
committed. There is no module-level feed: the application owns one instance
(``app.state.change_feed``) and hands it to repositories explicitly.
"""

import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel

from feeledger.core.enums import ChangeEvent

logger = logging.getLogger(__name__)


class Change(BaseModel):
    table: str
    event: ChangeEvent
    record_id: UUID


ChangeCallback = Callable[[Change], Union[None, Awaitable[None]]]


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, token: int) -> None:
        self.feed = feed
        self.table = table
        self.token = token

    def unsubscribe(self) -> None:
        self.feed.unsubscribe(self)


class ChangeFeed:
    def __init__(self) -> None:
        # table -> token -> callback
        self._subscribers: Dict[str, Dict[int, ChangeCallback]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        token = next(self._tokens)
        self._subscribers.setdefault(table, {})[token] = callback
        return Subscription(self, table, token)

    def unsubscribe(self, subscription: Subscription) -> None:
        callbacks = self._subscribers.get(subscription.table)
        if not callbacks:
            return
        callbacks.pop(subscription.token, None)
        if not callbacks:
            del self._subscribers[subscription.table]

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is not None:
            return len(self._subscribers.get(table, {}))
        return sum(len(c) for c in self._subscribers.values())

    async def publish(self, change: Change) -> None:
        callbacks: List[ChangeCallback] = list(self._subscribers.get(change.table, {}).values())
        for callback in callbacks:
            try:
                result: Any = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Change subscriber failed for %s %s", change.table, change.record_id)
