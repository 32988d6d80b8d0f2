"""
streams.py - Publish/subscribe plumbing for ledger observation streams

The ledger publishes committed records to keyed streams; clients subscribe
handlers to the streams they care about. Every subscribe() returns a
Subscription handle that can be disposed on its own or collected into a
CompositeSubscription and released together.

Handlers are invoked on the thread that committed the atom. A failing
handler is logged and skipped; it never breaks delivery to other handlers
or the commit that triggered it.
"""

from __future__ import annotations
from threading import RLock
from typing import Any, Callable, Dict, Hashable, List, Optional
import logging

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__name__", repr(handler))


class Subscription:
    """
    Handle for one registered handler.

    dispose() is idempotent and safe to call from any thread, including from
    inside the handler itself.
    """

    def __init__(self, on_dispose: Optional[Callable[[], None]] = None):
        self._on_dispose = on_dispose
        self._disposed = False
        self._lock = RLock()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


class CompositeSubscription:
    """
    A group of subscriptions released together.

    clear() disposes every member and leaves the composite reusable;
    dispose() does the same and disposes anything added afterwards on arrival.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._disposed = False
        self._lock = RLock()

    def add(self, subscription: Subscription) -> Subscription:
        with self._lock:
            if not self._disposed:
                self._subscriptions.append(subscription)
                return subscription
        subscription.dispose()
        return subscription

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def clear(self) -> None:
        with self._lock:
            members, self._subscriptions = self._subscriptions, []
        for subscription in members:
            subscription.dispose()

    def dispose(self) -> None:
        with self._lock:
            self._disposed = True
        self.clear()


class EventStreams:
    """
    Keyed publish/subscribe dispatcher.

    Keys are arbitrary hashables chosen by the publisher, for example
    ``("transfers", address)``. Delivery to a key happens in publish order.

    Thread Safety:
        subscribe, publish and disposal all take the same re-entrant lock,
        so a handler may subscribe, unsubscribe or trigger another publish
        from inside its own callback.
    """

    def __init__(self):
        self._handlers: Dict[Hashable, List[Handler]] = {}
        self._lock = RLock()

    def subscribe(self, key: Hashable, handler: Handler) -> Subscription:
        """Register handler for key and return its Subscription."""
        with self._lock:
            self._handlers.setdefault(key, []).append(handler)
            logger.debug("Subscribed handler %s to %s", _handler_name(handler), key)
        return Subscription(lambda: self._unsubscribe(key, handler))

    def _unsubscribe(self, key: Hashable, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(key)
            if not handlers:
                return
            try:
                handlers.remove(handler)
            except ValueError:
                logger.warning("Handler %s was not subscribed to %s", _handler_name(handler), key)
                return
            if not handlers:
                del self._handlers[key]
            logger.debug("Unsubscribed handler %s from %s", _handler_name(handler), key)

    def publish(self, key: Hashable, record: Any) -> int:
        """
        Deliver record to every handler subscribed to key.

        Returns:
            Number of handlers that completed without raising.
        """
        with self._lock:
            delivered = 0
            for handler in list(self._handlers.get(key, ())):
                try:
                    handler(record)
                    delivered += 1
                except Exception:
                    logger.exception("Error in stream handler %s for %s", _handler_name(handler), key)
            return delivered

    def handler_count(self, key: Optional[Hashable] = None) -> int:
        with self._lock:
            if key is not None:
                return len(self._handlers.get(key, ()))
            return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
