"""Change notification: "the ledger changed, fetch it again"."""

import logging
import threading
from collections.abc import Callable

from .models import LedgerSnapshot

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """In-process push channel for store change signals.

    Signals carry no payload. Subscribers must treat every signal, including
    duplicates, as a request to refetch.
    """

    def __init__(self):
        """Initialize with no subscribers."""
        self._subscribers: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback for change signals.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self) -> None:
        """Signal every subscriber that the store changed."""
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback()
            except Exception:
                logger.exception(f"Change subscriber {callback!r} failed")


class SnapshotFeed:
    """Refetches a snapshot on every change signal and hands it to listeners.

    The feed never patches a snapshot in memory; each signal costs one full
    fetch, which makes repeated signals harmless.
    """

    def __init__(
        self,
        fetch: Callable[[], LedgerSnapshot],
        notifier: ChangeNotifier | None = None,
    ):
        """
        Initialize the feed.

        Args:
            fetch: Fetches a fresh snapshot (e.g. store.fetch_snapshot)
            notifier: Optional notifier to subscribe to right away
        """
        self._fetch = fetch
        self._listeners: list[Callable[[LedgerSnapshot], None]] = []
        self._lock = threading.Lock()
        self._unsubscribe: Callable[[], None] | None = None
        self.latest: LedgerSnapshot | None = None

        if notifier is not None:
            self._unsubscribe = notifier.subscribe(self.refresh)

    def add_listener(self, listener: Callable[[LedgerSnapshot], None]) -> None:
        """Register a listener for fresh snapshots."""
        self._listeners.append(listener)

    def refresh(self) -> LedgerSnapshot:
        """Fetch a fresh snapshot and publish it to listeners."""
        with self._lock:
            snapshot = self._fetch()
            self.latest = snapshot

        logger.debug(f"Refreshed snapshot with {len(snapshot)} entries")
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def close(self) -> None:
        """Stop listening for change signals."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
