"""
Closed-trade history.

HistoryStore keeps a bounded, newest-first list of HistoryRecords per
simulator type and persists it through a KeyValueStore under
"sim_history_<type>". Writes truncate to the cap immediately, so the oldest
record is evicted on overflow.

Several stores can share one key (several open views of the same simulator
type). They converge through an explicit HistoryBus: every write publishes
the key, and every other store on that key reloads from persistence.

Persistence is best-effort: read/write failures are logged and swallowed,
and the in-memory list stays authoritative for the session.
"""

import json
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

import pandas as pd

from .storage import KeyValueStore, MemoryStore
from .types import HistoryRecord
from ..config.constants import HISTORY_KEY_PREFIX
from ..utils.helpers import safe_ratio
from ..utils.logger import get_logger

logger = get_logger()

Listener = Callable[[str], None]


# ─────────────────────────────────────────────────────────────────────────────
# Bus
# ─────────────────────────────────────────────────────────────────────────────

class HistoryBus:
    """
    In-process pub-sub keyed by storage key.

    Construct one per process (or per test) and hand it to every
    HistoryStore that should see the others' writes.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[tuple]] = {}

    def subscribe(self, key: str, listener: Listener, owner: object = None) -> Callable[[], None]:
        """
        Register a listener for a key.

        Args:
            key: Storage key
            listener: Called with the key on every publish
            owner: Publisher identity; a listener is skipped when its own
                owner publishes

        Returns:
            Function that removes the subscription
        """
        entry = (listener, owner)
        self._subscribers.setdefault(key, []).append(entry)

        def unsubscribe() -> None:
            entries = self._subscribers.get(key, [])
            if entry in entries:
                entries.remove(entry)

        return unsubscribe

    def publish(self, key: str, source: object = None) -> int:
        """
        Notify subscribers of a key.

        Returns:
            Number of listeners called
        """
        called = 0
        for listener, owner in list(self._subscribers.get(key, [])):
            if source is not None and owner is source:
                continue
            listener(key)
            called += 1
        return called

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, []))


# ─────────────────────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HistorySummary:
    """Aggregate of a history list."""
    count: int
    wins: int
    total_pnl: float
    win_rate: float  # Percent

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "wins": self.wins,
            "total_pnl": self.total_pnl,
            "win_rate": self.win_rate,
        }


def summarize(records: List[HistoryRecord]) -> HistorySummary:
    """Total PnL, win count and win rate (0 for an empty list)."""
    wins = sum(1 for r in records if r.is_win)
    return HistorySummary(
        count=len(records),
        wins=wins,
        total_pnl=sum(r.pnl for r in records),
        win_rate=safe_ratio(wins, len(records)) * 100,
    )


class HistoryStore:
    """
    Bounded, persisted, newest-first trade history for one simulator type.

    Usage:
        bus = HistoryBus()
        history = HistoryStore("margin", MemoryStore(), bus, max_records=200)
        stored = history.append(record)
        history.list_all()[0] is stored  # newest first
    """

    def __init__(
        self,
        sim_type: str,
        store: Optional[KeyValueStore] = None,
        bus: Optional[HistoryBus] = None,
        max_records: int = 200,
        now_ms: Optional[Callable[[], int]] = None,
    ):
        if max_records < 1:
            raise ValueError(f"max_records must be positive, got {max_records}")
        self.sim_type = sim_type
        self.key = f"{HISTORY_KEY_PREFIX}{sim_type}"
        self.max_records = max_records
        self._store = store if store is not None else MemoryStore()
        self._bus = bus if bus is not None else HistoryBus()
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))
        self._listeners: List[Callable[[], None]] = []

        loaded = self._read()
        self._records: List[HistoryRecord] = loaded[: self.max_records] if loaded else []
        self._unsubscribe = self._bus.subscribe(self.key, self._on_external_change, owner=self)

    # ─────────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────────

    def _read(self) -> Optional[List[HistoryRecord]]:
        """Load the persisted list. Returns None when the store is unreadable."""
        try:
            raw = self._store.get(self.key)
            if not raw:
                return []
            data = json.loads(raw)
            return [HistoryRecord.from_dict(item) for item in data]
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.warning(f"Failed to read trade history '{self.key}': {e}")
            return None

    def _write(self, records: List[HistoryRecord]) -> None:
        try:
            self._store.set(self.key, json.dumps([r.to_dict() for r in records]))
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to persist trade history '{self.key}': {e}")

    def _next_id(self, current: List[HistoryRecord]) -> int:
        last_id = max((r.id for r in current), default=0)
        return max(self._now_ms(), last_id + 1)

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def append(self, record: HistoryRecord) -> HistoryRecord:
        """
        Prepend a record, truncate to max_records, persist and notify.

        The record gets a fresh id unique within this key.

        Returns:
            The stored record
        """
        persisted = self._read()
        current = persisted if persisted is not None else self._records
        stored = replace(record, id=self._next_id(current))
        updated = [stored] + current
        self._records = updated[: self.max_records]
        self._write(self._records)
        self._changed()
        return stored

    def list_all(self) -> List[HistoryRecord]:
        """All records, newest first."""
        return list(self._records)

    def reset(self) -> None:
        """Remove every record for this key."""
        try:
            self._store.remove(self.key)
        except OSError as e:
            logger.warning(f"Failed to clear trade history '{self.key}': {e}")
        self._records = []
        self._changed()

    def summary(self) -> HistorySummary:
        return summarize(self._records)

    def to_frame(self) -> pd.DataFrame:
        """Records as a DataFrame (newest first)."""
        columns = [
            "id", "symbol", "direction", "entry_price", "exit_price", "size",
            "leverage", "pnl", "pnl_pct", "reason", "opened_at", "closed_at",
        ]
        return pd.DataFrame([r.to_dict() for r in self._records], columns=columns)

    # ─────────────────────────────────────────────────────────────────────────
    # Subscriptions
    # ─────────────────────────────────────────────────────────────────────────

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call listener after every change, local or from another store."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Detach from the bus."""
        self._unsubscribe()
        self._listeners.clear()

    def _changed(self) -> None:
        self._bus.publish(self.key, source=self)
        self._notify_local()

    def _on_external_change(self, key: str) -> None:
        loaded = self._read()
        if loaded is not None:
            self._records = loaded[: self.max_records]
        self._notify_local()

    def _notify_local(self) -> None:
        for listener in list(self._listeners):
            listener()

    def __len__(self) -> int:
        return len(self._records)
