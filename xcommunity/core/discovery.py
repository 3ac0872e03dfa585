"""Scroll discovery state machine and per-run scrape state."""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from xcommunity.core.store import CollectionStore
from xcommunity.exceptions import DiscoveryError
from xcommunity.models.result import SettledReason


class DiscoveryState(str, Enum):
    """Phase of the discovery loop."""
    SCANNING = "scanning"
    SCROLLING = "scrolling"
    SETTLED = "settled"


class ScrollDiscoveryLoop:
    """
    Decides when an infinite member feed is exhausted.

    SCANNING -> SCROLLING once a pass over the rendered rows finishes.
    SCROLLING -> SCANNING when a scroll reveals an unprocessed handle.
    SCROLLING -> SCROLLING on a stagnant scroll; after ``stagnation_threshold``
    consecutive stagnant scrolls, or ``max_scrolls`` scrolls in total, the loop
    is SETTLED for good.
    """

    def __init__(self, stagnation_threshold: int = 5, max_scrolls: int = 2000):
        if stagnation_threshold < 1:
            raise ValueError("stagnation_threshold must be at least 1")
        if max_scrolls < 1:
            raise ValueError("max_scrolls must be at least 1")
        self.stagnation_threshold = stagnation_threshold
        self.max_scrolls = max_scrolls
        self.state = DiscoveryState.SCANNING
        self.stagnant_scrolls = 0
        self.scrolls = 0
        self.settled_reason: SettledReason | None = None

    @property
    def settled(self) -> bool:
        return self.state == DiscoveryState.SETTLED

    def _require(self, state: DiscoveryState) -> None:
        if self.state != state:
            raise DiscoveryError(f"Expected {state.value} state, loop is {self.state.value}")

    def scan_complete(self) -> DiscoveryState:
        """A pass over the currently rendered rows finished."""
        self._require(DiscoveryState.SCANNING)
        self.state = DiscoveryState.SCROLLING
        return self.state

    def scroll_complete(self, fresh_handles: int) -> DiscoveryState:
        """
        A scroll was issued and the page settled.

        Args:
            fresh_handles: Number of visible handles not yet processed
        """
        self._require(DiscoveryState.SCROLLING)
        self.scrolls += 1

        if fresh_handles > 0:
            self.stagnant_scrolls = 0
            self.state = DiscoveryState.SCANNING
        else:
            self.stagnant_scrolls += 1
            if self.stagnant_scrolls >= self.stagnation_threshold:
                self._settle(SettledReason.STAGNATION)

        if not self.settled and self.scrolls >= self.max_scrolls:
            self._settle(SettledReason.SCROLL_CAP)
        return self.state

    def _settle(self, reason: SettledReason) -> None:
        self.state = DiscoveryState.SETTLED
        self.settled_reason = reason


@dataclass
class ScrapeSession:
    """Mutable state of one scrape run, owned by the orchestrator."""

    store: CollectionStore
    loop: ScrollDiscoveryLoop
    max_row_attempts: int = 2
    refresh_existing: bool = False
    processed_this_run: set = field(default_factory=set)
    failed_attempts: Counter = field(default_factory=Counter)
    new_profiles: int = 0
    refreshed_profiles: int = 0
    changes_since_checkpoint: int = 0
    skipped_rows: int = 0
    degraded_profiles: int = 0
    images_downloaded: int = 0
    images_failed: int = 0
    checkpoints: int = 0

    def should_process(self, handle: str | None) -> bool:
        """True for a real handle that is neither processed nor given up on."""
        if not handle or handle in self.processed_this_run:
            return False
        if not self.refresh_existing and self.store.has(handle):
            return False
        return self.failed_attempts[handle] < self.max_row_attempts

    def mark_processed(self, handle: str) -> None:
        self.processed_this_run.add(handle)

    def record_failure(self, handle: str | None) -> None:
        self.skipped_rows += 1
        if handle:
            self.failed_attempts[handle] += 1

    def fresh_handles(self, handles: Iterable[str]) -> list[str]:
        return [h for h in dict.fromkeys(handles) if self.should_process(h)]
