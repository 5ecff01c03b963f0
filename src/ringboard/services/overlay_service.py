"""Priority scheduler that keeps exactly one overlay surface visible.

Only the top of the stack is visible. The stack grows past one entry only
when a critical overlay interrupts a non-critical one; everything else
waits in the queue until the stack empties. Surfaces are opaque to the
scheduler.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, List

from ringboard.core.context import GameContext
from ringboard.core.timers import TimerHandle
from ringboard.core.types import OverlayPriority

logger = logging.getLogger(__name__)

OVERLAY_TIMER_GROUP = "overlay"
PRIORITY_RANK: Dict[OverlayPriority, int] = {"critical": 4, "high": 3, "normal": 2, "low": 1}


def overlay_prefix(overlay_id: str) -> str:
    """Dedupe key: the id up to its first dash."""
    return overlay_id.split("-", 1)[0]


@dataclass(slots=True)
class OverlayRequest:
    kind: str
    surface: Any = None
    priority: OverlayPriority = "normal"
    id: str | None = None
    dismissible: bool = True
    auto_close_ms: int | None = None
    on_close: Callable[[], None] | None = None


@dataclass(slots=True)
class OverlayEntry:
    id: str
    request: OverlayRequest
    sequence: int
    requested_at: datetime
    shown_at: datetime | None = None
    auto_close: TimerHandle | None = None

    @property
    def priority(self) -> OverlayPriority:
        return self.request.priority

    @property
    def rank(self) -> int:
        return PRIORITY_RANK.get(self.request.priority, PRIORITY_RANK["normal"])


@dataclass(slots=True)
class OverlayHistoryEntry:
    id: str
    kind: str
    priority: OverlayPriority
    shown_at: datetime


@dataclass(slots=True)
class OverlayEvent:
    """Base class for overlay scheduler events."""


@dataclass(slots=True)
class OverlayShownEvent(OverlayEvent):
    overlay_id: str
    kind: str
    priority: OverlayPriority
    resumed: bool = False
    interrupted_id: str | None = None


@dataclass(slots=True)
class OverlayQueuedEvent(OverlayEvent):
    overlay_id: str
    kind: str
    priority: OverlayPriority
    queue_length: int


@dataclass(slots=True)
class OverlayClosedEvent(OverlayEvent):
    overlay_id: str
    kind: str
    reason: str
    was_visible: bool


@dataclass(slots=True)
class OverlaySnapshot:
    stack: List[str] = field(default_factory=list)
    queue: List[str] = field(default_factory=list)


class OverlayScheduler:
    """Stack + queue coordinator for blocking UI surfaces."""

    def __init__(self, context: GameContext) -> None:
        self._context = context
        self._stack: List[OverlayEntry] = []
        self._queue: List[OverlayEntry] = []
        self._history: Deque[OverlayHistoryEntry] = deque(
            maxlen=max(1, context.config.overlay_history_limit)
        )
        self._sequence = 0

    @property
    def current(self) -> OverlayEntry | None:
        return self._stack[-1] if self._stack else None

    @property
    def has_visible(self) -> bool:
        return bool(self._stack)

    @property
    def stack(self) -> List[OverlayEntry]:
        return list(self._stack)

    @property
    def queue(self) -> List[OverlayEntry]:
        return list(self._queue)

    @property
    def history(self) -> List[OverlayHistoryEntry]:
        return list(self._history)

    def snapshot(self) -> OverlaySnapshot:
        return OverlaySnapshot(
            stack=[entry.id for entry in self._stack],
            queue=[entry.id for entry in self._queue],
        )

    def is_visible(self, overlay_id: str) -> bool:
        current = self.current
        return current is not None and current.id == overlay_id

    def contains(self, overlay_id: str) -> bool:
        return self._find(overlay_id) is not None

    def was_recently_shown(self, id_prefix: str, window_ms: float) -> bool:
        cutoff = self._context.clock.now() - timedelta(milliseconds=window_ms)
        return any(
            entry.id.startswith(id_prefix) and entry.shown_at >= cutoff for entry in self._history
        )

    def show(self, request: OverlayRequest) -> str | None:
        """Request a surface. Returns its id, or None when deduped."""
        self._sequence += 1
        overlay_id = request.id or f"{request.kind}-{self._sequence}"
        prefix = overlay_prefix(overlay_id)
        if any(entry.id.startswith(prefix) for entry in self._stack + self._queue):
            logger.debug("overlay_deduped id=%s prefix=%s", overlay_id, prefix)
            return None

        entry = OverlayEntry(
            id=overlay_id,
            request=request,
            sequence=self._sequence,
            requested_at=self._context.clock.now(),
        )
        top = self.current
        if top is None:
            self._stack.append(entry)
            self._on_visible(entry)
        elif request.priority == "critical" and top.priority != "critical":
            self._stack.append(entry)
            self._on_visible(entry, interrupted=top)
        else:
            self._queue.append(entry)
            logger.debug("overlay_queued id=%s priority=%s", overlay_id, request.priority)
            self._context.events.publish(
                OverlayQueuedEvent(overlay_id, request.kind, request.priority, len(self._queue))
            )
        return overlay_id

    def close(self, overlay_id: str, *, reason: str = "closed") -> bool:
        entry = self._find(overlay_id)
        if entry is None:
            return False
        was_visible = self.is_visible(overlay_id)
        if entry in self._stack:
            self._stack.remove(entry)
        else:
            self._queue.remove(entry)
        underneath = self.current if was_visible else None
        self._finish(entry)
        self._process_queue()
        if underneath is not None and self.current is underneath:
            self._on_visible(underneath)
        self._context.events.publish(
            OverlayClosedEvent(entry.id, entry.request.kind, reason, was_visible)
        )
        return True

    def close_current(self, *, reason: str = "closed") -> bool:
        current = self.current
        if current is None:
            return False
        return self.close(current.id, reason=reason)

    def close_all(self, *, reason: str = "close_all") -> int:
        """Drain stack and queue, firing every on_close."""
        drained = list(reversed(self._stack)) + list(self._queue)
        visible_id = self.current.id if self.current else None
        self._stack.clear()
        self._queue.clear()
        for entry in drained:
            self._finish(entry)
        for entry in drained:
            self._context.events.publish(
                OverlayClosedEvent(entry.id, entry.request.kind, reason, entry.id == visible_id)
            )
        return len(drained)

    def _find(self, overlay_id: str) -> OverlayEntry | None:
        for entry in self._stack + self._queue:
            if entry.id == overlay_id:
                return entry
        return None

    def _finish(self, entry: OverlayEntry) -> None:
        self._context.timers.cancel(entry.auto_close)
        entry.auto_close = None
        callback = entry.request.on_close
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("overlay_on_close_failed id=%s", entry.id)

    def _on_visible(self, entry: OverlayEntry, *, interrupted: OverlayEntry | None = None) -> None:
        resumed = entry.shown_at is not None
        if not resumed:
            now = self._context.clock.now()
            entry.shown_at = now
            self._history.append(
                OverlayHistoryEntry(entry.id, entry.request.kind, entry.priority, now)
            )
            if entry.request.auto_close_ms is not None:
                entry.auto_close = self._context.timers.schedule(
                    entry.request.auto_close_ms,
                    lambda overlay_id=entry.id: self.close(overlay_id, reason="auto_close"),
                    group=OVERLAY_TIMER_GROUP,
                    label=f"auto_close:{entry.id}",
                )
        logger.debug("overlay_shown id=%s priority=%s resumed=%s", entry.id, entry.priority, resumed)
        self._context.events.publish(
            OverlayShownEvent(
                entry.id,
                entry.request.kind,
                entry.priority,
                resumed=resumed,
                interrupted_id=interrupted.id if interrupted else None,
            )
        )

    def _process_queue(self) -> None:
        while self._queue:
            if not self._stack:
                best = max(self._queue, key=lambda entry: (entry.rank, -entry.sequence))
                self._queue.remove(best)
                self._stack.append(best)
                self._on_visible(best)
                continue
            top = self._stack[-1]
            if top.priority == "critical":
                return
            critical = [entry for entry in self._queue if entry.priority == "critical"]
            if not critical:
                return
            promoted = critical[0]
            self._queue.remove(promoted)
            self._stack.append(promoted)
            self._on_visible(promoted, interrupted=top)
