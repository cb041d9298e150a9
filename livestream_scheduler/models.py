"""Value types passed between the scheduler components."""
from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

LOGGER = logging.getLogger("livestream_scheduler.models")


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an RFC 3339 timestamp as returned by the YouTube API."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


@dataclass(frozen=True)
class ScheduleRequest:
    """One weekly service to schedule."""

    label: str
    hour: int
    minute: int
    stream_id: str

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be within 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be within 0-59, got {self.minute}")


@dataclass(frozen=True)
class ExistingBroadcast:
    broadcast_id: str
    title: str = ""
    bound_stream_id: Optional[str] = None
    scheduled_start: Optional[dt.datetime] = None
    channel_id: Optional[str] = None
    raw_start: str = ""

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "ExistingBroadcast":
        snippet = item.get("snippet") or {}
        details = item.get("contentDetails") or {}
        raw_start = snippet.get("scheduledStartTime") or ""
        scheduled_start = None
        if raw_start:
            try:
                scheduled_start = parse_timestamp(raw_start)
            except ValueError:
                LOGGER.warning(
                    "Broadcast %s has an unreadable scheduledStartTime %r",
                    item.get("id", ""),
                    raw_start,
                )
        return cls(
            broadcast_id=item.get("id", ""),
            title=snippet.get("title", ""),
            bound_stream_id=details.get("boundStreamId") or None,
            scheduled_start=scheduled_start,
            channel_id=snippet.get("channelId") or None,
            raw_start=raw_start,
        )

    @property
    def comparable(self) -> bool:
        return bool(self.bound_stream_id) and self.scheduled_start is not None

    @property
    def start_unreadable(self) -> bool:
        return bool(self.raw_start) and self.scheduled_start is None

    def start_label(self, zone: dt.tzinfo) -> str:
        if self.scheduled_start is None:
            return self.raw_start or "unscheduled"
        return self.scheduled_start.astimezone(zone).strftime("%Y-%m-%d %H:%M %Z")


@dataclass(frozen=True)
class ConflictWindow:
    """Half-open interval ``[start, end)`` reserved around a broadcast start."""

    start: dt.datetime
    end: dt.datetime

    @classmethod
    def starting_at(cls, start: dt.datetime, minutes: int) -> "ConflictWindow":
        # elapsed minutes, not wall-clock minutes, across DST changes
        start = start.astimezone(dt.timezone.utc)
        return cls(start=start, end=start + dt.timedelta(minutes=minutes))

    def overlaps(self, other: "ConflictWindow") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Success:
    title: str
    link: str

    ok = True


@dataclass(frozen=True)
class Failure:
    title: str
    error: str
    status: Optional[int] = None

    ok = False


TransactionResult = Union[Success, Failure]


@dataclass
class RunSummary:
    """Results of one run, one slot per request, each slot written once."""

    labels: Sequence[str]
    _slots: List[Optional[TransactionResult]] = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        self._slots = [None] * len(self.labels)

    def record(self, index: int, result: TransactionResult) -> None:
        with self._lock:
            if self._slots[index] is not None:
                raise ValueError(f"result for {self.labels[index]!r} already recorded")
            self._slots[index] = result

    @property
    def results(self) -> List[TransactionResult]:
        with self._lock:
            return [slot for slot in self._slots if slot is not None]

    @property
    def successes(self) -> List[Success]:
        return [result for result in self.results if isinstance(result, Success)]

    @property
    def failures(self) -> List[Failure]:
        return [result for result in self.results if isinstance(result, Failure)]

    @property
    def complete(self) -> bool:
        with self._lock:
            return all(slot is not None for slot in self._slots)
