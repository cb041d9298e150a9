"""Detect double-booking of a persistent ingestion stream."""
from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from googleapiclient.errors import HttpError

from .models import ConflictWindow, ExistingBroadcast
from .youtube import YouTubeClient

LOGGER = logging.getLogger("livestream_scheduler.conflicts")


def first_conflict(
    broadcasts: Iterable[ExistingBroadcast],
    stream_id: str,
    start: dt.datetime,
    window_minutes: int,
    channel_id: Optional[str] = None,
) -> Optional[ExistingBroadcast]:
    """Return the first broadcast on ``stream_id`` whose window overlaps ``start``.

    A broadcast on the stream whose start time cannot be read is returned
    as a conflict.
    """

    candidate = ConflictWindow.starting_at(start, window_minutes)
    for broadcast in broadcasts:
        if not broadcast.bound_stream_id or broadcast.bound_stream_id != stream_id:
            continue
        if channel_id and broadcast.channel_id and broadcast.channel_id != channel_id:
            continue
        if broadcast.start_unreadable:
            return broadcast
        if not broadcast.comparable:
            continue
        existing = ConflictWindow.starting_at(broadcast.scheduled_start, window_minutes)
        if existing.overlaps(candidate):
            return broadcast
    return None


class ConflictDetector:
    def __init__(
        self,
        client: YouTubeClient,
        channel_id: str,
        zone: ZoneInfo,
        window_minutes: int = 90,
        page_size: int = 25,
    ) -> None:
        self._client = client
        self._channel_id = channel_id
        self._zone = zone
        self._window_minutes = window_minutes
        self._page_size = page_size

    def find_conflict(
        self, stream_id: str, start: dt.datetime
    ) -> Optional[ExistingBroadcast]:
        """Query upcoming broadcasts and return the first one that collides.

        Upstream failures are logged and re-raised; an unanswered query is
        never reported as "no conflict".
        """

        try:
            items = self._client.list_upcoming_broadcasts(self._page_size)
        except HttpError as exc:
            LOGGER.error("Error fetching live broadcasts: %s", exc)
            for detail in getattr(exc, "error_details", None) or []:
                if isinstance(detail, dict):
                    LOGGER.error(
                        "- Reason: %s - Message: %s",
                        detail.get("reason"),
                        detail.get("message"),
                    )
            raise

        broadcasts = [ExistingBroadcast.from_api(item) for item in items]
        conflict = first_conflict(
            broadcasts, stream_id, start, self._window_minutes, self._channel_id
        )
        if conflict is not None:
            LOGGER.error(
                "Conflict with existing livestream: title=%s id=%s scheduled=%s bound_stream=%s",
                conflict.title,
                conflict.broadcast_id,
                conflict.start_label(self._zone),
                conflict.bound_stream_id,
            )
        return conflict

    def has_conflict(self, stream_id: str, start: dt.datetime) -> bool:
        return self.find_conflict(stream_id, start) is not None
