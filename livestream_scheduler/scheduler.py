"""Identity gate and the create/update/bind scheduling transaction."""
from __future__ import annotations

import datetime as dt
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from googleapiclient.errors import HttpError

from .config import SchedulerConfig
from .conflicts import ConflictDetector
from .errors import (
    BindError,
    ChannelVerificationError,
    ConflictError,
    SchedulerError,
    describe_http_error,
    http_status,
)
from .models import (
    ExistingBroadcast,
    Failure,
    RunSummary,
    ScheduleRequest,
    Success,
    TransactionResult,
)
from .occurrence import next_occurrence, short_date
from .youtube import YouTubeClient, watch_link

LOGGER = logging.getLogger("livestream_scheduler.scheduler")

Clock = Callable[[], dt.datetime]


def verify_access(client: YouTubeClient) -> bool:
    """Check that the session can call the live API at all."""

    try:
        client.check_access()
    except HttpError as exc:
        LOGGER.error("YouTube API authorization check failed: %s", describe_http_error(exc))
        return False
    return True


def verify_channel(client: YouTubeClient, expected_channel_id: str) -> bool:
    """Return True only when the session acts as ``expected_channel_id``."""

    channel = client.list_my_channel()
    if not channel:
        LOGGER.error("No channel found for this account.")
        return False

    channel_id = channel.get("id", "")
    name = (channel.get("snippet") or {}).get("title", "")
    if channel_id != expected_channel_id:
        LOGGER.error(
            "Aborting: unauthorized YouTube channel %s (%s); expected channel id %s",
            name or "<unnamed>",
            channel_id or "<no id>",
            expected_channel_id,
        )
        return False

    LOGGER.info("Verified channel: %s (%s)", name, channel_id)
    return True


class BroadcastScheduler:
    """Schedules one broadcast per request once the channel is verified."""

    def __init__(
        self,
        client: YouTubeClient,
        config: SchedulerConfig,
        clock: Optional[Clock] = None,
    ) -> None:
        self._client = client
        self._config = config
        self._clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))
        self._zone = config.zone
        self._detector = ConflictDetector(
            client,
            channel_id=config.channel_id,
            zone=self._zone,
            window_minutes=config.conflict_window_minutes,
            page_size=config.page_size,
        )
        self._verified = False

    @property
    def verified(self) -> bool:
        return self._verified

    def verify(self) -> None:
        if not verify_channel(self._client, self._config.channel_id):
            raise ChannelVerificationError(
                f"Authenticated account is not channel {self._config.channel_id}"
            )
        self._verified = True

    def next_occurrence(self, request: ScheduleRequest) -> dt.datetime:
        return next_occurrence(
            request.hour, request.minute, self._zone, now=self._clock()
        )

    def describe(self, label: str, title: str) -> str:
        if self._config.primary_marker and self._config.primary_marker in label:
            return self._config.primary_description
        return title

    def schedule(self, request: ScheduleRequest) -> TransactionResult:
        """Run the transaction for ``request``; errors become a Failure."""

        if not self._verified:
            raise SchedulerError("Channel identity has not been verified for this run.")

        if not request.stream_id:
            LOGGER.error("No target stream id configured for %s", request.label)
            return Failure(
                title=request.label,
                error=f"Missing target stream id for: {request.label}",
            )

        try:
            return self._transact(request)
        except ConflictError as exc:
            return Failure(title=request.label, error=str(exc))
        except BindError as exc:
            return Failure(title=request.label, error=str(exc), status=exc.status)
        except HttpError as exc:
            return Failure(
                title=request.label,
                error=describe_http_error(exc),
                status=http_status(exc),
            )
        except Exception as exc:  # noqa: BLE001 - one request must not sink the run
            LOGGER.exception("Unexpected error scheduling %s", request.label)
            return Failure(title=request.label, error=describe_http_error(exc))

    def _transact(self, request: ScheduleRequest) -> Success:
        start = self.next_occurrence(request)
        conflict = self._detector.find_conflict(request.stream_id, start)
        if conflict is not None:
            raise ConflictError(self._conflict_message(conflict))

        title = f"{short_date(start)} {request.label}"
        description = self.describe(request.label, title)

        created = self._client.create_broadcast(title, description, start.isoformat())
        broadcast_id = created["id"]
        LOGGER.info("Created broadcast %s for %s", broadcast_id, title)

        try:
            self._client.update_video_metadata(
                broadcast_id, title, description, self._config.category_id
            )
        except Exception:
            LOGGER.error("Metadata update failed for %s; removing broadcast", broadcast_id)
            self._delete_quietly(broadcast_id)
            raise

        bound_stream_id = self._bind_or_rollback(request, broadcast_id)

        link = watch_link(broadcast_id)
        LOGGER.info(
            "Scheduled livestream: %s | id=%s | time=%s | stream=%s | link=%s",
            title,
            broadcast_id,
            start.strftime("%Y-%m-%d %H:%M %Z"),
            bound_stream_id,
            link,
        )
        return Success(title=title, link=link)

    def _bind_or_rollback(self, request: ScheduleRequest, broadcast_id: str) -> str:
        try:
            response = self._client.bind_broadcast(broadcast_id, request.stream_id)
        except Exception as exc:  # noqa: BLE001 - timeouts count as bind failures
            message = describe_http_error(exc)
            LOGGER.error("Failed to bind stream for: %s - %s", request.label, message)
            self._delete_quietly(broadcast_id)
            raise BindError(
                f"Failed to bind stream for: {request.label} - {message}",
                status=http_status(exc),
            ) from exc

        bound = ((response or {}).get("contentDetails") or {}).get("boundStreamId")
        if not bound or bound != request.stream_id:
            LOGGER.error(
                "Bind response for %s did not confirm stream %s (got %r)",
                broadcast_id,
                request.stream_id,
                bound,
            )
            self._delete_quietly(broadcast_id)
            raise BindError(f"Bind response missing boundStreamId for: {request.label}")
        return bound

    def _delete_quietly(self, broadcast_id: str) -> None:
        try:
            self._client.delete_broadcast(broadcast_id)
        except Exception as exc:  # noqa: BLE001 - best-effort compensation
            LOGGER.warning(
                "Failed to delete broadcast %s: %s", broadcast_id, describe_http_error(exc)
            )
            return
        LOGGER.info("Deleted broadcast %s after failed scheduling.", broadcast_id)

    def _conflict_message(self, conflict: ExistingBroadcast) -> str:
        return (
            "Conflicting scheduled livestream using the same stream ID: "
            f"'{conflict.title}' ({conflict.broadcast_id}) at "
            f"{conflict.start_label(self._zone)}"
        )

    def _sibling(self, client: YouTubeClient) -> "BroadcastScheduler":
        sibling = BroadcastScheduler(client, self._config, self._clock)
        sibling._verified = self._verified
        return sibling

    def schedule_all(
        self,
        requests: Sequence[ScheduleRequest],
        workers: int = 1,
        client_factory: Optional[Callable[[], YouTubeClient]] = None,
    ) -> RunSummary:
        """Schedule every request and collect one result per request.

        With ``workers > 1`` each worker thread uses its own client from
        ``client_factory``; the steps of a single request stay sequential.
        """

        if not self._verified:
            raise SchedulerError("Channel identity has not been verified for this run.")

        summary = RunSummary(labels=[request.label for request in requests])
        if workers <= 1 or client_factory is None or len(requests) <= 1:
            for index, request in enumerate(requests):
                summary.record(index, self._schedule_logged(request))
            return summary

        local = threading.local()

        def _task(index: int, request: ScheduleRequest) -> None:
            scheduler = getattr(local, "scheduler", None)
            if scheduler is None:
                try:
                    scheduler = self._sibling(client_factory())
                except Exception as exc:  # noqa: BLE001
                    LOGGER.error("Could not build API client: %s", exc)
                    summary.record(
                        index, Failure(title=request.label, error=describe_http_error(exc))
                    )
                    return
                local.scheduler = scheduler
            summary.record(index, scheduler._schedule_logged(request))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="schedule") as pool:
            futures = [
                pool.submit(_task, index, request) for index, request in enumerate(requests)
            ]
            for future in futures:
                future.result()
        return summary

    def _schedule_logged(self, request: ScheduleRequest) -> TransactionResult:
        result = self.schedule(request)
        if isinstance(result, Failure):
            LOGGER.error("Failed to schedule: %s - %s", result.title, result.error)
        return result

