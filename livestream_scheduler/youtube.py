"""Thin wrapper over the YouTube Data API resources the scheduler uses."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import google_auth_httplib2
import httplib2
from googleapiclient.discovery import build

LOGGER = logging.getLogger("livestream_scheduler.youtube")

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

CONTENT_DETAILS: Dict[str, Any] = {
    "monitorStream": {"enableMonitorStream": False},
    "enableAutoStart": False,
    "enableAutoStop": False,
    "enableDvr": True,
    "recordFromStart": True,
    "startWithSlate": False,
    "enableClosedCaptions": False,
    "enableContentEncryption": False,
    "enableEmbed": True,
    "enableLowLatency": False,
    "liveChatEnabled": False,
}


def watch_link(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def build_api(credentials: Any, timeout: Optional[float] = None):
    """Return a YouTube Data API resource whose HTTP calls time out."""

    http = google_auth_httplib2.AuthorizedHttp(
        credentials, http=httplib2.Http(timeout=timeout)
    )
    return build("youtube", "v3", http=http, cache_discovery=False)


class YouTubeClient:
    """The six calls a scheduling run makes against the platform."""

    def __init__(self, yt: Any) -> None:
        self._yt = yt

    def check_access(self) -> None:
        """Cheap authenticated call; raises if the session is unusable."""

        self._yt.liveBroadcasts().list(part="id", mine=True, maxResults=1).execute()

    def list_my_channel(self) -> Optional[Dict[str, Any]]:
        response = self._yt.channels().list(part="id,snippet", mine=True).execute()
        items = response.get("items", [])
        return items[0] if items else None

    def list_upcoming_broadcasts(self, page_size: int) -> List[Dict[str, Any]]:
        response = (
            self._yt.liveBroadcasts()
            .list(
                part="id,snippet,contentDetails",
                mine=True,
                broadcastStatus="upcoming",
                maxResults=page_size,
            )
            .execute()
        )
        return list(response.get("items", []))

    def create_broadcast(
        self, title: str, description: str, scheduled_start: str
    ) -> Dict[str, Any]:
        body = {
            "snippet": {
                "title": title,
                "description": description,
                "scheduledStartTime": scheduled_start,
            },
            "status": {"privacyStatus": "public"},
            "contentDetails": dict(CONTENT_DETAILS),
        }
        return (
            self._yt.liveBroadcasts()
            .insert(part="snippet,contentDetails,status", body=body)
            .execute()
        )

    def update_video_metadata(
        self, video_id: str, title: str, description: str, category_id: str
    ) -> Dict[str, Any]:
        body = {
            "id": video_id,
            "snippet": {
                "title": title,
                "description": description,
                "categoryId": category_id,
            },
        }
        return self._yt.videos().update(part="snippet", body=body).execute()

    def bind_broadcast(self, broadcast_id: str, stream_id: str) -> Dict[str, Any]:
        return (
            self._yt.liveBroadcasts()
            .bind(part="id,contentDetails", id=broadcast_id, streamId=stream_id)
            .execute()
        )

    def delete_broadcast(self, broadcast_id: str) -> None:
        self._yt.liveBroadcasts().delete(id=broadcast_id).execute()
