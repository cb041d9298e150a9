"""In-memory stand-ins for the googleapiclient YouTube resource."""
import json
from typing import Any, Dict, List, Optional

import httplib2
from googleapiclient.errors import HttpError


def http_error(status: int, message: str = "request failed", reason: str = "forbidden") -> HttpError:
    resp = httplib2.Response({"status": status})
    content = json.dumps(
        {
            "error": {
                "code": status,
                "message": message,
                "errors": [{"reason": reason, "message": message}],
            }
        }
    ).encode("utf-8")
    return HttpError(resp, content, uri="https://youtube.googleapis.com/youtube/v3")


class DummyRequest:
    def __init__(self, payload=None, error: Optional[BaseException] = None):
        self._payload = payload
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._payload


class DummyLiveBroadcasts:
    def __init__(self, yt: "DummyYouTube"):
        self._yt = yt

    def list(self, **kwargs):
        self._yt.calls.append(("liveBroadcasts.list", kwargs))
        if "broadcastStatus" in kwargs:
            return DummyRequest({"items": self._yt.upcoming}, self._yt.list_error)
        return DummyRequest({"items": []}, self._yt.access_error)

    def insert(self, **kwargs):
        self._yt.calls.append(("liveBroadcasts.insert", kwargs))
        return DummyRequest({"id": self._yt.created_id, **kwargs["body"]}, self._yt.insert_error)

    def bind(self, **kwargs):
        self._yt.calls.append(("liveBroadcasts.bind", kwargs))
        payload = self._yt.bind_payload
        if payload is None:
            payload = {
                "id": kwargs["id"],
                "contentDetails": {"boundStreamId": kwargs["streamId"]},
            }
        return DummyRequest(payload, self._yt.bind_error)

    def delete(self, **kwargs):
        self._yt.calls.append(("liveBroadcasts.delete", kwargs))
        return DummyRequest("", self._yt.delete_error)


class DummyVideos:
    def __init__(self, yt: "DummyYouTube"):
        self._yt = yt

    def update(self, **kwargs):
        self._yt.calls.append(("videos.update", kwargs))
        return DummyRequest(kwargs["body"], self._yt.update_error)


class DummyChannels:
    def __init__(self, yt: "DummyYouTube"):
        self._yt = yt

    def list(self, **kwargs):
        self._yt.calls.append(("channels.list", kwargs))
        return DummyRequest({"items": self._yt.channels_items})


class DummyYouTube:
    """Records every call made against it, in order."""

    def __init__(
        self,
        upcoming: Optional[List[Dict[str, Any]]] = None,
        channel_id: str = "UC-CHURCH",
        created_id: str = "vid123",
    ):
        self.upcoming = list(upcoming or [])
        self.channels_items: List[Dict[str, Any]] = [
            {"id": channel_id, "snippet": {"title": "Church", "description": ""}}
        ]
        self.created_id = created_id
        self.bind_payload: Optional[Dict[str, Any]] = None
        self.list_error: Optional[BaseException] = None
        self.access_error: Optional[BaseException] = None
        self.insert_error: Optional[BaseException] = None
        self.update_error: Optional[BaseException] = None
        self.bind_error: Optional[BaseException] = None
        self.delete_error: Optional[BaseException] = None
        self.calls: List[tuple] = []

    def liveBroadcasts(self):
        return DummyLiveBroadcasts(self)

    def videos(self):
        return DummyVideos(self)

    def channels(self):
        return DummyChannels(self)

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


def upcoming_item(
    broadcast_id: str,
    stream_id: Optional[str],
    start: Optional[str],
    title: str = "Existing",
    channel_id: Optional[str] = "UC-CHURCH",
) -> Dict[str, Any]:
    snippet: Dict[str, Any] = {"title": title}
    if start is not None:
        snippet["scheduledStartTime"] = start
    if channel_id is not None:
        snippet["channelId"] = channel_id
    details: Dict[str, Any] = {}
    if stream_id is not None:
        details["boundStreamId"] = stream_id
    return {"id": broadcast_id, "snippet": snippet, "contentDetails": details}
