import datetime as dt
from zoneinfo import ZoneInfo

import pytest
from googleapiclient.errors import HttpError

from livestream_scheduler.conflicts import ConflictDetector, first_conflict
from livestream_scheduler.models import ConflictWindow, ExistingBroadcast
from livestream_scheduler.youtube import YouTubeClient
from youtube_fakes import DummyYouTube, http_error, upcoming_item

LA = ZoneInfo("America/Los_Angeles")
NEW_START = dt.datetime(2025, 6, 8, 9, 15, tzinfo=LA)


def existing(stream_id="S1", start=NEW_START, broadcast_id="old", channel_id=None):
    return ExistingBroadcast(
        broadcast_id=broadcast_id,
        title="Old service",
        bound_stream_id=stream_id,
        scheduled_start=start,
        channel_id=channel_id,
    )


def test_identical_windows_conflict_both_ways():
    a = ConflictWindow.starting_at(NEW_START, 90)
    b = ConflictWindow.starting_at(NEW_START, 90)

    assert a.overlaps(b)
    assert b.overlaps(a)


def test_window_end_is_exclusive():
    a = ConflictWindow.starting_at(NEW_START, 90)
    b = ConflictWindow.starting_at(NEW_START + dt.timedelta(minutes=90), 90)

    assert not a.overlaps(b)
    assert not b.overlaps(a)


def test_existing_thirty_minutes_earlier_conflicts():
    record = existing(start=NEW_START - dt.timedelta(minutes=30))

    assert first_conflict([record], "S1", NEW_START, 90) is record


@pytest.mark.parametrize("gap", [90, 91, 240])
def test_gap_of_window_or_more_never_conflicts(gap):
    before = existing(start=NEW_START - dt.timedelta(minutes=gap))
    after = existing(start=NEW_START + dt.timedelta(minutes=gap))

    assert first_conflict([before, after], "S1", NEW_START, 90) is None


def test_other_stream_never_conflicts():
    record = existing(stream_id="S2")

    assert first_conflict([record], "S1", NEW_START, 90) is None


def test_incomparable_records_are_skipped():
    records = [
        ExistingBroadcast("a", bound_stream_id=None, scheduled_start=NEW_START),
        ExistingBroadcast("b", bound_stream_id="S1", scheduled_start=None),
    ]

    assert first_conflict(records, "S1", NEW_START, 90) is None


def test_other_channel_is_skipped():
    record = existing(channel_id="UC-OTHER")

    assert first_conflict([record], "S1", NEW_START, 90, channel_id="UC-CHURCH") is None


def test_first_match_short_circuits():
    first = existing(broadcast_id="first")
    second = existing(broadcast_id="second")

    assert first_conflict([first, second], "S1", NEW_START, 90) is first


def make_detector(yt):
    return ConflictDetector(YouTubeClient(yt), channel_id="UC-CHURCH", zone=LA)


def test_detector_queries_upcoming_broadcasts():
    start = (NEW_START - dt.timedelta(minutes=30)).astimezone(dt.timezone.utc)
    yt = DummyYouTube(
        upcoming=[
            upcoming_item("x", "S2", start.isoformat().replace("+00:00", "Z")),
            upcoming_item("y", "S1", start.isoformat().replace("+00:00", "Z"), title="Earlier"),
        ]
    )

    conflict = make_detector(yt).find_conflict("S1", NEW_START)

    assert conflict is not None
    assert conflict.broadcast_id == "y"
    name, kwargs = yt.calls[0]
    assert name == "liveBroadcasts.list"
    assert kwargs["broadcastStatus"] == "upcoming"
    assert kwargs["mine"] is True
    assert kwargs["maxResults"] == 25


def test_detector_reports_no_conflict_for_empty_channel():
    yt = DummyYouTube()

    assert make_detector(yt).has_conflict("S1", NEW_START) is False


def test_detector_propagates_upstream_failure():
    yt = DummyYouTube()
    yt.list_error = http_error(500, "backend error", reason="backendError")

    with pytest.raises(HttpError):
        make_detector(yt).has_conflict("S1", NEW_START)


def utc(*args):
    return dt.datetime(*args, tzinfo=dt.timezone.utc)


def test_window_spans_elapsed_minutes_when_clocks_fall_back():
    # 01:00 PDT; the window must end at 09:30 UTC, not 02:30 PST
    start = dt.datetime(2025, 11, 2, 1, 0, tzinfo=LA)
    later = existing(start=utc(2025, 11, 2, 10, 15))

    window = ConflictWindow.starting_at(start, 90)

    assert window.end - window.start == dt.timedelta(minutes=90)
    assert first_conflict([later], "S1", start, 90) is None


def test_window_spans_elapsed_minutes_when_clocks_spring_forward():
    start = dt.datetime(2026, 3, 8, 1, 30, tzinfo=LA)
    later = existing(start=utc(2026, 3, 8, 10, 30))

    assert first_conflict([later], "S1", start, 90) is later


def test_unreadable_start_on_same_stream_is_a_conflict(caplog):
    item = upcoming_item("odd", "S1", "next sunday-ish")

    record = ExistingBroadcast.from_api(item)

    assert record.start_unreadable
    assert "unreadable scheduledStartTime" in caplog.text
    assert first_conflict([record], "S1", NEW_START, 90) is record
    assert first_conflict([record], "S2", NEW_START, 90) is None


def test_detector_fails_closed_on_unreadable_start():
    yt = DummyYouTube(upcoming=[upcoming_item("odd", "S1", "not-a-date", title="Broken")])

    conflict = make_detector(yt).find_conflict("S1", NEW_START)

    assert conflict is not None
    assert conflict.start_label(LA) == "not-a-date"
