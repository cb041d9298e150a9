from pathlib import Path

import pytest

from livestream_scheduler.config import DEFAULT_SERVICES, SchedulerConfig
from livestream_scheduler.errors import ConfigError


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "scheduler.conf"
    path.write_text(text, encoding="utf-8")
    return path


def test_reads_file_and_env_overrides(tmp_path):
    path = write_config(
        tmp_path,
        "\n".join(
            [
                "# church settings",
                "CHANNEL_ID=UC-FILE",
                "STREAM_ID_SANCTUARY=sanct-file",
                "STREAM_ID_FELLOWSHIP=fellow-file",
                "CONFLICT_WINDOW_MINUTES=60",
                "EMAIL_RECIPIENTS=a@example.org, b@example.org",
            ]
        ),
    )
    env = {"LSS_CHANNEL_ID": "UC-ENV", "LSS_STREAM_ID_FELLOWSHIP": "fellow-env"}

    config = SchedulerConfig.from_sources(path, env)

    assert config.channel_id == "UC-ENV"
    assert config.stream_ids == {"sanctuary": "sanct-file", "fellowship": "fellow-env"}
    assert config.conflict_window_minutes == 60
    assert config.email.recipients == ["a@example.org", "b@example.org"]
    assert config.timezone == "America/Los_Angeles"
    assert config.page_size == 25


def test_missing_channel_id_is_an_error(tmp_path):
    path = write_config(tmp_path, "STREAM_ID_SANCTUARY=abc\n")

    with pytest.raises(ConfigError):
        SchedulerConfig.from_sources(path, {})


def test_invalid_numbers_fall_back_to_defaults(tmp_path, caplog):
    path = write_config(
        tmp_path, "CHANNEL_ID=UC\nPAGE_SIZE=lots\nREQUEST_TIMEOUT=-4\n"
    )

    config = SchedulerConfig.from_sources(path, {})

    assert config.page_size == 25
    assert config.request_timeout == 30.0
    assert "PAGE_SIZE" in caplog.text


def test_unknown_timezone_is_rejected(tmp_path):
    path = write_config(tmp_path, "CHANNEL_ID=UC\nTIMEZONE=Mars/Olympus_Mons\n")

    with pytest.raises(ConfigError):
        SchedulerConfig.from_sources(path, {})


def test_description_escapes_are_expanded(tmp_path):
    path = write_config(tmp_path, "CHANNEL_ID=UC\nPRIMARY_DESCRIPTION=Hello\\nWorld\n")

    assert SchedulerConfig.from_sources(path, {}).primary_description == "Hello\nWorld"


def test_default_services_map_to_configured_streams(tmp_path):
    path = write_config(
        tmp_path, "CHANNEL_ID=UC\nSTREAM_ID_SANCTUARY=S1\nSTREAM_ID_FELLOWSHIP=S2\n"
    )

    requests = SchedulerConfig.from_sources(path, {}).build_requests()

    assert [request.label for request in requests] == [entry[0] for entry in DEFAULT_SERVICES]
    assert [request.stream_id for request in requests] == ["S1", "S2", "S1"]
    assert [(request.hour, request.minute) for request in requests] == [(9, 15), (9, 15), (11, 0)]


def test_missing_stream_key_yields_empty_stream_id():
    config = SchedulerConfig(channel_id="UC", stream_ids={"sanctuary": "S1"})

    mandarin = config.build_requests(only="mandarin")

    assert len(mandarin) == 1
    assert mandarin[0].stream_id == ""


def test_services_override(tmp_path):
    path = write_config(
        tmp_path,
        "CHANNEL_ID=UC\nSTREAM_ID_YOUTH=Y1\n"
        "SERVICES=Youth Service@19:00@youth; Prayer@07:05@sanctuary\n",
    )

    requests = SchedulerConfig.from_sources(path, {}).build_requests()

    assert [(r.label, r.hour, r.minute, r.stream_id) for r in requests] == [
        ("Youth Service", 19, 0, "Y1"),
        ("Prayer", 7, 5, ""),
    ]


@pytest.mark.parametrize("entry", ["Broken", "Late@25:00@sanctuary", "Odd@ab:cd@x"])
def test_invalid_services_entry(tmp_path, entry):
    path = write_config(tmp_path, f"CHANNEL_ID=UC\nSERVICES={entry}\n")

    with pytest.raises(ConfigError):
        SchedulerConfig.from_sources(path, {})


def test_config_path_from_environment(tmp_path):
    path = write_config(tmp_path, "CHANNEL_ID=UC-FROM-PATH\n")

    config = SchedulerConfig.from_sources(env={"LSS_CONFIG": str(path)})

    assert config.channel_id == "UC-FROM-PATH"
