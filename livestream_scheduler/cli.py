"""Command line entry point: schedule the week's livestreams."""
from __future__ import annotations

import argparse
import datetime as dt
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from googleapiclient.errors import HttpError

from .auth import AuthProvider, InteractiveConsentAuth, auth_provider_from_config
from .config import SchedulerConfig
from .errors import (
    AuthError,
    ChannelVerificationError,
    ConfigError,
    describe_http_error,
)
from .models import Failure, RunSummary
from .notifier import Notifier, NullNotifier, notifier_from_settings
from .occurrence import next_occurrence
from .runlog import RunLogBuffer, configure_logging
from .scheduler import BroadcastScheduler, Clock, verify_access
from .youtube import YouTubeClient, build_api

LOGGER = logging.getLogger("livestream_scheduler.cli")

ClientFactory = Callable[[], YouTubeClient]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _client_factory(config: SchedulerConfig, credentials) -> ClientFactory:
    def factory() -> YouTubeClient:
        return YouTubeClient(build_api(credentials, timeout=config.request_timeout))

    return factory


def _notify_safely(notifier: Notifier, summary: RunSummary, log_tail: str) -> None:
    try:
        notifier.notify(summary, log_tail)
    except Exception as exc:  # noqa: BLE001 - the scheduling work is already done
        LOGGER.error("Notifier failed: %s", exc)


def run_schedule(
    config: SchedulerConfig,
    *,
    only: Optional[str] = None,
    workers: int = 1,
    send_email: bool = True,
    auth_provider: Optional[AuthProvider] = None,
    client_factory: Optional[ClientFactory] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Clock] = None,
) -> int:
    """Verify the channel, schedule every service and notify; return the exit code."""

    clock = clock or utc_now
    zone = config.zone
    started = clock().astimezone(zone)
    service_date = next_occurrence(0, 0, zone, now=started).date()
    if notifier is None:
        notifier = (
            notifier_from_settings(config.email, config.organization, service_date)
            if send_email
            else NullNotifier()
        )

    with RunLogBuffer() as buffer:
        try:
            LOGGER.info(
                "=== Run at %s %s ===", started.strftime("%Y-%m-%d %H:%M:%S"), config.timezone
            )
            requests = config.build_requests(only)
            if not requests:
                LOGGER.warning("No configured service matches %r; nothing to schedule.", only)

            try:
                if client_factory is None:
                    provider = auth_provider or auth_provider_from_config(config)
                    client_factory = _client_factory(config, provider.get_valid_session())
                client = client_factory()

                if not verify_access(client):
                    raise AuthError("YouTube auth is invalid or misconfigured.")

                scheduler = BroadcastScheduler(client, config, clock)
                scheduler.verify()
            except (AuthError, ChannelVerificationError, HttpError) as exc:
                message = describe_http_error(exc) if isinstance(exc, HttpError) else str(exc)
                LOGGER.error("Aborting: %s", message)
                _notify_safely(notifier, RunSummary(labels=[]), buffer.tail())
                return 1

            summary = scheduler.schedule_all(
                requests, workers=workers, client_factory=client_factory
            )
            LOGGER.info(
                "Run completed. %s success(es), %s failure(s).",
                len(summary.successes),
                len(summary.failures),
            )
            _notify_safely(notifier, summary, buffer.tail())
            return 0
        except Exception as exc:  # noqa: BLE001 - report, notify and exit non-zero
            LOGGER.exception("Unexpected error: %s", exc)
            summary = RunSummary(labels=["Top-level error"])
            summary.record(0, Failure(title="Top-level error", error=str(exc)))
            _notify_safely(notifier, summary, buffer.tail())
            return 1


def whoami(
    config: SchedulerConfig,
    auth_provider: Optional[AuthProvider] = None,
    credentials=None,
) -> int:
    if credentials is None:
        provider = auth_provider or auth_provider_from_config(config)
        credentials = provider.get_valid_session()
    client = _client_factory(config, credentials)()
    channel = client.list_my_channel()
    if not channel:
        LOGGER.error("No channel found for this account.")
        return 1
    snippet = channel.get("snippet") or {}
    print("Authenticated to channel:")
    print(f"- Name: {snippet.get('title', '')}")
    print(f"- Channel ID: {channel.get('id', '')}")
    print(f"- Description: {snippet.get('description') or '(No description)'}")
    if channel.get("id") != config.channel_id:
        print(f"- WARNING: expected channel ID {config.channel_id}")
    return 0


def authorize(config: SchedulerConfig, open_browser: bool = True) -> int:
    provider = InteractiveConsentAuth(
        config.client_secret_path,
        config.token_path,
        port=config.oauth_port,
        open_browser=open_browser,
    )
    credentials = provider.get_valid_session()
    print(f"[OK] Token saved to {config.token_path}")
    return whoami(config, credentials=credentials)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="livestream-scheduler",
        description="Schedule next Sunday's YouTube livestreams on persistent streams",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="KEY=VALUE config file (default: env LSS_CONFIG or scheduler.conf)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.set_defaults(only=None, workers=1, no_email=False)

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run", help="Schedule all configured services (default)"
    )
    run_parser.add_argument(
        "--only", default=None, help="Only services whose label contains this text"
    )
    run_parser.add_argument(
        "--workers", type=int, default=1, help="Requests scheduled in parallel"
    )
    run_parser.add_argument(
        "--no-email", action="store_true", help="Do not send the summary email"
    )

    subparsers.add_parser("whoami", help="Show the authenticated channel")

    auth_parser = subparsers.add_parser(
        "authorize", help="Run the OAuth consent flow and store the token"
    )
    auth_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the URL instead of opening a browser",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "run"
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = SchedulerConfig.from_sources(args.config)
    except ConfigError as exc:
        configure_logging(verbose=args.verbose)
        LOGGER.error("Configuration error: %s", exc)
        return 1

    configure_logging(config.log_file, verbose=args.verbose)

    if args.command == "whoami":
        try:
            return whoami(config)
        except (AuthError, HttpError) as exc:
            LOGGER.error("whoami failed: %s", exc)
            return 1
    if args.command == "authorize":
        try:
            return authorize(config, open_browser=not getattr(args, "no_browser", False))
        except (AuthError, HttpError) as exc:
            LOGGER.error("Authorization failed: %s", exc)
            return 1

    return run_schedule(
        config,
        only=args.only,
        workers=max(1, args.workers),
        send_email=not args.no_email,
    )
