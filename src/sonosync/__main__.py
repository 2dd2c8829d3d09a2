"""Main entry point: run the synchronization engine headless and log changes."""

import argparse
import logging
import signal
import sys
from dataclasses import replace

from PySide6.QtCore import QCoreApplication, QTimer

from sonosync.api.sonos import SonosProvider
from sonosync.core.bridge import NotificationBridge
from sonosync.core.config import MIN_POLLING_INTERVAL_MS, ConfigManager
from sonosync.core.worker import SyncWorker
from sonosync.models.group import Group
from sonosync.models.group_state import GroupState, PlayState
from sonosync.models.settings import SyncSettings
from sonosync.models.track import Track

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Lets the Python interpreter run (and see SIGINT) while Qt's loop is idle
_SIGNAL_POLL_MS = 250


def build_parser() -> argparse.ArgumentParser:
    """Return the command line parser."""
    parser = argparse.ArgumentParser(
        prog="sonosync",
        description="Sonosync - follow the playback state of all Sonos groups",
    )
    parser.add_argument("--host", default=None, help="speaker IP (default: mDNS discovery)")
    parser.add_argument(
        "--polling", action="store_true", default=None, help="poll groups instead of events",
    )
    parser.add_argument(
        "--interval", type=int, default=None, metavar="MS", help="polling interval in ms",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="verbose logging")
    parser.add_argument("--save", action="store_true", help="store the given options")
    return parser


def apply_arguments(settings: SyncSettings, args: argparse.Namespace) -> SyncSettings:
    """Override stored settings with command line options."""
    if args.host is not None:
        settings = replace(settings, host=args.host)
    if args.polling:
        settings = replace(settings, use_event_mode=False)
    if args.interval is not None:
        if args.interval < MIN_POLLING_INTERVAL_MS:
            logger.warning(
                "Ignoring --interval %d, must be at least %d ms", args.interval, MIN_POLLING_INTERVAL_MS
            )
        else:
            settings = replace(settings, polling_interval_ms=args.interval)
    if args.debug:
        settings = replace(settings, debug_logging=True)
    return settings


def describe_state(state: GroupState) -> str:
    """Return a one-line summary of a group's state."""
    track = state.track.display_track() if state.track else None
    what = f'"{track.title}" by "{track.artist}"' if track and track.has_metadata else "-"
    mute = " (muted)" if state.is_muted else ""
    return (
        f"{state.group.full_name}: {state.play_state.value} {what} "
        f"volume {state.volume}{mute}"
    )


def main() -> int:
    """Run sonosync.

    Returns:
        Exit code (0 for success).
    """
    QCoreApplication.setApplicationName("Sonosync")
    QCoreApplication.setOrganizationName("Sonosync")
    app = QCoreApplication(sys.argv)

    args = build_parser().parse_args(app.arguments()[1:])

    config = ConfigManager()
    settings = apply_arguments(config.load_settings(), args)
    if args.save:
        config.save_settings(settings)
        config.sync()

    if settings.debug_logging:
        logging.getLogger("sonosync").setLevel(logging.DEBUG)

    bridge = NotificationBridge()
    provider = SonosProvider(host=settings.host, discovery_timeout=settings.discovery_timeout)
    worker = SyncWorker(provider, bridge, settings)

    def on_snapshot(states: dict[str, GroupState]) -> None:
        logger.info("Received %d group(s)", len(states))
        for state in states.values():
            logger.info("  %s", describe_state(state))

    def on_track(group: Group, track: Track) -> None:
        track = track.display_track()
        logger.info('%s: now playing "%s" by "%s" (%s)', group.name, track.title, track.artist,
                    track.duration_text)

    def on_volume(group: Group, volume: int) -> None:
        logger.info("%s: volume %d", group.name, volume)

    def on_mute(group: Group, is_muted: bool) -> None:
        logger.info("%s: %s", group.name, "muted" if is_muted else "unmuted")

    def on_play_state(group: Group, play_state: PlayState) -> None:
        logger.info("%s: %s", group.name, play_state.value)

    def on_error(err: object) -> None:
        logger.error("Error: %s", err)
        app.exit(1)

    bridge.groups_snapshot.connect(on_snapshot)
    bridge.track_changed.connect(on_track)
    bridge.volume_changed.connect(on_volume)
    bridge.mute_changed.connect(on_mute)
    bridge.play_state_changed.connect(on_play_state)
    worker.error_occurred.connect(on_error)

    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(_SIGNAL_POLL_MS)

    worker.start()
    exit_code = app.exec()

    # Cleanup
    worker.stop()
    worker.wait()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
