"""
Detection Feed CLI
Main entry point for following the live detection stream.

Commands:
  (default)   Connect and log detections until Ctrl+C
  --validate  Check configuration validity
  --resolve   Resolve one detection image URL and exit
"""

import argparse
import logging
import signal
import sys
import time
from threading import Event as ThreadEvent

from .config import Config, ConfigValidationError, get_token, load_config
from .images import ASSET_KINDS
from .models.detection import DetectionRecord, derive_status
from .models.errors import TransportError
from .processor import DETECTION_CHANNEL
from .session import ATTENTION_CLOSED_CHANNEL, FeedSession
from .utils.constants import ENV_TOKEN
from .utils.display import category_label, format_weight, status_label
from .utils.event_schema import EVENT_TYPE_CAMERA_STATUS

logger = logging.getLogger(__name__)

# Module-level shutdown signal for SIGTERM/SIGINT handling
_shutdown_signal = ThreadEvent()


def _handle_shutdown_signal(signum, _frame):
    """
    Handle SIGTERM/SIGINT for graceful shutdown.

    This allows the feed to disconnect cleanly when running under
    systemd, Docker, or other process managers that send SIGTERM.
    """
    signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
    # Note: print is safer than logger in signal handlers
    print(f"\nReceived {signal_name}, disconnecting...")
    _shutdown_signal.set()


def _setup_signal_handlers():
    """Register signal handlers for graceful shutdown."""
    signal.signal(signal.SIGTERM, _handle_shutdown_signal)
    signal.signal(signal.SIGINT, _handle_shutdown_signal)


def setup_logging(quiet: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        quiet: If True, only show warnings and errors
    """
    level = logging.WARNING if quiet else logging.INFO

    # Custom formatter with shorter module names
    class ShortNameFormatter(logging.Formatter):
        def format(self, record):
            record.name = record.name.replace("detection_feed.", "df.")
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ShortNameFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(level)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Detection Feed - follow live food-waste detections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  python -m detection_feed                 # Follow the stream until Ctrl+C
  python -m detection_feed 0.5             # Follow for 30 minutes
  python -m detection_feed --validate      # Check config validity
  python -m detection_feed --resolve 42 food_1 --fallback images/42/a.jpg

The stream credential is read from ${ENV_TOKEN}.
        """,
    )

    parser.add_argument(
        "duration",
        type=float,
        nargs="?",
        help="Hours to stay connected (default: until interrupted)",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only show warnings and errors",
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and show effective settings",
    )

    parser.add_argument(
        "--resolve",
        nargs=2,
        metavar=("DETECTION_ID", "IMAGE_TYPE"),
        help=f"Resolve one detection image URL and exit (IMAGE_TYPE: {', '.join(ASSET_KINDS)})",
    )

    parser.add_argument(
        "--fallback",
        metavar="STATIC_PATH",
        help="Static path to fall back to with --resolve",
    )

    return parser.parse_args(argv)


def print_banner(config: Config, duration_hours: float | None) -> None:
    """Print startup banner."""
    print("\n" + "=" * 70)
    print("DETECTION FEED")
    print("=" * 70)

    print(f"\nBackend: {config.api.base_url}")
    print(f"Stream: {config.stream.path}")
    print(f"Viewer capabilities: {', '.join(config.viewer.capabilities) or 'none'}")

    print("\nRuntime:")
    if duration_hours:
        print(f"  Duration: {duration_hours} hour(s) ({duration_hours * 60:.0f} minutes)")
    else:
        print("  Duration: until interrupted")
    print("  Press Ctrl+C to stop")
    print("=" * 70)
    print()


def print_config_summary(config: Config) -> None:
    """Print the effective configuration for --validate."""
    print("Configuration valid\n")
    print(f"  API:        {config.api.base_url} (timeout {config.api.timeout_seconds}s)")
    print(
        f"  Stream:     {config.stream.path}, {config.stream.max_reconnect_attempts} reconnects "
        f"at {config.stream.reconnect_delay_seconds}s x attempt"
    )
    print(
        f"  Attention:  {config.attention.no_waste_category} closes after "
        f"{config.attention.no_waste_dismiss_ms}ms, others after "
        f"{config.attention.default_dismiss_ms}ms"
    )
    print(
        f"  Images:     {config.images.max_load_retries} load retries, "
        f"{config.images.max_workers} resolver workers"
    )
    print(f"  Token:      {'set' if get_token() else f'missing (set ${ENV_TOKEN})'}")


def print_config_errors(error: ConfigValidationError) -> None:
    print(f"Configuration error: {error}")
    for message in error.errors:
        print(f"  - {message}")


def run_validate(config_path: str) -> int:
    """Run validation mode."""
    try:
        config = load_config(config_path)
    except ConfigValidationError as e:
        print_config_errors(e)
        return 1
    print_config_summary(config)
    return 0


def run_resolve(config: Config, detection_id: str, image_type: str, fallback: str | None) -> int:
    """Resolve one image URL and print it."""
    if image_type not in ASSET_KINDS:
        print(f"Unknown image type '{image_type}' (expected one of: {', '.join(ASSET_KINDS)})")
        return 1

    session = FeedSession(config, token=get_token())
    try:
        subject = int(detection_id) if detection_id.isdigit() else detection_id
        resolution = session.resolve_image(subject, image_type, fallback)
    finally:
        session.stop()

    if not resolution.available:
        print("Image URL not available")
        return 1
    print(f"{resolution.url} ({resolution.origin})")
    return 0


def _log_detection(payload: dict) -> None:
    record = DetectionRecord.from_dict(payload)
    logger.debug(
        f"Detection {record.id}: {status_label(derive_status(record))}, "
        f"{category_label(record.category)}, net {format_weight(record.net_weight)}"
    )


def run_feed(config: Config, duration_hours: float | None) -> int:
    """Follow the stream until interrupted or the duration elapses."""
    token = get_token()
    if not token:
        logger.error(f"No authentication token found (set ${ENV_TOKEN})")
        return 1

    print_banner(config, duration_hours)
    _setup_signal_handlers()

    session = FeedSession(config, token=token)
    session.bus.subscribe(DETECTION_CHANNEL, _log_detection)
    session.bus.subscribe(
        EVENT_TYPE_CAMERA_STATUS, lambda data: logger.info(f"Camera status: {data}")
    )
    session.bus.subscribe(
        ATTENTION_CLOSED_CHANNEL,
        lambda data: logger.debug(f"Attention closed: {data['id']} ({data['reason']})"),
    )

    try:
        session.start()
    except TransportError as e:
        logger.error(f"Could not connect: {e}")
        session.stop()
        return 1

    start_time = time.time()
    timeout = duration_hours * 3600 if duration_hours else None
    _shutdown_signal.wait(timeout=timeout)

    elapsed = time.time() - start_time
    session.stop()
    print(f"\nFeed stopped after {elapsed / 60:.1f} minutes, {session.router.event_count} events")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(quiet=args.quiet or args.validate)

    if args.validate:
        sys.exit(run_validate(args.config))

    try:
        config = load_config(args.config)
    except ConfigValidationError as e:
        print_config_errors(e)
        sys.exit(1)

    if args.resolve:
        detection_id, image_type = args.resolve
        sys.exit(run_resolve(config, detection_id, image_type, args.fallback))

    sys.exit(run_feed(config, args.duration))


if __name__ == "__main__":
    main()
