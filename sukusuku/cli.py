"""
Sukusuku - Command Line Interface
Feeds samples into the companion pipeline and reads back history.

Usage:
    sukusuku frame --user U sample.json [--baseline prev.json]
    sukusuku temp --user U 37.8
    sukusuku tasks --user U check_child play_time feed
    sukusuku event --user U "Park meetup" 2026-05-01T10:00
    sukusuku consent --user U
    sukusuku history --user U gestures
    sukusuku config
    sukusuku keygen
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .actuator import ActuatorDispatcher, HttpActuatorTransport
from .analyzer import WINDOW_SIZE, coerce_sample
from .config import SukusukuConfig, create_default_config, load_config
from .crypto import RecordCipher, generate_key
from .errors import InvalidInput, SukusukuError
from .local_db import CHANNELS, SQLiteBackend, TelemetryStore, get_db_path
from .logging_setup import configure_logging
from .pipeline import CompanionPipeline

DEFAULT_USER = "user123"
DEFAULT_TASKS = ["check_child", "play_time", "feed"]


def build_pipeline(config: SukusukuConfig) -> CompanionPipeline:
    """Wire the pipeline from configuration."""
    backend = SQLiteBackend(Path(config.db_path) if config.db_path else get_db_path())
    store = TelemetryStore(backend, RecordCipher(config.keyring()))
    transport = HttpActuatorTransport(
        config.effective_hardware_api_url,
        timeout=config.actuator_timeout_seconds,
    )
    return CompanionPipeline(store, ActuatorDispatcher(transport))


def _read_json(path: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidInput(f"Cannot read {path}: {e}") from e


def _print_dispatch(outcomes) -> None:
    for outcome in outcomes:
        mark = "✅" if outcome.delivered else "⚠️"
        detail = "" if outcome.delivered else f" ({outcome.error})"
        print(f"   {mark} {outcome.command.action}{detail}")


def cmd_frame(args, pipeline: CompanionPipeline) -> None:
    """Classify a camera sample."""
    sample = _read_json(args.sample)

    if args.baseline and Path(args.baseline).exists():
        baseline = coerce_sample(_read_json(args.baseline), name="baseline", min_length=WINDOW_SIZE)
        pipeline.baselines.put(args.user, baseline)

    run = pipeline.process_frame(args.user, sample)

    print(f"🖐️ Gesture: {run.gesture.kind.value.upper()} (motion {run.gesture.motion:.2f})")
    for name, value in run.gesture.regions.items():
        print(f"   {name:<13} {value:.2f}")
    print(f"🙂 Emotion: {run.emotion.status.value} (brightness {run.emotion.brightness:.1f})")
    _print_dispatch(run.dispatched)

    if args.baseline:
        with open(args.baseline, 'w', encoding='utf-8') as f:
            json.dump(pipeline.baselines.get(args.user), f)


def cmd_temp(args, pipeline: CompanionPipeline) -> None:
    """Record a temperature reading."""
    run = pipeline.process_temperature(args.user, args.temperature)
    icon = "🤒" if run.reading.status.value == "abnormal" else "🌡️"
    print(f"{icon} {run.reading.temperature:.1f}℃ → {run.reading.status.value}")
    _print_dispatch(run.dispatched)


def cmd_tasks(args, pipeline: CompanionPipeline) -> None:
    """Split tasks between the parents."""
    for assignment in pipeline.process_tasks(args.user, args.tasks or DEFAULT_TASKS):
        print(f"📋 {assignment.task}: {assignment.assignee.value}")


def cmd_event(args, pipeline: CompanionPipeline) -> None:
    pipeline.record_community_event(args.user, args.name, args.time)
    print(f"📅 Recorded event '{args.name}' at {args.time}")


def cmd_consent(args, pipeline: CompanionPipeline) -> None:
    consent = pipeline.record_consent(args.user, agreed=not args.revoke)
    print(f"🔒 Consent {'given' if consent['agreed'] else 'revoked'} at {consent['time']}")


def cmd_history(args, pipeline: CompanionPipeline) -> None:
    """Decrypt and print a channel."""
    result = pipeline.history(args.user, args.channel)
    if args.json:
        print(json.dumps({"records": result.records, "skipped": result.skipped}, indent=2))
        return

    print(f"📊 {args.channel} for {args.user}: {len(result.records)} records")
    for record in result.records:
        print(f"   {json.dumps(record, sort_keys=True, ensure_ascii=False)}")
    if result.skipped:
        print(f"⚠️ {result.skipped} entries could not be decrypted and were skipped")


def cmd_config(args, config: SukusukuConfig) -> None:
    """Create config file if needed and show where it is."""
    config_path = create_default_config(Path(args.config) if args.config else None)
    print(f"📁 Config file: {config_path}")
    print(f"📁 Database: {config.db_path or get_db_path()}")


def cmd_keygen(args, config: SukusukuConfig) -> None:
    """Print a fresh encryption key."""
    print(generate_key())


def _add_user(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--user', default=DEFAULT_USER, help='User id (default: %(default)s)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sukusuku',
        description='Sukusuku - companion robot core for child-care support',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sukusuku keygen                      Generate an encryption key
  sukusuku frame sample.json           Classify a camera sample
  sukusuku temp 38.2                   Record a temperature
  sukusuku history health              Show decrypted health history

Privacy:
  🔒 All history is encrypted (AES-256-GCM) before it is stored
        """
    )
    parser.add_argument('--config', help='Path to config.yaml')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    frame_parser = subparsers.add_parser('frame', help='Classify a camera sample (JSON list)')
    _add_user(frame_parser)
    frame_parser.add_argument('sample', help='JSON file with the sample vector')
    frame_parser.add_argument('--baseline', help='JSON file holding the previous frame; updated after the run')
    frame_parser.set_defaults(func=cmd_frame)

    temp_parser = subparsers.add_parser('temp', help='Record a temperature reading')
    _add_user(temp_parser)
    temp_parser.add_argument('temperature', type=float)
    temp_parser.set_defaults(func=cmd_temp)

    tasks_parser = subparsers.add_parser('tasks', help='Assign tasks to parents')
    _add_user(tasks_parser)
    tasks_parser.add_argument('tasks', nargs='*')
    tasks_parser.set_defaults(func=cmd_tasks)

    event_parser = subparsers.add_parser('event', help='Record a community event')
    _add_user(event_parser)
    event_parser.add_argument('name')
    event_parser.add_argument('time')
    event_parser.set_defaults(func=cmd_event)

    consent_parser = subparsers.add_parser('consent', help='Record data collection consent')
    _add_user(consent_parser)
    consent_parser.add_argument('--revoke', action='store_true')
    consent_parser.set_defaults(func=cmd_consent)

    history_parser = subparsers.add_parser('history', help='Show decrypted history')
    _add_user(history_parser)
    history_parser.add_argument('channel', choices=CHANNELS)
    history_parser.add_argument('--json', action='store_true')
    history_parser.set_defaults(func=cmd_history)

    config_parser = subparsers.add_parser('config', help='Create/show config file')
    config_parser.set_defaults(func=cmd_config, standalone=True)

    keygen_parser = subparsers.add_parser('keygen', help='Generate an encryption key')
    keygen_parser.set_defaults(func=cmd_keygen, standalone=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config = load_config(Path(args.config) if args.config else None)
    configure_logging(config.log_level, config.log_json)

    try:
        if getattr(args, 'standalone', False):
            args.func(args, config)
        else:
            args.func(args, build_pipeline(config))
    except SukusukuError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
