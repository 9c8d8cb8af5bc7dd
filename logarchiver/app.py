import argparse
import signal
import sys
import threading

from logarchiver.errors import ConfigError, RunError
from logarchiver.helpers.config import (
    COLLISION_POLICIES, EventLogConfig, FileArchiveConfig,
    event_log_config, file_archive_config, load_yaml, merge_overrides,
)
from logarchiver.logger import RunLogger, utc_now
from logarchiver.workers import EventLogBackupWorker, FileArchiveWorker, run_scheduled

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2
EXIT_PARTIAL = 3


# =========================
# Runs
# =========================


def run_file_archive(cfg: FileArchiveConfig, log: RunLogger, clock=utc_now) -> int:
    """
    One complete file archive run. The last line logged is always the END record.

    Returns:
        int: EXIT_OK, EXIT_PARTIAL (failed buckets with `fail_on_bucket_error`) or EXIT_FATAL.
    """
    log.start("File archive run: %s -> %s (keep %d days)",
              cfg.source, cfg.destination, cfg.keep_days)
    code = EXIT_OK
    try:
        summary = FileArchiveWorker(cfg, log, clock).run()
        if summary.failed_buckets and cfg.fail_on_bucket_error:
            code = EXIT_PARTIAL
    except RunError as e:
        log.error("Run aborted: %s", e)
        code = EXIT_FATAL
    except Exception as e:
        log.exception("Unexpected error in file archive run: %s", e)
        code = EXIT_FATAL
    finally:
        log.end("File archive run finished (exit %d)", code)
    return code


def run_event_log_backup(cfg: EventLogConfig, log: RunLogger, clock=utc_now, source=None) -> int:
    """
    One complete event log backup run. Per-host and per-log failures do not change the exit code.
    """
    log.start("Event log backup: %d hosts, logs %s", len(cfg.hosts), ", ".join(cfg.logs))
    code = EXIT_OK
    try:
        EventLogBackupWorker(cfg, log, source=source, clock=clock).run()
    except Exception as e:
        log.exception("Unexpected error in event log backup: %s", e)
        code = EXIT_FATAL
    finally:
        log.end("Event log backup finished (exit %d)", code)
    return code


# =========================
# CLI
# =========================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logarchiver",
        description="Archive aged files into daily ZIPs and back up remote Windows event logs.")
    parser.add_argument("--config", help="YAML config file (default: .config.yml if present)")
    sub = parser.add_subparsers(dest="command", required=True)

    files = sub.add_parser("files", help="archive aged files into one ZIP per day")
    files.add_argument("--source", help="root of the folder tree to scan")
    files.add_argument("--destination", help="folder the archives are moved to")
    files.add_argument("--app-name", dest="app_name", help="archive file name prefix")
    files.add_argument("--keep-days", dest="keep_days", type=int,
                       help="retention threshold in days (default 14)")
    files.add_argument("--compress-drive", dest="compress_drive",
                       help="volume for the staging folder (default: the source's volume)")
    files.add_argument("--log-folder", dest="log_folder", help="log root folder")
    files.add_argument("--collision", choices=COLLISION_POLICIES,
                       help="what to do when the archive already exists at the destination")
    files.add_argument("--strict", dest="fail_on_bucket_error", action="store_const", const=True,
                       help="exit 3 when any bucket fails")
    files.add_argument("--interval-hours", dest="interval_hours", type=float,
                       help="repeat the run every N hours until interrupted")

    events = sub.add_parser("eventlogs", help="back up event logs from remote hosts")
    events.add_argument("--host", dest="hosts", action="append", help="host name (repeatable)")
    events.add_argument("--hosts-file", dest="hosts_file", help="file with one host per line")
    events.add_argument("--log", dest="logs", action="append",
                        help="event log name (repeatable, default Application and System)")
    events.add_argument("--destination", help="backup folder")
    events.add_argument("--share", help=r"log folder on the admin share (default C$\Windows\System32\winevt\Logs)")
    events.add_argument("--clear", action="store_const", const=True,
                        help="clear each remote log after a verified copy")
    events.add_argument("--log-folder", dest="log_folder", help="log root folder")
    events.add_argument("--interval-hours", dest="interval_hours", type=float,
                        help="repeat the run every N hours until interrupted")
    return parser


def load_config(args: argparse.Namespace):
    """
    Read the YAML file, apply command-line overrides and validate.

    Raises:
        ConfigError: On any invalid setting.
    """
    raw = load_yaml(args.config, required=args.config is not None)
    shared = raw.get("logging") or {}
    overrides = {k: v for k, v in vars(args).items()
                 if k not in ("config", "command", "interval_hours")}

    if args.command == "files":
        section = merge_overrides(raw.get("file_archive") or {}, overrides)
        return file_archive_config(section, defaults=shared)

    section = merge_overrides(raw.get("event_logs") or {}, overrides)
    return event_log_config(section, defaults=shared)


def start_app(argv=None) -> int:
    """
    Parse arguments, validate configuration, run the selected pipeline once or on a schedule.

    Returns:
        int: Process exit code.
    """
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    if args.interval_hours is not None and args.interval_hours <= 0:
        print("Configuration error: --interval-hours must be positive", file=sys.stderr)
        return EXIT_CONFIG

    log = RunLogger(cfg.log_folder, cfg.app_name)

    if args.command == "files":
        def job():
            return run_file_archive(cfg, log)
    else:
        def job():
            return run_event_log_backup(cfg, log)

    try:
        if args.interval_hours is None:
            return job()

        stop_event = threading.Event()
        signal.signal(signal.SIGINT, lambda *a: stop_event.set())
        signal.signal(signal.SIGTERM, lambda *a: stop_event.set())
        return run_scheduled(job, args.interval_hours * 60 * 60, stop_event, log)
    finally:
        log.close()


def main():
    sys.exit(start_app())
