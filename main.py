"""
LineSight - Command line entry point.

Chay LineSightService tren mot hoac nhieu thu muc:
- Mac dinh: watch + log notifications cho den khi Ctrl+C
- --once: scan mot lan, in badge cua moi file roi thoat

Vi du:
    python main.py ~/projects/my-repo --once
    python main.py ~/projects/a ~/projects/b --debug
"""

import argparse
import asyncio
import sys
from pathlib import Path

from config.paths import ensure_app_directories
from core.logging_config import (
    cleanup_old_logs,
    flush_logs,
    log_error,
    log_info,
    set_debug_mode,
)
from core.utils.batch_updater import ChangeBatch
from services.linesight_service import LineSightService
from services.settings_manager import load_app_settings


def _log_batch(batch: ChangeBatch) -> None:
    if batch.full_refresh:
        log_info("[LineSight] Full refresh")
    else:
        log_info(f"[LineSight] {len(batch.keys)} file(s) updated")


def _print_annotations(service: LineSightService) -> None:
    cache = service.engine.state.rendered_cache
    for key in sorted(cache.keys()):
        annotation = cache.peek(key)
        if annotation is not None:
            print(f"{annotation.badge:>8}  {key}")


async def _run(args: argparse.Namespace) -> int:
    settings = load_app_settings()
    if args.scan_delay is not None:
        settings.initial_scan_delay_ms = args.scan_delay

    service = LineSightService(settings)
    service.subscribe(_log_batch)

    try:
        scan = service.activate(args.folders)
        if args.once:
            if scan is not None:
                await scan
            _print_annotations(service)
        else:
            # Chay cho den khi bi interrupt
            await asyncio.Event().wait()
    finally:
        service.deactivate()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Count and watch line counts for files in a folder"
    )
    parser.add_argument("folders", nargs="+", help="Folder(s) to scan")
    parser.add_argument(
        "--once", action="store_true", help="Scan once, print line counts and exit"
    )
    parser.add_argument(
        "--scan-delay",
        type=int,
        default=None,
        help="Override initial scan delay (ms)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    missing = [folder for folder in args.folders if not Path(folder).is_dir()]
    if missing:
        print(f"Not a directory: {', '.join(missing)}", file=sys.stderr)
        return 2

    ensure_app_directories()
    cleanup_old_logs()
    if args.debug:
        set_debug_mode(True)

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        log_info("[LineSight] Interrupted")
        return 130
    except Exception as e:
        log_error("[LineSight] Fatal error", e)
        return 1
    finally:
        flush_logs()


if __name__ == "__main__":
    sys.exit(main())
