"""Command line interface for photodrop."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import (
    SubmissionProgressDisplay,
    render_configuration_summary,
    render_rejections,
    render_selection,
)
from .models import ENCODINGS, MB, EndpointConfig, UploadConfig
from .orchestrator import UploadOrchestrator
from .orchestrator.file_collector import FileCollector
from .utils.events import BATCH_COMPLETE, PROGRESS

logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Route log records to a RichHandler, or mute them.

    Output stays muted unless --debug or --log-level asks for it; --silent
    wins over both. Returns the effective mode for the summary panel.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    logging.disable(logging.NOTSET)

    if silent or not (debug or log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    handler = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _unquote(value: str) -> str:
    for quote in ('"', "'"):
        if len(value) >= 2 and value.startswith(quote) and value.endswith(quote):
            return value[1:-1]
    return value


def _parse_env(content: str) -> Dict[str, str]:
    """KEY=value pairs from .env text; comments and malformed lines are skipped."""
    values: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            values[key] = _unquote(value.strip())
    return values


def _load_env_file(path: Path, override: bool = False) -> Dict[str, str]:
    """Export a .env file into os.environ. Returns the variables it set."""
    if not path.is_file():
        reason = "is not a file" if path.exists() else "not found"
        raise CLIError(f"env file {reason}: {path}")
    try:
        values = _parse_env(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    applied = {key: value for key, value in values.items() if override or key not in os.environ}
    os.environ.update(applied)
    logger.debug("Loaded %d variable(s) from %s", len(applied), path)
    return applied


def _resolve_default_env_file() -> Optional[Path]:
    candidate = Path.cwd() / ".env"
    return candidate if candidate.is_file() else None


def _mask_secret(secret: Optional[str]) -> str:
    if not secret:
        return "-"
    if len(secret) <= 4:
        return "****"
    return f"{secret[:2]}{'*' * (len(secret) - 4)}{secret[-2:]}"


def _build_endpoint(args: argparse.Namespace) -> EndpointConfig:
    from_env = EndpointConfig.from_env()
    encoding = (args.encoding or from_env.encoding).strip().lower()
    if encoding not in ENCODINGS:
        raise CLIError(f"unknown encoding '{encoding}' (expected one of: {', '.join(ENCODINGS)})")
    return EndpointConfig(
        url=args.endpoint or from_env.url,
        secret=args.secret or from_env.secret,
        encoding=encoding,
        timeout=args.timeout,
    )


def _megabytes(value: Optional[float], option: str, default: int) -> int:
    if value is None:
        return default
    if value <= 0:
        raise CLIError(f"{option} must be greater than 0")
    return int(value * MB)


def _build_upload_config(args: argparse.Namespace) -> UploadConfig:
    defaults = UploadConfig()
    if args.max_batch_count is not None and args.max_batch_count < 1:
        raise CLIError("--max-batch-count must be at least 1")
    if args.retries is not None and args.retries < 0:
        raise CLIError("--retries must not be negative")
    return UploadConfig(
        max_file_bytes=_megabytes(args.max_file_mb, "--max-file-mb", defaults.max_file_bytes),
        max_batch_bytes=_megabytes(args.max_batch_mb, "--max-batch-mb", defaults.max_batch_bytes),
        max_batch_count=defaults.max_batch_count if args.max_batch_count is None else args.max_batch_count,
        batch_retries=defaults.batch_retries if args.retries is None else args.retries,
    )


async def _run_upload(
    name: str,
    sources: Sequence[Path],
    endpoint: EndpointConfig,
    config: UploadConfig,
) -> int:
    if not endpoint.is_configured:
        raise CLIError("upload endpoint not configured (use --endpoint or PHOTODROP_ENDPOINT)")

    try:
        files = FileCollector.collect_files(sources)
    except FileNotFoundError as exc:
        raise CLIError(str(exc)) from exc

    async with UploadOrchestrator(endpoint, config) as orchestrator:
        report = orchestrator.add_files(files)
        render_rejections(report.rejected)
        render_selection(len(orchestrator.selection), orchestrator.selection.total_bytes)

        display = SubmissionProgressDisplay()
        orchestrator.on(PROGRESS, display.on_progress)
        orchestrator.on(BATCH_COMPLETE, display.on_batch_complete)

        outcome = await orchestrator.submit(name)
        display.on_finish(outcome)
        return 0 if outcome.success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photodrop",
        description="Upload photos to a shared folder in size-bounded batches.",
    )
    parser.add_argument("name", nargs="?", help="Guest name (also the destination subfolder)")
    parser.add_argument("sources", nargs="*", type=Path, help="Photo files or folders")
    parser.add_argument(
        "-e",
        "--endpoint",
        default=None,
        help="Upload endpoint URL (default from PHOTODROP_ENDPOINT)",
    )
    parser.add_argument(
        "-s",
        "--secret",
        default=None,
        help="Shared secret sent as ?secret= (default from PHOTODROP_SECRET)",
    )
    parser.add_argument(
        "--encoding",
        choices=ENCODINGS,
        default=None,
        help="Request body encoding (default from PHOTODROP_ENCODING or multipart)",
    )
    parser.add_argument("--max-file-mb", type=float, default=None, help="Per-file size ceiling in MB")
    parser.add_argument("--max-batch-mb", type=float, default=None, help="Per-request size ceiling in MB")
    parser.add_argument("--max-batch-count", type=int, default=None, help="Files per request")
    parser.add_argument("--retries", type=int, default=None, help="Retries per batch")
    parser.add_argument("--timeout", type=float, default=60, help="Request timeout in seconds")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="photodrop 0.1.0")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.name is None:
        parser.print_help()
        return 0

    if not args.sources:
        print("ERROR: no photos given", file=sys.stderr)
        return 1

    try:
        endpoint = _build_endpoint(args)
        config = _build_upload_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Name": args.name,
            "Sources": ", ".join(str(s) for s in args.sources),
            "Endpoint": endpoint.url or "(missing)",
            "Secret": _mask_secret(endpoint.secret),
            "Encoding": endpoint.encoding,
            "Max File": f"{config.max_file_bytes // MB} MB",
            "Batch Limit": f"{config.max_batch_count} files / {config.max_batch_bytes // MB} MB",
            "Retries": config.batch_retries,
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(_run_upload(args.name, args.sources, endpoint, config))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
