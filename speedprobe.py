#!/usr/bin/env python3
"""
Speed probe CLI -- single-stream download throughput from the terminal.

Usage::

    python speedprobe.py http://mirror.example/pub/          # rich dashboard
    python speedprobe.py URL --simple                         # plain text
    python speedprobe.py URL --json                           # JSON to stdout
    python speedprobe.py URL -o result.json                   # save to file
    python speedprobe.py URL --csv log.csv                    # append CSV row
    python speedprobe.py URL --duration 60                    # longer hard cap
    python speedprobe.py URL --repeat 5 --interval 60         # repeat 5 times
    python speedprobe.py URL --alert-below 5                  # warn if < 5 MB/s
    python speedprobe.py URL -d 60 --save-config              # keep 60 s as default
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

from probe.config import load_config, save_config
from probe.constants import (
    CHUNK_SIZE,
    CONNECT_TIMEOUT,
    DEFAULT_DURATION,
    MAX_CHUNK_SIZE,
    MAX_DURATION,
    MIN_CHUNK_SIZE,
    MIN_DURATION,
    READ_TIMEOUT,
)
from probe.download import SpeedProbe, SpeedtestResult, create_session
from probe.exceptions import ProbeError
from probe.logging_setup import configure_logging
from probe.urls import normalize_url
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_header,
    print_probe_result,
    print_summary,
)
from ui.output import (
    create_result_json,
    format_csv_header,
    format_csv_row,
    format_text_result,
    save_json,
)

LOGGER = logging.getLogger("speedprobe")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(duration: int, chunk_size: int, repeat: int) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_DURATION <= duration <= MAX_DURATION:
        raise ValueError(f"Duration must be between {MIN_DURATION} and {MAX_DURATION} s")
    if not MIN_CHUNK_SIZE <= chunk_size <= MAX_CHUNK_SIZE:
        raise ValueError(f"Chunk size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE} bytes")
    if repeat < 1:
        raise ValueError("Repeat must be >= 1")


# ---------------------------------------------------------------------------
# Core probe runner
# ---------------------------------------------------------------------------

async def run_probes(
    urls: List[str],
    *,
    json_output: bool = False,
    output_file: Optional[str] = None,
    csv_file: Optional[str] = None,
    simple: bool = False,
    duration: int = DEFAULT_DURATION,
    chunk_size: int = CHUNK_SIZE,
    user_agent: Optional[str] = None,
    connect_timeout: float = CONNECT_TIMEOUT,
    read_timeout: float = READ_TIMEOUT,
    alert_below: float = 0.0,
) -> Tuple[List[Dict[str, Any]], int]:
    """Probe every URL in turn.  Returns the JSON records and the failure count."""

    show_ui = not json_output and not simple
    if show_ui:
        print_header()

    records: List[Dict[str, Any]] = []
    summary: List[Tuple[str, object]] = []
    failures = 0

    headers = {"User-Agent": user_agent} if user_agent else None
    async with create_session(headers, connect_timeout, read_timeout) as session:
        for url in urls:
            prober = SpeedProbe(duration_seconds=duration, chunk_size=chunk_size)

            progress = None
            if show_ui:
                progress = ProgressDisplay()
                progress.start("Downloading")
                prober.on_progress = lambda p, s: progress.update(p, s)

            try:
                result = await prober.test(url, session=session)
            except ProbeError as exc:
                failures += 1
                summary.append((url, exc))
                if show_ui:
                    progress.stop()
                    console.print(f"[red]Error: {exc}[/red]")
                else:
                    print(f"Error: {exc}", file=sys.stderr)
                continue
            finally:
                if progress is not None:
                    progress.stop()

            if show_ui:
                print_probe_result(url, result)
            elif simple:
                print(format_text_result(url, result.downloaded_bytes, result.elapsed_ms, result.max_rate_mbs))

            summary.append((url, result))
            records.append(create_result_json(url, result.to_dict()))

            if csv_file:
                _append_csv(csv_file, url, result)

            if alert_below > 0 and result.max_rate_mbs < alert_below:
                msg = (
                    f"ALERT: {url} peaked at {result.max_rate_mbs:.2f} MB/s, "
                    f"below threshold {alert_below:.2f} MB/s"
                )
                if show_ui:
                    console.print(f"\n[bold red]{msg}[/bold red]")
                else:
                    print(msg, file=sys.stderr)

    if show_ui and len(urls) > 1:
        print_summary(summary)

    if json_output:
        print(json.dumps(records, indent=2))

    if output_file:
        save_json(records, output_file)
        if not json_output:
            console.print(f"\n[green]Results saved to:[/green] {output_file}")

    if csv_file and not json_output:
        console.print(f"[green]CSV rows appended to:[/green] {csv_file}")

    return records, failures


def _append_csv(path: str, url: str, result: SpeedtestResult) -> None:
    """Append a single CSV row, writing the header if the file is new."""
    write_header = not os.path.isfile(path) or os.path.getsize(path) == 0
    with open(path, "a", encoding="utf-8") as fh:
        if write_header:
            fh.write(format_csv_header() + "\n")
        fh.write(
            format_csv_row(
                url,
                result.downloaded_bytes,
                result.elapsed_ms,
                result.max_rate_mbs,
                result.stop_reason,
            )
            + "\n"
        )


def _save_defaults(config: Dict[str, Any], args: argparse.Namespace) -> str:
    """Persist the probe flags of this run as the new config defaults."""
    return save_config({
        **config,
        "duration": args.duration,
        "chunk_size": args.chunk_size,
        "alert_below": args.alert_below,
        "csv_file": args.csv or "",
    })


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(config: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Speed probe -- single-stream download throughput",
    )
    parser.add_argument("urls", nargs="+", metavar="URL", help="URL(s) to probe")

    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--csv", type=str, metavar="FILE", default=config["csv_file"] or None, help="Append results as CSV rows")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # Probe parameters
    parser.add_argument("--duration", "-d", type=int, default=config["duration"], metavar="SECS", help="Hard cap per probe in seconds (default: 25)")
    parser.add_argument("--chunk-size", type=int, default=config["chunk_size"], metavar="BYTES", help="Bytes per read (default: 2048)")
    parser.add_argument("--no-normalize", action="store_true", help="Use URLs exactly as given")
    parser.add_argument("--save-config", action="store_true", help="Save --duration, --chunk-size, --csv and --alert-below as defaults")

    # Repeat mode
    parser.add_argument("--repeat", type=int, default=1, metavar="N", help="Run the probes N times (default: 1)")
    parser.add_argument("--interval", type=float, default=60.0, metavar="SECS", help="Seconds between repeated runs (default: 60)")

    # Alerting
    parser.add_argument("--alert-below", type=float, default=config["alert_below"], metavar="MBS", help="Alert if peak speed drops below this many MB/s")

    return parser


def main() -> None:
    config = load_config()
    args = build_parser(config).parse_args()

    # JSON goes to stdout, so logs must not share the dashboard console there
    configure_logging(verbose=args.verbose, console=None if args.json else console)

    try:
        _validate(duration=args.duration, chunk_size=args.chunk_size, repeat=args.repeat)
        urls = args.urls if args.no_normalize else [normalize_url(u) for u in args.urls]
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    if args.save_config:
        path = _save_defaults(config, args)
        if not args.json:
            console.print(f"[green]Defaults saved to:[/green] {path}")

    failed = False
    try:
        for run_idx in range(args.repeat):
            if args.repeat > 1:
                console.print(f"\n[bold cyan]--- Run {run_idx + 1}/{args.repeat} ---[/bold cyan]")

            _, failures = asyncio.run(
                run_probes(
                    urls,
                    json_output=args.json,
                    output_file=args.output,
                    csv_file=args.csv,
                    simple=args.simple,
                    duration=args.duration,
                    chunk_size=args.chunk_size,
                    user_agent=config["user_agent"],
                    connect_timeout=config["connect_timeout"],
                    read_timeout=config["read_timeout"],
                    alert_below=args.alert_below,
                )
            )
            failed = failed or failures > 0

            # Wait between runs (but not after the last one)
            if run_idx < args.repeat - 1:
                if not args.json:
                    console.print(f"[dim]Next run in {args.interval:.0f}s...[/dim]")
                time.sleep(args.interval)

    except KeyboardInterrupt:
        console.print("\n[yellow]Probe cancelled by user[/yellow]")
        sys.exit(1)
    except Exception as exc:
        LOGGER.debug("Unhandled error", exc_info=True)
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
