# service/cli.py
"""
Command-line entrypoints for job_harvest.

Subcommands
-----------
harvest [--keywords K] [--sources PATH] [--kwargs k=v ...] [--json]
    - Runs every configured source once via modules.job_harvest.main.run(...)
    - Ctrl-C cancels cooperatively: sources stop at their next fetch and the
      partial results are still printed
    - Prints a per-source summary table, or one JSON listing per line with --json

resolve NAME CAREERS_URL [--json]
    - Detects the company's ATS and lists its openings

kinds
    - Prints every registered harvester kind

validate-sources [PATH]
    - Loads/validates a sources file and returns nonzero on error
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
import uuid
from collections.abc import Iterable
from typing import Any

from service import logging_utils as L

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            stream=sys.stderr,
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except ValueError:
            out[k] = v
    return out


def _print_table(rows: Iterable[tuple[str, ...]], headers: tuple[str, ...]) -> None:
    """Plain fixed-width table printer."""
    rows = [tuple(str(c) for c in r) for r in rows]
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    print(sep)
    print("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    print(sep)
    for r in rows:
        print("| " + " | ".join(c.ljust(w) for c, w in zip(r, widths)) + " |")
    print(sep)


def _print_listings_jsonl(listings: Iterable[Any]) -> None:
    for listing in listings:
        print(json.dumps(listing.to_record(), ensure_ascii=False))


# ------------------------------ Subcommands ----------------------------------
def cmd_harvest(args: argparse.Namespace) -> int:
    from modules.job_harvest.main import run as run_harvest

    run_id = uuid.uuid4().hex
    start_time = time.monotonic()

    kwargs = _parse_kv_pairs(args.kwargs or [])
    if args.keywords is not None:
        kwargs["keywords"] = args.keywords
    if args.sources:
        kwargs["sources_path"] = args.sources
    LOG.debug("harvest with kwargs=%s", kwargs)

    cancel = threading.Event()

    def _cancel(signum=None, frame=None):
        LOG.info("Signal %s received; cancelling harvest...", signum)
        cancel.set()

    previous = signal.signal(signal.SIGINT, _cancel)
    try:
        report = run_harvest(cancel=cancel, **kwargs)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "event": "cli_harvest",
            "run_id": run_id,
            "kwargs": kwargs,
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return 1
    finally:
        signal.signal(signal.SIGINT, previous)

    L.write_activity_log({
        "event": "cli_harvest",
        "run_id": run_id,
        "kwargs": kwargs,
        "found_by_source": report.counts_by_source(),
        "cancelled": cancel.is_set(),
        "duration_ms": int((time.monotonic() - start_time) * 1000),
    })

    if args.json:
        _print_listings_jsonl(report.listings)
    else:
        _print_table(
            [(r.source, len(r.items), r.pages_fetched, r.stop_reason, len(r.errors)) for r in report.results],
            headers=("SOURCE", "FOUND", "PAGES", "STOP", "ERRORS"),
        )
    return 130 if cancel.is_set() else 0


def cmd_resolve(args: argparse.Namespace) -> int:
    from modules.job_harvest.lib.harvesters.ats import resolve_company

    try:
        result = resolve_company(args.name, args.careers_url)
    except KeyboardInterrupt:
        return 130

    if args.json:
        _print_listings_jsonl(result.listings)
    else:
        print(f"{result.company_name}: {result.ats_type.value} ({result.ats_identifier or '-'})")
        _print_table([(x.title, x.url) for x in result.listings], headers=("TITLE", "URL"))
    if result.error:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return 1
    return 0


def cmd_kinds(args: argparse.Namespace) -> int:
    from modules.job_harvest.lib.harvesters import all_kinds

    kinds = all_kinds()
    _print_table([(k, getattr(f, "__name__", type(f).__name__)) for k, f in sorted(kinds.items())], headers=("KIND", "FACTORY"))
    return 0


def cmd_validate_sources(args: argparse.Namespace) -> int:
    from modules.job_harvest.lib.config import ConfigError, Settings
    from modules.job_harvest.lib.harvesters import get

    try:
        settings = Settings.from_env_and_kwargs({"sources_path": args.path} if args.path else {})
        for sc in settings.selected_sources():
            get(sc.kind)
    except (ConfigError, KeyError) as e:
        print(f"ERROR: sources invalid: {e}", file=sys.stderr)
        return 1
    print(f"OK: {len(settings.selected_sources())} sources are valid.")
    return 0


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="job_harvest command-line tools",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # harvest
    sp = sub.add_parser("harvest", help="Run every configured source once.")
    sp.add_argument("--keywords", help="Search keywords (default: $JOB_HARVEST_KEYWORDS).")
    sp.add_argument("--sources", help="Sources JSON file (default: $JOB_HARVEST_SOURCES).")
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Extra settings, e.g. max_pages=2 skip_network=true (JSON values supported).",
    )
    sp.add_argument("--json", action="store_true", help="Print listings as JSON lines instead of a summary.")
    sp.set_defaults(func=cmd_harvest)

    # resolve
    sp = sub.add_parser("resolve", help="Detect a company's ATS and list its openings.")
    sp.add_argument("name", help="Company display name.")
    sp.add_argument("careers_url", help="Company careers page URL.")
    sp.add_argument("--json", action="store_true", help="Print listings as JSON lines.")
    sp.set_defaults(func=cmd_resolve)

    # kinds
    sp = sub.add_parser("kinds", help="List registered harvester kinds.")
    sp.set_defaults(func=cmd_kinds)

    # validate-sources
    sp = sub.add_parser("validate-sources", help="Verify a sources file.")
    sp.add_argument("path", nargs="?", help="Sources JSON file (default: $JOB_HARVEST_SOURCES).")
    sp.set_defaults(func=cmd_validate_sources)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
