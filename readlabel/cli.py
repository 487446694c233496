"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config
from .orchestrator import ScanStage
from .pipeline import Pipeline, build_pipeline

_STAGE_LABELS = {
    ScanStage.CAPTURING: "📸 Processing image...",
    ScanStage.EXTRACTING: "🔍 Reading ingredients...",
    ScanStage.ANALYZING: "🧠 Analyzing health impact...",
    ScanStage.COMPLETE: "✅ Analysis complete!",
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="readlabel",
        description="ReadLabel: scan a food ingredient label and get a health-risk report",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # scan
    scan_parser = sub.add_parser("scan", help="Read a label photo and analyze it")
    scan_parser.add_argument("image", type=str, help="Image file (JPEG or PNG)")
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    # analyze
    analyze_parser = sub.add_parser("analyze", help="Analyze ingredient text directly")
    analyze_parser.add_argument("text", type=str, help="Ingredient list text")
    analyze_parser.add_argument("--json", action="store_true", help="Output JSON")

    # usage
    usage_parser = sub.add_parser("usage", help="Show today's AI request usage")
    usage_parser.add_argument("--json", action="store_true", help="Output JSON")

    # lookup
    lookup_parser = sub.add_parser("lookup", help="Look up one ingredient")
    lookup_parser.add_argument("name", type=str, help="Ingredient name")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    try:
        pipeline = build_pipeline(config)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(2)

    try:
        match args.command:
            case "scan":
                ok = asyncio.run(_cmd_scan(pipeline, args))
                if not ok:
                    sys.exit(1)
            case "analyze":
                asyncio.run(_cmd_analyze(pipeline, args))
            case "usage":
                _cmd_usage(pipeline, args)
            case "lookup":
                _cmd_lookup(pipeline, args)
    finally:
        pipeline.close()


async def _cmd_scan(pipeline: Pipeline, args) -> bool:
    path = Path(args.image)
    if not path.is_file():
        print(f"Image not found: {path}", file=sys.stderr)
        return False

    def on_progress(stage: ScanStage, progress: int) -> None:
        label = _STAGE_LABELS.get(stage)
        if label and not args.json:
            print(f"{label} ({progress}%)")

    orchestrator = pipeline.orchestrator(on_progress)
    result = await orchestrator.run(path.read_bytes())

    if result is None or not result.ok:
        message = result.error if result else "Scan was abandoned."
        print(message, file=sys.stderr)
        return False

    _print_report(result.report, args.json)
    return True


async def _cmd_analyze(pipeline: Pipeline, args) -> None:
    report = await pipeline.analyzer.analyze(args.text)
    _print_report(report, args.json)


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        return
    print()
    print(report.display())


def _cmd_usage(pipeline: Pipeline, args) -> None:
    stats = pipeline.quota.stats()
    delay = pipeline.quota.recommended_delay()

    if args.json:
        stats["recommended_delay"] = None if math.isinf(delay) else delay
        print(json.dumps(stats, indent=2))
        return

    hours, rest = divmod(int(stats["reset_eta"]), 3600)
    print(f"AI requests today: {stats['count']}/{stats['daily_limit']} ({stats['percentage']}%)")
    print(f"Remaining: {stats['remaining']}")
    print(f"Resets in: {hours}h {rest // 60}m")
    if math.isinf(delay):
        print("Daily limit reached. Analysis will continue offline.")
    else:
        print(f"Recommended spacing: {delay:.0f}s")


def _cmd_lookup(pipeline: Pipeline, args) -> None:
    info = pipeline.db.info(args.name)
    print(f"{info.name}: {info.category.value}")
    print(f"  {info.description}")
    if info.warning:
        print(f"  ⚠ {info.warning}")
    if info.alternatives:
        print(f"  Alternatives: {', '.join(info.alternatives)}")
