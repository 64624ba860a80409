"""
Command-line entry point.

Usage:
    python -m recengine BRAND_ID               # show the last viewed stage
    python -m recengine BRAND_ID --stage 2     # show stage 2
    python -m recengine BRAND_ID --generate    # request a new generation first
"""

import argparse
import asyncio
from typing import List, Optional

from .config import get_logger, settings, setup_logging
from .controllers.workflow_engine import WorkflowEngine
from .models.result import Outcome
from .services.api_client import APIClient
from .services.session_store import SessionStore

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recengine",
        description="Recommendation workflow engine",
    )
    parser.add_argument("brand_id", help="Brand whose recommendations to load")
    parser.add_argument(
        "--stage",
        type=int,
        choices=[1, 2, 3, 4],
        help="Stage to show (default: the stage last viewed for this brand)",
    )
    parser.add_argument(
        "--generate",
        action="store_true",
        help="Request a new generation before showing it",
    )
    parser.add_argument("--api-url", help=f"Backend base URL (default: {settings.API_BASE_URL})")
    parser.add_argument("--token", help="Bearer token (default: API_TOKEN)")
    parser.add_argument("--state-file", help="Session state file (default: STATE_FILE_PATH)")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def format_stage(engine: WorkflowEngine) -> List[str]:
    stage = engine.stage
    lines = [f"📋 {engine.brand_name or engine.brand_id} - Step {int(stage)}: {stage.label}"]
    recs = engine.recommendations
    if not recs:
        lines.append("   (no recommendations)")
    for rec in recs:
        priority = rec.priority.value if rec.priority else "-"
        lines.append(f"   [{rec.review_status.value}] {priority:<6} {rec.action} ({rec.id})")
    return lines


async def run(args: argparse.Namespace, api) -> int:
    """Drive one engine session against ``api`` and print the resulting stage."""
    store = SessionStore(args.state_file) if args.state_file else None
    engine = WorkflowEngine(api, store)
    try:
        result = await engine.select_brand(args.brand_id)
        if result.outcome == Outcome.FAILED:
            print(f"❌ {engine.error or result.message}")
            return 1

        if args.generate:
            print("🚀 Generating recommendations...")
            result = await engine.generate()
            if result.is_ambiguous:
                print(f"⏳ {result.message}")
                result = await engine.load_latest_generation()
            if result.outcome == Outcome.FAILED:
                print(f"❌ {engine.error or result.message}")
                return 1

        if args.stage and args.stage != engine.stage:
            await engine.navigate(args.stage)

        for line in format_stage(engine):
            print(line)
        if engine.error:
            print(f"⚠️ {engine.error}")
            return 1
        return 0
    finally:
        await engine.close()


async def _run_with_client(args: argparse.Namespace) -> int:
    async with APIClient(base_url=args.api_url, token=args.token) as api:
        return await run(args, api)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    logger.info(f"🔗 Backend: {args.api_url or settings.API_BASE_URL}")
    try:
        return asyncio.run(_run_with_client(args))
    except KeyboardInterrupt:
        print("\n🛑 Interrupted")
        return 130
