#!/usr/bin/env python3
"""
UX Heuristic Audit

Evaluates a web page, or a whole crawled site, against usability
heuristics and writes an HTML report.

Usage:
    python audit.py --url https://example.com [--heuristics nn_20] [--annotate]
    python audit.py --url https://example.com --custom visibility,consistency
    python audit.py --url https://example.com --crawl --mode standard [--project "Acme"]
"""

import argparse
import sys
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from heuristics.catalog import CUSTOM_SET_ID, DEFAULT_SET_ID, HEURISTIC_SETS
from heuristics.resolver import resolve_selection
from heuristics.selection import HeuristicSelection
from orchestrator.context_store import ContextStore
from orchestrator.orchestrator import Orchestrator
from utils.annotate import (
    annotate_screenshot,
    crop_violation,
    image_to_bytes,
    image_to_data_uri,
    legend_entries,
    load_image,
)
from utils.config import load_env_file
from utils.crawler import CRAWL_MODES, DEFAULT_CRAWL_MODE
from utils.errors import AuditError
from utils.llm_client import LLMClient
from utils.report import export_json, generate_html_report, generate_site_report
from utils.scoring import AnalysisResult

logger = logging.getLogger(__name__)

load_env_file()


def build_selection(heuristics: Optional[str] = None, custom: Optional[str] = None) -> HeuristicSelection:
    """Selection from CLI-style arguments; --custom implies the custom set."""
    if custom:
        ids = tuple(h.strip() for h in custom.split(',') if h.strip())
        return HeuristicSelection(set_id=CUSTOM_SET_ID, custom_ids=ids)
    return HeuristicSelection(set_id=heuristics or DEFAULT_SET_ID)


def build_context(selection: HeuristicSelection, capture_screenshots: bool = True) -> ContextStore:
    """Create a ContextStore with the resolved heuristics."""
    context = ContextStore(selection=selection, capture_screenshots=capture_screenshots)
    context.heuristic_ids = resolve_selection(selection)
    return context


async def run_audit_pipeline(url: str, selection: HeuristicSelection, verbose: bool = False,
                             progress_callback=None, skip_screenshots: bool = False
                             ) -> Tuple[AnalysisResult, ContextStore]:
    """
    Single-page audit pipeline usable by both CLI and Streamlit.

    Returns:
        Tuple of (AnalysisResult, ContextStore)
    """
    context = build_context(selection, capture_screenshots=not skip_screenshots)
    orchestrator = Orchestrator(context, LLMClient(), verbose=verbose, progress_callback=progress_callback)
    result = await orchestrator.analyze_page(url)
    return result, context


def annotate_result(result: AnalysisResult) -> Tuple[str, List]:
    """Annotated screenshot data URI and its legend; empty when there is no screenshot."""
    if not result.screenshot:
        return "", []
    legend = legend_entries(result.violations)
    image = annotate_screenshot(load_image(result.screenshot), result.violations)
    return image_to_data_uri(image), legend


def crop_result(result: AnalysisResult) -> Dict[int, bytes]:
    """PNG close-ups of boxed violations, keyed by id() of the violation."""
    if not result.screenshot:
        return {}
    image = load_image(result.screenshot)
    return {
        id(v): image_to_bytes(crop_violation(image, v.bounding_box, v.severity))
        for v in result.violations if v.bounding_box
    }


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in '-_' else '-' for c in name).strip('-') or "audit"


def _print_violations(violations, limit: int = 10):
    for violation in violations[:limit]:
        print(f"  [{violation.severity.value.upper():6}] {violation.title} ({violation.heuristic})")
    if len(violations) > limit:
        print(f"  ... and {len(violations) - limit} more")


def run_page(args, selection: HeuristicSelection, output_dir: Path) -> int:
    result, context = asyncio.run(run_audit_pipeline(
        args.url, selection, verbose=args.verbose, skip_screenshots=args.no_screenshots,
    ))

    annotated, legend = "", []
    if args.annotate:
        try:
            annotated, legend = annotate_result(result)
        except (OSError, ValueError) as e:
            logger.warning("Could not annotate screenshot: %s", e)

    project = args.project or result.website_name
    stamp = datetime.now().strftime('%Y-%m-%d')
    base = output_dir / f"{_safe_name(project)}-ux-audit-{stamp}"
    report_path = f"{base}.html"
    generate_html_report(result, report_path, project_name=project,
                         annotated_screenshot=annotated, legend=legend)
    export_json(result.to_dict(), f"{base}.json")

    print(f"\n{'='*60}")
    print("  AUDIT COMPLETE")
    print(f"{'='*60}")
    print(f"\nScore: {result.overall_score} ({result.grade.value})")
    if result.breakdown and result.breakdown.industry:
        print(f"Industry: {result.breakdown.industry.category}")
    print(f"Heuristics evaluated: {len(result.heuristic_ids)}")
    print(f"Violations: {len(result.violations)} | Strengths: {len(result.strengths)}")
    _print_violations(result.violations)
    print(f"\nReport saved to: {report_path}")

    if args.verbose:
        print(f"\n--- Audit Details ---")
        for key, value in context.get_summary().items():
            print(f"{key}: {value}")
    return 0


def run_crawl(args, selection: HeuristicSelection, output_dir: Path) -> int:
    context = build_context(selection, capture_screenshots=not args.no_screenshots)

    def progress(phase, status, detail=""):
        print(f"  [{phase}] {status}: {detail}")

    orchestrator = Orchestrator(context, LLMClient(), verbose=args.verbose, progress_callback=progress)
    job = orchestrator.run_site_audit(args.url, mode=args.mode, project_name=args.project or "")

    if job.status != "completed":
        print(f"\nCrawl ended with status '{job.status}': {job.error_message or job.status_message}")
        return 1

    report = orchestrator.load_site_report(job.id)
    stamp = datetime.now().strftime('%Y-%m-%d')
    report_path = str(output_dir / f"{_safe_name(job.project_name)}-site-audit-{stamp}.html")
    generate_site_report(report, report_path)

    print(f"\n{'='*60}")
    print("  SITE AUDIT COMPLETE")
    print(f"{'='*60}")
    print(f"\nScore: {report.overall_score} ({report.grade.value}) across {len(report.pages)} pages")
    print(f"Unique violations: {len(report.violations)}")
    _print_violations(report.violations)
    print(f"\nReport saved to: {report_path}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description='UX Heuristic Audit - evaluate pages and sites against usability heuristics'
    )
    parser.add_argument('--url', '-u', required=True, help='Page (or site root with --crawl) to audit')
    parser.add_argument('--crawl', action='store_true', help='Crawl the whole site via Firecrawl')
    parser.add_argument('--mode', default=DEFAULT_CRAWL_MODE, choices=sorted(CRAWL_MODES),
                        help=f'Crawl depth preset (default: {DEFAULT_CRAWL_MODE})')
    parser.add_argument('--heuristics', '-H', default=DEFAULT_SET_ID,
                        choices=[s.id for s in HEURISTIC_SETS if not s.is_custom],
                        help=f'Heuristic set to evaluate (default: {DEFAULT_SET_ID})')
    parser.add_argument('--custom', help='Comma-separated heuristic ids; overrides --heuristics')
    parser.add_argument('--project', '-p', help='Project name used in report titles')
    parser.add_argument('--output', '-o', default='./output/', help='Output directory for reports')
    parser.add_argument('--annotate', action='store_true', help='Draw violation regions on the screenshot')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--no-screenshots', action='store_true', help='Skip screenshot capture')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("\n" + "="*60)
    print("  UX HEURISTIC AUDIT")
    print("="*60 + "\n")

    selection = build_selection(args.heuristics, args.custom)
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        runner = run_crawl if args.crawl else run_page
        sys.exit(runner(args, selection, output_dir))
    except AuditError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception("Critical error during audit: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
