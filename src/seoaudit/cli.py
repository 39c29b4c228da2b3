"""Command-line interface for the SEO audit crawler."""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Optional

from pydantic import ValidationError

from seoaudit.config import CrawlerConfig, ScoringThresholds, settings
from seoaudit.constants import DEFAULT_MAX_DEPTH, DEFAULT_MAX_PAGES
from seoaudit.fetcher import HttpFetchAdapter
from seoaudit.logging_config import get_logger, setup_logging
from seoaudit.models import CrawlCompletion, CrawlJob, CrawlStatus, PageResult
from seoaudit.reporting import CrawlReport
from seoaudit.service import CrawlService

logger = get_logger(__name__)


def print_page_line(page: PageResult) -> None:
    """Print one crawled page as a single status line."""
    fallback = " [rendered]" if page.used_render_fallback else ""
    overall = f" overall={page.score.overall_score}" if page.score else ""
    print(
        f"[{page.depth}] {page.status_code} {page.url} "
        f"score={page.seo_score}{overall} errors={page.errors_count} "
        f"warnings={page.warnings_count}{fallback}"
    )


def print_summary(report: CrawlReport, completion: CrawlCompletion) -> None:
    """Print the site summaries of a finished crawl."""
    site = report.site_score()
    seo = report.site_seo_score()
    technical = report.technical_summary()
    content = report.content_summary()
    speed = report.speed_summary()

    print(f"\n{'=' * 60}")
    print(f"Crawl {completion.crawl_id}: {completion.status.value}")
    print(f"{'=' * 60}")
    if completion.error:
        print(f"\n❌ {completion.error}")
    print(f"\nPages crawled: {completion.pages_crawled} (failed fetches: {completion.failed_fetches})")

    print(f"\n📊 Site Score: {site.site_score}/100")
    print(f"  • Errors: {site.errors_count}")
    print(f"  • Warnings: {site.warnings_count}")
    if seo.pages_scored:
        print(f"  • Technical: {seo.average_technical_score}/100")
        print(f"  • Content: {seo.average_content_score}/100")
        print(f"  • Overall: {seo.average_overall_score}/100")

    if technical.issues_by_code:
        print("\n⚠️  Issues by code:")
        for entry in technical.issues_by_code:
            print(f"  • {entry.code}: {entry.count} (-{entry.points_deducted})")

    print("\nContent:")
    print(f"  • Average word count: {content.average_word_count}")
    print(f"  • Pages missing title: {content.pages_missing_title}")
    print(f"  • Pages missing meta description: {content.pages_missing_meta_description}")
    print(f"  • Thin content pages: {content.pages_with_thin_content}")
    if content.image_alt_coverage_percent is not None:
        print(f"  • Image alt coverage: {content.image_alt_coverage_percent}%")

    if speed.pages_with_speed_data:
        print(f"\nSpeed ({speed.pages_with_speed_data} pages measured):")
        print(f"  • TTFB: {speed.average_ttfb}ms")
        print(f"  • DOM load: {speed.average_dom_load_time}ms")
        print(f"  • Total load: {speed.average_total_load_time}ms")

    print(f"\n{'=' * 60}\n")


def build_crawler_config(args) -> CrawlerConfig:
    """Crawler config from file or environment, with command-line overrides."""
    config = CrawlerConfig.from_file(args.config) if args.config else CrawlerConfig.from_env()
    if args.check_links:
        config = replace(config, check_link_status=True)
    if args.no_speed:
        config = replace(config, speed_enabled=False)
    return config


async def _run_crawl(
    job: CrawlJob,
    config: CrawlerConfig,
    thresholds: ScoringThresholds,
    stream: bool,
) -> tuple[CrawlReport, CrawlCompletion]:
    """Run one crawl job to completion."""
    async with HttpFetchAdapter(config) as adapter:
        service = CrawlService(adapter, config, thresholds)
        handle = service.start_crawl(job)
        try:
            async for page in handle:
                if stream:
                    print_page_line(page)
        except asyncio.CancelledError:
            await service.shutdown()
            raise
        completion = await handle.wait()
        return handle.report(thresholds), completion


def crawl_command(args) -> int:
    """Crawl a site and print its audit results."""
    try:
        job = CrawlJob(seed_url=args.url, max_depth=args.max_depth, max_pages=args.max_pages)
    except ValidationError as e:
        for error in e.errors():
            print(f"Error: {error['msg']}")
        return 2

    config = build_crawler_config(args)
    thresholds = ScoringThresholds.from_file(args.config) if args.config else ScoringThresholds.from_env()

    logger.debug(f"Crawler config: {config.to_dict()}")

    try:
        report, completion = asyncio.run(_run_crawl(job, config, thresholds, stream=args.output == "text"))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130

    if args.output == "json":
        result = report.to_dict()
        result["crawl"] = {
            "crawl_id": completion.crawl_id,
            "seed_url": job.seed_url,
            "status": completion.status.value,
            "pages_crawled": completion.pages_crawled,
            "failed_fetches": completion.failed_fetches,
            "error": completion.error,
        }
        output = json.dumps(result, indent=2, default=str)
        if args.output_file:
            with open(args.output_file, "w") as f:
                f.write(output)
            print(f"Results written to {args.output_file}")
        else:
            print(output)
    else:
        print_summary(report, completion)

    return 1 if completion.status is CrawlStatus.FAILED else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seoaudit",
        description="SEO Audit - Crawl a website and score its technical and content SEO health"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help=f"Set logging verbosity (default: {settings.LOG_LEVEL.upper()})",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    crawl_parser = subparsers.add_parser(
        "crawl", help="Crawl a site from a seed URL and audit every page."
    )
    crawl_parser.add_argument("url", help="Seed URL (http or https)")
    crawl_parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Deepest link level to follow from the seed (default: {DEFAULT_MAX_DEPTH})",
    )
    crawl_parser.add_argument(
        "--max-pages",
        type=int,
        default=DEFAULT_MAX_PAGES,
        help=f"Maximum pages to fetch (default: {DEFAULT_MAX_PAGES})",
    )
    crawl_parser.add_argument(
        "--check-links",
        action="store_true",
        help="HEAD-check every outgoing link to detect broken links",
    )
    crawl_parser.add_argument(
        "--no-speed",
        action="store_true",
        help="Skip browser speed measurements",
    )
    crawl_parser.add_argument(
        "--config",
        help="JSON file with 'crawler' and 'thresholds' sections",
    )
    crawl_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    crawl_parser.add_argument(
        "--output-file",
        "-f",
        help="Write output to file (only for json format)",
    )
    crawl_parser.set_defaults(func=crawl_command)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
