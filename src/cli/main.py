"""
CLI main entry point for the JavaScript Rendering Differential Analyzer.

Thin wrapper around the core engine - no business logic here.
"""

import argparse
import csv
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from renderdiff import Analyzer, AnalyzerConfig, BatchConfig, BatchRunner, select_pending_rows
from renderdiff.errors import BatchDeadlineExceeded, InvalidInputError
from renderdiff.models import AnalysisMode
from renderdiff.storage import FileStorage, StorageError

from .output import print_batch_summary, print_report

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_DEADLINE = 2


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Measure how much of a web page's content only exists after JavaScript runs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s analyze https://example.com
  %(prog)s analyze https://example.com --mode stealth -o ./results
  %(prog)s batch sheet.csv --max-batch 10 --delay 2000
        """,
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default=None,
        help="Directory to save output files (default: OUTPUT_DIR or current directory)",
    )

    parser.add_argument(
        "-m",
        "--mode",
        type=str,
        choices=[mode.value for mode in AnalysisMode],
        default=None,
        help="Analysis mode (default: ANALYSIS_TYPE or full)",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=None,
        help="Navigation timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="Custom User-Agent header (optional)",
    )

    parser.add_argument(
        "--no-publish",
        action="store_true",
        help="Print results without writing any files",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a single URL")
    analyze_parser.add_argument("url", type=str, help="Absolute http(s) URL to analyze")

    batch_parser = subparsers.add_parser(
        "batch", help="Analyze pending rows of a CSV sheet (URL in column A, result in column B)"
    )
    batch_parser.add_argument("sheet", type=str, help="CSV file with a header row")
    batch_parser.add_argument(
        "--max-batch",
        type=int,
        default=None,
        help="Maximum number of URLs per run (default: MAX_BATCH_SIZE or 50)",
    )
    batch_parser.add_argument(
        "--delay",
        type=int,
        default=None,
        help="Delay between URLs in milliseconds (default: DELAY_BETWEEN_URLS or 5000)",
    )

    return parser.parse_args(argv)


def build_configs(args: argparse.Namespace) -> tuple[AnalyzerConfig, BatchConfig]:
    """
    Build configuration from the environment, then apply command-line overrides.
    """
    config = AnalyzerConfig.from_env(os.environ)
    batch_config = BatchConfig.from_env(os.environ)

    if args.mode:
        config = replace(config, mode=AnalysisMode.parse(args.mode))
    if args.output_dir:
        config = replace(config, output_dir=args.output_dir)
    if args.timeout:
        config = replace(config, navigation_timeout_ms=args.timeout * 1000)  # Convert to milliseconds
    if args.user_agent:
        config = replace(config, user_agent=args.user_agent)
    if args.no_publish:
        config = replace(config, publish_results=False)

    if args.command == "batch":
        if args.max_batch is not None:
            batch_config = replace(batch_config, max_batch_size=args.max_batch)
        if args.delay is not None:
            batch_config = replace(batch_config, delay_between_targets_ms=args.delay)

    return config, batch_config


def read_rows_from_file(input_file: str) -> list[list[str]]:
    """
    Read sheet rows from a CSV file.

    Args:
        input_file: Path to input file

    Returns:
        List of rows, header first

    Raises:
        SystemExit: If file cannot be read
    """
    file_path = Path(input_file)

    if not file_path.exists():
        print(f"Error: File not found: {input_file}", file=sys.stderr)
        sys.exit(EXIT_FAILED)

    try:
        with open(file_path, "r", newline="", encoding="utf-8") as f:
            return [row for row in csv.reader(f)]
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        print(f"Error reading file {input_file}: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)


def run_analyze(args: argparse.Namespace, config: AnalyzerConfig) -> int:
    storage = FileStorage(output_directory=config.output_dir) if config.publish_results else None
    analyzer = Analyzer(config, screenshot_sink=storage.save_screenshot if storage else None)

    print(f"Analyzing {args.url} ({config.mode.value} mode)...")
    report = analyzer.analyze(args.url, config.mode)
    print_report(report)

    if storage is not None:
        try:
            paths = storage.save_report(report)
        except StorageError as e:
            print(f"✗ Failed to save results: {e}", file=sys.stderr)
            return EXIT_FAILED
        for path in paths:
            print(f"✓ Saved: {path}")

    return EXIT_OK if report.success else EXIT_FAILED


def run_batch(args: argparse.Namespace, config: AnalyzerConfig, batch_config: BatchConfig) -> int:
    print(f"Reading rows from: {args.sheet}")
    candidates = select_pending_rows(read_rows_from_file(args.sheet))
    print(f"Found {len(candidates)} pending URLs\n")

    if not candidates:
        return EXIT_OK

    storage = FileStorage(output_directory=config.output_dir) if config.publish_results else None
    analyzer = Analyzer(config, screenshot_sink=storage.save_screenshot if storage else None)

    def save_target(candidate, report):
        if storage is not None:
            storage.save_report(report, prefix=f"row-{candidate.row_index}")

    runner = BatchRunner(analyzer, batch_config, on_report=save_target)
    result = runner.run(candidates)
    print_batch_summary(result)

    if storage is not None:
        output_path = storage.save_batch(result)
        print(f"\n✓ Results saved to: {output_path}")

    return EXIT_FAILED if result.failed > 0 or result.publish_errors else EXIT_OK


def main(argv: list[str] | None = None) -> None:
    """
    Main CLI entry point.

    Orchestrates the entire CLI workflow:
    1. Parse arguments and build configuration
    2. Run a single analysis or a batch
    3. Display results
    4. Save results to files (unless publishing is disabled)
    """
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config, batch_config = build_configs(args)
        if args.command == "analyze":
            code = run_analyze(args, config)
        else:
            code = run_batch(args, config, batch_config)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = EXIT_FAILED
    except BatchDeadlineExceeded as e:
        print(f"Error: {e}", file=sys.stderr)
        code = EXIT_DEADLINE
    except (StorageError, ValueError) as e:
        print(f"✗ {e}", file=sys.stderr)
        code = EXIT_FAILED

    sys.exit(code)


if __name__ == "__main__":
    main()
