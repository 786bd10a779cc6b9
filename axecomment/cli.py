from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys

from axecomment import __version__
from axecomment.baseline import IMPACT_ORDER
from axecomment.config import BASELINE_STRATEGIES, REPORT_FORMATS, Config, ReportConfig, load_config, resolve_output_path
from axecomment.models import AxeReport, ProtectedReport
from axecomment.quality_gate import evaluate_gate
from axecomment.reporters import compare_reports, report_status, to_json_summary, to_markdown_report, write_report
from axecomment.scanner import run_scans
from axecomment.snapshots import load_report, read_attempted_urls, write_attempted_urls
from axecomment.urls import resolve_urls

logger = logging.getLogger(__name__)

PR_BODY_ENV = "PR_BODY"
LIVE_ORIGIN_ENV = "LIVE_ORIGIN"
DEBUG_ENV = "DEBUG"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="axecomment",
        description="Run axe against a pull request's theme preview and render the results as a Markdown comment.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Resolve preview/live URLs from the PR body and run axe on them.")
    scan.add_argument("--config", help="Path to axecomment TOML config.")
    scan.add_argument("--body", help=f"Pull request body text. Defaults to ${PR_BODY_ENV}.")
    scan.add_argument("--body-file", help="Read the pull request body from a file.")
    scan.add_argument("--live-origin", help=f"Live site origin for the 'origin' strategy. Defaults to ${LIVE_ORIGIN_ENV}.")
    scan.add_argument("--baseline-strategy", choices=BASELINE_STRATEGIES, help="How to derive the live URL.")
    scan.add_argument("--output-dir", default=".", help="Directory for snapshot files.")
    scan.add_argument("--axe-binary", help="axe executable to invoke.")
    scan.add_argument("--chromedriver-path", help="ChromeDriver binary passed through to axe.")
    scan.add_argument("--no-probe-preview", action="store_true", help="Do not probe the preview URL for protection.")
    scan.add_argument("--debug", action="store_true", help=f"Verbose logging (also enabled by {DEBUG_ENV}=true).")

    comment = subparsers.add_parser("comment", help="Render the axe snapshots as a Markdown comment.")
    comment.add_argument("--config", help="Path to axecomment TOML config.")
    comment.add_argument("--input-dir", default=".", help="Directory holding the snapshot files.")
    comment.add_argument("--out", help="Write the comment to this file ('-' for stdout).")
    comment.add_argument("--format", choices=REPORT_FORMATS, help="Output format.")
    comment.add_argument(
        "--fail-on-new",
        choices=list(IMPACT_ORDER),
        help="Exit with status 2 when a new violation of this impact or worse is found.",
    )
    comment.add_argument("--max-new", type=int, help="Exit with status 2 when new violations exceed this number.")
    comment.add_argument("--debug", action="store_true", help=f"Verbose logging (also enabled by {DEBUG_ENV}=true).")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.debug)

    if args.command == "scan":
        raise SystemExit(run_scan(args))
    if args.command == "comment":
        raise SystemExit(run_comment(args))


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug or os.environ.get(DEBUG_ENV) == "true" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_scan(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    merged = merge_cli_with_config(args, config)
    validation_errors = validate_config(merged)
    if merged.scan.baseline_strategy == "origin" and not merged.scan.live_origin:
        validation_errors.append("baseline_strategy 'origin' requires live_origin")
    if validation_errors:
        for error in validation_errors:
            print(f"[config] {error}", file=sys.stderr)
        return 2

    body = read_pr_body(args)
    logger.debug("PR body: %s", body[:200] + ("..." if len(body) > 200 else ""))
    resolved = resolve_urls(body, merged.scan)
    if not resolved:
        print("[scan] No valid URLs found for accessibility testing.", file=sys.stderr)
        return 0

    output_dir = Path(args.output_dir)
    write_attempted_urls(output_dir / merged.report.attempted_urls, resolved)
    outcome = run_scans(resolved, merged.scan, report_paths(output_dir, merged.report))

    print(
        "[scan] "
        f"targets={len(resolved.targets())} scanned={len(outcome.scanned)} failed={len(outcome.failed)} "
        f"protected={len(outcome.protected)} skipped={len(outcome.skipped)}",
        file=sys.stderr,
    )
    if outcome.baseline_protected:
        print("[scan] Live URL is password protected. Exiting early.", file=sys.stderr)
    return 0


def run_comment(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    merged = merge_cli_with_config(args, config)
    validation_errors = validate_config(merged)
    if validation_errors:
        for error in validation_errors:
            print(f"[config] {error}", file=sys.stderr)
        return 2

    input_dir = Path(args.input_dir)
    paths = report_paths(input_dir, merged.report)
    preview = load_report(paths["preview"])
    default = load_report(paths["default"])
    attempted_urls = read_attempted_urls(input_dir / merged.report.attempted_urls)
    logger.debug(
        "Report files status: preview=%s default=%s attempted=%s",
        report_status(preview),
        report_status(default),
        attempted_urls,
    )

    out = resolve_output_path(merged.report)
    if merged.report.output_format == "json":
        payload = to_json_summary(preview, default, attempted_urls, banner_param=merged.scan.banner_param)
        write_report(payload, out)
    else:
        rendered = to_markdown_report(
            preview,
            default,
            attempted_urls,
            banner_param=merged.scan.banner_param,
            preview_param=merged.scan.preview_param,
        )
        write_report(rendered, out)
    print(f"[comment] {out} generated", file=sys.stderr)

    new_violations = None
    if isinstance(preview, AxeReport) and not isinstance(default, ProtectedReport):
        comparison = compare_reports(preview, default)
        new_violations = comparison.new
        print(
            "[baseline] "
            f"total={len(comparison.current)} baseline_matches={comparison.baseline_matched} "
            f"new={len(comparison.new) if comparison.new is not None else 'n/a'}",
            file=sys.stderr,
        )

    passed, reasons = evaluate_gate(
        new_violations,
        fail_on_new=merged.quality_gate.fail_on_new,
        max_new_violations=merged.quality_gate.max_new_violations,
    )
    if not passed:
        for reason in reasons:
            print(f"[gate] {reason}", file=sys.stderr)
        return 2
    return 0


def merge_cli_with_config(args: argparse.Namespace, config: Config) -> Config:
    merged = config
    if getattr(args, "live_origin", None):
        merged.scan.live_origin = args.live_origin
    elif not merged.scan.live_origin and os.environ.get(LIVE_ORIGIN_ENV):
        merged.scan.live_origin = os.environ[LIVE_ORIGIN_ENV]
    if getattr(args, "baseline_strategy", None):
        merged.scan.baseline_strategy = args.baseline_strategy
    if getattr(args, "axe_binary", None):
        merged.scan.axe_binary = args.axe_binary
    if getattr(args, "chromedriver_path", None):
        merged.scan.chromedriver_path = args.chromedriver_path
    if getattr(args, "no_probe_preview", False):
        merged.scan.probe_preview = False
    if getattr(args, "out", None):
        merged.report.out = args.out
    if getattr(args, "format", None):
        merged.report.output_format = args.format
    if getattr(args, "fail_on_new", None):
        merged.quality_gate.fail_on_new = args.fail_on_new
    if getattr(args, "max_new", None) is not None:
        merged.quality_gate.max_new_violations = args.max_new
    return merged


def validate_config(config: Config) -> list[str]:
    errors: list[str] = []
    if config.scan.baseline_strategy not in BASELINE_STRATEGIES:
        errors.append(f"baseline_strategy must be one of: {', '.join(BASELINE_STRATEGIES)}")
    if config.scan.probe_timeout <= 0:
        errors.append("probe_timeout must be > 0")
    if config.scan.scan_timeout is not None and config.scan.scan_timeout <= 0:
        errors.append("scan_timeout must be > 0")
    if not config.scan.preview_param:
        errors.append("preview_param must be non-empty")
    if config.report.output_format not in REPORT_FORMATS:
        errors.append(f"format must be one of: {', '.join(REPORT_FORMATS)}")
    if config.quality_gate.fail_on_new is not None and config.quality_gate.fail_on_new not in IMPACT_ORDER:
        errors.append(f"fail_on_new must be one of: {', '.join(IMPACT_ORDER)}")
    if config.quality_gate.max_new_violations is not None and config.quality_gate.max_new_violations < 0:
        errors.append("max_new_violations must be >= 0")
    return errors


def read_pr_body(args: argparse.Namespace) -> str:
    if args.body_file:
        return Path(args.body_file).read_text(encoding="utf-8")
    if args.body is not None:
        return args.body
    return os.environ.get(PR_BODY_ENV, "")


def report_paths(directory: Path, report_config: ReportConfig) -> dict[str, Path]:
    return {
        "preview": directory / report_config.preview_report,
        "default": directory / report_config.default_report,
    }


if __name__ == "__main__":
    main()
