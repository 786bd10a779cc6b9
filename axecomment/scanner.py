from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import re
import subprocess
from typing import Any, Callable, Mapping

from axecomment.config import ScanConfig
from axecomment.models import ProtectedReport, ResolvedUrls, ScanErrorReport, SkippedReport
from axecomment.probe import is_password_protected
from axecomment.snapshots import write_marker

logger = logging.getLogger(__name__)

CHROMEDRIVER_OUTPUT_PATTERN = re.compile(r'CHROMEDRIVER_TEST_PATH="([^"]+)"')
BROWSER_DRIVER_OUTPUT_ENV = "BROWSER_DRIVER_OUTPUT"

Prober = Callable[[str], bool]
Runner = Callable[..., Any]


@dataclass(slots=True)
class ScanOutcome:
    baseline_protected: bool = False
    scanned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    protected: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def resolve_chromedriver_path(env: Mapping[str, str] | None = None, configured: str | None = None) -> str | None:
    if configured:
        logger.debug("ChromeDriver path from config: %s", configured)
        return configured

    env = os.environ if env is None else env
    output = env.get(BROWSER_DRIVER_OUTPUT_ENV, "")
    if not output:
        logger.debug("%s environment variable not set", BROWSER_DRIVER_OUTPUT_ENV)
        return None
    match = CHROMEDRIVER_OUTPUT_PATTERN.search(output)
    if match is None:
        logger.debug("CHROMEDRIVER_TEST_PATH not found in output: %s", output[:500])
        return None
    logger.debug("ChromeDriver path from browser-driver-manager output: %s", match.group(1))
    return match.group(1)


def build_axe_command(
    url: str,
    report_path: str | Path,
    axe_binary: str = "axe",
    chromedriver_path: str | None = None,
    extra_args: list[str] | None = None,
) -> list[str]:
    command = [axe_binary, url, "--save", str(report_path)]
    if chromedriver_path:
        command.extend(["--chromedriver-path", chromedriver_path])
    command.extend(extra_args or [])
    return command


def run_scans(
    resolved: ResolvedUrls,
    config: ScanConfig,
    report_paths: Mapping[str, Path],
    prober: Prober | None = None,
    runner: Runner = subprocess.run,
    env: Mapping[str, str] | None = None,
) -> ScanOutcome:
    """Probe the targets, then run axe once per target, one process at a time.

    A password-protected live URL stops the run before any scan: the live
    snapshot becomes a protected marker and the preview snapshot a skipped one.
    A failed axe invocation leaves an error marker in place of the snapshot.
    """
    if prober is None:
        prober = _default_prober(config)
    outcome = ScanOutcome()

    if resolved.default:
        logger.info("Checking if live URL is password protected...")
        if prober(resolved.default):
            logger.warning("Live URL is password protected, skipping all accessibility tests")
            write_marker(report_paths["default"], ProtectedReport(url=resolved.default))
            outcome.protected.append("default")
            if resolved.preview:
                write_marker(report_paths["preview"], SkippedReport(url=resolved.preview))
                outcome.skipped.append("preview")
            outcome.baseline_protected = True
            return outcome

    chromedriver_path = resolve_chromedriver_path(env, config.chromedriver_path)

    for target in resolved.targets():
        report_path = report_paths[target.role]
        if target.role == "preview" and config.probe_preview and prober(target.url):
            logger.warning("Preview URL is password protected, skipping its accessibility test")
            write_marker(report_path, ProtectedReport(url=target.url))
            outcome.protected.append(target.role)
            continue

        command = build_axe_command(
            target.url,
            report_path,
            axe_binary=config.axe_binary,
            chromedriver_path=chromedriver_path,
            extra_args=config.axe_args,
        )
        logger.info("Running axe on %s: %s", target.role, target.url)
        logger.debug("Executing axe command for %s: %s", target.role, command)
        try:
            runner(command, check=True, timeout=config.scan_timeout)
        except (subprocess.SubprocessError, OSError) as exc:
            logger.error("Error running axe on %s: %s", target.role, exc)
            write_marker(report_path, ScanErrorReport(url=target.url, error=str(exc)))
            outcome.failed.append(target.role)
            continue

        if Path(report_path).exists():
            logger.info("Saved: %s", report_path)
        else:
            logger.error("Report file not created: %s", report_path)
        outcome.scanned.append(target.role)

    return outcome


def _default_prober(config: ScanConfig) -> Prober:
    def probe(url: str) -> bool:
        return is_password_protected(url, timeout=config.probe_timeout, password_path=config.password_path)

    return probe
