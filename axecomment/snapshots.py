from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from axecomment.models import (
    AbsentReport,
    AxeReport,
    Occurrence,
    PROTECTED_ERROR,
    ProtectedReport,
    Report,
    ResolvedUrls,
    SKIPPED_ERROR,
    ScanErrorReport,
    SkippedReport,
    ViolationGroup,
)

logger = logging.getLogger(__name__)

CHECK_KEYS = ("any", "all", "none")


def load_report(path: str | Path) -> Report:
    report_path = Path(path)
    if not report_path.exists():
        return AbsentReport()
    try:
        payload = json.loads(report_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Unable to read report %s: %s", report_path, exc)
        return AbsentReport()
    return parse_report(payload)


def parse_report(payload: Any) -> Report:
    """Decide which report variant a decoded snapshot represents.

    The scanner writes either its native result (an object, or a list wrapping
    one) or one of the marker objects written by ``write_marker``.
    """
    if isinstance(payload, dict):
        url = _as_str(payload.get("url"))
        if payload.get("passwordProtected"):
            return ProtectedReport(url=url, error=_as_str(payload.get("error")) or PROTECTED_ERROR)
        if payload.get("skipped"):
            return SkippedReport(url=url, error=_as_str(payload.get("error")) or SKIPPED_ERROR)
        if isinstance(payload.get("violations"), list):
            return AxeReport(url=url, violations=_parse_violations(payload["violations"]))
        if isinstance(payload.get("error"), str):
            return ScanErrorReport(url=url, error=payload["error"])
        return AbsentReport(url=url)

    if isinstance(payload, list) and payload:
        first = payload[0]
        if isinstance(first, dict) and isinstance(first.get("violations"), list):
            return AxeReport(url=_as_str(first.get("url")), violations=_parse_violations(first["violations"]))
    return AbsentReport()


def write_marker(path: str | Path, report: ProtectedReport | SkippedReport | ScanErrorReport) -> None:
    if isinstance(report, ProtectedReport):
        payload: dict[str, Any] = {"url": report.url, "passwordProtected": True, "error": report.error}
    elif isinstance(report, SkippedReport):
        payload = {"url": report.url, "passwordProtected": False, "skipped": True, "error": report.error}
    elif isinstance(report, ScanErrorReport):
        payload = {"error": report.error, "url": report.url}
    else:
        raise TypeError(f"Not a marker report: {type(report).__name__}")
    _write_json(path, payload)


def write_attempted_urls(path: str | Path, resolved: ResolvedUrls) -> None:
    _write_json(path, resolved.to_dict())


def read_attempted_urls(path: str | Path) -> dict[str, str]:
    side_path = Path(path)
    if not side_path.exists():
        return {}
    try:
        payload = json.loads(side_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Error reading %s: %s", side_path, exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    return {str(key): value for key, value in payload.items() if isinstance(value, str)}


def _parse_violations(raw_violations: list[Any]) -> list[ViolationGroup]:
    groups: list[ViolationGroup] = []
    for raw in raw_violations:
        if not isinstance(raw, dict):
            continue
        nodes = raw.get("nodes") if isinstance(raw.get("nodes"), list) else []
        occurrences = [_parse_occurrence(node) for node in nodes if isinstance(node, dict)]
        groups.append(
            ViolationGroup(
                rule_id=str(raw.get("id", "")),
                impact=_as_str(raw.get("impact")),
                help=str(raw.get("help", "")),
                help_url=str(raw.get("helpUrl", "")),
                description=str(raw.get("description", "")),
                occurrences=occurrences,
            )
        )
    return groups


def _parse_occurrence(node: dict[str, Any]) -> Occurrence:
    target = node.get("target")
    messages: list[str] = []
    for key in CHECK_KEYS:
        checks = node.get(key)
        if not isinstance(checks, list):
            continue
        for check in checks:
            if isinstance(check, dict) and check.get("message"):
                messages.append(str(check["message"]))
    return Occurrence(
        target=[str(part) for part in target] if isinstance(target, list) else None,
        messages=messages,
        html=_as_str(node.get("html")),
        impact=_as_str(node.get("impact")),
    )


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _write_json(path: str | Path, payload: Any) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
