from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Mapping

from axecomment.baseline import filter_new_violations, flatten_violations, sort_by_impact
from axecomment.models import (
    AbsentReport,
    AxeReport,
    FlattenedViolation,
    ProtectedReport,
    Report,
    ScanErrorReport,
    SkippedReport,
)
from axecomment.urls import strip_banner_param

TITLE = "### 🧪 Axe Accessibility Report\n\n"
IMPACT_EMOJIS: dict[str, str] = {
    "critical": "❗️",
    "serious": "⚠️",
    "moderate": "🔶",
    "minor": "🔷",
    "info": "ℹ️",
}
UNKNOWN_IMPACT_EMOJI = "❔"
NEW_TABLE_TITLE = "⚠️ New violations compared to live"
PREVIEW_TABLE_TITLE = "🔗 All preview link violations"
PREVIEW_ONLY_TABLE_TITLE = "🔗 All preview violations"
LIVE_TABLE_TITLE = "🧪 All live violations"


@dataclass(slots=True)
class Comparison:
    current: list[FlattenedViolation]
    baseline: list[FlattenedViolation] | None
    new: list[FlattenedViolation] | None
    baseline_matched: int = 0


def compare_reports(preview: AxeReport, default: Report) -> Comparison:
    current = flatten_violations(preview.violations)
    if not isinstance(default, AxeReport):
        return Comparison(current=current, baseline=None, new=None)
    baseline = flatten_violations(default.violations)
    new, baseline_matched = filter_new_violations(current, baseline)
    return Comparison(current=current, baseline=baseline, new=new, baseline_matched=baseline_matched)


def display_url(report_url: str | None, attempted_url: str | None, banner_param: str = "pb") -> str:
    url = attempted_url or report_url
    return strip_banner_param(url, banner_param) or "unknown"


def to_markdown_report(
    preview: Report,
    default: Report,
    attempted_urls: Mapping[str, str] | None = None,
    banner_param: str = "pb",
    preview_param: str = "preview_theme_id",
) -> str:
    attempted = attempted_urls or {}
    output = TITLE

    if isinstance(default, ProtectedReport):
        output += "🔒 Site is password protected.\n\n"
        output += (
            "Accessibility tests cannot be run because the live URL redirects to a password protection page."
        )
        return output

    if isinstance(preview, ProtectedReport):
        output += "🔒 Preview is password protected.\n\n"
        output += (
            "Accessibility tests cannot be run because the preview URL redirects to a password protection page."
        )
        return output

    if not isinstance(preview, AxeReport):
        return output + _not_generated_section(preview, default, attempted, preview_param)

    comparison = compare_reports(preview, default)
    preview_url = display_url(preview.url, attempted.get("preview"), banner_param)

    if comparison.baseline is not None and comparison.new is not None:
        live_url = display_url(default.url, attempted.get("default"), banner_param)
        output += f"- {len(comparison.new)} new violations found compared to live\n"
        output += f"- {len(comparison.current)} violations found on the preview url (`{preview_url}`)\n"
        output += f"- {len(comparison.baseline)} violations found on the live url (`{live_url}`)\n"
        output += build_violations_table(NEW_TABLE_TITLE, sort_by_impact(comparison.new))
        output += build_violations_table(PREVIEW_TABLE_TITLE, sort_by_impact(comparison.current))
        output += build_violations_table(LIVE_TABLE_TITLE, sort_by_impact(comparison.baseline))
        return output

    output += f"- {len(comparison.current)} violations found on the preview url (`{preview_url}`)\n"
    if isinstance(default, ScanErrorReport):
        output += f"- ⚠️ Live report could not be generated: {_single_line(default.error)}\n"
    output += "\n"
    output += build_violations_table(PREVIEW_ONLY_TABLE_TITLE, sort_by_impact(comparison.current))
    return output


def build_violations_table(title: str, violations: list[FlattenedViolation]) -> str:
    if not violations:
        return ""

    table = "<details>"
    table += f"<summary>{title}</summary>\n\n"
    table += "| Issue | Target | Summary |\n"
    table += "|-------|--------|---------|\n"
    for violation in violations:
        emoji = IMPACT_EMOJIS.get(violation.impact or "", UNKNOWN_IMPACT_EMOJI)
        help_link = f"[{_cell(violation.help)}]({violation.help_url})"
        target = ", ".join(violation.target) if violation.target is not None else "n/a"
        summary = "<br>".join(f"- {_cell(message)}" for message in violation.messages)
        table += f"| {emoji} {help_link} | `{_cell(target)}` | {summary} |\n"
    table += "</details>\n\n"
    return table


def to_json_summary(
    preview: Report,
    default: Report,
    attempted_urls: Mapping[str, str] | None = None,
    banner_param: str = "pb",
) -> dict[str, Any]:
    attempted = attempted_urls or {}
    payload: dict[str, Any] = {
        "preview": _report_summary(preview, attempted.get("preview"), banner_param),
        "default": _report_summary(default, attempted.get("default"), banner_param),
        "new_violations_total": None,
        "new_violations": [],
    }
    if isinstance(preview, AxeReport) and not isinstance(default, ProtectedReport):
        comparison = compare_reports(preview, default)
        if comparison.new is not None:
            new = sort_by_impact(comparison.new)
            payload["new_violations_total"] = len(new)
            payload["impact_counts"] = dict(sorted(Counter(v.impact or "unknown" for v in new).items()))
            payload["new_violations"] = [_violation_to_dict(violation) for violation in new]
    return payload


def write_report(payload: str | dict[str, Any], out: str | None) -> None:
    rendered = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
    if out is None or out == "-":
        print(rendered)
        return
    output_path = Path(out)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered, encoding="utf-8")


def report_status(report: Report) -> str:
    if isinstance(report, AxeReport):
        return "ok"
    if isinstance(report, ProtectedReport):
        return "protected"
    if isinstance(report, SkippedReport):
        return "skipped"
    if isinstance(report, ScanErrorReport):
        return "error"
    return "absent"


def _not_generated_section(
    preview: Report, default: Report, attempted: Mapping[str, str], preview_param: str
) -> str:
    live_missing = isinstance(default, (AbsentReport, ScanErrorReport))
    if live_missing:
        output = "Accessibility reports were not generated.\n"
    else:
        output = "Preview report was not generated.\n"

    output += "- ❌ Preview report\n"
    output += _attempt_details(preview, attempted.get("preview"))
    output += f"  - Ensure a preview URL with `{preview_param}` was included in the PR body\n"
    output += "  - Try rerunning the action\n"
    output += "  - Try making the preview URL more prominent (removing markdown)\n"
    output += "  - Check the action logs for more details\n"

    if live_missing:
        output += "- ❌ Live report\n"
        output += _attempt_details(default, attempted.get("default"))
    return output


def _attempt_details(report: Report, attempted_url: str | None) -> str:
    details = ""
    url = attempted_url or getattr(report, "url", None)
    if url:
        details += f"  - URL used: `{url}`\n"
    if isinstance(report, (ScanErrorReport, SkippedReport)):
        details += f"  - Error: {_single_line(report.error)}\n"
    return details


def _report_summary(report: Report, attempted_url: str | None, banner_param: str) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "status": report_status(report),
        "url": display_url(getattr(report, "url", None), attempted_url, banner_param),
    }
    if isinstance(report, AxeReport):
        summary["violations_total"] = len(flatten_violations(report.violations))
    if isinstance(report, (ProtectedReport, SkippedReport, ScanErrorReport)):
        summary["error"] = report.error
    return summary


def _violation_to_dict(violation: FlattenedViolation) -> dict[str, Any]:
    return {
        "rule_id": violation.rule_id,
        "impact": violation.impact,
        "help": violation.help,
        "help_url": violation.help_url,
        "target": violation.target,
        "messages": violation.messages,
    }


def _cell(text: str) -> str:
    return _single_line(text).replace("|", "\\|")


def _single_line(text: str) -> str:
    return " ".join(text.split())
