from __future__ import annotations

import json
from pathlib import Path
import tempfile
import unittest

from axecomment.models import (
    AbsentReport,
    AxeReport,
    ProtectedReport,
    ResolvedUrls,
    ScanErrorReport,
    SkippedReport,
)
from axecomment.snapshots import load_report, parse_report, read_attempted_urls, write_attempted_urls, write_marker

AXE_RESULT = {
    "url": "https://shop.example.com/?preview_theme_id=1&pb=0",
    "violations": [
        {
            "id": "image-alt",
            "impact": "critical",
            "help": "Images must have alternate text",
            "helpUrl": "https://dequeuniversity.com/rules/axe/4.9/image-alt",
            "description": "Ensures <img> elements have alternate text",
            "nodes": [
                {
                    "target": ["img.hero"],
                    "html": "<img class=\"hero\">",
                    "any": [{"message": "Element does not have an alt attribute"}],
                    "all": [],
                    "none": [{"message": "Element's default semantics were not overridden"}],
                },
                {
                    "target": ["footer img"],
                    "any": [{"message": "Element does not have an alt attribute"}],
                },
            ],
        }
    ],
}


class LoadReportTests(unittest.TestCase):
    def _write(self, tmp: str, payload: object, name: str = "report.json") -> Path:
        path = Path(tmp) / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_object_and_wrapped_list_normalize_identically(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            direct = load_report(self._write(tmp, AXE_RESULT, "direct.json"))
            wrapped = load_report(self._write(tmp, [AXE_RESULT], "wrapped.json"))

        self.assertIsInstance(direct, AxeReport)
        self.assertEqual(direct, wrapped)
        assert isinstance(direct, AxeReport)
        self.assertEqual(len(direct.violations), 1)
        self.assertEqual(len(direct.violations[0].occurrences), 2)

    def test_missing_file_is_absent(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            report = load_report(Path(tmp) / "axe-report-preview.json")

        self.assertEqual(report, AbsentReport())

    def test_malformed_json_is_absent(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "report.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertLogs("axecomment.snapshots", level="WARNING"):
                report = load_report(path)

        self.assertIsInstance(report, AbsentReport)

    def test_protected_marker_has_no_violations(self) -> None:
        report = parse_report({"url": "https://shop.example.com/", "passwordProtected": True, "violations": [{}]})

        self.assertIsInstance(report, ProtectedReport)
        assert isinstance(report, ProtectedReport)
        self.assertEqual(report.violations, [])

    def test_skipped_and_error_markers(self) -> None:
        skipped = parse_report({"url": "u", "passwordProtected": False, "skipped": True, "error": "skipped"})
        errored = parse_report({"error": "Command failed: axe", "url": "u"})

        self.assertEqual(skipped, SkippedReport(url="u", error="skipped"))
        self.assertEqual(errored, ScanErrorReport(url="u", error="Command failed: axe"))

    def test_unrecognized_shapes_are_absent(self) -> None:
        self.assertIsInstance(parse_report({"results": []}), AbsentReport)
        self.assertIsInstance(parse_report([]), AbsentReport)
        self.assertIsInstance(parse_report([{"results": []}]), AbsentReport)
        self.assertIsInstance(parse_report("violations"), AbsentReport)

    def test_occurrence_messages_and_non_array_target(self) -> None:
        payload = {
            "violations": [
                {
                    "id": "region",
                    "impact": "moderate",
                    "help": "All page content should be contained by landmarks",
                    "helpUrl": "https://dequeuniversity.com/rules/axe/4.9/region",
                    "nodes": [{"target": "html", "any": [{"message": "Some page content is not contained"}]}],
                },
                "not-a-violation",
            ]
        }

        report = parse_report(payload)

        assert isinstance(report, AxeReport)
        self.assertEqual(len(report.violations), 1)
        occurrence = report.violations[0].occurrences[0]
        self.assertIsNone(occurrence.target)
        self.assertEqual(occurrence.messages, ["Some page content is not contained"])

    def test_failure_messages_follow_any_all_none_order(self) -> None:
        report = parse_report(AXE_RESULT)

        assert isinstance(report, AxeReport)
        first = report.violations[0].occurrences[0]
        self.assertEqual(
            first.messages,
            ["Element does not have an alt attribute", "Element's default semantics were not overridden"],
        )
        self.assertEqual(first.target, ["img.hero"])


class MarkerTests(unittest.TestCase):
    def test_protected_marker_is_read_back_as_protected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "axe-report-default.json"
            write_marker(path, ProtectedReport(url="https://shop.example.com/?pb=0"))
            payload = json.loads(path.read_text(encoding="utf-8"))
            report = load_report(path)

        self.assertTrue(payload["passwordProtected"])
        self.assertEqual(payload["error"], "URL redirects to password protection page")
        self.assertEqual(report, ProtectedReport(url="https://shop.example.com/?pb=0"))

    def test_skipped_marker_payload(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "axe-report-preview.json"
            write_marker(path, SkippedReport(url="https://shop.example.com/?preview_theme_id=1&pb=0"))
            payload = json.loads(path.read_text(encoding="utf-8"))

        self.assertEqual(payload["passwordProtected"], False)
        self.assertEqual(payload["skipped"], True)
        self.assertEqual(payload["url"], "https://shop.example.com/?preview_theme_id=1&pb=0")

    def test_rejects_non_marker_reports(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(TypeError):
                write_marker(Path(tmp) / "x.json", AxeReport(url=None))  # type: ignore[arg-type]


class AttemptedUrlsTests(unittest.TestCase):
    def test_writes_and_reads_role_mapping(self) -> None:
        resolved = ResolvedUrls(urls={"default": "https://shop.example.com/?pb=0", "preview": "https://p/?pb=0"})
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "attempted-urls.json"
            write_attempted_urls(path, resolved)
            urls = read_attempted_urls(path)

        self.assertEqual(urls, {"preview": "https://p/?pb=0", "default": "https://shop.example.com/?pb=0"})

    def test_missing_or_malformed_side_file_reads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "attempted-urls.json"
            self.assertEqual(read_attempted_urls(path), {})
            path.write_text("[1, 2", encoding="utf-8")
            self.assertEqual(read_attempted_urls(path), {})


if __name__ == "__main__":
    unittest.main()
