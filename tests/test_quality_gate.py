from __future__ import annotations

import unittest

from axecomment.models import FlattenedViolation
from axecomment.quality_gate import evaluate_gate


def _flat(rule_id: str, impact: str | None) -> FlattenedViolation:
    return FlattenedViolation(rule_id, impact, "help", "https://rules", ["body"], [])


class QualityGateTests(unittest.TestCase):
    def test_passes_without_thresholds(self) -> None:
        passed, reasons = evaluate_gate([_flat("a", "critical")])

        self.assertTrue(passed)
        self.assertEqual(reasons, [])

    def test_passes_when_there_is_no_comparison(self) -> None:
        passed, _ = evaluate_gate(None, fail_on_new="minor", max_new_violations=0)

        self.assertTrue(passed)

    def test_fails_on_new_impact_at_or_above_threshold(self) -> None:
        passed, reasons = evaluate_gate(
            [_flat("a", "critical"), _flat("b", "serious"), _flat("c", "minor")],
            fail_on_new="serious",
        )

        self.assertFalse(passed)
        self.assertEqual(len(reasons), 1)
        self.assertIn("critical=1, serious=1", reasons[0])

    def test_lower_impacts_do_not_trip_threshold(self) -> None:
        passed, _ = evaluate_gate([_flat("a", "minor"), _flat("b", None)], fail_on_new="moderate")

        self.assertTrue(passed)

    def test_fails_when_new_count_exceeds_limit(self) -> None:
        passed, reasons = evaluate_gate([_flat("a", "minor"), _flat("b", "minor")], max_new_violations=1)

        self.assertFalse(passed)
        self.assertTrue(any("max_new_violations=1" in reason for reason in reasons))


if __name__ == "__main__":
    unittest.main()
