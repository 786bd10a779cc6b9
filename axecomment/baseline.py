from __future__ import annotations

from axecomment.models import FlattenedViolation, ViolationGroup

IMPACT_ORDER: dict[str, int] = {
    "critical": 1,
    "serious": 2,
    "moderate": 3,
    "minor": 4,
}
UNKNOWN_IMPACT_RANK = 5


def impact_rank(impact: str | None) -> int:
    return IMPACT_ORDER.get(impact or "", UNKNOWN_IMPACT_RANK)


def flatten_violations(groups: list[ViolationGroup]) -> list[FlattenedViolation]:
    flattened: list[FlattenedViolation] = []
    for group in groups:
        for occurrence in group.occurrences:
            flattened.append(
                FlattenedViolation(
                    rule_id=group.rule_id,
                    impact=occurrence.impact or group.impact,
                    help=group.help,
                    help_url=group.help_url,
                    target=list(occurrence.target) if occurrence.target is not None else None,
                    messages=list(occurrence.messages),
                )
            )
    return flattened


def filter_new_violations(
    current: list[FlattenedViolation], baseline: list[FlattenedViolation]
) -> tuple[list[FlattenedViolation], int]:
    # Identity is the rule id alone: any baseline occurrence of a rule hides every current occurrence.
    baseline_rule_ids = {violation.rule_id for violation in baseline}
    new_violations = [violation for violation in current if violation.rule_id not in baseline_rule_ids]
    baseline_matched = len(current) - len(new_violations)
    return new_violations, baseline_matched


def sort_by_impact(violations: list[FlattenedViolation]) -> list[FlattenedViolation]:
    return sorted(violations, key=lambda violation: impact_rank(violation.impact))
