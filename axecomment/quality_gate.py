from __future__ import annotations

from collections import Counter

from axecomment.baseline import IMPACT_ORDER, impact_rank
from axecomment.models import FlattenedViolation


def evaluate_gate(
    new_violations: list[FlattenedViolation] | None,
    fail_on_new: str | None = None,
    max_new_violations: int | None = None,
) -> tuple[bool, list[str]]:
    failed_reasons: list[str] = []
    if new_violations is None:
        return (True, failed_reasons)

    if fail_on_new is not None:
        threshold = IMPACT_ORDER[fail_on_new]
        offending = Counter(
            violation.impact for violation in new_violations if impact_rank(violation.impact) <= threshold
        )
        if offending:
            ordered = sorted(offending.items(), key=lambda item: impact_rank(item[0]))
            breakdown = ", ".join(f"{impact}={count}" for impact, count in ordered)
            failed_reasons.append(f"Detected new violation impact >= '{fail_on_new}' ({breakdown})")

    if max_new_violations is not None and len(new_violations) > max_new_violations:
        failed_reasons.append(
            f"New violation count {len(new_violations)} exceeds max_new_violations={max_new_violations}"
        )

    return (len(failed_reasons) == 0, failed_reasons)
