from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping, Union

Role = Literal["preview", "default"]

ROLES: tuple[Role, ...] = ("preview", "default")
PROTECTED_ERROR = "URL redirects to password protection page"
SKIPPED_ERROR = "Tests skipped because live URL is password protected"


@dataclass(slots=True, frozen=True)
class ScanTarget:
    role: Role
    url: str


@dataclass(slots=True, frozen=True)
class ResolvedUrls:
    """Finalized role -> URL mapping produced by the resolver."""

    urls: Mapping[str, str] = field(default_factory=dict)

    @property
    def preview(self) -> str | None:
        return self.urls.get("preview")

    @property
    def default(self) -> str | None:
        return self.urls.get("default")

    def targets(self) -> list[ScanTarget]:
        return [ScanTarget(role=role, url=self.urls[role]) for role in ROLES if role in self.urls]

    def to_dict(self) -> dict[str, str]:
        return {role: self.urls[role] for role in ROLES if role in self.urls}

    def __bool__(self) -> bool:
        return bool(self.urls)


@dataclass(slots=True)
class Occurrence:
    target: list[str] | None
    messages: list[str] = field(default_factory=list)
    html: str | None = None
    impact: str | None = None


@dataclass(slots=True)
class ViolationGroup:
    rule_id: str
    impact: str | None
    help: str
    help_url: str
    description: str = ""
    occurrences: list[Occurrence] = field(default_factory=list)


@dataclass(slots=True)
class FlattenedViolation:
    rule_id: str
    impact: str | None
    help: str
    help_url: str
    target: list[str] | None
    messages: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class AbsentReport:
    url: str | None = None


@dataclass(slots=True, frozen=True)
class ProtectedReport:
    url: str | None
    error: str = PROTECTED_ERROR

    @property
    def violations(self) -> list[ViolationGroup]:
        return []


@dataclass(slots=True, frozen=True)
class SkippedReport:
    url: str | None
    error: str = SKIPPED_ERROR


@dataclass(slots=True, frozen=True)
class ScanErrorReport:
    url: str | None
    error: str


@dataclass(slots=True)
class AxeReport:
    url: str | None
    violations: list[ViolationGroup] = field(default_factory=list)


Report = Union[AbsentReport, ProtectedReport, SkippedReport, ScanErrorReport, AxeReport]
