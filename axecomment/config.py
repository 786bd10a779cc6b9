from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib


DEFAULT_PREVIEW_DOMAINS = ["shopifypreview.com"]
BASELINE_STRATEGIES = ("strip-param", "origin")
REPORT_FORMATS = ("markdown", "json")
DEFAULT_CONFIG_NAME = "axecomment.toml"
DEFAULT_OUTPUTS = {"markdown": "axe-comment.md", "json": "axe-summary.json"}


@dataclass(slots=True)
class ScanConfig:
    preview_param: str = "preview_theme_id"
    preview_domains: list[str] = field(default_factory=lambda: DEFAULT_PREVIEW_DOMAINS.copy())
    banner_param: str = "pb"
    banner_value: str = "0"
    keep_all_params: bool = True
    baseline_strategy: str = "strip-param"
    live_origin: str | None = None
    password_path: str = "/password"
    probe_timeout: float = 10.0
    probe_preview: bool = True
    axe_binary: str = "axe"
    axe_args: list[str] = field(default_factory=list)
    chromedriver_path: str | None = None
    scan_timeout: float | None = None


@dataclass(slots=True)
class ReportConfig:
    preview_report: str = "axe-report-preview.json"
    default_report: str = "axe-report-default.json"
    attempted_urls: str = "attempted-urls.json"
    out: str | None = None
    output_format: str = "markdown"


@dataclass(slots=True)
class QualityGateConfig:
    fail_on_new: str | None = None
    max_new_violations: int | None = None


@dataclass(slots=True)
class Config:
    scan: ScanConfig = field(default_factory=ScanConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    quality_gate: QualityGateConfig = field(default_factory=QualityGateConfig)


def load_config(path: str | None) -> Config:
    if path is None:
        default = Path(DEFAULT_CONFIG_NAME)
        if not default.exists():
            return Config()
        path = str(default)

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("rb") as fh:
        payload = tomllib.load(fh)

    scan = payload.get("scan", {})
    report = payload.get("report", {})
    quality_gate = payload.get("quality_gate", {})

    config = Config()
    config.scan.preview_param = str(scan.get("preview_param", config.scan.preview_param))
    config.scan.preview_domains = [str(domain) for domain in scan.get("preview_domains", config.scan.preview_domains)]
    config.scan.banner_param = str(scan.get("banner_param", config.scan.banner_param))
    config.scan.banner_value = str(scan.get("banner_value", config.scan.banner_value))
    config.scan.keep_all_params = bool(scan.get("keep_all_params", config.scan.keep_all_params))
    config.scan.baseline_strategy = str(scan.get("baseline_strategy", config.scan.baseline_strategy))
    config.scan.live_origin = scan.get("live_origin")
    config.scan.password_path = str(scan.get("password_path", config.scan.password_path))
    config.scan.probe_timeout = float(scan.get("probe_timeout", config.scan.probe_timeout))
    config.scan.probe_preview = bool(scan.get("probe_preview", config.scan.probe_preview))
    config.scan.axe_binary = str(scan.get("axe_binary", config.scan.axe_binary))
    config.scan.axe_args = [str(arg) for arg in scan.get("axe_args", config.scan.axe_args)]
    config.scan.chromedriver_path = scan.get("chromedriver_path")
    scan_timeout = scan.get("scan_timeout")
    config.scan.scan_timeout = float(scan_timeout) if scan_timeout is not None else None
    config.report.preview_report = str(report.get("preview_report", config.report.preview_report))
    config.report.default_report = str(report.get("default_report", config.report.default_report))
    config.report.attempted_urls = str(report.get("attempted_urls", config.report.attempted_urls))
    out = report.get("out")
    config.report.out = str(out) if out is not None else None
    config.report.output_format = str(report.get("format", config.report.output_format))
    config.quality_gate.fail_on_new = quality_gate.get("fail_on_new")
    max_new_violations = quality_gate.get("max_new_violations")
    config.quality_gate.max_new_violations = int(max_new_violations) if max_new_violations is not None else None
    return config


def resolve_output_path(report: ReportConfig) -> str:
    if report.out:
        return report.out
    return DEFAULT_OUTPUTS.get(report.output_format, DEFAULT_OUTPUTS["markdown"])
