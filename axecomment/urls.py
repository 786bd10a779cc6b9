from __future__ import annotations

import logging
import re
from typing import Mapping, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from axecomment.config import ScanConfig
from axecomment.models import ResolvedUrls, Role

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s)\]}]+")
TRAILING_PUNCTUATION = re.compile(r"[),.]+$")


class UrlExtractor(Protocol):
    def extract(self, text: str) -> list[str]: ...


class RegexUrlExtractor:
    """Pulls every http(s) URL out of free text, in order of appearance."""

    def __init__(self, pattern: re.Pattern[str] = URL_PATTERN) -> None:
        self.pattern = pattern

    def extract(self, text: str) -> list[str]:
        return self.pattern.findall(text or "")


def is_valid_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
        parts.port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def is_preview_url(url: str, preview_param: str, preview_domains: list[str]) -> bool:
    if f"{preview_param}=" in url:
        return True
    try:
        hostname = urlsplit(url).hostname or ""
    except ValueError:
        return False
    return any(domain and domain in hostname for domain in preview_domains)


def find_preview_candidate(
    text: str,
    preview_param: str = "preview_theme_id",
    preview_domains: list[str] | None = None,
    extractor: UrlExtractor | None = None,
) -> str:
    extractor = extractor or RegexUrlExtractor()
    domains = preview_domains or []
    urls = extractor.extract(text)
    logger.debug("All URLs found in PR body: %s", urls)
    for url in urls:
        if is_preview_url(url, preview_param, domains):
            return url
    return ""


def clean_preview_url(
    raw: str,
    preview_param: str = "preview_theme_id",
    keep_all_params: bool = True,
    preview_domains: list[str] | None = None,
) -> str:
    """Rebuild a preview URL from origin, path and query.

    With ``keep_all_params`` every original parameter survives; otherwise only
    the preview parameter does. Unparsable input yields an empty string.
    """
    if not raw:
        return ""
    if not is_valid_url(raw):
        logger.warning("Invalid preview URL: %s", raw)
        return ""

    parts = urlsplit(raw)
    params = parse_qsl(parts.query, keep_blank_values=True)
    preview_values = [value for key, value in params if key == preview_param]
    if preview_values:
        if not preview_values[0]:
            logger.debug("Preview parameter %s is empty in %s", preview_param, raw)
            return ""
        kept = params if keep_all_params else [(preview_param, preview_values[0])]
    elif any(domain and domain in (parts.hostname or "") for domain in preview_domains or []):
        kept = params if keep_all_params else []
    else:
        logger.debug("No %s parameter in %s", preview_param, raw)
        return ""

    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(kept), ""))


def derive_live_url(
    preview_url: str,
    strategy: str = "strip-param",
    preview_param: str = "preview_theme_id",
    live_origin: str | None = None,
) -> str:
    if not preview_url:
        return ""
    parts = urlsplit(preview_url)

    if strategy == "origin":
        if not live_origin:
            logger.debug("No live origin configured, live URL not derived")
            return ""
        return f"{live_origin.rstrip('/')}{parts.path or '/'}"

    if strategy != "strip-param":
        raise ValueError(f"Unsupported baseline strategy: {strategy}")

    params = parse_qsl(parts.query, keep_blank_values=True)
    if not any(key == preview_param for key, _ in params):
        logger.debug("Preview URL has no %s parameter, live URL not derived", preview_param)
        return ""
    remaining = [(key, value) for key, value in params if key != preview_param]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(remaining), parts.fragment))


def add_banner_param(url: str, param: str = "pb", value: str = "0") -> str:
    base, hash_sep, fragment = url.partition("#")
    query = urlsplit(base).query
    if any(key == param for key, _ in parse_qsl(query, keep_blank_values=True)):
        return url
    if "?" not in base:
        separator = "?"
    elif base.endswith(("?", "&")):
        separator = ""
    else:
        separator = "&"
    return f"{base}{separator}{param}={value}{hash_sep}{fragment}"


def strip_banner_param(url: str | None, param: str = "pb") -> str | None:
    if not url:
        return url
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    remaining = [(key, value) for key, value in params if key != param]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(remaining), parts.fragment))


def register_url(
    urls: Mapping[str, str],
    role: Role,
    url: str | None,
    banner_param: str = "pb",
    banner_value: str = "0",
) -> dict[str, str]:
    """Return a copy of ``urls`` with ``role`` set; the first URL per role wins."""
    updated = dict(urls)
    if role in updated:
        logger.debug("Skipping URL for %s: already exists (%s)", role, url)
        return updated
    if not url or not url.strip():
        logger.debug("Skipping URL for %s: empty", role)
        return updated

    clean_url = TRAILING_PUNCTUATION.sub("", url.strip())
    if not is_valid_url(clean_url):
        logger.warning("Invalid URL for %s: %s", role, clean_url)
        return updated

    updated[role] = add_banner_param(clean_url, banner_param, banner_value)
    logger.debug("Added URL to test - %s: %s", role, updated[role])
    return updated


def resolve_urls(
    text: str,
    config: ScanConfig | None = None,
    extractor: UrlExtractor | None = None,
) -> ResolvedUrls:
    config = config or ScanConfig()
    raw_preview = find_preview_candidate(
        text,
        preview_param=config.preview_param,
        preview_domains=config.preview_domains,
        extractor=extractor,
    )
    logger.debug("Raw preview URL found: %r", raw_preview)

    preview_url = clean_preview_url(
        raw_preview,
        preview_param=config.preview_param,
        keep_all_params=config.keep_all_params,
        preview_domains=config.preview_domains,
    )
    live_url = derive_live_url(
        preview_url,
        strategy=config.baseline_strategy,
        preview_param=config.preview_param,
        live_origin=config.live_origin,
    )
    logger.info("Preview URL: %s", preview_url)
    logger.info("Live URL: %s", live_url)

    urls: dict[str, str] = {}
    urls = register_url(urls, "preview", preview_url, config.banner_param, config.banner_value)
    urls = register_url(urls, "default", live_url, config.banner_param, config.banner_value)
    return ResolvedUrls(urls=urls)
