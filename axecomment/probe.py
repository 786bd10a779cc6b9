from __future__ import annotations

import logging
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0
PASSWORD_PATH = "/password"


def is_password_protected(
    url: str,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    password_path: str = PASSWORD_PATH,
    session: requests.Session | None = None,
) -> bool:
    """HEAD the URL, follow redirects and report whether it lands on the password page.

    Network failures count as not protected so a flaky probe never blocks the scans.
    """
    client = session or requests
    try:
        response = client.head(url, allow_redirects=True, timeout=timeout)
        final_path = urlsplit(response.url).path
    except (requests.RequestException, ValueError) as exc:
        logger.debug("Error checking password protection for %s: %s", url, exc)
        return False

    protected = final_path == password_path or final_path.endswith(password_path)
    logger.debug("Probe %s resolved to path %s (protected=%s)", url, final_path, protected)
    return protected
