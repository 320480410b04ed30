"""
HTTP Prober — GET requests routed through the ingress by Host header.
"""

from __future__ import annotations

import logging

import requests

from ..protocol import ProbeConnectionError
from .base import HttpProber, HttpResponse

logger = logging.getLogger(__name__)

USER_AGENT = "kubewait-probe/1.0"


class RequestsProber(HttpProber):
    """HttpProber backed by `requests`, one short-lived request per probe."""

    def __init__(self, timeout_seconds: float = 5):
        self.timeout_seconds = float(timeout_seconds)

    def get(self, url: str, host: str) -> HttpResponse:
        headers = {"Host": host, "User-Agent": USER_AGENT}
        try:
            resp = requests.get(
                url,
                headers=headers,
                timeout=self.timeout_seconds,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.debug("GET %s (Host: %s) failed: %s", url, host, e)
            raise ProbeConnectionError(f"{type(e).__name__}: {e}") from e
        return HttpResponse(status_code=resp.status_code, body=resp.text)
