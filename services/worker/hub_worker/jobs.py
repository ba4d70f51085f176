import logging
import os
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)

@dataclass
class RelayResult:
    ok: bool
    status: int
    message: str

class RelayError(Exception):
    """Hub unreachable or failing; rq retries the job."""

def forward(path: str, payload: dict) -> RelayResult:
    url = os.getenv("HUB_URL", "").rstrip("/")
    if not url:
        raise RelayError("HUB_URL not set")
    try:
        r = requests.post(url + path, json=payload, timeout=10)
    except requests.RequestException as e:
        raise RelayError(str(e)) from e
    if r.status_code >= 500:
        raise RelayError(f"HTTP {r.status_code}: {r.text}")
    if r.status_code >= 400:
        # the hub rejected the payload itself, retrying won't help
        logger.warning("hub rejected %s: HTTP %s %s", path, r.status_code, r.text)
        return RelayResult(ok=False, status=r.status_code, message=r.text)
    return RelayResult(ok=True, status=r.status_code, message=r.text)
