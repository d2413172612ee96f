"""
Retries for transient failures only (SMS provider, object storage, timeouts).
No retries on validation errors or on requests the provider rejected.
"""
from __future__ import annotations

import time
from typing import Callable, TypeVar

import requests
from botocore.exceptions import ClientError, EndpointConnectionError

T = TypeVar("T")

TRANSIENT_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    requests.ConnectionError,
    requests.Timeout,
    EndpointConnectionError,
    ClientError,
)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def is_transient(e: BaseException) -> bool:
    if isinstance(e, requests.HTTPError):
        return e.response is not None and e.response.status_code in RETRYABLE_STATUS
    if isinstance(e, ClientError):
        code = str(e.response.get("Error", {}).get("Code", ""))
        return code.startswith("5") or "throttl" in code.lower() or "slowdown" in code.lower()
    return isinstance(e, TRANSIENT_EXCEPTIONS)


def with_retries(
    fn: Callable[[], T],
    max_attempts: int = 3,
    delay_sec: float = 1.0,
    backoff: float = 2.0,
) -> T:
    """Execute fn with retries on transient failures only."""
    for attempt in range(max_attempts):
        try:
            return fn()
        except Exception as e:
            if attempt == max_attempts - 1 or not is_transient(e):
                raise
            time.sleep(delay_sec * (backoff ** attempt))
    raise RuntimeError("with_retries called with max_attempts < 1")
