from __future__ import annotations

import contextvars
import time
from typing import Optional
from uuid import uuid4

from core.logging_config import log_context

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def set_request_id(value: Optional[str]):
    return _request_id_var.set(value)


def reset_request_id(token) -> None:
    _request_id_var.reset(token)


def new_request_id() -> str:
    return uuid4().hex


def request_log_fields(*, method: str, path: str, status_code: int, duration_ms: float, client_ip: Optional[str]) -> dict[str, object]:
    return log_context(
        request_id=get_request_id() or "",
        method=method,
        path=path,
        status_code=int(status_code),
        duration_ms=round(float(duration_ms), 2),
        client_ip=client_ip or "",
    )


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0
