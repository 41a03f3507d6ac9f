from __future__ import annotations

from contextvars import ContextVar


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_RUN_ID_CTX: ContextVar[str | None] = ContextVar("run_id", default=None)


def set_request_context(*, request_id: str | None = None, run_id: str | None = None) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if run_id is not None:
        _RUN_ID_CTX.set(run_id)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_run_id() -> str | None:
    return _RUN_ID_CTX.get()


def clear_run_id() -> None:
    _RUN_ID_CTX.set(None)


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _RUN_ID_CTX.set(None)
