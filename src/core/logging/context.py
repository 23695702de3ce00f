"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_scenario_id: ContextVar[str] = ContextVar("scenario_id", default="")
_requestor_id: ContextVar[str] = ContextVar("requestor_id", default="")
_request_id: ContextVar[str] = ContextVar("request_id", default="")
_step: ContextVar[str] = ContextVar("step", default="")


def set_log_context(
    scenario_id: Optional[str] = None,
    requestor_id: Optional[str] = None,
    request_id: Optional[str] = None,
    step: Optional[str] = None,
) -> None:
    if scenario_id is not None:
        _scenario_id.set(scenario_id)
    if requestor_id is not None:
        _requestor_id.set(requestor_id)
    if request_id is not None:
        _request_id.set(request_id)
    if step is not None:
        _step.set(step)


def get_log_context() -> Dict[str, str]:
    return {
        "scenario_id": _scenario_id.get(),
        "requestor_id": _requestor_id.get(),
        "request_id": _request_id.get(),
        "step": _step.get(),
    }


def clear_log_context() -> None:
    _scenario_id.set("")
    _requestor_id.set("")
    _request_id.set("")
    _step.set("")
