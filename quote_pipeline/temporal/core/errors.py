from typing import Any, Dict

from temporalio.exceptions import ActivityError, ApplicationError, ChildWorkflowError


def step_failure(error: Exception, non_retryable: bool = False) -> ApplicationError:
    """Wrap a step exception as an ApplicationError with a structured reason."""
    reason = str(error)
    return ApplicationError(
        reason,
        {"ok": False, "reason": reason},
        type=type(error).__name__,
        non_retryable=non_retryable,
    )


def failure_reason(error: Exception) -> str:
    """Innermost failure message of an activity or child workflow error."""
    cause = error
    while isinstance(cause, (ActivityError, ChildWorkflowError)) and cause.cause is not None:
        cause = cause.cause
    if isinstance(cause, ApplicationError):
        return cause.message
    return str(cause)


def failure_result(error: Exception) -> Dict[str, Any]:
    return {"ok": False, "reason": failure_reason(error)}
