from __future__ import annotations

from typing import Any, Dict, Optional


# ------------------------------------------------------------
# Accessor errors (raised by ResourceAccessor implementations)
# ------------------------------------------------------------
class AccessorError(Exception):
    """Fatal, non-retryable failure talking to the resource store."""

    retryable = False

    def __init__(self, message: str, *, resource: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.resource = resource
        self.status_code = status_code


class NotFoundError(AccessorError):
    pass


class ConflictError(AccessorError):
    """Optimistic concurrency failure (stale resourceVersion)."""


class AlreadyExistsError(AccessorError):
    pass


class TransientAccessError(AccessorError):
    """Network blips, throttling and 5xx responses. Safe to retry."""

    retryable = True


# ------------------------------------------------------------
# Conformance errors (raised by the poller and scenario steps)
# ------------------------------------------------------------
class ConformanceError(Exception):
    kind = "conformance_error"

    def __init__(self, message: str, *, resource: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.resource = resource
        self.details = details or {}


class SetupFailure(ConformanceError):
    kind = "setup_failure"


class UpdateRejected(ConformanceError):
    kind = "update_rejected"


class InvariantViolation(ConformanceError):
    kind = "invariant_violation"


class ScenarioCanceled(ConformanceError):
    """The run was canceled; no further writes are issued."""

    kind = "canceled"


class StateCheckFailed(ConformanceError):
    """A single-shot state check evaluated to False."""

    kind = "state_check_failed"

    def __init__(self, message: str, *, resource: Optional[str] = None, snapshot: Any = None, **kwargs: Any):
        super().__init__(message, resource=resource, **kwargs)
        self.snapshot = snapshot


class ConvergenceTimeout(ConformanceError):
    """The condition was never satisfied within the polling budget."""

    kind = "convergence_timeout"

    def __init__(
        self,
        condition: str,
        resource: str,
        *,
        last_snapshot: Any = None,
        attempts: int = 0,
        elapsed_seconds: float = 0.0,
        last_error: Optional[BaseException] = None,
        reason: str = "timeout",
    ):
        self.condition = condition
        self.last_snapshot = last_snapshot
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        self.last_error = last_error
        self.reason = reason

        msg = (
            f"{reason} waiting for {condition} on {resource} "
            f"after {attempts} attempt(s) in {elapsed_seconds:.2f}s"
        )
        if last_error is not None:
            msg += f"; last error: {last_error}"
        if last_snapshot is not None:
            msg += f"; last state: {_describe(last_snapshot)}"

        super().__init__(
            msg,
            resource=resource,
            details={
                "condition": condition,
                "reason": reason,
                "attempts": attempts,
                "elapsed_seconds": round(elapsed_seconds, 3),
                "last_error": str(last_error) if last_error is not None else None,
                "last_snapshot": _describe(last_snapshot),
            },
        )


def _describe(snapshot: Any) -> Any:
    if snapshot is None:
        return None
    dump = getattr(snapshot, "model_dump", None)
    if callable(dump):
        return dump(by_alias=True, exclude_none=True)
    return repr(snapshot)

