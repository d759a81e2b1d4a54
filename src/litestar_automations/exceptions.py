"""Exception hierarchy for litestar-automations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "AutomationNotFoundError",
    "AutomationsError",
    "RunAlreadyFinalizedError",
    "StepExecutionError",
    "StepTimeoutError",
)


class AutomationsError(Exception):
    """Base exception for all litestar-automations errors.

    All exceptions raised by litestar-automations inherit from this class, so callers
    can catch every engine error with a single except clause.
    """


class AutomationNotFoundError(AutomationsError):
    """Raised when an automation definition does not exist in a workspace.

    Attributes:
        automation_id: The ID of the automation that was not found.
        workspace_id: The workspace that was searched.
    """

    def __init__(self, automation_id: str | UUID, workspace_id: str | None = None) -> None:
        """Initialize the exception with lookup details.

        Args:
            automation_id: The ID of the automation that was not found.
            workspace_id: The workspace that was searched, if any.
        """
        self.automation_id = automation_id
        self.workspace_id = workspace_id
        msg = f"Automation '{automation_id}'"
        if workspace_id:
            msg += f" in workspace '{workspace_id}'"
        msg += " not found"
        super().__init__(msg)


class StepExecutionError(AutomationsError):
    """Raised when a step's side effect fails.

    This wraps the underlying exception raised by an adapter, keeping the kind of
    step that failed alongside it.

    Attributes:
        step_type: The kind of step that failed.
        cause: The underlying exception, if any.
    """

    def __init__(self, step_type: str, cause: Exception | None = None, message: str | None = None) -> None:
        """Initialize the exception with step details.

        Args:
            step_type: The kind of step that failed.
            cause: The underlying exception, if any.
            message: Explicit message, replacing the one derived from the cause.
        """
        self.step_type = step_type
        self.cause = cause
        if message is None:
            message = f"{step_type} step failed"
            if cause:
                message += f": {cause}"
        super().__init__(message)


class StepTimeoutError(StepExecutionError):
    """Raised when an adapter call exceeds the configured step timeout.

    Attributes:
        timeout: The timeout, in seconds, that was exceeded.
    """

    def __init__(self, step_type: str, timeout: float) -> None:
        """Initialize the exception with timeout details.

        Args:
            step_type: The kind of step that timed out.
            timeout: The timeout in seconds.
        """
        self.timeout = timeout
        super().__init__(step_type, message=f"Step timed out after {timeout:g}s")


class RunAlreadyFinalizedError(AutomationsError):
    """Raised when a run's terminal status is written more than once.

    Attributes:
        run_id: The ID of the run.
        status: The status the run was already finalized with.
    """

    def __init__(self, run_id: str | UUID, status: str) -> None:
        """Initialize the exception with run details.

        Args:
            run_id: The ID of the run.
            status: The terminal status already recorded.
        """
        self.run_id = run_id
        self.status = status
        super().__init__(f"Run '{run_id}' is already finalized as {status}")
