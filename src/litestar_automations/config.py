"""Configuration for the automation engine."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["ALWAYS_EXCLUDED_RELATIONSHIPS", "AutomationConfig"]

ALWAYS_EXCLUDED_RELATIONSHIPS = frozenset({"PARTNER"})


@dataclass
class AutomationConfig:
    """Engine behavior shared by the dispatcher and the step executor.

    Attributes:
        step_timeout: Seconds an adapter call (SMS, email, task) may take before the
            step is recorded as an error. ``None`` disables the timeout.
        task_dedupe_window_minutes: Dedupe window handed to the task adapter when a
            TASK step does not set its own.
        excluded_relationship_types: Additional contact relationship types that never
            run automations, compared case-insensitively. ``PARTNER`` contacts are
            always excluded, whatever this holds.
        max_trigger_length: Trigger names are truncated to this many characters.
        run_history_limit: Upper bound on the runs returned by history queries.
        downgrade_message: Message recorded when the acting user's plan no longer
            includes automations.

    Example:
        >>> config = AutomationConfig(step_timeout=10.0, task_dedupe_window_minutes=30)
    """

    step_timeout: float | None = 30.0
    task_dedupe_window_minutes: int = 60
    excluded_relationship_types: frozenset[str] = field(default_factory=lambda: frozenset({"PARTNER"}))
    max_trigger_length: int = 80
    run_history_limit: int = 100
    downgrade_message: str = "Automation paused: your plan no longer includes automations."

    def is_excluded_relationship(self, relationship_type: str | None) -> bool:
        """Check whether contacts of ``relationship_type`` are excluded from automations.

        Args:
            relationship_type: The contact's relationship type.

        Returns:
            True for partner contacts and for types on the exclusion list.
        """
        if not relationship_type:
            return False
        excluded = {value.upper() for value in self.excluded_relationship_types} | ALWAYS_EXCLUDED_RELATIONSHIPS
        return relationship_type.strip().upper() in excluded
