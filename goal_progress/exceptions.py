"""
Exception hierarchy for the goal progress engine.

- GoalProgressError: base class for every known error
- NotFoundError: goal, linked goal or habit does not exist
- ForbiddenError: caller is not the goal's owner
- InvalidArgumentError: unsafe link or invalid operation argument
- ConfigError: runtime configuration problem
"""
from typing import Optional


class GoalProgressError(Exception):
    """Base exception of the engine.

    Catching this handles every expected error condition.
    """

    http_status = 500

    def __init__(self, message: str, hint: Optional[str] = None):
        """
        Args:
            message: error description
            hint: suggestion for the caller
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        """Return a caller-friendly message."""
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class NotFoundError(GoalProgressError):
    """A goal, linked goal or habit does not exist (or is not visible to the caller)."""

    http_status = 404


class ForbiddenError(GoalProgressError):
    """The caller does not own the goal."""

    http_status = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, hint="Only the goal owner can read or edit its division")


class InvalidArgumentError(GoalProgressError):
    """Self-link, nested link, habit without target or invalid toggle index."""

    http_status = 400


class ConfigError(GoalProgressError):
    """Configuration file missing, malformed or holding illegal values."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        hint = f"Check config file: {config_path}" if config_path else "Check config file format"
        super().__init__(message, hint)
        self.config_path = config_path
