"""Errors raised by the autonomous mode controller.

Discovery failures are never raised; they degrade ``initialize()`` to False.
Everything else propagates to the caller of the operation that failed.
"""

__all__ = [
    "AutonomousModeError",
    "NotAutonomousError",
    "InferenceRequestError",
    "NoResponseBodyError",
]


class AutonomousModeError(RuntimeError):
    """Base class for autonomous mode errors."""


class NotAutonomousError(AutonomousModeError):
    """Raised when local inference is requested outside autonomous mode."""

    def __init__(self, state: str = ""):
        self.state = state
        message = "Not in autonomous mode"
        if state:
            message = f"{message} (state: {state})"
        super().__init__(message)


class InferenceRequestError(AutonomousModeError):
    """Raised when the local model server answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", stream: bool = False):
        self.status_code = status_code
        self.body = body
        kind = "chat stream" if stream else "chat"
        # Truncate error for safety
        super().__init__(f"Ollama {kind} failed: {status_code} - {body[:500]}")


class NoResponseBodyError(AutonomousModeError):
    """Raised when a streaming chat response carries no readable body."""

    def __init__(self):
        super().__init__("No response body")
