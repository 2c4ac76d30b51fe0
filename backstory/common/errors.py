from __future__ import annotations

from typing import Optional


class BackstoryError(RuntimeError):
    """Base class for failures talking to, or getting results from, collaborators."""


class ServiceUnavailableError(BackstoryError):
    """An external service could not be reached or answered with an error status."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service} is not available: {message}")


class ResponseParseError(BackstoryError):
    """An external service answered, but the payload was not in the expected shape."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"Could not parse {service} response: {message}")


class GenerationFailedError(BackstoryError):
    def __init__(self, attempts: int, last_error: Optional[Exception] = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Text generation failed after {attempts} attempt(s): {last_error}"
        )


class InappropriateStoryError(BackstoryError):
    def __init__(self, scores: Optional[dict] = None) -> None:
        self.scores = dict(scores or {})
        super().__init__("The generated story was not appropriate.")
