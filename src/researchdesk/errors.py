"""Error taxonomy shared by the research pipeline components."""

from __future__ import annotations

__all__ = [
    "ResearchDeskError",
    "TransportError",
    "FetchError",
    "ValidationError",
    "PersistenceError",
]


class ResearchDeskError(RuntimeError):
    """Base error for every failure raised by the package."""


class TransportError(ResearchDeskError):
    """Raised when a call to the language-model backend does not succeed.

    ``status`` carries the backend status code when one was reported; network
    level failures leave it as ``None``.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class FetchError(ResearchDeskError):
    """Raised when URL ingestion fails; kept apart from :class:`TransportError`."""

    def __init__(self, url: str, message: str, *, status: int | None = None) -> None:
        super().__init__(f"URL fetch failed for {url}: {message}")
        self.url = url
        self.status = status


class ValidationError(ResearchDeskError):
    """Raised when a precondition is not met, e.g. an empty working set."""


class PersistenceError(ResearchDeskError):
    """Library load/save failure. Always recovered locally and only logged."""
