"""
Platform Seam

Timer and error-sink primitives the sync components are written against.
Swapping the platform is how tests get deterministic time.
"""

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class Platform(Protocol):
    """Scheduling and error reporting primitives."""

    def set_timeout(self, fn: Callable[[], Any], delay_ms: int) -> Any:
        """Run fn once, no sooner than delay_ms from now."""
        ...

    def report_error(self, exc: BaseException) -> None:
        """Sink for fatal errors escaping a scheduled callback."""
        ...
