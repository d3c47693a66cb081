"""Error types raised by the visual check harness.

A visual mismatch is never an error: it is reported as an outcome on the
result summary. Only misuse of the session lifecycle and failures of the
browser or the visual testing service raise.
"""

from typing import Optional


class HarnessError(Exception):
    """Base class for harness errors."""


class UsageError(HarnessError):
    """Session lifecycle called out of order (open twice, close before open...)."""


class InfrastructureError(HarnessError):
    """The browser or the visual testing service failed."""

    def __init__(
        self,
        message: str,
        test_name: Optional[str] = None,
        label: Optional[str] = None,
    ):
        self.test_name = test_name
        self.label = label
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        context = []
        if self.test_name:
            context.append(f"test={self.test_name!r}")
        if self.label:
            context.append(f"checkpoint={self.label!r}")
        if context:
            msg += f" ({', '.join(context)})"
        return msg
