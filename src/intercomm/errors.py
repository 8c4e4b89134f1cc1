"""Exception hierarchy for intercomm."""

from __future__ import annotations


class IntercommError(Exception):
    """Base class for every error raised by intercomm."""


class InvariantError(IntercommError, ValueError):
    """A value was constructed in a shape its kind does not allow."""


class ConversionError(IntercommError, TypeError):
    """No conversion exists from a native type to a Value."""


class UnsupportedLowering(IntercommError, NotImplementedError):
    """A value of a composite kind was passed where only scalars and handles lower."""

    def __init__(self, kind: object, slot: str) -> None:
        self.kind = kind
        self.slot = slot
        super().__init__(f"{slot}: lowering is not implemented for {kind}")


class HandlePassingUnsupported(IntercommError, NotImplementedError):
    """The host cannot place descriptors at fixed numbers in a child."""
