"""Exception hierarchy shared by the decoding and chain subsystems."""
from __future__ import annotations

from enum import Enum


class InspectError(Exception):
    """Base class for all terminal errors raised while inspecting a token.

    Parameters
    ----------
    kind:
        Enum member naming the failure category.
    message:
        Human-readable detail.
    """

    def __init__(self, kind: Enum, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


__all__ = ["InspectError"]
