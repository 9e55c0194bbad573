"""Proof chain resolution and description."""
from __future__ import annotations

from ucan_inspect.chain.info import (
    ChainInfo,
    PrincipalInfo,
    PrincipalRole,
    TimelineEvent,
    describe_chain,
)
from ucan_inspect.chain.resolver import (
    Chain,
    ChainResolver,
    ChainRoot,
    ResolveError,
    ResolveErrorKind,
)

__all__ = [
    "Chain",
    "ChainInfo",
    "ChainResolver",
    "ChainRoot",
    "PrincipalInfo",
    "PrincipalRole",
    "ResolveError",
    "ResolveErrorKind",
    "TimelineEvent",
    "describe_chain",
]
