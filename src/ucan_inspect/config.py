"""InspectorConfig — structural limits and validation switches.

Every computation is bounded by input size and proof-chain depth rather than
by timeouts; the embedding service owns request-level deadlines.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field

DEFAULT_MAX_INPUT_BYTES: int = 10 * 1024 * 1024
DEFAULT_MAX_CHAIN_DEPTH: int = 64
DEFAULT_MAX_CHAIN_LINKS: int = 1024


@dataclass(frozen=True)
class InspectorConfig:
    """Limits shared by the decoder, resolver and validation engine.

    Parameters
    ----------
    max_input_bytes:
        Inputs larger than this are rejected before any decoding is attempted.
    max_chain_depth:
        Deepest proof level the resolver will materialize. Level 0 is the
        presented token.
    max_chain_links:
        Upper bound on the total number of links in a resolved chain.
    expiry_warning:
        A link expiring within this window of *now* gets an
        ``expiring_soon`` warning.
    check_attenuation:
        When True the engine audits every child/proof pair in the chain for
        capability narrowing and principal alignment.
    """

    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES
    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH
    max_chain_links: int = DEFAULT_MAX_CHAIN_LINKS
    expiry_warning: datetime.timedelta = field(
        default_factory=lambda: datetime.timedelta(hours=24)
    )
    check_attenuation: bool = True

    def __post_init__(self) -> None:
        if self.max_input_bytes <= 0:
            raise ValueError("InspectorConfig.max_input_bytes must be positive.")
        if self.max_chain_depth < 0:
            raise ValueError("InspectorConfig.max_chain_depth must not be negative.")
        if self.max_chain_links <= 0:
            raise ValueError("InspectorConfig.max_chain_links must be positive.")


__all__ = [
    "DEFAULT_MAX_CHAIN_DEPTH",
    "DEFAULT_MAX_CHAIN_LINKS",
    "DEFAULT_MAX_INPUT_BYTES",
    "InspectorConfig",
]
