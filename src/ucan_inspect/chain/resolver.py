"""ChainResolver — materialize a token's proofs into an ordered chain.

Only archived delegations can have their proofs resolved: the archive's
block store is the sole source of proof blocks. Raw blocks and compact
tokens resolve to a single link at level 0.

Traversal uses an explicit stack of proof iterators instead of recursion.
The result is in discovery order: the root, then each of its proofs in
listed order, each followed immediately by its own sub-proofs. Proof
references that are missing from the store, or whose block is not a
delegation, are dropped and the rest of the chain is kept.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, Optional, Union

from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding.archive import ArchivedDelegation
from ucan_inspect.decoding.claims import CanonicalClaims, TokenFormat
from ucan_inspect.decoding.decoder import TokenDecoder
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.delegation.mapper import DelegationMapper
from ucan_inspect.errors import InspectError

logger = logging.getLogger(__name__)

Chain = list[DelegationLink]
ChainRoot = Union[bytes, ArchivedDelegation, CanonicalClaims, DelegationLink]


class ResolveErrorKind(str, Enum):
    """Failure categories for :class:`ResolveError`."""

    CHAIN_TOO_DEEP = "chain_too_deep"
    CHAIN_TOO_LARGE = "chain_too_large"


class ResolveError(InspectError):
    """Raised when a proof graph exceeds the configured structural limits."""

    kind: ResolveErrorKind


class ChainResolver:
    """Resolve a presented token into its full delegation chain.

    Parameters
    ----------
    config:
        Structural limits; ``max_chain_depth`` and ``max_chain_links`` apply.
    decoder:
        Used when :meth:`resolve` receives raw bytes.
    mapper:
        Builds a link for every resolved delegation.

    Example
    -------
    ::

        resolver = ChainResolver()
        chain = resolver.resolve(Path("delegation.car").read_bytes())
        for link in chain:
            print(link.level, link.issuer, "->", link.audience)
    """

    def __init__(
        self,
        config: Optional[InspectorConfig] = None,
        decoder: Optional[TokenDecoder] = None,
        mapper: Optional[DelegationMapper] = None,
    ) -> None:
        self._config = config or InspectorConfig()
        self._decoder = decoder or TokenDecoder(self._config)
        self._mapper = mapper or DelegationMapper()

    def resolve(self, root: ChainRoot, format: Optional[TokenFormat] = None) -> Chain:
        """Return the chain rooted at *root*.

        Parameters
        ----------
        root:
            Token bytes, an already decoded token, or an already mapped link.
        format:
            Optional format hint used when *root* is bytes.

        Returns
        -------
        list[DelegationLink]
            Links in discovery order; index 0 is the presented token.

        Raises
        ------
        DecodeError
            If *root* is bytes that cannot be decoded.
        ResolveError
            If the chain is deeper than ``max_chain_depth`` or has more than
            ``max_chain_links`` links.
        """
        if isinstance(root, (bytes, bytearray, memoryview)):
            root = self._decoder.decode(bytes(root), format)
        if isinstance(root, DelegationLink):
            return [root]
        if isinstance(root, CanonicalClaims):
            return [self._mapper.map_to_link(root, level=0)]
        return self._walk(root)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _walk(self, root: ArchivedDelegation) -> Chain:
        chain: Chain = [self._mapper.map_to_link(root, level=0)]
        stack: list[tuple[ArchivedDelegation, int, Iterator[str]]] = [
            (root, 0, iter(root.proofs))
        ]
        dropped = 0

        while stack:
            parent, level, pending = stack[-1]
            proof_id = next(pending, None)
            if proof_id is None:
                stack.pop()
                continue

            proof = parent.view(proof_id)
            if proof is None:
                logger.debug("Dropping unresolvable proof %s of %s", proof_id, parent.content_id)
                dropped += 1
                continue

            child_level = level + 1
            if child_level > self._config.max_chain_depth:
                raise ResolveError(
                    ResolveErrorKind.CHAIN_TOO_DEEP,
                    f"Proof {proof_id} sits at level {child_level}; "
                    f"the limit is {self._config.max_chain_depth}.",
                )
            if len(chain) >= self._config.max_chain_links:
                raise ResolveError(
                    ResolveErrorKind.CHAIN_TOO_LARGE,
                    f"Chain exceeds {self._config.max_chain_links} links.",
                )

            chain.append(self._mapper.map_to_link(proof, level=child_level))
            stack.append((proof, child_level, iter(proof.proofs)))

        logger.info(
            "Resolved chain for %s: %d link(s), %d proof(s) dropped",
            root.content_id,
            len(chain),
            dropped,
        )
        return chain


__all__ = ["Chain", "ChainResolver", "ChainRoot", "ResolveError", "ResolveErrorKind"]
