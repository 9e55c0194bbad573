"""Inspector — one object wiring decoder, mapper, resolver and engine.

Inputs are raw bytes as received. Binary tokens that arrive as hex or
standard base64 text are decoded transparently: the bytes are tried as is
first, and only an unrecognized format triggers the text fallback.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from ucan_inspect.analysis import (
    CapabilityAnalysis,
    InvocationAnalysis,
    analyze_capabilities,
    analyze_invocation,
)
from ucan_inspect.chain.info import ChainInfo, describe_chain
from ucan_inspect.chain.resolver import Chain, ChainResolver
from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding.claims import TokenFormat
from ucan_inspect.decoding.decoder import DecodedToken, DecodeError, DecodeErrorKind, TokenDecoder
from ucan_inspect.decoding.normalize import normalize_token
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.delegation.mapper import DelegationMapper
from ucan_inspect.signature import Ed25519SignatureVerifier, SignatureVerifier
from ucan_inspect.validation.engine import ValidationEngine
from ucan_inspect.validation.issues import ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenAnalysis:
    """Invocation and capability analysis of the presented token."""

    link: DelegationLink
    invocation: InvocationAnalysis
    capabilities: CapabilityAnalysis


class Inspector:
    """High-level entry point for inspecting tokens.

    Parameters
    ----------
    config:
        Limits and validation switches shared by every stage.
    verifier:
        Signature verifier; defaults to :class:`Ed25519SignatureVerifier`.

    Example
    -------
    ::

        inspector = Inspector()
        result = inspector.validate(Path("delegation.car").read_bytes())
        print(result.valid, result.summary.total_links)
    """

    def __init__(
        self,
        config: Optional[InspectorConfig] = None,
        verifier: Optional[SignatureVerifier] = None,
    ) -> None:
        self._config = config or InspectorConfig()
        self._decoder = TokenDecoder(self._config)
        self._mapper = DelegationMapper(verifier or Ed25519SignatureVerifier())
        self._resolver = ChainResolver(self._config, self._decoder, self._mapper)
        self._engine = ValidationEngine(self._config)

    @property
    def config(self) -> InspectorConfig:
        return self._config

    def decode(self, data: bytes, format: Optional[TokenFormat] = None) -> DecodedToken:
        """Decode *data*, falling back to hex/base64 text decoding.

        Raises
        ------
        DecodeError
            If neither the bytes nor their text decoding is a token.
        """
        try:
            return self._decoder.decode(data, format)
        except DecodeError as exc:
            if exc.kind is not DecodeErrorKind.UNRECOGNIZED_FORMAT:
                raise
            failure = exc
            for candidate in normalize_token(data):
                logger.debug("Retrying with %d bytes decoded from text", len(candidate))
                try:
                    return self._decoder.decode(candidate, format)
                except DecodeError as retry_exc:
                    if failure.kind is DecodeErrorKind.UNRECOGNIZED_FORMAT:
                        failure = retry_exc
            raise failure from None

    def parse(self, data: bytes, format: Optional[TokenFormat] = None) -> DelegationLink:
        """Decode and map the presented token at level 0."""
        return self._mapper.map_to_link(self.decode(data, format), level=0)

    def parse_chain(self, data: bytes, format: Optional[TokenFormat] = None) -> Chain:
        """Decode the token and resolve its proof chain.

        Raises
        ------
        DecodeError
        ResolveError
        """
        return self._resolver.resolve(self.decode(data, format))

    def describe(self, data: bytes, format: Optional[TokenFormat] = None) -> ChainInfo:
        """Resolve the chain and summarize it."""
        return describe_chain(self.parse_chain(data, format))

    def validate(
        self,
        data: bytes,
        format: Optional[TokenFormat] = None,
        now: Optional[datetime.datetime] = None,
    ) -> ValidationResult:
        """Resolve and validate the chain rooted at the token in *data*."""
        return self._engine.validate(self.parse_chain(data, format), now=now)

    def analyze(self, data: bytes, format: Optional[TokenFormat] = None) -> TokenAnalysis:
        """Analyze the presented token's capabilities."""
        link = self.parse(data, format)
        return TokenAnalysis(
            link=link,
            invocation=analyze_invocation(link),
            capabilities=analyze_capabilities(link.capabilities),
        )


__all__ = ["Inspector", "TokenAnalysis"]
