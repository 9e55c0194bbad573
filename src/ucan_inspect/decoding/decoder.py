"""TokenDecoder — wire format detection.

Strategies run in a fixed order and are independent of each other:

1. content-addressed archive  (:mod:`ucan_inspect.decoding.archive`)
2. raw DAG-CBOR block          (:mod:`ucan_inspect.decoding.block`)
3. compact base64url token     (:mod:`ucan_inspect.decoding.compact`)

The first strategy that succeeds wins. When all fail the most specific
failure is reported: a recognized envelope with no principals beats a
malformed compact segment, which beats an unrecognized format. An explicit
format hint runs exactly one strategy.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding.archive import ArchiveFormatError, ArchivedDelegation, decode_archive
from ucan_inspect.decoding.block import BlockClaimsError, BlockFormatError, decode_block
from ucan_inspect.decoding.claims import CanonicalClaims, TokenFormat
from ucan_inspect.decoding.compact import (
    CompactClaimsError,
    CompactFormatError,
    SegmentError,
    decode_compact,
)
from ucan_inspect.errors import InspectError

logger = logging.getLogger(__name__)

DecodedToken = Union[ArchivedDelegation, CanonicalClaims]


class DecodeErrorKind(str, Enum):
    """Failure categories for :class:`DecodeError`."""

    UNRECOGNIZED_FORMAT = "unrecognized_format"
    NO_RECOGNIZABLE_CLAIMS = "no_recognizable_claims"
    MALFORMED_SEGMENT = "malformed_segment"
    INPUT_TOO_LARGE = "input_too_large"


class DecodeError(InspectError):
    """Raised when input bytes cannot be decoded as any supported token."""

    kind: DecodeErrorKind


# Lower rank = more specific.
_RANK: dict[DecodeErrorKind, int] = {
    DecodeErrorKind.NO_RECOGNIZABLE_CLAIMS: 0,
    DecodeErrorKind.MALFORMED_SEGMENT: 1,
    DecodeErrorKind.UNRECOGNIZED_FORMAT: 2,
}


class TokenDecoder:
    """Detect a token's wire format and decode it.

    Parameters
    ----------
    config:
        Limits to enforce; defaults to :class:`~ucan_inspect.config.InspectorConfig`.

    Example
    -------
    ::

        decoder = TokenDecoder()
        decoded = decoder.decode(Path("delegation.car").read_bytes())
        print(decoded.token_format)
    """

    def __init__(self, config: Optional[InspectorConfig] = None) -> None:
        self._config = config or InspectorConfig()

    def decode(self, data: bytes, format: Optional[TokenFormat] = None) -> DecodedToken:
        """Decode *data*, auto-detecting the format unless *format* is given.

        Parameters
        ----------
        data:
            Token bytes.
        format:
            Optional hint; when set only that strategy runs.

        Returns
        -------
        ArchivedDelegation or CanonicalClaims
            Archives yield the native delegation view (with its block store);
            the other encodings yield canonical claims.

        Raises
        ------
        DecodeError
            If no strategy accepts the input.
        """
        if len(data) > self._config.max_input_bytes:
            raise DecodeError(
                DecodeErrorKind.INPUT_TOO_LARGE,
                f"Input is {len(data)} bytes; the limit is {self._config.max_input_bytes}.",
            )
        if not data:
            raise DecodeError(DecodeErrorKind.UNRECOGNIZED_FORMAT, "Input is empty.")

        strategies = [format] if format is not None else list(TokenFormat)
        failure: Optional[DecodeError] = None
        for strategy in strategies:
            try:
                decoded = self._run(strategy, data)
            except DecodeError as exc:
                logger.debug("%s decoding failed: %s", strategy.value, exc.message)
                if failure is None or _RANK[exc.kind] < _RANK[failure.kind]:
                    failure = exc
                continue
            logger.debug("Decoded %d bytes as %s", len(data), strategy.value)
            return decoded

        if failure is not None and failure.kind is not DecodeErrorKind.UNRECOGNIZED_FORMAT:
            raise failure
        raise DecodeError(
            DecodeErrorKind.UNRECOGNIZED_FORMAT,
            "Input is not an archive, a raw block, or a compact token.",
        )

    @staticmethod
    def _run(strategy: TokenFormat, data: bytes) -> DecodedToken:
        if strategy is TokenFormat.ARCHIVE:
            try:
                return decode_archive(data)
            except ArchiveFormatError as exc:
                raise DecodeError(DecodeErrorKind.UNRECOGNIZED_FORMAT, str(exc)) from exc
        if strategy is TokenFormat.BLOCK:
            try:
                return decode_block(data)
            except BlockFormatError as exc:
                raise DecodeError(DecodeErrorKind.UNRECOGNIZED_FORMAT, str(exc)) from exc
            except BlockClaimsError as exc:
                raise DecodeError(DecodeErrorKind.NO_RECOGNIZABLE_CLAIMS, str(exc)) from exc
        try:
            return decode_compact(data)
        except CompactFormatError as exc:
            raise DecodeError(DecodeErrorKind.UNRECOGNIZED_FORMAT, str(exc)) from exc
        except SegmentError as exc:
            raise DecodeError(DecodeErrorKind.MALFORMED_SEGMENT, str(exc)) from exc
        except CompactClaimsError as exc:
            raise DecodeError(DecodeErrorKind.NO_RECOGNIZABLE_CLAIMS, str(exc)) from exc


__all__ = ["DecodeError", "DecodeErrorKind", "DecodedToken", "TokenDecoder"]
