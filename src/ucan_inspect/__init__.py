"""ucan-inspect — decode, resolve and validate UCAN delegation tokens.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import ucan_inspect
>>> ucan_inspect.__version__
'0.1.0'

Quick start
-----------
::

    from ucan_inspect import Inspector, serialize_result

    inspector = Inspector()
    result = inspector.validate(Path("delegation.car").read_bytes())
    print(serialize_result(result)["summary"])
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Configuration and errors
# ------------------------------------------------------------------
from ucan_inspect.config import InspectorConfig
from ucan_inspect.errors import InspectError

# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------
from ucan_inspect.decoding import (
    ArchivedDelegation,
    CanonicalClaims,
    DecodeError,
    DecodeErrorKind,
    TokenDecoder,
    TokenFormat,
)

# ------------------------------------------------------------------
# Delegation model
# ------------------------------------------------------------------
from ucan_inspect.capabilities import Capability, CapabilityCategory
from ucan_inspect.delegation import (
    DelegationLink,
    DelegationMapper,
    ProofReference,
    SignatureInfo,
)
from ucan_inspect.signature import Ed25519SignatureVerifier, SignatureVerifier

# ------------------------------------------------------------------
# Chain resolution and validation
# ------------------------------------------------------------------
from ucan_inspect.chain import (
    ChainInfo,
    ChainResolver,
    ResolveError,
    ResolveErrorKind,
    describe_chain,
)
from ucan_inspect.validation import (
    IssueKind,
    Severity,
    ValidationEngine,
    ValidationIssue,
    ValidationResult,
)

# ------------------------------------------------------------------
# Facade and wire models
# ------------------------------------------------------------------
from ucan_inspect.analysis import analyze_capabilities, analyze_invocation
from ucan_inspect.inspector import Inspector, TokenAnalysis
from ucan_inspect.schemas import serialize_chain, serialize_link, serialize_result

__all__ = [
    "__version__",
    # Configuration and errors
    "InspectorConfig",
    "InspectError",
    # Decoding
    "ArchivedDelegation",
    "CanonicalClaims",
    "DecodeError",
    "DecodeErrorKind",
    "TokenDecoder",
    "TokenFormat",
    # Delegation model
    "Capability",
    "CapabilityCategory",
    "DelegationLink",
    "DelegationMapper",
    "Ed25519SignatureVerifier",
    "ProofReference",
    "SignatureInfo",
    "SignatureVerifier",
    # Chain resolution and validation
    "ChainInfo",
    "ChainResolver",
    "IssueKind",
    "ResolveError",
    "ResolveErrorKind",
    "Severity",
    "ValidationEngine",
    "ValidationIssue",
    "ValidationResult",
    "describe_chain",
    # Facade and wire models
    "Inspector",
    "TokenAnalysis",
    "analyze_capabilities",
    "analyze_invocation",
    "serialize_chain",
    "serialize_link",
    "serialize_result",
]
