"""Chain description — principals, levels and timeline of a resolved chain."""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from ucan_inspect.delegation.link import DelegationLink


class PrincipalRole(str, Enum):
    """Where a principal first appears in the chain."""

    ROOT = "root"
    INTERMEDIATE = "intermediate"
    LEAF = "leaf"


@dataclass
class PrincipalInfo:
    """A principal and every link it takes part in."""

    did: str
    role: PrincipalRole
    level: int
    content_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimelineEvent:
    """A point in time where a link becomes valid (``issued``) or lapses (``expires``)."""

    type: str
    time: datetime.datetime
    content_id: str
    level: int
    principal: str


@dataclass(frozen=True)
class ChainInfo:
    """Summary of a resolved chain.

    Parameters
    ----------
    total_levels:
        Deepest level plus one; 0 for an empty chain.
    root_content_id:
        Content id of the presented token.
    leaf_content_ids:
        Content ids of the links at the deepest level.
    principals:
        Distinct principals in order of first appearance.
    levels:
        Content ids grouped by level, index = level.
    timeline:
        Issue and expiry events sorted by time.
    is_complete:
        True when every proof reference in the chain resolved to a link
        within it.
    """

    total_levels: int = 0
    root_content_id: str = ""
    leaf_content_ids: tuple[str, ...] = ()
    principals: tuple[PrincipalInfo, ...] = ()
    levels: tuple[tuple[str, ...], ...] = ()
    timeline: tuple[TimelineEvent, ...] = ()
    is_complete: bool = True


def describe_chain(chain: Sequence[DelegationLink]) -> ChainInfo:
    """Build a :class:`ChainInfo` for *chain*.

    Example
    -------
    ::

        info = describe_chain(resolver.resolve(data))
        print(info.total_levels, "levels,", len(info.principals), "principals")
    """
    if not chain:
        return ChainInfo()

    max_level = max(link.level for link in chain)
    principals: dict[str, PrincipalInfo] = {}
    levels: list[list[str]] = [[] for _ in range(max_level + 1)]
    timeline: list[TimelineEvent] = []

    for link in chain:
        levels[link.level].append(link.content_id)
        for did in (link.issuer, link.audience):
            if not did:
                continue
            if did not in principals:
                principals[did] = PrincipalInfo(
                    did=did, role=_role(link.level, max_level), level=link.level
                )
            principals[did].content_ids.append(link.content_id)

        if link.not_before is not None:
            timeline.append(
                TimelineEvent("issued", link.not_before, link.content_id, link.level, link.issuer)
            )
        if link.expiration is not None:
            timeline.append(
                TimelineEvent(
                    "expires", link.expiration, link.content_id, link.level, link.audience
                )
            )

    timeline.sort(key=lambda event: event.time)
    known = {link.content_id for link in chain}
    is_complete = all(proof.content_id in known for link in chain for proof in link.proofs)

    return ChainInfo(
        total_levels=max_level + 1,
        root_content_id=chain[0].content_id,
        leaf_content_ids=tuple(levels[max_level]),
        principals=tuple(principals.values()),
        levels=tuple(tuple(ids) for ids in levels),
        timeline=tuple(timeline),
        is_complete=is_complete,
    )


def _role(level: int, max_level: int) -> PrincipalRole:
    if level == 0:
        return PrincipalRole.ROOT
    if level == max_level:
        return PrincipalRole.LEAF
    return PrincipalRole.INTERMEDIATE


__all__ = ["ChainInfo", "PrincipalInfo", "PrincipalRole", "TimelineEvent", "describe_chain"]
