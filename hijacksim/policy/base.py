"""
Routing policy: import filtering, best-route decision and export gating.

A Policy is a name plus an ordered tuple of Checks. The base behaviour
(loop rejection, Gao-Rexford decision and valley-free export) lives
here; each Check layers one defense mechanism on top. Composing several
mechanisms means AND-ing their import verdicts, concatenating their
decision preferences and intersecting their export restrictions.

Policies hold no per-route state and may be shared between ASes and
between trials.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Union

from hijacksim.routing.announcement import Announcement, Route
from hijacksim.routing.records import AuthorizationRecords
from hijacksim.routing.relationships import Relationship

if TYPE_CHECKING:
    from hijacksim.topology.as_graph import ASNode


@dataclass(frozen=True, slots=True)
class Accept:
    route: Route
    accepted: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Reject:
    """A policy rejection. Expected control flow, not an error."""

    reason: str
    accepted: ClassVar[bool] = False


ImportResult = Union[Accept, Reject]

# Lower sorts first. Self-originated routes are always preferred.
RELATIONSHIP_RANK = {
    Relationship.ORIGIN: 0,
    Relationship.CUSTOMERS: 1,
    Relationship.PEERS: 2,
    Relationship.PROVIDERS: 3,
}

ALL_TARGETS = frozenset(
    (Relationship.CUSTOMERS, Relationship.PEERS, Relationship.PROVIDERS)
)
CUSTOMERS_ONLY = frozenset((Relationship.CUSTOMERS,))


class Check:
    """
    One defense mechanism. Subclasses override whichever hooks they need.
    """

    name: ClassVar[str] = "CHECK"
    # ASes running this check sign and forward BGPsec paths
    signs_paths: ClassVar[bool] = False

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        """
        Vet a received route. May return an annotated copy.
        """
        return Accept(route)

    def preference(self, route: Route) -> int:
        """
        Decision preference; higher wins. Checks that act purely as
        filters leave every route at 0.
        """
        return 0

    def restrict_exports(
        self, route: Route, targets: frozenset[Relationship]
    ) -> frozenset[Relationship]:
        return targets

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Policy:
    """
    The three operations the propagation engine invokes on every AS.
    """

    def __init__(self, name: str, checks: Iterable[Check] = ()) -> None:
        self.name = name
        self.checks: tuple[Check, ...] = tuple(checks)
        self.signs_paths = any(check.signs_paths for check in self.checks)

    def import_announcement(
        self,
        node: "ASNode",
        announcement: Announcement,
        records: AuthorizationRecords,
    ) -> ImportResult:
        """
        Decide whether ``node`` accepts ``announcement``.

        Loops and empty paths are always rejected; after that every check
        runs in order and the first rejection wins. An AS that does not
        sign paths drops any BGPsec signature, which breaks the chain for
        everything downstream of it.
        """
        route = announcement.route

        if not route.as_path:
            return Reject("empty AS-path")
        if node.asn in route.as_path:
            return Reject("loop")

        for check in self.checks:
            result = check.inspect(node, route, records)
            if not result.accepted:
                return result
            route = result.route

        if route.security.bgpsec_path is not None and not self.signs_paths:
            route = route.with_security(bgpsec_path=None, bgpsec_next_asn=None)
        return Accept(route)

    def decision_key(self, route: Route) -> tuple:
        return (
            tuple(-check.preference(route) for check in self.checks),
            RELATIONSHIP_RANK[route.recv_relationship],
            len(route.as_path),
            route.origin,
            route.next_hop_asn,
            route.as_path,
        )

    def decide(self, candidates: Iterable[Route]) -> Route:
        """
        Pick the best route among candidates for a single prefix.

        Order: variant preference, relationship (origin > customer > peer >
        provider), shorter AS-path, lower origin ASN, lower next-hop ASN.
        The full path is compared last so the order is total even for
        candidates equal on every protocol level.

        Raises:
            ValueError: no candidates.
        """
        return min(candidates, key=self.decision_key)

    def export_targets(self, route: Route) -> frozenset[Relationship]:
        """
        Neighbour roles ``route`` may be sent to (valley-free rule).
        """
        if route.recv_relationship in (Relationship.ORIGIN, Relationship.CUSTOMERS):
            targets = ALL_TARGETS
        else:
            targets = CUSTOMERS_ONLY

        for check in self.checks:
            targets = check.restrict_exports(route, targets)
        return targets

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Policy):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Policy({self.name!r}, checks={list(self.checks)!r})"
