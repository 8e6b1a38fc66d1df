"""
Defense mechanisms, one Check per mechanism.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hijacksim.policy.base import Accept, Check, CUSTOMERS_ONLY, ImportResult, Reject
from hijacksim.routing.announcement import Route
from hijacksim.routing.records import (
    ASPAValidity,
    AuthorizationRecords,
    HopCheck,
    ROAValidity,
)
from hijacksim.routing.relationships import Relationship

if TYPE_CHECKING:
    from hijacksim.topology.as_graph import ASNode


class ROVCheck(Check):
    """
    Route origin validation as a hard import filter.

    Invalid routes (wrong origin or too specific) are dropped; valid and
    unknown routes are accepted.
    """

    name = "ROV"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        validity = records.route_validator.validity(route.prefix, route.origin)
        if validity.is_invalid:
            return Reject(f"ROV {validity.value}")
        return Accept(route.with_security(rov=validity))


class ROVPreferenceCheck(Check):
    """
    Route origin validation as a decision preference.

    Nothing is dropped; valid routes beat unknown routes, which beat
    invalid ones, before relationship preference is considered.
    """

    name = "ROV_PREFERENCE"

    RANKS = {
        ROAValidity.VALID: 2,
        ROAValidity.UNKNOWN: 1,
    }

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        validity = records.route_validator.validity(route.prefix, route.origin)
        return Accept(route.with_security(rov=validity))

    def preference(self, route: Route) -> int:
        # Own announcements are trusted
        if route.is_self_originated:
            return 3
        if route.security.rov is None:
            return self.RANKS[ROAValidity.UNKNOWN]
        return self.RANKS.get(route.security.rov, 0)


class PeerROVCheck(ROVCheck):
    """ROV filtering applied only to routes learned from peers."""

    name = "PEER_ROV"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        if route.recv_relationship is not Relationship.PEERS:
            return Accept(route)
        return super().inspect(node, route, records)


class ASPACheck(Check):
    """
    AS provider authorization path verification.

    The path is walked from the origin toward the receiver. Routes from
    customers and peers must climb providers the whole way (upstream
    verification). Routes from providers may climb then descend, so the
    longest provider-ward run from the origin plus the longest
    customer-ward run into the receiver must cover the path (downstream
    verification).
    """

    name = "ASPA"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        # route servers do not put themselves on the path
        if route.as_path[0] != route.next_hop_asn and not node.ixp:
            return Reject("ASPA first hop is not the sender")

        hops = tuple(reversed(route.as_path))
        up = self.max_up_ramp_length(hops, records)
        pairs = list(zip(hops, hops[1:]))

        if route.recv_relationship in (Relationship.CUSTOMERS, Relationship.PEERS):
            valid = up >= len(hops)
        else:
            down = self.max_down_ramp_length(hops, records)
            valid = up + down >= len(hops)
            pairs += [(provider, customer) for customer, provider in pairs]

        if not valid:
            return Reject("ASPA invalid path")

        if any(
            records.provider_check(customer, provider) is HopCheck.NO_ATTESTATION
            for customer, provider in pairs
        ):
            return Accept(route.with_security(aspa=ASPAValidity.UNKNOWN))
        return Accept(route.with_security(aspa=ASPAValidity.VALID))

    @staticmethod
    def max_up_ramp_length(
        hops: tuple[int, ...], records: AuthorizationRecords
    ) -> int:
        """``hops`` runs origin first."""
        for i in range(len(hops) - 1):
            if records.provider_check(hops[i], hops[i + 1]) is HopCheck.NOT_PROVIDER:
                return i + 1
        return len(hops)

    @staticmethod
    def max_down_ramp_length(
        hops: tuple[int, ...], records: AuthorizationRecords
    ) -> int:
        for j in range(len(hops) - 1, 0, -1):
            if records.provider_check(hops[j], hops[j - 1]) is HopCheck.NOT_PROVIDER:
                return len(hops) - j
        return len(hops)


class PathEndCheck(Check):
    """
    Path-End validation: the AS next to the origin must be one the origin
    attested as a neighbour. Origins without a record are not checked.
    """

    name = "PATH_END"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        if len(route.as_path) < 2:
            return Accept(route)

        attested = records.path_end.get(route.origin)
        if attested is None:
            return Accept(route)

        last_hop = route.as_path[-2]
        if last_hop not in attested:
            return Reject(f"Path-End: {last_hop} not attested by origin {route.origin}")
        return Accept(route.with_security(path_end=True))


class EnforceFirstASCheck(Check):
    """The first path element must be the sender, and a neighbour."""

    name = "ENFORCE_FIRST_AS"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        first = route.as_path[0]
        if first != route.next_hop_asn or not node.is_neighbor(first):
            return Reject(f"first AS {first} is not the neighbouring sender")
        return Accept(route)


class OnlyToCustomersCheck(Check):
    """
    Only-to-Customer marking.

    Routes learned from providers or peers are flagged and may only be
    exported to customers. A flagged route arriving from a customer or a
    peer has been re-exported into a provider or peer link, which is a
    leak, and is rejected.
    """

    name = "OTC"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        rel = route.recv_relationship

        if route.security.only_to_customers and rel in (
            Relationship.CUSTOMERS,
            Relationship.PEERS,
        ):
            return Reject("OTC route leak")

        if rel in (Relationship.PROVIDERS, Relationship.PEERS):
            route = route.with_security(only_to_customers=True)
        return Accept(route)

    def restrict_exports(
        self, route: Route, targets: frozenset[Relationship]
    ) -> frozenset[Relationship]:
        if route.security.only_to_customers:
            return targets & CUSTOMERS_ONLY
        return targets


class ROVPPV1LiteCheck(ROVCheck):
    """
    ROV++ v1 Lite.

    An invalid route is not just dropped: it is kept as a blackhole
    entry, so traffic for a hijacked sub-prefix is discarded instead of
    following the covering route. Blackholes lose to any usable route
    for the same prefix and are never exported.
    """

    name = "ROVPP_V1_LITE"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        validity = records.route_validator.validity(route.prefix, route.origin)
        if validity.is_invalid:
            return Accept(route.with_security(rov=validity, blackhole=True))
        return Accept(route.with_security(rov=validity))

    def preference(self, route: Route) -> int:
        return 0 if route.security.blackhole else 1

    def restrict_exports(
        self, route: Route, targets: frozenset[Relationship]
    ) -> frozenset[Relationship]:
        if route.security.blackhole:
            return frozenset()
        return targets


class BGPSecCheck(Check):
    """
    BGPsec path signing.

    Adopters sign every route they forward. A signed route must carry a
    signature chain equal to its AS-path and addressed to the receiver,
    otherwise it was tampered with and is rejected. Unsigned routes are
    accepted, but a route signed end to end beats any route that is not.
    """

    name = "BGPSEC"
    signs_paths = True

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        security = route.security
        if security.bgpsec_path is None:
            return Accept(route)
        if security.bgpsec_next_asn != node.asn or not route.bgpsec_valid:
            return Reject("BGPsec signature does not match the path")
        return Accept(route)

    def preference(self, route: Route) -> int:
        if route.is_self_originated:
            return 2
        return 1 if route.bgpsec_valid else 0


class PeerlockLiteCheck(Check):
    """
    Peerlock-lite: a customer never legitimately sends a route that has
    already crossed a tier-1 AS.
    """

    name = "PEERLOCK_LITE"

    def inspect(
        self, node: "ASNode", route: Route, records: AuthorizationRecords
    ) -> ImportResult:
        if route.recv_relationship is not Relationship.CUSTOMERS:
            return Accept(route)

        leaked = [asn for asn in route.as_path if asn in records.tier_1]
        if leaked:
            return Reject(f"Peerlock: tier-1 AS {leaked[0]} behind a customer")
        return Accept(route)
