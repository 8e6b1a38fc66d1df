"""
Routes and the announcements that carry them between ASes.

A Route is what an AS stores in its Local RIB for one prefix. An
Announcement is a Route in flight from one AS to a neighbour during a
single propagation phase; it is consumed by the receiver's import step.

AS-path convention: the first element is the immediate sender, the last
is the origin. The owning AS is never on the path of its own RIB entry,
so a self-originated route has an empty path (or, for a forged-origin
announcement, the path the attacker claims).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from hijacksim.routing.prefix import Prefix
from hijacksim.routing.records import ASPAValidity, ROAValidity
from hijacksim.routing.relationships import Relationship


@dataclass(frozen=True, slots=True)
class SecurityAttributes:
    rov: ROAValidity | None = None
    aspa: ASPAValidity | None = None
    path_end: bool | None = None
    only_to_customers: bool = False
    # signed path, sender first like as_path; None when unsigned
    bgpsec_path: tuple[int, ...] | None = None
    bgpsec_next_asn: int | None = None
    blackhole: bool = False


@dataclass(frozen=True, slots=True)
class Route:
    prefix: Prefix
    as_path: tuple[int, ...]
    origin: int
    recv_relationship: Relationship
    next_hop_asn: int
    security: SecurityAttributes = field(default_factory=SecurityAttributes)

    @classmethod
    def originate(
        cls,
        prefix: Prefix,
        asn: int,
        claimed_path: tuple[int, ...] = (),
        signed: bool = False,
    ) -> "Route":
        """
        Build a self-originated route for ``asn``.

        ``claimed_path`` lets an attacker pretend the route came from
        somewhere else; the claimed origin is its last element.
        ``signed`` starts a BGPsec signature chain at this origin.
        """
        origin = claimed_path[-1] if claimed_path else asn
        return cls(
            prefix=prefix,
            as_path=tuple(claimed_path),
            origin=origin,
            recv_relationship=Relationship.ORIGIN,
            next_hop_asn=asn,
            security=SecurityAttributes(bgpsec_path=() if signed else None),
        )

    @property
    def is_self_originated(self) -> bool:
        return self.recv_relationship is Relationship.ORIGIN

    @property
    def path_length(self) -> int:
        return len(self.as_path)

    @property
    def bgpsec_valid(self) -> bool:
        """Every AS on the path signed it."""
        return self.security.bgpsec_path == self.as_path

    def with_security(self, **changes) -> "Route":
        return replace(self, security=replace(self.security, **changes))

    def to_announcement(
        self, sender: int, receiver: int, recv_relationship: Relationship
    ) -> "Announcement":
        """
        Copy this route for sending, prepending the sender to the path.

        ``recv_relationship`` is the sender's role as seen by the receiver.
        A signed route gets the sender's signature, addressed to the receiver.
        """
        security = self.security
        if security.bgpsec_path is not None:
            security = replace(
                security,
                bgpsec_path=(sender,) + security.bgpsec_path,
                bgpsec_next_asn=receiver,
            )
        sent = replace(
            self,
            security=security,
            as_path=(sender,) + self.as_path,
            recv_relationship=recv_relationship,
            next_hop_asn=sender,
        )
        return Announcement(route=sent, sender=sender, receiver=receiver)


@dataclass(frozen=True, slots=True)
class Announcement:
    route: Route
    sender: int
    receiver: int

    @property
    def prefix(self) -> Prefix:
        return self.route.prefix
