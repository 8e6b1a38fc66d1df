"""
Business relationships between neighbouring ASes.
"""

from enum import IntEnum


class Relationship(IntEnum):
    """
    Role of a neighbour as seen from the local AS.

    On a route, this is the role of the neighbour the route was received
    from. ORIGIN marks a self-originated route.
    """

    PROVIDERS = 1
    PEERS = 2
    CUSTOMERS = 3
    ORIGIN = 4

    def invert(self) -> "Relationship":
        """
        Return the same link as seen from the other end.
        """
        if self is Relationship.PROVIDERS:
            return Relationship.CUSTOMERS
        if self is Relationship.CUSTOMERS:
            return Relationship.PROVIDERS
        return self


# CAIDA as-rel codes
PROVIDER_TO_CUSTOMER = -1
PEER_TO_PEER = 0
