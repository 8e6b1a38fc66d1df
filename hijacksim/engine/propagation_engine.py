"""
Propagation engine for the hijacksim simulator.

Runs one single-pass, three-phase dissemination of announcements over an
AS graph whose routing state has been reset and seeded:

1. up: ranks ascending, each AS imports what its customers sent, decides,
   and sends to providers and peers
2. peers: each AS imports what its peers sent and decides
3. down: ranks descending, each AS imports what its providers sent,
   decides, and sends to customers

Ranks guarantee that an AS only sends once every AS that could feed it in
the current phase has already decided. There are no withdrawals, so one
pass converges.

The engine performs no I/O.
"""

from __future__ import annotations

import logging

from hijacksim.errors import LoopDetectedError, MissingPolicyError
from hijacksim.routing.records import AuthorizationRecords
from hijacksim.routing.relationships import Relationship
from hijacksim.topology.as_graph import ASGraph, ASNode

logger = logging.getLogger(__name__)

UP_TARGETS = (Relationship.PROVIDERS, Relationship.PEERS)
DOWN_TARGETS = (Relationship.CUSTOMERS,)


class PropagationEngine:
    """
    Drives one trial's propagation to convergence.
    """

    def __init__(
        self, graph: ASGraph, records: AuthorizationRecords | None = None
    ) -> None:
        self.graph = graph
        self.records = records or AuthorizationRecords()
        self.rejections = 0

    def run(self) -> None:
        """
        Execute the three phases in order.

        Raises:
            MissingPolicyError: an AS has no policy assigned.
            LoopDetectedError: a selected route contains its owner's ASN.
        """
        self._check_policies()

        ranks = self.graph.propagation_ranks

        for rank_asns in ranks:
            for asn in rank_asns:
                node = self.graph[asn]
                self._import(node, Relationship.CUSTOMERS)
                self._send(node, UP_TARGETS)
        logger.debug("Up phase complete over %d ranks", len(ranks))

        for rank_asns in ranks:
            for asn in rank_asns:
                self._import(self.graph[asn], Relationship.PEERS)
        logger.debug("Peer phase complete")

        for rank_asns in reversed(ranks):
            for asn in rank_asns:
                node = self.graph[asn]
                self._import(node, Relationship.PROVIDERS)
                self._send(node, DOWN_TARGETS)
        logger.debug("Down phase complete, %d announcements rejected", self.rejections)

    def _check_policies(self) -> None:
        for node in self.graph:
            if node.policy is None:
                logger.error("AS %d has no policy assigned", node.asn)
                raise MissingPolicyError(
                    f"AS {node.asn} has no policy assigned", asn=node.asn
                )

    def _import(self, node: ASNode, relationship: Relationship) -> None:
        """
        Import queued announcements from neighbours in one role and
        update the Local RIB with the best route per prefix.
        """
        queued = node.recv_queue.pop(relationship, None)
        if not queued:
            return

        policy = node.policy
        for prefix, announcements in queued.items():
            candidates = []
            current = node.local_rib.get(prefix)
            if current is not None:
                candidates.append(current)

            for announcement in announcements:
                result = policy.import_announcement(node, announcement, self.records)
                if result.accepted:
                    candidates.append(result.route)
                else:
                    self.rejections += 1

            if not candidates:
                continue

            best = policy.decide(candidates)
            if node.asn in best.as_path:
                logger.error(
                    "AS %d selected a looping route for %s: %s",
                    node.asn,
                    prefix,
                    best.as_path,
                )
                raise LoopDetectedError(
                    f"AS {node.asn} selected route {best.as_path} for {prefix} "
                    f"containing itself",
                    asn=node.asn,
                )
            node.local_rib[prefix] = best

    def _send(self, node: ASNode, relationships: tuple[Relationship, ...]) -> None:
        """
        Queue the node's best routes at neighbours in the given roles.
        """
        if not node.local_rib:
            return

        policy = node.policy
        for prefix, route in node.local_rib.items():
            targets = policy.export_targets(route)
            for relationship in relationships:
                if relationship not in targets:
                    continue

                recv_relationship = relationship.invert()
                for neighbor_asn in node.neighbors(relationship):
                    announcement = route.to_announcement(
                        node.asn, neighbor_asn, recv_relationship
                    )
                    neighbor = self.graph[neighbor_asn]
                    neighbor.recv_queue.setdefault(recv_relationship, {}).setdefault(
                        prefix, []
                    ).append(announcement)
