"""
AS-level topology graph for the hijacksim simulator.

The graph separates two kinds of state:

- relationships (providers, customers, peers, ranks), built once and
  never mutated afterwards
- routing state (Local RIB, receive queue, assigned policy), reset at
  the start of every trial

Nodes live in a dict keyed by ASN and refer to each other by ASN only,
never by object reference.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING

import networkx as nx

from hijacksim.errors import InvalidTopology
from hijacksim.routing.relationships import (
    PEER_TO_PEER,
    PROVIDER_TO_CUSTOMER,
    Relationship,
)

if TYPE_CHECKING:
    from hijacksim.policy.base import Policy
    from hijacksim.routing.announcement import Announcement, Route
    from hijacksim.routing.prefix import Prefix

logger = logging.getLogger(__name__)

Edge = tuple[int, int, int]
RankFn = Callable[["ASGraph"], Mapping[int, int]]


class ASNode:
    """
    One autonomous system.
    """

    __slots__ = (
        "asn",
        "providers",
        "customers",
        "peers",
        "propagation_rank",
        "tier_1",
        "ixp",
        "policy",
        "local_rib",
        "recv_queue",
        "_roles",
    )

    def __init__(
        self,
        asn: int,
        providers: Iterable[int] = (),
        customers: Iterable[int] = (),
        peers: Iterable[int] = (),
        tier_1: bool = False,
        ixp: bool = False,
    ) -> None:
        self.asn = asn
        self.providers: tuple[int, ...] = tuple(sorted(providers))
        self.customers: tuple[int, ...] = tuple(sorted(customers))
        self.peers: tuple[int, ...] = tuple(sorted(peers))
        self.propagation_rank: int = 0
        self.tier_1 = tier_1
        self.ixp = ixp
        self.policy: Policy | None = None
        self.local_rib: dict[Prefix, Route] = {}
        # announcements waiting for import, grouped by the sender's role
        self.recv_queue: dict[Relationship, dict[Prefix, list[Announcement]]] = {}

        roles: dict[int, Relationship] = {}
        for rel, asns in (
            (Relationship.PROVIDERS, self.providers),
            (Relationship.CUSTOMERS, self.customers),
            (Relationship.PEERS, self.peers),
        ):
            for neighbor in asns:
                roles[neighbor] = rel
        self._roles = roles

    def neighbors(self, relationship: Relationship) -> tuple[int, ...]:
        if relationship is Relationship.PROVIDERS:
            return self.providers
        if relationship is Relationship.CUSTOMERS:
            return self.customers
        if relationship is Relationship.PEERS:
            return self.peers
        return ()

    def relationship_to(self, asn: int) -> Relationship | None:
        """Role of ``asn`` as seen from this AS, or None if not adjacent."""
        return self._roles.get(asn)

    def is_neighbor(self, asn: int) -> bool:
        return asn in self._roles

    @property
    def is_stub(self) -> bool:
        return not self.customers

    @property
    def is_multihomed(self) -> bool:
        return not self.customers and len(self.providers) + len(self.peers) > 1

    def __repr__(self) -> str:
        return (
            f"ASNode(asn={self.asn}, rank={self.propagation_rank}, "
            f"providers={len(self.providers)}, customers={len(self.customers)}, "
            f"peers={len(self.peers)})"
        )


def customer_cone_rank(graph: "ASGraph") -> dict[int, int]:
    """
    Default propagation rank.

    0 for an AS with no customers, otherwise one more than the highest
    ranked customer. Computed bottom-up over a topological order of the
    customer -> provider DAG.
    """
    ranks: dict[int, int] = {}
    for asn in nx.topological_sort(graph.hierarchy):
        node = graph[asn]
        if node.customers:
            ranks[asn] = 1 + max(ranks[customer] for customer in node.customers)
        else:
            ranks[asn] = 0
    return ranks


class ASGraph:
    """
    Immutable AS relationship graph plus per-AS routing state.

    Build instances with ``ASGraph.build``.
    """

    def __init__(self, nodes: dict[int, ASNode], hierarchy: nx.DiGraph) -> None:
        self._nodes = nodes
        # customer -> provider edges only; peers are exempt from the DAG rule
        self.hierarchy = hierarchy
        self.propagation_ranks: list[list[int]] = []

    @classmethod
    def build(
        cls,
        edges: Iterable[Edge],
        rank_fn: RankFn | None = None,
        tier_1_asns: Iterable[int] = (),
        ixp_asns: Iterable[int] = (),
    ) -> "ASGraph":
        """
        Construct a graph from ``(asn_a, asn_b, rel)`` edges.

        ``rel`` follows the CAIDA convention: -1 means ``asn_a`` is the
        provider of ``asn_b``; 0 means the two are peers.

        Raises:
            InvalidTopology: unknown relationship code, self relationship,
                conflicting roles for the same pair, or a cycle in the
                customer-provider hierarchy.
        """
        providers: dict[int, set[int]] = {}
        customers: dict[int, set[int]] = {}
        peers: dict[int, set[int]] = {}
        pair_roles: dict[frozenset[int], tuple[int, int, int]] = {}
        asns: set[int] = set()

        for edge in edges:
            try:
                asn_a, asn_b, rel = (int(value) for value in edge)
            except (TypeError, ValueError) as exc:
                raise InvalidTopology(f"Malformed edge {edge!r}") from exc

            if asn_a == asn_b:
                raise InvalidTopology(f"AS {asn_a} has a relationship with itself")
            if rel not in (PROVIDER_TO_CUSTOMER, PEER_TO_PEER):
                raise InvalidTopology(
                    f"Unknown relationship code {rel} for {asn_a}|{asn_b}"
                )

            key = frozenset((asn_a, asn_b))
            normalised = (asn_a, asn_b, rel) if rel == PROVIDER_TO_CUSTOMER else (
                min(asn_a, asn_b),
                max(asn_a, asn_b),
                rel,
            )
            previous = pair_roles.get(key)
            if previous is not None:
                if previous != normalised:
                    raise InvalidTopology(
                        f"ASes {asn_a} and {asn_b} listed with conflicting "
                        f"relationships {previous} and {normalised}"
                    )
                continue
            pair_roles[key] = normalised

            asns.update((asn_a, asn_b))
            if rel == PROVIDER_TO_CUSTOMER:
                customers.setdefault(asn_a, set()).add(asn_b)
                providers.setdefault(asn_b, set()).add(asn_a)
            else:
                peers.setdefault(asn_a, set()).add(asn_b)
                peers.setdefault(asn_b, set()).add(asn_a)

        tier_1 = set(tier_1_asns)
        ixp = set(ixp_asns)
        nodes = {
            asn: ASNode(
                asn,
                providers=providers.get(asn, ()),
                customers=customers.get(asn, ()),
                peers=peers.get(asn, ()),
                tier_1=asn in tier_1,
                ixp=asn in ixp,
            )
            for asn in sorted(asns)
        }

        hierarchy = nx.DiGraph()
        hierarchy.add_nodes_from(nodes)
        for provider, custs in customers.items():
            hierarchy.add_edges_from((customer, provider) for customer in custs)

        if not nx.is_directed_acyclic_graph(hierarchy):
            cycle = nx.find_cycle(hierarchy)
            path = " -> ".join(str(customer) for customer, _ in cycle)
            raise InvalidTopology(
                f"Customer-provider cycle: {path} -> {cycle[0][0]}"
            )

        graph = cls(nodes, hierarchy)
        graph._assign_ranks(rank_fn or customer_cone_rank)

        logger.info(
            "Built AS graph: %d ASes, %d customer-provider links, %d ranks",
            len(nodes),
            hierarchy.number_of_edges(),
            len(graph.propagation_ranks),
        )
        return graph

    def _assign_ranks(self, rank_fn: RankFn) -> None:
        ranks = rank_fn(self)

        missing = [asn for asn in self._nodes if asn not in ranks]
        if missing:
            raise InvalidTopology(f"Rank function did not rank ASes {missing[:10]}")

        for customer, provider in self.hierarchy.edges:
            if ranks[provider] <= ranks[customer]:
                raise InvalidTopology(
                    f"Provider {provider} (rank {ranks[provider]}) does not "
                    f"outrank customer {customer} (rank {ranks[customer]})"
                )

        for asn, node in self._nodes.items():
            node.propagation_rank = int(ranks[asn])

        max_rank = max(ranks.values(), default=-1)
        groups: list[list[int]] = [[] for _ in range(max_rank + 1)]
        for asn in self._nodes:
            groups[ranks[asn]].append(asn)
        self.propagation_ranks = [sorted(group) for group in groups]

    # -----------------------------------------------------------------
    # Accessors
    # -----------------------------------------------------------------

    def __getitem__(self, asn: int) -> ASNode:
        return self._nodes[asn]

    def __contains__(self, asn: object) -> bool:
        return asn in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ASNode]:
        return iter(self._nodes.values())

    @property
    def asns(self) -> list[int]:
        return list(self._nodes)

    def stubs(self, include_ixps: bool = False) -> list[int]:
        return [
            node.asn
            for node in self._nodes.values()
            if node.is_stub and (include_ixps or not node.ixp)
        ]

    # -----------------------------------------------------------------
    # Per-trial routing state
    # -----------------------------------------------------------------

    def reset_ribs(self) -> None:
        """
        Empty every Local RIB and receive queue in place.

        Relationship tuples are left untouched so this stays O(ASes).
        """
        for node in self._nodes.values():
            node.local_rib.clear()
            node.recv_queue.clear()

    def clear_policies(self) -> None:
        for node in self._nodes.values():
            node.policy = None

    def assign_policies(
        self, default: "Policy", overrides: Mapping[int, "Policy"] | None = None
    ) -> None:
        overrides = overrides or {}
        for asn, node in self._nodes.items():
            node.policy = overrides.get(asn, default)

    def rib_snapshot(self) -> dict[int, dict[str, tuple[int, ...]]]:
        """
        AS-paths of every Local RIB entry, keyed by ASN and prefix string.
        """
        return {
            asn: {str(prefix): route.as_path for prefix, route in node.local_rib.items()}
            for asn, node in self._nodes.items()
        }
