"""
Unit tests for hijacksim/engine/propagation_engine.py
"""
import ipaddress

import pytest

from hijacksim.engine.propagation_engine import PropagationEngine
from hijacksim.errors import EngineError, LoopDetectedError, MissingPolicyError
from hijacksim.policy.base import Accept, Policy
from hijacksim.policy.variants import NO_DEFENSE, get_policy
from hijacksim.routing.announcement import Route
from hijacksim.routing.relationships import Relationship
from hijacksim.topology.as_graph import ASGraph

NET = ipaddress.ip_network("10.0.0.0/24")
SUBNET = ipaddress.ip_network("10.0.0.0/25")


def originate(graph, asn, prefix=NET):
    graph[asn].local_rib[prefix] = Route.originate(prefix, asn)


def paths(graph, prefix=NET):
    return {
        node.asn: node.local_rib[prefix].as_path
        for node in graph
        if prefix in node.local_rib
    }


class TestPhases:
    def test_customer_route_reaches_everyone(self, four_node_graph, bgp_everywhere):
        graph = bgp_everywhere(four_node_graph)
        originate(graph, 4)

        PropagationEngine(graph).run()

        assert paths(graph) == {1: (2, 4), 2: (4,), 3: (2, 4), 4: ()}
        assert graph[3].local_rib[NET].recv_relationship is Relationship.PEERS

    def test_loops_are_rejected_not_selected(self, four_node_graph, bgp_everywhere):
        graph = bgp_everywhere(four_node_graph)
        originate(graph, 4)

        engine = PropagationEngine(graph)
        engine.run()

        # B hears its own route back from A, D hears it back from B
        assert engine.rejections == 2

    def test_peer_routes_are_not_sent_to_providers(self, bgp_everywhere):
        # 1 is provider of 2; 2 and 3 peer
        graph = bgp_everywhere(ASGraph.build([(1, 2, -1), (2, 3, 0)]))
        originate(graph, 3)

        PropagationEngine(graph).run()

        assert paths(graph) == {2: (3,), 3: ()}

    def test_provider_routes_are_not_sent_to_peers(self, bgp_everywhere):
        # 1 is provider of 2; 2 and 3 peer
        graph = bgp_everywhere(ASGraph.build([(1, 2, -1), (2, 3, 0)]))
        originate(graph, 1)

        PropagationEngine(graph).run()

        assert paths(graph) == {1: (), 2: (1,)}

    def test_peer_route_beats_provider_route(self, four_node_graph, bgp_everywhere):
        graph = bgp_everywhere(four_node_graph)
        originate(graph, 3)

        PropagationEngine(graph).run()

        assert paths(graph)[2] == (3,)
        assert paths(graph)[4] == (2, 3)

    def test_subprefix_hijack_reaches_customer_via_peer(self, four_node_graph, bgp_everywhere):
        graph = bgp_everywhere(four_node_graph)
        originate(graph, 1, NET)
        originate(graph, 3, SUBNET)

        PropagationEngine(graph).run()

        assert graph[4].local_rib[SUBNET].as_path == (2, 3)
        assert graph[4].local_rib[NET].as_path == (2, 1)
        assert graph[1].local_rib[SUBNET].as_path == (3,)
        assert graph[2].local_rib[SUBNET].recv_relationship is Relationship.PEERS

    def test_queues_are_drained(self, small_internet, bgp_everywhere):
        graph = bgp_everywhere(small_internet)
        originate(graph, 40)

        PropagationEngine(graph).run()

        assert all(not node.recv_queue for node in graph)
        assert len(paths(graph)) == len(graph)

    def test_rerun_after_reset_is_identical(self, small_internet, bgp_everywhere):
        graph = bgp_everywhere(small_internet)
        originate(graph, 30)
        PropagationEngine(graph).run()
        first = graph.rib_snapshot()

        graph.reset_ribs()
        originate(graph, 30)
        PropagationEngine(graph).run()

        assert graph.rib_snapshot() == first


class TestInvariants:
    def test_missing_policy(self, four_node_graph):
        four_node_graph.assign_policies(get_policy(NO_DEFENSE))
        four_node_graph[3].policy = None

        with pytest.raises(MissingPolicyError) as exc_info:
            PropagationEngine(four_node_graph).run()

        assert exc_info.value.asn == 3
        assert isinstance(exc_info.value, EngineError)

    def test_selected_loop_is_an_engine_error(self, four_node_graph):
        class Broken(Policy):
            """Accepts loops and prefers long paths."""

            def import_announcement(self, node, announcement, records):
                return Accept(announcement.route)

            def decision_key(self, route):
                return (-len(route.as_path), route.as_path)

        four_node_graph.assign_policies(Broken("BROKEN"))
        originate(four_node_graph, 4)

        with pytest.raises(LoopDetectedError) as exc_info:
            PropagationEngine(four_node_graph).run()

        assert exc_info.value.asn == 2

    def test_no_rib_entry_contains_its_owner(self, small_internet, bgp_everywhere):
        graph = bgp_everywhere(small_internet)
        originate(graph, 40, NET)
        originate(graph, 34, SUBNET)

        PropagationEngine(graph).run()

        for node in graph:
            for route in node.local_rib.values():
                assert node.asn not in route.as_path
