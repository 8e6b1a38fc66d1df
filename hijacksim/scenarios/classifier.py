"""
Outcome classification of a converged graph.
"""

from __future__ import annotations

from enum import Enum

from hijacksim.routing.prefix import longest_match
from hijacksim.scenarios.scenario import ScenarioState
from hijacksim.topology.as_graph import ASGraph, ASNode


class Outcome(Enum):
    ATTACKER_WINS = "attacker_wins"
    VICTIM_WINS = "victim_wins"
    BLACKHOLED = "blackholed"


def classify_node(node: ASNode, scenario: ScenarioState) -> Outcome:
    """
    Label one AS by the route it would use toward the target prefix.

    Longest-prefix match decides which RIB entry applies, so a
    sub-prefix route beats a covering route whatever their AS-paths.
    A blackhole entry drops the traffic even when a covering route exists.
    """
    if node.asn in scenario.attacker_asns:
        return Outcome.ATTACKER_WINS
    if node.asn in scenario.victim_asns:
        return Outcome.VICTIM_WINS

    prefix = longest_match(scenario.target_prefix, node.local_rib)
    if prefix is None:
        return Outcome.BLACKHOLED

    route = node.local_rib[prefix]
    if route.security.blackhole:
        return Outcome.BLACKHOLED
    if route.origin in scenario.attacker_asns or not scenario.attacker_asns.isdisjoint(
        route.as_path
    ):
        return Outcome.ATTACKER_WINS
    if route.origin in scenario.victim_asns:
        return Outcome.VICTIM_WINS
    return Outcome.BLACKHOLED


def classify(graph: ASGraph, scenario: ScenarioState) -> dict[int, Outcome]:
    """
    Outcome for every AS in the graph.
    """
    return {node.asn: classify_node(node, scenario) for node in graph}
