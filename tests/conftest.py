"""Test configuration and fixtures."""

import ipaddress
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hijacksim.policy.variants import NO_DEFENSE, get_policy  # noqa: E402
from hijacksim.topology.as_graph import ASGraph  # noqa: E402

# A is provider of B and C, B and C peer, D is B's customer
A, B, C, D = 1, 2, 3, 4
FOUR_NODE_EDGES = [
    (A, B, -1),
    (A, C, -1),
    (B, C, 0),
    (B, D, -1),
]

#            10 ---- 11            (tier-1 peers)
#           /  \    /  \
#         20    21 22   23
#        /  \   |  |   / \
#       30  31  32 33 34  35
#                \ /
#                 40               (multihomed stub)
SMALL_INTERNET_EDGES = [
    (10, 11, 0),
    (10, 20, -1),
    (10, 21, -1),
    (11, 22, -1),
    (11, 23, -1),
    (20, 30, -1),
    (20, 31, -1),
    (21, 32, -1),
    (22, 33, -1),
    (23, 34, -1),
    (23, 35, -1),
    (32, 40, -1),
    (33, 40, -1),
    (21, 22, 0),
]


def prefix(text: str):
    return ipaddress.ip_network(text)


@pytest.fixture
def four_node_graph() -> ASGraph:
    """The 4-AS topology of the sub-prefix hijack walkthrough."""
    return ASGraph.build(FOUR_NODE_EDGES)


@pytest.fixture
def small_internet() -> ASGraph:
    """Two tier-1s, transit, stubs and one multihomed stub."""
    return ASGraph.build(SMALL_INTERNET_EDGES, tier_1_asns=(10, 11))


@pytest.fixture
def bgp_everywhere():
    """Assign plain BGP to every AS of a graph."""

    def assign(graph: ASGraph) -> ASGraph:
        graph.assign_policies(get_policy(NO_DEFENSE))
        return graph

    return assign


@pytest.fixture
def mock_event_bus(monkeypatch):
    """Mock EventBus for CLI tests."""
    mock_bus = Mock()
    monkeypatch.setattr("hijacksim.cli.EventBus", lambda: mock_bus)
    return mock_bus


@pytest.fixture
def topology_file(tmp_path) -> Path:
    """CAIDA as-rel2 file of the small internet."""
    path = tmp_path / "as-rel2.txt"
    lines = [
        "# source:topology|BGP|20240101|test",
        "# input clique: 10 11",
        "# IXP ASes: 99",
    ]
    lines += [f"{a}|{b}|{rel}|bgp" for a, b, rel in SMALL_INTERNET_EDGES]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path, topology_file) -> Path:
    """Run config pointing at ``topology_file`` by relative path."""
    path = tmp_path / "run.yaml"
    path.write_text(
        "\n".join(
            [
                f"topology: {topology_file.name}",
                "trials: 2",
                "seed: 7",
                "workers: 1",
                "attack: subprefix_hijack",
                "variants: [ROV]",
                "adoption_percentages: [0, 100]",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return path
