"""
Unit tests for hijacksim/policy/variants.py
"""
import ipaddress

import pytest

from hijacksim.policy.checks import ASPACheck, PathEndCheck, ROVCheck
from hijacksim.policy.variants import NO_DEFENSE, VARIANT_NAMES, get_policy, normalise_variant
from hijacksim.routing.announcement import Announcement, Route
from hijacksim.routing.records import ROA, AuthorizationRecords, RouteValidator
from hijacksim.routing.relationships import Relationship


@pytest.mark.parametrize(
    "name, expected",
    [
        ("rov", "ROV"),
        ("  aspa ", "ASPA"),
        ("rov+aspa", "ROV+ASPA"),
        ("path-end", "PATH_END"),
        ("BGP", NO_DEFENSE),
        ("bgp+rov", "ROV"),
    ],
)
def test_normalise_variant(name, expected):
    assert normalise_variant(name) == expected


@pytest.mark.parametrize("name", ["RPKI", "ROV+", "", "ROV+ROV"])
def test_normalise_variant_rejects(name):
    with pytest.raises(ValueError):
        normalise_variant(name)


def test_variant_names_include_every_mechanism():
    assert VARIANT_NAMES[0] == NO_DEFENSE
    assert {"ROV", "ASPA", "PATH_END", "OTC", "ROV_PREFERENCE", "PEER_ROV"} <= set(VARIANT_NAMES)
    assert {"ROVPP_V1_LITE", "BGPSEC", "PEERLOCK_LITE"} <= set(VARIANT_NAMES)


def test_no_defense_has_no_checks():
    assert get_policy("bgp").checks == ()


def test_combination_keeps_order():
    policy = get_policy("ASPA+ROV+PATH_END")
    assert [type(check) for check in policy.checks] == [ASPACheck, ROVCheck, PathEndCheck]
    assert policy.name == "ASPA+ROV+PATH_END"


def test_policies_are_shared():
    assert get_policy("rov") is get_policy("ROV")


def test_combination_is_logical_and(four_node_graph):
    net = ipaddress.ip_network("10.0.0.0/24")
    records = AuthorizationRecords(
        route_validator=RouteValidator([ROA(net, 1)]),
        path_end={1: frozenset({10})},
    )
    node = four_node_graph[2]

    # ROV-valid but the adjacency to the origin is forged
    forged = Route(net, (7, 1), 1, Relationship.CUSTOMERS, 7)
    announcement = Announcement(forged, 7, 2)

    assert get_policy("ROV").import_announcement(node, announcement, records).accepted
    assert not get_policy("PATH_END").import_announcement(node, announcement, records).accepted
    assert not get_policy("ROV+PATH_END").import_announcement(node, announcement, records).accepted
