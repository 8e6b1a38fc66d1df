"""
Attack scenarios and their seeding into an AS graph.

A ScenarioState is drawn fresh for every trial: who the victims and
attackers are, which prefixes they announce, which ASes adopt the
defense under test and which authorisation records exist. ``seed``
applies it to a reset graph before propagation starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from hijacksim.policy.variants import NO_DEFENSE, get_policy
from hijacksim.routing.announcement import Route
from hijacksim.routing.prefix import Prefix, is_more_specific
from hijacksim.routing.records import AuthorizationRecords
from hijacksim.topology.as_graph import ASGraph


class AttackType(Enum):
    PREFIX_HIJACK = "prefix_hijack"
    SUBPREFIX_HIJACK = "subprefix_hijack"
    FORGED_ORIGIN = "forged_origin"
    LEGITIMATE_ONLY = "legitimate_only"

    @classmethod
    def parse(cls, value: "str | AttackType") -> "AttackType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown attack type {value!r}; choose from {choices}") from None


@dataclass
class ScenarioState:
    attack_type: AttackType
    victim_asns: frozenset[int]
    attacker_asns: frozenset[int]
    victim_prefix: Prefix
    attacker_prefix: Prefix | None
    variant: str = NO_DEFENSE
    adoption_percentage: float = 0.0
    adopting_asns: frozenset[int] = frozenset()
    records: AuthorizationRecords = field(default_factory=AuthorizationRecords)
    trial_index: int = 0

    def __post_init__(self) -> None:
        self.victim_asns = frozenset(self.victim_asns)
        self.attacker_asns = frozenset(self.attacker_asns)
        self.adopting_asns = frozenset(self.adopting_asns)

        if not self.victim_asns:
            raise ValueError("Scenario needs at least one victim")
        if self.victim_asns & self.attacker_asns:
            raise ValueError(
                f"ASes {sorted(self.victim_asns & self.attacker_asns)} "
                "cannot be both victim and attacker"
            )

        if self.attack_type is AttackType.LEGITIMATE_ONLY:
            if self.attacker_asns:
                raise ValueError("legitimate_only scenarios have no attackers")
            return

        if not self.attacker_asns:
            raise ValueError(f"{self.attack_type.value} needs at least one attacker")
        if self.attacker_prefix is None:
            raise ValueError(f"{self.attack_type.value} needs an attacker prefix")
        if self.attack_type is AttackType.SUBPREFIX_HIJACK:
            if not is_more_specific(self.attacker_prefix, self.victim_prefix):
                raise ValueError(
                    f"{self.attacker_prefix} is not more specific than {self.victim_prefix}"
                )
        elif self.attacker_prefix != self.victim_prefix:
            raise ValueError(
                f"{self.attack_type.value} must announce the victim prefix "
                f"{self.victim_prefix}, not {self.attacker_prefix}"
            )

    @property
    def target_prefix(self) -> Prefix:
        """
        Most specific announced prefix; what the classifier resolves.
        """
        if self.attacker_prefix is not None and is_more_specific(
            self.attacker_prefix, self.victim_prefix
        ):
            return self.attacker_prefix
        return self.victim_prefix

    def attacker_route(self, asn: int) -> Route:
        if self.attack_type is AttackType.FORGED_ORIGIN:
            # claim a direct adjacency to the lowest-numbered victim
            victim = min(self.victim_asns)
            return Route.originate(self.attacker_prefix, asn, claimed_path=(victim,))
        return Route.originate(self.attacker_prefix, asn)


def seed(graph: ASGraph, scenario: ScenarioState) -> None:
    """
    Assign policies and install the origin routes of a scenario.

    The graph's RIBs must already be reset. Adopters get the scenario's
    variant, every other AS plain BGP. Under a path-signing variant the
    victims sign their announcements, like the records they publish.

    Raises:
        ValueError: a scenario ASN is not in the graph.
    """
    involved = scenario.victim_asns | scenario.attacker_asns | scenario.adopting_asns
    missing = sorted(asn for asn in involved if asn not in graph)
    if missing:
        raise ValueError(f"Scenario ASes {missing} are not in the topology")

    defense = get_policy(scenario.variant)
    graph.assign_policies(
        get_policy(NO_DEFENSE),
        {asn: defense for asn in scenario.adopting_asns},
    )

    for asn in scenario.victim_asns:
        graph[asn].local_rib[scenario.victim_prefix] = Route.originate(
            scenario.victim_prefix, asn, signed=defense.signs_paths
        )

    for asn in scenario.attacker_asns:
        route = scenario.attacker_route(asn)
        graph[asn].local_rib[route.prefix] = route
