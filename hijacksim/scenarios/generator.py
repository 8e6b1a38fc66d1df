"""
Randomised scenario generation.

Every draw is a pure function of (seed, trial index, percentage), so a
batch of trials is reproducible and every policy variant at a given
trial index faces the same attacker and victim placement.
"""

from __future__ import annotations

import random

from hijacksim.policy.variants import normalise_variant
from hijacksim.routing.prefix import Prefix, first_half, is_more_specific, parse_prefix
from hijacksim.routing.records import ROA, AuthorizationRecords, RouteValidator
from hijacksim.scenarios.scenario import AttackType, ScenarioState
from hijacksim.topology.as_graph import ASGraph

DEFAULT_VICTIM_PREFIX = "1.2.0.0/16"


class ScenarioGenerator:
    """
    Draws ScenarioState values for one topology and attack type.
    """

    def __init__(
        self,
        graph: ASGraph,
        attack_type: AttackType | str = AttackType.SUBPREFIX_HIJACK,
        num_attackers: int = 1,
        num_victims: int = 1,
        victim_prefix: str | Prefix = DEFAULT_VICTIM_PREFIX,
        attacker_prefix: str | Prefix | None = None,
    ):
        """
        Args:
            graph: Topology the scenarios are placed on
            attack_type: Kind of hijack to simulate
            num_attackers: Attacker ASes per trial (ignored for legitimate_only)
            num_victims: Legitimate origin ASes per trial
            victim_prefix: Prefix the victims originate
            attacker_prefix: Prefix the attackers originate; defaults to the
                victim prefix, or its lower half for sub-prefix hijacks
        """
        self.graph = graph
        self.attack_type = AttackType.parse(attack_type)
        self.num_victims = num_victims
        self.num_attackers = (
            0 if self.attack_type is AttackType.LEGITIMATE_ONLY else num_attackers
        )
        self.victim_prefix = parse_prefix(victim_prefix)

        if self.attack_type is AttackType.LEGITIMATE_ONLY:
            self.attacker_prefix = None
        elif attacker_prefix is not None:
            self.attacker_prefix = parse_prefix(attacker_prefix)
        elif self.attack_type is AttackType.SUBPREFIX_HIJACK:
            self.attacker_prefix = first_half(self.victim_prefix)
        else:
            self.attacker_prefix = self.victim_prefix

        if self.attack_type is AttackType.SUBPREFIX_HIJACK:
            if not is_more_specific(self.attacker_prefix, self.victim_prefix):
                raise ValueError(
                    f"{self.attacker_prefix} is not more specific than {self.victim_prefix}"
                )
        elif self.attacker_prefix not in (None, self.victim_prefix):
            raise ValueError(
                f"{self.attack_type.value} must announce the victim prefix "
                f"{self.victim_prefix}"
            )

        if num_victims < 1:
            raise ValueError("num_victims must be at least 1")
        if self.attack_type is not AttackType.LEGITIMATE_ONLY and num_attackers < 1:
            raise ValueError("num_attackers must be at least 1")

        # Attackers and victims are stubs, like most real hijackers and
        # hijacked origins; tiny graphs fall back to every AS.
        candidates = sorted(graph.stubs())
        if len(candidates) < self.num_victims + self.num_attackers:
            candidates = sorted(graph.asns)
        if len(candidates) < self.num_victims + self.num_attackers:
            raise ValueError(
                f"Topology has {len(candidates)} ASes, need at least "
                f"{self.num_victims + self.num_attackers}"
            )
        self._placement_pool = candidates
        self._all_asns = sorted(graph.asns)
        self._tier_1 = frozenset(node.asn for node in graph if node.tier_1)

    def draw(
        self,
        variant: str,
        percentage: float,
        trial_index: int,
        seed: int = 0,
    ) -> ScenarioState:
        """
        Build the scenario for one trial.
        """
        placement_rng = random.Random(f"{seed}:{trial_index}")
        chosen = placement_rng.sample(
            self._placement_pool, self.num_victims + self.num_attackers
        )
        victims = frozenset(chosen[: self.num_victims])
        attackers = frozenset(chosen[self.num_victims :])

        adopters = self._draw_adopters(
            victims | attackers, percentage, random.Random(f"{seed}:{trial_index}:{percentage}")
        )

        return ScenarioState(
            attack_type=self.attack_type,
            victim_asns=victims,
            attacker_asns=attackers,
            victim_prefix=self.victim_prefix,
            attacker_prefix=self.attacker_prefix,
            variant=normalise_variant(variant),
            adoption_percentage=percentage,
            adopting_asns=adopters,
            records=self._build_records(victims, adopters),
            trial_index=trial_index,
        )

    def _draw_adopters(
        self, excluded: frozenset[int], percentage: float, rng: random.Random
    ) -> frozenset[int]:
        if not 0 <= percentage <= 100:
            raise ValueError(f"Adoption percentage {percentage} outside 0-100")

        eligible = [asn for asn in self._all_asns if asn not in excluded]
        count = round(len(eligible) * percentage / 100)
        return frozenset(rng.sample(eligible, count))

    def _build_records(
        self, victims: frozenset[int], adopters: frozenset[int]
    ) -> AuthorizationRecords:
        """
        Victims register ROAs for their prefix. Victims and adopters
        publish ASPA and Path-End records matching the topology. The
        tier-1 clique is known to everyone.
        """
        validator = RouteValidator(
            ROA(self.victim_prefix, asn, self.victim_prefix.prefixlen)
            for asn in sorted(victims)
        )

        publishers = victims | adopters
        aspa = {}
        path_end = {}
        for asn in publishers:
            node = self.graph[asn]
            aspa[asn] = frozenset(node.providers)
            path_end[asn] = frozenset(node.providers + node.customers + node.peers)

        return AuthorizationRecords(
            route_validator=validator,
            aspa=aspa,
            path_end=path_end,
            tier_1=self._tier_1,
        )
