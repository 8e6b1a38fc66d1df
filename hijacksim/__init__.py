"""
hijacksim: AS-level BGP hijack simulator core package.

Measures how route-origin validation, ASPA, Path-End and Only-to-Customer
hold up against prefix, sub-prefix and forged-origin hijacks at varying
adoption levels. The package provides:
- ASGraph (topology and per-AS routing state)
- PropagationEngine (three-phase, rank-ordered propagation)
- ScenarioGenerator and classify (trial set-up and outcome labels)
- TrialRunner (parallel trials and aggregated statistics)
"""

from hijacksim.engine.event_bus import EventBus
from hijacksim.engine.propagation_engine import PropagationEngine
from hijacksim.engine.trial_runner import AdoptionConfig, TrialRunner
from hijacksim.scenarios.classifier import Outcome, classify
from hijacksim.scenarios.generator import ScenarioGenerator
from hijacksim.topology.as_graph import ASGraph
