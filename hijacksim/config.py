"""
Run configuration for the hijacksim simulator.

A run is described by a YAML mapping:

    topology: data/20240101.as-rel2.txt
    trials: 10
    seed: 0
    workers: 4
    timeout: null
    attack: subprefix_hijack
    num_attackers: 1
    num_victims: 1
    victim_prefix: 1.2.0.0/16
    attacker_prefix: null
    variants: [ROV, ASPA]
    adoption_percentages: [10, 50, 80]

Every key is optional in the file; ``topology`` must be supplied either
here or on the command line before a run starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from hijacksim.policy.variants import normalise_variant
from hijacksim.routing.prefix import parse_prefix
from hijacksim.scenarios.generator import DEFAULT_VICTIM_PREFIX
from hijacksim.scenarios.scenario import AttackType


@dataclass
class SimulationConfig:
    topology: Path | None = None
    trials: int = 10
    seed: int = 0
    workers: int | None = None
    timeout: float | None = None
    attack: AttackType = AttackType.SUBPREFIX_HIJACK
    num_attackers: int = 1
    num_victims: int = 1
    victim_prefix: str = DEFAULT_VICTIM_PREFIX
    attacker_prefix: str | None = None
    variants: list[str] = field(default_factory=lambda: ["ROV"])
    adoption_percentages: list[float] = field(default_factory=lambda: [10.0, 50.0, 80.0])

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges and normalise names.

        Raises:
            ValueError: with the offending key in the message
        """
        for key in ("trials", "num_victims"):
            if getattr(self, key) < 1:
                raise ValueError(f"'{key}' must be at least 1")
        if self.num_attackers < 1 and self.attack is not AttackType.LEGITIMATE_ONLY:
            raise ValueError("'num_attackers' must be at least 1")
        if self.workers is not None and self.workers < 1:
            raise ValueError("'workers' must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("'timeout' must be positive")

        self.attack = AttackType.parse(self.attack)

        for key in ("victim_prefix", "attacker_prefix"):
            value = getattr(self, key)
            if value is None:
                continue
            try:
                parse_prefix(value)
            except ValueError as exc:
                raise ValueError(f"'{key}': {exc}") from exc

        if not self.variants:
            raise ValueError("'variants' must list at least one policy variant")
        self.variants = [normalise_variant(variant) for variant in self.variants]

        if not self.adoption_percentages:
            raise ValueError("'adoption_percentages' must not be empty")
        for pct in self.adoption_percentages:
            if not 0 <= pct <= 100:
                raise ValueError(f"'adoption_percentages': {pct} is outside 0-100")

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        """
        Copy with every non-None override applied (command-line flags).
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


# key -> accepted YAML types; bool is excluded from numbers explicitly
_TYPES: dict[str, tuple[type, ...]] = {
    "topology": (str,),
    "trials": (int,),
    "seed": (int,),
    "workers": (int,),
    "timeout": (int, float),
    "attack": (str,),
    "num_attackers": (int,),
    "num_victims": (int,),
    "victim_prefix": (str,),
    "attacker_prefix": (str,),
    "variants": (list,),
    "adoption_percentages": (list,),
}


def from_mapping(data: Any, base_dir: Path | None = None) -> SimulationConfig:
    """
    Validate a parsed YAML document into a SimulationConfig.

    Relative topology paths are resolved against ``base_dir``.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Config file must be a YAML mapping (dict)")

    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, _TYPES[key]):
            raise ValueError(f"'{key}' has invalid value {value!r}")
        values[key] = value

    for key in ("variants", "adoption_percentages"):
        items = values.get(key)
        if items is None:
            continue
        item_type = str if key == "variants" else (int, float)
        if any(isinstance(item, bool) or not isinstance(item, item_type) for item in items):
            raise ValueError(f"'{key}' contains an invalid entry: {items!r}")

    if "adoption_percentages" in values:
        values["adoption_percentages"] = [float(pct) for pct in values["adoption_percentages"]]
    if "timeout" in values:
        values["timeout"] = float(values["timeout"])

    if "topology" in values:
        topology = Path(values["topology"])
        if base_dir is not None and not topology.is_absolute():
            topology = base_dir / topology
        values["topology"] = topology

    return SimulationConfig(**values)


def load(path: Path) -> SimulationConfig:
    """
    Load and validate a config file.

    Raises:
        OSError: the file cannot be read
        yaml.YAMLError: the file is not valid YAML
        ValueError: the document is not a valid configuration
    """
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return from_mapping(data, base_dir=path.parent)
