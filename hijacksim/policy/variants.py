"""
Named policy variants.

A variant name is either a single mechanism (``"ROV"``) or several joined
with ``+`` (``"ROV+ASPA"``), in which case the checks run in the order
given.
"""

from __future__ import annotations

from functools import lru_cache

from hijacksim.policy.base import Check, Policy
from hijacksim.policy.checks import (
    ASPACheck,
    BGPSecCheck,
    EnforceFirstASCheck,
    OnlyToCustomersCheck,
    PathEndCheck,
    PeerlockLiteCheck,
    PeerROVCheck,
    ROVCheck,
    ROVPPV1LiteCheck,
    ROVPreferenceCheck,
)

NO_DEFENSE = "BGP"

CHECKS: dict[str, type[Check]] = {
    "ROV": ROVCheck,
    "ROV_PREFERENCE": ROVPreferenceCheck,
    "PEER_ROV": PeerROVCheck,
    "ASPA": ASPACheck,
    "PATH_END": PathEndCheck,
    "ENFORCE_FIRST_AS": EnforceFirstASCheck,
    "OTC": OnlyToCustomersCheck,
    "ROVPP_V1_LITE": ROVPPV1LiteCheck,
    "BGPSEC": BGPSecCheck,
    "PEERLOCK_LITE": PeerlockLiteCheck,
}

VARIANT_NAMES = (NO_DEFENSE, *CHECKS)


def normalise_variant(name: str) -> str:
    """
    Canonical spelling of a variant name; raises ValueError if unknown.
    """
    parts = [part.strip().upper().replace("-", "_") for part in name.split("+")]
    if not parts or any(not part for part in parts):
        raise ValueError(f"Malformed policy variant {name!r}")

    unknown = [part for part in parts if part != NO_DEFENSE and part not in CHECKS]
    if unknown:
        raise ValueError(
            f"Unknown policy variant {', '.join(unknown)}; "
            f"choose from {', '.join(VARIANT_NAMES)}"
        )

    parts = [part for part in parts if part != NO_DEFENSE] or [NO_DEFENSE]
    if len(set(parts)) != len(parts):
        raise ValueError(f"Duplicate mechanism in policy variant {name!r}")
    return "+".join(parts)


@lru_cache(maxsize=None)
def get_policy(name: str) -> Policy:
    """
    Shared Policy instance for a variant name.
    """
    canonical = normalise_variant(name)
    if canonical == NO_DEFENSE:
        return Policy(NO_DEFENSE)
    return Policy(canonical, [CHECKS[part]() for part in canonical.split("+")])
