# hijacksim/policy/__init__.py
from .base import Accept, Check, ImportResult, Policy, Reject
from .checks import (
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
from .variants import NO_DEFENSE, VARIANT_NAMES, get_policy, normalise_variant

__all__ = [
    "Accept",
    "Check",
    "ImportResult",
    "Policy",
    "Reject",
    "ASPACheck",
    "BGPSecCheck",
    "EnforceFirstASCheck",
    "OnlyToCustomersCheck",
    "PathEndCheck",
    "PeerlockLiteCheck",
    "PeerROVCheck",
    "ROVCheck",
    "ROVPPV1LiteCheck",
    "ROVPreferenceCheck",
    "NO_DEFENSE",
    "VARIANT_NAMES",
    "get_policy",
    "normalise_variant",
]
