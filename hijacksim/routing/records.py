"""
Origin and path authorization records.

These stand in for an RPKI registry snapshot. Policies consume them
read-only during a trial:

- ROAs authorise an origin AS for a prefix (up to a maximum length)
- ASPA records list the providers a customer AS has authorised
- Path-End records list the ASes an origin AS is adjacent to
- the tier-1 clique is public knowledge that Peerlock-style filters use
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache

from hijacksim.routing.prefix import Prefix, covers, parse_prefix


class ROAValidity(Enum):
    VALID = "valid"
    UNKNOWN = "unknown"
    INVALID_LENGTH = "invalid_length"
    INVALID_ORIGIN = "invalid_origin"
    INVALID_LENGTH_AND_ORIGIN = "invalid_length_and_origin"

    @property
    def is_invalid(self) -> bool:
        return self not in (ROAValidity.VALID, ROAValidity.UNKNOWN)


class ASPAValidity(Enum):
    VALID = "valid"
    UNKNOWN = "unknown"


class HopCheck(Enum):
    """Result of asking whether one AS is an authorised provider of another."""

    PROVIDER = "provider"
    NOT_PROVIDER = "not_provider"
    NO_ATTESTATION = "no_attestation"


@dataclass(frozen=True)
class ROA:
    prefix: Prefix
    origin: int
    max_length: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "prefix", parse_prefix(self.prefix))
        if self.max_length is None:
            object.__setattr__(self, "max_length", self.prefix.prefixlen)
        if self.max_length < self.prefix.prefixlen:
            raise ValueError(
                f"ROA max_length {self.max_length} shorter than {self.prefix}"
            )

    def covers_prefix(self, prefix: Prefix) -> bool:
        return covers(self.prefix, prefix)

    def validity(self, prefix: Prefix, origin: int) -> ROAValidity:
        if not self.covers_prefix(prefix):
            return ROAValidity.UNKNOWN

        valid_length = prefix.prefixlen <= self.max_length
        valid_origin = origin == self.origin

        if valid_length and valid_origin:
            return ROAValidity.VALID
        if valid_origin:
            return ROAValidity.INVALID_LENGTH
        if valid_length:
            return ROAValidity.INVALID_ORIGIN
        return ROAValidity.INVALID_LENGTH_AND_ORIGIN


class RouteValidator:
    """
    Route origin validation against a set of ROAs.

    ROAs are indexed by exact prefix; a lookup walks the supernets of the
    queried prefix, so cost is bounded by the address length rather than
    by the number of ROAs. Outcomes are memoised in a bounded LRU cache
    that is purely a performance aid: it is rebuilt whenever ROAs change.
    """

    def __init__(self, roas: Iterable[ROA] = (), cache_size: int = 10_000) -> None:
        self._roas: dict[Prefix, list[ROA]] = {}
        self._cache_size = cache_size
        for roa in roas:
            self._roas.setdefault(roa.prefix, []).append(roa)
        self._reset_cache()

    def _reset_cache(self) -> None:
        self._cached_validity = lru_cache(maxsize=self._cache_size)(self._validity)

    def add_roa(self, roa: ROA) -> None:
        self._roas.setdefault(roa.prefix, []).append(roa)
        self._reset_cache()

    def __len__(self) -> int:
        return sum(len(roas) for roas in self._roas.values())

    def covering_roas(self, prefix: Prefix) -> list[ROA]:
        found: list[ROA] = []
        for length in range(prefix.prefixlen, -1, -1):
            found.extend(self._roas.get(prefix.supernet(new_prefix=length), ()))
        return found

    def validity(self, prefix: Prefix, origin: int) -> ROAValidity:
        """
        Validate ``origin`` for ``prefix``.

        VALID if any covering ROA matches; UNKNOWN if none covers;
        otherwise the invalid reason of the first covering ROA, most
        specific first.
        """
        return self._cached_validity(prefix, origin)

    def _validity(self, prefix: Prefix, origin: int) -> ROAValidity:
        roas = self.covering_roas(prefix)
        if not roas:
            return ROAValidity.UNKNOWN

        outcomes = [roa.validity(prefix, origin) for roa in roas]
        if ROAValidity.VALID in outcomes:
            return ROAValidity.VALID
        return outcomes[0]

    def __getstate__(self):
        state = self.__dict__.copy()
        del state["_cached_validity"]
        return state

    def __setstate__(self, state) -> None:
        self.__dict__.update(state)
        self._reset_cache()


@dataclass
class AuthorizationRecords:
    """
    Everything a policy may consult about authorisation, for one trial.
    """

    route_validator: RouteValidator = field(default_factory=RouteValidator)
    aspa: Mapping[int, frozenset[int]] = field(default_factory=dict)
    path_end: Mapping[int, frozenset[int]] = field(default_factory=dict)
    tier_1: frozenset[int] = frozenset()

    def provider_check(self, customer: int, provider: int) -> HopCheck:
        """
        Is ``provider`` an authorised provider of ``customer``?
        """
        providers = self.aspa.get(customer)
        if providers is None:
            return HopCheck.NO_ATTESTATION
        if provider in providers:
            return HopCheck.PROVIDER
        return HopCheck.NOT_PROVIDER
