"""
Unit tests for hijacksim/routing/records.py
"""
import ipaddress
import pickle

import pytest

from hijacksim.routing.records import (
    ROA,
    AuthorizationRecords,
    HopCheck,
    ROAValidity,
    RouteValidator,
)


def net(text):
    return ipaddress.ip_network(text)


class TestROA:
    def test_max_length_defaults_to_prefix_length(self):
        roa = ROA("10.0.0.0/24", 1)
        assert roa.max_length == 24
        assert roa.prefix == net("10.0.0.0/24")

    def test_max_length_shorter_than_prefix_rejected(self):
        with pytest.raises(ValueError):
            ROA("10.0.0.0/24", 1, max_length=16)

    @pytest.mark.parametrize(
        "prefix, origin, expected",
        [
            ("10.0.0.0/24", 1, ROAValidity.VALID),
            ("10.0.0.0/25", 1, ROAValidity.INVALID_LENGTH),
            ("10.0.0.0/24", 2, ROAValidity.INVALID_ORIGIN),
            ("10.0.0.0/25", 2, ROAValidity.INVALID_LENGTH_AND_ORIGIN),
            ("11.0.0.0/24", 2, ROAValidity.UNKNOWN),
        ],
    )
    def test_validity(self, prefix, origin, expected):
        roa = ROA("10.0.0.0/24", 1)
        assert roa.validity(net(prefix), origin) is expected


class TestRouteValidator:
    def test_unknown_without_covering_roa(self):
        validator = RouteValidator([ROA("10.0.0.0/24", 1)])
        assert validator.validity(net("192.0.2.0/24"), 1) is ROAValidity.UNKNOWN

    def test_any_matching_roa_makes_route_valid(self):
        validator = RouteValidator(
            [ROA("10.0.0.0/16", 2), ROA("10.0.0.0/24", 1)]
        )
        assert validator.validity(net("10.0.0.0/24"), 2) is ROAValidity.INVALID_ORIGIN
        assert validator.validity(net("10.0.0.0/24"), 1) is ROAValidity.VALID

    def test_subprefix_hijack_is_invalid(self):
        validator = RouteValidator([ROA("10.0.0.0/24", 1)])
        assert validator.validity(net("10.0.0.0/25"), 3).is_invalid

    def test_max_length_allows_more_specifics(self):
        validator = RouteValidator([ROA("10.0.0.0/16", 1, max_length=24)])
        assert validator.validity(net("10.0.5.0/24"), 1) is ROAValidity.VALID

    def test_add_roa_invalidates_cache(self):
        validator = RouteValidator()
        assert validator.validity(net("10.0.0.0/24"), 1) is ROAValidity.UNKNOWN

        validator.add_roa(ROA("10.0.0.0/24", 1))
        assert validator.validity(net("10.0.0.0/24"), 1) is ROAValidity.VALID
        assert len(validator) == 1

    def test_survives_pickling(self):
        validator = RouteValidator([ROA("10.0.0.0/24", 1)])
        validator.validity(net("10.0.0.0/24"), 1)

        copy = pickle.loads(pickle.dumps(validator))
        assert copy.validity(net("10.0.0.0/24"), 1) is ROAValidity.VALID
        assert copy.validity(net("10.0.0.0/24"), 2) is ROAValidity.INVALID_ORIGIN


def test_provider_check():
    records = AuthorizationRecords(aspa={5: frozenset({1, 2})})
    assert records.provider_check(5, 1) is HopCheck.PROVIDER
    assert records.provider_check(5, 3) is HopCheck.NOT_PROVIDER
    assert records.provider_check(6, 1) is HopCheck.NO_ATTESTATION
