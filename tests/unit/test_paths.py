"""Tests for dotted/bracket path helpers."""

import pytest

from planningAgent.utils.paths import get_path, parse_path, pick_paths, set_path


def test_parse_path():
    assert parse_path("route.legs[0].amount") == ["route", "legs", 0, "amount"]
    assert parse_path("amount") == ["amount"]


def test_parse_empty_path():
    with pytest.raises(ValueError):
        parse_path("  ")


def test_get_path():
    data = {"route": {"legs": [{"amount": 5}]}}

    assert get_path(data, "route.legs[0].amount") == 5
    with pytest.raises(KeyError):
        get_path(data, "route.legs[3].amount")
    with pytest.raises(KeyError):
        get_path(data, "route.missing")


def test_set_path_creates_containers():
    data = {}

    set_path(data, "route.legs[1].amount", 7)

    assert data == {"route": {"legs": [None, {"amount": 7}]}}


def test_pick_paths_skips_missing():
    data = {"quote": {"amountOut": "42", "fee": 1}, "id": "q1"}

    assert pick_paths(data, ["quote.amountOut", "id", "nope.x"]) == {"quote": {"amountOut": "42"}, "id": "q1"}
