"""Tests for status-code to error-factory resolution."""

from ClientRuntime.HttpAdapter.error_mapping import class_selector, is_success, resolve_error_factory


def _factory(name):
    def _make(node):
        return name

    return _make


def test_exact_code_preferred():
    mapping = {"404": _factory("exact"), "4XX": _factory("class"), "XXX": _factory("any")}
    assert resolve_error_factory(mapping, 404)(None) == "exact"


def test_class_before_catch_all():
    mapping = {"4XX": _factory("class"), "XXX": _factory("any")}
    assert resolve_error_factory(mapping, 418)(None) == "class"
    assert resolve_error_factory(mapping, 503)(None) == "any"


def test_no_match():
    assert resolve_error_factory({"5XX": _factory("server")}, 404) is None
    assert resolve_error_factory(None, 500) is None
    assert resolve_error_factory({}, 500) is None


def test_helpers():
    assert class_selector(503) == "5XX"
    assert is_success(200) and is_success(299)
    assert not is_success(300)
