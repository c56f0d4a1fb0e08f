"""
Tests for the exclusive dispatch table.
"""

import pytest

from cqrs_sync.core.dispatch import (
    DispatchTable,
    HttpResponse,
    Rule,
    describe_response,
    is_network_error,
    is_server_error,
    is_success,
    status_in,
)
from cqrs_sync.core.errors import AmbiguousRules, DuplicateRule, NoMatchingRule


class TestDispatch:
    """Exactly-one-match semantics."""

    @pytest.fixture
    def table(self):
        table = DispatchTable()
        table.register(Rule("negative", lambda n: n < 0, lambda n: "neg"))
        table.register(Rule("zero", lambda n: n == 0, lambda n: "zero"))
        table.register(Rule("positive", lambda n: n > 0, lambda n: n * 10))
        return table

    def test_single_match_returns_action_result(self, table):
        assert table.dispatch(-3) == "neg"
        assert table.dispatch(0) == "zero"
        assert table.dispatch(4) == 40

    def test_no_match_raises(self):
        table = DispatchTable()
        table.register(Rule("even", lambda n: n % 2 == 0, lambda n: n))

        with pytest.raises(NoMatchingRule) as exc_info:
            table.dispatch(7)

        assert exc_info.value.rendered_input == "7"
        assert "7" in str(exc_info.value)

    def test_overlapping_rules_raise_naming_every_match(self):
        table = DispatchTable()
        table.register(Rule("big", lambda n: n > 10, lambda n: "big"))
        table.register(Rule("even", lambda n: n % 2 == 0, lambda n: "even"))
        table.register(Rule("odd", lambda n: n % 2 == 1, lambda n: "odd"))

        with pytest.raises(AmbiguousRules) as exc_info:
            table.dispatch(12)

        assert exc_info.value.rule_names == ["big", "even"]
        assert "big, even" in str(exc_info.value)

    def test_ambiguity_is_checked_before_any_action_runs(self):
        calls = []
        table = DispatchTable()
        table.register(Rule("a", lambda n: True, calls.append))
        table.register(Rule("b", lambda n: True, calls.append))

        with pytest.raises(AmbiguousRules):
            table.dispatch(1)

        assert calls == []

    def test_registration_order_does_not_matter(self):
        forward = DispatchTable()
        backward = DispatchTable()
        rules = [
            Rule("low", lambda n: n < 5, lambda n: "low"),
            Rule("high", lambda n: n >= 5, lambda n: "high"),
        ]
        for rule in rules:
            forward.register(rule)
        for rule in reversed(rules):
            backward.register(rule)

        for n in range(10):
            assert forward.dispatch(n) == backward.dispatch(n)

    def test_custom_describe_used_in_errors(self):
        table = DispatchTable(describe=lambda n: f"<number {n}>")

        with pytest.raises(NoMatchingRule, match="<number 3>"):
            table.dispatch(3)


class TestRegistration:

    def test_duplicate_name_rejected(self):
        table = DispatchTable()
        table.register(Rule("same", lambda n: n == 1, lambda n: 1))

        with pytest.raises(DuplicateRule):
            table.register(Rule("same", lambda n: n == 2, lambda n: 2))

        assert table.rule_names == ["same"]

    def test_rule_requires_name_and_callables(self):
        with pytest.raises(ValueError):
            Rule("", lambda n: True, lambda n: n)
        with pytest.raises(ValueError):
            Rule("x", None, lambda n: n)
        with pytest.raises(ValueError):
            Rule("x", lambda n: True, "not callable")


class TestResponsePredicates:
    """The shared predicates partition transport/success/server outcomes."""

    def test_network_error_excludes_status_predicates(self):
        response = HttpResponse(ConnectionError("down"), "/x", None)

        assert is_network_error(response)
        assert not is_success(response)
        assert not is_server_error(response)

    def test_status_ranges(self):
        assert is_success(HttpResponse(None, "/x", 200))
        assert is_success(HttpResponse(None, "/x", 204))
        assert not is_success(HttpResponse(None, "/x", 302))
        assert is_server_error(HttpResponse(None, "/x", 500))
        assert is_server_error(HttpResponse(None, "/x", 599))
        assert not is_server_error(HttpResponse(None, "/x", 404))

    def test_status_in(self):
        predicate = status_in({204, 400})

        assert predicate(HttpResponse(None, "/x", 400))
        assert not predicate(HttpResponse(None, "/x", 200))
        assert not predicate(HttpResponse(ValueError(), "/x", 400))

    def test_field_and_header_access(self):
        response = HttpResponse(None, "/x", 302, {"Location": "/events/1"}, ["not", "a", "dict"])

        assert response.field("next") is None
        assert response.header("location") == "/events/1"
        assert HttpResponse(None, "/x", 200).header("location") is None

    def test_describe_response(self):
        rendered = describe_response(HttpResponse(None, "/e/1", 200, {"a": "b"}, {"next": "/e/2"}))

        assert rendered == '{err: None, uri: /e/1, status: 200, headers: {"a": "b"}, body: {"next": "/e/2"}}'
