"""
Tests for property filter chains.
"""

from datetime import date

import pytest

from respace.filters import (
    Connector,
    Filter,
    evaluate,
    filter_items,
    matches,
    parse_filter,
    parse_filter_chain,
    stringify,
)
from respace.types import ReviewItem

AND, OR = Connector.AND, Connector.OR

WORK = {"tag": ["work", "urgent"], "status": "active"}
PERSONAL = {"tag": ["personal"], "status": "active"}
SCALAR_WORK = {"tag": "work", "status": "paused"}


class TestMatches:

    def test_list_membership(self):
        assert matches(WORK, Filter("tag", "urgent"))
        assert not matches(WORK, Filter("tag", "urg"))

    def test_list_membership_is_exact(self):
        """Elements are compared as-is, without stringifying."""
        assert not matches({"priority": [1, 2]}, Filter("priority", "1"))

    def test_scalar_equality(self):
        assert matches(SCALAR_WORK, Filter("tag", "work"))
        assert not matches(SCALAR_WORK, Filter("tag", "Work"))

    def test_numbers_and_booleans_stringified(self):
        props = {"priority": 3, "weight": 2.0, "done": False}
        assert matches(props, Filter("priority", "3"))
        assert matches(props, Filter("weight", "2"))
        assert matches(props, Filter("done", "false"))

    def test_missing_or_null(self):
        assert not matches({}, Filter("tag", "work"))
        assert not matches({"tag": None}, Filter("tag", "None"))

    def test_stringify_date(self):
        assert stringify(date(2026, 3, 10)) == "2026-03-10"


class TestEvaluate:

    def test_single_filter(self):
        chain = [Filter("tag", "work", AND)]
        assert evaluate(WORK, chain)
        assert evaluate(SCALAR_WORK, chain)
        assert not evaluate(PERSONAL, chain)

    def test_and_requires_both(self):
        chain = [Filter("tag", "work", AND), Filter("status", "active", AND)]
        assert evaluate(WORK, chain)
        assert not evaluate(SCALAR_WORK, chain)
        assert not evaluate(PERSONAL, chain)

    def test_or_admits_either_when_first_matches(self):
        chain = [Filter("tag", "work", AND), Filter("tag", "personal", OR)]
        assert evaluate(WORK, chain)
        assert evaluate(WORK, chain, short_circuit=False)

    def test_failed_and_is_final_by_default(self):
        """A failed first AND ends evaluation; the OR is never consulted."""
        chain = [Filter("tag", "work", AND), Filter("tag", "personal", OR)]
        assert evaluate(PERSONAL, chain) is False

    def test_full_fold_lets_or_readmit(self):
        chain = [Filter("tag", "work", AND), Filter("tag", "personal", OR)]
        assert evaluate(PERSONAL, chain, short_circuit=False) is True

    def test_or_after_failed_and_later_in_chain(self):
        chain = [
            Filter("status", "active", AND),
            Filter("tag", "work", AND),
            Filter("tag", "personal", OR),
        ]
        assert evaluate(PERSONAL, chain) is False
        assert evaluate(PERSONAL, chain, short_circuit=False) is True

    def test_or_failure_does_not_stop(self):
        chain = [
            Filter("tag", "none", AND),
            Filter("tag", "other", OR),
        ]
        assert evaluate(WORK, chain, short_circuit=False) is False

    def test_left_to_right_fold(self):
        """(work OR personal) AND paused, not work OR (personal AND paused)."""
        chain = [
            Filter("tag", "work", AND),
            Filter("tag", "personal", OR),
            Filter("status", "paused", AND),
        ]
        assert evaluate(SCALAR_WORK, chain)
        assert not evaluate(WORK, chain)

    def test_empty_chain_passes(self):
        assert evaluate(WORK, [])
        assert evaluate(None, [])

    def test_no_properties_fails(self):
        assert not evaluate(None, [Filter("tag", "work")])
        assert not evaluate(None, [Filter("tag", "work")], short_circuit=False)


class TestFilterItems:

    def test_narrows_and_keeps_order(self):
        props = {"a.md": WORK, "b.md": PERSONAL, "c.md": SCALAR_WORK, "d.md": None}
        items = [ReviewItem(path=p) for p in ("c.md", "b.md", "a.md", "d.md")]
        result = filter_items(items, props.get, [Filter("tag", "work")])
        assert [i.path for i in result] == ["c.md", "a.md"]

    def test_no_chain_returns_everything(self):
        items = [ReviewItem(path="a.md")]
        assert filter_items(items, lambda p: None, []) == items


class TestParse:

    def test_plain(self):
        assert parse_filter("tag=work") == Filter("tag", "work", AND)

    def test_connectors(self):
        assert parse_filter("or:tag=personal") == Filter("tag", "personal", OR)
        assert parse_filter("AND: status = active") == Filter("status", "active", AND)

    def test_value_may_contain_equals_and_colon(self):
        assert parse_filter("url=http://x?a=b") == Filter("url", "http://x?a=b", AND)

    def test_chain_starts_with_and(self):
        chain = parse_filter_chain(["or:tag=work", "or:tag=personal"])
        assert [f.connector for f in chain] == [AND, OR]

    @pytest.mark.parametrize("expr", ["tag", "=work", "or:tag"])
    def test_invalid(self, expr):
        with pytest.raises(ValueError):
            parse_filter(expr)

    def test_empty_chain(self):
        assert parse_filter_chain(None) == []
