# test/test_access.py
from crudforge.core.access import FieldAccessSpec, allowed_fields, filter_fields, route_fields

DATA = {"id": 7, "name": "n", "status": 1, "secret": "s"}


def test_empty_allow_keeps_everything_but_excluded():
    spec = FieldAccessSpec(exclude={"secret"})
    assert filter_fields(DATA, spec) == {"id": 7, "name": "n", "status": 1}


def test_allow_list_intersects():
    spec = FieldAccessSpec(allow={"name", "status", "missing"})
    assert filter_fields(DATA, spec) == {"name": "n", "status": 1}


def test_exclude_wins_over_allow():
    spec = FieldAccessSpec(allow={"name", "status"}, exclude={"status"})
    assert filter_fields(DATA, spec) == {"name": "n"}


def test_universe_drops_unknown_keys():
    result = filter_fields(DATA, FieldAccessSpec(), universe=["id", "name", "status"])
    assert "secret" not in result


def test_filter_is_idempotent():
    spec = FieldAccessSpec(allow={"name", "secret"}, exclude={"secret"})
    once = filter_fields(DATA, spec, universe=DATA.keys())
    assert filter_fields(once, spec, universe=DATA.keys()) == once


def test_allowed_fields_keeps_universe_order():
    spec = FieldAccessSpec(exclude={"status"})
    assert allowed_fields(spec, ["id", "name", "status", "age"]) == ["id", "name", "age"]


def test_spec_helpers_return_new_specs():
    spec = FieldAccessSpec(allow={"a"})
    assert spec.with_exclude("b").exclude == frozenset({"b"})
    assert spec.with_allow(None) is spec
    assert spec.with_allow(["c"]).allow == frozenset({"c"})
    assert spec.allow == frozenset({"a"})


def test_route_allow_list_replaces_allow_but_keeps_exclude():
    spec = FieldAccessSpec(allow={"name"}, exclude={"secret"})
    universe = ["id", "name", "status", "secret"]
    assert route_fields(spec, ["status", "secret", "id"], universe) == ["id", "status"]
    assert route_fields(spec, None, universe) == ["name"]
    assert route_fields(spec, [], universe) == []
