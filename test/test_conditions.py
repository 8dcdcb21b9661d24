# test/test_conditions.py
from datetime import datetime

import pytest

from crudforge.core.errors import FieldNotAllowedError, InvalidParameterError, UnsupportedOperatorError
from crudforge.core.introspection import build_descriptor
from crudforge.core.query import Condition, OperatorKind, parse_conditions

from conftest import User

USER = build_descriptor(User)


def test_double_underscore_operator_types_the_value():
    assert parse_conditions({"age__gt": "20"}, USER) == [Condition("age", OperatorKind.GT, 20)]


def test_in_splits_and_types_values():
    assert parse_conditions({"status__in": "1,2,3"}, USER) == [
        Condition("status", OperatorKind.IN, [1, 2, 3])
    ]


def test_unknown_operator_names_the_parameter():
    with pytest.raises(UnsupportedOperatorError) as exc_info:
        parse_conditions({"foo__bogus": "1"})
    assert "foo__bogus" in str(exc_info.value)
    assert exc_info.value.parameter == "foo__bogus"


def test_operator_is_checked_before_the_field():
    with pytest.raises(UnsupportedOperatorError):
        parse_conditions({"nope__bogus": "1"}, USER, allowed=["name"])


def test_no_operator_means_eq():
    assert parse_conditions({"name": "bob"}, USER) == [Condition("name", OperatorKind.EQ, "bob")]


@pytest.mark.parametrize(
    "param, operator",
    [
        ("age__gte", OperatorKind.GE),
        ("age__lte", OperatorKind.LE),
        ("age__neq", OperatorKind.NE),
        ("age__ne", OperatorKind.NE),
        ("age__notin", OperatorKind.NOT_IN),
        ("age__not_in", OperatorKind.NOT_IN),
        ("age_gte", OperatorKind.GE),
        ("age_lt", OperatorKind.LT),
        ("age_in", OperatorKind.IN),
        ("age_not_in", OperatorKind.NOT_IN),
        ("age__starts", OperatorKind.STARTS),
        ("age__startswith", OperatorKind.STARTS),
        ("age__endswith", OperatorKind.ENDS),
        ("age_ends", OperatorKind.ENDS),
    ],
)
def test_operator_spellings(param, operator):
    (condition,) = parse_conditions({param: "5"}, USER)
    assert condition.field == "age"
    assert condition.operator is operator


def test_suffix_splits_on_known_prefix():
    # splits because "name" is a field and "name_like" is not
    (condition,) = parse_conditions({"name_like": "ab"}, USER)
    assert condition == Condition("name", OperatorKind.LIKE, "ab")


def test_like_value_stays_text():
    (condition,) = parse_conditions({"age__like": "4"}, USER)
    assert condition.value == "4"


def test_prefix_and_suffix_values_stay_text():
    assert parse_conditions({"age__starts": "4", "name__ends": "7"}, USER) == [
        Condition("age", OperatorKind.STARTS, "4"),
        Condition("name", OperatorKind.ENDS, "7"),
    ]


def test_datetime_values_are_converted():
    (condition,) = parse_conditions({"created_at__ge": "2024-01-02T03:04:05Z"}, USER)
    assert isinstance(condition.value, datetime)
    assert condition.value.year == 2024


def test_reserved_parameters_are_skipped():
    params = {"page": "2", "size": "5", "pageNum": "1", "pageSize": "3", "sort": "-age", "orderBy": "id"}
    assert parse_conditions(params, USER) == []


def test_empty_in_list_is_rejected():
    with pytest.raises(InvalidParameterError):
        parse_conditions({"status__in": " , ,"}, USER)


def test_empty_tokens_are_dropped():
    (condition,) = parse_conditions({"status__in": "1,,2, "}, USER)
    assert condition.value == [1, 2]


def test_unconvertible_value_is_rejected():
    with pytest.raises(InvalidParameterError):
        parse_conditions({"age__gt": "old"}, USER)


def test_field_outside_allow_list_is_rejected():
    with pytest.raises(FieldNotAllowedError):
        parse_conditions({"password": "x"}, USER, allowed=["name", "age"])


def test_unknown_fields_are_ignored_with_a_descriptor():
    assert parse_conditions({"token": "abc", "age": "3"}, USER) == [Condition("age", OperatorKind.EQ, 3)]


def test_without_descriptor_numbers_are_inferred():
    conditions = parse_conditions([("a", "1"), ("b__lt", "2.5"), ("c_like", "x")])
    assert conditions == [
        Condition("a", OperatorKind.EQ, 1),
        Condition("b", OperatorKind.LT, 2.5),
        Condition("c", OperatorKind.LIKE, "x"),
    ]


def test_order_follows_parameters():
    conditions = parse_conditions([("status", "1"), ("age__gt", "2"), ("name", "z")], USER)
    assert [c.field for c in conditions] == ["status", "age", "name"]


def test_parsing_is_all_or_nothing():
    with pytest.raises(UnsupportedOperatorError):
        parse_conditions([("age", "1"), ("name__weird", "x")], USER)
