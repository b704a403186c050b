import pytest

from nodeprovision.functional import (
    MultiError,
    contains_string,
    has_any_prefix,
    intersect_string_slice,
    invert_string_map,
    string_slice_without,
    union_string_maps,
    unique_strings,
    validate_all,
)

EMPTY = {}
ORIGINAL = {"a": "b", "c": "d"}
OVERWRITER = {"a": "y", "c": "z"}
DISJOINER = {"d": "y", "e": "z"}
UBERWRITER = {"d": "q", "e": "z"}


def test_union_no_args_returns_empty():
    assert union_string_maps() == {}


def test_union_multiple_empty_returns_empty():
    assert union_string_maps(EMPTY, EMPTY, EMPTY, EMPTY) == {}


def test_union_one_arg_returns_the_arg():
    assert union_string_maps(ORIGINAL) == ORIGINAL


def test_union_second_overrides_first():
    assert union_string_maps(ORIGINAL, OVERWRITER) == OVERWRITER


def test_union_disjoint():
    assert union_string_maps(ORIGINAL, DISJOINER) == {"a": "b", "c": "d", "d": "y", "e": "z"}


def test_union_final_arg_takes_precedence():
    assert union_string_maps(ORIGINAL, DISJOINER, EMPTY, UBERWRITER) == {
        "a": "b",
        "c": "d",
        "d": "q",
        "e": "z",
    }


def test_union_does_not_mutate_inputs():
    union_string_maps(ORIGINAL, OVERWRITER)
    assert ORIGINAL == {"a": "b", "c": "d"}


def test_string_slice_without():
    assert string_slice_without(["a", "b", "a", "c"], "a") == ["b", "c"]
    assert string_slice_without([], "a") == []


def test_unique_strings_keeps_first_order():
    assert unique_strings(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_intersect_string_slice():
    result = intersect_string_slice(["z1", "z2", "z3"], ["z2", "z3", "z3"], ["z3", "z2"])
    assert sorted(result) == ["z2", "z3"]


def test_intersect_disjoint_is_empty():
    assert intersect_string_slice(["a"], ["b"]) == []


def test_intersect_no_slices_is_empty():
    assert intersect_string_slice() == []


def test_contains_string():
    assert contains_string(["a", "b"], "b") is True
    assert contains_string(["a", "b"], "c") is False


def test_validate_all_passes():
    calls = []
    assert validate_all(lambda: calls.append(1), lambda: calls.append(2)) is None
    assert calls == [1, 2]


def test_validate_all_single_failure_is_raised_as_is():
    def fail():
        raise ValueError("bad zone")

    with pytest.raises(ValueError, match="bad zone"):
        validate_all(lambda: None, fail)


def test_validate_all_runs_every_validator_and_combines():
    def fail_a():
        raise ValueError("first")

    def fail_b():
        raise RuntimeError("second")

    with pytest.raises(MultiError) as info:
        validate_all(fail_a, lambda: None, fail_b)
    assert [str(e) for e in info.value.errors] == ["first", "second"]
    assert str(info.value) == "first; second"


def test_has_any_prefix():
    assert has_any_prefix("karpenter.sh/x", "foo", "karpenter.sh") is True
    assert has_any_prefix("abc", "b", "c") is False
    assert has_any_prefix("abc") is False


def test_invert_string_map():
    assert invert_string_map({"a": "1", "b": "2"}) == {"1": "a", "2": "b"}
    assert invert_string_map(invert_string_map(ORIGINAL)) == ORIGINAL