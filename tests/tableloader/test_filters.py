from __future__ import annotations

import pytest

from tableloader.filters import (
    ALL_KEY,
    decode_key,
    field_matches,
    id_key,
    normalize_fields,
    record_matches,
)
from tableloader.types import Record


def _record(record_id: str, **fields) -> Record:
    return Record(id=record_id, fields=fields)


def test_normalize_is_field_order_independent():
    assert normalize_fields({"b": 2, "a": 1}).key == normalize_fields({"a": 1, "b": 2}).key


def test_scalar_and_single_item_list_share_a_key():
    assert normalize_fields({"tag": "x"}).key == normalize_fields({"tag": ["x"]}).key


def test_key_folds_case_and_value_order():
    first = normalize_fields({"interests": ["Gaming", "reading"]})
    second = normalize_fields({"interests": ["READING", "gaming", "gaming"]})
    assert first.key == second.key


def test_canonical_filters_keep_original_values():
    filter_set = normalize_fields({"username": "Alice", "tags": ["A", "b"], "gone": None})
    assert filter_set.filters == {"tags": ("A", "b"), "username": ("Alice",)}
    assert list(filter_set.filters) == ["tags", "username"]


def test_none_values_are_dropped_from_the_key():
    assert normalize_fields({"a": 1, "b": None}).key == normalize_fields({"a": 1}).key


def test_identifier_values_keep_their_case():
    assert id_key("recABC") != id_key("recabc")
    assert decode_key(id_key("recABC")) == {"id": ["recABC"]}


def test_decode_key_round_trips_folded_filters():
    filter_set = normalize_fields({"username": "Alice", "age": 30, "active": True})
    assert decode_key(filter_set.key) == {
        "active": [True],
        "age": ["30"],
        "username": ["alice"],
    }


def test_key_is_stable_json():
    assert normalize_fields({"b": ["y", "x"], "a": "Z"}).key == '{"a":["z"],"b":["x","y"]}'


@pytest.mark.parametrize("bad", [None, "username=alice", ["a", 1], 42])
def test_non_mapping_fields_fail_fast(bad):
    with pytest.raises(TypeError, match="mapping"):
        normalize_fields(bad)


def test_unsupported_values_fail_fast():
    with pytest.raises(TypeError, match="field 'meta'"):
        normalize_fields({"meta": {"nested": 1}})
    with pytest.raises(TypeError, match="scalars"):
        normalize_fields({"tags": ["ok", object()]})


def test_decode_key_rejects_malformed_keys():
    with pytest.raises(ValueError, match="Malformed"):
        decode_key("not json")
    with pytest.raises(ValueError, match="Malformed"):
        decode_key('{"a": "b"}')
    with pytest.raises(ValueError, match="all-records"):
        decode_key(ALL_KEY)


def test_field_match_is_case_insensitive():
    record = _record("r1", category="Gaming")
    assert field_matches(record, "category", ["gaming"])


def test_field_match_checks_every_entry_of_multi_valued_cells():
    record = _record("r1", interests=["gaming", "Reading"])
    assert field_matches(record, "interests", ["reading"])
    assert not field_matches(record, "interests", ["games"])


def test_missing_field_never_matches():
    assert not field_matches(_record("r1"), "username", ["alice"])


def test_missing_checkbox_matches_a_false_filter():
    assert field_matches(_record("r1"), "active", [False])
    assert not field_matches(_record("r1"), "active", [True])
    assert field_matches(_record("r1", active=True), "active", [True])
    assert not field_matches(_record("r1", active=True), "active", [False])


def test_integral_floats_share_a_key_with_ints():
    assert normalize_fields({"score": 2}).key == normalize_fields({"score": 2.0}).key
    assert normalize_fields({"score": 2.5}).key == '{"score":["2.5"]}'


def test_integral_float_filter_matches_int_cells():
    values = decode_key(normalize_fields({"score": 2.0}).key)["score"]
    assert field_matches(_record("r1", score=2), "score", values)
    assert field_matches(_record("r2", score=2.0), "score", ["2"])
    assert not field_matches(_record("r3", score=20), "score", values)


def test_booleans_stay_typed_in_the_key():
    assert normalize_fields({"active": True}).key == '{"active":[true]}'
    assert normalize_fields({"active": True}).key != normalize_fields({"active": "true"}).key
    assert decode_key(normalize_fields({"flag": [False, "x"]}).key) == {"flag": ["x", False]}


def test_record_matches_any_field_by_default():
    record = _record("r1", username="alice", city="Oslo")
    filters = {"username": ["alice"], "city": ["paris"]}
    assert record_matches(record, filters)
    assert not record_matches(record, filters, match_all=True)
    assert record_matches(record, {"username": ["alice"], "city": ["oslo"]}, match_all=True)


def test_empty_filters_match_nothing():
    assert not record_matches(_record("r1", username="alice"), {})
