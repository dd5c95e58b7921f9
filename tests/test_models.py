"""Tests for the payload unwrapper protocol."""

import pytest

from methodfabric.models import EnvelopeUnwrapper, PayloadUnwrapper


def test_envelope_unwrapper_satisfies_protocol():
    assert isinstance(EnvelopeUnwrapper(), PayloadUnwrapper)


def test_bare_list_payload():
    unwrapper = EnvelopeUnwrapper()
    assert unwrapper.unwrap_items([1, 2]) == [1, 2]
    assert unwrapper.get_next_cursor([1, 2]) is None


def test_none_payload_has_no_items():
    assert EnvelopeUnwrapper().unwrap_items(None) == []


def test_envelope_with_items_key():
    payload = {"ids": [1, 2, 3], "users": [], "next_cursor": 42, "previous_cursor": 0}
    unwrapper = EnvelopeUnwrapper("ids")
    assert unwrapper.unwrap_items(payload) == [1, 2, 3]
    assert unwrapper.get_next_cursor(payload) == 42
    assert unwrapper.get_previous_cursor(payload) == 0


def test_envelope_single_list_field_detected():
    payload = {"users": [{"id": 1}], "next_cursor": 0}
    assert EnvelopeUnwrapper().unwrap_items(payload) == [{"id": 1}]


def test_envelope_ambiguous_lists_need_key():
    with pytest.raises(ValueError, match="items_key"):
        EnvelopeUnwrapper().unwrap_items({"ids": [], "users": []})


def test_items_key_must_hold_a_list():
    with pytest.raises(ValueError, match="to be a list"):
        EnvelopeUnwrapper("ids").unwrap_items({"ids": "nope"})


def test_missing_items_key_is_empty():
    assert EnvelopeUnwrapper("ids").unwrap_items({"next_cursor": 0}) == []


def test_scalar_payload_rejected():
    with pytest.raises(ValueError, match="list or a dictionary"):
        EnvelopeUnwrapper().unwrap_items("text")


def test_string_cursors_are_read():
    payload = {"ids": [], "next_cursor_str": "1374004777531007833"}
    assert EnvelopeUnwrapper("ids").get_next_cursor(payload) == 1374004777531007833


def test_non_integer_cursor_ignored():
    assert EnvelopeUnwrapper().get_next_cursor({"next_cursor": "abc"}) is None
