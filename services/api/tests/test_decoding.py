import pytest

from catalog_admin.services.decoding import DecodeError, decode_mapping, decode_sequence


def test_decode_sequence_absent_is_empty():
    assert decode_sequence(None) == []


def test_decode_sequence_drops_holes_of_native_list():
    a, c = {"title": "A"}, {"title": "C"}
    assert decode_sequence([a, None, c]) == [a, c]


def test_decode_sequence_sparse_map_uses_numeric_key_order():
    raw = {"10": {"title": "C"}, "0": {"title": "A"}, "2": {"title": "B"}}
    assert [x["title"] for x in decode_sequence(raw)] == ["A", "B", "C"]


def test_decode_sequence_keyed_map_keeps_store_order():
    raw = {"-Nb": {"title": "first"}, "-Na": {"title": "second"}}
    assert [x["title"] for x in decode_sequence(raw)] == ["first", "second"]


def test_decode_sequence_rejects_third_shape():
    assert decode_sequence("not-a-list", path="TrendingItemsPage") == []
    assert decode_sequence([1, {"title": "A"}]) == [{"title": "A"}]


def test_decode_mapping_shapes():
    assert decode_mapping(None) == {}
    assert decode_mapping({"a": {"x": 1}, "b": None}) == {"a": {"x": 1}}
    assert decode_mapping([{"x": 1}, None, {"x": 3}]) == {"0": {"x": 1}, "2": {"x": 3}}
    assert decode_mapping(42) == {}


def test_decode_sequence_strict_raises_instead_of_dropping():
    with pytest.raises(DecodeError) as exc_info:
        decode_sequence([{"title": "A"}, "legacy"], path="TrendingItemsPage", strict=True)
    assert exc_info.value.path == "TrendingItemsPage"
    with pytest.raises(DecodeError):
        decode_sequence("not-a-list", strict=True)
    assert decode_sequence([{"title": "A"}, None], strict=True) == [{"title": "A"}]
