import pyarrow as pa
import pytest

from tidyframe.compute import (
    ColumnNotFound,
    between,
    by_name,
    contains,
    ends_with,
    everything,
    exclude,
    is_numeric,
    matches,
    starts_with,
    where,
)
from tidyframe.compute.selectors import as_selector, resolve_selection

SCHEMA = pa.schema(
    [
        ("id", pa.int64()),
        ("price_min", pa.float64()),
        ("price_max", pa.float64()),
        ("label", pa.string()),
        ("unit_price", pa.decimal128(10, 2)),
    ]
)


@pytest.mark.parametrize(
    "selector, expected",
    [
        (by_name("label", "id"), ["label", "id"]),
        (between("price_min", "label"), ["price_min", "price_max", "label"]),
        (between("label", "price_min"), ["label", "price_max", "price_min"]),
        (starts_with("price"), ["price_min", "price_max"]),
        (ends_with("price"), ["unit_price"]),
        (contains("price"), ["price_min", "price_max", "unit_price"]),
        (matches(r"^price_m(in|ax)$"), ["price_min", "price_max"]),
        (where(pa.types.is_floating), ["price_min", "price_max"]),
        (where(is_numeric), ["id", "price_min", "price_max", "unit_price"]),
        (everything(), ["id", "price_min", "price_max", "label", "unit_price"]),
    ],
)
def test_selectors_resolve(selector, expected):
    assert selector.resolve(SCHEMA) == expected


@pytest.mark.parametrize(
    "selector, expected",
    [
        (starts_with("price") | by_name("id"), ["price_min", "price_max", "id"]),
        (contains("price") & where(pa.types.is_floating), ["price_min", "price_max"]),
        (contains("price") - ends_with("max"), ["price_min", "unit_price"]),
        (~contains("price"), ["id", "label"]),
        (exclude("id", "label"), ["price_min", "price_max", "unit_price"]),
    ],
)
def test_selectors_combine(selector, expected):
    assert selector.resolve(SCHEMA) == expected


def test_union_does_not_repeat_columns():
    selector = starts_with("price") | contains("max")
    assert selector.resolve(SCHEMA) == ["price_min", "price_max"]


@pytest.mark.parametrize(
    "selector, missing",
    [
        (starts_with("cost"), "starts_with('cost')"),
        (matches("^z"), "matches('^z')"),
        (by_name("cost"), "cost"),
        (between("id", "cost"), "cost"),
        (starts_with("price") & by_name("label"), "(starts_with('price') & by_name('label'))"),
        (starts_with("price") - contains("price"), "(starts_with('price') - contains('price'))"),
    ],
)
def test_selector_matching_nothing(selector, missing):
    with pytest.raises(ColumnNotFound) as excinfo:
        selector.resolve(SCHEMA)
    assert excinfo.value.name == missing
    assert excinfo.value.available == SCHEMA.names


def test_as_selector():
    assert as_selector("id").resolve(SCHEMA) == ["id"]
    selector = starts_with("price")
    assert as_selector(selector) is selector
    with pytest.raises(TypeError):
        as_selector(3)


@pytest.mark.parametrize(
    "specs, expected",
    [
        (["label", "id"], ["label", "id"]),
        (["label", starts_with("price"), "label"], ["label", "price_min", "price_max"]),
        ([~by_name("id")], ["price_min", "price_max", "label", "unit_price"]),
        ([exclude("id", "unit_price")], ["price_min", "price_max", "label"]),
        ([contains("price"), ~ends_with("max")], ["price_min", "unit_price"]),
        ([], []),
    ],
)
def test_resolve_selection(specs, expected):
    assert resolve_selection(specs, SCHEMA) == expected


def test_selector_str():
    assert str(~between("id", "label")) == "~between('id', 'label')"
    assert str(starts_with("a") | ends_with("b")) == "(starts_with('a') | ends_with('b'))"
    assert str(where(is_numeric)) == "where(is_numeric)"
