import functools

import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidyframe.compute import (
    Across,
    ColumnNotFound,
    FunctionCallExpression,
    MeanAggregation,
    QuantileAggregation,
    StdDevAggregation,
    col,
    starts_with,
    where,
)
from tidyframe.compute.across import as_entries, expand_entries, make_expression

SCHEMA = pa.schema(
    [("price_a", pa.float64()), ("price_b", pa.float64()), ("label", pa.string())]
)
DATA = pa.record_batch(
    {"price_a": [1.5, 2.5], "price_b": [3.0, 5.0], "label": ["x", "y"]}
)


def test_single_function_keeps_column_names():
    expressions = Across(starts_with("price"), MeanAggregation).expand(SCHEMA)
    assert list(expressions) == ["price_a", "price_b"]
    assert str(expressions["price_a"]) == "MeanAggregation(price_a)"


def test_functions_dict_names_suffixes():
    expressions = Across(
        where(pa.types.is_floating), {"mean": MeanAggregation, "sd": StdDevAggregation}
    ).expand(SCHEMA)
    assert list(expressions) == ["price_a_mean", "price_a_sd", "price_b_mean", "price_b_sd"]


def test_functions_list_uses_function_names():
    expressions = Across("price_a", [MeanAggregation, pc.round]).expand(SCHEMA)
    assert list(expressions) == ["price_a_mean", "price_a_round"]


def test_across_str():
    assert (
        str(Across(starts_with("price"), {"mean": MeanAggregation}))
        == "Across(starts_with('price'), ['mean'])"
    )


def test_make_expression_of_aggregation_class():
    expression = make_expression(MeanAggregation, "price_a")
    assert isinstance(expression, MeanAggregation)
    assert expression.apply(DATA).as_py() == 2.0


def test_make_expression_of_partial():
    expression = make_expression(functools.partial(QuantileAggregation, q=1.0), "price_b")
    assert isinstance(expression, QuantileAggregation)
    assert expression.apply(DATA).as_py() == 5.0


def test_make_expression_of_compute_function():
    expression = make_expression(pc.negate, "price_a")
    assert isinstance(expression, FunctionCallExpression)
    assert expression.apply(DATA).to_pylist() == [-1.5, -2.5]


def test_expand_entries_later_entries_win():
    entries = [Across(starts_with("price"), pc.round), ("price_b", col("price_a"))]
    expressions = expand_entries(entries, SCHEMA)
    assert list(expressions) == ["price_a", "price_b"]
    assert str(expressions["price_b"]) == "ColumnRef(price_a)"


def test_expand_skips_excluded_columns():
    across = Across(starts_with("price"), MeanAggregation)
    assert list(across.expand(SCHEMA, exclude=["price_a"])) == ["price_b"]

    entries = [across, ("price_a", col("price_b"))]
    expressions = expand_entries(entries, SCHEMA, exclude=["price_a"])
    assert list(expressions) == ["price_b", "price_a"]


def test_as_entries():
    assert as_entries(None) == []
    assert as_entries({"a": 1}) == [("a", 1)]
    across = Across("price_a", pc.round)
    assert as_entries([across]) == [across]


def test_across_without_functions():
    with pytest.raises(ValueError):
        Across("price_a", [])


def test_across_selector_matching_nothing():
    with pytest.raises(ColumnNotFound):
        Across(starts_with("cost"), MeanAggregation).expand(SCHEMA)
