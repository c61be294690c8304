import datetime

import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidyframe.compute import ColumnNotFound, TypeMismatch, col, lit
from tidyframe.compute.base import ColumnRef, Literal
from tidyframe.compute.expressions import FunctionCallExpression


@pytest.fixture
def sample_batch():
    return pa.RecordBatch.from_arrays(
        [pa.array([1, 2, 3, 4, 5]), pa.array(["a", "b", "c", "d", "e"])],
        names=["numbers", "letters"],
    )


def test_function_call_expression_init():
    expr = FunctionCallExpression(pc.add, ColumnRef("numbers"), 1)
    assert expr.func == pc.add
    assert len(expr.args) == 2
    assert isinstance(expr.args[0], ColumnRef)
    assert expr.args[1] == 1


def test_function_call_expression_str():
    expr = FunctionCallExpression(pc.add, ColumnRef("numbers"), 1)
    assert str(expr) == "pyarrow.compute.add(ColumnRef(numbers),1)"


def test_operators_build_function_calls():
    assert str(col("numbers") + 1) == "pyarrow.compute.add(ColumnRef(numbers),1)"
    assert (
        str(col("numbers") / col("numbers"))
        == "tidyframe.compute.expressions.true_divide(ColumnRef(numbers),ColumnRef(numbers))"
    )
    assert str(lit(3)) == "Literal(3)"


def test_function_call_expression_apply_simple(sample_batch):
    expr = FunctionCallExpression(pc.add, ColumnRef("numbers"), 1)
    result = expr.apply(sample_batch)
    expected = pa.array([2, 3, 4, 5, 6])
    assert result.equals(expected)


def test_function_call_expression_apply_nested(sample_batch):
    expr = col("numbers") * 2 + 1
    result = expr.apply(sample_batch)
    expected = pa.array([3, 5, 7, 9, 11])
    assert result.equals(expected)


def test_reflected_operators(sample_batch):
    assert (10 - col("numbers")).apply(sample_batch).to_pylist() == [9, 8, 7, 6, 5]
    assert (2 * col("numbers")).apply(sample_batch).to_pylist() == [2, 4, 6, 8, 10]
    assert (-col("numbers")).apply(sample_batch).to_pylist() == [-1, -2, -3, -4, -5]


def test_division_never_truncates(sample_batch):
    result = (col("numbers") / 2).apply(sample_batch)
    assert result.to_pylist() == [0.5, 1.0, 1.5, 2.0, 2.5]


def test_function_call_expression_apply_string_ops(sample_batch):
    expr = FunctionCallExpression(pc.utf8_upper, ColumnRef("letters"))
    result = expr.apply(sample_batch)
    expected = pa.array(["A", "B", "C", "D", "E"])
    assert result.equals(expected)


def test_function_call_expression_apply_comparison(sample_batch):
    expr = col("numbers") > 3
    result = expr.apply(sample_batch)
    expected = pa.array([False, False, False, True, True])
    assert result.equals(expected)


def test_boolean_combinations(sample_batch):
    both = (col("numbers") > 1) & (col("numbers") < 4)
    either = (col("numbers") == 1) | (col("letters") == "e")
    assert both.apply(sample_batch).to_pylist() == [False, True, True, False, False]
    assert either.apply(sample_batch).to_pylist() == [True, False, False, False, True]
    assert (~both).apply(sample_batch).to_pylist() == [True, False, False, True, True]


def test_set_membership(sample_batch):
    expr = col("letters").is_in(["a", "c", "z"])
    assert expr.apply(sample_batch).to_pylist() == [True, False, True, False, False]


def test_between(sample_batch):
    expr = col("numbers").between(2, 4)
    assert expr.apply(sample_batch).to_pylist() == [False, True, True, True, False]


def test_date_ordering():
    batch = pa.record_batch(
        {
            "day": pa.array(
                [
                    datetime.date(2024, 1, 15),
                    datetime.date(2024, 3, 1),
                    datetime.date(2023, 12, 31),
                ]
            )
        }
    )
    expr = col("day") >= datetime.date(2024, 1, 1)
    assert expr.apply(batch).to_pylist() == [True, True, False]


def test_function_call_expression_apply_multiple_args(sample_batch):
    expr = FunctionCallExpression(
        pc.if_else,
        FunctionCallExpression(pc.greater, ColumnRef("numbers"), 3),
        ColumnRef("letters"),
        "x",
    )
    result = expr.apply(sample_batch)
    expected = pa.array(["x", "x", "x", "d", "e"])
    assert result.equals(expected)


def test_function_call_expression_apply_null_handling(sample_batch):
    numbers_with_null = pa.array([1, None, 3, 4, 5])
    batch_with_null = pa.RecordBatch.from_arrays(
        [numbers_with_null, sample_batch["letters"]], names=["numbers", "letters"]
    )
    expr = FunctionCallExpression(pc.add, ColumnRef("numbers"), 1)
    result = expr.apply(batch_with_null)
    expected = pa.array([2, None, 4, 5, 6])
    assert result.equals(expected)


def test_function_call_expression_apply_invalid_column():
    batch = pa.RecordBatch.from_arrays([pa.array([1, 2, 3])], names=["numbers"])
    expr = FunctionCallExpression(pc.add, ColumnRef("non_existent"), 1)
    with pytest.raises(ColumnNotFound) as excinfo:
        expr.apply(batch)
    assert excinfo.value.name == "non_existent"
    assert excinfo.value.available == ["numbers"]


def test_function_call_expression_apply_type_mismatch():
    batch = pa.RecordBatch.from_arrays([pa.array(["a", "b", "c"])], names=["letters"])
    expr = FunctionCallExpression(pc.add, ColumnRef("letters"), 1)
    with pytest.raises(TypeMismatch) as excinfo:
        expr.apply(batch)
    assert excinfo.value.expression == "pyarrow.compute.add(ColumnRef(letters),1)"


def test_literal_apply(sample_batch):
    assert Literal("x").apply(sample_batch) == pa.scalar("x")
