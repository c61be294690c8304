import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidyframe.compute import (
    Across,
    CaseWhenExpression,
    ColumnNotFound,
    FunctionCallExpression,
    MeanAggregation,
    PyArrowTableDataSource,
    SumAggregation,
    between,
    col,
    everything,
    lit,
    starts_with,
)
from tidyframe.compute.selection import ProjectNode


@pytest.fixture
def mock_data():
    """Create a mock PyArrow Table for testing."""
    data = {"a": [1, 2, 3], "b": [4, 5, 6], "c": [7, 8, 9]}
    table = pa.table(data)
    return table


def _project(select, project, data, keys=None):
    node = ProjectNode(select, project, PyArrowTableDataSource(data), keys=keys)
    batches = list(node.batches())
    assert len(batches) == 1
    return batches[0]


def test_init_and_str(mock_data):
    """Test the initialization and string representation of ProjectNode."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    project_node = ProjectNode(
        ["a", "b"], expressions, PyArrowTableDataSource(mock_data)
    )
    assert (
        str(project_node)
        == "ProjectNode(select=['a', 'b'], project={'sum_ab': pyarrow.compute.add(ColumnRef(a),ColumnRef(b))}, child=PyArrowTableDataSource(columns=['a', 'b', 'c'], rows=3))"
    )


def test_select_columns(mock_data):
    """Test selecting specific columns."""
    batch = _project(["a", "b"], {}, mock_data)
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "b"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [4, 5, 6]


def test_select_reorders_columns(mock_data):
    batch = _project(["c", "a"], None, mock_data)
    assert batch.column_names == ["c", "a"]


def test_select_with_selectors(mock_data):
    batch = _project([between("b", "c")], None, mock_data)
    assert batch.column_names == ["b", "c"]

    batch = _project([~between("a", "b")], None, mock_data)
    assert batch.column_names == ["c"]


def test_select_unknown_column(mock_data):
    with pytest.raises(ColumnNotFound) as excinfo:
        _project(["a", "z"], None, mock_data)
    assert excinfo.value.name == "z"


def test_select_pattern_matching_nothing(mock_data):
    with pytest.raises(ColumnNotFound) as excinfo:
        _project([starts_with("price")], None, mock_data)
    assert excinfo.value.name == "starts_with('price')"


def test_project_columns(mock_data):
    """Test projecting new columns using expressions."""
    batch = _project(["a"], {"sum_ab": col("a") + col("b")}, mock_data)
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [5, 7, 9]


def test_select_and_project_columns(mock_data):
    """Test selecting specific columns and projecting new columns."""
    expressions = {"sum_ab": FunctionCallExpression(pc.add, col("a"), col("b"))}
    batch = _project(["a", "c"], expressions, mock_data)
    assert batch.num_columns == 3
    assert batch.column_names == ["a", "c", "sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [7, 8, 9]
    assert batch.column(2).to_pylist() == [5, 7, 9]


def test_multiple_project_columns(mock_data):
    """Test projecting multiple new columns using expressions."""
    expressions = {
        "sum_ab": col("a") + col("b"),
        "double_sum_ab": col("sum_ab") * lit(2),
    }
    batch = _project(["a"], expressions, mock_data)
    assert batch.num_columns == 3
    assert batch.column_names == ["a", "sum_ab", "double_sum_ab"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [5, 7, 9]
    assert batch.column(2).to_pylist() == [10, 14, 18]


def test_project_column_not_selected(mock_data):
    """Test projecting a column that depends on a column that wasn't selected."""
    batch = _project(["a"], {"sum_bc": col("b") + col("c")}, mock_data)
    assert batch.num_columns == 2
    assert batch.column_names == ["a", "sum_bc"]
    assert batch.column(0).to_pylist() == [1, 2, 3]
    assert batch.column(1).to_pylist() == [11, 13, 15]


def test_project_with_no_columns(mock_data):
    """Test projecting with no columns selected or projected."""
    batch = _project([], {}, mock_data)
    assert batch.num_columns == 0


def test_mutate_keeps_all_columns(mock_data):
    batch = _project(None, {"d": col("a") * col("c")}, mock_data)
    assert batch.column_names == ["a", "b", "c", "d"]
    assert batch.column(3).to_pylist() == [7, 16, 27]


def test_mutate_replaces_column_in_place(mock_data):
    batch = _project(None, {"b": col("b") * 10}, mock_data)
    assert batch.column_names == ["a", "b", "c"]
    assert batch.column(1).to_pylist() == [40, 50, 60]


def test_mutate_scalar_is_broadcast(mock_data):
    batch = _project(None, {"region": "North", "one": lit(1)}, mock_data)
    assert batch.column(3).to_pylist() == ["North", "North", "North"]
    assert batch.column(4).to_pylist() == [1, 1, 1]


def test_mutate_true_division(mock_data):
    batch = _project(None, {"ratio": col("a") / col("b")}, mock_data)
    assert batch.column(3).to_pylist() == pytest.approx([0.25, 0.4, 0.5])


def test_mutate_with_aggregate(mock_data):
    batch = _project(None, {"share": col("a") / SumAggregation("a")}, mock_data)
    assert batch.column(3).to_pylist() == pytest.approx([1 / 6, 2 / 6, 3 / 6])


@pytest.fixture
def chunked_data():
    return pa.Table.from_batches(
        [
            pa.record_batch({"a": [1, 2]}),
            pa.record_batch({"a": [10, 20]}),
        ]
    )


def test_mutate_with_aggregate_sees_all_batches(chunked_data):
    batch = _project(None, {"share": col("a") / SumAggregation("a")}, chunked_data)
    assert batch.column(1).to_pylist() == pytest.approx(
        [1 / 33, 2 / 33, 10 / 33, 20 / 33]
    )


def test_mutate_with_across_aggregation_sees_all_batches(chunked_data):
    batch = _project(None, [Across("a", MeanAggregation)], chunked_data)
    assert batch.column(0).to_pylist() == [8.25, 8.25, 8.25, 8.25]


def test_mutate_without_aggregates_streams_batches(chunked_data):
    node = ProjectNode(
        None, {"double": col("a") * 2}, PyArrowTableDataSource(chunked_data)
    )
    batches = list(node.batches())
    assert [b.column(1).to_pylist() for b in batches] == [[2, 4], [20, 40]]


def test_mutate_with_case_when(mock_data):
    label = CaseWhenExpression([(col("a") >= 2, "big")], default="small")
    batch = _project(None, {"size": label}, mock_data)
    assert batch.column(3).to_pylist() == ["small", "big", "big"]


def test_mutate_by_group():
    data = pa.table({"k": ["x", "y", "x", "y"], "v": [1.0, 10.0, 3.0, 30.0]})
    batch = _project(
        None,
        {"centered": col("v") - MeanAggregation("v"), "group_total": SumAggregation("v")},
        data,
        keys=["k"],
    )
    assert batch.column(2).to_pylist() == [-1.0, -10.0, 1.0, 10.0]
    assert batch.column(3).to_pylist() == [4.0, 40.0, 4.0, 40.0]


def test_mutate_by_group_across_skips_keys():
    data = pa.table({"k": ["x", "y", "x"], "v": [1.0, 5.0, 3.0]})
    batch = _project(None, [Across(everything(), MeanAggregation)], data, keys=["k"])
    assert batch.to_pydict() == {"k": ["x", "y", "x"], "v": [2.0, 5.0, 2.0]}


def test_mutate_with_across_single_function_replaces():
    data = pa.table({"price_a": [1.24, 2.56], "price_b": [3.01, 4.99], "qty": [1, 2]})
    batch = _project(None, [Across(starts_with("price"), pc.round)], data)
    assert batch.column_names == ["price_a", "price_b", "qty"]
    assert batch.column(0).to_pylist() == [1.0, 3.0]
    assert batch.column(1).to_pylist() == [3.0, 5.0]


def test_mutate_with_across_multiple_functions_appends():
    data = pa.table({"price": [1.2, -2.5]})
    batch = _project(
        None, [Across("price", {"abs": pc.abs, "neg": pc.negate})], data
    )
    assert batch.column_names == ["price", "price_abs", "price_neg"]
    assert batch.column(1).to_pylist() == [1.2, 2.5]
    assert batch.column(2).to_pylist() == [-1.2, 2.5]


def test_mutate_unknown_column(mock_data):
    with pytest.raises(ColumnNotFound):
        _project(None, {"d": col("z") + 1}, mock_data)
