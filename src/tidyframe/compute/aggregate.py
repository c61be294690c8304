"""Query plan nodes that compute aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregate node is in charge of computing
those aggregations and projecting them as new
columns in a query pipeline.

Typically the aggregate node will group the data
by a set of columns and then compute the aggregations

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, total_employees
    New York, 45
    Los Angeles, 20

Groups are emitted in the order their key first appears in the data.
When no grouping key is provided, the whole data is reduced to one row.

Aggregations are expressions themselves, applying them
to a batch reduces a column to a single :class:`pyarrow.Scalar`.
This allows to combine them with other expressions, like
``SumAggregation("amount") / CountAggregation()``, or to use
them inside a mutation to compare each row with its group,
like ``col("amount") - MeanAggregation("amount")``.
"""

import abc
import functools
import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .across import Across, as_entries, expand_entries
from .base import ColumnRef, Expression, QueryPlanNode
from .errors import AggregateOnEmptyGroup, DuplicateColumn, TypeMismatch
from .expressions import (
    CaseWhenExpression,
    FunctionCallExpression,
    apply_expression_if_needed,
    as_column,
    common_type,
)
from .grouping import check_columns, first_rows, group_indices

__all__ = (
    "AggregateNode",
    "Aggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "QuantileAggregation",
    "IQRAggregation",
    "StdDevAggregation",
    "VarianceAggregation",
    "n",
)

logger = logging.getLogger(__name__)


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import SumAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'city': pa.array(['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York']),
    ...    'shop': pa.array(['Shop A', 'Shop B', 'Shop C', 'Shop D', 'Shop E']),
    ...    'n_employees': pa.array([10, 15, 8, 12, 20])
    ... })
    >>> aggregate = AggregateNode(["city"], {"total_employees": SumAggregation("n_employees")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'city': ['New York', 'Los Angeles'], 'total_employees': [45, 20]}
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, Expression] | list,
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by, ``[]`` aggregates all rows together.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
                             A list of ``(name, Aggregation)`` pairs and
                             :class:`tidyframe.compute.Across` is accepted too.
        :param child: The child node that will provide the data to aggregate.
        """
        self.keys = list(keys)
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Compute the aggregations for each group.

        All the data emitted by the child is loaded in memory,
        then each group is sliced out of it and every
        aggregation is applied to the slice.
        The result is a single batch with one row per group.
        """
        batch = self.child.collect_batch()
        check_columns(batch, self.keys)
        aggregations = expand_entries(
            as_entries(self.aggregations), batch.schema, exclude=self.keys
        )
        for name in aggregations:
            if name in self.keys:
                raise DuplicateColumn(name)

        if self.keys:
            groups = group_indices(batch, self.keys)
            chunks = [batch.take(rows) for _, rows in groups]
            result_data = {
                k: batch.column(k).take(first_rows(groups)) for k in self.keys
            }
        else:
            chunks = [batch]
            result_data = {}

        logger.debug(
            "Aggregating %d rows in %d groups: %s",
            batch.num_rows,
            len(chunks),
            ", ".join(aggregations),
        )
        for name, aggregation in aggregations.items():
            values = [self._reduce(aggregation, chunk) for chunk in chunks]
            result_data[name] = scalars_to_array(values, str(aggregation))

        yield pa.RecordBatch.from_pydict(result_data)

    def _reduce(self, aggregation: Expression, chunk: pa.RecordBatch) -> pa.Scalar:
        """Apply the aggregation making sure it produced a single value."""
        value = apply_expression_if_needed(chunk, aggregation)
        if isinstance(value, pa.ChunkedArray):
            value = value.combine_chunks()
        if isinstance(value, pa.Array):
            if len(value) != 1:
                raise TypeMismatch(
                    str(aggregation), f"expected a single value, got {len(value)}"
                )
            value = value[0]
        if not isinstance(value, pa.Scalar):
            value = pa.scalar(value)
        return value


def scalars_to_array(scalars: list[pa.Scalar], expression: str) -> pa.Array:
    """Build a column out of the aggregation results of each group."""
    target_type = common_type([s.type for s in scalars], expression)
    return pa.array([s.as_py() for s in scalars], type=target_type)


class Aggregation(Expression):
    """Base class for aggregations.

    Every aggregation reduces the values of
    a column, or of an expression, to a single value.

    Subclasses implement ``_aggregate`` receiving the
    values as a :class:`pyarrow.Array` and declare
    a ``function_name`` that is used to name the columns
    generated by :class:`tidyframe.compute.Across`.
    Aggregations that make no sense on zero values
    set ``requires_values``.
    """

    function_name = "aggregate"
    requires_values = False

    def __init__(self, column: str | Expression) -> None:
        """
        :param column: The name of the column to aggregate or an expression.
        """
        self.column = column
        self.expression = ColumnRef(column) if isinstance(column, str) else column

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        """Compute the aggregation over all the rows of the batch."""
        values = as_column(
            apply_expression_if_needed(batch, self.expression), batch.num_rows
        )
        if self.requires_values and len(values) == 0:
            raise AggregateOnEmptyGroup(str(self))
        try:
            return self._aggregate(values)
        except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
            raise TypeMismatch(str(self), str(e)) from e

    @abc.abstractmethod
    def _aggregate(self, values: pa.Array) -> pa.Scalar: ...


class SumAggregation(Aggregation):
    """Compute the sum of an aggregated column.

    The sum of zero values is 0.
    """

    function_name = "sum"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.sum(values, min_count=0)


class MinAggregation(Aggregation):
    """Compute the min of an aggregated column."""

    function_name = "min"
    requires_values = True

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.min(values)


class MaxAggregation(Aggregation):
    """Compute the max of an aggregated column."""

    function_name = "max"
    requires_values = True

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.max(values)


class MeanAggregation(Aggregation):
    """Compute the mean of an aggregated column."""

    function_name = "mean"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.mean(values)


class QuantileAggregation(Aggregation):
    """Compute the quantile ``q`` of an aggregated column.

    By default values between two data points are linearly
    interpolated, which is the most common definition
    of sample quantiles.
    """

    function_name = "quantile"
    requires_values = True

    def __init__(
        self, column: str | Expression, q: float, interpolation: str = "linear"
    ) -> None:
        """
        :param column: The name of the column to aggregate or an expression.
        :param q: The quantile to compute, between 0 and 1.
        :param interpolation: How to pick values between two data points,
                              see :func:`pyarrow.compute.quantile`.
        """
        if not 0 <= q <= 1:
            raise ValueError(f"Quantile must be between 0 and 1, got {q}")
        super().__init__(column)
        self.q = q
        self.interpolation = interpolation

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column}, q={self.q})"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.quantile(values, q=self.q, interpolation=self.interpolation)[0]


class MedianAggregation(QuantileAggregation):
    """Compute the median of an aggregated column."""

    function_name = "median"

    def __init__(self, column: str | Expression) -> None:
        super().__init__(column, q=0.5)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"


class IQRAggregation(Aggregation):
    """Compute the interquartile range of an aggregated column.

    That is the distance between the third and the first quartile.
    """

    function_name = "iqr"
    requires_values = True

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        quartiles = pc.quantile(values, q=[0.25, 0.75], interpolation="linear")
        return pc.subtract(quartiles[1], quartiles[0])


class StdDevAggregation(Aggregation):
    """Compute the sample standard deviation of an aggregated column."""

    function_name = "sd"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.stddev(values, ddof=1)


class VarianceAggregation(Aggregation):
    """Compute the sample variance of an aggregated column."""

    function_name = "var"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.variance(values, ddof=1)


class CountAggregation(Aggregation):
    """Count rows or non null values.

    When no column is provided, it counts the rows,
    otherwise it counts how many values of the column are not null.
    """

    function_name = "count"

    def __init__(self, column: str | Expression | None = None) -> None:
        """
        :param column: The column whose values should be counted,
                       ``None`` to count the rows.
        """
        self.column = column
        if column is None:
            self.expression = None
        else:
            self.expression = ColumnRef(column) if isinstance(column, str) else column

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({'*' if self.column is None else self.column})"

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        """Count the rows of the batch or the valid values of the column."""
        if self.expression is None:
            return pa.scalar(batch.num_rows, type=pa.int64())
        return super().apply(batch)

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.count(values)


class CountDistinctAggregation(Aggregation):
    """Count the distinct values of an aggregated column, null included."""

    function_name = "n_distinct"

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.count_distinct(values, mode="all")


def n() -> CountAggregation:
    """Count the rows of the group."""
    return CountAggregation()

def uses_aggregation(entry: Any) -> bool:
    """Tell if evaluating ``entry`` requires reducing whole columns.

    ``entry`` can be an expression, a plain value or an
    :class:`tidyframe.compute.Across` whose functions are
    checked instead. Such entries give the same result only
    when they see all the rows at once, so they can't
    be evaluated one batch at a time.

    >>> from tidyframe.compute import col
    >>> uses_aggregation(col("a") / SumAggregation("a"))
    True
    >>> uses_aggregation(col("a") + 1)
    False
    """
    if isinstance(entry, Aggregation):
        return True
    if isinstance(entry, Across):
        for _, func in entry.functions:
            target = func.func if isinstance(func, functools.partial) else func
            if isinstance(target, type) and issubclass(target, Aggregation):
                return True
        return False
    if isinstance(entry, FunctionCallExpression):
        return any(uses_aggregation(arg) for arg in entry.args)
    if isinstance(entry, CaseWhenExpression):
        return uses_aggregation(entry.default) or any(
            uses_aggregation(cond) or uses_aggregation(value)
            for cond, value in entry.cases
        )
    return False
