"""Query plan nodes that implement filtering of rows.

A common request in queries is to filter the data to
pick only the rows that respect a specific filter.
An example is the ``WHERE`` condition in SQL queries.

This module implements the basic filtering capabilities.
"""

import logging

import pyarrow as pa

from .aggregate import uses_aggregation
from .base import Expression, QueryPlanNode
from .errors import TypeMismatch
from .expressions import apply_expression_if_needed, as_column
from .grouping import apply_by_group

logger = logging.getLogger(__name__)


class FilterNode(QueryPlanNode):
    """Filter data based on a predicate expression.

    The filter expects an expression that when applied
    to the batch of data being filtered returns ``true``
    or ``false`` for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.
    Rows for which the predicate is null are discarded.

    When grouping ``keys`` are provided, the predicate
    is evaluated separately for each group, so a predicate
    like ``col("amount") > MeanAggregation("amount")``
    compares each row with the mean of its own group.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import col, PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    >>> predicate = col("values") > 3
    >>> # predicate is a function that returns true for values greater than 3
    >>> predicate.apply(data).to_pylist()
    [False, False, False, True, True]
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'values': [4, 5]}
    """

    def __init__(
        self,
        expression: Expression,
        child: QueryPlanNode,
        keys: list[str] | None = None,
    ) -> None:
        """
        :param expression: The predicate expression to filter with.
        :param child: The node emitting the data to be filtered.
        :param keys: The grouping columns, when the predicate has
                     to be evaluated for each group.
        """
        self.expression = expression
        self.child = child
        self.keys = list(keys or [])

    def __str__(self) -> str:
        keys = f", keys={self.keys}" if self.keys else ""
        return f"FilterNode(filter={self.expression}{keys}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expression and get back a mask
        (an array of only true/false values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.

        Grouped predicates and predicates containing aggregations
        need all the rows at once, so the data of the child
        is merged in a single batch first.
        """
        if self.keys:
            batch = self.child.collect_batch()
            mask = apply_by_group(batch, self.keys, self.expression)
            yield self._filter(batch, mask)
        elif uses_aggregation(self.expression):
            batch = self.child.collect_batch()
            mask = as_column(
                apply_expression_if_needed(batch, self.expression), batch.num_rows
            )
            yield self._filter(batch, mask)
        else:
            for batch in self.child.batches():
                mask = as_column(
                    apply_expression_if_needed(batch, self.expression), batch.num_rows
                )
                yield self._filter(batch, mask)

    def _filter(self, batch: pa.RecordBatch, mask: pa.Array) -> pa.RecordBatch:
        if not pa.types.is_boolean(mask.type):
            raise TypeMismatch(
                str(self.expression), f"filter predicate is {mask.type}, not boolean"
            )
        filtered = batch.filter(mask)
        logger.debug("Filtered %d rows down to %d", batch.num_rows, filtered.num_rows)
        return filtered
