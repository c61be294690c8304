"""Query plan nodes that implement projection of columns.

A common request in queries is to select specific columns
and derive new columns based on expressions.
An example is the ``SELECT`` clause in SQL queries,
or the ``select`` and ``mutate`` verbs of dataframes.

This module implements the basic projection capabilities.
"""

import logging
from typing import Any

import pyarrow as pa

from .across import Across, as_entries
from .aggregate import uses_aggregation
from .base import QueryPlanNode
from .expressions import apply_expression_if_needed, as_column
from .grouping import apply_by_group
from .selectors import Selector, resolve_selection

logger = logging.getLogger(__name__)


class ProjectNode(QueryPlanNode):
    """Project data by selecting specific columns and computing expressions.

    The projection expects a list of columns to select and a dictionary
    of column names and expressions to project new columns.

    Expressions are computed in order, so each expression
    can refer to the columns projected before it.
    When the name of a projected column is already used
    by an existing column, the existing column is replaced
    keeping its position, otherwise the new column is appended.

    When grouping ``keys`` are provided, the expressions are evaluated
    separately on each group, so aggregations within them
    only see the values of their own group.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import col, PyArrowTableDataSource
    >>> data = pa.record_batch({"a": [1, 2, 3], "b": [4, 5, 6]})
    >>> next(ProjectNode(["a"], {"ab_sum": col("a") + col("b")},
    ...                  PyArrowTableDataSource(data)).batches()).to_pydict()
    {'a': [1, 2, 3], 'ab_sum': [5, 7, 9]}
    """

    def __init__(
        self,
        select: list[str | Selector] | None,
        project: dict[str, Any] | list | None,
        child: QueryPlanNode,
        keys: list[str] | None = None,
    ) -> None:
        """
        :param select: The list of column names or selectors to keep.
                       ``None`` means keep all columns.
                       ``[]`` means keep only the projected columns.
        :param project: The dict {name: Expression} to project new columns,
                        or a list of ``(name, Expression)`` pairs and
                        :class:`tidyframe.compute.Across`.
        :param child: The node emitting the data to be projected.
        :param keys: The grouping columns, when expressions have
                     to be evaluated for each group.
        """
        self.select = select
        self.project = as_entries(project)
        self.child = child
        self.keys = list(keys or [])

    def __str__(self) -> str:
        project = dict(e for e in self.project if not isinstance(e, Across))
        across = [entry for entry in self.project if isinstance(entry, Across)]
        extra = f", across={across}" if across else ""
        keys = f", keys={self.keys}" if self.keys else ""
        return (
            f"ProjectNode(select={self.select}, project={project}{extra}{keys}, "
            f"child={self.child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the projection to the child node.

        For each recordbatch yielded by the child node,
        sequentially apply the expressions to project new columns
        and then select the requested columns.

        We need to project first, because the expressions
        might depend on columns that are not selected.

        Grouped projections need all the rows of a group at once,
        and aggregations need all the rows of the data, so in
        those cases the data of the child is merged in a single batch first.
        """
        if self.keys or self._uses_aggregation():
            yield self._project(self.child.collect_batch())
        else:
            for batch in self.child.batches():
                yield self._project(batch)

    def _uses_aggregation(self) -> bool:
        for entry in self.project:
            expression = entry if isinstance(entry, Across) else entry[1]
            if uses_aggregation(expression):
                return True
        return False

    def _project(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        projected = []
        for entry in self.project:
            if isinstance(entry, Across):
                expressions = list(
                    entry.expand(batch.schema, exclude=self.keys).items()
                )
            else:
                expressions = [entry]

            for name, expr in expressions:
                batch = self._assign(batch, name, expr)
                projected.append(name)

        if self.select is not None:
            columns = resolve_selection(self.select, batch.schema)
            columns += [name for name in dict.fromkeys(projected) if name not in columns]
            batch = batch.select(columns)

        logger.debug("Projected %d rows to columns %s", batch.num_rows, batch.schema.names)
        return batch

    def _assign(self, batch: pa.RecordBatch, name: str, expr: Any) -> pa.RecordBatch:
        """Compute the expression and store it in the ``name`` column."""
        if self.keys:
            values = apply_by_group(batch, self.keys, expr)
        else:
            values = as_column(apply_expression_if_needed(batch, expr), batch.num_rows)

        index = batch.schema.get_field_index(name)
        if index >= 0:
            return batch.set_column(index, name, values)
        return batch.append_column(name, values)
