"""Query plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

The sort is stable: rows that are equal for all
the sorting keys keep the order they had in the input,
so sorting twice by the same keys gives the same result
as sorting once.

This module implements the sorting capabilities.
"""

import logging

from .base import QueryPlanNode
from .grouping import check_columns

logger = logging.getLogger(__name__)


class SortNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided.

    The sort directions are used to specify if the
    sorting should be ascending or descending.
    Null values are always placed at the end.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    >>> # Sort the data in descending order
    >>> sort = SortNode(["values"], [True], PyArrowTableDataSource(data))
    >>> next(sort.batches()).to_pydict()
    {'values': [5, 4, 3, 2, 1]}
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param descending: If each columns should be sorted in a descending order.
        :param child: The node emitting the data to be sorted.
        """
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")

        self.keys = list(keys)
        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """The sorting to the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, than they
        are merged and sorted as an unique batch.
        """
        batch = self.child.collect_batch()
        check_columns(batch, self.keys)
        if not self.sorting:
            yield batch
            return

        logger.debug("Sorting %d rows by %s", batch.num_rows, self.sorting)
        yield batch.sort_by(self.sorting)
