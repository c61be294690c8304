"""Query plan nodes that remove duplicated rows.

Rows are duplicated when they have the same values
for all their columns, or for a chosen subset of columns.
Only the first occurrence of each row is preserved
and rows keep their original order.
"""

import logging

from .base import QueryPlanNode
from .grouping import first_rows, group_indices

logger = logging.getLogger(__name__)


class DistinctNode(QueryPlanNode):
    """Keep only the first occurrence of each distinct row.

    When ``keys`` are provided, rows are compared only on those
    columns and the result only contains them, unless ``keep_all``
    is requested, in which case the whole first row of each
    distinct combination of ``keys`` is preserved.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"dept": ["Sales", "IT", "Sales"], "amount": [100, 50, 200]})
    >>> next(DistinctNode(["dept"], PyArrowTableDataSource(data)).batches()).to_pydict()
    {'dept': ['Sales', 'IT']}
    >>> next(DistinctNode(["dept"], PyArrowTableDataSource(data), keep_all=True).batches()).to_pydict()
    {'dept': ['Sales', 'IT'], 'amount': [100, 50]}
    """

    def __init__(
        self, keys: list[str] | None, child: QueryPlanNode, keep_all: bool = False
    ) -> None:
        """
        :param keys: The columns to compare, ``None`` or ``[]`` compares all columns.
        :param child: The node emitting the data to deduplicate.
        :param keep_all: Preserve all the columns of the first row of each key.
        """
        self.keys = list(keys or [])
        self.child = child
        self.keep_all = keep_all

    def __str__(self) -> str:
        return f"DistinctNode(keys={self.keys}, keep_all={self.keep_all}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Load all the data and emit the first row of each distinct key."""
        batch = self.child.collect_batch()
        keys = self.keys or batch.schema.names
        if not keys:
            yield batch
            return

        rows = first_rows(group_indices(batch, keys))
        if self.keys and not self.keep_all:
            batch = batch.select(keys)
        logger.debug("Deduplicated %d rows down to %d", batch.num_rows, len(rows))
        yield batch.take(rows)
