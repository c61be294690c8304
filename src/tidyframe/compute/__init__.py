"""The tidyframe Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leafs node of a query:

>>> import pyarrow as pa
>>> data = pa.table({
...    "animals": pa.array(["Flamingo", "Horse", "Brittle stars", "Centipede"]),
...    "n_legs": pa.array([2, 4, 5, 100])
... })
>>>
>>> from tidyframe.compute import col, PyArrowTableDataSource, FilterNode
>>> query = FilterNode(col("n_legs") >= 5, child=PyArrowTableDataSource(data))
>>> for batch in query.batches():
...     print(batch.to_pydict())
{'animals': ['Brittle stars', 'Centipede'], 'n_legs': [5, 100]}
"""

from .across import Across, across
from .aggregate import (
    AggregateNode,
    Aggregation,
    CountAggregation,
    CountDistinctAggregation,
    IQRAggregation,
    MaxAggregation,
    MeanAggregation,
    MedianAggregation,
    MinAggregation,
    QuantileAggregation,
    StdDevAggregation,
    SumAggregation,
    VarianceAggregation,
    n,
)
from .base import ColumnRef, Expression, Literal, QueryPlanNode, col, lit
from .datasources import CSVDataSource, PyArrowTableDataSource
from .distinct import DistinctNode
from .errors import (
    AggregateOnEmptyGroup,
    ColumnNotFound,
    DuplicateColumn,
    TidyframeError,
    TypeMismatch,
)
from .expressions import CaseWhenExpression, FunctionCallExpression, case_when
from .filtering import FilterNode
from .renaming import RenameNode
from .selection import ProjectNode
from .selectors import (
    Selector,
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
from .sorting import SortNode

__all__ = (
    "CSVDataSource",
    "PyArrowTableDataSource",
    "QueryPlanNode",
    "Expression",
    "FilterNode",
    "FunctionCallExpression",
    "CaseWhenExpression",
    "case_when",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "SortNode",
    "ProjectNode",
    "RenameNode",
    "DistinctNode",
    "AggregateNode",
    "Aggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "IQRAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "MinAggregation",
    "QuantileAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "VarianceAggregation",
    "n",
    "Across",
    "across",
    "Selector",
    "between",
    "by_name",
    "contains",
    "ends_with",
    "everything",
    "exclude",
    "is_numeric",
    "matches",
    "starts_with",
    "where",
    "TidyframeError",
    "ColumnNotFound",
    "DuplicateColumn",
    "TypeMismatch",
    "AggregateOnEmptyGroup",
)
