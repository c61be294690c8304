import pyarrow as pa

from tidyframe.compute import (
  AggregateNode,
  FilterNode,
  PyArrowTableDataSource,
  SortNode,
  SumAggregation,
  col,
)

data = pa.table({
  "city": ["Rome", "Milan", "Rome", "Naples", "Milan", "Rome"],
  "shop": ["Shop 1", "Shop 1", "Shop 2", "Shop 1", "Shop 2", "Shop 3"],
  "n_employees": [10, 4, 7, 12, 9, 3],
})

query = SortNode(
  ["total_employees"], [True],
  AggregateNode(
    ["city"], {"total_employees": SumAggregation("n_employees")},
    FilterNode(col("n_employees") > 3, PyArrowTableDataSource(data)),
  ),
)
print(query)
for batch in query.batches():
  print("---")
  print(batch)
