"""Query plan nodes that rename columns."""

from .base import QueryPlanNode
from .errors import ColumnNotFound, DuplicateColumn


class RenameNode(QueryPlanNode):
    """Rename columns preserving their data and position.

    The renaming is a mapping ``{old_name: new_name}``,
    columns not part of the mapping keep their name.
    All names are replaced at once, so two columns can
    swap their names.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"dept": ["Sales"], "amount": [100]})
    >>> next(RenameNode({"dept": "department"}, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'department': ['Sales'], 'amount': [100]}
    """

    def __init__(self, mapping: dict[str, str], child: QueryPlanNode) -> None:
        """
        :param mapping: The ``{old_name: new_name}`` renames to apply.
        :param child: The node emitting the data with the columns to rename.
        """
        self.mapping = dict(mapping)
        self.child = child

    def __str__(self) -> str:
        return f"RenameNode({self.mapping}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Rename the columns of each batch emitted by the child."""
        for batch in self.child.batches():
            names = batch.schema.names
            for old_name in self.mapping:
                if old_name not in names:
                    raise ColumnNotFound(old_name, names)

            new_names = [self.mapping.get(name, name) for name in names]
            seen = set()
            for name in new_names:
                if name in seen:
                    raise DuplicateColumn(name)
                seen.add(name)

            yield batch.rename_columns(new_names)
