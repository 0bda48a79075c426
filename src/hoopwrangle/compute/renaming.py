"""Query plan nodes that rename columns.

Datasets often come with short or cryptic column names,
like ``FTA`` for free throws attempted, renaming them
makes the results of an analysis easier to read.
An example is the ``AS`` clause in SQL queries.
"""

from typing import Iterator

import pyarrow as pa

from ..errors import DuplicateColumnError, UnknownColumnError
from .base import QueryPlanNode


class RenameNode(QueryPlanNode):
    """Rename the columns of the data.

    The node expects a mapping of old column names to new column names,
    columns that are not part of the mapping are preserved as they are.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"Tm": ["BOS"], "FTA": [10]})
    >>> next(RenameNode({"Tm": "team"}, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'team': ['BOS'], 'FTA': [10]}

    Renaming a column that doesn't exist raises
    :class:`hoopwrangle.errors.UnknownColumnError`, while
    renaming a column to the name of another column that
    is not being renamed raises :class:`hoopwrangle.errors.DuplicateColumnError`.
    Swapping the names of two columns is allowed.
    """

    def __init__(self, mapping: dict[str, str], child: QueryPlanNode) -> None:
        """
        :param mapping: The ``{old_name: new_name}`` columns to rename.
        :param child: The node emitting the data to rename.
        """
        self.mapping = dict(mapping)
        self.child = child

    def __str__(self) -> str:
        return f"RenameNode(mapping={self.mapping}, {self.child})"

    def renamed_columns(self, names: list[str]) -> list[str]:
        """Compute the new column names given the current ones.

        Fails if the renaming is not possible.
        """
        for old_name in self.mapping:
            if old_name not in names:
                raise UnknownColumnError(old_name, names)

        new_names = [self.mapping.get(name, name) for name in names]
        seen = set()
        for name in new_names:
            if name in seen:
                raise DuplicateColumnError(name)
            seen.add(name)
        return new_names

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Emit the batches of the child node with the columns renamed."""
        new_names = None
        for batch in self.child.batches():
            if new_names is None:
                new_names = self.renamed_columns(batch.schema.names)
            yield pa.RecordBatch.from_arrays(batch.columns, names=new_names)
