"""Query plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, like the top scorers of the season, it's
often necessary to sort the data based on one or more columns.

Sorting is always stable: rows that have the same
values for all the sorting keys keep the order
they had before sorting. This makes possible to sort
by multiple keys in successive steps, and guarantees
that sorting the same data twice gives the same result.

Missing values are always placed at the end,
regardless of the sorting direction.

This module implements the sorting capabilities.
"""

import logging
from typing import Iterator

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, check_columns, concat_batches

log = logging.getLogger(__name__)


class SortNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided.

    The sort directions are used to specify if the
    sorting should be ascending or descending.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"PTS": [1, 2, 3, 4, 5]})
    >>> # Sort the data in descending order
    >>> sort = SortNode(["PTS"], [True], PyArrowTableDataSource(data))
    >>> next(sort.batches()).to_pydict()
    {'PTS': [5, 4, 3, 2, 1]}
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

        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """The sorting to the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, than they
        are merged and sorted as an unique table.
        """
        batch = concat_batches(list(self.child.batches()))
        if batch is None:
            return

        check_columns(batch.schema, [key for key, _ in self.sorting])
        if not self.sorting:
            yield batch
            return

        # sort_indices is a stable sort, so rows with equal keys keep their order.
        indices = pc.sort_indices(
            self._sorting_columns(batch), sort_keys=self._sorting_keys()
        )
        log.debug("Sorted %d rows by %s", batch.num_rows, self.sorting)
        yield batch.take(indices)

    def _sorting_keys(self) -> list[tuple[str, str]]:
        keys = []
        for idx, (_, order) in enumerate(self.sorting):
            keys.append((f"{idx}_missing", "ascending"))
            keys.append((f"{idx}_value", order))
        return keys

    def _sorting_columns(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        """The columns to sort by, each preceded by whether it's missing.

        Sorting by ``is_null`` first puts the missing values
        at the end of each key, regardless of its direction.
        """
        arrays = []
        names = []
        for idx, (key, _) in enumerate(self.sorting):
            data = batch.column(key)
            arrays.extend([pc.is_null(data), data])
            names.extend([f"{idx}_missing", f"{idx}_value"])
        return pa.RecordBatch.from_arrays(arrays, names=names)
