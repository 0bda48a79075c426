"""Support limiting or skipping data in a query plan.

Looking at the first rows of a table is the most
frequent way to inspect data while wrangling it,
this module implements the node that slices
the rows emitted by a query plan.
"""

from typing import Iterator

import pyarrow as pa

from .base import QueryPlanNode


class PaginateNode(QueryPlanNode):
    """Emit only one page of the received data.

    Given a starting index and a length, only emit
    length rows after the starting index is reached.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import PyArrowTableDataSource
    >>> data = PyArrowTableDataSource(pa.table({"PTS": [10, 20, 30, 40]}))
    >>> [b.to_pydict() for b in PaginateNode(1, 2, data).batches()]
    [{'PTS': [20, 30]}]
    """

    def __init__(self, offset: int, length: int, child: QueryPlanNode) -> None:
        """
        :param offset: From which row to take data, first row is 0.
        :param length: How many rows to take after offset was reached.
        :param child: the node from which to consume the rows.
        """
        if offset < 0 or length < 0:
            raise ValueError("offset and length must not be negative")
        self.offset = offset
        self.length = length
        self.child = child

    def __str__(self) -> str:
        return f"PaginateNode({self.offset}:{self.offset + self.length}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Emit the rows of the child that fall within the page.

        Subsequent rows are never consumed, the generator
        of the child is closed as soon as the page is complete
        so that it can release any resource it holds.
        """
        # Position of the first row of the current batch
        # within the whole data emitted by the child.
        position = 0
        end = self.offset + self.length

        emitted = False
        empty_page = None

        batches_generator = self.child.batches()
        try:
            for batch in batches_generator:
                start_in_batch = max(0, self.offset - position)
                stop_in_batch = min(batch.num_rows, end - position)
                position += batch.num_rows
                if stop_in_batch > start_in_batch:
                    emitted = True
                    yield batch.slice(start_in_batch, stop_in_batch - start_in_batch)
                elif empty_page is None:
                    empty_page = batch.slice(0, 0)
                if position >= end:
                    break
        finally:
            batches_generator.close()

        if not emitted and empty_page is not None:
            # The page has no rows, but the next nodes need the schema of the data.
            yield empty_page
