"""Query plan nodes that deal with missing values.

Real datasets are rarely complete, a player might not
have attended college or their salary might be unknown.
Missing values are represented as ``null``, and
rows containing them can be discarded before an analysis.
"""

import logging
from typing import Iterator

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, check_columns

log = logging.getLogger(__name__)


class DropNullNode(QueryPlanNode):
    """Discard the rows that have a missing value in any of the given columns.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"Player": ["A", "B", "C"], "College": ["Duke", None, "UCLA"]})
    >>> next(DropNullNode(["College"], PyArrowTableDataSource(data)).batches()).to_pydict()
    {'Player': ['A', 'C'], 'College': ['Duke', 'UCLA']}

    ``NaN`` is a valid floating point value and is not considered missing.
    """

    def __init__(self, columns: list[str] | None, child: QueryPlanNode) -> None:
        """
        :param columns: The columns to check for missing values,
                        ``None`` means checking all the columns.
        :param child: The node emitting the data to check.
        """
        self.columns = columns
        self.child = child

    def __str__(self) -> str:
        return f"DropNullNode(columns={self.columns}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Filter out rows with missing values from the batches of the child."""
        for batch in self.child.batches():
            columns = self.columns
            if columns is None:
                columns = batch.schema.names
            check_columns(batch.schema, columns)

            mask = pa.repeat(pa.scalar(True), batch.num_rows)
            for name in columns:
                mask = pc.and_(mask, pc.is_valid(batch.column(name)))
            filtered = batch.filter(mask)
            log.debug(
                "Dropped %d rows with missing %s",
                batch.num_rows - filtered.num_rows,
                columns,
            )
            yield filtered
