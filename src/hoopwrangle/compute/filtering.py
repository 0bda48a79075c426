"""Query plan nodes that implement filtering of rows.

A common request in queries is to filter the data to
pick only the rows that respect a specific filter.
An example is the ``WHERE`` condition in SQL queries.

When the filter is grouped, the predicate is evaluated
separately for the rows of each group. That's what allows
to compare a row with the other rows of its own group,
like picking the row with the most games played by each player.

This module implements the basic filtering capabilities.
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, check_columns, concat_batches
from .expressions import Expression, needs_all_rows
from .grouping import apply_by_group

log = logging.getLogger(__name__)


class FilterNode(QueryPlanNode):
    """Filter data based on a predicate expression.

    The filter expects an expression that when applied
    to the batch of data being filtered returns ``true``
    or ``false`` for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.
    Rows where the predicate is ``null`` are discarded.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from hoopwrangle.compute import col, lit, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"G": [1, 2, 3, 4, 5]})
    >>> predicate = FunctionCallExpression(pc.greater, col("G"), lit(3))
    >>> # predicate is a function that returns true for values greater than 3
    >>> predicate.apply(data).to_pylist()
    [False, False, False, True, True]
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'G': [4, 5]}

    When ``keys`` are provided the predicate is evaluated within each group:

    >>> from hoopwrangle.compute import group_max
    >>> data = pa.record_batch({"player_id": ["a", "a", "a", "b"], "G": [20, 10, 30, 5]})
    >>> predicate = FunctionCallExpression(pc.equal, col("G"), group_max(col("G")))
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data), keys=["player_id"]).batches()).to_pydict()
    {'player_id': ['a', 'b'], 'G': [30, 5]}
    """

    def __init__(
        self,
        expression: Expression,
        child: QueryPlanNode,
        keys: list[str] | None = None,
    ) -> None:
        """
        :param expression: The predicate expression to filter with.
        :param child: The node emitting the data to be filtered.
        :param keys: The columns identifying the groups within which
                     the predicate has to be evaluated.
        """
        self.expression = expression
        self.child = child
        self.keys = list(keys or [])

    def __str__(self) -> str:
        if self.keys:
            return f"FilterNode(filter={self.expression}, keys={self.keys}, child={self.child})"
        return f"FilterNode(filter={self.expression}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expression and get back a mask
        (an array of only true/false values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.

        Grouped filtering requires all rows of a group to be
        available at once, so the batches are combined in a single
        one before evaluating the predicate. The same happens when
        the predicate aggregates over rows, like ``G == group_max(G)``
        without any grouping, as the data is then a single group.
        """
        if self.keys or needs_all_rows(self.expression):
            combined = concat_batches(list(self.child.batches()))
            batches = [combined] if combined is not None else []
        else:
            batches = self.child.batches()

        for batch in batches:
            if self.keys:
                check_columns(batch.schema, self.keys)
                mask = apply_by_group(batch, self.keys, self.expression.apply)
            else:
                mask = self.expression.apply(batch)
            if isinstance(mask, pa.Scalar):
                mask = pa.repeat(mask, batch.num_rows)
            # null_selection_behavior="drop" is the default,
            # rows where the predicate could not be evaluated are discarded.
            filtered = batch.filter(pc.cast(mask, pa.bool_()))
            log.debug(
                "%s kept %d of %d rows", self.expression, filtered.num_rows, batch.num_rows
            )
            yield filtered
