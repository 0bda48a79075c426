"""Query plan nodes that implement projection of columns.

A common request in queries is to select specific columns
and project new columns based on expressions.
An example is the ``SELECT`` clause in SQL queries.

This module implements the basic projection capabilities.
"""

import logging
from typing import Iterator

import pyarrow as pa

from .base import QueryPlanNode, check_columns, concat_batches
from .expressions import Expression, needs_all_rows
from .grouping import apply_by_group

log = logging.getLogger(__name__)


class ProjectNode(QueryPlanNode):
    """Project data by selecting specific columns and computing expressions.

    The projection expects a list of column names to select and a dictionary
    of column names and expressions to project new columns.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import col, divide, PyArrowTableDataSource
    >>> data = pa.record_batch({"Player": ["A", "B"], "PTS": [100, 30], "G": [10, 0]})
    >>> next(ProjectNode(["Player"], {"ppg": divide(col("PTS"), col("G"))},
    ...                  PyArrowTableDataSource(data)).batches()).to_pydict()
    {'Player': ['A', 'B'], 'ppg': [10.0, inf]}

    A projected column with the same name of an existing one
    replaces it, keeping its position.
    Projected columns are computed in order, so a projection
    can refer to a column projected before it.

    When ``keys`` are provided, the expressions are evaluated on
    the rows of each group separately, so group aggregates
    (like :func:`hoopwrangle.compute.group_sum`) refer to the group
    of each row.
    """

    def __init__(
        self,
        select: list[str] | None,
        project: dict[str, Expression] | None,
        child: QueryPlanNode,
        keys: list[str] | None = None,
    ) -> None:
        """
        :param select: The list of column names to select.
                        ``None`` means select all columns.
                        ``[]`` means select only the projected columns.
        :param project: The dict {name: Expression} to project new columns.
        :param child: The node emitting the data to be projected.
        :param keys: The columns identifying the groups within which
                     the expressions have to be evaluated.
        """
        self.select = select
        self.project = project or {}
        self.child = child
        self.keys = list(keys or [])

        if self.select is None:
            # No selection was provided, we will select all columns
            self.restrict_columns = None
        else:
            # This is the list of columns we want to keep,
            # in case select=[] it will only provide the project columns.
            self.restrict_columns = self.select + [
                name for name in self.project if name not in self.select
            ]

    def __str__(self) -> str:
        if self.keys:
            return f"ProjectNode(select={self.select}, project={self.project}, keys={self.keys}, child={self.child})"
        return f"ProjectNode(select={self.select}, project={self.project}, child={self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Apply the projection to the child node.

        For each recordbatch yielded by the child node,
        sequentially apply the expressions to project new columns
        and then select the requested columns.

        We need to project first, as the expressions
        might depend on columns that are not selected.
        """
        spans_rows = any(needs_all_rows(expr) for expr in self.project.values())
        if spans_rows or (self.keys and self.project):
            # Groups, or the whole data when not grouped, might span multiple batches
            combined = concat_batches(list(self.child.batches()))
            batches = [combined] if combined is not None else []
        else:
            batches = self.child.batches()

        for batch in batches:
            for name, expr in self.project.items():
                batch = self._set_column(batch, name, self._evaluate(batch, expr))

            if self.restrict_columns is not None:
                check_columns(batch.schema, self.restrict_columns)
                batch = batch.select(self.restrict_columns)

            yield batch

    def _evaluate(self, batch: pa.RecordBatch, expr: Expression) -> pa.Array:
        if self.keys:
            check_columns(batch.schema, self.keys)
            return apply_by_group(batch, self.keys, expr.apply)

        result = expr.apply(batch)
        if isinstance(result, pa.Scalar):
            # Literals are not broadcasted by expressions
            result = pa.repeat(result, batch.num_rows)
        return result

    @staticmethod
    def _set_column(batch: pa.RecordBatch, name: str, data: pa.Array) -> pa.RecordBatch:
        """Append the column, or replace it if it already exists."""
        if isinstance(data, pa.ChunkedArray):
            data = data.combine_chunks()
        index = batch.schema.get_field_index(name)
        if index == -1:
            log.debug("Appending column %s", name)
            return batch.append_column(name, data)
        log.debug("Replacing column %s", name)
        return batch.set_column(index, name, data)
