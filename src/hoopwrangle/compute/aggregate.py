"""Query plan nodes that compute aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregate node is in charge of computing
those aggregations and projecting them as new
columns in a query pipeline.

Typically the aggregate node will group the data
by a set of columns and then compute the aggregations

For example, given the following data::

    Player, Tm, FT, FTA
    Player A, BOS, 5, 10
    Player B, BOS, 8, 8
    Player C, LAL, 12, 15

We could group by team and compute the sum of free throws
to get::

    Tm, team_ft
    BOS, 13
    LAL, 12

Missing values are skipped by aggregations, like in SQL,
so the sum of ``[1, null, 2]`` is ``3``. Aggregations
can be asked to propagate them instead (``skip_nulls=False``)
in which case the sum of ``[1, null, 2]`` is ``null``.
"""

import abc
import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import TypeMismatchError
from .base import QueryPlanNode, check_columns, get_column
from .expressions import is_numeric
from .grouping import group_rows

__all__ = (
    "AggregateNode",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "CountAggregation",
    "RatioAggregation",
)

log = logging.getLogger(__name__)


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    >>> import pyarrow as pa
    >>> from hoopwrangle.compute import SumAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'Player': pa.array(['Player A', 'Player B', 'Player C']),
    ...    'Tm': pa.array(['BOS', 'BOS', 'LAL']),
    ...    'FT': pa.array([5, 8, 12])
    ... })
    >>> aggregate = AggregateNode(["Tm"], {"team_ft": SumAggregation("FT")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'Tm': ['BOS', 'LAL'], 'team_ft': [13, 12]}

    The groups are emitted in the order they are first found in the data.
    When no keys are provided, the whole data is a single group
    and a single row is emitted.
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        """
        self.keys = list(keys)
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Compute the aggregations for each group.

        For each recordbatch yielded by the child node,
        split the rows in groups and compute the partial
        aggregation results of each group.

        Once all batches were consumed, reduce the partial
        results to the final aggregation results.
        """
        # Compute separate aggregation results for each batch.
        # This makes so that we need to keep in memory only one batch
        # at the time, and the aggregation results, which are far smaller
        #   chunks_data = {key_values: {aggr_name: [aggr_value1, aggr_value2, ...]}}
        chunks_data: dict[tuple, dict[str, list[Any]]] = {}
        schema = None
        for batch in self.child.batches():
            schema = batch.schema
            check_columns(schema, self.keys)
            for keyval, rows in group_rows(batch, self.keys).items():
                group_batch = batch.take(rows)
                group_chunks = chunks_data.setdefault(keyval, {})
                for name, aggregation in self.aggregations.items():
                    group_chunks.setdefault(name, []).append(
                        aggregation.compute_chunk(group_batch)
                    )

        if not self.keys and not chunks_data:
            # Aggregating no rows at all still provides one row of results,
            # like SELECT COUNT(*) FROM empty_table does.
            chunks_data[()] = {name: [] for name in self.aggregations}

        log.debug("Aggregated %d groups by %s", len(chunks_data), self.keys)
        yield self.reduce_aggregations(chunks_data, schema)

    def reduce_aggregations(
        self,
        chunks_data: dict[tuple, dict[str, list[Any]]],
        schema: pa.Schema | None = None,
    ) -> pa.RecordBatch:
        """Reduce the partial aggregation results to the final aggregation results.

        The aggregation is computed for each chunk separately, this method
        will reduce the partial aggregation results to the final aggregation results.

        For example if we had 3 chunks and the chunks_data is::

            {("BOS",): {"team_ft": [10, 20, 30]}}

        The result will be::

            {("BOS",): {"team_ft": 60}}
        """
        # Prepare one column for each key and aggregation
        result_batch_data: dict[str, list[Any]] = {
            **{k: [] for k in self.keys},
            **{k: [] for k in self.aggregations.keys()},
        }
        for keyvalue, aggregated_values in chunks_data.items():
            for i, key in enumerate(self.keys):
                result_batch_data[key].append(keyvalue[i])
            for aggrname, aggregation in self.aggregations.items():
                result_batch_data[aggrname].append(
                    aggregation.reduce(aggregated_values[aggrname])
                )

        arrays = {}
        for key in self.keys:
            keytype = schema.field(key).type if schema is not None else None
            arrays[key] = pa.array(result_batch_data[key], type=keytype)
        for aggrname in self.aggregations:
            arrays[aggrname] = _scalars_to_array(result_batch_data[aggrname])
        return pa.record_batch(arrays)


def _scalars_to_array(scalars: list[pa.Scalar]) -> pa.Array:
    # Pick the type of the first scalar that is not a plain null,
    # a group where all values were missing might be null typed.
    datatype = next(
        (s.type for s in scalars if not pa.types.is_null(s.type)), pa.null()
    )
    return pa.array([s.as_py() for s in scalars], type=datatype)


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is expected to implement
    a method to compute any needed intermediate results
    on a single chunk of data and then provide a reduce method
    to combine the intermediate results into a final result.
    """

    def __init__(self, column: str, skip_nulls: bool = True) -> None:
        """
        :param column: The column to aggregate.
        :param skip_nulls: If missing values should be ignored,
                           otherwise the result will be ``null``
                           when any value is missing.
        """
        self.column = column
        self.skip_nulls = skip_nulls

    def __str__(self) -> str:
        if not self.skip_nulls:
            return f"{self.__class__.__name__}({self.column}, skip_nulls=False)"
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    @abc.abstractmethod
    def compute_chunk(self, batch: pa.RecordBatch) -> Any: ...

    @abc.abstractmethod
    def reduce(self, chunks: list[Any]) -> pa.Scalar: ...


class SimpleAggregation(Aggregation):
    """Provide a base implementation for simple aggregations like min,max,sum.

    Simple aggregations are those where the function applied to compute
    intermediate results for a single chunk of data is the same as the function
    applied to combine the intermediate results into the final.

    For example ``sum([1, 2, 3])`` is the same as ``sum([sum([1, 2]), 3])``.

    The same holds for missing values, when they are not skipped
    a chunk with a missing value results in ``null``, and the
    reduce will propagate that ``null`` to the final result.
    """

    numeric_only = False

    @abc.abstractmethod
    def _aggregate(self, data: Any) -> pa.Scalar: ...

    def compute_chunk(self, batch: pa.RecordBatch) -> pa.Scalar:
        data = get_column(batch, self.column)
        if self.numeric_only and not is_numeric(data.type):
            raise TypeMismatchError(
                f"{self} requires a numeric column, {self.column} is {data.type}"
            )
        return self._aggregate(data)

    def reduce(self, chunks: list[pa.Scalar]) -> pa.Scalar:
        if not chunks:
            return pa.scalar(None)
        datatype = next(
            (c.type for c in chunks if not pa.types.is_null(c.type)), None
        )
        if datatype is None:
            # Only missing values in all chunks
            return pa.scalar(None)
        return self._aggregate(pa.array([c.as_py() for c in chunks], type=datatype))


class SumAggregation(SimpleAggregation):
    """Compute the sum of an aggregated column."""

    numeric_only = True

    def _aggregate(self, data: Any) -> pa.Scalar:
        return pc.sum(data, skip_nulls=self.skip_nulls)


class MinAggregation(SimpleAggregation):
    """Compute the min of an aggregated column."""

    def _aggregate(self, data: Any) -> pa.Scalar:
        return pc.min(data, skip_nulls=self.skip_nulls)


class MaxAggregation(SimpleAggregation):
    """Compute the max of an aggregated column."""

    def _aggregate(self, data: Any) -> pa.Scalar:
        return pc.max(data, skip_nulls=self.skip_nulls)


class CountAggregation(Aggregation):
    """Compute the count of an aggregated column.

    This is based on computing the counts for each intermediate batch
    and then sum them to compute the final result.

    By default only the values that are not missing are counted,
    ``mode="all"`` counts all rows instead, like ``COUNT(*)``.
    """

    def __init__(
        self, column: str, skip_nulls: bool = True, mode: str = "only_valid"
    ) -> None:
        """
        :param column: The column to count.
        :param skip_nulls: When ``False`` the count is ``null`` if any value is missing.
        :param mode: ``"only_valid"`` to count values that are not missing,
                     ``"all"`` to count all rows.
        """
        if mode not in ("only_valid", "all"):
            raise ValueError(f"Unsupported count mode: {mode}")
        super().__init__(column, skip_nulls)
        self.mode = mode

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, int]:
        """Compute the count of the column in a single batch.

        Also keeps track of how many values were missing,
        so that ``skip_nulls=False`` can be honored.
        """
        data = get_column(batch, self.column)
        return pc.count(data, mode=self.mode).as_py(), data.null_count

    def reduce(self, chunks: list[tuple[int, int]]) -> pa.Scalar:
        """Sum the counts of all intermediate results to the final count."""
        if not self.skip_nulls and any(nulls for _, nulls in chunks):
            return pa.scalar(None, pa.int64())
        return pa.scalar(sum(count for count, _ in chunks), pa.int64())


class MeanAggregation(Aggregation):
    """Compute the mean of an aggregated column.

    This is based by computing count and sum of the column
    for each intermediate batch and then dividing
    the sum of all intermediate results by the count
    of all intermediate results.

    The mean of a group without any value is ``null``.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, float, int]:
        """Compute the count and sum of the column in a single batch."""
        data = get_column(batch, self.column)
        if not is_numeric(data.type):
            raise TypeMismatchError(
                f"{self} requires a numeric column, {self.column} is {data.type}"
            )
        total = pc.sum(data, min_count=0).as_py() or 0
        return pc.count(data).as_py(), total, data.null_count

    def reduce(self, chunks: list[tuple[int, float, int]]) -> pa.Scalar:
        """Compute the mean of the column from the intermediate sums and counts."""
        count = sum(chunk[0] for chunk in chunks)
        total = sum(chunk[1] for chunk in chunks)
        nulls = sum(chunk[2] for chunk in chunks)
        if count == 0 or (nulls and not self.skip_nulls):
            return pa.scalar(None, pa.float64())
        return pa.scalar(total / count, pa.float64())


class RatioAggregation(Aggregation):
    """Compute the ratio between the sums of two columns.

    Useful for rates like the free throw percentage of a team,
    which is the total of free throws made divided by the total
    of free throws attempted (and not the average of the
    percentages of each player)::

        RatioAggregation("FT", "FTA")

    Like :class:`hoopwrangle.compute.DivideExpression`,
    a zero denominator results in ``inf``, or in ``null`` when
    the numerator is zero too.
    """

    def __init__(self, numerator: str, denominator: str, skip_nulls: bool = True) -> None:
        """
        :param numerator: The column whose sum is the dividend.
        :param denominator: The column whose sum is the divisor.
        :param skip_nulls: If missing values should be ignored.
        """
        super().__init__(numerator, skip_nulls)
        self.numerator = SumAggregation(numerator, skip_nulls)
        self.denominator = SumAggregation(denominator, skip_nulls)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.numerator.column}/{self.denominator.column})"

    __repr__ = __str__

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[pa.Scalar, pa.Scalar]:
        return (
            self.numerator.compute_chunk(batch),
            self.denominator.compute_chunk(batch),
        )

    def reduce(self, chunks: list[tuple[pa.Scalar, pa.Scalar]]) -> pa.Scalar:
        numerator = self.numerator.reduce([c[0] for c in chunks]).as_py()
        denominator = self.denominator.reduce([c[1] for c in chunks]).as_py()
        if numerator is None or denominator is None:
            return pa.scalar(None, pa.float64())
        if denominator == 0:
            if numerator == 0:
                return pa.scalar(None, pa.float64())
            return pa.scalar(float("inf") if numerator > 0 else float("-inf"))
        return pa.scalar(numerator / denominator, pa.float64())
