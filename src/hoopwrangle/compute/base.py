"""Base classes and interfaces for Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa

from ..errors import UnknownColumnError


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a simple plan might involve
    loading the players stats and filtering them::

        CSVDataSource -> FilterNode(G > 10)

    That would be a plan where the last step
    is filtering, and the CSVDataSource is a child
    of the filter node.

    The number of children can be variable, some
    nodes like for example Joins, will accept two
    child nodes that have to be joined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.
    Nodes never modify the batches they receive,
    Arrow data is immutable, so every node
    emits new batches and whatever was previously
    computed stays valid.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data.

    Typical example of expressions are: PTS / G
    which is expected to divide column PTS of the RecordBatch
    by column G of the RecordBatch and return the result.

    As our engine is Column Major, applying an expression
    always results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Apply the expression to a RecordBatch.

        Expression classes must implement this method
        to dictate what will happen when an expression
        is applied.

        Suppose want to implement a ``SumExpression`` class
        that might look like::

            class SumExpression(Expression):
                def __init__(self, lcol, rcol):
                    self.lcol = lcol  # left column name
                    self.rcol = rcol  # right column name

                def apply(self, batch):
                    return pyarrow.compute.add(
                        batch[self.lcol],
                        batch[self.rcol]
                    )
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


def get_column(batch: pa.RecordBatch | pa.Table, name: str) -> pa.Array:
    """Get the data of a column, failing with a clear error if it is missing.

    >>> batch = pa.record_batch({"PTS": [10, 20]})
    >>> get_column(batch, "AST")
    Traceback (most recent call last):
        ...
    hoopwrangle.errors.UnknownColumnError: Unknown column 'AST', available columns: ['PTS']
    """
    if name not in batch.schema.names:
        raise UnknownColumnError(name, batch.schema.names)
    return batch.column(name)


def check_columns(schema: pa.Schema, names: list[str]) -> None:
    """Ensure that all the provided column names exist in a schema."""
    for name in names:
        if name not in schema.names:
            raise UnknownColumnError(name, schema.names)


class ColumnRef(Expression):
    """References a column in a record batch.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a record batch returns the data for
    that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        return get_column(batch, self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    When applied, the literal is not expanded to a full
    column, the compute functions broadcast scalars
    to the length of the other arguments on their own.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The python value or :class:`pyarrow.Scalar` of the literal.
        """
        if not isinstance(value, pa.Scalar):
            value = pa.scalar(value)
        self.value = value

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        """Provide the literal value, regardless of the batch."""
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal


def concat_batches(batches: list[pa.RecordBatch]) -> pa.RecordBatch | None:
    """Combine multiple batches in a single one.

    Used by the nodes that need all the data in memory at once,
    like grouped filters or joins. Returns ``None`` when there are
    no batches at all, as the schema of the data would be unknown.

    >>> batches = [pa.record_batch({"G": [1, 2]}), pa.record_batch({"G": [3]})]
    >>> concat_batches(batches).to_pydict()
    {'G': [1, 2, 3]}
    """
    if not batches:
        return None
    if len(batches) == 1:
        return batches[0]
    # PyArrow can't concatenate batches directly,
    # so we go through a Table which is zero-copy.
    combined = pa.Table.from_batches(batches).combine_chunks().to_batches()
    if not combined:
        return batches[0].slice(0, 0)
    return combined[0]
