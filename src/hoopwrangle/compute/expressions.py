"""Expressions executed by compute engine nodes.

The Compute Engine will sometimes need to filter data
or emit new data. This will be performed by nodes that
need to know how the data must be filtered or emitted.

Filters will need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
filtered.

Projections will need an expression that computes the rows
for the projection, for example ``PTS / G``.

More node types might need different type of expressions.
This module implements the most common ones.

Expressions never fail because of the content of a single row.
Dividing by zero, for example, results in ``inf`` or ``null``
for that row, so that a player who did not play any game
does not abort a whole analysis of the season.
"""

from typing import Callable

import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from ..errors import TypeMismatchError
from .base import Expression


def apply_expression_if_needed(
    batch: pa.RecordBatch, o: Expression | pa.Array
) -> pa.Array:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


def is_numeric(datatype: pa.DataType) -> bool:
    """If arithmetic can be performed on values of the given type.

    The ``null`` type is considered numeric, as it's the type
    pyarrow infers for columns where all values are missing.
    """
    return (
        pa.types.is_integer(datatype)
        or pa.types.is_floating(datatype)
        or pa.types.is_decimal(datatype)
        or pa.types.is_null(datatype)
    )


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example to sum two columns this would be used as::

        FunctionCallExpression(pyarrow.compute.add, ColumnRef("FT"), ColumnRef("FG"))

    When the function can't be applied to the type of its
    arguments, like when trying to add a text column to a number,
    a :class:`hoopwrangle.errors.TypeMismatchError` is raised.
    """

    def __init__(self, func: Callable, *args: Expression) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Invoke the function resolving all argumnets on the recordbatch.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided recordbatch
        and the resulting data will be used as the arguments for the
        function.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        try:
            return self.func(*args)
        except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
            raise TypeMismatchError(f"Unable to apply {self}: {e}") from e


class DivideExpression(Expression):
    """Divide two numeric expressions without ever failing on zero.

    The division is always performed on floating point values,
    so ``PTS / G`` gives the average points per game even
    when both columns contain integers.

    Rows where the denominator is zero do not abort the computation:

    * ``x / 0`` with ``x != 0`` results in ``inf`` (or ``-inf``)
    * ``0 / 0`` results in ``null``, as the value is undefined.
    * Any ``null`` operand results in ``null``.

    >>> from hoopwrangle.compute import col
    >>> batch = pa.record_batch({"PTS": [100, 30, 0], "G": [10, 0, 0]})
    >>> DivideExpression(col("PTS"), col("G")).apply(batch).to_pylist()
    [10.0, inf, None]
    """

    def __init__(self, numerator: Expression, denominator: Expression) -> None:
        """
        :param numerator: The expression providing the dividend.
        :param denominator: The expression providing the divisor.
        """
        self.numerator = numerator
        self.denominator = denominator

    def __str__(self) -> str:
        return f"divide({self.numerator},{self.denominator})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Compute the division casting both operands to float."""
        numerator = self._as_float(apply_expression_if_needed(batch, self.numerator))
        denominator = self._as_float(
            apply_expression_if_needed(batch, self.denominator)
        )
        # Floating point division by zero gives inf or nan instead of raising,
        # nan is then turned into null which is what the engine uses for missing data.
        result = pc.divide(numerator, denominator)
        return pc.if_else(pc.is_nan(result), pa.scalar(None, pa.float64()), result)

    def _as_float(self, data: pa.Array | pa.Scalar | int | float) -> pa.Array:
        if not isinstance(data, (pa.Array, pa.ChunkedArray, pa.Scalar)):
            data = pa.scalar(data)
        if not is_numeric(data.type):
            raise TypeMismatchError(
                f"Unable to apply {self}: expected numeric values, got {data.type}"
            )
        return pc.cast(data, pa.float64())


divide = DivideExpression


class GroupAggregateExpression(Expression):
    """Aggregate an expression and broadcast the result to every row.

    Applied to a whole batch this computes a single value,
    like the maximum of a column, and repeats it for every row
    so that it can be compared with the row values.

    When applied by a grouped node (see :class:`hoopwrangle.compute.FilterNode`
    and :class:`hoopwrangle.compute.ProjectNode`) the expression
    is applied to the rows of each group separately, and thus the
    aggregate is computed for each group. This allows to express
    things like "keep the row where the player played the most games"::

        FilterNode(
            FunctionCallExpression(pc.equal, col("G"), group_max(col("G"))),
            child,
            keys=["player_id"],
        )

    Null values are skipped by the aggregation.

    >>> from hoopwrangle.compute import col
    >>> batch = pa.record_batch({"G": [20, 10, 30]})
    >>> group_max(col("G")).apply(batch).to_pylist()
    [30, 30, 30]
    """

    def __init__(self, func: Callable, expression: Expression) -> None:
        """
        :param func: The aggregation function, for example :func:`pyarrow.compute.max`.
        :param expression: The expression providing the values to aggregate.
        """
        self.func = func
        self.expression = expression

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({self.expression}) per group"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Compute the aggregate of the expression and repeat it for each row."""
        data = apply_expression_if_needed(batch, self.expression)
        try:
            value = self.func(data)
        except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
            raise TypeMismatchError(f"Unable to apply {self}: {e}") from e
        return pa.repeat(value, batch.num_rows)


def group_max(expression: Expression) -> GroupAggregateExpression:
    """Maximum value of the expression within each group."""
    return GroupAggregateExpression(pc.max, expression)


def group_min(expression: Expression) -> GroupAggregateExpression:
    """Minimum value of the expression within each group."""
    return GroupAggregateExpression(pc.min, expression)


def group_sum(expression: Expression) -> GroupAggregateExpression:
    """Sum of the expression within each group."""
    return GroupAggregateExpression(pc.sum, expression)


def group_mean(expression: Expression) -> GroupAggregateExpression:
    """Average of the expression within each group."""
    return GroupAggregateExpression(pc.mean, expression)


def group_count(expression: Expression) -> GroupAggregateExpression:
    """Number of non null values of the expression within each group."""
    return GroupAggregateExpression(pc.count, expression)


def needs_all_rows(expression: Expression) -> bool:
    """If the expression aggregates over rows, like ``group_max``.

    Those expressions must be applied to all the rows
    of the data (or of the group) at once, applying them
    to a single batch would only aggregate the rows in that batch.

    >>> from hoopwrangle.compute import col
    >>> needs_all_rows(FunctionCallExpression(pc.equal, col("G"), group_max(col("G"))))
    True
    >>> needs_all_rows(divide(col("PTS"), col("G")))
    False
    """
    if isinstance(expression, GroupAggregateExpression):
        return True
    if isinstance(expression, FunctionCallExpression):
        return any(needs_all_rows(arg) for arg in expression.args)
    if isinstance(expression, DivideExpression):
        return needs_all_rows(expression.numerator) or needs_all_rows(
            expression.denominator
        )
    return False
