import math

import pyarrow as pa
import pytest

from hoopwrangle.compute import PyArrowTableDataSource
from hoopwrangle.compute.missing import DropNullNode
from hoopwrangle.errors import UnknownColumnError

INFO = pa.table(
    {
        "Player": ["Mike Adams", "Jon Baker", "Tom Evans", "Luis Diaz"],
        "College": ["Duke", None, "Gonzaga", None],
        "Salary": [1_000_000, 2_500_000, None, 900_000],
    }
)


def _collect(node):
    return pa.Table.from_batches(list(node.batches()))


def test_drop_null_single_column():
    result = _collect(DropNullNode(["College"], PyArrowTableDataSource(INFO)))
    assert result.column("Player").to_pylist() == ["Mike Adams", "Tom Evans"]


def test_drop_null_multiple_columns():
    result = _collect(DropNullNode(["College", "Salary"], PyArrowTableDataSource(INFO)))
    assert result.column("Player").to_pylist() == ["Mike Adams"]
    assert result.column("College").null_count == 0
    assert result.column("Salary").null_count == 0


def test_drop_null_all_columns():
    result = _collect(DropNullNode(None, PyArrowTableDataSource(INFO)))
    assert result.column("Player").to_pylist() == ["Mike Adams"]


def test_drop_null_keeps_schema_when_everything_is_dropped():
    data = pa.table({"College": pa.array([None, None], type=pa.string())})
    result = _collect(DropNullNode(["College"], PyArrowTableDataSource(data)))
    assert result.num_rows == 0
    assert result.column_names == ["College"]


def test_drop_null_does_not_drop_nan():
    data = pa.table({"ft_pct": [0.5, math.nan, None]})
    result = _collect(DropNullNode(["ft_pct"], PyArrowTableDataSource(data)))
    values = result.column("ft_pct").to_pylist()
    assert len(values) == 2
    assert values[0] == 0.5
    assert math.isnan(values[1])


def test_drop_null_unknown_column():
    node = DropNullNode(["Height"], PyArrowTableDataSource(INFO))
    with pytest.raises(UnknownColumnError):
        list(node.batches())


def test_drop_null_str():
    node = DropNullNode(["College"], PyArrowTableDataSource(INFO))
    assert str(node) == (
        "DropNullNode(columns=['College'], "
        "PyArrowTableDataSource(columns=['Player', 'College', 'Salary'], rows=4))"
    )
