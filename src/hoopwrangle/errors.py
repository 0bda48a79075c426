"""Errors raised while evaluating a pipeline.

Each error is fatal to the step that raised it, there is no
recovery of partial results. Each one also inherits from the
builtin exception that is closest in meaning, so that code
written against plain Python conventions (``except KeyError``)
keeps working.

Errors about single rows do not exist: a row whose arithmetic
goes wrong (like a division by zero) degrades to ``null`` or
``inf`` instead of aborting the pipeline.
"""


class HoopWrangleError(Exception):
    """Base class for all the errors raised by HoopWrangle."""

    pass


class UnknownColumnError(HoopWrangleError, KeyError):
    """A referenced column does not exist in the table."""

    def __init__(self, column: str, available: list[str] | None = None) -> None:
        self.column = column
        self.available = list(available or [])
        super().__init__(column)

    def __str__(self) -> str:
        if self.available:
            return f"Unknown column {self.column!r}, available columns: {self.available}"
        return f"Unknown column {self.column!r}"


class TypeMismatchError(HoopWrangleError, TypeError):
    """A non numeric column was provided to an arithmetic operation."""

    pass


class DuplicateColumnError(HoopWrangleError, ValueError):
    """Renaming a column would make two columns share the same name."""

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"Column {column!r} already exists")


class MissingFileError(HoopWrangleError, FileNotFoundError):
    """The input data file could not be found."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"No such data file: {filename}")
        self.filename = filename
