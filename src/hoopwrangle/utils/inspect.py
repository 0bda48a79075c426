"""Provide insights about Python objects.

Used to give a readable representation of the functions
that compute expressions, so that printing a query plan
tells which operation each node performs.
"""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    For functions this is something like ``module.function``,
    for bound methods ``module.class.method``:

    >>> import pyarrow.compute as pc
    >>> get_qualname(pc.divide)
    'pyarrow.compute.divide'

    Partially applied functions are described by
    the function they wrap:

    >>> get_qualname(functools.partial(pc.round, ndigits=1))
    'pyarrow.compute.round'

    Objects that are not functions, classes or modules
    are described by their class.
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)
    if inspect.ismodule(obj):
        return obj.__name__

    module = inspect.getmodule(obj)
    prefix = f"{module.__name__}." if module is not None else ""
    if inspect.ismethod(obj):
        return f"{prefix}{obj.__self__.__class__.__name__}.{obj.__name__}"
    if inspect.isfunction(obj) or inspect.isbuiltin(obj) or inspect.isclass(obj):
        return f"{prefix}{obj.__qualname__}"
    return f"{prefix}{obj.__class__.__name__}"
