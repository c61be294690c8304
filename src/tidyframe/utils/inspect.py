"""Provide insights about Python objects."""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    Will return the name of the object and the
    name of the module and class it belongs to.

    For functions or methods, this will return
    something like `module.class.method` or
    `module.function`. Partials are named after
    the function they wrap.

    >>> class TestClass:
    ...   def method(self, arg):
    ...     pass
    >>> get_qualname(TestClass.method)
    'tidyframe.utils.inspect.TestClass.method'
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)

    module = getattr(inspect.getmodule(obj), "__name__", None)
    if module is None:
        module = getattr(obj, "__module__", None) or "builtins"

    if inspect.ismethod(obj) or inspect.isfunction(obj):
        if hasattr(obj, "__self__") and obj.__self__:
            class_name = obj.__self__.__class__.__name__
            return f"{module}.{class_name}.{obj.__name__}"
        return f"{module}.{obj.__qualname__}"
    elif inspect.isclass(obj):
        return f"{module}.{obj.__name__}"
    elif inspect.ismodule(obj):
        return obj.__name__
    elif callable(obj) and hasattr(obj, "__name__"):
        return f"{module}.{obj.__name__}"
    return f"{module}.{obj.__class__.__name__}"


def get_shortname(obj: Any) -> str:
    """Get the unqualified name of a function or class.

    Used to name the columns generated applying
    multiple functions to the same column.

    >>> get_shortname(get_qualname)
    'get_qualname'
    """
    if isinstance(obj, functools.partial):
        return get_shortname(obj.func)
    name = getattr(obj, "function_name", None) or getattr(obj, "__name__", None)
    if name is None:
        name = obj.__class__.__name__
    return name
