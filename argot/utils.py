"""
Argot helpers shared by the tokenizer, the schema builder and the entry points.

- Unset: "nothing was declared" marker for tag values and field defaults.
  None cannot play that role because it is the zero value of pointer fields.
- rename(): give generated callables (help handlers) a readable name.
- dashed(): option name for a python identifier.
- isgraph(): the one-character rule short option names follow.
"""
import functools
import re
from typing import final


@final
class UnsetType:
    """
    type of the Unset marker.

    There is exactly one instance. It is falsy, prints as "Unset", survives
    copy/deepcopy/pickle as itself and cannot be subclassed.
    """
    __slots__ = ()

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"


Unset = UnsetType()


def rename(target, name=None, /):
    """
    set __name__ and __qualname__ on a callable.

        rename(function, "help")       # returns function
        @rename("help")                # decorator form
    """
    if name is None:
        if not isinstance(target, str):
            raise TypeError("rename() needs a name")

        def decorator(function):
            return rename(function, target)

        return decorator
    if not callable(target):
        raise TypeError(f"rename() target must be callable, not {type(target).__name__!r}")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        target.__name__ = target.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"cannot rename {target!r}") from None
    return target


@functools.cache
def dashed(name, /):
    """
    dry_run -> dry-run, ListenAddr -> listen-addr, _private_ -> private
    """
    if not isinstance(name, str):
        raise TypeError("dashed() argument must be a string")
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name.strip("_"))
    return re.sub(r"[_-]+", "-", name).lower()


def isgraph(char, /):
    return isinstance(char, str) and len(char) == 1 and char.isprintable() and not char.isspace()


__all__ = (
    "UnsetType",
    "Unset",
    "rename",
    "dashed",
    "isgraph",
)
