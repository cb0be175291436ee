"""
The size contract and its dispatcher.

The total size of a value is the size of its own representation (its
*inline* size) plus the size of every allocation it owns, recursively (its
*children* size)::

    deep_size_of(obj) == inline_size(obj) + deep_size_of_children(obj, Context())

Every Python object is reached through a reference, and any number of
references may point to the same object. References are therefore treated
as shared ownership: the first reference to reach an object during a
traversal counts it in full, every later one contributes nothing. This is
what `shared_size` implements, and it is also what breaks reference cycles.

**Extending support**
There are two ways to make a type sizable:

- Define a method ``deep_size_of_children(self, context)`` on the class (or
  derive from `DeepSizeOf`, or use the `deepsize.derive.deep_size`
  decorator). In analogy with `__sizeof__`, it is looked up on the type and
  takes precedence over everything else.
- Register a function with `register`, or a fixed size with
  `known_deep_size`. This is the only mechanism for builtin and 3rd-party
  types.

**Caution to implementers**, to ensure memory is neither counted twice nor
missed:

- Reach every referenced object through `shared_size`, never by adding its
  `sys.getsizeof` directly.
- Pass the `context` through to every recursive call.
- Do not include the inline size of `self`; it is already counted by
  whoever reached `self`.
"""
import abc
import sys
import enum
import types
import logging
from typing import Callable, Optional

from . import config as config_module
from .context import Context
from .utils import fully_qualified_name, format_bytes

logger = logging.getLogger(__name__)

__all__ = ["DeepSizeOf", "deep_size_of", "deep_size_of_children",
           "inline_size", "reserved_size", "shared_size", "is_static",
           "register", "known_deep_size",
           "size_functions", "reserved_functions"]

############
# Size contract

class DeepSizeOf(abc.ABC):
    """
    Base class for types which report the memory they own.

    Subclasses only need to implement `deep_size_of_children`. Classes
    decorated with `deepsize.derive.deep_size` are registered as virtual
    subclasses.

    Example
    -------
    >>> from deepsize import DeepSizeOf, shared_size
    >>> class Pair(DeepSizeOf):
    >>>     __slots__ = ('left', 'right')
    >>>     def __init__(self, left, right):
    >>>         self.left = left; self.right = right
    >>>     def deep_size_of_children(self, context):
    >>>         return (shared_size(self.left, context)
    >>>                 + shared_size(self.right, context))
    >>> Pair([1, 2], "abc").deep_size_of()
    """
    __slots__ = ()

    @abc.abstractmethod
    def deep_size_of_children(self, context: Context) -> int:
        """
        Return the number of bytes owned by `self` outside of its own
        representation. Every referenced object must be sized with
        `shared_size(value, context)`.
        """
        raise NotImplementedError

    def deep_size_of(self) -> int:
        """Total memory footprint of `self`, in bytes."""
        return deep_size_of(self)

############
# Registries
#
# `size_functions` maps a type to a function ``(obj, context) -> int``
# returning the children size of `obj`. Lookup follows the MRO of the
# object's type, so registering a base class covers its subclasses.
# A function may return `NotImplemented`, in which case the next base
# class in the MRO is tried.
#
# `reserved_functions` maps a type to a function ``(obj) -> int`` returning
# the bytes of out-of-line storage (slot arrays, hash tables, buffers) which
# the interpreter includes in ``sys.getsizeof(obj)``. Those bytes are moved
# from the inline size to the children size.

size_functions = {}
reserved_functions = {}

def register(*types: type, reserved: Optional[Callable[[object], int]]=None):
    """
    Decorator registering a children-size function for each of `types`.

    Example
    -------
    >>> from deepsize import register, shared_size
    >>> @register(MyContainer)
    >>> def _mycontainer_size(obj, context):
    >>>     return sum(shared_size(x, context) for x in obj.items)
    """
    if len(types) == 0:
        raise TypeError("`register` requires at least one type.")
    def decorator(sizefn):
        for T in types:
            size_functions[T] = sizefn
            if reserved is not None:
                reserved_functions[T] = reserved
        return sizefn
    return decorator

def validate_size(size, caller: str) -> int:
    "Raise `ValueError` unless `size` is a non-negative integer."
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ValueError(f"`{caller}` requires a non-negative integer size; "
                         f"received {size!r}.")
    return size

def known_deep_size(size: int, *types: type):
    """
    Declare that instances of `types` always own exactly `size` bytes beyond
    their inline size. Use 0 for types which own nothing, or which cannot be
    introspected and should deliberately be excluded (file handles, locks…).
    A later call overrides an earlier one.

    >>> from deepsize import known_deep_size
    >>> known_deep_size(0, MyHandle)       # Owns nothing we can see
    >>> known_deep_size(4096, MyPage)      # Always owns one page
    """
    validate_size(size, "known_deep_size")
    def fixed_size(obj, context):
        return size
    fixed_size.size = size
    for T in types:
        size_functions[T] = fixed_size
        reserved_functions.pop(T, None)

def _lookup(registry, T):
    for base in T.__mro__:
        fn = registry.get(base)
        if fn is not None:
            return fn
    return None

############
# Inline and reserved sizes

def reserved_size(obj) -> int:
    """
    Bytes of out-of-line storage reserved by `obj` itself: the slot array of
    a list, the table of a dict or set, the buffer of a bytearray.
    This is capacity, not length. 0 for types without such storage.
    """
    fn = _lookup(reserved_functions, type(obj))
    if fn is None:
        return 0
    return fn(obj)

def inline_size(obj) -> int:
    """
    Size of the representation of `obj` itself, excluding its reserved
    storage and everything it references.
    Falls back to the basic size of the type when the interpreter does not
    implement `sys.getsizeof`.
    """
    size = sys.getsizeof(obj, None)
    if size is None:
        return type(obj).__basicsize__
    return max(size - reserved_size(obj), 0)

############
# Static objects
#
# Objects which belong to the interpreter or to a class, rather than to the
# values that reference them. A reference to one of these costs only the
# reference slot, which is already part of the referrer's size.

_static_ids = frozenset(id(o) for o in (None, True, False, Ellipsis, NotImplemented))
_static_types = (type, types.ModuleType, enum.Enum)

def is_static(obj) -> bool:
    """
    Return True if `obj` is not owned by the values referencing it:
    `None`, `True`, `False`, `Ellipsis`, `NotImplemented`, classes, modules
    and enum members.
    """
    return id(obj) in _static_ids or isinstance(obj, _static_types)

############
# Traversal

def shared_size(obj, context: Context) -> int:
    """
    Size contributed by one reference to `obj`.

    The first reference to reach `obj` during a traversal returns its full
    size (inline + children); every later one returns 0. Static objects
    always return 0.
    """
    if is_static(obj) or not context.try_mark(obj):
        return 0
    # Children first: measuring them may materialize an instance `__dict__`,
    # which changes `sys.getsizeof(obj)`
    children = deep_size_of_children(obj, context)
    return inline_size(obj) + children

def deep_size_of_children(obj, context: Context) -> int:
    """
    Return the number of bytes owned by `obj` beyond its inline size.

    Resolution order:
      1. A ``deep_size_of_children`` method defined on ``type(obj)``.
      2. A function registered for ``type(obj)`` or one of its bases.
      3. Generic introspection of ``__dict__`` and ``__slots__``.
      4. For anything else: a warning (or `TypeError` in strict mode),
         and 0 bytes.
    Descent beyond ``context.max_depth``, or running out of interpreter
    stack before reaching it, returns 0 and is counted in
    ``context.truncated``.
    """
    if not context.enter():
        return 0
    try:
        T = type(obj)
        method = getattr(T, "deep_size_of_children", None)
        if method is not None:
            return method(obj, context)
        for base in T.__mro__:
            sizefn = size_functions.get(base)
            if sizefn is None:
                continue
            res = sizefn(obj, context)
            if res is NotImplemented:
                continue
            if base is not T:
                # Subclass of a registered type: it may carry attributes
                res += _attribute_size(obj, context)
            return res
        return _instance_size(obj, context)
    except RecursionError:
        # The caller's own stack was already deep
        context.truncated += 1
        return 0
    finally:
        context.exit()

def _slot_descriptors(T: type):
    """
    Yield the member descriptors created by `__slots__` declarations in the
    MRO of `T`. Members of extension types (e.g. `complex.real`) are not
    included: reading them creates new objects rather than returning a
    stored reference.
    """
    for cls in T.__mro__:
        slots = vars(cls).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{cls.__name__.lstrip('_')}{name}"  # Name mangling
            attr = vars(cls).get(name)
            if isinstance(attr, types.MemberDescriptorType):
                yield attr

def _slot_values(obj):
    "Yield the values stored in the `__slots__` of `obj`, skipping unset ones."
    T = type(obj)
    for attr in _slot_descriptors(T):
        try:
            yield attr.__get__(obj, T)
        except AttributeError:
            continue

def _has_slots(T: type) -> bool:
    return next(_slot_descriptors(T), None) is not None

def _attribute_size(obj, context: Context) -> int:
    size = 0
    attrs = getattr(obj, "__dict__", None)
    if isinstance(attrs, dict):
        size += shared_size(attrs, context)
    for value in _slot_values(obj):
        size += shared_size(value, context)
    return size

def _instance_size(obj, context: Context) -> int:
    if (not isinstance(getattr(obj, "__dict__", None), dict)
          and not _has_slots(type(obj))):
        return _unknown_size(obj, context)
    return _attribute_size(obj, context)

def _unknown_size(obj, context: Context) -> int:
    T = type(obj)
    if context.strict:
        raise TypeError("`deep_size_of` does not know how to measure the memory "
                        f"owned by objects of type {fully_qualified_name(T)}. "
                        "Define a `deep_size_of_children` method, register a "
                        "size function with `deepsize.register`, or declare a "
                        "fixed size with `deepsize.known_deep_size`.")
    if context.warn_once(T):
        logger.warning(f"Objects of type {fully_qualified_name(T)} cannot be "
                       "introspected: only their inline size is counted. "
                       "Use `deepsize.known_deep_size` to declare the memory "
                       "they own, or to silence this warning.")
    return 0

def deep_size_of(obj, *, config: Optional["config_module.DeepSizeConfig"]=None
                 ) -> int:
    """
    Return the total memory footprint of `obj` in bytes: its inline size plus
    every allocation it transitively owns, each counted once.

    Parameters
    ----------
    obj: Any
        The value to measure. It is not modified.
    config: DeepSizeConfig | None
        Settings for this call. Defaults to `deepsize.config.config`.
    """
    if config is None:
        config = config_module.config
    context = Context(max_depth=config.max_depth, strict=config.strict)
    context.try_mark(obj)
    children = deep_size_of_children(obj, context)
    size = inline_size(obj) + children
    if context.truncated:
        logger.warning(f"Sizing a {fully_qualified_name(type(obj))} reached the "
                       f"maximum depth ({context.max_depth}) or the recursion "
                       f"limit {context.truncated} time(s); deeper allocations "
                       "were not counted and the result is a lower bound.")
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"{fully_qualified_name(type(obj))}: {format_bytes(size)} "
                     f"in {len(context)} allocation(s).")
    return size
