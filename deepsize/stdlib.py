"""
Size functions for builtin and standard library types.

Importing this module fills the registries of `deepsize.core`; it is
imported by the package `__init__`, so there is normally no need to import
it directly.

Reserved storage is measured with the interpreter's own accounting:
``obj.__sizeof__()`` minus the fixed header ``type(obj).__basicsize__``.
For lists this is the slot array (capacity × pointer size), for dicts and
sets the hash table, for bytearrays and arrays the buffer. Where the
interpreter does not provide `__sizeof__`, a documented estimate of
CPython's growth policy is used instead (see `deepsize.utils`).
"""
import io
import sys
import re
import array
import mmap
import socket
import weakref
import datetime
import decimal
import functools
import threading
import types
from collections import OrderedDict, defaultdict, deque, Counter

from .core import register, known_deep_size, shared_size, reserved_size
from .utils import POINTER_SIZE, hashed_capacity, list_capacity_estimate

# %% [markdown]
# Reserved sizes
#
# Each function first asks the interpreter, and only estimates when it can't.

# %%
def _excess(obj) -> int:
    return max(obj.__sizeof__() - type(obj).__basicsize__, 0)

def _reserved(estimate):
    def reserved(obj):
        try:
            return _excess(obj)
        except (AttributeError, TypeError):
            return estimate(obj)
    reserved.estimate = estimate
    return reserved

_DEQUE_BLOCK = 64  # Slots per deque block in CPython

_list_reserved = _reserved(lambda obj: list_capacity_estimate(len(obj)) * POINTER_SIZE)
_dict_reserved = _reserved(lambda obj: hashed_capacity(len(obj)) * 3 * POINTER_SIZE)
_set_reserved = _reserved(lambda obj: hashed_capacity(len(obj)) * 2 * POINTER_SIZE)
_deque_reserved = _reserved(
    lambda obj: (len(obj) // _DEQUE_BLOCK + 1) * (_DEQUE_BLOCK + 2) * POINTER_SIZE)
_bytearray_reserved = _reserved(lambda obj: len(obj) + 1)
_array_reserved = _reserved(lambda obj: len(obj) * obj.itemsize)
_bytesio_reserved = _reserved(lambda obj: 0)
_stringio_reserved = _reserved(lambda obj: 0)

# %% [markdown]
# Values which own nothing beyond their inline representation.
# `str`, `bytes` and big `int`s store their data in the object's own
# allocation, so `sys.getsizeof` already includes it.

# %%
known_deep_size(0, int, float, complex, str, bytes, range,
                type(None), type(Ellipsis), type(NotImplemented))
known_deep_size(0, datetime.date, datetime.time, datetime.timedelta,
                datetime.tzinfo, decimal.Decimal)

# %% [markdown]
# References which do not own their target, and handles to resources outside
# the Python heap. These are declared rather than measured; override with
# `known_deep_size` if a better figure is known.

# %%
known_deep_size(0, weakref.ref, weakref.ProxyType, weakref.CallableProxyType,
                types.MappingProxyType)
known_deep_size(0, types.FunctionType, types.BuiltinFunctionType, types.CodeType,
                type, types.ModuleType)
known_deep_size(0, io.IOBase, io.FileIO, io.BufferedReader, io.BufferedWriter,
                io.BufferedRandom, io.BufferedRWPair, io.TextIOWrapper)
known_deep_size(0, socket.socket, mmap.mmap, re.Pattern, re.Match,
                type(threading.Lock()), type(threading.RLock()))

# %% [markdown]
# Fixed-size sequences: the slots are part of the inline size.

# %%
@register(tuple)
def _tuple_size(obj, context):
    size = 0
    for item in obj:
        size += shared_size(item, context)
    return size

@register(slice)
def _slice_size(obj, context):
    return (shared_size(obj.start, context) + shared_size(obj.stop, context)
            + shared_size(obj.step, context))

# %% [markdown]
# Growable sequences: reserved slots (capacity, not length) plus each live
# element.

# %%
@register(list, reserved=_list_reserved)
@register(deque, reserved=_deque_reserved)
def _sequence_size(obj, context):
    size = reserved_size(obj)
    for item in obj:
        size += shared_size(item, context)
    return size

# %% [markdown]
# Hash tables: table bytes plus each key and value.
# The dict subclasses from `collections` are registered explicitly, so they
# are not mistaken for user subclasses carrying extra attributes.

# %%
@register(dict, OrderedDict, Counter, reserved=_dict_reserved)
def _mapping_size(obj, context):
    size = reserved_size(obj)
    for key, value in obj.items():
        size += shared_size(key, context) + shared_size(value, context)
    return size

@register(defaultdict, reserved=_dict_reserved)
def _defaultdict_size(obj, context):
    return _mapping_size(obj, context) + shared_size(obj.default_factory, context)

@register(set, frozenset, reserved=_set_reserved)
def _set_size(obj, context):
    size = reserved_size(obj)
    for item in obj:
        size += shared_size(item, context)
    return size

# %% [markdown]
# Byte buffers: the buffer is counted by capacity; its contents are plain
# bytes and are not sized individually.

# %%
@register(bytearray, reserved=_bytearray_reserved)
@register(array.array, reserved=_array_reserved)
@register(io.BytesIO, reserved=_bytesio_reserved)
def _buffer_size(obj, context):
    return reserved_size(obj)

@register(io.StringIO, reserved=_stringio_reserved)
def _stringio_size(obj, context):
    # Depending on its state, `StringIO.__sizeof__` may not report the text
    # buffer. Count at least the size of the text as a `str`.
    try:
        text = obj.getvalue()
    except ValueError:  # Closed
        return reserved_size(obj)
    return max(reserved_size(obj), sys.getsizeof(text))

@register(memoryview)
def _memoryview_size(obj, context):
    try:
        exporter = obj.obj
    except ValueError:
        # Released view: it no longer references anything
        return 0
    return shared_size(exporter, context)

# %% [markdown]
# Callables holding references to data. Functions found on the class of a
# bound method belong to the class, and are not counted.

# %%
def _is_class_function(func, *owners) -> bool:
    "Return True if `func` is defined by one of `owners` or their bases."
    name = getattr(func, "__name__", None)
    for cls in (base for owner in owners for base in owner.__mro__):
        attr = vars(cls).get(name)
        # `classmethod` and `staticmethod` wrap the function
        if attr is func or getattr(attr, "__func__", None) is func:
            return True
    return False

@register(types.MethodType)
def _method_size(obj, context):
    bound = obj.__self__
    size = shared_size(bound, context)
    func = obj.__func__
    # Class methods are bound to the class; other methods to an instance
    owners = (bound, type(bound)) if isinstance(bound, type) else (type(bound),)
    if not _is_class_function(func, *owners):
        # Bound by hand with `types.MethodType`: the method may be its only owner
        size += shared_size(func, context)
    return size

@register(functools.partial)
def _partial_size(obj, context):
    return (shared_size(obj.func, context) + shared_size(obj.args, context)
            + shared_size(obj.keywords, context))
