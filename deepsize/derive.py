"""
Generated size functions for user-defined record types.

The `deep_size` decorator reads the field list of a dataclass or a pydantic
model, and adds a `deep_size_of_children` method which sums the size of
each field::

    >>> from dataclasses import dataclass, field
    >>> from deepsize import deep_size, known_size
    >>> @deep_size
    >>> @dataclass
    >>> class Sample:
    >>>     label: str
    >>>     values: list
    >>>     stream: object = field(default=None, metadata=known_size(0))
    >>> Sample("a", [1, 2, 3]).deep_size_of()

**Product types** (records): every declared field contributes the shared size
of its value. Attributes which are not declared fields are not counted.

**Sum types**: decorate the base class, and define each variant as a
subclass adding its own fields. Fields are resolved from the class of each
instance, so only the fields of the active variant are summed. The variant
itself is identified by the object's class pointer, which is part of the
inline size and costs nothing more::

    >>> @deep_size
    >>> @dataclass
    >>> class Shape:
    >>>     pass
    >>> @dataclass
    >>> class Circle(Shape):
    >>>     radius: float
    >>> @dataclass
    >>> class Polygon(Shape):
    >>>     vertices: list

**Opting out**: a field which cannot or should not be introspected must be
given a fixed size explicitly, either through ``known={'name': size}`` or
with dataclass field metadata `known_size`. There is no implicit zero: a
field whose value cannot be introspected is reported by a warning, or raises
in strict mode.
"""
import dataclasses
from typing import Dict, Optional
from pydantic import BaseModel

from .core import DeepSizeOf, deep_size_of, shared_size, inline_size, \
                  reserved_size, validate_size

__all__ = ["deep_size", "known_size"]

METADATA_KEY = "deep_size"

def known_size(size: int) -> dict:
    """
    Dataclass field metadata declaring that the field always contributes
    `size` bytes, without inspecting its value.

    >>> handle: object = dataclasses.field(metadata=known_size(0))
    """
    return {METADATA_KEY: validate_size(size, "known_size")}

def _is_model(cls) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel)

def _field_plan(T: type, known: Dict[str,int]) -> tuple:
    """
    Return ``(name, fixed_size)`` pairs for the fields of `T`.
    `fixed_size` is None for fields which are introspected.
    """
    if _is_model(T):
        return tuple((name, known.get(name)) for name in T.model_fields)
    else:
        return tuple((f.name, known.get(f.name, f.metadata.get(METADATA_KEY)))
                     for f in dataclasses.fields(T))

def _storage_size(obj, context) -> int:
    """
    Size of the containers holding the field values, as opposed to the values
    themselves: the instance `__dict__`, and for pydantic models the
    bookkeeping stored in their slots.
    """
    size = 0
    attrs = getattr(obj, "__dict__", None)
    if isinstance(attrs, dict) and context.try_mark(attrs):
        # Values are the fields, counted separately; the attribute names are
        # counted as for any other dict
        size += inline_size(attrs) + reserved_size(attrs)
        for key in attrs:
            size += shared_size(key, context)
    if isinstance(obj, BaseModel):
        for attr in ("__pydantic_fields_set__", "__pydantic_extra__",
                     "__pydantic_private__"):
            size += shared_size(getattr(obj, attr, None), context)
    return size

def _deep_size_of_method(self) -> int:
    """Total memory footprint of `self`, in bytes."""
    return deep_size_of(self)

def deep_size(cls=None, /, *, known: Optional[Dict[str,int]]=None):
    """
    Class decorator generating `deep_size_of_children` from the field list of
    a dataclass or a pydantic model. Can be used with or without arguments.

    Parameters
    ----------
    known: dict (optional)
        Mapping of field names to fixed sizes in bytes. Those fields are not
        inspected; use 0 to exclude a field. Names must be fields of the
        decorated class; fields added by variants of a sum type take
        `known_size` metadata instead.

    Raises
    ------
    TypeError: If the class is neither a dataclass nor a pydantic model,
        already defines `deep_size_of_children`, or does not declare a field
        named in `known`.
    ValueError: If a size in `known` is not a non-negative integer.
    """
    known = dict(known or {})
    for name, size in known.items():
        validate_size(size, f"deep_size(known={{'{name}': …}})")

    def wrap(cls):
        if not (dataclasses.is_dataclass(cls) or _is_model(cls)):
            raise TypeError("`deep_size` can only be applied to dataclasses "
                            "and pydantic models; place it above the "
                            f"`@dataclass` decorator. Received {cls}.")
        if "deep_size_of_children" in vars(cls):
            raise TypeError(f"{cls.__qualname__} already defines "
                            "`deep_size_of_children`.")
        undeclared = set(known) - {name for name, _ in _field_plan(cls, {})}
        if undeclared:
            raise TypeError(f"`known` names fields which {cls.__qualname__} "
                            f"does not declare: {sorted(undeclared)}.")
        plans = {}  # One plan per concrete class (i.e. per variant)

        def deep_size_of_children(self, context):
            T = type(self)
            plan = plans.get(T)
            if plan is None:
                plan = plans[T] = _field_plan(T, known)
            size = _storage_size(self, context)
            for name, fixed in plan:
                if fixed is None:
                    size += shared_size(getattr(self, name, None), context)
                else:
                    size += fixed
            return size

        deep_size_of_children.__qualname__ = f"{cls.__qualname__}.deep_size_of_children"
        deep_size_of_children.__doc__ = (
            "Sum of the sizes owned by the fields of the active class.")
        cls.deep_size_of_children = deep_size_of_children
        if not hasattr(cls, "deep_size_of"):
            cls.deep_size_of = _deep_size_of_method
        DeepSizeOf.register(cls)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)
