import sys
import enum
import logging
import pytest

from deepsize import deep_size_of, deep_size_of_children, Context
def test_scalars():
    for value in (0, 2**100, 1.5, 3+4j, True, None, "text", b"bytes"):
        assert deep_size_of_children(value, Context()) == 0
        assert deep_size_of(value) == sys.getsizeof(value)

def test_list_of_scalars():
    lst = [1000, 2000.5, "abc"]
    assert deep_size_of(lst) == sys.getsizeof(lst) + sum(sys.getsizeof(x) for x in lst)

def test_shared_allocation_counted_once():
    inner = bytearray(100)
    outer = [inner, inner]
    assert deep_size_of(outer) == sys.getsizeof(outer) + sys.getsizeof(inner)

def test_equal_values_counted_separately():
    outer = [bytearray(100), bytearray(100)]
    assert deep_size_of(outer) == (sys.getsizeof(outer)
                                   + sys.getsizeof(outer[0])
                                   + sys.getsizeof(outer[1]))

def test_reference_cycle():
    a = []
    b = [a]
    a.append(b)
    assert deep_size_of(a) == sys.getsizeof(a) + sys.getsizeof(b)
    assert deep_size_of(b) == sys.getsizeof(a) + sys.getsizeof(b)

def test_self_reference():
    d = {}
    d["self"] = d
    assert deep_size_of(d) == sys.getsizeof(d) + sys.getsizeof("self")

def test_idempotent():
    value = {"a": [1, 2, 3], "b": (bytearray(10), "text")}
    assert deep_size_of(value) == deep_size_of(value)

def test_deep_but_finite_nesting():
    chain = []
    node = chain
    nodes = [chain]
    for _ in range(100):
        child = []
        node.append(child)
        nodes.append(child)
        node = child
    assert deep_size_of(chain) == sum(sys.getsizeof(n) for n in nodes)

from deepsize import DeepSizeConfig
def test_depth_limit_degrades(caplog):
    chain = []
    node = chain
    for _ in range(10):
        child = [bytearray(50)]
        node.append(child)
        node = child
    full = deep_size_of(chain)
    with caplog.at_level(logging.WARNING, logger="deepsize.core"):
        partial = deep_size_of(chain, config=DeepSizeConfig(max_depth=3))
    assert sys.getsizeof(chain) < partial < full
    assert "maximum depth" in caplog.text

from deepsize import DeepSizeOf, shared_size
def test_contract_subclass():
    class Pair(DeepSizeOf):
        __slots__ = ('left', 'right')
        def __init__(self, left, right):
            self.left = left
            self.right = right
        def deep_size_of_children(self, context):
            return (shared_size(self.left, context)
                    + shared_size(self.right, context))

    left = [1000, 2000]
    pair = Pair(left, "abc")
    expected = (sys.getsizeof(pair) + sys.getsizeof(left)
                + sys.getsizeof(left[0]) + sys.getsizeof(left[1])
                + sys.getsizeof("abc"))
    assert pair.deep_size_of() == expected
    assert deep_size_of(pair) == expected
    # Both halves pointing to the same object
    same = Pair(left, left)
    assert same.deep_size_of() == expected - sys.getsizeof("abc")

def test_contract_is_abstract():
    with pytest.raises(TypeError):
        DeepSizeOf()

from deepsize import register
from deepsize.core import size_functions
def test_register_and_fallthrough():
    class Base:
        __slots__ = ('payload',)
    class Child(Base):
        __slots__ = ()

    @register(Child)
    def _child_size(obj, context):
        return NotImplemented
    @register(Base)
    def _base_size(obj, context):
        return 7 + shared_size(obj.payload, context)

    try:
        child = Child()
        child.payload = bytearray(10)
        # The payload is reached twice (size function and slot), counted once
        assert deep_size_of_children(child, Context()) == 7 + sys.getsizeof(child.payload)
    finally:
        size_functions.pop(Child)
        size_functions.pop(Base)

def test_register_requires_type():
    with pytest.raises(TypeError):
        register()

from deepsize import known_deep_size
def test_known_deep_size():
    class Handle:
        pass
    known_deep_size(64, Handle)
    try:
        handle = Handle()
        assert deep_size_of(handle) == sys.getsizeof(handle) + 64
        known_deep_size(0, Handle)
        assert deep_size_of(handle) == sys.getsizeof(handle)
    finally:
        size_functions.pop(Handle)

def test_known_deep_size_validation():
    for size in (-1, 1.5, True, "8"):
        with pytest.raises(ValueError):
            known_deep_size(size, object)

def test_unknown_type_warns(caplog):
    it = iter([1, 2])
    lst = [it, it]
    with caplog.at_level(logging.WARNING, logger="deepsize.core"):
        assert deep_size_of(lst) == sys.getsizeof(lst) + sys.getsizeof(it)
    assert caplog.text.count("cannot be introspected") == 1

def test_unknown_type_strict():
    with pytest.raises(TypeError, match="list_iterator"):
        deep_size_of(iter([1, 2]), config=DeepSizeConfig(strict=True))

from deepsize import is_static
class Color(enum.Enum):
    RED = 1
def test_static_objects():
    for obj in (None, True, False, Ellipsis, NotImplemented, int, sys, Color.RED):
        assert is_static(obj)
    assert not is_static(1)
    assert not is_static([])
    lst = [None, True, Color.RED, int, sys]
    assert deep_size_of(lst) == sys.getsizeof(lst)

def test_generic_instance():
    class Plain:
        def __init__(self):
            self.data = bytearray(10)
    obj = Plain()
    size = deep_size_of(obj)
    assert size == (sys.getsizeof(obj) + sys.getsizeof(obj.__dict__)
                    + sys.getsizeof("data") + sys.getsizeof(obj.data))

def test_generic_slotted_instance():
    class Base:
        __slots__ = ('a', '__private')
        def __init__(self):
            self.a = bytearray(5)
            self.__private = bytearray(7)
    class Slotted(Base):
        __slots__ = 'b'
    obj = Slotted()
    obj.b = (1000,)
    assert deep_size_of(obj) == (sys.getsizeof(obj) + sys.getsizeof(obj.a)
                                 + sys.getsizeof(obj._Base__private)
                                 + sys.getsizeof(obj.b) + sys.getsizeof(obj.b[0]))
    # Unset slots are skipped
    empty = Slotted()
    assert deep_size_of(empty) == sys.getsizeof(empty)

def _at_stack_depth(n, fn):
    if n == 0:
        return fn()
    return _at_stack_depth(n - 1, fn)

def test_called_from_deep_recursion(caplog):
    class Link:
        __slots__ = ('next',)
    head = Link()
    node = head
    for _ in range(1000):
        node.next = Link()
        node = node.next
    node.next = None
    # Half the stack is used by the caller; the default bound does not know it
    with caplog.at_level(logging.WARNING, logger="deepsize.core"):
        size = _at_stack_depth(sys.getrecursionlimit() // 2,
                               lambda: deep_size_of(head))
    assert size > sys.getsizeof(head)
    assert "maximum depth" in caplog.text
