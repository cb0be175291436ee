"""
deepsize

Total memory footprint of Python values: the size of a value's own
representation plus every allocation it transitively owns, with shared
objects counted once and reference cycles terminated.

>>> from deepsize import deep_size_of
>>> deep_size_of({"a": [1, 2, 3], "b": "text"})
"""

from .context import Context
from .core import (DeepSizeOf, deep_size_of, deep_size_of_children,
                   inline_size, reserved_size, shared_size, is_static,
                   register, known_deep_size)
from .derive import deep_size, known_size
from .config import DeepSizeConfig

# Register size functions for builtin and NumPy types
from . import stdlib
from . import numpy

__version__ = "0.1.0"
