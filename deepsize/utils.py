# -*- coding: utf-8 -*-

# ******************* Organization of this module ************************** #
#                                                                            #
# Sections:                                                                  #
#   - Platform constants                                                     #
#   - Capacity estimates                                                     #
#   - String utilities                                                       #
#   - Introspection                                                          #
#                                                                            #
# ************************************************************************** #

"""
Small helpers shared by the size functions.

None of these functions know anything about traversal state; they only
answer questions about the host platform or format numbers for messages.
"""


########################
# Platform constants
import struct

POINTER_SIZE = struct.calcsize('P')  # sizeof(void*)

########################
# Capacity estimates
#
# These are only used when the interpreter cannot report the reserved size of
# a container itself (`__sizeof__` missing or raising, as on PyPy).
# They follow CPython's growth policies and are therefore approximate.

def hashed_capacity(n: int) -> int:
    """
    Estimated number of slots in a hash table holding `n` entries.

    Tables start at 8 slots and double whenever they would become more than
    2/3 full. An empty container is assumed not to have allocated a table.

    >>> hashed_capacity(0)
    0
    >>> hashed_capacity(5)
    8
    >>> hashed_capacity(6)
    16
    """
    if n <= 0:
        return 0
    slots = 8
    while 3*n > 2*slots:
        slots *= 2
    return slots

def list_capacity_estimate(n: int) -> int:
    """
    Estimated number of slots allocated by a list which grew to `n` elements
    by appending. Uses CPython's over-allocation rule.
    """
    if n <= 0:
        return 0
    return (n + (n >> 3) + 6) & ~3

################
# String utilities

def format_bytes(num: int, suffix: str="B") -> str:
    """
    Human readable byte count, using binary prefixes.

    >>> format_bytes(512)
    '512.0B'
    >>> format_bytes(2048)
    '2.0KiB'
    """
    for unit in ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"]:
        if abs(num) < 1024.0:
            return f"{num:3.1f}{unit}{suffix}"
        num /= 1024.0
    return f"{num:.1f}Yi{suffix}"

###################
# Introspection

def fully_qualified_name(o) -> str:
    """
    Return fully qualified name for a class or function (i.e. including
    the module). Builtins are returned without module prefix.

    >>> from deepsize.utils import fully_qualified_name
    >>> from collections import OrderedDict
    >>> fully_qualified_name(OrderedDict)
    'collections.OrderedDict'
    """
    import builtins

    name = getattr(o, '__qualname__', getattr(o, '__name__', None))
    if name is None:
        raise TypeError("Argument has no `__qualname__` or `__name__` "
                        "attribute. Are you certain it is a class or function?")
    module = getattr(o, '__module__', None)
    if module is None or module == builtins.__name__:
        return name
    else:
        return module + '.' + name
