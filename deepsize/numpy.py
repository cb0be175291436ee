"""
Size functions for NumPy types.

Measuring sizes of NumPy arrays:

- `.nbytes` is the number of bytes consumed by the elements of the array,
  and *only*. This excludes the array header, but includes the memory of
  elements in views.
- ``sys.getsizeof`` returns the header, plus `.nbytes` if the array owns its
  data.
- Adding `.nbytes` for every array is unsatisfactory, because it double
  counts shared buffers. For example, in the following case it would count
  almost twice the memory actually used by `A`::

      [A[:-1], A[1:]]

- So a view contributes its header plus the *shared* size of its `base`.
  The context ensures the base is counted only once.

  When a value only uses part of an array through a view, this reports more
  than the memory it strictly needs. But the full base array is kept alive
  by the view, so its full size is what holding the value actually costs.
"""
import numpy as np

from .core import register, known_deep_size, shared_size, reserved_size

def _ndarray_reserved(arr: np.ndarray) -> int:
    return arr.nbytes if arr.flags.owndata else 0

@register(np.ndarray, reserved=_ndarray_reserved)
def _ndarray_size(arr, context):
    size = reserved_size(arr)
    if arr.base is not None:
        size += shared_size(arr.base, context)
    elif arr.dtype.kind == 'O' and arr.flags.owndata:
        # Object arrays store references; the referenced objects are owned too.
        # TODO: Structured dtypes with object fields are not traversed:
        #       `.flat` yields temporary records for them.
        for item in arr.flat:
            size += shared_size(item, context)
    return size

# Scalars keep their value inline; dtypes are cached and shared
known_deep_size(0, np.generic, np.dtype)
