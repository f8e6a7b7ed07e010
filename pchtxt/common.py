import itertools
import mmap
from typing import Any, List, Tuple, Union

next_position_hint = itertools.count()

BytesReadType = Union[bytes, bytearray, mmap.mmap, memoryview]
BytesWriteType = bytearray
SerialiseType = Tuple[Tuple[str, str], Tuple[Tuple[str, Any], ...]]


def is_bytes( obj: Any ) -> bool:
    """Returns whether obj is an acceptable Python byte string."""
    return isinstance( obj, getattr( BytesReadType, '__args__' ) )


def serialise( obj: Any, fields: List[str] ) -> SerialiseType:
    return ((obj.__class__.__module__, obj.__class__.__name__), tuple( (x, getattr( obj, x )) for x in fields ))
