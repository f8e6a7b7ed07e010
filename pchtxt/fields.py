"""Definition classes for the fields used to describe binary patch formats.

Fields are laid out back to back: each one starts where the previous one
in the Block ended.
"""
from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, Type, Union

from typing_extensions import Literal

from pchtxt import common
from pchtxt.refs import Ref, property_get

if TYPE_CHECKING:
    from pchtxt.blocks import Block

logger = logging.getLogger( __name__ )

SignedEncoding = Literal["signed", "unsigned"]
EndianEncoding = Literal["big", "little"]


class FieldDefinitionError( Exception ):
    pass


class ParseError( Exception ):
    pass


class FieldValidationError( Exception ):
    pass


class Field( object ):
    def __init__( self, *, default: Any = None ):
        """Base class for Fields.

        default
            Default value to emit in the case of e.g. creating an empty Block.
        """
        self._position_hint = next( common.next_position_hint )
        self._name: Optional[str] = None
        self.default = default

    def __repr__( self ):
        desc = f"0x{id( self ):016x}"
        if isinstance( self.repr, str ):
            desc = self.repr
        return f"<{self.__class__.__name__}: {desc}>"

    @property
    def repr( self ) -> Optional[str]:
        """Plaintext summary of the Field."""
        return None

    def get_default( self, parent: Optional[Block] = None ) -> Any:
        return copy.copy( self.default )

    def get_from_buffer(
        self, buffer: common.BytesReadType, offset: int, parent: Optional[Block] = None
    ) -> Tuple[Any, int]:
        """Create a Python object from a byte string, using the field definition.

        buffer
            Input byte string to process.

        offset
            Position in the buffer where the Field's data starts.

        parent
            Parent block object where this Field is defined. Used for e.g.
            evaluating Refs.

        Returns a tuple of the value and the end offset of the data.
        """
        return None, offset

    def update_buffer_with_value(
        self, value: Any, buffer: common.BytesWriteType, parent: Optional[Block] = None
    ) -> None:
        """Append the encoded form of a Python object to a byte array.

        value
            Input Python object to process.

        buffer
            Output byte array to encode value into.

        parent
            Parent block object where this Field is defined.
        """
        self.validate( value, parent )

    def get_size( self, value: Any, parent: Optional[Block] = None ) -> int:
        """Return the size of the Field's data (in bytes)."""
        return 0

    def scrub( self, value: Any, parent: Optional[Block] = None ) -> Any:
        """Return the value coerced to the correct type of the Field (if necessary)."""
        return value

    def validate( self, value: Any, parent: Optional[Block] = None ) -> None:
        """Throw a FieldValidationError exception if the value can't be encoded."""
        pass

    def get_path( self, parent: Optional[Block] = None ) -> str:
        prefix = parent.get_path() if parent is not None else "<unbound>"
        return f"{prefix}.{self._name}"


class NumberField( Field ):
    def __init__(
        self,
        size: int,
        signedness: SignedEncoding,
        endian: EndianEncoding,
        *,
        default: int = 0,
    ):
        """Base class for fixed-width integers.

        size
            Width of the number, in bytes.

        signedness
            Either "signed" or "unsigned".

        endian
            Byte order, either "big" or "little".
        """
        super().__init__( default=default )
        if signedness not in ("signed", "unsigned"):
            raise FieldDefinitionError( f"Unknown signedness {signedness}" )
        if endian not in ("big", "little"):
            raise FieldDefinitionError( f"Unknown endianness {endian}" )
        self.size = size
        self.signed = signedness == "signed"
        self.endian = endian
        if self.signed:
            self.range = range( -(1 << (size * 8 - 1)), 1 << (size * 8 - 1) )
        else:
            self.range = range( 0, 1 << (size * 8) )

    def get_from_buffer( self, buffer, offset, parent=None ):
        end = offset + self.size
        if end > len( buffer ):
            raise ParseError(
                f"{self.get_path( parent )}: needed {self.size} bytes at offset 0x{offset:x}, buffer is only 0x{len( buffer ):x} long"
            )
        value = int.from_bytes( buffer[offset:end], byteorder=self.endian, signed=self.signed )
        return value, end

    def update_buffer_with_value( self, value, buffer, parent=None ):
        super().update_buffer_with_value( value, buffer, parent )
        buffer.extend( value.to_bytes( self.size, byteorder=self.endian, signed=self.signed ) )

    def get_size( self, value, parent=None ):
        return self.size

    def validate( self, value, parent=None ):
        if not isinstance( value, int ) or isinstance( value, bool ):
            raise FieldValidationError(
                f"{self.get_path( parent )}: Expecting type int, not {type( value )}"
            )
        if value not in self.range:
            raise FieldValidationError(
                f"{self.get_path( parent )}: Value {value} not in {self.range}"
            )

    @property
    def repr( self ):
        return f"{'Int' if self.signed else 'UInt'}{self.size * 8}_{self.endian}"


class UInt16_BE( NumberField ):
    def __init__( self, **kwargs ):
        super().__init__( 2, "unsigned", "big", **kwargs )


class UInt32_BE( NumberField ):
    def __init__( self, **kwargs ):
        super().__init__( 4, "unsigned", "big", **kwargs )


class Bytes( Field ):
    def __init__(
        self, *, length: Optional[Union[int, Ref[int]]] = None, default: bytes = b""
    ):
        """Field class for raw byte strings.

        length
            Number of bytes to read in. None reads to the end of the buffer.
        """
        super().__init__( default=default )
        self.length = length

    def get_from_buffer( self, buffer, offset, parent=None ):
        length = property_get( self.length, parent )
        if length is None:
            end = len( buffer )
        else:
            end = offset + length
            if end > len( buffer ):
                raise ParseError(
                    f"{self.get_path( parent )}: needed 0x{length:x} bytes at offset 0x{offset:x}, buffer is only 0x{len( buffer ):x} long"
                )
        return bytes( buffer[offset:end] ), end

    def update_buffer_with_value( self, value, buffer, parent=None ):
        super().update_buffer_with_value( value, buffer, parent )
        buffer.extend( value )

    def get_size( self, value, parent=None ):
        return len( value )

    def scrub( self, value, parent=None ):
        if common.is_bytes( value ):
            return bytes( value )
        return value

    def validate( self, value, parent=None ):
        if not common.is_bytes( value ):
            raise FieldValidationError(
                f"{self.get_path( parent )}: Expecting bytes, not {type( value )}"
            )
        # only fixed lengths are enforced; a Ref'd length can disagree with the payload
        if isinstance( self.length, int ) and len( value ) != self.length:
            raise FieldValidationError(
                f"{self.get_path( parent )}: Expecting {self.length} bytes, got {len( value )}"
            )

    @property
    def repr( self ):
        return f"length={self.length}"


class BlockField( Field ):
    def __init__(
        self,
        block_klass: Type[Block],
        *,
        stream_end: Optional[bytes] = None,
        default: Optional[List[Block]] = None,
    ):
        """Field class for a stream of Blocks.

        block_klass
            Block class used to parse each element.

        stream_end
            Byte pattern denoting the end of the stream. Without one the
            stream runs to the end of the buffer.
        """
        super().__init__( default=[] if default is None else default )
        if stream_end is not None and not common.is_bytes( stream_end ):
            raise FieldDefinitionError(
                f"stream_end must be of type bytes, not {stream_end.__class__}!"
            )
        self.block_klass = block_klass
        self.stream_end = stream_end

    def get_from_buffer( self, buffer, offset, parent=None ):
        result = []
        pointer = offset
        found_end = False
        while pointer < len( buffer ):
            if (
                self.stream_end is not None
                and buffer[pointer : pointer + len( self.stream_end )] == self.stream_end
            ):
                pointer += len( self.stream_end )
                found_end = True
                break
            element = self.block_klass(
                buffer[pointer:],
                parent=parent,
                path_hint=f"{self.get_path( parent )}[{len( result )}]",
            )
            result.append( element )
            pointer += element.get_size()

        if self.stream_end is not None and not found_end:
            logger.warning(
                f"{self.get_path( parent )}: reached end of buffer without finding {self.stream_end!r}"
            )
        return result, pointer

    def update_buffer_with_value( self, value, buffer, parent=None ):
        super().update_buffer_with_value( value, buffer, parent )
        for element in value:
            buffer.extend( element.export_data() )
        if self.stream_end is not None:
            buffer.extend( self.stream_end )

    def get_size( self, value, parent=None ):
        size = sum( element.get_size() for element in value )
        if self.stream_end is not None:
            size += len( self.stream_end )
        return size

    def validate( self, value, parent=None ):
        try:
            _ = iter( value )
        except TypeError:
            raise FieldValidationError(
                f"{self.get_path( parent )}: Type {type( value )} not iterable"
            )
        for index, element in enumerate( value ):
            if not isinstance( element, self.block_klass ):
                raise FieldValidationError(
                    f"{self.get_path( parent )}[{index}]: Expecting {self.block_klass.__name__}, not {type( element )}"
                )

    @property
    def repr( self ):
        return f"{self.block_klass.__name__}, stream_end={self.stream_end!r}"
