"""Definition classes for data blocks."""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

logger = logging.getLogger( __name__ )

if TYPE_CHECKING:
    from pchtxt.fields import Field
    from pchtxt.checks import Check

from pchtxt import common


class FieldDescriptor:
    def __init__( self, name: str ):
        """Attribute wrapper class for Fields.

        name
            Name of the Field.
        """
        self.name = name

    def __get__( self, instance: Block, cls: type[Block] ) -> Any:
        try:
            if instance is None:
                return cls._fields[self.name]
            return instance._field_data[self.name]
        except KeyError:
            raise AttributeError( self.name )

    def __set__( self, instance: Block, value: Any ):
        if instance is None:
            return
        instance._field_data[self.name] = value
        return


class BlockMeta( type ):
    def __new__( mcs, name, bases, attrs ):
        """Metaclass for Block which detects and wraps attributes from the class definition."""
        from pchtxt.checks import Check
        from pchtxt.fields import Field

        fields: OrderedDict[str, Field] = OrderedDict()
        checks: OrderedDict[str, Check] = OrderedDict()

        for base in bases:
            if hasattr( base, "_fields" ):
                fields.update( base._fields )
            if hasattr( base, "_checks" ):
                checks.update( base._checks )

        ordered_attrs = sorted(
            attrs.items(), key=lambda i: getattr( i[1], "_position_hint", 0 )
        )
        for key, value in ordered_attrs:
            if isinstance( value, Field ):
                fields[key] = value
            elif isinstance( value, Check ):
                checks[key] = value
                check_field = value.get_fields()
                if check_field is not None:
                    fields[key] = check_field

        for key in fields:
            attrs[key] = FieldDescriptor( key )

        attrs["_fields"] = fields
        attrs["_checks"] = checks

        klass = type.__new__( mcs, name, bases, attrs )

        for field_name, field in fields.items():
            field._name = field_name

        return klass


class Block( metaclass=BlockMeta ):
    _parent: Block | None = None

    _fields: OrderedDict[str, Field]
    _checks: OrderedDict[str, Check]
    _field_data: dict[str, Any]
    _strict: bool

    def __init__(
        self,
        source_data: common.BytesReadType | dict[str, Any] | None = None,
        *,
        parent: Block | None = None,
        path_hint: str | None = None,
        strict: bool = False,
    ):
        """Base class for Blocks.

        source_data
            Source data to construct Block with. Can be a byte string or a
            dictionary of attribute: value pairs.

        parent
            Parent Block object where this Block is defined.

        path_hint
            Cache a string containing the path of the current Block, relative
            to the root.

        strict
            Throw an exception if a Check fails, instead of logging a warning.
            Inherited from the parent Block. Defaults to False.
        """
        self._field_data = {}
        if parent is not None:
            assert isinstance( parent, Block )
        self._parent = parent
        self._path_hint = path_hint
        if self._path_hint is None:
            self._path_hint = f"<{self.__class__.__name__}>"
        self._strict = strict or (parent._strict if parent else False)

        if isinstance( source_data, dict ):
            self.import_data( None )
            self.update_data( source_data )
        else:
            self.import_data( source_data )

    def __repr__( self ) -> str:
        desc = f"0x{id( self ):016x}"
        if isinstance( self.repr, str ):
            desc = self.repr
        return f"<{self.__class__.__name__}: {desc}>"

    @property
    def repr( self ) -> str | None:
        """Plaintext summary of the Block."""
        names = list( self._field_data )
        values: list[str] = []
        for name in names:
            value = getattr( self, name )
            if common.is_bytes( value ):
                output = f"bytes[{len( value )}]"
            elif isinstance( value, list ):
                output = f"list[{len( value )}]"
            else:
                output = str( value )
            values.append( f"{name}={output}" )
        return ", ".join( values )

    def get_path( self ) -> str:
        return self._path_hint or ""

    def import_data( self, raw_buffer: common.BytesReadType | None ) -> None:
        """Import data from a byte array.

        raw_buffer
            Byte array to import from. None loads the Field defaults.
        """
        klass = self.__class__
        self._field_data = {}

        if raw_buffer is None:
            for name, field in klass._fields.items():
                self._field_data[name] = field.get_default( parent=self )
            return

        assert common.is_bytes( raw_buffer )
        pointer = 0
        for name, field in klass._fields.items():
            self._field_data[name], pointer = field.get_from_buffer(
                raw_buffer, pointer, parent=self
            )
            if logger.isEnabledFor( logging.DEBUG ):
                logger.debug(
                    f"{self.get_path()}.{name}: loaded {self._field_data[name]!r}, now at 0x{pointer:x}"
                )

        for name, check in klass._checks.items():
            check.check_value( self._field_data[name], parent=self )

    def update_data( self, data: dict[str, Any] ) -> None:
        for name, value in data.items():
            if name not in self._fields:
                raise AttributeError(
                    f"{self.__class__.__name__} has no field {name}"
                )
            setattr( self, name, value )

    def export_data( self ) -> bytes:
        """Export data to a byte string."""
        klass = self.__class__

        self.update_deps()
        for name, field in klass._fields.items():
            self._field_data[name] = field.scrub( self._field_data[name], parent=self )

        output = bytearray()
        for name, field in klass._fields.items():
            field.update_buffer_with_value( self._field_data[name], output, parent=self )
        return bytes( output )

    def update_deps( self ) -> None:
        """Copy the targets of all Checks into their Fields."""
        for name, check in self._checks.items():
            if check.get_fields() is not None:
                self._field_data[name] = check.get_target( parent=self )

    def get_size( self ) -> int:
        """Get the size (in bytes) of the exported data from this Block instance."""
        return sum(
            field.get_size( self._field_data[name], parent=self )
            for name, field in self._fields.items()
        )
