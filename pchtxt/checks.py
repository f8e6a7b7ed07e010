from __future__ import annotations

import logging
logger = logging.getLogger( __name__ )

from pchtxt import common
from pchtxt.refs import property_get

from typing import TYPE_CHECKING, Any
if TYPE_CHECKING:
    from pchtxt.blocks import Block
    from pchtxt.fields import Field

class CheckException( Exception ):
    pass

class Check( object ):
    def __init__( self, raise_exception: bool=False ):
        """Base class for Checks.

        raise_exception
            Whether to raise an exception if the check fails.
        """
        self._position_hint = next( common.next_position_hint )
        self.raise_exception = raise_exception

    def check_value( self, value: Any, parent: Block | None=None ):
        """Check if an imported value passes the check.

        Throws CheckException if raise_exception = True (or the parent Block is
        strict) and the value doesn't match.
        """
        pass

    def get_fields( self ) -> Field | None:
        """Return None or the Field embedded within the Check."""
        return None

    def get_target( self, parent: Block | None=None ) -> Any:
        """Return the value the embedded Field takes on export."""
        return None

    def __repr__( self ):
        desc = f'0x{id( self ):016x}'
        if isinstance( self.repr, str ):
            desc = self.repr
        return f'<{self.__class__.__name__}: {desc}>'

    repr = None


class Const( Check ):
    def __init__( self, field: Field, target, *args, **kwargs ):
        """Check for ensuring a Field matches a particular constant.

        On import, the value is tested. On export, the value is copied
        from the target.

        field
            Field instance to wrap.

        target
            Target to copy from on export.
        """
        super().__init__( *args, **kwargs )
        self.field = field
        self.target = target
        self.field.default = target

    def get_fields( self ):
        return self.field

    def get_target( self, parent=None ):
        return property_get( self.target, parent )

    def check_value( self, value, parent=None ):
        target = self.get_target( parent )
        if value != target:
            mismatch = f'{self}: expected {target!r}, found {value!r}!'
            if self.raise_exception or (parent is not None and parent._strict):
                raise CheckException( mismatch )
            logger.warning( mismatch )

    @property
    def repr( self ):
        return f'{self.field} == {self.target!r}'
