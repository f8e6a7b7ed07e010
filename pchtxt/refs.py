"""Definition classes for cross-references between fields."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pchtxt import common

if TYPE_CHECKING:
    from pchtxt.blocks import Block

T = TypeVar( "T" )


class Ref( Generic[T] ):
    """Base class for defining cross-references."""

    def __init__( self, path: str ):
        """Create a new Ref instance.

        path
            The path to traverse from the Block to reach the target, in
            property dot syntax (e.g. header.size).
        """
        self._position_hint = next( common.next_position_hint )
        if not type( path ) == str:
            raise TypeError( "path argument to Ref() should be a string" )
        self._path = tuple( path.split( "." ) )

    def get( self, instance: Block ) -> T:
        """Return an attribute from an object using the Ref path."""
        target = instance
        for attr in self._path:
            target = getattr( target, attr )
        return target  # type: ignore

    def __repr__( self ) -> str:
        return f"<{self.__class__.__name__}: {'.'.join( self._path )}>"


def property_get( prop: Any, instance: Block | None ) -> Any:
    """Resolve a value that might be a Ref against a Block."""
    if isinstance( prop, Ref ):
        return prop.get( instance )
    return prop

