"""Classes describing the parsed contents of a Patch Text."""
from __future__ import annotations

import enum
from typing import List, Optional

from pchtxt import common


class PatchType( enum.Enum ):
    BIN = 'bin'
    HEAP = 'heap'
    AMS = 'ams'


class TargetType( enum.Enum ):
    NSO = 'nso'
    NRO = 'nro'


class Model( object ):
    """Base class for plain value objects, compared field by field."""

    _serialise_fields: List[str] = []

    @property
    def serialised( self ) -> common.SerialiseType:
        """Tuple containing the contents of the object."""
        return common.serialise( self, self._serialise_fields )

    def __eq__( self, other ):
        if not isinstance( other, Model ):
            return NotImplemented
        return self.serialised == other.serialised

    __hash__ = None

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.repr}>'


class PatchContent( Model ):
    _serialise_fields = ['offset', 'value']

    def __init__( self, offset: int=0, value: bytes=b'' ):
        #: Offset to write at; always 0 for AMS cheats.
        self.offset = offset
        #: Bytes to write, or the plain text of one line for AMS cheats.
        self.value = bytes( value )

    @property
    def repr( self ):
        return f'offset: 0x{self.offset:08x}, value: {self.value.hex()}'


class Patch( Model ):
    _serialise_fields = ['name', 'author', 'type', 'enabled', 'line_num', 'contents']

    def __init__(
        self,
        name: str='',
        author: str='',
        type: PatchType=PatchType.BIN,
        enabled: bool=False,
        line_num: int=0,
        contents: Optional[List[PatchContent]]=None,
    ):
        self.name = name
        self.author = author
        self.type = type
        self.enabled = enabled
        #: Line of the @enabled/@disabled tag (or AMS header) that started the patch.
        self.line_num = line_num
        self.contents = contents if contents is not None else []

    @property
    def repr( self ):
        state = 'enabled' if self.enabled else 'disabled'
        return f'{self.name!r} by {self.author!r}, {self.type.value}, {state}, contents: {len( self.contents )}'


class PatchCollection( Model ):
    """Patches for one binary, identified by its build ID."""

    _serialise_fields = ['build_id', 'target_type', 'patches']

    def __init__(
        self,
        build_id: str='',
        target_type: TargetType=TargetType.NSO,
        patches: Optional[List[Patch]]=None,
    ):
        self.build_id = build_id
        self.target_type = target_type
        self.patches = patches if patches is not None else []

    @property
    def repr( self ):
        return f'{self.build_id} ({self.target_type.value}), patches: {len( self.patches )}'


class PatchTextMeta( Model ):
    _serialise_fields = ['title', 'program_id', 'url']

    def __init__( self, title: str='', program_id: str='', url: str='' ):
        self.title = title
        self.program_id = program_id
        self.url = url

    @property
    def repr( self ):
        return f'title: {self.title!r}, program_id: {self.program_id!r}, url: {self.url!r}'


class PatchTextOutput( Model ):
    """Everything parsed from one Patch Text; one collection per target binary."""

    _serialise_fields = ['meta', 'collections']

    def __init__(
        self,
        meta: Optional[PatchTextMeta]=None,
        collections: Optional[List[PatchCollection]]=None,
    ):
        self.meta = meta if meta is not None else PatchTextMeta()
        self.collections = collections if collections is not None else []

    @property
    def repr( self ):
        return f'{self.meta.title!r}, collections: {len( self.collections )}'
