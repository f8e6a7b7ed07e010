"""File format classes for IPS32 binary patches.

IPS32 is the 32-bit offset variant of IPS used by Switch patch loaders:
a "IPS32" header, records of (4-byte offset, 2-byte size, payload), and an
"EEOF" footer. There is no RLE record type.
"""
from __future__ import annotations

import logging
from typing import BinaryIO

from pchtxt import models
from pchtxt.patches import PatchCollection, PatchType

logger = logging.getLogger( __name__ )

IPS32_HEADER_MAGIC = b'IPS32'
IPS32_FOOTER_MAGIC = b'EEOF'


class IPS32Record( models.Block ):
    offset =    models.UInt32_BE()
    size =      models.UInt16_BE()
    data =      models.Bytes( length=models.Ref( 'size' ) )

    @property
    def repr( self ):
        return 'offset: 0x{:08x}, size: 0x{:04x}'.format( self.offset, self.size )


class IPS32( models.Block ):
    magic =     models.Const( models.Bytes( length=5 ), IPS32_HEADER_MAGIC )
    records =   models.BlockField( IPS32Record, stream_end=IPS32_FOOTER_MAGIC )

    @property
    def repr( self ):
        return 'records: {}'.format( len( self.records ) )


def ips32_from_collection( collection: PatchCollection ) -> IPS32:
    """Build an IPS32 block from the enabled BIN patches of a collection.

    HEAP and AMS patches, and disabled patches, are left out. Values longer
    than 0xffff bytes don't fit the size field; only the low 16 bits of the
    length are stored, so callers must split such values themselves.
    """
    records = []
    for patch in collection.patches:
        if patch.type != PatchType.BIN or not patch.enabled:
            continue
        for content in patch.contents:
            records.append( IPS32Record( {
                'offset': content.offset,
                'size': len( content.value ) & 0xffff,
                'data': bytes( content.value ),
            } ) )
    logger.debug( '{}: {} records'.format( collection.build_id, len( records ) ) )
    return IPS32( {'records': records} )


def dump_ips32( collection: PatchCollection ) -> bytes:
    """Return the IPS32 encoding of a collection."""
    return ips32_from_collection( collection ).export_data()


def write_ips32( collection: PatchCollection, fp: BinaryIO ) -> None:
    """Write the IPS32 encoding of a collection to a binary stream."""
    fp.write( dump_ips32( collection ) )


def read_ips32( data: bytes, strict: bool=False ) -> IPS32:
    """Import an IPS32 file from a byte string."""
    return IPS32( data, strict=strict )
