"""Parser for the Patch Text (pchtxt) format.

A Patch Text is read in two passes over the same lines: the meta block at
the top of the file, then the body, which groups patches into one collection
per build ID. Fatal errors discard everything parsed so far.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import IO, List, Optional, Union

from pchtxt import text
from pchtxt.patches import Patch, PatchCollection, PatchContent, PatchTextMeta, \
                            PatchTextOutput, PatchType, TargetType

logger = logging.getLogger( __name__ )

SourceType = Union[str, bytes, IO]

TAG_IDENTIFIER = '@'
ECHO_IDENTIFIER = '#'
AUTHOR_IDENTIFIER_OPEN = '['
AUTHOR_IDENTIFIER_CLOSE = ']'
AMS_CHEAT_IDENTIFIER_OPEN = '['
AMS_CHEAT_IDENTIFIER_CLOSE = ']'

# meta tags
TITLE_TAG = '@title'
PROGRAM_ID_TAG = '@program'
URL_TAG = '@url'
NSOBID_TAG = '@nsobid'  # legacy
META_TAGS = {TITLE_TAG, PROGRAM_ID_TAG, URL_TAG, NSOBID_TAG}

# parsing tags
ENABLED_TAG = '@enabled'
DISABLED_TAG = '@disabled'
STOP_PARSING_TAG = '@stop'
FLAG_TAG = '@flag'

PATCH_TYPE_MAP = {
    'heap': PatchType.HEAP,
    'ams': PatchType.AMS,
}

# flags
BIG_ENDIAN_FLAG = 'be'
LITTLE_ENDIAN_FLAG = 'le'
NSOBID_FLAG = 'nsobid'
NROBID_FLAG = 'nrobid'
OFFSET_SHIFT_FLAG = 'offset_shift'
DEBUG_INFO_FLAG = 'debug_info'
ALT_DEBUG_INFO_FLAG = 'print_values'  # legacy

BUILD_ID_FLAGS = {
    NSOBID_FLAG: TargetType.NSO,
    NROBID_FLAG: TargetType.NRO,
}

MAX_OFFSET_DIGITS = 8


class PchtxtError( Exception ):
    """Base class for errors that abort parsing."""

    def __init__( self, line_num: int, message: str ):
        super().__init__( f'L{line_num}: {message}' )
        self.line_num = line_num


class MissingBuildIdError( PchtxtError ):
    pass


class MissingBuildIdValueError( PchtxtError ):
    pass


class OffsetOutOfRangeError( PchtxtError ):
    pass


class UnterminatedStringError( PchtxtError ):
    pass


class BadHexLengthError( PchtxtError ):
    pass


class InvalidHexError( PchtxtError ):
    pass


def read_source( source: SourceType ) -> str:
    """Read a Patch Text from a stream, byte string or string.

    Streams are read from their current position. Undecodable bytes are kept
    as surrogates, so encode_text() gives back the original bytes.
    """
    if hasattr( source, 'read' ):
        source = source.read()
    if isinstance( source, (bytes, bytearray) ):
        source = bytes( source ).decode( 'utf-8', 'surrogateescape' )
    return source


def encode_text( value: str ) -> bytes:
    return value.encode( 'utf-8', 'surrogateescape' )


def _unquote( value: str ) -> str:
    if len( value ) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def _parse_meta( lines: List[str], log: logging.Logger ) -> PatchTextMeta:
    result = PatchTextMeta()
    tag_to_attr = {
        TITLE_TAG: 'title',
        PROGRAM_ID_TAG: 'program_id',
        URL_TAG: 'url',
    }
    legacy_title = ''

    for line_num, line in enumerate( lines, 1 ):
        line = text.trim( line )

        # meta ends at the first empty line
        if not line:
            log.info( f'L{line_num}: done parsing meta' )
            break

        line = text.strip_comment( line )
        line_lower = text.lower( line )

        if line.startswith( TAG_IDENTIFIER ):
            tag = text.first_token( line_lower )
            if tag == STOP_PARSING_TAG:
                log.info( f'L{line_num}: done parsing meta (reached tag {STOP_PARSING_TAG})' )
                break
            if tag in tag_to_attr:
                value = _unquote( text.ltrim( line[len( tag ):] ) )
                setattr( result, tag_to_attr[tag], value )
                log.info( f'L{line_num}: meta: {tag}={value}' )

        elif line.startswith( ECHO_IDENTIFIER ):
            log.info( f'L{line_num}: {line}' )
            legacy_title = text.trim( line[1:] )
    else:
        log.info( 'meta parsing reached end of file' )

    if not result.title and legacy_title:
        result.title = legacy_title
        log.info( f'using "{legacy_title}" as legacy style title' )

    return result


class BodyParser( object ):
    """Line-by-line state machine for the body of a Patch Text.

    One instance holds the state of a single parse.
    """

    def __init__( self, log: logging.Logger ):
        self.log = log
        self.line_num = 0
        self.last_comment = ''
        self.patch = Patch()
        self.collection = PatchCollection()
        self.finished: OrderedDict[str, PatchCollection] = OrderedDict()
        self.offset_shift = 0
        self.big_endian = False
        self.accepting_patch = False
        self.stopped = False
        self.verbose = False

    def debug( self, message: str ):
        """Log a diagnostic that @flag debug_info promotes to INFO."""
        self.log.log( logging.INFO if self.verbose else logging.DEBUG, f'L{self.line_num}: {message}' )

    def info( self, message: str ):
        self.log.info( f'L{self.line_num}: {message}' )

    def warning( self, message: str ):
        self.log.warning( f'L{self.line_num}: WARNING {message}' )

    def parse( self, lines: List[str] ) -> List[PatchCollection]:
        for line_num, line in enumerate( lines, 1 ):
            self.line_num = line_num
            self.parse_line( line )
            if self.stopped:
                break
        else:
            self.line_num = len( lines ) + 1
            self.log.info( 'done parsing patches' )

        # add last patch and collection
        self.flush_patch()
        self.flush_collection()
        return list( self.finished.values() )

    def parse_line( self, raw_line: str ):
        line = text.trim( raw_line )
        line_no_comment = text.strip_comment( line )
        line_no_comment_lower = text.lower( line_no_comment )

        first_char = line[:1]
        if first_char == TAG_IDENTIFIER:
            self.parse_tag( line_no_comment, line_no_comment_lower )
        elif first_char == ECHO_IDENTIFIER:
            self.info( line )
        elif first_char == AMS_CHEAT_IDENTIFIER_OPEN:
            self.parse_ams_header( line_no_comment )
        elif first_char == text.COMMENT_IDENTIFIER:
            self.last_comment = text.comment_content( line )
        elif self.accepting_patch and line:
            self.parse_content( line_no_comment, line_no_comment_lower )

    def require_build_id( self ):
        if not self.collection.build_id:
            raise MissingBuildIdError( self.line_num, 'missing build id' )

    def flush_patch( self ):
        if self.patch.contents:
            self.collection.patches.append( self.patch )
            self.info( f'patch read: {self.patch.name}' )
        self.patch = Patch()

    def flush_collection( self ):
        if not self.collection.patches:
            return
        build_id = self.collection.build_id
        existing = self.finished.pop( build_id, None )
        if existing is not None and existing is not self.collection:
            # only reachable when a legacy @nsobid tag renamed the current collection
            existing.patches.extend( self.collection.patches )
            self.collection = existing
        self.finished[build_id] = self.collection
        self.debug( f'parsing stopped for {build_id}' )
        self.collection = PatchCollection()

    def parse_tag( self, line_no_comment: str, line_no_comment_lower: str ):
        tag = text.first_token( line_no_comment_lower )

        if tag == STOP_PARSING_TAG:
            self.info( f'done parsing patches (reached tag {STOP_PARSING_TAG})' )
            self.stopped = True

        elif tag in (ENABLED_TAG, DISABLED_TAG):
            self.start_patch( tag, line_no_comment_lower )

        elif tag == FLAG_TAG:
            flag_content = text.ltrim( line_no_comment[len( tag ):] )
            flag_type = text.first_token( flag_content )
            flag_value = text.ltrim( flag_content[len( flag_type ):] )
            self.parse_flag( text.lower( flag_type ), flag_value )

        elif line_no_comment_lower.startswith( NSOBID_TAG ):
            if not len( line_no_comment_lower ) > len( NSOBID_TAG ) + 1:
                raise MissingBuildIdValueError( self.line_num, 'legacy nsobid tag missing value' )
            self.collection.target_type = TargetType.NSO
            self.collection.build_id = text.ltrim( line_no_comment[len( NSOBID_TAG ) + 1:] )
            self.debug( f'parsing started for {self.collection.build_id} (legacy style bid)' )

        elif tag not in META_TAGS:
            self.warning( f'ignored unrecognized tag: {tag}' )

    def start_patch( self, tag: str, line_no_comment_lower: str ):
        self.require_build_id()
        self.flush_patch()

        self.patch.enabled = tag == ENABLED_TAG
        self.patch.line_num = self.line_num

        # name and author come from the last comment: "name [author]"
        author_start = self.last_comment.rfind( AUTHOR_IDENTIFIER_OPEN )
        author_end = self.last_comment.rfind( AUTHOR_IDENTIFIER_CLOSE )
        if author_start == -1:
            self.patch.name = text.trim( self.last_comment )
            self.patch.author = ''
        else:
            self.patch.name = text.trim( self.last_comment[:author_start] )
            if author_end > author_start:
                author = self.last_comment[author_start + 1:author_end]
            else:
                author = self.last_comment[author_start + 1:]
            self.patch.author = text.trim( author )

        line_after_tag = text.ltrim( line_no_comment_lower[len( tag ):] )
        patch_type = text.first_token( line_after_tag )
        self.patch.type = PATCH_TYPE_MAP.get( patch_type, PatchType.BIN )

        self.accepting_patch = True
        self.debug( f'parsing patch: {self.patch.name}' )

    def parse_flag( self, flag_type: str, flag_value: str ):
        if flag_type == BIG_ENDIAN_FLAG:
            self.big_endian = True

        elif flag_type == LITTLE_ENDIAN_FLAG:
            self.big_endian = False

        elif flag_type in BUILD_ID_FLAGS:
            self.flush_patch()
            self.flush_collection()

            existing = self.finished.pop( flag_value, None )
            if existing is not None:
                self.collection = existing
            else:
                self.collection = PatchCollection( flag_value, BUILD_ID_FLAGS[flag_type] )

            # a new build id never opens a patch by itself
            self.accepting_patch = False
            self.debug( f'parsing started for {self.collection.build_id}' )

        elif flag_type == OFFSET_SHIFT_FLAG:
            try:
                self.offset_shift = text.parse_c_int( flag_value )
            except ValueError:
                self.warning( f'ignored bad offset shift: {flag_value}' )
                return
            self.debug( f'offset shift is now {self.offset_shift}' )

        elif flag_type in (DEBUG_INFO_FLAG, ALT_DEBUG_INFO_FLAG):
            self.verbose = True
            self.info( 'additional debug info enabled' )

        else:
            self.warning( f'ignored unrecognized flag type: {flag_type}' )

    def parse_ams_header( self, line_no_comment: str ):
        self.require_build_id()
        self.flush_patch()

        name_end = line_no_comment.rfind( AMS_CHEAT_IDENTIFIER_CLOSE )
        name = line_no_comment[1:name_end] if name_end != -1 else line_no_comment[1:]
        # accepting_patch is left alone: lines below the header are only read
        # if an earlier @enabled/@disabled switched it on
        self.patch = Patch( text.trim( name ), '', PatchType.AMS, True, self.line_num )
        self.debug( f'parsing AMS cheat: {self.patch.name}' )

    def parse_content( self, line_no_comment: str, line_no_comment_lower: str ):
        if self.patch.type == PatchType.AMS:
            self.patch.contents.append( PatchContent( 0, encode_text( line_no_comment ) ) )
            self.debug( f'AMS cheat: {line_no_comment}' )
            return

        offset_str = text.first_token( line_no_comment_lower )
        value_str = text.ltrim( line_no_comment_lower[len( offset_str ):] )

        if not text.is_hex( offset_str ):
            self.debug( f'line ignored: invalid offset: {line_no_comment}' )
            return
        offset_str = text.strip_zeros( offset_str )
        if len( offset_str ) > MAX_OFFSET_DIGITS:
            raise OffsetOutOfRangeError( self.line_num, f'offset: {offset_str} out of range' )

        offset = (int( offset_str, 16 ) + self.offset_shift) & 0xffffffff
        if value_str.startswith( '"' ):
            value = self.parse_string_value( value_str )
        else:
            value = self.parse_hex_value( value_str )

        content = PatchContent( offset, value )
        self.patch.contents.append( content )
        self.debug( f'offset: {content.offset:08x} value: {content.value.hex()} len: {len( content.value )}' )

    def parse_string_value( self, value_str: str ) -> bytes:
        closing_pos = 0
        while True:
            closing_pos = value_str.find( '"', closing_pos + 1 )
            if closing_pos == -1:
                raise UnterminatedStringError( self.line_num, f'cannot find string closing: {value_str}' )
            backslashes = len( value_str[1:closing_pos] ) - len( value_str[1:closing_pos].rstrip( '\\' ) )
            if backslashes % 2 == 0:
                break
        return encode_text( text.unescape( value_str[1:closing_pos] ) ) + b'\x00'

    def parse_hex_value( self, value_str: str ) -> bytes:
        value = bytearray()
        for token in text.split_tokens( value_str ):
            if len( token ) % 2 != 0:
                raise BadHexLengthError( self.line_num, f'bad length for hex values: {token}' )
            if not text.is_hex( token ):
                raise InvalidHexError( self.line_num, f'not valid hex values: {token}' )
            pairs = [token[i:i + 2] for i in range( 0, len( token ), 2 )]
            if self.big_endian:
                pairs.reverse()
            value.extend( text.hex_byte( pair ) for pair in pairs )
        return bytes( value )


def get_pchtxt_meta( source: SourceType, log: Optional[logging.Logger]=None ) -> PatchTextMeta:
    """Parse the meta data block at the top of a Patch Text.

    source
        Patch Text as a text stream, byte string or string.

    log
        Logger to send parsing messages to. Defaults to this module's logger.
    """
    log = log if log is not None else logger
    return _parse_meta( text.split_lines( read_source( source ) ), log )


def parse_pchtxt(
    source: SourceType, log: Optional[logging.Logger]=None, strict: bool=False
) -> PatchTextOutput:
    """Parse a Patch Text into its meta data and patch collections.

    source
        Patch Text as a text stream, byte string or string. Streams are read
        from their current position.

    log
        Logger to send parsing messages to. Defaults to this module's logger.

    strict
        Raise the PchtxtError that aborted parsing, instead of logging it and
        returning an empty PatchTextOutput. Defaults to False.

    A fatal error returns an output with default meta data and no
    collections, so callers should treat an empty result for non-trivial
    input as a failed parse.
    """
    log = log if log is not None else logger
    lines = text.split_lines( read_source( source ) )
    meta = _parse_meta( lines, log )
    try:
        collections = BodyParser( log ).parse( lines )
    except PchtxtError as e:
        log.error( f'{e}, abort parsing' )
        if strict:
            raise
        return PatchTextOutput()
    return PatchTextOutput( meta, collections )


def update_pchtxt(
    output: PatchTextOutput, target: IO[str], log: Optional[logging.Logger]=None
) -> int:
    """Rewrite the @enabled/@disabled tags of a Patch Text to match parsed patches.

    output
        PatchTextOutput originally parsed from the same Patch Text.

    target
        Read/write text stream holding the Patch Text. It is rewritten in
        place from the start.

    log
        Logger to send messages to. Defaults to this module's logger.

    Returns how many patches now have a tag line matching their state.
    """
    log = log if log is not None else logger
    target.seek( 0 )
    lines = target.read().split( '\n' )

    updated = 0
    for collection in output.collections:
        for patch in collection.patches:
            index = patch.line_num - 1
            if index not in range( len( lines ) ):
                log.warning( f'L{patch.line_num}: WARNING patch {patch.name} is outside of the file' )
                continue
            raw_line = lines[index]
            body = text.ltrim( raw_line )
            indent = raw_line[:len( raw_line ) - len( body )]
            tag = text.first_token( body )
            if text.lower( tag ) not in (ENABLED_TAG, DISABLED_TAG):
                log.warning( f'L{patch.line_num}: WARNING patch {patch.name} has no tag to update' )
                continue
            new_tag = ENABLED_TAG if patch.enabled else DISABLED_TAG
            lines[index] = indent + new_tag + body[len( tag ):]
            updated += 1

    target.seek( 0 )
    target.write( '\n'.join( lines ) )
    target.truncate()
    log.info( f'updated {updated} patches' )
    return updated
