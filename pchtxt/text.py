"""String helpers for scanning Patch Text lines.

None of these raise on malformed input; they return an empty or unchanged
result and leave validation to the caller.
"""
import re
import string
from typing import List

WHITESPACE = ' \t\n\v\f\r'
COMMENT_IDENTIFIER = '/'
QUOTE = '"'

ESCAPE_MAP = {
    'a': '\a',
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
    'v': '\v',
}

ASCII_LOWER = str.maketrans( string.ascii_uppercase, string.ascii_lowercase )
WHITESPACE_RE = re.compile( r'[ \t\n\v\f\r]+' )

C_INT_RE = re.compile( r'([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)' )


def trim( s: str ) -> str:
    return s.strip( WHITESPACE )


def ltrim( s: str ) -> str:
    return s.lstrip( WHITESPACE )


def rtrim( s: str ) -> str:
    return s.rstrip( WHITESPACE )


def lower( s: str ) -> str:
    """Lower-case ASCII letters only; other characters pass through unchanged."""
    return s.translate( ASCII_LOWER )


def split_tokens( s: str ) -> List[str]:
    """Split on runs of ASCII whitespace, ignoring leading and trailing runs."""
    return [token for token in WHITESPACE_RE.split( s ) if token]


def first_token( s: str ) -> str:
    """Return the characters before the first whitespace character.

    Leading whitespace is not skipped, so an indented string gives ''.
    """
    for i, ch in enumerate( s ):
        if ch in WHITESPACE:
            return s[:i]
    return s


def comment_pos( s: str ) -> int:
    """Return the index of the first comment identifier outside of a quoted span.

    Quote state toggles on every double quote, escaped or not. Returns
    len( s ) if there is no comment.
    """
    in_string = False
    for i, ch in enumerate( s ):
        if ch == COMMENT_IDENTIFIER and not in_string:
            return i
        if ch == QUOTE:
            in_string = not in_string
    return len( s )


def strip_comment( s: str ) -> str:
    return rtrim( s[:comment_pos( s )] )


def comment_content( s: str ) -> str:
    """Return the text of a comment, minus the run of slashes and spaces that opens it."""
    content = s[comment_pos( s ):]
    return content.lstrip( WHITESPACE + COMMENT_IDENTIFIER )


def is_hex( s: str ) -> bool:
    return bool( s ) and all( ch in string.hexdigits for ch in s )


def strip_zeros( s: str ) -> str:
    """Remove leading zeros, keeping at least one digit."""
    return s.lstrip( '0' ) or s[-1:]


def hex_byte( s: str ) -> int:
    return int( s[:2], 16 )


def unescape( s: str ) -> str:
    """Decode C-style backslash escapes.

    Unknown escapes produce the escaped character; a lone trailing backslash
    is dropped.
    """
    result = []
    chars = iter( s )
    for ch in chars:
        if ch == '\\':
            escaped = next( chars, None )
            if escaped is None:
                break
            result.append( ESCAPE_MAP.get( escaped, escaped ) )
        else:
            result.append( ch )
    return ''.join( result )


def parse_c_int( s: str ) -> int:
    """Parse an integer the way strtol() does with base 0.

    Accepts an optional sign, then a 0x-prefixed hexadecimal, 0-prefixed octal
    or decimal number. Anything after the number is ignored. Raises ValueError
    if there is no number at the start of the string.
    """
    match = C_INT_RE.match( ltrim( s ) )
    if not match:
        raise ValueError( f'invalid integer: {s!r}' )
    sign, digits = match.groups()
    if digits[:2].lower() == '0x':
        value = int( digits[2:], 16 )
    elif digits.startswith( '0' ):
        value = int( digits, 8 )
    else:
        value = int( digits, 10 )
    return -value if sign == '-' else value


def split_lines( text: str ) -> List[str]:
    """Split text on newlines the way a line-by-line stream reader would.

    Only '\\n' ends a line; a trailing '\\r' is left for trim() to remove. A
    final newline doesn't produce an extra empty line.
    """
    lines = text.split( '\n' )
    if lines and lines[-1] == '':
        lines.pop()
    return lines
