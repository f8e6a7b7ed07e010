import contextlib
import io
import logging
import os
import tempfile
import unittest

from pchtxt import cli, ips32, text
from pchtxt import models as pm
from pchtxt.parser import parse_pchtxt, get_pchtxt_meta, update_pchtxt, \
                            PchtxtError, BadHexLengthError, InvalidHexError, \
                            MissingBuildIdError, UnterminatedStringError
from pchtxt.patches import Patch, PatchCollection, PatchContent, PatchTextMeta, \
                            PatchTextOutput, PatchType, TargetType

BID = '0123456789ABCDEF0123456789ABCDEF'

SCENARIO = """@nsobid 0123456789ABCDEF0123456789ABCDEF
@enabled
00000010 AABB
"""

SCENARIO_IPS = b'IPS32' + b'\x00\x00\x00\x10' + b'\x00\x02' + b'\xaa\xbb' + b'EEOF'


def body( *lines ):
    return '\n'.join( ('@nsobid {}'.format( BID ),) + lines ) + '\n'


def only_patches( output ):
    assert len( output.collections ) == 1
    return output.collections[0].patches


class TestText( unittest.TestCase ):
    def test_first_token( self ):
        self.assertEqual( text.first_token( 'abc def' ), 'abc' )
        self.assertEqual( text.first_token( 'abc\tdef' ), 'abc' )
        self.assertEqual( text.first_token( ' abc' ), '' )
        self.assertEqual( text.first_token( '' ), '' )

    def test_comment_pos( self ):
        self.assertEqual( text.comment_pos( 'abc // x' ), 4 )
        self.assertEqual( text.comment_pos( '"a/b" /c' ), 6 )
        self.assertEqual( text.comment_pos( 'abc' ), 3 )
        self.assertEqual( text.strip_comment( '00 "a/b"   // c' ), '00 "a/b"' )

    def test_comment_content( self ):
        self.assertEqual( text.comment_content( '// hello [me]' ), 'hello [me]' )
        self.assertEqual( text.comment_content( '/ / x' ), 'x' )
        self.assertEqual( text.comment_content( '//' ), '' )

    def test_is_hex( self ):
        self.assertTrue( text.is_hex( '00aF' ) )
        self.assertFalse( text.is_hex( '0g' ) )
        self.assertFalse( text.is_hex( '' ) )

    def test_lower_ascii_only( self ):
        self.assertEqual( text.lower( 'ABC xyz' ), 'abc xyz' )
        self.assertEqual( text.lower( '\u00c4rger \u00c9T\u00c9' ), '\u00c4rger \u00c9t\u00c9' )

    def test_split_tokens( self ):
        self.assertEqual( text.split_tokens( ' aa\tbb \r' ), ['aa', 'bb'] )
        self.assertEqual( text.split_tokens( 'aa\u00a0bb cc' ), ['aa\u00a0bb', 'cc'] )
        self.assertEqual( text.split_tokens( '' ), [] )

    def test_strip_zeros( self ):
        self.assertEqual( text.strip_zeros( '000010' ), '10' )
        self.assertEqual( text.strip_zeros( '0000' ), '0' )
        self.assertEqual( text.strip_zeros( 'abc' ), 'abc' )
        for token in ('0', '00000001', '0badf00d', 'ffffffff', '00000000', '1000'):
            self.assertEqual( int( text.strip_zeros( token ), 16 ), int( token, 16 ) )

    def test_unescape( self ):
        self.assertEqual( text.unescape( r'\a\b\f\n\r\t\v' ), '\a\b\f\n\r\t\v' )
        self.assertEqual( text.unescape( r'a\"b\\c\qd' ), 'a"b\\cqd' )
        self.assertEqual( text.unescape( 'abc\\' ), 'abc' )
        self.assertEqual( text.unescape( 'plain' ), 'plain' )

    def test_parse_c_int( self ):
        self.assertEqual( text.parse_c_int( '0x10' ), 16 )
        self.assertEqual( text.parse_c_int( '-0x10' ), -16 )
        self.assertEqual( text.parse_c_int( '010' ), 8 )
        self.assertEqual( text.parse_c_int( '10' ), 10 )
        self.assertEqual( text.parse_c_int( '+7' ), 7 )
        self.assertEqual( text.parse_c_int( '0' ), 0 )
        self.assertEqual( text.parse_c_int( '  42 trailing' ), 42 )
        with self.assertRaises( ValueError ):
            text.parse_c_int( 'abc' )
        with self.assertRaises( ValueError ):
            text.parse_c_int( '' )

    def test_split_lines( self ):
        self.assertEqual( text.split_lines( 'a\nb\n' ), ['a', 'b'] )
        self.assertEqual( text.split_lines( 'a\r\nb' ), ['a\r', 'b'] )
        self.assertEqual( text.split_lines( 'a\n\n' ), ['a', ''] )
        self.assertEqual( text.split_lines( '' ), [] )


class TestMeta( unittest.TestCase ):
    def test_fields( self ):
        source = '@title "My Game"\n@program 0100000000010000\n@url "https://example.com/a.pchtxt"\n\n@stop\n'
        meta = get_pchtxt_meta( source )
        self.assertEqual( meta, PatchTextMeta( 'My Game', '0100000000010000', 'https://example.com/a.pchtxt' ) )

    def test_unquoted_url_loses_comment( self ):
        meta = get_pchtxt_meta( '@url https://example.com\n' )
        self.assertEqual( meta.url, 'https:' )

    def test_comment_stripped( self ):
        meta = get_pchtxt_meta( '@title Foo   // the game\n' )
        self.assertEqual( meta.title, 'Foo' )

    def test_legacy_title( self ):
        meta = get_pchtxt_meta( '# First\n#  Second \n\n# Not meta\n' )
        self.assertEqual( meta.title, 'Second' )

    def test_legacy_title_is_fallback_only( self ):
        meta = get_pchtxt_meta( '@title Real\n# Legacy\n' )
        self.assertEqual( meta.title, 'Real' )

    def test_blank_line_ends_meta( self ):
        meta = get_pchtxt_meta( '@title A\n\n@url "b"\n' )
        self.assertEqual( meta.title, 'A' )
        self.assertEqual( meta.url, '' )

    def test_stop_ends_meta( self ):
        meta = get_pchtxt_meta( '@stop\n@title X\n' )
        self.assertEqual( meta.title, '' )

    def test_stream_source( self ):
        meta = get_pchtxt_meta( io.StringIO( '@title Streamed\n' ) )
        self.assertEqual( meta.title, 'Streamed' )


class TestParser( unittest.TestCase ):
    def test_scenario( self ):
        output = parse_pchtxt( SCENARIO )
        expected = PatchTextOutput( PatchTextMeta(), [
            PatchCollection( BID, TargetType.NSO, [
                Patch( '', '', PatchType.BIN, True, 2, [PatchContent( 0x10, b'\xaa\xbb' )] ),
            ] ),
        ] )
        self.assertEqual( output, expected )

    def test_bytes_and_stream_sources( self ):
        self.assertEqual( parse_pchtxt( SCENARIO.encode( 'utf8' ) ), parse_pchtxt( SCENARIO ) )

        stream = io.StringIO( '@title skipped\n' + SCENARIO )
        stream.readline()
        self.assertEqual( parse_pchtxt( stream ), parse_pchtxt( SCENARIO ) )

    def test_meta_and_body( self ):
        source = '@title Game\n@program 0100aaaa00000000\n\n' + body( '@enabled', '00 01' )
        output = parse_pchtxt( source )
        self.assertEqual( output.meta.title, 'Game' )
        self.assertEqual( output.meta.program_id, '0100aaaa00000000' )
        self.assertEqual( len( output.collections ), 1 )

    def test_name_and_author( self ):
        patches = only_patches( parse_pchtxt( body(
            '// Infinite Health [someone]',
            '@enabled',
            '0000abcd 01020304',
            '/ No Author',
            '@disabled',
            '00 05',
        ) ) )
        self.assertEqual( patches[0].name, 'Infinite Health' )
        self.assertEqual( patches[0].author, 'someone' )
        self.assertEqual( patches[0].contents, [PatchContent( 0xabcd, b'\x01\x02\x03\x04' )] )
        self.assertEqual( patches[1].name, 'No Author' )
        self.assertEqual( patches[1].author, '' )
        self.assertFalse( patches[1].enabled )
        self.assertEqual( patches[1].line_num, 6 )

    def test_patch_types( self ):
        patches = only_patches( parse_pchtxt( body(
            '@enabled heap',
            '00 01',
            '@disabled HEAP',
            '00 02',
            '@enabled something',
            '00 03',
        ) ) )
        self.assertEqual( [p.type for p in patches], [PatchType.HEAP, PatchType.HEAP, PatchType.BIN] )

    def test_ams_type_from_tag( self ):
        patches = only_patches( parse_pchtxt( body(
            '@enabled ams',
            '04000000 00000000 0000ABCD  // jump',
        ) ) )
        self.assertEqual( patches[0].type, PatchType.AMS )
        self.assertEqual( patches[0].contents, [PatchContent( 0, b'04000000 00000000 0000ABCD' )] )

    def test_empty_patch_not_committed( self ):
        patches = only_patches( parse_pchtxt( body( '@enabled', '@enabled', '00 01' ) ) )
        self.assertEqual( len( patches ), 1 )
        self.assertEqual( patches[0].line_num, 3 )

    def test_big_endian( self ):
        patches = only_patches( parse_pchtxt( body(
            '@flag be',
            '@enabled',
            '00000000 11223344 5566',
            '@flag le',
            '00000004 11223344 5566',
        ) ) )
        self.assertEqual( patches[0].contents[0].value, b'\x44\x33\x22\x11\x66\x55' )
        self.assertEqual( patches[0].contents[1].value, b'\x11\x22\x33\x44\x55\x66' )

    def test_offset_shift( self ):
        patches = only_patches( parse_pchtxt( body(
            '@enabled',
            '00000010 00',
            '@flag offset_shift 0x100',
            '00000010 00',
            '@flag offset_shift -0x20',
            '00000010 00',
            '@flag offset_shift 010',
            '00000010 00',
            '@flag offset_shift 0x10',
            'fffffff8 00',
        ) ) )
        offsets = [c.offset for c in patches[0].contents]
        self.assertEqual( offsets, [0x10, 0x110, 0xfffffff0, 0x18, 0x8] )

    def test_bad_offset_shift_is_ignored( self ):
        with self.assertLogs( 'pchtxt.parser', 'WARNING' ):
            patches = only_patches( parse_pchtxt( body(
                '@flag offset_shift 0x10',
                '@flag offset_shift nope',
                '@enabled',
                '00000010 00',
            ) ) )
        self.assertEqual( patches[0].contents[0].offset, 0x20 )

    def test_offset_length( self ):
        patches = only_patches( parse_pchtxt( body( '@enabled', '000000001 00' ) ) )
        self.assertEqual( patches[0].contents[0].offset, 1 )

        output = parse_pchtxt( body( '@enabled', '123456789 00' ) )
        self.assertEqual( output.collections, [] )

    def test_invalid_offset_skips_line( self ):
        patches = only_patches( parse_pchtxt( body( '@enabled', 'xyz 00', '00000002 ff' ) ) )
        self.assertEqual( patches[0].contents, [PatchContent( 2, b'\xff' )] )

    def test_offset_only_line( self ):
        patches = only_patches( parse_pchtxt( body( '@enabled', '00000010' ) ) )
        self.assertEqual( patches[0].contents, [PatchContent( 0x10, b'' )] )

    def test_string_values( self ):
        patches = only_patches( parse_pchtxt( body(
            '@enabled',
            r'00000000 "hi\n"',
            r'00000010 "a\"b"',
            r'00000020 "a\\"',
            '00000030 "Mixed Case"   // lower-cased with the rest of the line',
            '00000040 "a/b"',
        ) ) )
        values = [c.value for c in patches[0].contents]
        self.assertEqual( values, [b'hi\n\x00', b'a"b\x00', b'a\\\x00', b'mixed case\x00', b'a/b\x00'] )

    def test_non_ascii_string_value( self ):
        patches = only_patches( parse_pchtxt( body( '@enabled', '00000010 "\u00c4rger"' ) ) )
        self.assertEqual( patches[0].contents[0].value, b'\xc3\x84rger\x00' )

    def test_unterminated_string( self ):
        output = parse_pchtxt( body( '@enabled', '00 "abc' ) )
        self.assertEqual( output, PatchTextOutput() )

        with self.assertRaises( UnterminatedStringError ):
            parse_pchtxt( body( '@enabled', r'00 "abc\"' ), strict=True )

    def test_odd_hex_discards_everything( self ):
        source = '@title Game\n\n' + body(
            '@enabled',
            '00000000 0102',
            '@flag nsobid FEDC',
            '@enabled',
            '00000000 ABC',
        )
        with self.assertLogs( 'pchtxt.parser', 'ERROR' ):
            output = parse_pchtxt( source )
        self.assertEqual( output.collections, [] )
        self.assertEqual( output.meta, PatchTextMeta() )

    def test_invalid_hex( self ):
        self.assertEqual( parse_pchtxt( body( '@enabled', '00 zz' ) ).collections, [] )

    def test_hex_split_on_ascii_whitespace_only( self ):
        self.assertEqual( parse_pchtxt( body( '@enabled', '00000010 AA\u00a0BB' ) ).collections, [] )
        with self.assertRaises( InvalidHexError ):
            parse_pchtxt( body( '@enabled', '00000010 AA\u2028BB' ), strict=True )

        patches = only_patches( parse_pchtxt( body( '@enabled', '00000010 AA\tBB\vCC' ) ) )
        self.assertEqual( patches[0].contents[0].value, b'\xaa\xbb\xcc' )

    def test_strict_errors( self ):
        with self.assertRaises( BadHexLengthError ) as cm:
            parse_pchtxt( body( '@enabled', '00 ABC' ), strict=True )
        self.assertEqual( cm.exception.line_num, 3 )
        with self.assertRaises( InvalidHexError ):
            parse_pchtxt( body( '@enabled', '00 0g' ), strict=True )
        with self.assertRaises( PchtxtError ):
            parse_pchtxt( '@nsobid\n', strict=True )

    def test_missing_build_id( self ):
        self.assertEqual( parse_pchtxt( '@enabled\n00 01\n' ), PatchTextOutput() )
        self.assertEqual( parse_pchtxt( '@title T\n\n[Cheat]\n' ), PatchTextOutput() )
        with self.assertRaises( MissingBuildIdError ):
            parse_pchtxt( '// patch\n@disabled\n', strict=True )

    def test_legacy_nsobid_missing_value( self ):
        self.assertEqual( parse_pchtxt( '@nsobid\n@enabled\n00 01\n' ), PatchTextOutput() )

    def test_legacy_nsobid_keeps_case( self ):
        output = parse_pchtxt( '@NSOBID AbCd   // comment\n@enabled\n00 01\n' )
        self.assertEqual( output.collections[0].build_id, 'AbCd' )

    def test_build_id_flags( self ):
        output = parse_pchtxt( '\n'.join( [
            '@flag nsobid AAAA',
            '@enabled',
            '00 01',
            '@flag nrobid BBBB',
            '@enabled',
            '00 02',
            '@flag nsobid AAAA',
            '@enabled',
            '00 03',
        ] ) )
        self.assertEqual( [c.build_id for c in output.collections], ['BBBB', 'AAAA'] )
        self.assertEqual( output.collections[0].target_type, TargetType.NRO )
        self.assertEqual( output.collections[1].target_type, TargetType.NSO )
        values = [p.contents[0].value for p in output.collections[1].patches]
        self.assertEqual( values, [b'\x01', b'\x03'] )

    def test_build_id_flag_closes_patch( self ):
        output = parse_pchtxt( '\n'.join( [
            '@flag nsobid AAAA',
            '@enabled',
            '00 01',
            '@flag nsobid BBBB',
            '00 02',
        ] ) )
        self.assertEqual( [c.build_id for c in output.collections], ['AAAA'] )
        self.assertEqual( len( output.collections[0].patches ), 1 )

    def test_ams_header_does_not_accept_lines( self ):
        output = parse_pchtxt( '\n'.join( [
            '@flag nsobid AAAA',
            '[Moon Jump]',
            '04000000 00000000 00000001',
        ] ) )
        self.assertEqual( output.collections, [] )

    def test_ams_header_after_patch( self ):
        patches = only_patches( parse_pchtxt( body(
            '@enabled',
            '00 01',
            '[ Moon Jump ]   // cheat',
            '04000000 00000000 00000001 // comment',
            '',
            '80000040',
        ) ) )
        self.assertEqual( len( patches ), 2 )
        cheat = patches[1]
        self.assertEqual( cheat, Patch( 'Moon Jump', '', PatchType.AMS, True, 4, [
            PatchContent( 0, b'04000000 00000000 00000001' ),
            PatchContent( 0, b'80000040' ),
        ] ) )

    def test_patch_after_empty_ams_header( self ):
        patches = only_patches( parse_pchtxt( body(
            '// Named [me]',
            '[Empty Cheat]',
            '@enabled',
            '00 01',
        ) ) )
        self.assertEqual( patches[0].name, 'Named' )
        self.assertEqual( patches[0].author, 'me' )
        self.assertEqual( patches[0].type, PatchType.BIN )

    def test_echo_keeps_last_comment( self ):
        with self.assertLogs( 'pchtxt.parser', 'INFO' ) as cm:
            patches = only_patches( parse_pchtxt( body(
                '// Kept',
                '# echo this',
                '@enabled',
                '00 01',
            ) ) )
        self.assertEqual( patches[0].name, 'Kept' )
        self.assertTrue( any( '# echo this' in line for line in cm.output ) )

    def test_stop( self ):
        output = parse_pchtxt( body( '@enabled', '00 01', '@stop', '00 02', '@enabled', '00 ZZZ' ) )
        self.assertEqual( only_patches( output )[0].contents, [PatchContent( 0, b'\x01' )] )

    def test_unrecognized_tags_and_flags( self ):
        with self.assertLogs( 'pchtxt.parser', 'WARNING' ) as cm:
            output = parse_pchtxt( body( '@foo bar', '@flag bar', '@title body title', '@enabled', '00 01' ) )
        self.assertEqual( len( output.collections ), 1 )
        self.assertEqual( len( cm.output ), 2 )
        self.assertIn( 'unrecognized tag: @foo', cm.output[0] )
        self.assertIn( 'unrecognized flag type: bar', cm.output[1] )

    def test_debug_info( self ):
        sink = logging.getLogger( 'pchtxt.tests.sink' )
        with self.assertLogs( sink, 'INFO' ) as cm:
            parse_pchtxt( body( '@enabled', '00000010 aa', '@flag print_values', '00000020 bb' ), log=sink )
        offsets = [line for line in cm.output if 'offset: ' in line]
        self.assertEqual( len( offsets ), 1 )
        self.assertIn( 'offset: 00000020 value: bb len: 1', offsets[0] )

    def test_separate_parses( self ):
        first = parse_pchtxt( body( '@flag be', '@flag offset_shift 0x10', '@enabled', '00 1122' ) )
        second = parse_pchtxt( body( '@enabled', '00 1122' ) )
        self.assertEqual( only_patches( first )[0].contents, [PatchContent( 0x10, b'\x22\x11' )] )
        self.assertEqual( only_patches( second )[0].contents, [PatchContent( 0, b'\x11\x22' )] )


class TestUpdate( unittest.TestCase ):
    def test_update( self ):
        source = body(
            '// One',
            '@enabled',
            '00 01',
            '// Two',
            '  @disabled heap  // indented',
            '00 02',
        )
        output = parse_pchtxt( source )
        patches = only_patches( output )
        patches[0].enabled = False
        patches[1].enabled = True

        target = io.StringIO( source )
        self.assertEqual( update_pchtxt( output, target ), 2 )
        updated = target.getvalue()
        self.assertIn( '\n@disabled\n', updated )
        self.assertIn( '\n  @enabled heap  // indented\n', updated )

        reparsed = only_patches( parse_pchtxt( updated ) )
        self.assertEqual( [p.enabled for p in reparsed], [False, True] )
        self.assertEqual( reparsed[1].type, PatchType.HEAP )

    def test_update_skips_ams_headers( self ):
        source = body( '@enabled', '00 01', '[Cheat]', '00000000 00000000' )
        output = parse_pchtxt( source )
        target = io.StringIO( source )
        with self.assertLogs( 'pchtxt.parser', 'WARNING' ):
            self.assertEqual( update_pchtxt( output, target ), 1 )
        self.assertEqual( target.getvalue(), source )


class TestIPS32( unittest.TestCase ):
    def test_scenario( self ):
        output = parse_pchtxt( SCENARIO )
        self.assertEqual( ips32.dump_ips32( output.collections[0] ), SCENARIO_IPS )

        stream = io.BytesIO()
        ips32.write_ips32( output.collections[0], stream )
        self.assertEqual( stream.getvalue(), SCENARIO_IPS )

    def test_empty_collection( self ):
        self.assertEqual( ips32.dump_ips32( PatchCollection( BID ) ), b'IPS32EEOF' )

    def test_only_enabled_bin_patches( self ):
        collection = PatchCollection( BID, patches=[
            Patch( 'a', type=PatchType.BIN, enabled=True, contents=[
                PatchContent( 0x100, b'\x01' ), PatchContent( 0x12345678, b'\x02\x03' ),
            ] ),
            Patch( 'b', type=PatchType.BIN, enabled=False, contents=[PatchContent( 0x200, b'\x04' )] ),
            Patch( 'c', type=PatchType.HEAP, enabled=True, contents=[PatchContent( 0x300, b'\x05' )] ),
            Patch( 'd', type=PatchType.AMS, enabled=True, contents=[PatchContent( 0, b'04000000' )] ),
            Patch( 'e', type=PatchType.BIN, enabled=True, contents=[PatchContent( 0x10, b'\x06' )] ),
        ] )
        expected = b'IPS32' + \
            b'\x00\x00\x01\x00\x00\x01\x01' + \
            b'\x12\x34\x56\x78\x00\x02\x02\x03' + \
            b'\x00\x00\x00\x10\x00\x01\x06' + \
            b'EEOF'
        self.assertEqual( ips32.dump_ips32( collection ), expected )

    def test_long_value_size_wraps( self ):
        value = b'\xcc' * 0x10001
        collection = PatchCollection( BID, patches=[
            Patch( enabled=True, contents=[PatchContent( 0, value )] ),
        ] )
        data = ips32.dump_ips32( collection )
        self.assertEqual( data[5:11], b'\x00\x00\x00\x00\x00\x01' )
        self.assertEqual( len( data ), 5 + 6 + len( value ) + 4 )

    def test_read( self ):
        patch = ips32.read_ips32( SCENARIO_IPS + b'trailing' )
        self.assertEqual( patch.magic, b'IPS32' )
        self.assertEqual( len( patch.records ), 1 )
        self.assertEqual( patch.records[0].offset, 0x10 )
        self.assertEqual( patch.records[0].size, 2 )
        self.assertEqual( patch.records[0].data, b'\xaa\xbb' )
        self.assertEqual( patch.export_data(), SCENARIO_IPS )

    def test_read_missing_footer( self ):
        with self.assertLogs( 'pchtxt.fields', 'WARNING' ):
            patch = ips32.read_ips32( SCENARIO_IPS[:-4] )
        self.assertEqual( len( patch.records ), 1 )

    def test_read_truncated( self ):
        with self.assertRaises( pm.ParseError ):
            ips32.read_ips32( SCENARIO_IPS[:-5] )

    def test_read_bad_magic( self ):
        with self.assertLogs( 'pchtxt.checks', 'WARNING' ):
            ips32.read_ips32( b'PATCH' + SCENARIO_IPS[5:] )
        with self.assertRaises( pm.CheckException ):
            ips32.read_ips32( b'PATCH' + SCENARIO_IPS[5:], strict=True )

    def test_check_raise_exception( self ):
        class Test( pm.Block ):
            magic = pm.Const( pm.Bytes( length=2 ), b'OK', raise_exception=True )

        self.assertEqual( Test( b'OK' ).magic, b'OK' )
        with self.assertRaises( pm.CheckException ):
            Test( b'NO' )


class TestBlock( unittest.TestCase ):
    def test_chain( self ):
        class Test( pm.Block ):
            magic = pm.Const( pm.Bytes( length=2 ), b'OK' )
            length = pm.UInt16_BE()
            payload = pm.Bytes( length=pm.Ref( 'length' ) )
            tail = pm.UInt32_BE()

        payload = b'OK\x00\x03abc\x12\x34\x56\x78'
        test = Test( payload )
        self.assertEqual( test.length, 3 )
        self.assertEqual( test.payload, b'abc' )
        self.assertEqual( test.tail, 0x12345678 )
        self.assertEqual( test.get_size(), len( payload ) )
        self.assertEqual( test.export_data(), payload )

        test.tail = 0x100000000
        with self.assertRaises( pm.FieldValidationError ):
            test.export_data()

    def test_defaults( self ):
        class Element( pm.Block ):
            value = pm.UInt16_BE()

        class Test( pm.Block ):
            magic = pm.Const( pm.Bytes( length=2 ), b'HI' )
            items = pm.BlockField( Element, stream_end=b'\xff\xff' )

        first = Test()
        second = Test( {'items': [Element( {'value': 0x1234} )]} )
        self.assertEqual( first.items, [] )
        self.assertEqual( repr( second.items[0] ), '<Element: value=4660>' )
        self.assertEqual( first.export_data(), b'HI\xff\xff' )
        self.assertEqual( second.export_data(), b'HI\x12\x34\xff\xff' )

        with self.assertRaises( AttributeError ):
            Test( {'missing': 1} )


class TestCli( unittest.TestCase ):
    def test_convert( self ):
        with tempfile.TemporaryDirectory() as tmp:
            source = os.path.join( tmp, 'patch.pchtxt' )
            with open( source, 'w' ) as f:
                f.write( SCENARIO + '@flag nsobid FFFF\n@enabled\n00 01\n' )
            self.assertEqual( cli.pchtxt2ips( [source, '-d', tmp] ), 0 )
            with open( os.path.join( tmp, '{}.ips'.format( BID ) ), 'rb' ) as f:
                self.assertEqual( f.read(), SCENARIO_IPS )
            self.assertFalse( os.path.exists( os.path.join( tmp, 'FFFF.ips' ) ) )

    def test_usage( self ):
        stderr = io.StringIO()
        with contextlib.redirect_stderr( stderr ):
            self.assertEqual( cli.pchtxt2ips( [] ), 1 )
        self.assertIn( 'usage:', stderr.getvalue() )

    def test_missing_file( self ):
        with tempfile.TemporaryDirectory() as tmp:
            stderr = io.StringIO()
            with contextlib.redirect_stderr( stderr ):
                self.assertEqual( cli.pchtxt2ips( [os.path.join( tmp, 'nope.pchtxt' )] ), 1 )
            self.assertIn( 'Could not open file', stderr.getvalue() )

    def test_parse_failure( self ):
        with tempfile.TemporaryDirectory() as tmp:
            source = os.path.join( tmp, 'bad.pchtxt' )
            with open( source, 'w' ) as f:
                f.write( '@enabled\n00 01\n' )
            with self.assertLogs( 'pchtxt', 'ERROR' ):
                self.assertEqual( cli.pchtxt2ips( [source, '-d', tmp] ), 1 )
            self.assertEqual( os.listdir( tmp ), ['bad.pchtxt'] )


if __name__ == '__main__':
    unittest.main()
