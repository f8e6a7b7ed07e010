from pchtxt import ips32, utils
from pchtxt.parser import parse_pchtxt
from pchtxt.version import __version__

import argparse
import os
import sys
import logging
logger = logging.getLogger( __name__ )

ARGS_PCHTXT2IPS = {
    'source': dict(
        metavar='FILE',
        nargs='?',
        help='Patch Text file to convert',
    ),
    ('--output-dir', '-d'): dict(
        metavar='DIR',
        dest='output_dir',
        default='.',
        help='Directory to write the .ips file to (default: current directory)',
    ),
    ('--verbose', '-v'): dict(
        dest='verbose',
        action='store_true',
        help='Print parsing messages to stderr',
    ),
    ('--version', '-V'): dict(
        action='version',
        version='%(prog)s {}'.format( __version__ )
    ),
}

def get_parser( args, **kwargs ):
    parser = argparse.ArgumentParser( **kwargs )
    for arg, spec in args.items():
        if isinstance( arg, tuple ):
            parser.add_argument( *arg, **spec )
        else:
            parser.add_argument( arg, **spec )
    return parser

EPILOG_PCHTXT2IPS = """
Only the patches for the first build ID in the file are converted. The output
is named after that build ID, e.g. 0123456789ABCDEF0123456789ABCDEF.ips.
"""

pchtxt2ips_parser = lambda: get_parser( args=ARGS_PCHTXT2IPS, description='Convert a Patch Text file to an IPS32 patch.', epilog=EPILOG_PCHTXT2IPS )


def pchtxt2ips( argv=None ):
    parser = pchtxt2ips_parser()
    raw_args = parser.parse_args( argv )

    if raw_args.source is None:
        parser.print_usage( sys.stderr )
        return 1

    if raw_args.verbose:
        utils.enable_logging( 'INFO' )

    try:
        with open( raw_args.source, 'r', encoding='utf-8', errors='surrogateescape', newline='' ) as src:
            output = parse_pchtxt( src )
    except OSError as e:
        print( 'Could not open file {}: {}'.format( raw_args.source, e ), file=sys.stderr )
        parser.print_usage( sys.stderr )
        return 1

    if not output.collections:
        logger.error( '{}: no patches parsed'.format( raw_args.source ) )
        return 1

    collection = output.collections[0]
    target_path = os.path.join( raw_args.output_dir, '{}.ips'.format( collection.build_id ) )
    with open( target_path, 'wb' ) as out:
        ips32.write_ips32( collection, out )
    logger.info( 'wrote {}'.format( target_path ) )
    return 0
