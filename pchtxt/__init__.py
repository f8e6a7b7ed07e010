"""Parser for the Patch Text (pchtxt) format, with an IPS32 writer."""

from pchtxt.version import __version__
from pchtxt.patches import PatchType, TargetType, PatchContent, Patch, \
                            PatchCollection, PatchTextMeta, PatchTextOutput
from pchtxt.parser import PchtxtError, MissingBuildIdError, MissingBuildIdValueError, \
                            OffsetOutOfRangeError, UnterminatedStringError, \
                            BadHexLengthError, InvalidHexError, \
                            parse_pchtxt, get_pchtxt_meta, update_pchtxt
from pchtxt.ips32 import IPS32, IPS32Record, dump_ips32, write_ips32, read_ips32
