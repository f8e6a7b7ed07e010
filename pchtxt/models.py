"""Shortcut module to import all of the block model primitives."""

from pchtxt.version import __version__
from pchtxt.refs import Ref, property_get
from pchtxt.fields import FieldDefinitionError, ParseError, FieldValidationError, \
                            Field, NumberField, Bytes, BlockField, \
                            UInt16_BE, UInt32_BE
from pchtxt.blocks import Block
from pchtxt.checks import CheckException, Check, Const
