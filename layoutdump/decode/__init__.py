"""Type-directed decoding of raw struct buffers into value trees."""

from .decoder import CHAR_TYPE_NAMES as CHAR_TYPE_NAMES
from .decoder import DecodeContext as DecodeContext
from .decoder import Decoder as Decoder
from .decoder import DecodeOptions as DecodeOptions
from .decoder import decode as decode
from .integers import decode_int as decode_int
from .integers import encode_int as encode_int
from .values import *
