"""Type graph: descriptors, raw type dump parser and size calculation."""

from .parser import ValidationError as ValidationError
from .parser import parse as parse
from .sizes import MemberExtent as MemberExtent
from .sizes import SizeCalculator as SizeCalculator
from .sizes import member_extents as member_extents
from .types import *
