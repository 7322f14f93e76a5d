"""paracobn param container library."""
from .hash40 import crc32, hash40, HashLabels  # noqa: F401
from .params import Param  # noqa: F401
from .paramfile import (  # noqa: F401
    parse, serialize, ParamReader, ParamWriter,
    ParamFormatError, ParamConsistencyError,
)
from .tree import ParamNode, ParamDocument, NodeNotFound, parse_path, format_path  # noqa: F401
