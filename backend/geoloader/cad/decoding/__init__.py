"""
实体解码辅助 - 组码读取与 HATCH 边界解析
"""

from .group_codes import TagReader, make_point, parse_float, parse_int
from .hatch import HatchBoundaries, HatchFormatError, decode_hatch_boundaries

__all__ = [
    "TagReader",
    "make_point",
    "parse_float",
    "parse_int",
    "HatchBoundaries",
    "HatchFormatError",
    "decode_hatch_boundaries",
]
