"""
CAD 处理模块 - DXF 文本解析/图块展开/几何转换

子模块：
- tokenizer: 组码对分词与段扫描
- entity_decoder: 实体游程解码为强类型实体
- document_parser: 文件头/图层/图块/实体构建文档结构
- matrix: 仿射矩阵（ezdxf.math.Matrix44）
- transform: 实体放置变换（OCS/镜像）
- block_expander: INSERT 展开（工作栈 + 循环检测）
- geometry_converter: 实体转 GeoJSON 要素
- sia: SIA 2014 文件头与图层名校验
"""

from .block_expander import BlockExpander, expand_blocks
from .document_parser import DocumentParser, parse_document
from .entity_decoder import EntityDecoder, decode_entity
from .geometry_converter import GeometryConverter, calculate_bounds
from .sia import SiaProcessor, check_layer_name, extract_sia_header
from .tokenizer import DxfSection, extract_table_records, scan_sections, split_entity_runs, tokenize

__all__ = [
    "tokenize",
    "scan_sections",
    "split_entity_runs",
    "extract_table_records",
    "DxfSection",
    "EntityDecoder",
    "decode_entity",
    "DocumentParser",
    "parse_document",
    "BlockExpander",
    "expand_blocks",
    "GeometryConverter",
    "calculate_bounds",
    "SiaProcessor",
    "check_layer_name",
    "extract_sia_header",
]
