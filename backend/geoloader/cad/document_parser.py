"""
文档解析器 - 由 DXF 文本构建文档结构

职责：
1. 分词并扫描段（HEADER / TABLES / BLOCKS / ENTITIES）
2. 解析文件头变量（$ACADVER / $EXTMIN / $EXTMAX / $INSUNITS …）
3. 解析图层表，保证图层0存在
4. 解析图块定义（重名保留首个并记 DUPLICATE_BLOCK）
5. 解码模型空间实体

依赖：
- tokenizer: 组码对与段
- entity_decoder: 实体解码

测试要点：
- test_parse_header: 文件头变量
- test_parse_layers: 冻结/锁定/关闭标志
- test_duplicate_block: 重名图块
"""

from __future__ import annotations

import logging

from ezdxf.lldxf.types import DXFTag

from ..diagnostics import DiagnosticsReporter
from ..models import Block, DiagnosticCode, DxfDocument, DxfHeader, Layer, Vector3
from .decoding import make_point, parse_float, parse_int
from .entity_decoder import EntityDecoder
from .tokenizer import extract_table_records, scan_sections, split_entity_runs, tokenize

logger = logging.getLogger(__name__)

# 图层标志位
LAYER_FROZEN = 1
LAYER_LOCKED = 4


class DocumentParser:
    """DXF 文档解析器"""

    def __init__(self, reporter: DiagnosticsReporter | None = None):
        self.reporter = reporter or DiagnosticsReporter(log_records=False)
        self.decoder = EntityDecoder(self.reporter)

    def parse(self, content: str) -> DxfDocument:
        """
        解析 DXF 文本

        Raises:
            DxfParseError: 空输入/无法分词/没有段
        """
        tags = tokenize(content, self.reporter)
        sections = scan_sections(tags, self.reporter)
        logger.info(f"扫描到段: {', '.join(sections)}")

        document = DxfDocument()
        if "HEADER" in sections:
            document.header = self.parse_header(sections["HEADER"].tags)
        if "TABLES" in sections:
            document.layers = self.parse_layers(sections["TABLES"].tags)
        document.ensure_default_layer()
        if "BLOCKS" in sections:
            document.blocks = self.parse_blocks(sections["BLOCKS"].tags)
        if "ENTITIES" in sections:
            document.entities = self.decoder.decode_runs(split_entity_runs(sections["ENTITIES"].tags))

        logger.info(
            f"文档解析完成: 图层 {len(document.layers)}，图块 {len(document.blocks)}，"
            f"实体 {len(document.entities)}"
        )
        return document

    # === HEADER ===

    def parse_header(self, tags: tuple[DXFTag, ...]) -> DxfHeader:
        variables: dict[str, object] = {}
        name: str | None = None
        values: list[DXFTag] = []

        def flush() -> None:
            if name is not None:
                variables[name] = self._header_value(values)

        for tag in tags:
            if tag.code == 9:
                flush()
                name, values = tag.value, []
            elif name is not None:
                values.append(tag)
        flush()

        def as_point(key: str) -> Vector3 | None:
            value = variables.get(key)
            if isinstance(value, tuple) and len(value) >= 2:
                return make_point(*value[:3])
            return None

        version = variables.get("$ACADVER")
        insunits = variables.get("$INSUNITS")
        return DxfHeader(
            version=str(version) if version is not None else None,
            extmin=as_point("$EXTMIN"),
            extmax=as_point("$EXTMAX"),
            insunits=insunits if isinstance(insunits, int) else None,
            variables=variables,
        )

    @staticmethod
    def _header_value(values: list[DXFTag]) -> object:
        """单值变量返回标量；点变量（10/20/30）返回元组"""
        if not values:
            return None
        if values[0].code in (10, 11, 12):
            coords = [parse_float(v.value) for v in values]
            return tuple(c for c in coords if c is not None)
        code, raw = values[0].code, values[0].value
        if 60 <= code <= 99 or 270 <= code <= 289 or 370 <= code <= 389:
            return parse_int(raw)
        if 40 <= code <= 59:
            return parse_float(raw)
        return raw

    # === TABLES ===

    def parse_layers(self, tags: tuple[DXFTag, ...]) -> dict[str, Layer]:
        layers: dict[str, Layer] = {}
        for record in extract_table_records(tags, "LAYER"):
            values = {t.code: t.value for t in reversed(record[1:])}
            name = values.get(2)
            if not name:
                continue
            flags = parse_int(values.get(70)) or 0
            color = parse_int(values.get(62))
            layers[name] = Layer(
                name=name,
                color=abs(color) if color is not None else None,
                line_type=values.get(6),
                line_weight=parse_int(values.get(370)),
                frozen=bool(flags & LAYER_FROZEN),
                locked=bool(flags & LAYER_LOCKED),
                off=color is not None and color < 0,
            )
        return layers

    # === BLOCKS ===

    def parse_blocks(self, tags: tuple[DXFTag, ...]) -> dict[str, Block]:
        blocks: dict[str, Block] = {}
        header: list[DXFTag] | None = None
        body: list[list[DXFTag]] = []

        for run in split_entity_runs(tags):
            kind = run[0].value
            if kind == "BLOCK":
                header, body = run, []
            elif kind == "ENDBLK":
                if header is not None:
                    self._register_block(blocks, header, body)
                header, body = None, []
            elif header is not None:
                body.append(run)

        if header is not None:
            self._register_block(blocks, header, body)
        return blocks

    def _register_block(self, blocks: dict[str, Block], header: list[DXFTag], body: list[list[DXFTag]]) -> None:
        values = {t.code: t.value for t in reversed(header[1:])}
        name = (values.get(2) or values.get(3) or "").strip()
        if not name:
            logger.warning("跳过无名图块定义")
            return
        if name in blocks:
            self.reporter.warning(
                DiagnosticCode.DUPLICATE_BLOCK,
                f"图块重复定义: {name}（保留首个）",
                {"block": name},
            )
            return

        base = make_point(
            parse_float(values.get(10, "0")),
            parse_float(values.get(20, "0")),
            parse_float(values.get(30, "0")),
        )
        blocks[name] = Block(
            name=name,
            base_point=base or Vector3(x=0.0, y=0.0, z=0.0),
            entities=tuple(self.decoder.decode_runs(body)),
            layer=values.get(8) or "0",
            flags=parse_int(values.get(70)) or 0,
        )


def parse_document(content: str, reporter: DiagnosticsReporter | None = None) -> DxfDocument:
    """便捷函数：解析 DXF 文本"""
    return DocumentParser(reporter).parse(content)
