"""
文档解析器单元测试

每个模块完成后必须运行：pytest tests/unit/test_document_parser.py -v
"""

import pytest

from geoloader.cad import DocumentParser, parse_document
from geoloader.interfaces import DxfParseError
from geoloader.models import DiagnosticCode


@pytest.fixture
def parser(reporter) -> DocumentParser:
    return DocumentParser(reporter)


class TestParseHeader:
    """文件头测试"""

    def test_parse_header(self, parser, dxf_builder):
        """测试版本/范围/单位变量"""
        doc = dxf_builder()
        doc.header_var("$ACADVER", 1, "AC1027")
        doc.header_point("$EXTMIN", (2600000, 1200000))
        doc.header_point("$EXTMAX", (2600100, 1200100))
        doc.header_var("$INSUNITS", 70, 6)
        doc.header_var("$LTSCALE", 40, 2.5)

        document = parser.parse(doc.build())
        header = document.header
        assert header.version == "AC1027"
        assert header.extmin.xy() == [2600000, 1200000]
        assert header.extmax.xy() == [2600100, 1200100]
        assert header.insunits == 6
        assert header.variables["$LTSCALE"] == 2.5

    def test_missing_header(self, parser, dxf_builder):
        """测试没有 HEADER 段"""
        document = parser.parse(dxf_builder().build())
        assert document.header.version is None
        assert document.header.insunits is None


class TestParseLayers:
    """图层表测试"""

    def test_parse_layers(self, parser, dxf_builder):
        """测试冻结/锁定/关闭标志"""
        doc = dxf_builder()
        doc.layer("WALLS", color=1)
        doc.layer("FROZEN", flags=1)
        doc.layer("LOCKED", flags=4)
        doc.layer("OFF", color=-3)

        layers = parser.parse(doc.build()).layers
        assert layers["WALLS"].color == 1
        assert layers["WALLS"].line_type == "CONTINUOUS"
        assert layers["FROZEN"].frozen
        assert layers["LOCKED"].locked
        assert not layers["LOCKED"].frozen
        assert layers["OFF"].off
        assert layers["OFF"].color == 3
        assert not layers["OFF"].is_renderable

    def test_default_layer_present(self, parser, dxf_builder):
        """测试图层0总是存在"""
        document = parser.parse(dxf_builder().layer("WALLS").build())
        assert "0" in document.layers
        assert document.get_layer("MISSING").name == "0"


class TestParseBlocks:
    """图块定义测试"""

    def test_parse_blocks(self, parser, dxf_builder):
        """测试图块基点与实体"""
        doc = dxf_builder()
        doc.block("DOOR", doc.line((0, 0), (1, 0)), doc.circle((0, 0), 1), base=(5, 5, 0))
        document = parser.parse(doc.build())

        block = document.blocks["DOOR"]
        assert block.base_point.xy() == [5, 5]
        assert [e.type for e in block.entities] == ["LINE", "CIRCLE"]

    def test_duplicate_block(self, parser, reporter, dxf_builder):
        """测试重名图块保留首个"""
        doc = dxf_builder()
        doc.block("DOOR", doc.line((0, 0), (1, 0)))
        doc.block("DOOR", doc.point((0, 0)))
        document = parser.parse(doc.build())

        assert [e.type for e in document.blocks["DOOR"].entities] == ["LINE"]
        assert reporter.count(DiagnosticCode.DUPLICATE_BLOCK) == 1


class TestParseDocument:
    """整体解析测试"""

    def test_parse_entities(self, dxf_builder):
        """测试模型空间实体"""
        doc = dxf_builder()
        doc.add(doc.point((1, 2)), doc.insert("DOOR", (10, 10)))
        document = parse_document(doc.build())
        assert [e.type for e in document.entities] == ["POINT", "INSERT"]

    def test_entities_only(self):
        """测试只有 ENTITIES 段的最小文件"""
        content = "0\nSECTION\n2\nENTITIES\n0\nPOINT\n10\n1\n20\n2\n0\nENDSEC\n0\nEOF\n"
        document = parse_document(content)
        assert len(document.entities) == 1
        assert document.blocks == {}

    def test_invalid_entity_skipped(self, parser, reporter, dxf_builder):
        """测试无效实体被跳过并记录诊断"""
        doc = dxf_builder()
        doc.add(doc.raw("UNKNOWN_THING"), doc.point((0, 0)))
        document = parser.parse(doc.build())
        assert len(document.entities) == 1
        assert reporter.count(DiagnosticCode.UNSUPPORTED_ENTITY) == 1

    def test_not_a_dxf(self, parser):
        """测试非 DXF 内容"""
        with pytest.raises(DxfParseError):
            parser.parse("not a dxf")
