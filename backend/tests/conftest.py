"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(dxf_builder, reporter):
        doc = dxf_builder()
        doc.add(doc.line((0, 0), (10, 10)))
        content = doc.build()
"""

from __future__ import annotations

import math
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Generator

import pytest
from ezdxf.lldxf.types import DXFTag

from geoloader.config import RuntimeConfig
from geoloader.config.runtime_config import CRSConfig
from geoloader.crs import CoordinateSystemManager
from geoloader.diagnostics import DiagnosticsReporter

Pair = tuple[int, object]


# ============================================================================
# DXF 文本构造
# ============================================================================

def _fmt(value: object) -> str:
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _xyz(point: Sequence[float], x_code: int) -> list[Pair]:
    z = point[2] if len(point) > 2 else 0.0
    return [(x_code, float(point[0])), (x_code + 10, float(point[1])), (x_code + 20, float(z))]


def _common(entity_type: str, layer: str, handle: str | None, color: int | None) -> list[Pair]:
    pairs: list[Pair] = [(0, entity_type)]
    if handle:
        pairs.append((5, handle))
    pairs.append((8, layer))
    if color is not None:
        pairs.append((62, color))
    return pairs


def to_tags(pairs: Iterable[Pair]) -> list[DXFTag]:
    """组码对转为 DXFTag 列表（供解码器单测直接使用）"""
    return [DXFTag(code, _fmt(value)) for code, value in pairs]


class DxfBuilder:
    """最小 DXF 文本构造器"""

    def __init__(self):
        self.header: list[Pair] = []
        self.layers: list[list[Pair]] = []
        self.blocks: list[list[Pair]] = []
        self.entities: list[Pair] = []

    # === 文档结构 ===

    def header_var(self, name: str, code: int, value: object) -> DxfBuilder:
        self.header.extend([(9, name), (code, value)])
        return self

    def header_point(self, name: str, point: Sequence[float]) -> DxfBuilder:
        self.header.append((9, name))
        self.header.extend(_xyz(point, 10))
        return self

    def layer(self, name: str, color: int = 7, flags: int = 0, line_type: str = "CONTINUOUS") -> DxfBuilder:
        self.layers.append([(0, "LAYER"), (2, name), (70, flags), (62, color), (6, line_type)])
        return self

    def block(self, name: str, *entities: list[Pair], base: Sequence[float] = (0.0, 0.0, 0.0)) -> DxfBuilder:
        pairs: list[Pair] = [(0, "BLOCK"), (8, "0"), (2, name), (70, 0)]
        pairs.extend(_xyz(base, 10))
        pairs.append((3, name))
        for entity in entities:
            pairs.extend(entity)
        pairs.extend([(0, "ENDBLK"), (8, "0")])
        self.blocks.append(pairs)
        return self

    def add(self, *entities: list[Pair]) -> DxfBuilder:
        for entity in entities:
            self.entities.extend(entity)
        return self

    def build(self) -> str:
        pairs: list[Pair] = []
        if self.header:
            pairs.extend([(0, "SECTION"), (2, "HEADER"), *self.header, (0, "ENDSEC")])
        if self.layers:
            pairs.extend([(0, "SECTION"), (2, "TABLES"), (0, "TABLE"), (2, "LAYER"), (70, len(self.layers))])
            for record in self.layers:
                pairs.extend(record)
            pairs.extend([(0, "ENDTAB"), (0, "ENDSEC")])
        if self.blocks:
            pairs.extend([(0, "SECTION"), (2, "BLOCKS")])
            for block in self.blocks:
                pairs.extend(block)
            pairs.append((0, "ENDSEC"))
        pairs.extend([(0, "SECTION"), (2, "ENTITIES"), *self.entities, (0, "ENDSEC"), (0, "EOF")])
        return "\n".join(f"{code}\n{_fmt(value)}" for code, value in pairs) + "\n"

    # === 实体 ===

    @staticmethod
    def point(position, layer: str = "0", handle: str | None = None, color: int | None = None) -> list[Pair]:
        return _common("POINT", layer, handle, color) + _xyz(position, 10)

    @staticmethod
    def line(start, end, layer: str = "0", handle: str | None = None, color: int | None = None) -> list[Pair]:
        return _common("LINE", layer, handle, color) + _xyz(start, 10) + _xyz(end, 11)

    @staticmethod
    def circle(center, radius: float, layer: str = "0", handle: str | None = None,
               extrusion: Sequence[float] | None = None) -> list[Pair]:
        pairs = _common("CIRCLE", layer, handle, None) + _xyz(center, 10) + [(40, float(radius))]
        if extrusion is not None:
            pairs.extend(_xyz(extrusion, 210))
        return pairs

    @staticmethod
    def arc(center, radius: float, start: float, end: float, layer: str = "0", handle: str | None = None) -> list[Pair]:
        return (
            _common("ARC", layer, handle, None)
            + _xyz(center, 10)
            + [(40, float(radius)), (50, float(start)), (51, float(end))]
        )

    @staticmethod
    def ellipse(center, major, ratio: float, start: float = 0.0, end: float = 2 * math.pi,
                layer: str = "0", handle: str | None = None) -> list[Pair]:
        return (
            _common("ELLIPSE", layer, handle, None)
            + _xyz(center, 10)
            + _xyz(major, 11)
            + [(40, float(ratio)), (41, float(start)), (42, float(end))]
        )

    @staticmethod
    def lwpolyline(points, closed: bool = False, bulges: Sequence[float] | None = None,
                   layer: str = "0", handle: str | None = None) -> list[Pair]:
        pairs = _common("LWPOLYLINE", layer, handle, None)
        pairs.extend([(90, len(points)), (70, 1 if closed else 0)])
        for i, (x, y) in enumerate(points):
            pairs.extend([(10, float(x)), (20, float(y))])
            if bulges and bulges[i]:
                pairs.append((42, float(bulges[i])))
        return pairs

    @staticmethod
    def polyline(points, closed: bool = False, layer: str = "0", handle: str | None = None) -> list[Pair]:
        pairs = _common("POLYLINE", layer, handle, None)
        pairs.extend([(66, 1), (10, 0.0), (20, 0.0), (30, 0.0), (70, 1 if closed else 0)])
        for point in points:
            pairs.extend([(0, "VERTEX"), (8, layer)])
            pairs.extend(_xyz(point, 10))
            pairs.append((70, 0))
        pairs.extend([(0, "SEQEND"), (8, layer)])
        return pairs

    @staticmethod
    def insert(name: str, position, scale: Sequence[float] = (1.0, 1.0, 1.0), rotation: float = 0.0,
               columns: int = 1, rows: int = 1, column_spacing: float = 0.0, row_spacing: float = 0.0,
               layer: str = "0", handle: str | None = None, color: int | None = None,
               attribs: dict[str, str] | None = None) -> list[Pair]:
        pairs = _common("INSERT", layer, handle, color)
        if attribs:
            pairs.append((66, 1))
        pairs.append((2, name))
        pairs.extend(_xyz(position, 10))
        pairs.extend([(41, float(scale[0])), (42, float(scale[1])), (43, float(scale[2]))])
        pairs.append((50, float(rotation)))
        if columns > 1 or rows > 1:
            pairs.extend([(70, columns), (71, rows), (44, float(column_spacing)), (45, float(row_spacing))])
        if attribs:
            for tag, value in attribs.items():
                pairs.extend([(0, "ATTRIB"), (8, layer)])
                pairs.extend(_xyz(position, 10))
                pairs.extend([(40, 2.5), (1, value), (2, tag), (70, 0)])
            pairs.extend([(0, "SEQEND"), (8, layer)])
        return pairs

    @staticmethod
    def text(position, value: str, height: float = 2.5, rotation: float = 0.0,
             layer: str = "0", handle: str | None = None) -> list[Pair]:
        return (
            _common("TEXT", layer, handle, None)
            + _xyz(position, 10)
            + [(40, float(height)), (1, value), (50, float(rotation))]
        )

    @staticmethod
    def mtext(position, value: str, chunks: Sequence[str] = (), height: float = 2.5,
              layer: str = "0", handle: str | None = None) -> list[Pair]:
        pairs = _common("MTEXT", layer, handle, None) + _xyz(position, 10) + [(40, float(height))]
        pairs.extend((3, chunk) for chunk in chunks)
        pairs.append((1, value))
        return pairs

    @staticmethod
    def hatch(*rings, pattern: str = "SOLID", layer: str = "0", handle: str | None = None) -> list[Pair]:
        """多段线边界路径的填充（每个环一条路径）"""
        pairs = _common("HATCH", layer, handle, None)
        pairs.extend([(10, 0.0), (20, 0.0), (30, 0.0), (210, 0.0), (220, 0.0), (230, 1.0)])
        pairs.extend([(2, pattern), (70, 1 if pattern == "SOLID" else 0), (71, 0), (91, len(rings))])
        for ring in rings:
            pairs.extend([(92, 2), (72, 0), (73, 1), (93, len(ring))])
            for x, y in ring:
                pairs.extend([(10, float(x)), (20, float(y))])
            pairs.append((97, 0))
        pairs.extend([(75, 0), (76, 1), (98, 0)])
        return pairs

    @staticmethod
    def raw(entity_type: str, *pairs: Pair, layer: str = "0", handle: str | None = None) -> list[Pair]:
        return _common(entity_type, layer, handle, None) + list(pairs)


@pytest.fixture
def dxf_builder() -> type[DxfBuilder]:
    """DXF 文本构造器（返回类，按需实例化）"""
    return DxfBuilder


@pytest.fixture
def tags():
    """组码对 → DXFTag 列表"""
    return to_tags


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置（默认值）"""
    return RuntimeConfig()


@pytest.fixture
def reporter() -> DiagnosticsReporter:
    """诊断收集器（不写日志）"""
    return DiagnosticsReporter(log_records=False)


@pytest.fixture(scope="session")
def crs_manager() -> CoordinateSystemManager:
    """已初始化的坐标系管理器（会话级别共享）"""
    manager = CoordinateSystemManager(CRSConfig())
    manager.initialize()
    return manager


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_dxf_path(temp_dir: Path, dxf_builder) -> Path:
    """示例DXF文件（一条直线）"""
    doc = dxf_builder()
    doc.add(doc.line((0, 0), (10, 10), handle="A1"))
    dxf_path = temp_dir / "test.dxf"
    dxf_path.write_text(doc.build(), encoding="utf-8")
    return dxf_path
