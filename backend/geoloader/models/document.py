"""
文档结构模型 - 图层/图块/文件头/整体文档

生命周期：每次导入创建，要素提取完成后丢弃
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .entities import Entity
from .geometry import Vector3


class Layer(BaseModel):
    """图层"""
    name: str
    color: int | None = None
    line_type: str | None = None
    line_weight: int | None = None
    frozen: bool = False
    locked: bool = False
    off: bool = False

    @property
    def is_renderable(self) -> bool:
        return not self.frozen and not self.off


class Block(BaseModel):
    """图块定义（解析后不可变）"""
    name: str
    base_point: Vector3 = Vector3(x=0.0, y=0.0, z=0.0)
    entities: tuple[Entity, ...] = ()
    layer: str = "0"
    flags: int = 0

    model_config = {"frozen": True}


class DxfHeader(BaseModel):
    """HEADER 段变量"""
    version: str | None = Field(None, description="$ACADVER")
    extmin: Vector3 | None = Field(None, description="$EXTMIN")
    extmax: Vector3 | None = Field(None, description="$EXTMAX")
    insunits: int | None = Field(None, description="$INSUNITS")
    variables: dict[str, Any] = Field(default_factory=dict)


class DxfDocument(BaseModel):
    """DXF 文档结构"""
    header: DxfHeader = Field(default_factory=DxfHeader)
    layers: dict[str, Layer] = Field(default_factory=dict)
    blocks: dict[str, Block] = Field(default_factory=dict)
    entities: list[Entity] = Field(default_factory=list)

    def get_layer(self, name: str) -> Layer:
        """获取图层，不存在时回退到图层0"""
        return self.layers.get(name) or self.layers.get("0") or Layer(name="0")

    def ensure_default_layer(self) -> None:
        """保证图层0存在"""
        if "0" not in self.layers:
            self.layers["0"] = Layer(name="0")
