"""
实体模型 - DXF 实体的封闭标签联合

每种实体一个模型，以 type 字段区分；解码层负责校验，
下游（图块展开/几何转换）只处理已校验的强类型记录。
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .geometry import Vector3

Z_AXIS = Vector3(x=0.0, y=0.0, z=1.0)


class EntityBase(BaseModel):
    """实体公共属性"""
    layer: str = "0"
    handle: str | None = Field(None, description="句柄（不保证跨文件唯一）")
    color: int | None = Field(None, description="ACI颜色号（0=BYBLOCK, 256=BYLAYER）")
    true_color: int | None = Field(None, description="真彩色（组码420）")
    line_type: str | None = None
    line_weight: int | None = None
    elevation: float = 0.0
    thickness: float = 0.0
    visible: bool = True
    extrusion: Vector3 = Z_AXIS
    source_block: str | None = Field(None, description="展开来源图块名")

    model_config = {"frozen": True}

    @property
    def has_default_extrusion(self) -> bool:
        return self.extrusion == Z_AXIS


class PointEntity(EntityBase):
    type: Literal["POINT"] = "POINT"
    position: Vector3
    angle: float = 0.0


class LineEntity(EntityBase):
    type: Literal["LINE"] = "LINE"
    start: Vector3
    end: Vector3


class PolylineEntity(EntityBase):
    """POLYLINE / LWPOLYLINE（bulges 与 vertices 一一对应）"""
    type: Literal["POLYLINE", "LWPOLYLINE"] = "LWPOLYLINE"
    vertices: tuple[Vector3, ...]
    bulges: tuple[float, ...] = ()
    closed: bool = False
    constant_width: float | None = None

    @property
    def has_bulges(self) -> bool:
        return any(b != 0.0 for b in self.bulges)


class CircleEntity(EntityBase):
    type: Literal["CIRCLE"] = "CIRCLE"
    center: Vector3
    radius: float


class ArcEntity(EntityBase):
    """圆弧（角度单位：度）"""
    type: Literal["ARC"] = "ARC"
    center: Vector3
    radius: float
    start_angle: float
    end_angle: float


class EllipseEntity(EntityBase):
    """椭圆（参数单位：弧度；major_axis 为相对圆心的长轴端点）"""
    type: Literal["ELLIPSE"] = "ELLIPSE"
    center: Vector3
    major_axis: Vector3
    minor_axis_ratio: float
    start_angle: float = 0.0
    end_angle: float = 6.283185307179586


class SplineEntity(EntityBase):
    """样条（按控制点折线化，不做B样条求值）"""
    type: Literal["SPLINE"] = "SPLINE"
    control_points: tuple[Vector3, ...]
    fit_points: tuple[Vector3, ...] = ()
    knots: tuple[float, ...] = ()
    degree: int = 3
    closed: bool = False


class InsertEntity(EntityBase):
    """图块参照"""
    type: Literal["INSERT"] = "INSERT"
    block_name: str
    position: Vector3
    x_scale: float = 1.0
    y_scale: float = 1.0
    z_scale: float = 1.0
    rotation: float = 0.0
    column_count: int = 1
    row_count: int = 1
    column_spacing: float = 0.0
    row_spacing: float = 0.0
    attributes: dict[str, str] = Field(default_factory=dict)


class TextEntity(EntityBase):
    type: Literal["TEXT", "MTEXT"] = "TEXT"
    position: Vector3
    text: str
    height: float | None = None
    rotation: float = 0.0
    width: float | None = None
    style: str | None = None


class HatchEntity(EntityBase):
    """填充（边界已展开为点环）"""
    type: Literal["HATCH"] = "HATCH"
    pattern_name: str
    solid_fill: bool = False
    boundaries: tuple[tuple[Vector3, ...], ...]


class FaceEntity(EntityBase):
    """3DFACE / SOLID（顶点已按环序排列）"""
    type: Literal["3DFACE", "SOLID"] = "3DFACE"
    vertices: tuple[Vector3, ...]


class DimensionEntity(EntityBase):
    type: Literal["DIMENSION"] = "DIMENSION"
    position: Vector3
    text_midpoint: Vector3 | None = None
    text: str | None = None
    measurement: float | None = None
    dimension_type: int = 0
    block_name: str | None = None


class LeaderEntity(EntityBase):
    type: Literal["LEADER", "MLEADER"] = "LEADER"
    vertices: tuple[Vector3, ...]
    has_arrowhead: bool = True


class RayEntity(EntityBase):
    """RAY（单向）/ XLINE（双向）"""
    type: Literal["RAY", "XLINE"] = "RAY"
    base_point: Vector3
    direction: Vector3


Entity = Annotated[
    Union[
        PointEntity,
        LineEntity,
        PolylineEntity,
        CircleEntity,
        ArcEntity,
        EllipseEntity,
        SplineEntity,
        InsertEntity,
        TextEntity,
        HatchEntity,
        FaceEntity,
        DimensionEntity,
        LeaderEntity,
        RayEntity,
    ],
    Field(discriminator="type"),
]

SUPPORTED_ENTITY_TYPES = frozenset(
    {
        "POINT",
        "LINE",
        "POLYLINE",
        "LWPOLYLINE",
        "CIRCLE",
        "ARC",
        "ELLIPSE",
        "SPLINE",
        "INSERT",
        "TEXT",
        "MTEXT",
        "HATCH",
        "3DFACE",
        "SOLID",
        "DIMENSION",
        "LEADER",
        "MLEADER",
        "RAY",
        "XLINE",
    }
)
