"""
坐标系管理器 - 注册坐标系、点位转换、缓存与自检

职责：
1. 从坐标系目录注册内置坐标系（WGS84 / LV95 / LV03）及配置中的附加坐标系
2. 初始化时用参考点自检瑞士坐标系（容差 0.5°）
3. 点位转换：有限值校验 → 同系短路 → 缓存 → pyproj 转换 → 结果校验 → 写缓存
4. 任何转换失败都抛 CoordinateTransformationError，不回传未转换坐标

依赖：
- pyproj: CRS 校验与 Transformer（always_xy=True，经度在前）
- config.crs_catalog: 内置坐标系与参考点

测试要点：
- test_initialize_idempotent: 重复初始化
- test_transform_lv95_origin: LV95 原点到 WGS84
- test_transform_identity: 同系短路
- test_transform_non_finite: 非有限输入
- test_verification_failure: 自检失败保持未初始化
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable, Sequence

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from ..config import CoordinateSystemDefinition, CrsCatalog, VerificationPoint, load_crs_catalog
from ..config.runtime_config import CRSConfig
from ..interfaces import (
    CoordinateSystemError,
    CoordinateTransformationError,
    InvalidCoordinateError,
)
from ..models import Bounds, Vector3
from .cache import TransformCache

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"
LV95 = "EPSG:2056"
LV03 = "EPSG:21781"

PointLike = Vector3 | Sequence[float]


def _as_xyz(point: PointLike) -> tuple[float, float, float]:
    if isinstance(point, Vector3):
        return point.x, point.y, point.z
    if len(point) < 2:
        raise InvalidCoordinateError(f"坐标分量不足: {point}", list(point))
    z = point[2] if len(point) > 2 else 0.0
    return float(point[0]), float(point[1]), float(z)


class CoordinateSystemManager:
    """坐标系管理器（显式构造，可重置）"""

    def __init__(self, config: CRSConfig | None = None, catalog: CrsCatalog | None = None):
        self.config = config or CRSConfig()
        self._catalog = catalog
        self._lock = threading.RLock()
        self._systems: dict[str, CoordinateSystemDefinition] = {}
        self._crs: dict[str, CRS] = {}
        self._transformers: dict[tuple[str, str], Transformer] = {}
        self.cache = TransformCache(self.config.cache_max_size)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # === 生命周期 ===

    def initialize(self) -> None:
        """
        初始化（线程安全，幂等）

        Raises:
            CoordinateSystemError: 坐标系定义非法或自检失败（保持未初始化）
        """
        with self._lock:
            if self._initialized:
                return

            self._clear_state()
            try:
                catalog = self._catalog or load_crs_catalog(self.config.catalog_path)
                for definition in catalog.systems:
                    self._register(definition)
                for extra in self.config.extra_systems:
                    self._register(CoordinateSystemDefinition(**extra.model_dump()))
                self._verify(catalog.verification_points)
            except CoordinateSystemError:
                self._clear_state()
                raise
            except (OSError, ValueError) as e:
                self._clear_state()
                raise CoordinateSystemError(f"坐标系目录加载失败: {e}") from e

            self._initialized = True
            logger.info(f"坐标系管理器初始化完成: {', '.join(self._systems)}")

    def reset(self) -> None:
        """清空全部状态，回到未初始化"""
        with self._lock:
            self._clear_state()
            self._initialized = False

    def _clear_state(self) -> None:
        self._systems.clear()
        self._crs.clear()
        self._transformers.clear()
        self.cache.clear()

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    # === 注册 ===

    def register_system(self, definition: CoordinateSystemDefinition) -> None:
        """
        注册（或覆盖）坐标系

        Raises:
            CoordinateSystemError: proj4 定义无法解析
        """
        with self._lock:
            self._ensure_initialized()
            self._register(definition)

    def _register(self, definition: CoordinateSystemDefinition) -> None:
        try:
            crs = CRS.from_user_input(definition.proj4def)
        except CRSError as e:
            raise CoordinateSystemError(
                f"坐标系定义非法: {definition.code}",
                {"code": definition.code, "proj4def": definition.proj4def, "error": str(e)},
            ) from e

        self._systems[definition.code] = definition
        self._crs[definition.code] = crs
        self._transformers.clear()
        self.cache.clear()
        logger.debug(f"注册坐标系: {definition.code}")

    def _verify(self, points: Iterable[VerificationPoint]) -> None:
        tolerance = self.config.verification_tolerance_deg
        for vp in points:
            try:
                x, y = self._do_transform(vp.point[0], vp.point[1], vp.source, vp.target)
            except CoordinateTransformationError as e:
                raise CoordinateSystemError(
                    f"坐标系自检转换失败: {vp.source} -> {vp.target}",
                    {"point": list(vp.point), "error": e.message},
                ) from e

            dx, dy = abs(x - vp.expected[0]), abs(y - vp.expected[1])
            if dx > tolerance or dy > tolerance:
                raise CoordinateSystemError(
                    f"坐标系自检偏差超限: {vp.source} -> {vp.target}",
                    {
                        "point": list(vp.point),
                        "expected": list(vp.expected),
                        "actual": [x, y],
                        "tolerance": tolerance,
                    },
                )
            logger.debug(f"自检通过: {vp.source} {list(vp.point)} -> [{x:.5f}, {y:.5f}]")

    # === 查询 ===

    def get_system(self, code: str) -> CoordinateSystemDefinition | None:
        self._ensure_initialized()
        return self._systems.get(code)

    @property
    def systems(self) -> list[str]:
        self._ensure_initialized()
        return list(self._systems)

    def validate_bounds(self, point: PointLike, code: str) -> bool:
        """点是否落在坐标系声明的有效范围内（未声明范围视为有效）"""
        definition = self.get_system(code)
        if definition is None:
            return False
        if definition.bounds is None:
            return True
        x, y, _ = _as_xyz(point)
        min_x, min_y, max_x, max_y = definition.bounds
        return Bounds(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y).contains(x, y)

    # === 转换 ===

    def transform(self, point: PointLike, from_system: str, to_system: str) -> Vector3:
        """
        单点转换（z 原样保留）

        Raises:
            InvalidCoordinateError: 输入含 NaN/Inf
            CoordinateTransformationError: 坐标系未注册或转换失败
        """
        x, y, z = _as_xyz(point)
        if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
            raise InvalidCoordinateError(f"坐标非有限: ({x}, {y}, {z})", [x, y, z])

        self._ensure_initialized()
        if from_system == to_system:
            return Vector3(x=x, y=y, z=z)

        key = (from_system, to_system, x, y)
        cached = self.cache.get(key)
        if cached is not None:
            return Vector3(x=cached[0], y=cached[1], z=z)

        tx, ty = self._do_transform(x, y, from_system, to_system)
        self.cache.set(key, (tx, ty))
        return Vector3(x=tx, y=ty, z=z)

    def transform_many(self, points: Iterable[PointLike], from_system: str, to_system: str) -> list[Vector3]:
        """批量转换（任一点失败即抛异常）"""
        return [self.transform(p, from_system, to_system) for p in points]

    def _do_transform(self, x: float, y: float, from_system: str, to_system: str) -> tuple[float, float]:
        """不经缓存的实际转换"""
        try:
            transformer = self._get_transformer(from_system, to_system)
            tx, ty = transformer.transform(x, y, errcheck=True)
        except (ProjError, CRSError) as e:
            raise CoordinateTransformationError(
                f"坐标转换失败: {from_system} -> {to_system}: {e}",
                [x, y],
                from_system,
                to_system,
            ) from e

        if not (math.isfinite(tx) and math.isfinite(ty)):
            raise CoordinateTransformationError(
                f"坐标转换结果非有限: {from_system} -> {to_system}",
                [x, y],
                from_system,
                to_system,
                {"result": [tx, ty]},
            )
        return tx, ty

    def _get_transformer(self, from_system: str, to_system: str) -> Transformer:
        key = (from_system, to_system)
        transformer = self._transformers.get(key)
        if transformer is not None:
            return transformer

        for code in key:
            if code not in self._crs:
                raise CoordinateTransformationError(
                    f"坐标系未注册: {code}",
                    None,
                    from_system,
                    to_system,
                )

        with self._lock:
            transformer = self._transformers.get(key)
            if transformer is None:
                transformer = Transformer.from_crs(self._crs[from_system], self._crs[to_system], always_xy=True)
                self._transformers[key] = transformer
        return transformer
