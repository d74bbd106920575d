"""
坐标系识别 - 由图纸原始范围推断源坐标系

规则（按优先级）：
1. LV95：min_x ∈ (2.0M, 3.0M) 且 min_y ∈ (1.0M, 1.4M)，再以 LV95 声明范围确认
2. LV03：min_x ∈ (0.4M, 0.9M) 且 min_y ∈ (0, 0.4M)
3. WGS84：|x| ≤ 180 且 |y| ≤ 90
4. 量级兜底：任一 X 超过 2.0M 视为 LV95
5. 文件头提示：$INSUNITS == 1 视为 LV95
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models import Bounds, DxfHeader
from .manager import LV03, LV95, WGS84, CoordinateSystemManager

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 0.5


@dataclass(frozen=True)
class DetectionResult:
    """识别结果"""
    system: str | None
    confidence: float
    source: str  # bounds / magnitude / header / none
    reason: str

    @property
    def detected(self) -> bool:
        return self.system is not None

    @property
    def is_low_confidence(self) -> bool:
        return self.system is not None and self.confidence < LOW_CONFIDENCE


class CoordinateSystemDetector:
    """坐标系识别器"""

    def __init__(self, manager: CoordinateSystemManager | None = None):
        self.manager = manager

    def detect(self, bounds: Bounds | None, header: DxfHeader | None = None) -> DetectionResult:
        result = self._detect(bounds, header)
        if result.detected:
            logger.info(f"识别坐标系: {result.system}（置信度 {result.confidence:.2f}，{result.reason}）")
        else:
            logger.info(f"未能识别坐标系: {result.reason}")
        return result

    def _detect(self, bounds: Bounds | None, header: DxfHeader | None) -> DetectionResult:
        if bounds is not None:
            if 2_000_000 < bounds.min_x < 3_000_000 and 1_000_000 < bounds.min_y < 1_400_000:
                if self._within_declared(bounds, LV95):
                    return DetectionResult(LV95, 0.9, "bounds", "范围落在 LV95 有效区内")
                return DetectionResult(LV95, 0.7, "bounds", "范围符合 LV95 量级")

            if 400_000 < bounds.min_x < 900_000 and 0 < bounds.min_y < 400_000:
                return DetectionResult(LV03, 0.8, "bounds", "范围符合 LV03 量级")

            if (
                abs(bounds.min_x) <= 180 and abs(bounds.max_x) <= 180
                and abs(bounds.min_y) <= 90 and abs(bounds.max_y) <= 90
            ):
                return DetectionResult(WGS84, 0.6, "bounds", "范围落在经纬度区间内")

            if bounds.min_x > 2_000_000 or bounds.max_x > 2_000_000:
                return DetectionResult(LV95, 0.4, "magnitude", "X 坐标超过 2,000,000")

        if header is not None and header.insunits == 1:
            return DetectionResult(LV95, 0.3, "header", "$INSUNITS = 1")

        reason = "无坐标范围" if bounds is None else "范围不符合任何已知坐标系"
        return DetectionResult(None, 0.0, "none", reason)

    def _within_declared(self, bounds: Bounds, code: str) -> bool:
        if self.manager is None:
            return True
        return (
            self.manager.validate_bounds((bounds.min_x, bounds.min_y), code)
            and self.manager.validate_bounds((bounds.max_x, bounds.max_y), code)
        )
