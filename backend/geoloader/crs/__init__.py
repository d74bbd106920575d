"""
坐标系模块 - 瑞士坐标系（LV95/LV03）与 WGS84 互转

子模块：
- manager: 坐标系注册/转换/自检
- cache: 有界转换缓存
- detector: 由图纸范围识别源坐标系
"""

from .cache import TransformCache
from .detector import CoordinateSystemDetector, DetectionResult
from .manager import LV03, LV95, WGS84, CoordinateSystemManager

__all__ = [
    "CoordinateSystemManager",
    "TransformCache",
    "CoordinateSystemDetector",
    "DetectionResult",
    "WGS84",
    "LV95",
    "LV03",
]
