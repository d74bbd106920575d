"""
导入流水线阶段定义

职责：
1. 定义各阶段的名称与进度区间
2. 提供进度更新钩子

测试要点：
- test_stage_order: 阶段顺序
- test_progress_tracking: 进度更新
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class StageEnum(str, Enum):
    """导入阶段枚举"""
    PARSE_STRUCTURE = "PARSE_STRUCTURE"
    EXPAND_BLOCKS = "EXPAND_BLOCKS"
    CONVERT_GEOMETRY = "CONVERT_GEOMETRY"
    DETECT_CRS = "DETECT_CRS"
    TRANSFORM_COORDINATES = "TRANSFORM_COORDINATES"
    CALCULATE_BOUNDS = "CALCULATE_BOUNDS"


# 进度回调：(阶段名, 百分比, 消息)
ProgressCallback = Callable[[str, int, str], None]


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# DXF 导入流水线各阶段配置
IMPORT_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.PARSE_STRUCTURE.value, 0, 25),
    PipelineStage(StageEnum.EXPAND_BLOCKS.value, 25, 45),
    PipelineStage(StageEnum.CONVERT_GEOMETRY.value, 45, 70),
    PipelineStage(StageEnum.DETECT_CRS.value, 70, 75),
    PipelineStage(StageEnum.TRANSFORM_COORDINATES.value, 75, 95),
    PipelineStage(StageEnum.CALCULATE_BOUNDS.value, 95, 100),
]
