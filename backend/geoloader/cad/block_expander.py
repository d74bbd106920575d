"""
图块展开器 - 把 INSERT 参照展开为世界坐标下的扁平实体序列

职责：
1. 显式工作栈遍历（不递归），保持原始顺序
2. 每个阵列单元复合矩阵：父矩阵 · OCS · T(插入点) · Rz(旋转) · T(列/行偏移) · S(比例) · T(-基点)
3. 逐分支维护图块名路径，检测循环引用（只跳过该分支）
4. 图层0 / BYBLOCK 颜色的块内实体继承 INSERT 的图层与颜色

依赖：
- matrix / transform: 矩阵复合与实体变换

测试要点：
- test_expand_nested: 嵌套图块
- test_expand_array: 阵列参照
- test_circular_reference: 循环引用检测
- test_missing_block: 缺失图块
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ezdxf.math import Matrix44

from ..diagnostics import DiagnosticsReporter
from ..models import Block, DiagnosticCode, DxfDocument, Entity, InsertEntity
from . import matrix as mx
from .transform import EntityTransformError, placement_matrix, transform_entity

logger = logging.getLogger(__name__)

BYBLOCK_COLOR = 0
DEFAULT_LAYER = "0"


@dataclass(frozen=True)
class _InsertContext:
    """父级 INSERT 的可继承属性"""
    block_name: str
    layer: str
    color: int | None
    true_color: int | None


@dataclass(frozen=True)
class _WorkItem:
    entity: Entity
    matrix: Matrix44 | None
    path: tuple[str, ...]
    context: _InsertContext | None


@dataclass
class ExpansionStats:
    """展开统计"""
    inserts: int = 0
    expanded: int = 0
    missing_blocks: int = 0
    circular_references: int = 0
    failed: int = 0


class BlockExpander:
    """图块展开器"""

    def __init__(self, reporter: DiagnosticsReporter | None = None, keep_insert_markers: bool = False):
        self.reporter = reporter or DiagnosticsReporter(log_records=False)
        self.keep_insert_markers = keep_insert_markers
        self.stats = ExpansionStats()

    def expand(self, document: DxfDocument) -> list[Entity]:
        """展开文档中的全部顶层实体"""
        return self.expand_entities(document.entities, document.blocks)

    def expand_entities(self, entities: list[Entity], blocks: dict[str, Block]) -> list[Entity]:
        self.stats = ExpansionStats()
        output: list[Entity] = []
        stack: list[_WorkItem] = [
            _WorkItem(entity=e, matrix=None, path=(), context=None) for e in reversed(entities)
        ]

        while stack:
            item = stack.pop()
            entity = self._inherit(item.entity, item.context)

            if isinstance(entity, InsertEntity):
                self.stats.inserts += 1
                if self.keep_insert_markers:
                    self._emit(output, entity, item)
                self._push_block(stack, entity, item, blocks)
                continue

            self._emit(output, entity, item)

        logger.info(
            f"图块展开完成: INSERT {self.stats.inserts} 个，展开实体 {self.stats.expanded} 个，"
            f"缺失图块 {self.stats.missing_blocks}，循环引用 {self.stats.circular_references}"
        )
        return output

    def _push_block(
        self,
        stack: list[_WorkItem],
        insert: InsertEntity,
        item: _WorkItem,
        blocks: dict[str, Block],
    ) -> None:
        name = insert.block_name
        block = blocks.get(name)
        if block is None:
            self.stats.missing_blocks += 1
            self.reporter.warning(
                DiagnosticCode.MISSING_BLOCK,
                f"参照的图块不存在: {name}",
                {"block": name, "handle": insert.handle},
            )
            return

        if name in item.path:
            cycle = [*item.path, name]
            self.stats.circular_references += 1
            self.reporter.warning(
                DiagnosticCode.CIRCULAR_REFERENCE,
                f"图块循环引用: {' -> '.join(cycle)}",
                {"path": cycle, "handle": insert.handle},
            )
            return

        path = (*item.path, name)
        context = _InsertContext(
            block_name=name,
            layer=insert.layer,
            color=insert.color,
            true_color=insert.true_color,
        )

        cells = [
            (col, row)
            for row in range(insert.row_count)
            for col in range(insert.column_count)
        ]
        # 逆序入栈以保持输出顺序
        for col, row in reversed(cells):
            local = mx.block_transform(
                position=insert.position,
                rotation=insert.rotation,
                scales=(insert.x_scale, insert.y_scale, insert.z_scale),
                offset=(col * insert.column_spacing, row * insert.row_spacing),
                base_point=block.base_point,
                extrusion=None if insert.has_default_extrusion else insert.extrusion,
            )
            cell_matrix = local if item.matrix is None else mx.compose(item.matrix, local)
            for child in reversed(block.entities):
                stack.append(_WorkItem(entity=child, matrix=cell_matrix, path=path, context=context))

    def _emit(self, output: list[Entity], entity: Entity, item: _WorkItem) -> None:
        m = placement_matrix(entity, item.matrix)
        if m is not None:
            try:
                entity = transform_entity(entity, m)
            except EntityTransformError as e:
                self.stats.failed += 1
                self.reporter.warning(
                    DiagnosticCode.CONVERSION_ERROR,
                    f"{entity.type} {entity.handle or '?'} 变换失败: {e}",
                    {"type": entity.type, "handle": entity.handle, "path": list(item.path)},
                )
                return
        if item.context is not None:
            self.stats.expanded += 1
        output.append(entity)

    @staticmethod
    def _inherit(entity: Entity, context: _InsertContext | None) -> Entity:
        """块内实体继承父 INSERT 的图层/颜色，并记录来源图块"""
        if context is None:
            return entity
        update: dict = {"source_block": context.block_name}
        if entity.layer == DEFAULT_LAYER:
            update["layer"] = context.layer
        if entity.color == BYBLOCK_COLOR:
            update["color"] = context.color
            update["true_color"] = context.true_color
        return entity.model_copy(update=update)


def expand_blocks(
    document: DxfDocument,
    reporter: DiagnosticsReporter | None = None,
    keep_insert_markers: bool = False,
) -> list[Entity]:
    """便捷函数：展开文档图块"""
    return BlockExpander(reporter, keep_insert_markers).expand(document)
