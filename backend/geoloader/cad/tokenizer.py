"""
分词器与段扫描器 - 把 DXF 文本切分为 (组码, 值) 对并按段归组

职责：
1. 逐行读取组码/值对（兼容 CRLF / LF / CR），跳过999注释与空组码行
2. 非整数组码记 INVALID_GROUP_CODE 并在下一行重新同步
3. 按 (0,SECTION)(2,NAME) … (0,ENDSEC) 切分段
4. 提供实体游程切分与表记录提取工具

依赖：
- ezdxf.lldxf.types.DXFTag: 组码/值对类型

测试要点：
- test_tokenize_line_endings: 三种换行符结果一致
- test_tokenize_bom: UTF-8 BOM 不影响首个组码
- test_invalid_group_code: 非法组码重同步
- test_scan_sections: 段切分与未闭合段
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ezdxf.lldxf.types import DXFTag

from ..diagnostics import DiagnosticsReporter
from ..interfaces import DxfParseError
from ..models import DiagnosticCode

COMMENT_CODE = 999
BOM = "\ufeff"

# 保留原样（不去首尾空白）的文本组码
_RAW_TEXT_CODES = frozenset({1, 3})


@dataclass(frozen=True)
class DxfSection:
    """一个段：名称 + 段内组码对（不含 SECTION/名称/ENDSEC 标记）"""
    name: str
    tags: tuple[DXFTag, ...] = field(default_factory=tuple)
    closed: bool = True


def tokenize(content: str, reporter: DiagnosticsReporter | None = None) -> list[DXFTag]:
    """
    把 DXF 文本切分为组码/值对

    Raises:
        DxfParseError: 空输入（EMPTY_CONTENT）或未恢复出任何组码对（MALFORMED_DXF）
    """
    if not content or not content.strip():
        raise DxfParseError("DXF内容为空", code="EMPTY_CONTENT")

    # 去掉 UTF-8 BOM
    lines = content.removeprefix(BOM).splitlines()
    tags: list[DXFTag] = []
    i = 0
    total = len(lines)

    while i < total:
        code_line = lines[i].strip()
        if not code_line:
            i += 1
            continue

        try:
            code = int(code_line)
        except ValueError:
            if reporter:
                reporter.warning(
                    DiagnosticCode.INVALID_GROUP_CODE,
                    f"第{i + 1}行组码非法: {code_line[:40]!r}",
                    {"line": i + 1},
                )
            i += 1
            continue

        if i + 1 >= total:
            if reporter:
                reporter.warning(
                    DiagnosticCode.MISSING_VALUE,
                    f"第{i + 1}行组码 {code} 缺少值",
                    {"line": i + 1, "code": code},
                )
            break

        value = lines[i + 1]
        i += 2
        if code == COMMENT_CODE:
            continue
        tags.append(DXFTag(code, value if code in _RAW_TEXT_CODES else value.strip()))

    if not tags:
        raise DxfParseError("未能解析出任何组码对", code="MALFORMED_DXF")
    return tags


def scan_sections(tags: list[DXFTag], reporter: DiagnosticsReporter | None = None) -> dict[str, DxfSection]:
    """
    按段切分组码对

    同名段只保留第一个；缺少 ENDSEC 的段保留并记 UNCLOSED_SECTION。

    Raises:
        DxfParseError: 没有任何段标记（NO_SECTIONS）
    """
    sections: dict[str, DxfSection] = {}
    i = 0
    total = len(tags)

    while i < total:
        tag = tags[i]
        if tag.code != 0 or tag.value != "SECTION":
            i += 1
            continue

        name = ""
        start = i + 1
        if start < total and tags[start].code == 2:
            name = tags[start].value.upper()
            start += 1

        end = start
        while end < total and not (tags[end].code == 0 and tags[end].value == "ENDSEC"):
            end += 1

        closed = end < total
        if not closed and reporter:
            reporter.warning(
                DiagnosticCode.UNCLOSED_SECTION,
                f"段 {name or '?'} 缺少 ENDSEC",
                {"section": name},
            )

        if name and name not in sections:
            sections[name] = DxfSection(name=name, tags=tuple(tags[start:end]), closed=closed)
        i = end + 1

    if not sections:
        raise DxfParseError("未找到任何 SECTION", code="NO_SECTIONS")
    return sections


def split_entity_runs(tags: tuple[DXFTag, ...] | list[DXFTag]) -> list[list[DXFTag]]:
    """按组码0切分实体游程（每个游程以 (0,TYPE) 开头）"""
    runs: list[list[DXFTag]] = []
    current: list[DXFTag] | None = None
    for tag in tags:
        if tag.code == 0:
            current = [tag]
            runs.append(current)
        elif current is not None:
            current.append(tag)
    return runs


def extract_table_records(tables_tags: tuple[DXFTag, ...] | list[DXFTag], table_name: str) -> list[list[DXFTag]]:
    """
    从 TABLES 段提取指定表的记录

    Args:
        tables_tags: TABLES 段组码对
        table_name: 表名（如 "LAYER"）

    Returns:
        每条记录的组码对（以 (0, table_name) 开头）
    """
    records: list[list[DXFTag]] = []
    in_table = False
    for run in split_entity_runs(tables_tags):
        head = run[0].value
        if head == "TABLE":
            in_table = any(t.code == 2 and t.value == table_name for t in run[1:])
            continue
        if head == "ENDTAB":
            in_table = False
            continue
        if in_table and head == table_name:
            records.append(run)
    return records
