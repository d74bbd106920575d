"""
geoloader - DXF 导入核心模块

模块结构：
- config/     运行期配置与坐标系目录加载
- models/     数据模型定义（实体/图块/要素/诊断）
- cad/        DXF 解析（分词/段扫描/实体解码/图块展开/几何转换）
- crs/        坐标系管理（LV95/LV03 ↔ WGS84，缓存与自检）
- pipeline/   导入流程编排
"""

__version__ = "0.1.0"
