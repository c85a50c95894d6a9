"""
食堂管理后台核心
菜品目录、菜单编排及其查询组合层
"""

__version__ = "1.0.0"
