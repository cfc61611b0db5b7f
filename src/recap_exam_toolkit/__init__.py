"""题库导入、确定性组卷与评分工具"""
__version__ = "0.1.0"
