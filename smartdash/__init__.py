"""smartdash - 自适应表分析与仪表盘引擎"""

__version__ = "0.1.0"
