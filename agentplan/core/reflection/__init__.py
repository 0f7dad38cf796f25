"""
复盘模块 - 根据执行结果生成复盘结论

这个模块提供了：
- 执行复盘器：成功率分析、模式识别、改进建议、置信度
- 复盘结论存储：以计划ID为键保存结论
"""

from .schemas import PerformanceInsights
from .insight_store import InsightStore, InMemoryInsightStore
from .performance_reflector import PerformanceReflector, RECOMMENDATION_RULES

__all__ = [
    # 数据结构
    "PerformanceInsights",

    # 核心组件
    "InsightStore",
    "InMemoryInsightStore",
    "PerformanceReflector",
    "RECOMMENDATION_RULES",
]
