"""
复盘结论存储

定义了复盘结论存储的标准接口，真实的长期记忆存储由外部实现
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from agentplan.core.reflection.schemas import PerformanceInsights
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class InsightStore(ABC):
    """
    复盘结论存储基类

    以 plan_id 为键保存 PerformanceInsights，供后续规划回忆
    """

    @abstractmethod
    def save(self, insights: PerformanceInsights) -> None:
        """
        保存复盘结论

        Args:
            insights: 复盘结论
        """
        pass

    @abstractmethod
    def list_for_plan(self, plan_id: str) -> List[PerformanceInsights]:
        """
        获取计划的全部复盘结论（按保存顺序）

        Args:
            plan_id: 计划ID

        Returns:
            List[PerformanceInsights]: 复盘结论列表，没有记录时为空列表
        """
        pass

    def get(self, plan_id: str) -> Optional[PerformanceInsights]:
        """获取计划最近一次的复盘结论"""
        history = self.list_for_plan(plan_id)
        return history[-1] if history else None


class InMemoryInsightStore(InsightStore):
    """进程内存储，随引擎实例一起创建和丢弃"""

    def __init__(self):
        self._lock = threading.Lock()
        self._insights: Dict[str, List[PerformanceInsights]] = {}

    def save(self, insights: PerformanceInsights) -> None:
        with self._lock:
            self._insights.setdefault(insights.plan_id, []).append(insights)
        logger.debug("复盘结论已保存", plan_id=insights.plan_id)

    def list_for_plan(self, plan_id: str) -> List[PerformanceInsights]:
        with self._lock:
            return list(self._insights.get(plan_id, []))

    def __len__(self) -> int:
        with self._lock:
            return sum(len(items) for items in self._insights.values())
