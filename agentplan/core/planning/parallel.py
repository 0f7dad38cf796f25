"""
Parallel group identification.

Grouping is a strategy object so a stricter algorithm can replace the
default without touching callers:

- GreedyParallelGrouping: single pass in plan order; a candidate joins a
  group when it has no direct edge to any current member. Not transitively
  safe: with A -> B -> C, A and C can land in the same group.
- StrictParallelGrouping: a candidate joins only when no dependency path
  connects it to any member in either direction.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Set

import networkx as nx

from agentplan.core.planning.graph import DependencyGraph
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class ParallelGroupingStrategy(ABC):
    """
    并行分组策略基类

    子类只需实现 _compatible，分组遍历逻辑由基类统一完成。
    """

    name = "base"

    def identify(self,
                 task_ids: Sequence[str],
                 graph: DependencyGraph,
                 max_group_size: Optional[int] = None) -> List[List[str]]:
        """
        识别可并行执行的任务组

        参数:
            task_ids: 按计划顺序排列的任务ID
            graph: 依赖图
            max_group_size: 每组最多任务数（None 表示不限）

        返回:
            List[List[str]]: 并行组列表，单任务组被丢弃（顺序执行）
        """
        self._prepare(graph)
        groups: List[List[str]] = []
        assigned: Set[str] = set()

        for task_id in task_ids:
            if task_id in assigned:
                continue

            group = [task_id]
            assigned.add(task_id)

            for other_id in task_ids:
                if max_group_size is not None and len(group) >= max_group_size:
                    break
                if other_id in assigned:
                    continue
                if all(self._compatible(member, other_id, graph) for member in group):
                    group.append(other_id)
                    assigned.add(other_id)

            if len(group) > 1:
                groups.append(group)

        logger.debug("并行分组完成", strategy=self.name, groups=len(groups))
        return groups

    def _prepare(self, graph: DependencyGraph) -> None:
        """分组前的预处理钩子"""

    @abstractmethod
    def _compatible(self, member: str, candidate: str, graph: DependencyGraph) -> bool:
        """candidate 能否与组内成员 member 并行"""


class GreedyParallelGrouping(ParallelGroupingStrategy):
    """贪心分组：只检查直接依赖边"""

    name = "greedy"

    def _compatible(self, member: str, candidate: str, graph: DependencyGraph) -> bool:
        return not graph.has_edge(member, candidate)


class StrictParallelGrouping(ParallelGroupingStrategy):
    """严格分组：任一方向存在依赖路径都不能同组"""

    name = "strict"

    def __init__(self):
        self._reachable = {}

    def _prepare(self, graph: DependencyGraph) -> None:
        digraph = graph.to_networkx()
        self._reachable = {node: nx.descendants(digraph, node) for node in digraph.nodes}

    def _compatible(self, member: str, candidate: str, graph: DependencyGraph) -> bool:
        return (candidate not in self._reachable.get(member, set())
                and member not in self._reachable.get(candidate, set()))


_STRATEGIES = {
    GreedyParallelGrouping.name: GreedyParallelGrouping,
    StrictParallelGrouping.name: StrictParallelGrouping,
}


def create_grouping_strategy(name: str) -> ParallelGroupingStrategy:
    """
    按名称创建分组策略

    异常:
        ValueError: 未知的策略名称
    """
    try:
        return _STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"未知的并行分组策略: {name}，可选: {', '.join(_STRATEGIES)}")
