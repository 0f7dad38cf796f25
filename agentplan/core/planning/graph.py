"""
Dependency graph construction.

Edges point from a task to the tasks it depends on. Both the per-task
dependency lists and the plan-level TaskDependency records feed the same
edge set; neither source takes precedence.
"""

from typing import Any, Dict, List, Optional, Sequence, Set

import networkx as nx

from agentplan.core.planning.schemas import Task, TaskDependency, TaskPlan
from agentplan.utils.exceptions import UnknownTaskReference
from agentplan.utils.helpers import unique_ordered
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class DependencyGraph:
    """
    任务依赖图

    adjacency 保持计划输入顺序：键的顺序即任务顺序，每个依赖列表按声明顺序去重。
    """

    def __init__(self, adjacency: Optional[Dict[str, List[str]]] = None):
        self.adjacency: Dict[str, List[str]] = {}
        self.reverse_edges: Dict[str, List[str]] = {}
        for task_id in (adjacency or {}):
            self.add_node(task_id)
        for task_id, deps in (adjacency or {}).items():
            for dep in deps:
                self.add_edge(task_id, dep)

    @property
    def nodes(self) -> List[str]:
        return list(self.adjacency)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.adjacency

    def __len__(self) -> int:
        return len(self.adjacency)

    def add_node(self, task_id: str) -> None:
        """添加节点（已存在时忽略）"""
        self.adjacency.setdefault(task_id, [])
        self.reverse_edges.setdefault(task_id, [])

    def add_edge(self, task_id: str, depends_on: str) -> None:
        """
        添加依赖边 task_id -> depends_on

        异常:
            UnknownTaskReference: 任一端不在图中
        """
        if task_id not in self.adjacency:
            raise UnknownTaskReference(task_id, task_id)
        if depends_on not in self.adjacency:
            raise UnknownTaskReference(task_id, depends_on)

        if depends_on not in self.adjacency[task_id]:
            self.adjacency[task_id].append(depends_on)
            self.reverse_edges[depends_on].append(task_id)

    def dependencies_of(self, task_id: str) -> List[str]:
        """task_id 直接依赖的任务"""
        return list(self.adjacency.get(task_id, []))

    def dependents_of(self, task_id: str) -> List[str]:
        """直接依赖 task_id 的任务"""
        return list(self.reverse_edges.get(task_id, []))

    def has_edge(self, task_a: str, task_b: str) -> bool:
        """两个任务之间是否存在任一方向的直接依赖"""
        return (task_b in self.adjacency.get(task_a, [])
                or task_a in self.adjacency.get(task_b, []))

    def descendants(self, task_id: str) -> Set[str]:
        """所有（传递地）依赖 task_id 的下游任务"""
        found: Set[str] = set()
        stack = list(self.reverse_edges.get(task_id, []))
        while stack:
            current = stack.pop()
            if current in found:
                continue
            found.add(current)
            stack.extend(self.reverse_edges.get(current, []))
        found.discard(task_id)
        return found

    def to_networkx(self) -> nx.DiGraph:
        """转换为 networkx 有向图，边方向为 依赖 -> 被依赖者（执行方向）"""
        graph = nx.DiGraph()
        graph.add_nodes_from(self.adjacency)
        for task_id, deps in self.adjacency.items():
            graph.add_edges_from((dep, task_id) for dep in deps)
        return graph

    def to_dict(self) -> Dict[str, List[str]]:
        """转换为邻接表字典"""
        return {task_id: list(deps) for task_id, deps in self.adjacency.items()}

    def __repr__(self) -> str:
        edge_count = sum(len(deps) for deps in self.adjacency.values())
        return f"<DependencyGraph(nodes={len(self)}, edges={edge_count})>"


class DependencyGraphBuilder:
    """
    依赖图构建器

    合并 Task.dependencies 与 TaskDependency 记录：先取任务自身声明的依赖，
    再按记录的输入顺序追加，重复边只保留一次。
    """

    def build(self,
              tasks: Sequence[Task],
              dependency_records: Sequence[TaskDependency] = ()) -> DependencyGraph:
        """
        构建依赖图

        参数:
            tasks: 按计划顺序展开的任务
            dependency_records: 计划级依赖记录

        返回:
            DependencyGraph: 覆盖所有任务的依赖图（无依赖的任务映射到空列表）

        异常:
            UnknownTaskReference: 依赖引用了不存在的任务
        """
        graph = DependencyGraph()
        for task in tasks:
            graph.add_node(task.id)

        merged: Dict[str, List[str]] = {task.id: list(task.dependencies) for task in tasks}
        for record in dependency_records:
            if record.task_id not in merged:
                raise UnknownTaskReference(record.task_id, record.task_id)
            merged[record.task_id].extend(record.depends_on)

        for task_id, deps in merged.items():
            for dep in unique_ordered(deps):
                graph.add_edge(task_id, dep)

        logger.debug("依赖图构建完成", graph=repr(graph))
        return graph

    def build_from_plan(self, plan: TaskPlan) -> DependencyGraph:
        """从任务计划构建依赖图"""
        return self.build(plan.all_tasks(), plan.dependencies)

    @staticmethod
    def summarize(graph: DependencyGraph) -> Dict[str, Any]:
        """图的概要统计，用于日志和计划元数据"""
        roots = [t for t in graph.nodes if not graph.dependencies_of(t)]
        leaves = [t for t in graph.nodes if not graph.dependents_of(t)]
        return {
            "nodes": len(graph),
            "edges": sum(len(graph.dependencies_of(t)) for t in graph.nodes),
            "roots": roots,
            "leaves": leaves,
        }
