"""
Resource allocation and duration/cost estimation.

Tasks outside any parallel group run sequentially and add their full
duration; a parallel group adds only its slowest member. Cost is summed
over all tasks: a flat unit cost unless a cost/latency collaborator
supplies a real figure.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from agentplan.core.planning.schemas import (
    PlanningConstraints, ResourceAllocation, ResourceType, Task, TaskKind
)
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class TaskEstimate(BaseModel):
    """单个任务的时长/成本估计"""
    duration: float = Field(..., gt=0, description="时长（分钟）")
    cost: float = Field(..., ge=0, description="成本")


class CostEstimator(ABC):
    """
    成本/时延估计协作者接口

    返回 None 表示没有更好的估计，由计算器使用任务自身时长和单位成本。
    """

    @abstractmethod
    def estimate(self, task: Task) -> Optional[TaskEstimate]:
        """估计单个任务"""


class FlatCostEstimator(CostEstimator):
    """固定单位成本（占位策略，真实成本应来自执行方）"""

    def __init__(self, cost_per_task: float = 0.05):
        self.cost_per_task = cost_per_task

    def estimate(self, task: Task) -> Optional[TaskEstimate]:
        return TaskEstimate(duration=task.estimated_duration, cost=self.cost_per_task)


class PlanEstimate(BaseModel):
    """整体估计结果"""
    duration: float = Field(default=0.0, ge=0)
    cost: float = Field(default=0.0, ge=0)
    sequential_duration: float = Field(default=0.0, ge=0, description="全部顺序执行时的时长")

    @property
    def parallel_savings(self) -> float:
        """并行执行节省的时长"""
        return self.sequential_duration - self.duration


class ResourceEstimator:
    """
    资源与估计计算器

    功能：
    - 生成每个任务的资源分配
    - 计算考虑并行节省的总时长和总成本
    - 检查规划约束，生成警告（不阻断规划）
    """

    def __init__(self,
                 cost_estimator: Optional[CostEstimator] = None,
                 cost_per_task: float = 0.05):
        """
        参数:
            cost_estimator: 成本/时延估计协作者（可选）
            cost_per_task: 协作者缺失或无估计时的单位成本
        """
        self.fallback = FlatCostEstimator(cost_per_task)
        self.cost_estimator = cost_estimator or self.fallback

    def _estimate_task(self, task: Task) -> TaskEstimate:
        estimate = self.cost_estimator.estimate(task)
        if estimate is None:
            estimate = self.fallback.estimate(task)
        return estimate

    def allocate(self, tasks: Sequence[Task]) -> Dict[str, ResourceAllocation]:
        """
        生成资源分配

        参数:
            tasks: 任务列表

        返回:
            Dict[str, ResourceAllocation]: 任务ID -> 资源分配
        """
        allocation = {}
        for task in tasks:
            estimate = self._estimate_task(task)
            allocation[task.id] = ResourceAllocation(
                required_capabilities=list(task.required_capabilities),
                estimated_duration=estimate.duration,
                priority=task.priority,
                resource_type=(ResourceType.SINGLE_AGENT if task.kind == TaskKind.ATOMIC
                               else ResourceType.MULTI_AGENT),
                estimated_cost=estimate.cost,
            )
        return allocation

    def estimate(self,
                 allocation: Dict[str, ResourceAllocation],
                 parallel_groups: Sequence[Sequence[str]]) -> PlanEstimate:
        """
        计算总时长和总成本

        参数:
            allocation: 资源分配
            parallel_groups: 并行组

        返回:
            PlanEstimate: 估计结果
        """
        grouped = {task_id for group in parallel_groups for task_id in group}

        duration = sum(item.estimated_duration
                       for task_id, item in allocation.items() if task_id not in grouped)
        for group in parallel_groups:
            durations = [allocation[t].estimated_duration for t in group if t in allocation]
            if durations:
                duration += max(durations)

        return PlanEstimate(
            duration=duration,
            cost=sum(item.estimated_cost for item in allocation.values()),
            sequential_duration=sum(item.estimated_duration for item in allocation.values()),
        )

    def check_constraints(self,
                          tasks: Sequence[Task],
                          estimate: PlanEstimate,
                          constraints: Optional[PlanningConstraints]) -> List[str]:
        """
        检查规划约束

        返回:
            List[str]: 约束警告，空列表表示全部满足
        """
        if constraints is None:
            return []

        warnings: List[str] = []
        if constraints.max_duration is not None and estimate.duration > constraints.max_duration:
            warnings.append(
                f"estimated duration {estimate.duration:g} exceeds max_duration {constraints.max_duration:g}"
            )
        if constraints.max_cost is not None and estimate.cost > constraints.max_cost:
            warnings.append(
                f"estimated cost {estimate.cost:g} exceeds max_cost {constraints.max_cost:g}"
            )

        excluded = set(constraints.excluded_capabilities)
        provided = set()
        for task in tasks:
            provided.update(task.required_capabilities)
            hits = sorted(excluded.intersection(task.required_capabilities))
            if hits:
                warnings.append(f"task {task.id} requires excluded capabilities: {', '.join(hits)}")
            if (constraints.priority_threshold is not None
                    and task.priority.rank < constraints.priority_threshold.rank):
                warnings.append(
                    f"task {task.id} priority {task.priority.value} is below threshold "
                    f"{constraints.priority_threshold.value}"
                )

        missing = [c for c in constraints.required_capabilities if c not in provided]
        if missing:
            warnings.append(f"plan does not cover required capabilities: {', '.join(missing)}")

        for warning in warnings:
            logger.warning("规划约束未满足", detail=warning)
        return warnings
