"""
Feedback-driven plan adaptation.

This module provides functionality for:
- Classifying execution feedback by severity
- Choosing an adaptation strategy (replan / reorder / adjust_estimates)
- Rescaling plan estimates from observed durations
- Flagging or rejecting dependents orphaned by a removed task
- Serializing adaptations per plan lineage
"""

import copy
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from agentplan.core.planning.graph import DependencyGraph, DependencyGraphBuilder
from agentplan.core.planning.safeguards import DEPENDENCY_FAILED, SafeguardGenerator
from agentplan.core.planning.scheduler import find_order_violations
from agentplan.core.planning.schemas import (
    ExecutionCheckpoint, ExecutionFeedback, ExecutionPlan, FeedbackStatus
)
from agentplan.utils.exceptions import AdaptationConflict, OrphanedDependents
from agentplan.utils.helpers import generate_id, unique_ordered
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class FeedbackSeverity(str, Enum):
    """反馈严重程度"""
    HIGH = "high"
    MEDIUM = "medium"
    NONE = "none"


class AdaptationStrategy(str, Enum):
    """调整策略"""
    REPLAN = "replan"
    REORDER = "reorder"
    ADJUST_ESTIMATES = "adjust_estimates"


class FeedbackImpact(BaseModel):
    """反馈对计划的影响"""
    severity: FeedbackSeverity
    affected_tasks: List[str] = Field(default_factory=list, description="仍在执行顺序中的下游任务")
    timeline_impact: float = Field(default=0.0, description="实际时长与平均任务估计之差")
    cost_impact: float = Field(default=0.0, description="实际成本与平均任务成本之差")


class PlanAdapter:
    """
    计划调整器

    功能：
    - 根据任务反馈生成新版本的执行计划（新 id，版本号 +1）
    - 同一计划（按 goal_id 识别）的调整互斥，并发或过期请求抛出 AdaptationConflict
    - 按 goal_id 保存的调整记录在调用 forget 前一直保留
    """

    def __init__(self,
                 graph_builder: Optional[DependencyGraphBuilder] = None,
                 orphan_policy: str = "flag",
                 reject_stale_versions: bool = True):
        """
        初始化计划调整器

        参数:
            graph_builder: 依赖图构建器
            orphan_policy: flag 标记失去依赖的下游任务；reject 直接拒绝调整
            reject_stale_versions: 是否拒绝对过期版本的调整
        """
        if orphan_policy not in ("flag", "reject"):
            raise ValueError(f"未知的 orphan_policy: {orphan_policy}")

        self.graph_builder = graph_builder or DependencyGraphBuilder()
        self.orphan_policy = orphan_policy
        self.reject_stale_versions = reject_stale_versions

        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._latest_versions: Dict[str, int] = {}

    def _lock_for(self, lineage: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(lineage, threading.Lock())

    def forget(self, goal_id: str) -> bool:
        """
        释放某个目标的调整记录（锁和最新版本号）

        之后对该目标任意版本的调整都不再视为过期。

        参数:
            goal_id: 目标ID

        返回:
            bool: 是否存在被释放的记录

        异常:
            AdaptationConflict: 该目标正在被调整
        """
        with self._registry_lock:
            lock = self._locks.get(goal_id)
            if lock is not None and not lock.acquire(blocking=False):
                raise AdaptationConflict(goal_id, "another adaptation is in progress")
            try:
                self._locks.pop(goal_id, None)
                self._latest_versions.pop(goal_id, None)
            finally:
                if lock is not None:
                    lock.release()

        logger.debug("已释放计划调整记录", goal_id=goal_id, known=lock is not None)
        return lock is not None

    @staticmethod
    def classify_severity(feedback: ExecutionFeedback) -> FeedbackSeverity:
        """failed 为高，blocked 为中，其余不需要结构调整"""
        if feedback.status == FeedbackStatus.FAILED:
            return FeedbackSeverity.HIGH
        if feedback.status == FeedbackStatus.BLOCKED:
            return FeedbackSeverity.MEDIUM
        return FeedbackSeverity.NONE

    @staticmethod
    def determine_strategy(severity: FeedbackSeverity) -> AdaptationStrategy:
        """根据严重程度选择调整策略"""
        if severity == FeedbackSeverity.HIGH:
            return AdaptationStrategy.REPLAN
        if severity == FeedbackSeverity.MEDIUM:
            return AdaptationStrategy.REORDER
        return AdaptationStrategy.ADJUST_ESTIMATES

    @staticmethod
    def adjustment_factor(plan: ExecutionPlan, feedback: ExecutionFeedback) -> float:
        """
        估计修正系数 = 实际时长 / 平均任务估计

        平均任务估计 = 计划总时长 / 执行顺序长度。无法计算或实际时长未上报时返回 1。
        """
        if not plan.execution_order or plan.estimated_duration <= 0 or feedback.actual_duration <= 0:
            return 1.0
        average = plan.estimated_duration / len(plan.execution_order)
        return feedback.actual_duration / average

    def analyze_impact(self,
                       plan: ExecutionPlan,
                       feedback: ExecutionFeedback,
                       graph: DependencyGraph) -> FeedbackImpact:
        """分析反馈对计划的影响"""
        steps = len(plan.execution_order) or 1
        downstream = graph.descendants(feedback.task_id) if feedback.task_id in graph else set()
        return FeedbackImpact(
            severity=self.classify_severity(feedback),
            affected_tasks=[t for t in plan.execution_order if t in downstream],
            timeline_impact=feedback.actual_duration - plan.estimated_duration / steps,
            cost_impact=feedback.actual_cost - plan.estimated_cost / steps,
        )

    def adapt(self, plan: ExecutionPlan, feedback: ExecutionFeedback) -> ExecutionPlan:
        """
        根据执行反馈调整计划

        参数:
            plan: 当前执行计划
            feedback: 任务执行反馈

        返回:
            ExecutionPlan: 新的执行计划（新 id，版本号 +1）

        异常:
            AdaptationConflict: 同一计划正在被调整，或 plan 已不是最新版本
            OrphanedDependents: orphan_policy 为 reject 且移除任务后存在失去依赖的下游任务
        """
        lineage = plan.task_plan.goal_id
        lock = self._lock_for(lineage)
        if not lock.acquire(blocking=False):
            raise AdaptationConflict(lineage, "another adaptation is in progress")

        try:
            latest = self._latest_versions.get(lineage)
            if self.reject_stale_versions and latest is not None and plan.version < latest:
                raise AdaptationConflict(
                    lineage, f"plan version {plan.version} is older than latest version {latest}"
                )

            adapted = self._adapt(plan, feedback)
            self._latest_versions[lineage] = adapted.version
            return adapted
        finally:
            lock.release()

    def _adapt(self, plan: ExecutionPlan, feedback: ExecutionFeedback) -> ExecutionPlan:
        logger.info(f"根据任务 {feedback.task_id} 的反馈调整计划 {plan.id}",
                    status=feedback.status.value)

        graph = self.graph_builder.build_from_plan(plan.task_plan)
        impact = self.analyze_impact(plan, feedback, graph)
        strategy = self.determine_strategy(impact.severity)
        factor = self.adjustment_factor(plan, feedback)

        if feedback.task_id not in plan.execution_order:
            logger.warning("反馈任务不在执行顺序中", task_id=feedback.task_id, plan_id=plan.id)

        order = list(plan.execution_order)
        groups = [list(group) for group in plan.parallel_groups]
        checkpoints = list(plan.checkpoints)
        metadata: Dict[str, Any] = copy.deepcopy(plan.metadata)

        if strategy == AdaptationStrategy.REPLAN and feedback.task_id in order:
            order.remove(feedback.task_id)
            groups = self._without(groups, feedback.task_id)
            checkpoints = [c for c in checkpoints if c.task_id != feedback.task_id]
            checkpoints = self._handle_orphans(feedback.task_id, order, graph, checkpoints, metadata)

        elif strategy == AdaptationStrategy.REORDER and feedback.task_id in order:
            order.remove(feedback.task_id)
            order.append(feedback.task_id)
            groups = self._without(groups, feedback.task_id)
            violations = [
                [task_id, dep] for task_id, dep in find_order_violations(order, graph)
                if dep in order
            ]
            if violations:
                logger.warning("重排后存在依赖违规", task_id=feedback.task_id, violations=len(violations))
            metadata["order_violations"] = violations

        version = plan.version + 1
        metadata.setdefault("adaptations", []).append({
            "version": version,
            "strategy": strategy.value,
            "severity": impact.severity.value,
            "task_id": feedback.task_id,
            "status": feedback.status.value,
            "factor": factor,
            "affected_tasks": impact.affected_tasks,
            "issues": list(feedback.issues),
            "timestamp": datetime.utcnow().isoformat(),
        })

        adapted = ExecutionPlan(
            id=generate_id(),
            task_plan=plan.task_plan.model_copy(update={"version": version}, deep=True),
            execution_order=order,
            parallel_groups=groups,
            resource_allocation=dict(plan.resource_allocation),
            checkpoints=checkpoints,
            fallback_strategies=list(plan.fallback_strategies),
            estimated_cost=plan.estimated_cost * factor,
            estimated_duration=plan.estimated_duration * factor,
            metadata=metadata,
        )

        logger.info(f"计划调整完成，策略: {strategy.value}",
                    plan_id=adapted.id, version=version, factor=round(factor, 3))
        return adapted

    def _handle_orphans(self,
                        removed_id: str,
                        order: List[str],
                        graph: DependencyGraph,
                        checkpoints: List[ExecutionCheckpoint],
                        metadata: Dict[str, Any]) -> List[ExecutionCheckpoint]:
        """移除任务后检查仍在执行顺序中的下游任务"""
        downstream: Set[str] = graph.descendants(removed_id)
        orphaned = [task_id for task_id in order if task_id in downstream]
        if not orphaned:
            return checkpoints

        if self.orphan_policy == "reject":
            logger.error("移除任务会导致下游任务失去依赖", task_id=removed_id, orphaned=orphaned)
            raise OrphanedDependents(removed_id, orphaned)

        logger.warning("下游任务失去依赖，已标记待重规划", task_id=removed_id, orphaned=orphaned)
        metadata["orphaned_tasks"] = unique_ordered(metadata.get("orphaned_tasks", []) + orphaned)

        flagged = {c.task_id for c in checkpoints if c.condition == DEPENDENCY_FAILED}
        for task_id in orphaned:
            if task_id not in flagged:
                checkpoints.append(SafeguardGenerator.orphan_checkpoint(task_id))
        return checkpoints

    @staticmethod
    def _without(groups: List[List[str]], task_id: str) -> List[List[str]]:
        """从并行组中移除任务，丢弃不足两个任务的组"""
        result = []
        for group in groups:
            remaining = [t for t in group if t != task_id]
            if len(remaining) > 1:
                result.append(remaining)
        return result
