"""
Planning engine facade.

An explicitly constructed engine wiring the planning components together:

- decompose_goal: reasoning collaborator -> validated TaskPlan
- create_execution_plan: graph -> order -> parallel groups -> estimates ->
  checkpoints and fallbacks
- adapt_plan: feedback-driven adaptation (new id, version + 1)
- reflect_on_performance: ExecutionResults -> PerformanceInsights
- get_planning_stats: per-agent planning and execution history summary

Every collaborator is injected; the instance owns its histories, so two
engines never share state.
"""

import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional

from agentplan.core.llm.base import BaseLLM
from agentplan.core.planning.adapter import PlanAdapter
from agentplan.core.planning.estimator import CostEstimator, ResourceEstimator
from agentplan.core.planning.graph import DependencyGraphBuilder
from agentplan.core.planning.parallel import ParallelGroupingStrategy, create_grouping_strategy
from agentplan.core.planning.safeguards import SafeguardGenerator
from agentplan.core.planning.scheduler import TopologicalScheduler
from agentplan.core.planning.schemas import (
    AgentContext, ExecutionFeedback, ExecutionPlan, ExecutionResults,
    PlanningConstraints, RunStatus, TaskPlan
)
from agentplan.core.planning.task_decomposer import GoalDecomposer
from agentplan.core.planning.validator import PlanValidator
from agentplan.core.reflection.insight_store import InMemoryInsightStore, InsightStore
from agentplan.core.reflection.performance_reflector import PerformanceReflector
from agentplan.core.reflection.schemas import PerformanceInsights
from agentplan.utils.config import Config, PlanningSettings, get_config
from agentplan.utils.exceptions import PlanningError
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class PlanningEngine:
    """
    规划引擎

    功能：
    - 目标分解（需要注入推理服务）
    - 生成执行计划
    - 根据执行反馈调整计划
    - 执行复盘并记录历史

    生命周期: 创建 -> 使用 -> 丢弃，实例之间不共享任何状态。
    """

    def __init__(self,
                 llm: Optional[BaseLLM] = None,
                 insight_store: Optional[InsightStore] = None,
                 grouping_strategy: Optional[ParallelGroupingStrategy] = None,
                 cost_estimator: Optional[CostEstimator] = None,
                 settings: Optional[PlanningSettings] = None):
        """
        初始化规划引擎

        参数:
            llm: 推理服务（仅 decompose_goal 需要）
            insight_store: 复盘结论存储，默认内存存储
            grouping_strategy: 并行分组策略，默认按 settings.parallel_strategy 创建
            cost_estimator: 成本/时延估计协作者
            settings: 规划设置
        """
        self.settings = settings or PlanningSettings()
        self.llm = llm
        self.insight_store = insight_store if insight_store is not None else InMemoryInsightStore()

        self.validator = PlanValidator(self.settings.default_task_duration)
        self.graph_builder = DependencyGraphBuilder()
        self.scheduler = TopologicalScheduler()
        self.grouping_strategy = grouping_strategy or create_grouping_strategy(
            self.settings.parallel_strategy
        )
        self.estimator = ResourceEstimator(cost_estimator, self.settings.cost_per_task)
        self.safeguards = SafeguardGenerator(self.settings.retry)
        self.adapter = PlanAdapter(
            self.graph_builder,
            orphan_policy=self.settings.orphan_policy,
            reject_stale_versions=self.settings.reject_stale_versions,
        )
        self.reflector = PerformanceReflector(self.insight_store)

        self._history_lock = threading.Lock()
        self._planning_history: Dict[str, List[TaskPlan]] = defaultdict(list)
        self._execution_history: Dict[str, List[ExecutionResults]] = defaultdict(list)

        logger.info(
            "规划引擎初始化完成",
            parallel_strategy=self.grouping_strategy.name,
            orphan_policy=self.settings.orphan_policy
        )

    @classmethod
    def from_config(cls, config: Optional[Config] = None, llm: Optional[BaseLLM] = None,
                    **kwargs) -> "PlanningEngine":
        """
        从配置创建引擎

        参数:
            config: 配置对象，默认使用全局配置
            llm: 推理服务，缺省时按 llm 配置段创建
            **kwargs: 其他注入的协作者

        异常:
            ConfigError: 配置不合法或推理服务配置缺失
        """
        config = config or get_config()
        if llm is None:
            from agentplan.core.llm.factory import create_llm
            llm = create_llm(config=config)
        return cls(llm=llm, settings=PlanningSettings.from_config(config), **kwargs)

    def decompose_goal(self, goal: str, context: Optional[AgentContext] = None) -> TaskPlan:
        """
        把目标分解为任务计划，并记入该 Agent 的规划历史

        异常:
            PlanningError: 未注入推理服务
            ReasoningServiceError: 推理服务调用失败
            InvalidPlanFormat: 分解结果不合法
        """
        if self.llm is None:
            raise PlanningError("未配置推理服务，无法分解目标", error_code="REASONING_SERVICE_MISSING")

        context = context or AgentContext()
        plan = GoalDecomposer(self.llm, self.validator).decompose(goal, context)

        with self._history_lock:
            self._planning_history[context.agent_id].append(plan)
        return plan

    def create_execution_plan(self,
                              task_plan: TaskPlan,
                              constraints: Optional[PlanningConstraints] = None) -> ExecutionPlan:
        """
        生成执行计划

        参数:
            task_plan: 任务计划
            constraints: 规划约束（未满足时写入 metadata["constraint_warnings"]，不阻断）

        返回:
            ExecutionPlan: 执行计划

        异常:
            UnknownTaskReference: 依赖引用了不存在的任务
            CircularDependency: 依赖图中存在环
        """
        logger.info(f"开始生成执行计划，目标 {task_plan.goal_id}", version=task_plan.version)

        tasks = task_plan.all_tasks()
        graph = self.graph_builder.build_from_plan(task_plan)
        execution_order = self.scheduler.schedule(graph)

        max_group_size = constraints.parallelism_level if constraints else None
        parallel_groups = self.grouping_strategy.identify(
            [task.id for task in tasks], graph, max_group_size
        )

        allocation = self.estimator.allocate(tasks)
        estimate = self.estimator.estimate(allocation, parallel_groups)
        warnings = self.estimator.check_constraints(tasks, estimate, constraints)

        metadata: Dict[str, Any] = {
            "parallel_strategy": self.grouping_strategy.name,
            "sequential_duration": estimate.sequential_duration,
            "parallel_savings": estimate.parallel_savings,
            "graph": DependencyGraphBuilder.summarize(graph),
        }
        if warnings:
            metadata["constraint_warnings"] = warnings

        plan = ExecutionPlan(
            task_plan=task_plan,
            execution_order=execution_order,
            parallel_groups=parallel_groups,
            resource_allocation=allocation,
            checkpoints=self.safeguards.create_checkpoints(tasks, execution_order),
            fallback_strategies=self.safeguards.define_fallback_strategies(tasks),
            estimated_cost=estimate.cost,
            estimated_duration=estimate.duration,
            metadata=metadata,
        )

        logger.info(
            "执行计划生成完成",
            plan_id=plan.id,
            tasks=len(execution_order),
            parallel_groups=len(parallel_groups),
            duration=estimate.duration,
            cost=round(estimate.cost, 4)
        )
        return plan

    def adapt_plan(self, plan: ExecutionPlan, feedback: ExecutionFeedback) -> ExecutionPlan:
        """
        根据执行反馈调整计划

        异常:
            AdaptationConflict: 并发调整或调整了过期版本
            OrphanedDependents: orphan_policy 为 reject 且存在失去依赖的下游任务
        """
        return self.adapter.adapt(plan, feedback)

    def forget_plan(self, goal_id: str) -> bool:
        """目标不再调整时释放调整记录，见 PlanAdapter.forget"""
        return self.adapter.forget(goal_id)

    def reflect_on_performance(self,
                               results: ExecutionResults,
                               agent_id: str = "default") -> PerformanceInsights:
        """复盘一次执行，记入执行历史，并把结论交给复盘存储"""
        with self._history_lock:
            self._execution_history[agent_id].append(results)
        return self.reflector.reflect(results)

    def get_planning_stats(self, agent_id: str = "default") -> Dict[str, float]:
        """
        获取 Agent 的规划统计

        返回:
            Dict[str, float]: total_plans, total_executions, average_plan_complexity
            （每个计划的子目标数）, success_rate, average_execution_time,
            average_quality_score
        """
        with self._history_lock:
            plans = list(self._planning_history.get(agent_id, []))
            executions = list(self._execution_history.get(agent_id, []))

        def average(values: List[float]) -> float:
            return sum(values) / len(values) if values else 0.0

        return {
            "total_plans": len(plans),
            "total_executions": len(executions),
            "average_plan_complexity": average([len(p.sub_goals) for p in plans]),
            "success_rate": average([
                1.0 if e.overall_status == RunStatus.COMPLETED else 0.0 for e in executions
            ]),
            "average_execution_time": average([e.total_duration for e in executions]),
            "average_quality_score": average([e.quality_score for e in executions]),
        }
