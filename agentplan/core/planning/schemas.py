"""
Planning module data models and schemas.

This module defines the core data structures for goal decomposition,
execution planning and feedback-driven plan adaptation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agentplan.utils.helpers import generate_id, unique_ordered


class TaskKind(str, Enum):
    """任务类型枚举"""
    ATOMIC = "atomic"
    COMPOSITE = "composite"


class TaskPriority(str, Enum):
    """任务优先级枚举"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """优先级序号，用于阈值比较"""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}


class DependencyType(str, Enum):
    """依赖类型枚举"""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"


class ResourceType(str, Enum):
    """资源类型枚举"""
    SINGLE_AGENT = "single_agent"
    MULTI_AGENT = "multi_agent"


class CheckpointAction(str, Enum):
    """检查点动作枚举"""
    CONTINUE = "continue"
    PAUSE = "pause"
    REPLAN = "replan"
    ESCALATE = "escalate"


class FallbackAction(str, Enum):
    """降级策略动作枚举"""
    RETRY = "retry"
    ALTERNATIVE_APPROACH = "alternative_approach"
    HUMAN_INTERVENTION = "human_intervention"
    ABORT = "abort"


class FeedbackStatus(str, Enum):
    """任务执行反馈状态枚举"""
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"
    IN_PROGRESS = "in_progress"


class RunStatus(str, Enum):
    """整体执行状态枚举"""
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class PlanModel(BaseModel):
    """规划数据模型基类：属性使用 snake_case，输入同时接受 camelCase 别名"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class Task(PlanModel):
    """可调度的最小工作单元"""
    id: str = Field(..., min_length=1, description="任务ID，计划内唯一")
    name: str = Field(..., min_length=1, description="任务名称")
    description: str = Field(default="", description="任务描述")
    kind: TaskKind = Field(..., alias="type", description="任务类型（输入可用 kind 或 type）")
    estimated_duration: float = Field(default=30.0, gt=0, description="预估时长（分钟）")
    required_capabilities: List[str] = Field(default_factory=list, description="所需能力")
    dependencies: List[str] = Field(default_factory=list, description="依赖的任务ID")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    success_criteria: List[str] = Field(default_factory=list, description="成功标准")

    @field_validator("dependencies", "required_capabilities")
    @classmethod
    def dedupe(cls, v):
        return unique_ordered(v)


class SubGoal(PlanModel):
    """子目标：按同一意图组织任务，不参与调度"""
    id: str = Field(..., min_length=1, description="子目标ID")
    description: str = Field(..., min_length=1, description="子目标描述")
    tasks: List[Task] = Field(..., min_length=1, description="任务列表")
    dependencies: List[str] = Field(default_factory=list, description="依赖的子目标ID")
    estimated_duration: float = Field(default=0.0, ge=0, description="预估时长（分钟）")
    success_criteria: List[str] = Field(default_factory=list, description="成功标准")


class TaskDependency(PlanModel):
    """独立的依赖记录，与 Task.dependencies 在建图时合并"""
    task_id: str = Field(..., min_length=1, description="声明依赖的任务ID")
    depends_on: List[str] = Field(default_factory=list, description="被依赖的任务ID")
    dependency_type: DependencyType = Field(default=DependencyType.SEQUENTIAL, description="依赖类型")

    @field_validator("depends_on")
    @classmethod
    def dedupe(cls, v):
        return unique_ordered(v)


class TaskPlan(PlanModel):
    """分解结果"""
    goal_id: str = Field(default_factory=generate_id, description="目标ID")
    main_goal: str = Field(default="", description="原始目标文本")
    sub_goals: List[SubGoal] = Field(..., min_length=1, description="子目标列表")
    dependencies: List[TaskDependency] = Field(default_factory=list, description="依赖记录")
    estimated_duration: float = Field(..., gt=0, description="总预估时长（分钟）")
    required_capabilities: List[str] = Field(default_factory=list, description="所需能力")
    success_criteria: List[str] = Field(default_factory=list, description="成功标准")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="创建时间")
    version: int = Field(default=1, ge=1, description="单调递增的版本号")

    def all_tasks(self) -> List[Task]:
        """按输入顺序展开所有子目标下的任务"""
        return [task for sub_goal in self.sub_goals for task in sub_goal.tasks]

    def get_task(self, task_id: str) -> Optional[Task]:
        """按ID查找任务"""
        for task in self.all_tasks():
            if task.id == task_id:
                return task
        return None


class PlanningConstraints(PlanModel):
    """规划约束"""
    max_duration: Optional[float] = Field(default=None, gt=0, description="最大总时长（分钟）")
    max_cost: Optional[float] = Field(default=None, ge=0, description="最大总成本")
    required_capabilities: List[str] = Field(default_factory=list, description="计划必须覆盖的能力")
    excluded_capabilities: List[str] = Field(default_factory=list, description="禁止使用的能力")
    parallelism_level: Optional[int] = Field(default=None, ge=1, description="并行组最大任务数")
    priority_threshold: Optional[TaskPriority] = Field(default=None, description="最低关注优先级")


class AgentContext(PlanModel):
    """发起分解的 Agent 上下文"""
    agent_id: str = Field(default="default", description="Agent ID")
    workflow_id: Optional[str] = Field(default=None, description="工作流ID")
    available_capabilities: List[str] = Field(default_factory=list, description="可用能力")
    organization_id: int = Field(default=1, description="组织ID")


class ResourceAllocation(PlanModel):
    """单个任务的资源分配"""
    required_capabilities: List[str] = Field(default_factory=list)
    estimated_duration: float = Field(..., ge=0)
    priority: TaskPriority
    resource_type: ResourceType
    estimated_cost: float = Field(default=0.0, ge=0)


class ExecutionCheckpoint(PlanModel):
    """执行检查点"""
    id: str = Field(default_factory=generate_id)
    task_id: str
    condition: str = Field(..., description="触发条件标签，如 task_completion")
    action: CheckpointAction


class FallbackStrategy(PlanModel):
    """任务失败时的降级策略"""
    trigger_id: str = Field(..., description="触发任务ID")
    condition: str = Field(..., description="触发条件，如 task_failure")
    action: FallbackAction
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ExecutionPlan(PlanModel):
    """可调度的执行计划，每次调整都会重新生成 id"""
    id: str = Field(default_factory=generate_id)
    task_plan: TaskPlan
    execution_order: List[str] = Field(default_factory=list)
    parallel_groups: List[List[str]] = Field(default_factory=list)
    resource_allocation: Dict[str, ResourceAllocation] = Field(default_factory=dict)
    checkpoints: List[ExecutionCheckpoint] = Field(default_factory=list)
    fallback_strategies: List[FallbackStrategy] = Field(default_factory=list)
    estimated_cost: float = Field(default=0.0, ge=0)
    estimated_duration: float = Field(default=0.0, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def version(self) -> int:
        """计划版本，唯一来源是 task_plan.version"""
        return self.task_plan.version


class ExecutionFeedback(PlanModel):
    """单个任务的执行反馈"""
    task_id: str
    status: FeedbackStatus
    actual_duration: float = Field(default=0.0, ge=0)
    actual_cost: float = Field(default=0.0, ge=0)
    quality: float = Field(default=1.0, ge=0.0, le=1.0)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class ExecutionResults(PlanModel):
    """一次完整执行的汇总"""
    plan_id: str
    overall_status: RunStatus
    completed_tasks: List[str] = Field(default_factory=list)
    failed_tasks: List[str] = Field(default_factory=list)
    total_duration: float = Field(default=0.0, ge=0)
    total_cost: float = Field(default=0.0, ge=0)
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    lessons: List[str] = Field(default_factory=list)
