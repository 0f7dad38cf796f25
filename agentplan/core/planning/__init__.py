"""
Planning module for goal decomposition and execution planning.

This module provides:
- Validation of raw decomposition payloads
- Dependency graph construction and topological scheduling
- Parallel group identification strategies
- Resource allocation, estimates, checkpoints and fallbacks
- Feedback-driven plan adaptation

The PlanningEngine facade lives in agentplan.core.planning.engine.
"""

from .schemas import (
    AgentContext,
    CheckpointAction,
    DependencyType,
    ExecutionCheckpoint,
    ExecutionFeedback,
    ExecutionPlan,
    ExecutionResults,
    FallbackAction,
    FallbackStrategy,
    FeedbackStatus,
    PlanningConstraints,
    ResourceAllocation,
    ResourceType,
    RunStatus,
    SubGoal,
    Task,
    TaskDependency,
    TaskKind,
    TaskPlan,
    TaskPriority
)

from .validator import PlanValidator
from .graph import DependencyGraph, DependencyGraphBuilder
from .scheduler import TopologicalScheduler, find_order_violations
from .parallel import (
    GreedyParallelGrouping,
    ParallelGroupingStrategy,
    StrictParallelGrouping,
    create_grouping_strategy
)
from .estimator import CostEstimator, FlatCostEstimator, ResourceEstimator, TaskEstimate
from .safeguards import SafeguardGenerator
from .adapter import AdaptationStrategy, FeedbackSeverity, PlanAdapter

__all__ = [
    # Schemas
    "AgentContext",
    "CheckpointAction",
    "DependencyType",
    "ExecutionCheckpoint",
    "ExecutionFeedback",
    "ExecutionPlan",
    "ExecutionResults",
    "FallbackAction",
    "FallbackStrategy",
    "FeedbackStatus",
    "PlanningConstraints",
    "ResourceAllocation",
    "ResourceType",
    "RunStatus",
    "SubGoal",
    "Task",
    "TaskDependency",
    "TaskKind",
    "TaskPlan",
    "TaskPriority",

    # Core components
    "PlanValidator",
    "DependencyGraph",
    "DependencyGraphBuilder",
    "TopologicalScheduler",
    "find_order_violations",
    "ParallelGroupingStrategy",
    "GreedyParallelGrouping",
    "StrictParallelGrouping",
    "create_grouping_strategy",
    "CostEstimator",
    "FlatCostEstimator",
    "ResourceEstimator",
    "TaskEstimate",
    "SafeguardGenerator",
    "PlanAdapter",
    "AdaptationStrategy",
    "FeedbackSeverity"
]
