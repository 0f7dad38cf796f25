"""
Checkpoint and fallback policy generation.

Critical tasks pause on completion and escalate to a human on failure;
everything else retries with backoff. Plans longer than two steps also get
a progress-review checkpoint at the midpoint of the execution order.
"""

from typing import List, Optional, Sequence

from agentplan.core.planning.schemas import (
    CheckpointAction, ExecutionCheckpoint, FallbackAction, FallbackStrategy,
    Task, TaskPriority
)
from agentplan.utils.config import RetrySettings

TASK_COMPLETION = "task_completion"
PROGRESS_REVIEW = "progress_review"
TASK_FAILURE = "task_failure"
DEPENDENCY_FAILED = "dependency_failed"


class SafeguardGenerator:
    """
    检查点与降级策略生成器

    功能：
    - 为关键任务和执行中点创建检查点
    - 为每个任务定义失败后的降级策略
    """

    def __init__(self, retry: Optional[RetrySettings] = None):
        """
        参数:
            retry: 非关键任务的重试参数
        """
        self.retry = retry or RetrySettings()

    def create_checkpoints(self,
                           tasks: Sequence[Task],
                           execution_order: Sequence[str]) -> List[ExecutionCheckpoint]:
        """
        创建检查点

        参数:
            tasks: 按计划顺序排列的任务
            execution_order: 执行顺序

        返回:
            List[ExecutionCheckpoint]: 检查点列表
        """
        checkpoints = [
            ExecutionCheckpoint(
                task_id=task.id,
                condition=TASK_COMPLETION,
                action=CheckpointAction.PAUSE,
            )
            for task in tasks if task.priority == TaskPriority.CRITICAL
        ]

        # 与优先级无关的粗粒度进度信号
        if len(execution_order) > 2:
            checkpoints.append(ExecutionCheckpoint(
                task_id=execution_order[len(execution_order) // 2],
                condition=PROGRESS_REVIEW,
                action=CheckpointAction.CONTINUE,
            ))

        return checkpoints

    def define_fallback_strategies(self, tasks: Sequence[Task]) -> List[FallbackStrategy]:
        """
        定义降级策略

        参数:
            tasks: 任务列表

        返回:
            List[FallbackStrategy]: 每个任务一条策略
        """
        strategies = []
        for task in tasks:
            if task.priority == TaskPriority.CRITICAL:
                strategies.append(FallbackStrategy(
                    trigger_id=task.id,
                    condition=TASK_FAILURE,
                    action=FallbackAction.HUMAN_INTERVENTION,
                    parameters={"escalationLevel": "immediate"},
                ))
            else:
                strategies.append(FallbackStrategy(
                    trigger_id=task.id,
                    condition=TASK_FAILURE,
                    action=FallbackAction.RETRY,
                    parameters={
                        "maxRetries": self.retry.max_retries,
                        "backoffMs": self.retry.backoff_ms,
                    },
                ))
        return strategies

    @staticmethod
    def orphan_checkpoint(task_id: str) -> ExecutionCheckpoint:
        """上游任务失败后，为下游任务创建的重规划检查点"""
        return ExecutionCheckpoint(
            task_id=task_id,
            condition=DEPENDENCY_FAILED,
            action=CheckpointAction.REPLAN,
        )
