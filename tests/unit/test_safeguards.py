"""
Checkpoint and fallback generation unit tests.
"""

from agentplan.core.planning.safeguards import (
    DEPENDENCY_FAILED, PROGRESS_REVIEW, TASK_COMPLETION, TASK_FAILURE, SafeguardGenerator
)
from agentplan.core.planning.schemas import CheckpointAction, FallbackAction
from agentplan.utils.config import RetrySettings


class TestSafeguardGenerator:
    """测试检查点与降级策略生成器"""

    def test_critical_and_midpoint_checkpoints(self, sample_task_plan):
        """测试关键任务暂停检查点和中点进度检查点"""
        order = ["t1", "t2", "t3", "t4"]
        checkpoints = SafeguardGenerator().create_checkpoints(sample_task_plan.all_tasks(), order)

        assert [(c.task_id, c.condition, c.action) for c in checkpoints] == [
            ("t1", TASK_COMPLETION, CheckpointAction.PAUSE),
            ("t3", PROGRESS_REVIEW, CheckpointAction.CONTINUE),
        ]
        assert len({c.id for c in checkpoints}) == 2

    def test_no_midpoint_for_short_plans(self, plan_factory):
        """测试两个任务以内不加中点检查点"""
        plan = plan_factory(("a", 5, []), ("b", 5, ["a"]))

        assert SafeguardGenerator().create_checkpoints(plan.all_tasks(), ["a", "b"]) == []

    def test_fallback_strategies(self, sample_task_plan):
        """测试关键任务人工介入，其余任务重试"""
        strategies = SafeguardGenerator().define_fallback_strategies(sample_task_plan.all_tasks())
        by_task = {s.trigger_id: s for s in strategies}

        assert len(strategies) == 4
        assert by_task["t1"].action == FallbackAction.HUMAN_INTERVENTION
        assert by_task["t1"].parameters == {"escalationLevel": "immediate"}
        assert by_task["t2"].action == FallbackAction.RETRY
        assert by_task["t2"].condition == TASK_FAILURE
        assert by_task["t2"].parameters == {"maxRetries": 3, "backoffMs": 5000}

    def test_retry_settings(self, plan_factory):
        """测试重试参数来自设置"""
        plan = plan_factory(("a", 5, []))
        generator = SafeguardGenerator(RetrySettings(max_retries=5, backoff_ms=100))

        strategy = generator.define_fallback_strategies(plan.all_tasks())[0]
        assert strategy.parameters == {"maxRetries": 5, "backoffMs": 100}

    def test_orphan_checkpoint(self):
        """测试失去依赖任务的重规划检查点"""
        checkpoint = SafeguardGenerator.orphan_checkpoint("t9")

        assert checkpoint.task_id == "t9"
        assert checkpoint.condition == DEPENDENCY_FAILED
        assert checkpoint.action == CheckpointAction.REPLAN
