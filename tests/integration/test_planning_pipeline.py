"""
Planning pipeline integration tests.

Goal text -> decomposition -> execution plan -> adaptation -> reflection,
driven through the PlanningEngine with a mocked reasoning collaborator.
"""

import json
import threading
from unittest.mock import Mock

import pytest

from agentplan import PlanningEngine
from agentplan.core.llm.base import BaseLLM
from agentplan.core.planning.graph import DependencyGraphBuilder
from agentplan.core.planning.scheduler import find_order_violations
from agentplan.core.planning.schemas import (
    AgentContext, ExecutionFeedback, ExecutionResults, FeedbackStatus, RunStatus
)
from agentplan.utils.config import PlanningSettings
from agentplan.utils.exceptions import AdaptationConflict

pytestmark = pytest.mark.integration


class TestPlanningPipeline:
    """测试完整规划流程"""

    def test_abc_duration(self, engine, abc_plan):
        """测试 A(10) <- B(20)，C(5)：A 在 B 之前，A 与 C 并行时总时长为 30"""
        plan = engine.create_execution_plan(abc_plan)

        assert plan.execution_order.index("A") < plan.execution_order.index("B")
        assert ["A", "C"] in plan.parallel_groups
        assert plan.estimated_duration == 30

    def test_round_trip_has_no_violations(self, engine):
        """测试分解、建图、调度后重新校验执行顺序没有依赖违规"""
        task_plan = engine.decompose_goal("交付新功能", AgentContext(agent_id="planner"))
        plan = engine.create_execution_plan(task_plan)

        graph = DependencyGraphBuilder().build_from_plan(plan.task_plan)
        assert find_order_violations(plan.execution_order, graph) == []
        assert sorted(plan.execution_order) == sorted(t.id for t in task_plan.all_tasks())

    def test_parallel_groups_have_no_direct_edges(self, engine, sample_task_plan):
        """测试并行组内任意两个任务之间没有直接依赖"""
        plan = engine.create_execution_plan(sample_task_plan)
        graph = DependencyGraphBuilder().build_from_plan(sample_task_plan)

        for group in plan.parallel_groups:
            for i, first in enumerate(group):
                for second in group[i + 1:]:
                    assert not graph.has_edge(first, second)

    def test_failed_feedback_creates_new_plan(self, engine, sample_task_plan):
        """测试失败反馈：任务被移除，新计划 id 不同，下游任务被标记"""
        plan = engine.create_execution_plan(sample_task_plan)

        adapted = engine.adapt_plan(
            plan, ExecutionFeedback(task_id="t2", status=FeedbackStatus.FAILED)
        )

        assert "t2" not in adapted.execution_order
        assert adapted.id != plan.id
        assert adapted.version == 2
        assert adapted.metadata["orphaned_tasks"] == ["t4"]

    def test_adaptation_chain(self, engine, sample_task_plan):
        """测试连续调整：版本号单调递增，旧版本被拒绝"""
        plan = engine.create_execution_plan(sample_task_plan)

        v2 = engine.adapt_plan(plan, ExecutionFeedback(task_id="t3", status="blocked"))
        v3 = engine.adapt_plan(v2, ExecutionFeedback(task_id="t1", status="completed",
                                                     actual_duration=35))

        assert [v2.version, v3.version] == [2, 3]
        assert v2.execution_order == ["t1", "t2", "t4", "t3"]
        assert v2.metadata["order_violations"] == [["t4", "t3"]]
        assert v3.estimated_duration == pytest.approx(plan.estimated_duration * 2)
        assert [a["strategy"] for a in v3.metadata["adaptations"]] == [
            "reorder", "adjust_estimates"
        ]

        with pytest.raises(AdaptationConflict):
            engine.adapt_plan(plan, ExecutionFeedback(task_id="t1", status="failed"))

    def test_concurrent_adaptation_is_serialized(self, sample_task_plan):
        """测试并发调整同一计划时只有一个成功，其余被拒绝"""
        release = threading.Event()
        entered = threading.Event()

        engine = PlanningEngine(settings=PlanningSettings(reject_stale_versions=False))
        plan = engine.create_execution_plan(sample_task_plan)
        original = engine.adapter._adapt

        def slow_adapt(*args):
            entered.set()
            release.wait(5)
            return original(*args)

        engine.adapter._adapt = slow_adapt
        outcomes = []

        def worker():
            try:
                outcomes.append(engine.adapt_plan(
                    plan, ExecutionFeedback(task_id="t4", status="completed")
                ))
            except AdaptationConflict as e:
                outcomes.append(e)

        first = threading.Thread(target=worker)
        first.start()
        assert entered.wait(5)

        worker()
        release.set()
        first.join(5)

        assert sum(isinstance(o, AdaptationConflict) for o in outcomes) == 1
        assert sum(not isinstance(o, AdaptationConflict) for o in outcomes) == 1

    def test_reflect_after_run(self, engine):
        """测试执行结束后的复盘：全部成功且质量高"""
        insights = engine.reflect_on_performance(ExecutionResults(
            plan_id="plan-1",
            overall_status=RunStatus.COMPLETED,
            completed_tasks=["t1", "t2", "t3"],
            failed_tasks=[],
            quality_score=0.9,
        ))

        assert insights.strengths
        assert insights.weaknesses == []
        assert insights.confidence_score >= 0.8
        assert engine.insight_store.get("plan-1") is insights

    def test_collaborator_receives_context(self, sample_payload):
        """测试推理服务收到目标和可用能力"""
        llm = Mock(spec=BaseLLM)
        llm.chat.return_value = "```json\n" + json.dumps(sample_payload) + "\n```"
        engine = PlanningEngine(llm=llm)

        engine.decompose_goal("整理季度报告", AgentContext(available_capabilities=["excel"]))

        prompt = llm.chat.call_args.args[0][1]["content"]
        assert "整理季度报告" in prompt
        assert "excel" in prompt
