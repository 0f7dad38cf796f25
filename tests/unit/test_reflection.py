"""
Reflection module unit tests.

This module contains unit tests for the performance reflector and the
insight store.
"""

import pytest
from pydantic import ValidationError

from agentplan.core.planning.schemas import ExecutionResults, RunStatus
from agentplan.core.reflection import (
    InMemoryInsightStore, PerformanceInsights, PerformanceReflector, RECOMMENDATION_RULES
)
from agentplan.core.reflection.performance_reflector import (
    FAILURE_PATTERN, LOW_SUCCESS_RATE, SLOW_TASKS
)


class TestPerformanceReflector:
    """测试执行复盘器"""

    def setup_method(self):
        self.store = InMemoryInsightStore()
        self.reflector = PerformanceReflector(self.store)

    def test_successful_run(self):
        """测试全部成功的执行：有优点、无问题、置信度不低于 0.8"""
        results = ExecutionResults(
            plan_id="p1",
            overall_status=RunStatus.COMPLETED,
            completed_tasks=["t1", "t2", "t3"],
            quality_score=0.9,
        )

        insights = self.reflector.reflect(results)

        assert insights.plan_id == "p1"
        assert insights.strengths
        assert insights.weaknesses == []
        assert insights.recommendations == []
        assert insights.optimization_opportunities == []
        assert insights.confidence_score >= 0.8

    def test_failing_run(self):
        """测试失败较多的执行：识别模式并按规则表顺序给出建议"""
        results = ExecutionResults(
            plan_id="p2",
            overall_status=RunStatus.PARTIAL,
            completed_tasks=["t1"],
            failed_tasks=["t2", "t3"],
            total_duration=200,
            quality_score=0.5,
        )

        insights = self.reflector.reflect(results)

        assert LOW_SUCCESS_RATE in insights.weaknesses
        assert insights.patterns == [SLOW_TASKS, FAILURE_PATTERN]
        assert insights.recommendations == [
            RECOMMENDATION_RULES[LOW_SUCCESS_RATE],
            RECOMMENDATION_RULES[SLOW_TASKS],
            RECOMMENDATION_RULES[FAILURE_PATTERN],
        ]
        assert insights.optimization_opportunities
        assert insights.confidence_score == pytest.approx(0.7)

    def test_partial_run_confidence(self):
        """测试部分完成的执行只检测到慢任务和失败两种模式"""
        results = ExecutionResults(
            plan_id="p7",
            overall_status=RunStatus.PARTIAL,
            completed_tasks=["t1"],
            failed_tasks=["t2"],
            total_duration=200,
            quality_score=0.9,
        )

        insights = self.reflector.reflect(results)

        assert LOW_SUCCESS_RATE in insights.weaknesses
        assert insights.patterns == [SLOW_TASKS, FAILURE_PATTERN]
        assert insights.confidence_score == pytest.approx(0.7)

    def test_empty_results(self):
        """测试没有任何任务的执行：成功率为 0"""
        results = ExecutionResults(plan_id="p3", overall_status=RunStatus.FAILED)

        assert PerformanceReflector.success_rate(results) == 0
        insights = self.reflector.reflect(results)
        assert insights.weaknesses
        assert insights.confidence_score == pytest.approx(0.7)

    def test_middle_success_rate(self):
        """测试成功率在 0.6 与 0.8 之间时既无优点也无问题"""
        results = ExecutionResults(
            plan_id="p4",
            overall_status=RunStatus.PARTIAL,
            completed_tasks=["a", "b", "c"],
            failed_tasks=["d"],
            quality_score=0.8,
        )

        analysis = self.reflector.analyze_performance(results)
        assert analysis.success_rate == 0.75
        assert analysis.strengths == [] and analysis.weaknesses == []

    def test_insights_saved(self):
        """测试复盘结论交给存储"""
        results = ExecutionResults(plan_id="p5", overall_status="completed", completed_tasks=["t"])

        first = self.reflector.reflect(results)
        second = self.reflector.reflect(results)

        assert self.store.list_for_plan("p5") == [first, second]
        assert self.store.get("p5") is second
        assert self.store.get("missing") is None
        assert len(self.store) == 2

    def test_reflect_without_store(self):
        """测试没有存储时仍然返回结论"""
        results = ExecutionResults(plan_id="p6", overall_status="completed")

        assert PerformanceReflector().reflect(results).plan_id == "p6"


class TestPerformanceInsights:
    """测试复盘结论模型"""

    def test_confidence_bounds(self):
        """测试置信度必须在 0-1 之间"""
        with pytest.raises(ValidationError):
            PerformanceInsights(plan_id="p", confidence_score=1.5)

    def test_frozen(self):
        """测试复盘结论不可修改"""
        insights = PerformanceInsights(plan_id="p", confidence_score=0.5)

        with pytest.raises(ValidationError):
            insights.plan_id = "other"
