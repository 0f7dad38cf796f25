"""
执行复盘模块 - 根据一次完整执行的结果生成复盘结论

功能：
- 计算成功率，归纳优点、问题和优化机会
- 识别执行模式（超时、失败、部分完成）
- 按固定规则表生成改进建议
- 计算置信度
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from agentplan.core.planning.schemas import ExecutionResults
from agentplan.core.reflection.insight_store import InsightStore
from agentplan.core.reflection.schemas import PerformanceInsights
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)

HIGH_SUCCESS_RATE = "High success rate"
GOOD_COMPLETION = "Good task completion"
LOW_SUCCESS_RATE = "Low success rate"
EXECUTION_ISSUES = "Task execution issues"

SLOW_TASKS = "Tasks taking longer than expected"
FAILURE_PATTERN = "Task failure pattern detected"

# 问题/模式 -> 建议
RECOMMENDATION_RULES: Dict[str, str] = {
    LOW_SUCCESS_RATE: "Review task complexity and break down further",
    SLOW_TASKS: "Adjust duration estimates and add buffer time",
    FAILURE_PATTERN: "Strengthen fallback strategies for failure-prone tasks",
}

# 每个已完成任务的预期时长上限（分钟）
EXPECTED_MINUTES_PER_TASK = 60


class PerformanceAnalysis(BaseModel):
    """成功率分析结果"""
    success_rate: float = Field(..., ge=0.0, le=1.0)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    optimizations: List[str] = Field(default_factory=list)


class PerformanceReflector:
    """
    执行复盘器

    功能：
    - 分析执行结果
    - 识别执行模式
    - 生成改进建议和置信度
    - 将结论交给复盘存储
    """

    def __init__(self, store: Optional[InsightStore] = None):
        """
        初始化执行复盘器

        参数:
            store: 复盘结论存储（可选，缺省时不保存）
        """
        self.store = store

    def reflect(self, results: ExecutionResults) -> PerformanceInsights:
        """
        复盘一次执行

        参数:
            results: 执行结果

        返回:
            PerformanceInsights: 复盘结论
        """
        logger.info(f"开始复盘计划 {results.plan_id}")

        analysis = self.analyze_performance(results)
        patterns = self.identify_patterns(results)
        recommendations = self.generate_recommendations(analysis, patterns)
        confidence = self.calculate_confidence(analysis, patterns)

        insights = PerformanceInsights(
            plan_id=results.plan_id,
            strengths=analysis.strengths,
            weaknesses=analysis.weaknesses,
            recommendations=recommendations,
            optimization_opportunities=analysis.optimizations,
            patterns=patterns,
            confidence_score=confidence,
        )

        if self.store is not None:
            self.store.save(insights)

        logger.info("复盘完成", plan_id=results.plan_id,
                    success_rate=round(analysis.success_rate, 3), confidence=confidence)
        return insights

    @staticmethod
    def success_rate(results: ExecutionResults) -> float:
        """完成数 / (完成数 + 失败数)，两者都为空时为 0"""
        total = len(results.completed_tasks) + len(results.failed_tasks)
        if total == 0:
            return 0.0
        return len(results.completed_tasks) / total

    def analyze_performance(self, results: ExecutionResults) -> PerformanceAnalysis:
        """根据成功率和质量分归纳优点、问题和优化机会"""
        rate = self.success_rate(results)
        return PerformanceAnalysis(
            success_rate=rate,
            strengths=[HIGH_SUCCESS_RATE, GOOD_COMPLETION] if rate > 0.8 else [],
            weaknesses=[LOW_SUCCESS_RATE, EXECUTION_ISSUES] if rate < 0.6 else [],
            optimizations=(["Improve task quality", "Better resource allocation"]
                           if results.quality_score < 0.7 else []),
        )

    def identify_patterns(self, results: ExecutionResults) -> List[str]:
        """识别执行模式"""
        patterns = []
        if results.total_duration > len(results.completed_tasks) * EXPECTED_MINUTES_PER_TASK:
            patterns.append(SLOW_TASKS)
        if results.failed_tasks:
            patterns.append(FAILURE_PATTERN)
        return patterns

    def generate_recommendations(self,
                                 analysis: PerformanceAnalysis,
                                 patterns: List[str]) -> List[str]:
        """按规则表生成建议，保持规则表顺序且不重复"""
        detected = set(analysis.weaknesses) | set(patterns)
        return [advice for key, advice in RECOMMENDATION_RULES.items() if key in detected]

    def calculate_confidence(self,
                             analysis: PerformanceAnalysis,
                             patterns: List[str]) -> float:
        """
        计算置信度

        基础 0.8；优点多于问题 +0.1，否则 -0.1；模式超过两个再 -0.2；限制在 [0.1, 1.0]
        """
        score = 0.8

        if len(analysis.strengths) > len(analysis.weaknesses):
            score += 0.1
        else:
            score -= 0.1

        if len(patterns) > 2:
            score -= 0.2

        return round(max(0.1, min(1.0, score)), 2)
