"""
反思模块的数据结构定义

定义了执行复盘过程中使用的数据模型
"""

from datetime import datetime
from typing import List

from pydantic import ConfigDict, Field, field_validator

from agentplan.core.planning.schemas import PlanModel


class PerformanceInsights(PlanModel):
    """一次执行的复盘结论"""
    model_config = ConfigDict(frozen=True)

    plan_id: str = Field(..., description="计划ID")
    strengths: List[str] = Field(default_factory=list, description="做得好的地方")
    weaknesses: List[str] = Field(default_factory=list, description="存在的问题")
    recommendations: List[str] = Field(default_factory=list, description="改进建议")
    optimization_opportunities: List[str] = Field(default_factory=list, description="优化机会")
    patterns: List[str] = Field(default_factory=list, description="识别出的执行模式")
    confidence_score: float = Field(..., ge=0.0, le=1.0, description="置信度")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="创建时间")

    @field_validator('confidence_score')
    @classmethod
    def validate_confidence(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('置信度必须在0-1之间')
        return v
