"""
测试配置文件
提供测试用的 fixtures 和配置
"""

import copy
import json
import os
import tempfile
from unittest.mock import Mock

# 日志文件写入临时目录，必须在导入 agentplan 之前设置
os.environ.setdefault("AGENTPLAN_LOG_DIR", tempfile.mkdtemp(prefix="agentplan-logs-"))

import pytest

from agentplan.core.llm.base import BaseLLM
from agentplan.core.planning.engine import PlanningEngine
from agentplan.core.planning.schemas import SubGoal, Task, TaskPlan
from agentplan.utils.config import PlanningSettings, reset_config


SAMPLE_PAYLOAD = {
    "subGoals": [
        {
            "id": "sg1",
            "description": "收集需求",
            "tasks": [
                {
                    "id": "t1",
                    "name": "Collect requirements",
                    "type": "atomic",
                    "estimatedDuration": 10,
                    "requiredCapabilities": ["analysis"],
                    "priority": "critical",
                },
                {
                    "id": "t2",
                    "name": "Draft design",
                    "type": "atomic",
                    "estimatedDuration": 20,
                    "dependencies": ["t1"],
                    "requiredCapabilities": ["design"],
                },
            ],
        },
        {
            "id": "sg2",
            "description": "准备交付",
            "dependencies": ["sg1"],
            "tasks": [
                {
                    "id": "t3",
                    "name": "Prepare environment",
                    "type": "composite",
                    "estimatedDuration": 5,
                    "priority": "low",
                },
                {
                    "id": "t4",
                    "name": "Implement",
                    "type": "atomic",
                    "estimatedDuration": 40,
                },
            ],
        },
    ],
    "dependencies": [
        {"taskId": "t4", "dependsOn": ["t2", "t3"], "dependencyType": "sequential"},
    ],
    "estimatedDuration": 75,
    "requiredCapabilities": ["analysis", "design"],
    "successCriteria": ["Feature delivered"],
}


def make_task_plan(*tasks, dependencies=None, goal_id="goal-1") -> TaskPlan:
    """
    用若干 (id, duration, deps[, priority]) 元组构造单子目标计划

    示例:
        >>> make_task_plan(("A", 10, []), ("B", 20, ["A"]))
    """
    built = []
    for item in tasks:
        task_id, duration, deps = item[:3]
        priority = item[3] if len(item) > 3 else "medium"
        built.append(Task(
            id=task_id,
            name=f"Task {task_id}",
            kind="atomic",
            estimated_duration=duration,
            dependencies=deps,
            priority=priority,
        ))
    return TaskPlan(
        goal_id=goal_id,
        main_goal="测试目标",
        sub_goals=[SubGoal(id="sg", description="测试子目标", tasks=built)],
        dependencies=dependencies or [],
        estimated_duration=sum(t.estimated_duration for t in built),
    )


@pytest.fixture
def sample_payload():
    """原始分解结果（深拷贝，测试可随意修改）"""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def sample_task_plan(sample_payload):
    """由样例分解结果构造的任务计划"""
    return TaskPlan.model_validate({**sample_payload, "goalId": "goal-sample"})


@pytest.fixture
def abc_plan():
    """A(10) <- B(20)，C(5) 独立"""
    return make_task_plan(("A", 10, []), ("B", 20, ["A"]), ("C", 5, []))


@pytest.fixture
def mock_llm(sample_payload):
    """返回样例分解结果的推理服务"""
    llm = Mock(spec=BaseLLM)
    llm.chat.return_value = json.dumps(sample_payload)
    return llm


@pytest.fixture
def engine(mock_llm):
    """使用默认设置和 mock 推理服务的规划引擎"""
    return PlanningEngine(llm=mock_llm, settings=PlanningSettings())


@pytest.fixture(autouse=True)
def clean_global_config():
    """每个测试前后清空全局配置实例"""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def plan_factory():
    """返回 make_task_plan，用于按需构造任务计划"""
    return make_task_plan
