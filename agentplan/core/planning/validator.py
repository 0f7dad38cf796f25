"""
Plan validator for raw decomposition payloads.

The reasoning service is untrusted: every payload it returns goes through
these structural checks before it becomes a TaskPlan. The first violation
found is reported; no partial repair is attempted.
"""

import json
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from agentplan.core.planning.schemas import TaskPlan
from agentplan.utils.exceptions import InvalidPlanFormat
from agentplan.utils.helpers import extract_json_object
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _format_loc(loc) -> str:
    """把 pydantic 的错误位置元组转成 subGoals[0].tasks[1].id 形式"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


class PlanValidator:
    """
    分解结果验证器

    功能：
    - 解析 LLM 返回的 JSON 文本（支持 ```json 代码块）
    - 按固定顺序检查必需字段，报告第一个违规项
    - 构造 version = 1 的 TaskPlan
    """

    def __init__(self, default_task_duration: float = 30.0):
        """
        参数:
            default_task_duration: 任务未给出时长时使用的缺省值（分钟）
        """
        self.default_task_duration = default_task_duration

    def parse(self, content: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        把原始内容解析为字典

        异常:
            InvalidPlanFormat: 内容不是 JSON 对象
        """
        if isinstance(content, dict):
            return content

        if not isinstance(content, str):
            raise InvalidPlanFormat(f"不支持的内容类型: {type(content).__name__}")

        try:
            parsed = extract_json_object(content)
        except json.JSONDecodeError as e:
            raise InvalidPlanFormat(f"JSON 解析失败: {e.msg}")

        if not isinstance(parsed, dict):
            raise InvalidPlanFormat("顶层必须是 JSON 对象")
        return parsed

    def validate(self,
                 content: Union[str, Dict[str, Any]],
                 main_goal: str = "",
                 goal_id: Optional[str] = None) -> TaskPlan:
        """
        验证原始分解结果并构造 TaskPlan

        参数:
            content: 原始分解结果（JSON 文本或字典）
            main_goal: 目标文本
            goal_id: 目标ID（缺省时自动生成）

        返回:
            TaskPlan: version 为 1 的任务计划

        异常:
            InvalidPlanFormat: 结构不合法时抛出，指明第一个违规字段
        """
        payload = self.parse(content)

        try:
            self._check_structure(payload)
        except InvalidPlanFormat as e:
            logger.warning("分解结果验证失败", field=e.field, reason=e.reason)
            raise

        data = self._with_defaults(payload)
        data["mainGoal"] = main_goal
        data["version"] = 1
        if goal_id:
            data["goalId"] = goal_id
        else:
            data.pop("goalId", None)
            data.pop("goal_id", None)

        try:
            plan = TaskPlan.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            error = InvalidPlanFormat(first["msg"], field=_format_loc(first["loc"]))
            logger.warning("分解结果验证失败", field=error.field, reason=error.reason)
            raise error

        logger.debug("分解结果验证通过", goal_id=plan.goal_id, tasks=len(plan.all_tasks()))
        return plan

    def _check_structure(self, payload: Dict[str, Any]) -> None:
        """按字段顺序检查必需项"""
        sub_goals = payload.get("subGoals", payload.get("sub_goals"))
        if not isinstance(sub_goals, list) or not sub_goals:
            raise InvalidPlanFormat("必须是非空列表", field="subGoals")

        duration = payload.get("estimatedDuration", payload.get("estimated_duration"))
        if not _is_number(duration) or duration <= 0:
            raise InvalidPlanFormat("必须是正数", field="estimatedDuration")

        seen_task_ids = set()
        for i, sub_goal in enumerate(sub_goals):
            prefix = f"subGoals[{i}]"
            if not isinstance(sub_goal, dict):
                raise InvalidPlanFormat("子目标必须是对象", field=prefix)
            for key in ("id", "description"):
                if not sub_goal.get(key):
                    raise InvalidPlanFormat("缺少必需字段", field=f"{prefix}.{key}")
            if not isinstance(sub_goal["id"], str):
                raise InvalidPlanFormat("子目标ID必须是字符串", field=f"{prefix}.id")

            tasks = sub_goal.get("tasks")
            if not isinstance(tasks, list) or not tasks:
                raise InvalidPlanFormat("必须是非空列表", field=f"{prefix}.tasks")

            for j, task in enumerate(tasks):
                task_prefix = f"{prefix}.tasks[{j}]"
                if not isinstance(task, dict):
                    raise InvalidPlanFormat("任务必须是对象", field=task_prefix)
                for key in ("id", "name"):
                    if not task.get(key):
                        raise InvalidPlanFormat("缺少必需字段", field=f"{task_prefix}.{key}")
                if not (task.get("kind") or task.get("type")):
                    raise InvalidPlanFormat("缺少必需字段", field=f"{task_prefix}.kind")

                task_id = task["id"]
                if not isinstance(task_id, str):
                    raise InvalidPlanFormat("任务ID必须是字符串", field=f"{task_prefix}.id")
                if task_id in seen_task_ids:
                    raise InvalidPlanFormat(f"任务ID重复: {task_id}", field=f"{task_prefix}.id")
                seen_task_ids.add(task_id)

    def _with_defaults(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """为缺少时长的任务补上缺省时长，不修改原始数据"""
        data = dict(payload)
        key = "subGoals" if "subGoals" in data else "sub_goals"
        sub_goals = []
        for sub_goal in data[key]:
            sub_goal = dict(sub_goal)
            tasks = []
            for task in sub_goal["tasks"]:
                task = dict(task)
                if "estimatedDuration" not in task and "estimated_duration" not in task:
                    task["estimatedDuration"] = self.default_task_duration
                tasks.append(task)
            sub_goal["tasks"] = tasks
            sub_goals.append(sub_goal)
        data[key] = sub_goals
        return data
