"""
文件名: exceptions.py
功能: 规划引擎的异常体系，所有异常都携带出错的任务/字段标识
"""

from typing import Any, Dict, List, Optional


class PlanningError(Exception):
    """
    规划引擎异常基类

    所有自定义异常都应继承此类，便于统一捕获和处理。

    属性:
        message (str): 异常信息
        details (Dict[str, Any], optional): 异常详细信息
        error_code (str, optional): 错误代码
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message  # 异常信息
        self.details = details or {}  # 异常详细信息
        self.error_code = error_code  # 错误代码
        super().__init__(self.message)

    def __str__(self) -> str:
        """返回异常的字符串表示"""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式，便于调用方上报"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class ConfigError(PlanningError):
    """
    配置错误异常

    当配置文件缺失、格式错误或必需配置项缺失时抛出。
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            details=details,
            error_code="CONFIG_ERROR"
        )


class ReasoningServiceError(PlanningError):
    """
    推理服务调用错误

    当目标分解所依赖的 LLM 调用失败、超时或返回错误时抛出。
    该错误对分解是致命的，引擎内部不重试。
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            details=details,
            error_code="REASONING_SERVICE_ERROR"
        )


class InvalidPlanFormat(PlanningError):
    """
    分解结果格式错误

    原始分解数据缺失字段或字段类型不合法时抛出，指明第一个违规项。

    属性:
        reason (str): 违规原因
        field (str): 违规字段路径（如 "subGoals[0].tasks[1].id"）
    """

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason  # 违规原因
        self.field = field  # 违规字段路径
        message = f"{field}: {reason}" if field else reason
        super().__init__(
            message=f"分解结果格式无效: {message}",
            details={"reason": reason, "field": field},
            error_code="INVALID_PLAN_FORMAT"
        )


class UnknownTaskReference(PlanningError):
    """
    依赖引用了计划中不存在的任务

    属性:
        task_id (str): 声明依赖的任务
        referenced_id (str): 被引用但不存在的任务
    """

    def __init__(self, task_id: str, referenced_id: str):
        self.task_id = task_id
        self.referenced_id = referenced_id
        super().__init__(
            message=f"任务 '{task_id}' 引用了不存在的任务 '{referenced_id}'",
            details={"task_id": task_id, "referenced_id": referenced_id},
            error_code="UNKNOWN_TASK_REFERENCE"
        )


class CircularDependency(PlanningError):
    """
    依赖图中存在环

    属性:
        task_id (str): 检测到环时所在的任务
        cycle (List[str]): 环上的任务路径（首尾相同）
    """

    def __init__(self, task_id: str, cycle: Optional[List[str]] = None):
        self.task_id = task_id
        self.cycle = cycle or [task_id]
        super().__init__(
            message=f"检测到循环依赖，涉及任务: {task_id}",
            details={"task_id": task_id, "cycle": self.cycle},
            error_code="CIRCULAR_DEPENDENCY"
        )


class AdaptationConflict(PlanningError):
    """
    同一计划上的并发或过期调整

    调用方应在串行化后重试。

    属性:
        plan_id (str): 计划标识（goal_id）
        reason (str): 冲突原因
    """

    def __init__(self, plan_id: str, reason: str):
        self.plan_id = plan_id
        self.reason = reason
        super().__init__(
            message=f"计划 '{plan_id}' 调整冲突: {reason}",
            details={"plan_id": plan_id, "reason": reason},
            error_code="ADAPTATION_CONFLICT"
        )


class OrphanedDependents(PlanningError):
    """
    移除失败任务后，仍有下游任务依赖它

    仅在 orphan_policy 为 reject 时抛出。

    属性:
        task_id (str): 被移除的失败任务
        orphaned (List[str]): 失去依赖的下游任务
    """

    def __init__(self, task_id: str, orphaned: List[str]):
        self.task_id = task_id
        self.orphaned = orphaned
        super().__init__(
            message=f"移除任务 '{task_id}' 后存在失去依赖的下游任务: {', '.join(orphaned)}",
            details={"task_id": task_id, "orphaned": orphaned},
            error_code="ORPHANED_DEPENDENTS"
        )
