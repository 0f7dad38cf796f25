"""
Goal decomposer.

Builds the decomposition prompt from the goal text and the requesting
agent's context, asks the reasoning collaborator for a JSON plan, and
passes the answer through the plan validator. Collaborator failures are
fatal to the call and are not retried here.
"""

from typing import Dict, List, Optional

from agentplan.core.llm.base import BaseLLM
from agentplan.core.planning.schemas import AgentContext, TaskPlan
from agentplan.core.planning.validator import PlanValidator
from agentplan.utils.exceptions import ReasoningServiceError
from agentplan.utils.helpers import truncate_text
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are an expert AI planning agent. Always answer with a single JSON object."

DECOMPOSITION_PROMPT = """
Decompose the following goal into a structured plan.

Goal: {goal}

Context:
- Agent ID: {agent_id}
- Workflow ID: {workflow_id}
- Available capabilities: {capabilities}

Please provide a JSON response with the following structure:
{{
  "subGoals": [
    {{
      "id": "unique_id",
      "description": "Sub-goal description",
      "tasks": [
        {{
          "id": "task_id",
          "name": "Task name",
          "description": "Detailed task description",
          "type": "atomic|composite",
          "estimatedDuration": minutes,
          "requiredCapabilities": ["capability1", "capability2"],
          "dependencies": ["task_id1", "task_id2"],
          "priority": "low|medium|high|critical",
          "successCriteria": ["criteria1", "criteria2"]
        }}
      ],
      "dependencies": ["subgoal_id1"],
      "estimatedDuration": minutes,
      "successCriteria": ["criteria1", "criteria2"]
    }}
  ],
  "dependencies": [
    {{
      "taskId": "task_id",
      "dependsOn": ["task_id1", "task_id2"],
      "dependencyType": "sequential|parallel|conditional"
    }}
  ],
  "estimatedDuration": total_minutes,
  "requiredCapabilities": ["capability1", "capability2"],
  "successCriteria": ["overall_criteria1", "overall_criteria2"]
}}

Focus on:
1. Breaking down complex goals into manageable sub-goals
2. Identifying atomic tasks that can be executed independently
3. Defining clear dependencies between tasks (task ids must exist in the plan)
4. Estimating realistic durations in minutes
5. Specifying required capabilities for each task
6. Defining measurable success criteria
"""


class GoalDecomposer:
    """
    目标分解器

    功能：
    - 根据目标和 Agent 上下文构建分解提示词
    - 调用推理服务获取 JSON 计划
    - 用 PlanValidator 校验后构造 version = 1 的 TaskPlan
    """

    def __init__(self, llm: BaseLLM, validator: Optional[PlanValidator] = None):
        """
        初始化目标分解器

        参数:
            llm: 推理服务（任意 BaseLLM 实现）
            validator: 分解结果验证器
        """
        self.llm = llm
        self.validator = validator or PlanValidator()

    def build_prompt(self, goal: str, context: AgentContext) -> str:
        """构建分解提示词"""
        capabilities = ", ".join(context.available_capabilities) or "Not specified"
        return DECOMPOSITION_PROMPT.format(
            goal=goal,
            agent_id=context.agent_id,
            workflow_id=context.workflow_id or "Not specified",
            capabilities=capabilities,
        )

    def build_messages(self, goal: str, context: AgentContext) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self.build_prompt(goal, context)},
        ]

    def decompose(self, goal: str, context: Optional[AgentContext] = None) -> TaskPlan:
        """
        把目标分解为任务计划

        参数:
            goal: 目标文本
            context: 发起分解的 Agent 上下文

        返回:
            TaskPlan: 通过验证的任务计划（version = 1）

        异常:
            ReasoningServiceError: 推理服务调用失败
            InvalidPlanFormat: 推理服务返回的结构不合法
        """
        context = context or AgentContext()
        logger.info(f"开始分解目标: {truncate_text(goal)}", agent_id=context.agent_id)

        messages = self.build_messages(goal, context)
        try:
            response = self.llm.chat(messages)
        except ReasoningServiceError:
            raise
        except Exception as e:
            logger.error("推理服务调用失败", error=str(e), agent_id=context.agent_id)
            raise ReasoningServiceError(
                f"推理服务调用失败: {str(e)}",
                details={"agent_id": context.agent_id, "error": str(e)}
            )

        if not response:
            raise ReasoningServiceError(
                "推理服务返回空响应",
                details={"agent_id": context.agent_id}
            )

        logger.debug("收到分解结果", response=truncate_text(response, 500))
        plan = self.validator.validate(response, main_goal=goal)

        logger.info(
            "目标分解完成",
            goal_id=plan.goal_id,
            sub_goals=len(plan.sub_goals),
            tasks=len(plan.all_tasks())
        )
        return plan
