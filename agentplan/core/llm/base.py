"""
文件名: base.py
功能: 推理服务（LLM）基类接口，目标分解通过它调用外部模型
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from agentplan.utils.logger import get_logger

logger = get_logger(__name__)


class BaseLLM(ABC):
    """
    LLM 基类

    定义目标分解所需的最小调用接口。
    所有 LLM 实现（DeepSeek 及其他 OpenAI 兼容服务）都应继承此类。

    属性:
        model_name (str): 模型名称
        temperature (float): 温度参数（控制随机性）
        max_tokens (int): 最大生成Token数
        timeout (int): 超时时间（秒）
    """

    def __init__(
        self,
        model_name: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout: int = 60
    ):
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def chat(self, messages: List[Dict[str, str]], **kwargs) -> str:
        """
        对话接口（抽象方法）

        参数:
            messages (List[Dict[str, str]]): 消息列表，格式：[{"role": "user", "content": "..."}]
            **kwargs: 其他参数

        返回:
            str: 模型回复文本

        异常:
            ReasoningServiceError: 调用失败时抛出
        """
        pass

    def get_model_info(self) -> Dict[str, Any]:
        """获取模型信息"""
        return {
            "model_name": self.model_name,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "provider": self.__class__.__name__.replace("LLM", "").lower()
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(model={self.model_name})>"
