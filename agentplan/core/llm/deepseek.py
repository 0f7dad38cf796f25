"""
文件名: deepseek.py
功能: DeepSeek LLM 适配器（OpenAI 兼容接口，JSON 输出模式）
"""

from typing import Dict, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from agentplan.core.llm.base import BaseLLM
from agentplan.utils.exceptions import ReasoningServiceError

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: List[Dict[str, str]]) -> List[BaseMessage]:
    """把 {"role", "content"} 字典转换为 LangChain 消息对象"""
    converted = []
    for message in messages:
        message_cls = _MESSAGE_TYPES.get(message.get("role", "user"), HumanMessage)
        converted.append(message_cls(content=message["content"]))
    return converted


class DeepSeekLLM(BaseLLM):
    """
    DeepSeek LLM 适配器

    使用 LangChain 的 ChatOpenAI 适配器调用 DeepSeek API。
    目标分解要求模型直接返回 JSON 对象，因此默认开启 json_object 输出格式。

    属性:
        api_key (str): DeepSeek API Key
        base_url (str): DeepSeek API 地址
        client (ChatOpenAI): LangChain ChatOpenAI 客户端
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepseek.com",
        model_name: str = "deepseek-chat",
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout: int = 60,
        json_mode: bool = True
    ):
        super().__init__(model_name, temperature, max_tokens, timeout)

        self.api_key = api_key
        self.base_url = base_url

        self.invoke_kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        self.client = ChatOpenAI(
            api_key=api_key,
            base_url=base_url,
            model=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout
        )

        self.logger.info(
            "DeepSeek LLM 初始化成功",
            model=model_name,
            base_url=base_url
        )

    def chat(self, messages: List[Dict[str, str]], **kwargs) -> str:
        """
        对话接口

        参数:
            messages (List[Dict[str, str]]): 消息列表
            **kwargs: 透传给 ChatOpenAI.invoke 的参数

        返回:
            str: 回复内容

        异常:
            ReasoningServiceError: API 调用失败时抛出
        """
        try:
            self.logger.debug("调用 DeepSeek API", message_count=len(messages))
            response = self.client.invoke(
                to_langchain_messages(messages), **{**self.invoke_kwargs, **kwargs}
            )
        except Exception as e:
            self.logger.exception("DeepSeek API 调用失败", error=str(e))
            raise ReasoningServiceError(
                f"DeepSeek API 调用失败: {str(e)}",
                details={
                    "model": self.model_name,
                    "message_count": len(messages),
                    "error": str(e)
                }
            )

        content = response.content
        self.logger.debug("DeepSeek API 调用成功", response_length=len(content))
        return content
