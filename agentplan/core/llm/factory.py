"""
文件名: factory.py
功能: LLM 工厂函数，根据配置创建目标分解使用的推理服务实例
"""

from typing import Optional

from agentplan.core.llm.base import BaseLLM
from agentplan.utils.config import Config, get_config
from agentplan.utils.exceptions import ConfigError
from agentplan.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ["deepseek"]


def create_llm(provider: Optional[str] = None,
               config: Optional[Config] = None,
               model: Optional[str] = None,
               temperature: Optional[float] = None,
               max_tokens: Optional[int] = None) -> BaseLLM:
    """
    创建 LLM 实例（工厂函数）

    参数:
        provider (str, optional): 提供商名称，默认使用 llm.default_provider
        config (Config, optional): 配置对象，默认使用全局配置
        model (str, optional): 模型名称，覆盖配置中的模型
        temperature (float, optional): 温度参数，覆盖配置中的温度
        max_tokens (int, optional): 最大 token 数，覆盖配置中的 max_tokens

    返回:
        BaseLLM: LLM 实例

    异常:
        ConfigError: 配置缺失或提供商不支持时抛出

    示例:
        >>> llm = create_llm()
        >>> llm = create_llm("deepseek", temperature=0.1)
    """
    config = config or get_config()
    provider = provider or config.get("llm.default_provider", "deepseek")

    logger.info("正在创建 LLM 实例", provider=provider, model=model)

    if provider == "deepseek":
        return _create_deepseek_llm(config, model=model, temperature=temperature, max_tokens=max_tokens)

    raise ConfigError(
        f"不支持的 LLM 提供商: {provider}",
        details={"provider": provider, "supported": SUPPORTED_PROVIDERS}
    )


def _create_deepseek_llm(config: Config,
                         model: Optional[str] = None,
                         temperature: Optional[float] = None,
                         max_tokens: Optional[int] = None) -> BaseLLM:
    """
    创建 DeepSeek LLM 实例（内部函数）

    异常:
        ConfigError: DeepSeek API Key 未配置时抛出
    """
    from agentplan.core.llm.deepseek import DeepSeekLLM

    prefix = "llm.providers.deepseek"
    api_key = config.get(f"{prefix}.api_key")
    # 未解析的 ${VAR} 占位符视为未配置
    if not api_key or str(api_key).startswith("${"):
        raise ConfigError(
            "DeepSeek API Key 未配置",
            details={"config_key": f"{prefix}.api_key"}
        )

    model_name = model or config.get(f"{prefix}.model", "deepseek-chat")
    temp = temperature if temperature is not None else config.get(f"{prefix}.temperature", 0.3)
    tokens = max_tokens or config.get(f"{prefix}.max_tokens", 2000)

    llm = DeepSeekLLM(
        api_key=api_key,
        base_url=config.get(f"{prefix}.base_url", "https://api.deepseek.com"),
        model_name=model_name,
        temperature=temp,
        max_tokens=tokens,
        timeout=config.get(f"{prefix}.timeout", 60)
    )

    logger.info("DeepSeek LLM 创建成功", model=model_name, temperature=temp, max_tokens=tokens)
    return llm
