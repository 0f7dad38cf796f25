"""
文件名: config.py
功能: 配置管理器，负责加载 YAML 配置并派生规划引擎使用的强类型设置
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from agentplan.utils.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/config.yaml"
CONFIG_PATH_ENV = "AGENTPLAN_CONFIG"

_ENV_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


class Config:
    """
    配置管理器类

    功能：
    - 从 YAML 文件加载配置
    - 支持环境变量占位符（${VAR}）
    - 支持点号访问（如 config.get("planning.retry.max_retries")）
    - 自动加载 .env 文件

    属性:
        _config (Dict[str, Any]): 配置数据字典
        _config_path (Path): 配置文件路径
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """
        初始化配置管理器

        参数:
            config_path (str): 配置文件路径

        异常:
            ConfigError: 配置文件不存在或格式错误时抛出
        """
        self._config: Dict[str, Any] = {}
        self._config_path = Path(config_path)

        load_dotenv()
        self._load_config()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """直接从字典构造配置（不读文件），便于测试和嵌入使用"""
        instance = cls.__new__(cls)
        instance._config = instance._resolve_env_vars(data or {})
        instance._config_path = Path("<memory>")
        return instance

    def _load_config(self) -> None:
        """从 YAML 文件加载配置"""
        if not self._config_path.exists():
            raise ConfigError(
                f"配置文件不存在: {self._config_path}",
                details={"config_path": str(self._config_path)}
            )

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(
                f"配置文件格式错误: {str(e)}",
                details={"config_path": str(self._config_path), "error": str(e)}
            )

        if not isinstance(raw_config, dict):
            raise ConfigError(
                "配置文件顶层必须是映射",
                details={"config_path": str(self._config_path)}
            )

        self._config = self._resolve_env_vars(raw_config)

    def _resolve_env_vars(self, data: Any) -> Any:
        """
        递归解析配置中的环境变量占位符

        支持格式: ${VAR_NAME}，环境变量不存在时保留原始占位符
        """
        if isinstance(data, dict):
            return {key: self._resolve_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._resolve_env_vars(item) for item in data]

        if isinstance(data, str):
            def replacer(match):
                var_value = os.getenv(match.group(1))
                return match.group(0) if var_value is None else var_value

            return _ENV_PLACEHOLDER.sub(replacer, data)

        return data

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值，支持点号路径

        示例:
            >>> config.get("planning.cost_per_task")
            0.05
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_required(self, key: str) -> Any:
        """获取必需的配置值，不存在时抛出 ConfigError"""
        value = self.get(key)
        if value is None:
            raise ConfigError(
                f"缺少必需配置: {key}",
                details={"key": key}
            )
        return value

    def set(self, key: str, value: Any) -> None:
        """设置配置值（运行时修改，不会写入文件）"""
        keys = key.split(".")
        target = self._config

        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """返回完整配置字典的副本"""
        return self._config.copy()

    def __repr__(self) -> str:
        return f"<Config from {self._config_path}>"


class RetrySettings(BaseModel):
    """非关键任务失败时的重试参数"""
    max_retries: int = Field(default=3, ge=0, description="最大重试次数")
    backoff_ms: int = Field(default=5000, ge=0, description="重试退避（毫秒）")


class PlanningSettings(BaseModel):
    """
    规划引擎设置

    由 Config 中的 planning / adaptation 段派生，所有字段都有默认值，
    因此没有配置文件时引擎也能工作。
    """
    cost_per_task: float = Field(default=0.05, ge=0.0, description="每个任务的单位成本")
    default_task_duration: float = Field(default=30.0, gt=0.0, description="缺省任务时长（分钟）")
    parallel_strategy: str = Field(default="greedy", description="并行分组策略: greedy | strict")
    retry: RetrySettings = Field(default_factory=RetrySettings, description="重试参数")
    orphan_policy: str = Field(default="flag", description="失败任务下游处理策略: flag | reject")
    reject_stale_versions: bool = Field(default=True, description="是否拒绝过期版本的调整请求")

    @field_validator("parallel_strategy")
    @classmethod
    def validate_parallel_strategy(cls, v):
        if v not in ("greedy", "strict"):
            raise ValueError("parallel_strategy 必须是 greedy 或 strict")
        return v

    @field_validator("orphan_policy")
    @classmethod
    def validate_orphan_policy(cls, v):
        if v not in ("flag", "reject"):
            raise ValueError("orphan_policy 必须是 flag 或 reject")
        return v

    @classmethod
    def from_config(cls, config: Config) -> "PlanningSettings":
        """
        从配置对象构造设置

        参数:
            config (Config): 配置对象

        返回:
            PlanningSettings: 设置实例

        异常:
            ConfigError: 配置值不合法时抛出
        """
        data = dict(config.get("planning", {}) or {})
        adaptation = config.get("adaptation", {}) or {}
        for key in ("orphan_policy", "reject_stale_versions"):
            if key in adaptation:
                data[key] = adaptation[key]

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(
                f"规划配置不合法: {str(e)}",
                details={"errors": e.errors()}
            )


# 全局配置实例（单例模式）
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    获取全局配置实例

    路径优先级: 参数 > 环境变量 AGENTPLAN_CONFIG > config/config.yaml。
    配置文件不存在时返回空配置，所有设置取默认值。

    参数:
        config_path (str, optional): 配置文件路径

    返回:
        Config: 配置实例
    """
    global _config_instance

    if _config_instance is None:
        path = config_path or os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
        try:
            _config_instance = Config(path)
        except ConfigError:
            if Path(path).exists():
                raise
            _config_instance = Config.from_dict({})

    return _config_instance


def reset_config() -> None:
    """丢弃全局配置实例，下次 get_config 时重新加载"""
    global _config_instance
    _config_instance = None
