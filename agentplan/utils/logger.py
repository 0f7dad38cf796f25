"""
文件名: logger.py
功能: 规划引擎的日志系统，彩色控制台输出 + 轮转文件日志 + 键值对结构化参数
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict

import colorlog

# 日志目录与控制台级别可通过环境变量覆盖
LOG_DIR_ENV = "AGENTPLAN_LOG_DIR"
LOG_LEVEL_ENV = "AGENTPLAN_LOG_LEVEL"

_CONSOLE_FORMAT = (
    "%(log_color)s%(asctime)s%(reset)s | "
    "%(log_color)s%(levelname)-8s%(reset)s | "
    "%(cyan)s%(name)s%(reset)s | "
    "%(message)s"
)
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 10 * 1024 * 1024  # 10MB


class StructuredLogger:
    """
    结构化日志记录器

    对标准 logging.Logger 的薄封装，额外支持键值对参数：

        logger.info("计划已创建", plan_id=plan.id, tasks=3)
        # -> 计划已创建 | plan_id=... | tasks=3

    属性:
        logger (logging.Logger): Python 标准日志记录器
        name (str): 日志记录器名称
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)

        # 避免重复添加处理器
        if not self.logger.handlers:
            self._setup_logger()

    def _setup_logger(self) -> None:
        """设置处理器和格式化器"""
        self.logger.setLevel(logging.DEBUG)
        self._add_console_handler()
        self._add_file_handler()

    def _add_console_handler(self) -> None:
        """添加控制台处理器（彩色输出）"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(os.getenv(LOG_LEVEL_ENV, "INFO").upper())
        console_handler.setFormatter(colorlog.ColoredFormatter(
            _CONSOLE_FORMAT,
            datefmt=_DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
        ))
        self.logger.addHandler(console_handler)

    def _add_file_handler(self) -> None:
        """添加文件处理器：app.log 记录全部级别，error.log 只记录 ERROR 及以上"""
        log_dir = Path(os.getenv(LOG_DIR_ENV, "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

        file_formatter = logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)

        for filename, level in (("app.log", logging.DEBUG), ("error.log", logging.ERROR)):
            handler = RotatingFileHandler(
                log_dir / filename,
                maxBytes=_MAX_BYTES,
                backupCount=5,
                encoding="utf-8"
            )
            handler.setLevel(level)
            handler.setFormatter(file_formatter)
            self.logger.addHandler(handler)

    def _format_message(self, message: str, **kwargs) -> str:
        """将键值对参数追加到消息末尾"""
        if not kwargs:
            return message

        params_str = " | ".join([f"{k}={v}" for k, v in kwargs.items()])
        return f"{message} | {params_str}"

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """
        记录 ERROR 级别日志

        参数:
            message (str): 日志消息
            exc_info (bool): 是否包含异常堆栈信息
            **kwargs: 额外的键值对参数
        """
        self.logger.error(self._format_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs) -> None:
        """记录异常日志（ERROR 级别 + 堆栈信息）"""
        self.logger.exception(self._format_message(message, **kwargs))


# 日志记录器缓存（避免重复创建）
_logger_cache: Dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    """
    获取日志记录器实例（工厂函数）

    参数:
        name (str): 日志记录器名称（通常使用 __name__）

    返回:
        StructuredLogger: 日志记录器实例

    示例:
        >>> logger = get_logger(__name__)
        >>> logger.info("执行计划已创建", plan_id="p-1", steps=4)
    """
    if name not in _logger_cache:
        _logger_cache[name] = StructuredLogger(name)

    return _logger_cache[name]
