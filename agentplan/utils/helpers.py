"""
文件名: helpers.py
功能: 辅助工具函数集合
"""

import json
import re
import uuid
from typing import Any, Dict, Iterable, List

_JSON_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def generate_id() -> str:
    """生成新的唯一标识（UUID4 字符串）"""
    return str(uuid.uuid4())


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    截断文本，如果超过最大长度则添加省略号

    示例:
        >>> truncate_text("a" * 120, 10)
        'aaaaaaaaaa...'
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    从 LLM 输出中提取 JSON 对象

    优先解析 ```json 代码块，否则把整个文本当作 JSON。

    参数:
        text (str): LLM 输出文本

    返回:
        Dict[str, Any]: 解析后的对象

    异常:
        json.JSONDecodeError: 文本不是合法 JSON
    """
    match = _JSON_BLOCK.search(text)
    json_str = match.group(1) if match else text.strip()
    return json.loads(json_str)


def unique_ordered(items: Iterable[str]) -> List[str]:
    """
    去重并保持首次出现的顺序

    示例:
        >>> unique_ordered(["b", "a", "b", "c"])
        ['b', 'a', 'c']
    """
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
