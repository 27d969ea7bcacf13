# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union
from urllib.parse import unquote_plus

from gateway.common.errors import DecodeError

_TAG_RE = re.compile(r"<[^>]*>")
_BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")


def strip_tags(value: Any) -> Any:
    """去掉字符串中的 HTML 标签（递归处理 list / dict）"""
    if isinstance(value, str):
        return _TAG_RE.sub("", value)
    if isinstance(value, list):
        return [strip_tags(v) for v in value]
    if isinstance(value, dict):
        return {k: strip_tags(v) for k, v in value.items()}
    return value


def _key_path(key: str) -> List[str]:
    """``data[user_id]`` -> ``["data", "user_id"]``；``tags[]`` 的空段表示追加"""
    head, sep, rest = key.partition("[")
    if not sep or not head:
        return [key]
    parts = _BRACKET_RE.findall("[" + rest)
    if "".join(f"[{p}]" for p in parts) != "[" + rest:
        return [key]
    return [head] + parts


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    items = {k: _listify(v) for k, v in node.items()}
    if items and list(items) == list(range(len(items))):
        return list(items.values())
    return items


def nest_params(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """把查询串/表单的键值对按方括号语法展开为嵌套结构，同名键后者覆盖"""
    result: Dict[Any, Any] = {}
    for key, value in pairs:
        path = _key_path(key)
        node = result
        for part in path[:-1]:
            slot = len(node) if part == "" else part
            child = node.get(slot)
            if not isinstance(child, dict):
                child = {}
                node[slot] = child
            node = child
        last = path[-1]
        node[len(node) if last == "" else last] = value
    return {str(k): _listify(v) for k, v in result.items()}


def decode_input(raw_body: bytes, params: Mapping[str, Any]) -> Union[Dict[str, Any], DecodeError]:
    """解析请求数据

    - body 非空：urldecode 后按 JSON 对象解析，失败返回 DecodeError
    - body 为空：取请求参数，字符串值去 HTML 标签
    """
    if not raw_body or not raw_body.strip():
        return {str(k): strip_tags(v) for k, v in params.items()}

    try:
        text = raw_body.decode("utf-8")
    except UnicodeDecodeError as e:
        return DecodeError(debug=f"body is not valid utf-8: {e.reason}")

    try:
        decoded = json.loads(unquote_plus(text))
    except ValueError as e:
        return DecodeError(debug=f"invalid json: {e}")

    if not isinstance(decoded, dict):
        return DecodeError(debug=f"json body must be an object, got {type(decoded).__name__}")
    return decoded
