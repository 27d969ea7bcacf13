# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""请求数据校验

规则集（RuleSet）按字段声明规则串，例如 ``"require|max:64"``，
并通过场景（scene）选择本次参与校验的字段。

- 规则串在注册规则集时编译，请求期间不再解析
- 场景地址 ``"<ruleset>.<scene>"`` 只在配置阶段解析为 SceneRef
- 除 require 以外的规则，字段缺失或为空时跳过
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from gateway.common.errors import ValidationFailed

DEFAULT_SCENE = "default"

RuleSpec = Union[str, Sequence[str]]

_DEFAULT_MESSAGES: Dict[str, str] = {
    "require": "required",
    "string": "must be a string",
    "integer": "must be an integer",
    "number": "must be numeric",
    "boolean": "must be a boolean",
    "array": "must be an array",
    "alpha_dash": "must contain only letters, digits, dashes and underscores",
    "max": "must not exceed {0}",
    "min": "must be at least {0}",
    "length": "length must be between {0} and {1}",
    "in": "must be one of {args}",
    "regex": "invalid format",
}

_INT_RE = re.compile(r"^[+-]?\d+$")
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_ALPHA_DASH_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


class RuleSetNotFound(KeyError):
    """规则集或场景不存在（配置错误）"""


@dataclass(frozen=True)
class SceneRef:
    rule_set: str
    scene: str = DEFAULT_SCENE

    @classmethod
    def parse(cls, text: str) -> "SceneRef":
        """只在加载配置时使用"""
        name, _, scene = text.partition(".")
        if not name:
            raise ValueError(f"invalid scene address: {text!r}")
        return cls(rule_set=name, scene=scene or DEFAULT_SCENE)

    def __str__(self) -> str:
        return f"{self.rule_set}.{self.scene}"


@dataclass(frozen=True)
class Rule:
    name: str
    args: Tuple[str, ...] = ()
    pattern: Optional["re.Pattern[str]"] = None


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _size(value: Any) -> float:
    if _is_number(value):
        return value
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return len(str(value))


def _length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return len(str(value))


def _check_rule(rule: Rule, value: Any) -> bool:
    name = rule.name
    if name == "require":
        return not _is_empty(value)
    if name == "string":
        return isinstance(value, str)
    if name == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, str) and bool(_INT_RE.match(value)))
    if name == "number":
        return _is_number(value) or (isinstance(value, str) and bool(_NUMBER_RE.match(value)))
    if name == "boolean":
        return value in (True, False, 0, 1, "0", "1", "true", "false")
    if name == "array":
        return isinstance(value, (list, dict))
    if name == "alpha_dash":
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            return False
        return bool(_ALPHA_DASH_RE.match(str(value)))
    if name == "max":
        return _size(value) <= float(rule.args[0])
    if name == "min":
        return _size(value) >= float(rule.args[0])
    if name == "length":
        n = _length(value)
        if len(rule.args) == 1:
            return n == int(rule.args[0])
        return int(rule.args[0]) <= n <= int(rule.args[1])
    if name == "in":
        return str(value) in rule.args
    if name == "regex":
        return isinstance(value, (str, int)) and bool(rule.pattern.search(str(value)))
    raise ValueError(f"unsupported rule: {name}")


def _compile_rule(text: str) -> Rule:
    name, sep, arg = text.strip().partition(":")
    name = name.strip()
    if name not in _DEFAULT_MESSAGES:
        raise ValueError(f"unsupported rule: {name!r}")
    if name == "regex":
        if not arg:
            raise ValueError("regex rule needs a pattern")
        return Rule(name=name, args=(arg,), pattern=re.compile(arg))
    args = tuple(a.strip() for a in arg.split(",")) if sep else ()
    if name in ("max", "min", "length") and not args:
        raise ValueError(f"rule {name!r} needs an argument")
    return Rule(name=name, args=args)


def compile_rules(spec: RuleSpec) -> Tuple[Rule, ...]:
    """``"require|max:64"`` 或 ``["require", "regex:^a|b$"]``（正则含 | 时用列表形式）"""
    parts: Iterable[str] = spec.split("|") if isinstance(spec, str) else spec
    return tuple(_compile_rule(p) for p in parts if p and p.strip())


def _format_message(rule: Rule) -> str:
    template = _DEFAULT_MESSAGES[rule.name]
    if rule.name == "length" and len(rule.args) == 1:
        return f"length must be {rule.args[0]}"
    return template.format(*rule.args, args=",".join(rule.args))


class RuleSet:
    def __init__(
        self,
        name: str,
        rules: Mapping[str, RuleSpec],
        messages: Optional[Mapping[str, str]] = None,
        scenes: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self.name = name
        self.rules: Dict[str, Tuple[Rule, ...]] = {f: compile_rules(s) for f, s in rules.items()}
        self.messages: Dict[str, str] = dict(messages or {})
        self.scenes: Dict[str, Tuple[str, ...]] = {}
        for scene, fields in (scenes or {}).items():
            unknown = [f for f in fields if f not in self.rules]
            if unknown:
                raise ValueError(f"scene {name}.{scene} references unknown fields: {unknown}")
            self.scenes[scene] = tuple(fields)

    def has_scene(self, scene: str) -> bool:
        return scene in self.scenes or scene == DEFAULT_SCENE

    def fields_for(self, scene: str) -> Tuple[str, ...]:
        if scene in self.scenes:
            return self.scenes[scene]
        if scene == DEFAULT_SCENE:
            return tuple(self.rules)
        raise RuleSetNotFound(f"{self.name}.{scene}")


class Validator:
    """单次校验的执行器，可在回调里追加规则或直接记录错误"""

    def __init__(
        self,
        rules: Mapping[str, Tuple[Rule, ...]],
        fields: Sequence[str],
        messages: Optional[Mapping[str, str]] = None,
        batch: bool = False,
    ) -> None:
        self._rules: Dict[str, Tuple[Rule, ...]] = dict(rules)
        self._fields: List[str] = list(fields)
        self._messages: Dict[str, str] = dict(messages or {})
        self._batch = batch
        self._errors: Dict[str, str] = {}

    def rule(self, field_name: str, spec: RuleSpec) -> "Validator":
        self._rules[field_name] = compile_rules(spec)
        if field_name not in self._fields:
            self._fields.append(field_name)
        return self

    def message(self, messages: Mapping[str, str]) -> "Validator":
        self._messages.update(messages)
        return self

    def batch(self, flag: bool = True) -> "Validator":
        self._batch = flag
        return self

    def add_error(self, field_name: str, message: str) -> "Validator":
        self._errors.setdefault(field_name, message)
        return self

    def get_error(self) -> Dict[str, str]:
        return dict(self._errors)

    def _message_for(self, field_name: str, rule: Rule) -> str:
        return (
            self._messages.get(f"{field_name}.{rule.name}")
            or self._messages.get(field_name)
            or _format_message(rule)
        )

    def check(self, data: Mapping[str, Any]) -> bool:
        if self._errors and not self._batch:
            return False

        for field_name in self._fields:
            if field_name in self._errors:
                continue
            value = data.get(field_name)
            for rule in self._rules.get(field_name, ()):
                if rule.name != "require" and _is_empty(value):
                    continue
                if not _check_rule(rule, value):
                    self._errors[field_name] = self._message_for(field_name, rule)
                    break
            if self._errors and not self._batch:
                return False

        return not self._errors


@dataclass(frozen=True)
class ValidationOutcome:
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    @staticmethod
    def invalid(errors: Mapping[str, str]) -> "ValidationOutcome":
        return ValidationOutcome(errors=dict(errors))


Valid = ValidationOutcome()

ValidateCallback = Callable[[Validator, Dict[str, Any]], None]


class ValidationEngine:
    def __init__(
        self,
        rule_sets: Iterable[RuleSet] = (),
        batch: bool = False,
        fail_exception: bool = False,
    ) -> None:
        self._rule_sets: Dict[str, RuleSet] = {}
        self.batch = batch
        self.fail_exception = fail_exception
        for rs in rule_sets:
            self.register(rs)

    def register(self, rule_set: RuleSet) -> None:
        self._rule_sets[rule_set.name] = rule_set

    def resolve(self, ref: Union[SceneRef, str]) -> SceneRef:
        """配置阶段调用：解析场景地址并确认规则集/场景存在"""
        if isinstance(ref, str):
            ref = SceneRef.parse(ref)
        rule_set = self._rule_sets.get(ref.rule_set)
        if rule_set is None:
            raise RuleSetNotFound(ref.rule_set)
        if not rule_set.has_scene(ref.scene):
            raise RuleSetNotFound(str(ref))
        return ref

    def validator_for(self, target: Union[SceneRef, Mapping[str, RuleSpec]]) -> Validator:
        if isinstance(target, SceneRef):
            rule_set = self._rule_sets.get(target.rule_set)
            if rule_set is None:
                raise RuleSetNotFound(target.rule_set)
            return Validator(
                rule_set.rules,
                rule_set.fields_for(target.scene),
                messages=rule_set.messages,
                batch=self.batch,
            )
        # 临时规则（未注册规则集）
        rules = {f: compile_rules(s) for f, s in target.items()}
        return Validator(rules, list(rules), batch=self.batch)

    def validate(
        self,
        data: Dict[str, Any],
        target: Union[SceneRef, Mapping[str, RuleSpec]],
        messages: Optional[Mapping[str, str]] = None,
        batch: bool = False,
        callback: Optional[ValidateCallback] = None,
        fail_exception: Optional[bool] = None,
    ) -> ValidationOutcome:
        v = self.validator_for(target)
        if batch:
            v.batch(True)
        if messages:
            v.message(messages)
        if callback is not None:
            callback(v, data)

        if v.check(data):
            return Valid

        errors = v.get_error()
        raise_on_fail = self.fail_exception if fail_exception is None else fail_exception
        if raise_on_fail:
            raise ValidationFailed(errors)
        return ValidationOutcome.invalid(errors)
