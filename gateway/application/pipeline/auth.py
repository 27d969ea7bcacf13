# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gateway.common.errors import AuthError
from gateway.domain import models
from gateway.infra.metrics import REGISTRY_ERRORS
from gateway.infra.timeouts import CallTimeout, call_with_timeout

logger = logging.getLogger(__name__)

STATUS_NOT_FOUND = "not found"
STATUS_UNAVAILABLE = "registry unavailable"


class AuthStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, raw: Any) -> "AuthStatus":
        """注册表 status 字段：1=active 0=disabled"""
        if isinstance(raw, cls):
            return raw
        text = str(raw).strip().lower() if raw is not None else ""
        if text in ("1", "active"):
            return cls.ACTIVE
        if text in ("0", "disabled"):
            return cls.DISABLED
        return cls.UNKNOWN


@dataclass(frozen=True)
class AuthRecord:
    id: str
    status: AuthStatus
    metadata: Dict[str, Any] = field(default_factory=dict)


class AuthRegistry(ABC):
    """auth 注册表（只读）"""

    @abstractmethod
    def lookup(self, auth_id: str) -> Optional[AuthRecord]:
        raise NotImplementedError


class SqlAuthRegistry(AuthRegistry):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def lookup(self, auth_id: str) -> Optional[AuthRecord]:
        db: Session = self._session_factory()
        try:
            row = db.get(models.Game, auth_id)
            if row is None:
                return None
            return AuthRecord(
                id=str(row.id),
                status=AuthStatus.from_raw(row.status),
                metadata={"name": row.name, "remark": row.remark, "created_at": row.created_at},
            )
        finally:
            db.close()


class MemoryAuthRegistry(AuthRegistry):
    """本地调试 / 测试用"""

    def __init__(self, rows: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {str(k): dict(v) for k, v in (rows or {}).items()}

    def add(self, auth_id: str, status: Any = 1, **metadata: Any) -> None:
        self._rows[str(auth_id)] = {"status": status, **metadata}

    def lookup(self, auth_id: str) -> Optional[AuthRecord]:
        row = self._rows.get(str(auth_id))
        if row is None:
            return None
        meta = {k: v for k, v in row.items() if k != "status"}
        return AuthRecord(id=str(auth_id), status=AuthStatus.from_raw(row.get("status")), metadata=meta)


class AuthGate:
    def __init__(self, registry: AuthRegistry, timeout: Optional[float] = None) -> None:
        self._registry = registry
        self._timeout = timeout

    def authenticate(self, auth_id: Optional[str]) -> Union[AuthRecord, AuthError]:
        if not auth_id:
            return AuthError(STATUS_NOT_FOUND)

        try:
            record = call_with_timeout(lambda: self._registry.lookup(auth_id), self._timeout)
        except CallTimeout:
            REGISTRY_ERRORS.labels(reason="timeout").inc()
            logger.warning("Auth registry lookup timed out: auth_id=%s timeout=%s", auth_id, self._timeout)
            return AuthError(STATUS_UNAVAILABLE)
        except SQLAlchemyError:
            REGISTRY_ERRORS.labels(reason="db_error").inc()
            logger.exception("Auth registry lookup failed: auth_id=%s", auth_id)
            return AuthError(STATUS_UNAVAILABLE)

        if record is None:
            return AuthError(STATUS_NOT_FOUND)
        if record.status is not AuthStatus.ACTIVE:
            return AuthError(record.status.value)
        return record
