from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from fastapi import Request

from stock_movements.config import load_config
from stock_movements.errors import RequestValidationFailed

logger = logging.getLogger(__name__)

Permission = Literal["CREATE", "READ", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class RequestContext:
    account_id: int
    user_id: int


def _header_id(request: Request, header: str, default: int) -> int:
    raw = (request.headers.get(header) or "").strip()
    if not raw:
        return default
    if not raw.isdigit() or int(raw) <= 0:
        raise RequestValidationFailed(
            [{"field": header, "message": "must be a positive integer"}]
        )
    return int(raw)


def get_request_context(request: Request) -> RequestContext:
    cfg = load_config()
    return RequestContext(
        account_id=_header_id(request, "X-Account-Id", cfg.default_account_id),
        user_id=_header_id(request, "X-User-Id", cfg.default_user_id),
    )


def require_permission(securable: str, permission: Permission):
    """Dependency factory; no evalúa permisos todavía, solo resuelve la credencial."""

    def dependency(request: Request) -> RequestContext:
        context = get_request_context(request)
        logger.debug(
            "permission check skipped securable=%s permission=%s account=%s user=%s",
            securable,
            permission,
            context.account_id,
            context.user_id,
        )
        return context

    return dependency
