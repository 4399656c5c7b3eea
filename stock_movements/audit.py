from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_movements.models import AuditLog
from stock_movements.security import RequestContext

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    context: RequestContext,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    detail: Optional[dict[str, Any]] = None,
) -> None:
    row = AuditLog(
        account_id=context.account_id,
        user_id=context.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        detail=json.dumps(detail or {}, ensure_ascii=False, default=str) if detail is not None else None,
    )
    db.add(row)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not write audit event %s for %s %s", action, entity_type, entity_id)
