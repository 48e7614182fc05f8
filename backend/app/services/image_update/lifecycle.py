# operation 状态机：pending → processing → completed | failed

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.orm import Session

from app.db.model.image_update import ImageUpdateOperation, OperationStatus
from app.repository import image_update_repo as repo
from app.services.image_update.errors import (
    InvalidStatusTransitionError,
    OperationNotFoundError,
    OperationStateError,
)


logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[str, tuple] = {
    OperationStatus.PENDING: (OperationStatus.PROCESSING,),
    OperationStatus.PROCESSING: (OperationStatus.COMPLETED, OperationStatus.FAILED),
    OperationStatus.COMPLETED: (),
    OperationStatus.FAILED: (),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, ())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(
            f"Invalid status transition: {current} -> {target}"
        )


def load_operation(db: Session, operation_id: str) -> ImageUpdateOperation:
    op = repo.get_operation(db, operation_id)
    if op is None:
        raise OperationNotFoundError(operation_id)
    return op


'''
pending → processing
  - 先做状态检查给出清晰报错，再用条件更新抢执行权
  - 两个调用方同时到达时，只有一个 claim 成功，另一个同样拿到 OperationStateError
'''
def begin_processing(db: Session, operation_id: str) -> ImageUpdateOperation:
    op = load_operation(db, operation_id)
    if op.status != OperationStatus.PENDING:
        raise OperationStateError(
            f"Operation {operation_id} is {op.status}; only pending operations can be processed"
        )

    if not repo.claim_operation_for_processing(db, operation_id):
        raise OperationStateError(f"Operation {operation_id} is already being processed")

    logger.info("image_update.lifecycle.processing operation_id=%s", operation_id)
    return load_operation(db, operation_id)


# 执行中的进度写回（只改计数，不动状态）
def record_progress(db: Session, operation_id: str, images_updated: int) -> None:
    repo.update_operation(db, operation_id, {"images_updated": images_updated})


'''
processing → completed | failed
  - 有任何错误即 failed，错误信息用 "; " 拼接；无错误时 error_message 清空
'''
def finish_processing(
    db: Session,
    operation_id: str,
    *,
    images_updated: int,
    errors: Sequence[str],
) -> ImageUpdateOperation:
    target = OperationStatus.FAILED if errors else OperationStatus.COMPLETED
    updated = transition(db, operation_id, target, {
        "images_updated": images_updated,
        "error_message": "; ".join(errors) if errors else None,
    })
    logger.info(
        "image_update.lifecycle.%s operation_id=%s images_updated=%s errors=%s",
        target, operation_id, images_updated, len(errors),
    )
    return updated


def transition(
    db: Session,
    operation_id: str,
    target: str,
    extra: Optional[Dict[str, Any]] = None,
) -> ImageUpdateOperation:
    """通用的单步状态迁移，非法边抛 InvalidStatusTransitionError。"""
    op = load_operation(db, operation_id)
    ensure_transition(op.status, target)
    fields: Dict[str, Any] = dict(extra or {})
    fields["status"] = target
    return repo.update_operation(db, operation_id, fields)
