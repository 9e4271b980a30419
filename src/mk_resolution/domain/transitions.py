"""Return and dispute state machines.

Return:   pending ─┬─▶ approved ──▶ completed
                   ├─▶ rejected
                   └─▶ cancelled

Dispute:  pending ──▶ investigating ─┬─▶ resolved
                                     └─▶ dismissed

Pure functions; actor permissions are checked by the service.
"""

from dataclasses import replace
from datetime import datetime

from src.mk_common.enums import DisputeStatus, ReturnStatus
from src.mk_common.errors import (
    InvalidDisputeTransitionError,
    InvalidRefundAmountError,
    InvalidReturnTransitionError,
    RefundExceedsOrderError,
    ResolutionNotAllowedError,
    ResolutionRequiredError,
)
from src.mk_resolution.domain.models import Dispute, Return

RETURN_TRANSITIONS: dict[ReturnStatus, frozenset[ReturnStatus]] = {
    ReturnStatus.PENDING: frozenset(
        {ReturnStatus.APPROVED, ReturnStatus.REJECTED, ReturnStatus.CANCELLED}
    ),
    ReturnStatus.APPROVED: frozenset({ReturnStatus.COMPLETED}),
    ReturnStatus.REJECTED: frozenset(),
    ReturnStatus.COMPLETED: frozenset(),
    ReturnStatus.CANCELLED: frozenset(),
}

OPEN_RETURN_STATUSES = frozenset({ReturnStatus.PENDING, ReturnStatus.APPROVED})

DISPUTE_TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    DisputeStatus.PENDING: frozenset({DisputeStatus.INVESTIGATING}),
    DisputeStatus.INVESTIGATING: frozenset({DisputeStatus.RESOLVED, DisputeStatus.DISMISSED}),
    DisputeStatus.RESOLVED: frozenset(),
    DisputeStatus.DISMISSED: frozenset(),
}

CLOSED_DISPUTE_STATUSES = frozenset({DisputeStatus.RESOLVED, DisputeStatus.DISMISSED})


def validate_refund_amount(refund_amount: int, refundable: int) -> None:
    """``refundable`` is the order amount less what earlier returns already refunded."""
    if refund_amount <= 0:
        raise InvalidRefundAmountError(refund_amount)
    if refund_amount > refundable:
        raise RefundExceedsOrderError(refund_amount, refundable)


def transition_return(
    ret: Return,
    target: ReturnStatus,
    now: datetime,
    refundable: int,
    admin_notes: str | None = None,
    refund_amount: int | None = None,
) -> Return:
    """Move a return to ``target``; refund_amount may be set on approve or complete.

    An amount fixed at approval is checked again on completion against
    ``refundable``.
    """
    current = ReturnStatus(ret.status)
    if target not in RETURN_TRANSITIONS[current]:
        raise InvalidReturnTransitionError(ret.id, current.value, target.value)
    if refund_amount is not None:
        validate_refund_amount(refund_amount, refundable)
    elif target == ReturnStatus.COMPLETED and ret.refund_amount:
        validate_refund_amount(ret.refund_amount, refundable)

    resolved = target in (ReturnStatus.COMPLETED, ReturnStatus.REJECTED)
    return replace(
        ret,
        status=target.value,
        admin_notes=admin_notes if admin_notes is not None else ret.admin_notes,
        refund_amount=refund_amount if refund_amount is not None else ret.refund_amount,
        updated_at=now,
        resolved_at=now if resolved else ret.resolved_at,
    )


def transition_dispute(
    dispute: Dispute,
    target: DisputeStatus,
    now: datetime,
    resolution: str | None = None,
    admin_notes: str | None = None,
) -> Dispute:
    current = DisputeStatus(dispute.status)
    if target not in DISPUTE_TRANSITIONS[current]:
        raise InvalidDisputeTransitionError(dispute.id, current.value, target.value)

    closing = target in CLOSED_DISPUTE_STATUSES
    resolution = resolution.strip() if resolution is not None else None
    if closing and not resolution:
        raise ResolutionRequiredError()
    if not closing and resolution:
        raise ResolutionNotAllowedError(target.value)

    return replace(
        dispute,
        status=target.value,
        resolution=resolution if closing else None,
        admin_notes=admin_notes if admin_notes is not None else dispute.admin_notes,
        updated_at=now,
        resolved_at=now if closing else None,
    )
