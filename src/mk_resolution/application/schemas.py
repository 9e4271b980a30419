from datetime import datetime

from pydantic import BaseModel, Field

from src.mk_common.enums import DisputeStatus, ReturnStatus
from src.mk_resolution.domain.models import Dispute, RefundInstruction, Return


class CreateReturnRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)


class ReturnStatusRequest(BaseModel):
    status: ReturnStatus
    admin_notes: str | None = Field(None, max_length=2000)
    refund_amount_cents: int | None = Field(None, gt=0)


class ReturnTrackingRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=100)


class CreateDisputeRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)


class DisputeStatusRequest(BaseModel):
    status: DisputeStatus
    resolution: str | None = Field(None, max_length=2000)
    admin_notes: str | None = Field(None, max_length=2000)


class DisputeRemedyRequest(BaseModel):
    refund_amount_cents: int | None = Field(None, gt=0)
    admin_notes: str | None = Field(None, max_length=2000)


class RefundInstructionResponse(BaseModel):
    id: str
    amount_cents: int
    seller_debited_cents: int
    shortfall_cents: int
    status: str

    @classmethod
    def from_instruction(cls, instr: RefundInstruction) -> "RefundInstructionResponse":
        return cls(
            id=instr.id,
            amount_cents=instr.amount,
            seller_debited_cents=instr.seller_debited,
            shortfall_cents=instr.shortfall,
            status=instr.status,
        )


class ReturnResponse(BaseModel):
    id: str
    order_id: str
    buyer_id: str
    seller_id: str
    reason: str
    description: str | None
    status: str
    admin_notes: str | None
    refund_amount_cents: int | None
    return_tracking_number: str | None
    dispute_id: str | None
    refund_instruction: RefundInstructionResponse | None = None
    created_at: datetime | None
    updated_at: datetime | None
    resolved_at: datetime | None

    @classmethod
    def from_return(
        cls, ret: Return, instruction: RefundInstruction | None = None
    ) -> "ReturnResponse":
        return cls(
            id=ret.id,
            order_id=ret.order_id,
            buyer_id=ret.buyer_id,
            seller_id=ret.seller_id,
            reason=ret.reason,
            description=ret.description,
            status=ret.status,
            admin_notes=ret.admin_notes,
            refund_amount_cents=ret.refund_amount,
            return_tracking_number=ret.return_tracking_number,
            dispute_id=ret.dispute_id,
            refund_instruction=(
                RefundInstructionResponse.from_instruction(instruction) if instruction else None
            ),
            created_at=ret.created_at,
            updated_at=ret.updated_at,
            resolved_at=ret.resolved_at,
        )


class ReturnListResponse(BaseModel):
    items: list[ReturnResponse]
    next_cursor: str | None
    has_more: bool


class DisputeResponse(BaseModel):
    id: str
    order_id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    description: str | None
    status: str
    resolution: str | None
    admin_notes: str | None
    created_at: datetime | None
    updated_at: datetime | None
    resolved_at: datetime | None

    @classmethod
    def from_dispute(cls, d: Dispute) -> "DisputeResponse":
        return cls(
            id=d.id,
            order_id=d.order_id,
            reporter_id=d.reporter_id,
            reported_user_id=d.reported_user_id,
            reason=d.reason,
            description=d.description,
            status=d.status,
            resolution=d.resolution,
            admin_notes=d.admin_notes,
            created_at=d.created_at,
            updated_at=d.updated_at,
            resolved_at=d.resolved_at,
        )


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    next_cursor: str | None
    has_more: bool
