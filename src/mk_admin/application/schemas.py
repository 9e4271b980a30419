from pydantic import BaseModel, Field


class WithdrawalBlockRequest(BaseModel):
    blocked: bool
    reason: str | None = Field(None, max_length=500)


class ReleaseMaturedRequest(BaseModel):
    limit: int = Field(100, ge=1, le=1000)


class ReleasedPayoutsResponse(BaseModel):
    released: list[str]
    count: int


class InvariantsResponse(BaseModel):
    ok: bool
    violations: list[str]
