from pydantic import BaseModel


class ExpenditureApprovalLevelsResponse(BaseModel):
    amount: int
    levels: list[str]


class ApprovalLevelCheckResponse(BaseModel):
    level: str
    role: str | None
    can_approve: bool
