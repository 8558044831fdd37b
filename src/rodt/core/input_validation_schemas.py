from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, conint, constr


class MintInput(BaseModel):
    caller: constr(min_length=1)
    owner_id: constr(min_length=1)
    token_id: constr(min_length=1) | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    royalty: dict[str, conint(ge=0)] | None = None

class TransferInput(BaseModel):
    caller: constr(min_length=1)
    receiver_id: constr(min_length=1)
    token_id: constr(min_length=1)
    approval_id: conint(ge=0) | None = None
    memo: str | None = None

class TransferCallInput(TransferInput):
    msg: str = ""

class TransferPayoutInput(TransferInput):
    balance: conint(ge=0)
    max_len_payout: conint(ge=0) | None = None

class ApproveInput(BaseModel):
    caller: constr(min_length=1)
    token_id: constr(min_length=1)
    account_id: constr(min_length=1)
    msg: str | None = None

class RevokeInput(BaseModel):
    caller: constr(min_length=1)
    token_id: constr(min_length=1)
    account_id: constr(min_length=1)

class RevokeAllInput(BaseModel):
    caller: constr(min_length=1)
    token_id: constr(min_length=1)

class PageQuery(BaseModel):
    from_index: conint(ge=0) | None = None
    limit: conint(ge=0) | None = None

class PayoutQuery(BaseModel):
    balance: conint(ge=0)
    max_len_payout: conint(ge=0) | None = None

class IsApprovedQuery(BaseModel):
    approval_id: conint(ge=0) | None = None
