"""Schemas for account endpoints. Password hashes are never serialized."""

from datetime import datetime

from pydantic import BaseModel, Field


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: int
    first_name: str
    last_name: str
    email: str
    bank_number: int
    balance: int = Field(..., description="Balance in minor units")
    created_at: datetime

    class Config:
        from_attributes = True


class TransferRequest(BaseModel):
    """Transfer instruction. Echoed back as-is; no balance is moved."""

    to_account: int = Field(..., description="Destination bank number")
    amount: int = Field(..., description="Amount in minor units")
