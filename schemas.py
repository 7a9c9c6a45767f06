from datetime import date
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import InstallmentStatus, LoanStatus

CurrencyCode = Annotated[str, Field(pattern=r"^[A-Z]{3}$", description="Currency code")]


class BaseUser(BaseModel):
    name: str
    email: EmailStr


class UserCreate(BaseUser):
    pass


class LoanCreate(BaseModel):
    user_id: int
    amount: int = Field(gt=0, description="Loan amount in minor currency units")
    currency_code: CurrencyCode
    terms: int = Field(gt=0, description="Number of monthly installments")
    processed_at: date


class RepaymentCreate(BaseModel):
    amount: int = Field(gt=0, description="Repayment amount in minor currency units")
    currency_code: CurrencyCode
    received_at: date


class ScheduledRepaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    outstanding_amount: int
    currency_code: str
    due_date: date
    status: InstallmentStatus


class ReceivedRepaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    amount: int
    currency_code: str
    received_at: date


class LoanSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    amount: int
    terms: int
    outstanding_amount: int
    currency_code: str
    processed_at: date
    status: LoanStatus


class LoanOut(LoanSummary):
    scheduled_repayments: List[ScheduledRepaymentOut]
