from typing import List

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db, init_db
from exceptions import LoanError
from loan_service import create_loan, repay_loan
from logging_config import setup_logging
from models import Loan, User
from schemas import (
    LoanCreate,
    LoanOut,
    LoanSummary,
    ReceivedRepaymentOut,
    RepaymentCreate,
    ScheduledRepaymentOut,
    UserCreate,
)

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)

app = FastAPI()

init_db()


def get_loan_or_404(loan_id: int, db: Session) -> Loan:
    loan = db.query(Loan).filter(Loan.id == loan_id).first()
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan


@app.post("/user")
async def create_user(user: UserCreate, db: Session = Depends(get_db)):
    db_user = User(name=user.name, email=user.email)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return {"message": f"User {db_user.name} created successfully", "id": db_user.id}


@app.post("/loan", response_model=LoanOut)
async def create_user_loan(loan: LoanCreate, db: Session = Depends(get_db)):
    user = db.get(User, loan.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return create_loan(
        db,
        user,
        amount=loan.amount,
        currency_code=loan.currency_code,
        terms=loan.terms,
        processed_at=loan.processed_at,
    )


@app.get("/loan/{loan_id}", response_model=LoanOut)
async def get_loan(loan_id: int, db: Session = Depends(get_db)):
    return get_loan_or_404(loan_id, db)


@app.get("/loan/{loan_id}/schedule", response_model=List[ScheduledRepaymentOut])
async def get_loan_schedule(loan_id: int, db: Session = Depends(get_db)):
    return get_loan_or_404(loan_id, db).scheduled_repayments


@app.post("/loan/{loan_id}/repay", response_model=ReceivedRepaymentOut)
async def repay_user_loan(
    loan_id: int, repayment: RepaymentCreate, db: Session = Depends(get_db)
):
    loan = get_loan_or_404(loan_id, db)
    try:
        return repay_loan(
            db,
            loan,
            amount=repayment.amount,
            currency_code=repayment.currency_code,
            received_at=repayment.received_at,
        )
    except LoanError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@app.get("/loan/{loan_id}/repayments", response_model=List[ReceivedRepaymentOut])
async def get_loan_repayments(loan_id: int, db: Session = Depends(get_db)):
    return get_loan_or_404(loan_id, db).received_repayments


@app.get("/user/{user_id}/loans", response_model=List[LoanSummary])
async def get_user_loans(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.loans
