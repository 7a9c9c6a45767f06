"""Loan origination and repayment processing.

A loan and its scheduled repayments form one aggregate. Both operations here
run as a single transaction over that aggregate: either every row they touch
is written, or none is.
"""

import logging
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from database import atomic
from exceptions import MissingNextInstallmentError
from models import (
    InstallmentStatus,
    Loan,
    LoanStatus,
    ReceivedRepayment,
    ScheduledRepayment,
    User,
)

logger = logging.getLogger(__name__)


def build_schedule(
    amount: int, currency_code: str, terms: int, processed_at: date
) -> List[ScheduledRepayment]:
    """Split ``amount`` into ``terms`` monthly installments.

    Every installment gets ``amount // terms`` except the last one, which
    absorbs the remainder so that the installments add up to ``amount``.
    """
    base_amount = amount // terms
    schedule = []
    for term in range(1, terms + 1):
        term_amount = base_amount
        if term == terms:
            term_amount = amount - base_amount * (terms - 1)
        schedule.append(
            ScheduledRepayment(
                amount=term_amount,
                outstanding_amount=term_amount,
                currency_code=currency_code,
                due_date=processed_at + relativedelta(months=term),
                status=InstallmentStatus.DUE,
            )
        )
    return schedule


def create_loan(
    db: Session,
    user: User,
    amount: int,
    currency_code: str,
    terms: int,
    processed_at: date,
) -> Loan:
    with atomic(db):
        loan = Loan(
            user=user,
            amount=amount,
            terms=terms,
            outstanding_amount=amount,
            currency_code=currency_code,
            processed_at=processed_at,
            status=LoanStatus.DUE,
        )
        loan.scheduled_repayments = build_schedule(
            amount, currency_code, terms, processed_at
        )
        db.add(loan)

    logger.info(
        "Created loan %s for user %s: %s %s over %s terms",
        loan.id,
        user.id,
        amount,
        currency_code,
        terms,
    )
    return loan


def repay_loan(
    db: Session, loan: Loan, amount: int, currency_code: str, received_at: date
) -> ReceivedRepayment:
    """Record a repayment and apply it to the installment due on ``received_at``.

    The received repayment is always stored and returned. Balances only move
    while the loan is due, when an installment is due on exactly that date
    and the payment is not smaller than the installment.
    """
    with atomic(db):
        db.refresh(loan, with_for_update=True)

        if loan.outstanding_amount == 0 and loan.status == LoanStatus.DUE:
            _reactivate(loan)

        received_repayment = ReceivedRepayment(
            loan=loan,
            amount=amount,
            currency_code=currency_code,
            received_at=received_at,
        )
        db.add(received_repayment)
        db.flush()

        if loan.status == LoanStatus.REPAID:
            logger.info("Loan %s is already repaid, nothing to apply", loan.id)
            return received_repayment

        scheduled_repayment = _find_scheduled_repayment(db, loan, received_at)
        if scheduled_repayment is None:
            logger.info(
                "No repayment of loan %s is due on %s, nothing to apply",
                loan.id,
                received_at,
            )
        elif scheduled_repayment.due_date == loan.scheduled_repayments[-1].due_date:
            _close_loan(loan)
        elif scheduled_repayment.amount == amount:
            _settle(loan, scheduled_repayment, amount)
        elif scheduled_repayment.amount < amount:
            _settle_and_carry_forward(db, loan, scheduled_repayment, amount)
        else:
            logger.info(
                "Repayment of %s on loan %s is below the %s due on %s, nothing to apply",
                amount,
                loan.id,
                scheduled_repayment.amount,
                received_at,
            )

    return received_repayment


def _reactivate(loan: Loan) -> None:
    logger.warning(
        "Loan %s is due with nothing outstanding, resetting outstanding amounts",
        loan.id,
    )
    loan.outstanding_amount = loan.amount
    for scheduled_repayment in loan.scheduled_repayments:
        scheduled_repayment.outstanding_amount = scheduled_repayment.amount


def _find_scheduled_repayment(
    db: Session, loan: Loan, due_date: date
) -> Optional[ScheduledRepayment]:
    return (
        db.query(ScheduledRepayment)
        .filter(
            ScheduledRepayment.loan_id == loan.id,
            ScheduledRepayment.due_date == due_date,
        )
        .order_by(ScheduledRepayment.id)
        .first()
    )


def _mark_repaid(scheduled_repayment: ScheduledRepayment) -> None:
    scheduled_repayment.transition_to(InstallmentStatus.REPAID)
    scheduled_repayment.outstanding_amount = 0


def _reduce_outstanding(loan: Loan, amount: int) -> None:
    loan.outstanding_amount = loan.outstanding_amount - amount
    loan.transition_to(
        LoanStatus.REPAID if loan.outstanding_amount == 0 else LoanStatus.DUE
    )


def _close_loan(loan: Loan) -> None:
    # Paying the last installment settles the whole loan whatever the amount.
    schedule = loan.scheduled_repayments
    for scheduled_repayment in schedule:
        _mark_repaid(scheduled_repayment)
    # The closing installment takes the first installment's due date.
    schedule[-1].due_date = schedule[0].due_date

    loan.transition_to(LoanStatus.REPAID)
    loan.outstanding_amount = 0
    logger.info("Loan %s repaid in full", loan.id)


def _settle(loan: Loan, scheduled_repayment: ScheduledRepayment, amount: int) -> None:
    _mark_repaid(scheduled_repayment)
    _reduce_outstanding(loan, amount)
    logger.info(
        "Repayment due %s on loan %s settled, %s outstanding",
        scheduled_repayment.due_date,
        loan.id,
        loan.outstanding_amount,
    )


def _settle_and_carry_forward(
    db: Session, loan: Loan, scheduled_repayment: ScheduledRepayment, amount: int
) -> None:
    scheduled_repayment.amount = scheduled_repayment.amount + 1
    _mark_repaid(scheduled_repayment)
    remaining_amount = amount - scheduled_repayment.amount

    next_due_date = scheduled_repayment.due_date + relativedelta(months=1)
    next_scheduled_repayment = _find_scheduled_repayment(db, loan, next_due_date)
    if next_scheduled_repayment is None:
        raise MissingNextInstallmentError(
            f"No installment scheduled for carry-forward date {next_due_date} "
            f"on loan {loan.id}"
        )

    if next_scheduled_repayment.status == InstallmentStatus.REPAID:
        logger.info(
            "Repayment due %s on loan %s is already repaid, not carrying %s into it",
            next_due_date,
            loan.id,
            remaining_amount,
        )
    else:
        next_scheduled_repayment.amount = scheduled_repayment.amount
        next_scheduled_repayment.transition_to(InstallmentStatus.PARTIAL)
        next_scheduled_repayment.outstanding_amount = remaining_amount

    _reduce_outstanding(loan, amount)
    logger.info(
        "Repayment due %s on loan %s settled, %s carried to %s, %s outstanding",
        scheduled_repayment.due_date,
        loan.id,
        remaining_amount,
        next_due_date,
        loan.outstanding_amount,
    )
