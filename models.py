import enum

from sqlalchemy import Column, Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

from exceptions import InvalidStatusTransitionError

Base = declarative_base()


class LoanStatus(str, enum.Enum):
    DUE = "due"
    REPAID = "repaid"


class InstallmentStatus(str, enum.Enum):
    DUE = "due"
    PARTIAL = "partial"
    REPAID = "repaid"


# Allowed targets per current status. Nothing leaves REPAID.
LOAN_TRANSITIONS = {
    LoanStatus.DUE: {LoanStatus.DUE, LoanStatus.REPAID},
    LoanStatus.REPAID: {LoanStatus.REPAID},
}

INSTALLMENT_TRANSITIONS = {
    InstallmentStatus.DUE: {
        InstallmentStatus.DUE,
        InstallmentStatus.PARTIAL,
        InstallmentStatus.REPAID,
    },
    InstallmentStatus.PARTIAL: {InstallmentStatus.PARTIAL, InstallmentStatus.REPAID},
    InstallmentStatus.REPAID: {InstallmentStatus.REPAID},
}


def _status_column(enum_cls):
    return Column(
        Enum(
            enum_cls,
            values_callable=lambda members: [member.value for member in members],
            native_enum=False,
            length=16,
        ),
        nullable=False,
    )


def _check_transition(kind, transitions, current, target):
    if current is not None and target not in transitions[current]:
        raise InvalidStatusTransitionError(
            f"{kind} cannot move from {current.value} to {target.value}"
        )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, index=True)
    email = Column(String, unique=True, index=True)

    loans = relationship("Loan", back_populates="user", order_by="Loan.id")


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    terms = Column(Integer, nullable=False)
    outstanding_amount = Column(Integer, nullable=False)
    currency_code = Column(String(3), nullable=False)
    processed_at = Column(Date, nullable=False)
    status = _status_column(LoanStatus)

    user = relationship("User", back_populates="loans")
    scheduled_repayments = relationship(
        "ScheduledRepayment",
        back_populates="loan",
        order_by="ScheduledRepayment.id",
        cascade="all, delete-orphan",
    )
    received_repayments = relationship(
        "ReceivedRepayment",
        back_populates="loan",
        order_by="ReceivedRepayment.id",
    )

    def transition_to(self, status: LoanStatus) -> None:
        _check_transition("Loan", LOAN_TRANSITIONS, self.status, status)
        self.status = status


class ScheduledRepayment(Base):
    __tablename__ = "scheduled_repayments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    outstanding_amount = Column(Integer, nullable=False)
    currency_code = Column(String(3), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = _status_column(InstallmentStatus)

    loan = relationship("Loan", back_populates="scheduled_repayments")

    def transition_to(self, status: InstallmentStatus) -> None:
        _check_transition(
            "Scheduled repayment", INSTALLMENT_TRANSITIONS, self.status, status
        )
        self.status = status


class ReceivedRepayment(Base):
    __tablename__ = "received_repayments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    currency_code = Column(String(3), nullable=False)
    received_at = Column(Date, nullable=False)

    loan = relationship("Loan", back_populates="received_repayments")
