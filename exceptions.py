"""Errors raised by the loan engine."""


class LoanError(Exception):
    """Base class for loan engine errors."""


class MissingNextInstallmentError(LoanError):
    """An overpayment has no installment to carry its surplus into."""


class InvalidStatusTransitionError(LoanError):
    """A status change is not allowed by the loan or installment lifecycle."""
