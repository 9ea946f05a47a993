"""Exceptions raised by EggForge domain services and stores."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INSUFFICIENT_CREDITS = "insufficient_credits"
    INVALID_EGG_SELECTION = "invalid_egg_selection"
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_PAYMENT = "duplicate_payment"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"


class EggForgeError(RuntimeError):
    """Base class for domain exceptions."""

    kind: ErrorKind


class InsufficientCredits(EggForgeError):
    """Raised when a user has no free or purchased credits left."""

    kind = ErrorKind.INSUFFICIENT_CREDITS

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} has no egg credits left")
        self.user_id = user_id


class PaymentError(EggForgeError):
    """Base class for payment settlement rejections."""


class InvalidAmount(PaymentError):
    """Raised when a paid amount cannot be converted into whole credits."""

    kind = ErrorKind.INVALID_AMOUNT


class DuplicatePayment(PaymentError):
    """Raised when a charge id has already been recorded."""

    kind = ErrorKind.DUPLICATE_PAYMENT

    def __init__(self, charge_id: str) -> None:
        super().__init__(f"Payment {charge_id} already recorded")
        self.charge_id = charge_id


class PersistenceUnavailable(EggForgeError):
    """Raised when the store fails or does not answer in time."""

    kind = ErrorKind.PERSISTENCE_UNAVAILABLE
