"""Domain models and services."""

from .exceptions import (
    DuplicatePayment,
    EggForgeError,
    ErrorKind,
    InsufficientCredits,
    InvalidAmount,
    PaymentError,
    PersistenceUnavailable,
)
from .results import Err, Ok, Result
from .catalog import Catalog, CatalogItem, build_catalog, default_catalog
from .draw import DrawEngine
from .events import Event, EventBus
from .ledger import Balances, LedgerService
from .collection import CollectionService
from .payments import PaymentConfirmation, SettlementReceipt, SettlementService
from .session import Command, GameSession, Intent, ResultKind, SessionResult

__all__ = [
    "DuplicatePayment",
    "EggForgeError",
    "ErrorKind",
    "InsufficientCredits",
    "InvalidAmount",
    "PaymentError",
    "PersistenceUnavailable",
    "Err",
    "Ok",
    "Result",
    "Catalog",
    "CatalogItem",
    "build_catalog",
    "default_catalog",
    "DrawEngine",
    "Event",
    "EventBus",
    "Balances",
    "LedgerService",
    "CollectionService",
    "PaymentConfirmation",
    "SettlementReceipt",
    "SettlementService",
    "Command",
    "GameSession",
    "Intent",
    "ResultKind",
    "SessionResult",
]
