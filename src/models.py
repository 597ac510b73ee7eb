import threading
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class ProcessingResult(Enum):
    SUCCESS = "success"
    MISSING_AMOUNT = "missing_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CLIENT_ID_MISMATCH = "client_id_mismatch"
    ACCOUNT_LOCKED = "account_locked"
    UNKNOWN_TRANSACTION_ID = "unknown_transaction_id"
    DUPLICATED_TRANSACTION_ID = "duplicated_transaction_id"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"


class TransactionError(Exception):
    """Raised inside an account when a transaction cannot be applied."""

    def __init__(self, reason: ProcessingResult):
        super().__init__(reason.value)
        self.reason = reason


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"

    def require_amount(self) -> Decimal:
        if self.amount is None:
            raise TransactionError(ProcessingResult.MISSING_AMOUNT)
        return self.amount


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.applied = 0
        self.rejected = 0
        self._rejections: Counter = Counter()

    def record_success(self):
        with self._lock:
            self.applied += 1

    def record_failure(self, reason: ProcessingResult):
        with self._lock:
            self.rejected += 1
            self._rejections[reason] += 1

    def rejections(self) -> Dict[ProcessingResult, int]:
        with self._lock:
            return dict(self._rejections)

    def report(self) -> str:
        breakdown = ", ".join(
            f"{reason.value}={count}" for reason, count in sorted(self.rejections().items(), key=lambda item: item[0].value)
        )
        summary = f"Applied: {self.applied}, Rejected: {self.rejected}"
        return f"{summary} ({breakdown})" if breakdown else summary
