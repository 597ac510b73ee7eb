import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict

from models import Transaction, TransactionType, ProcessingResult, TransactionError

logger = logging.getLogger(__name__)

OUTPUT_PRECISION = Decimal("0.0001")
# Significant digits for balance arithmetic; amounts are never rounded before output.
LEDGER_PRECISION = 64


@dataclass
class DisputeEntry:
    """
    Dispute status of a single deposit or withdrawal.

    amount_change is what the transaction added to the available balance,
    so it is negative for withdrawals.
    """

    amount_change: Decimal
    disputed: bool = False
    charged_back: bool = False

    @classmethod
    def create(cls, transaction: Transaction) -> "DisputeEntry":
        amount = transaction.require_amount()
        if transaction.transaction_type == TransactionType.WITHDRAWAL:
            amount = -amount
        return cls(amount_change=amount)

    def dispute(self) -> Decimal:
        if self.disputed:
            raise TransactionError(ProcessingResult.ALREADY_DISPUTED)
        self.disputed = True
        return self.amount_change

    def resolve(self) -> Decimal:
        if not self.disputed:
            raise TransactionError(ProcessingResult.NOT_DISPUTED)
        self.disputed = False
        return self.amount_change

    def chargeback(self) -> Decimal:
        if not self.disputed:
            raise TransactionError(ProcessingResult.NOT_DISPUTED)
        self.charged_back = True
        return self.amount_change


@dataclass
class Account:
    """
    Ledger of a single client.
    Applies transactions in the order given and keeps an entry per
    deposit/withdrawal so later disputes can find it.
    Not thread-safe: the caller owns the account for the whole fold.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False
    entries: Dict[int, DisputeEntry] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = LEDGER_PRECISION
            return self.available + self.held

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns SUCCESS, or the reason the transaction was rejected.
        A rejected transaction leaves the account untouched.
        """
        try:
            with localcontext() as ctx:
                ctx.prec = LEDGER_PRECISION
                self._apply(transaction)
        except TransactionError as e:
            return e.reason
        return ProcessingResult.SUCCESS

    def _apply(self, transaction: Transaction) -> None:
        if transaction.client_id != self.client_id:
            raise TransactionError(ProcessingResult.CLIENT_ID_MISMATCH)

        if self.locked:
            raise TransactionError(ProcessingResult.ACCOUNT_LOCKED)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                self._handle_chargeback(transaction)
            case _:
                raise ValueError(f"Unhandled transaction type: {transaction.transaction_type}")

    def _get_entry(self, transaction: Transaction) -> DisputeEntry:
        if transaction.amount is not None:
            logger.info(f"Unexpected amount in {transaction.transaction_type.value} tx {transaction.transaction_id}, ignoring it")

        entry = self.entries.get(transaction.transaction_id)
        if entry is None:
            raise TransactionError(ProcessingResult.UNKNOWN_TRANSACTION_ID)
        return entry

    def _check_not_duplicated(self, transaction: Transaction) -> None:
        if transaction.transaction_id in self.entries:
            raise TransactionError(ProcessingResult.DUPLICATED_TRANSACTION_ID)

    def _handle_deposit(self, transaction: Transaction) -> None:
        self._check_not_duplicated(transaction)
        entry = DisputeEntry.create(transaction)

        self.available += entry.amount_change
        self.entries[transaction.transaction_id] = entry

    def _handle_withdrawal(self, transaction: Transaction) -> None:
        self._check_not_duplicated(transaction)
        entry = DisputeEntry.create(transaction)

        candidate = self.available + entry.amount_change
        if candidate < 0:
            raise TransactionError(ProcessingResult.INSUFFICIENT_FUNDS)

        self.available = candidate
        self.entries[transaction.transaction_id] = entry

    def _handle_dispute(self, transaction: Transaction) -> None:
        # A disputed withdrawal has a negative amount_change, which returns
        # the funds to available and leaves held negative.
        amount_change = self._get_entry(transaction).dispute()
        self.available -= amount_change
        self.held += amount_change

    def _handle_resolve(self, transaction: Transaction) -> None:
        amount_change = self._get_entry(transaction).resolve()
        self.available += amount_change
        self.held -= amount_change

    def _handle_chargeback(self, transaction: Transaction) -> None:
        amount_change = self._get_entry(transaction).chargeback()
        self.held -= amount_change
        self.locked = True


def round_amount(value: Decimal) -> Decimal:
    """Round to 4 decimal places, halves away from zero."""
    with localcontext() as ctx:
        ctx.prec = max(LEDGER_PRECISION, value.adjusted() + 6)
        return value.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AccountOutput:
    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @classmethod
    def from_account(cls, account: Account) -> "AccountOutput":
        return cls(
            client=account.client_id,
            available=round_amount(account.available),
            held=round_amount(account.held),
            total=round_amount(account.total),
            locked=account.locked,
        )
