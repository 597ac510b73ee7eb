import threading
from typing import Dict

from account import Account


class AccountRegistry:
    """
    Write-once collection of finished client accounts.
    Each worker publishes an account only after it has applied every
    transaction of that client, so no account is shared while being mutated.
    """

    def __init__(self):
        self._accounts: Dict[int, Account] = {}
        self._lock = threading.Lock()

    def publish(self, account: Account) -> None:
        """Store a finished account. Each client can be published only once."""
        with self._lock:
            if account.client_id in self._accounts:
                raise ValueError(f"Account for client {account.client_id} already published")
            self._accounts[account.client_id] = account

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def get_all_accounts(self) -> Dict[int, Account]:
        """Return all accounts (for final output)."""
        with self._lock:
            return dict(self._accounts)
