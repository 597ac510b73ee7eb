import logging
import threading
from typing import Dict, Iterable, List

from account import Account
from account_registry import AccountRegistry
from csv_handler import read_transactions
from models import Transaction, ProcessingResult, ProcessingStats
from partition_queue import ClientPartition, PartitionQueue

logger = logging.getLogger(__name__)


def partition_by_client(transactions: Iterable[Transaction]) -> List[ClientPartition]:
    """Group transactions by client, keeping each client's relative order."""
    partitions: Dict[int, ClientPartition] = {}
    for transaction in transactions:
        partition = partitions.get(transaction.client_id)
        if partition is None:
            partition = partitions[transaction.client_id] = ClientPartition(transaction.client_id)
        partition.transactions.append(transaction)
    return list(partitions.values())


class LedgerEngine:
    """
    Builds the final account of every client from a transaction stream.

    Clients never share state, so each client's transactions are folded into
    its own Account by one worker thread and the finished account is
    published to a write-once registry. With num_workers <= 1 the same fold
    runs on the calling thread.
    """

    def __init__(self, num_workers: int = 4):
        self._num_workers = num_workers
        self.stats = ProcessingStats()

    def process_file(self, filepath: str) -> Dict[int, Account]:
        """Process CSV file and return final account states."""
        with open(filepath, "r", newline="") as f:
            transactions = read_transactions(f)
        return self.process(transactions)

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, Account]:
        """Apply every transaction and return the final account of each client."""
        self.stats = ProcessingStats()
        registry = AccountRegistry()
        partitions = partition_by_client(transactions)

        logger.info(f"Processing {len(partitions)} client partitions with {self._num_workers} workers")

        if self._num_workers <= 1:
            for partition in partitions:
                registry.publish(self._fold_partition(partition))
        else:
            self._process_concurrently(partitions, registry)

        logger.info(self.stats.report())
        return registry.get_all_accounts()

    def _process_concurrently(self, partitions: List[ClientPartition], registry: AccountRegistry) -> None:
        queue = PartitionQueue(partitions)

        errors: List[BaseException] = []
        consumer_threads = []
        for _ in range(min(self._num_workers, len(partitions))):
            consumer_thread = threading.Thread(target=self._consume_partitions, args=(queue, registry, errors))
            consumer_thread.start()
            consumer_threads.append(consumer_thread)

        for consumer_thread in consumer_threads:
            consumer_thread.join()

        if errors:
            raise errors[0]

    def _consume_partitions(self, queue: PartitionQueue, registry: AccountRegistry, errors: List[BaseException]) -> None:
        """Worker loop: take a partition, fold it, publish the account. Stops once the queue is drained."""
        while True:
            partition = queue.take()
            if partition is None:
                break

            try:
                registry.publish(self._fold_partition(partition))
            except Exception as e:
                errors.append(e)
                break

    def _fold_partition(self, partition: ClientPartition) -> Account:
        account = Account(client_id=partition.client_id)

        for transaction in partition.transactions:
            result = account.apply(transaction)
            if result == ProcessingResult.SUCCESS:
                self.stats.record_success()
            else:
                self.stats.record_failure(result)
                logger.info(f"Ignoring {transaction}: {result.value}")

        return account
