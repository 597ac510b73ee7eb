from dataclasses import dataclass, field
from queue import Queue, Empty
from typing import Iterable, List, Optional

from models import Transaction


@dataclass
class ClientPartition:
    """All transactions of one client, in input order."""

    client_id: int
    transactions: List[Transaction] = field(default_factory=list)


class PartitionQueue:
    """
    Work queue of client partitions shared by the worker threads.
    Filled completely before the workers start, so an empty queue means
    every partition has been handed out.
    """

    def __init__(self, partitions: Iterable[ClientPartition] = ()):
        self._pending: Queue[ClientPartition] = Queue()
        for partition in partitions:
            self.put(partition)

    def put(self, partition: ClientPartition) -> None:
        self._pending.put(partition)

    def take(self) -> Optional[ClientPartition]:
        """Next partition to fold, or None once the queue is drained. Never blocks."""
        try:
            return self._pending.get_nowait()
        except Empty:
            return None

    def __len__(self) -> int:
        return self._pending.qsize()
