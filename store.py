"""In-memory registry of scale results awaiting export."""
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass

from config import MAX_STORED_RESULTS
from results import ScaleResult


@dataclass
class StoredResult:
    result: ScaleResult
    filename: str
    scale: float


class ResultStore:
    """Keeps the most recent results; the oldest is evicted once full.

    Evicted or discarded virtual results release their source image.
    """

    def __init__(self, max_entries: int = MAX_STORED_RESULTS):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._results = OrderedDict()  # {result_id: StoredResult}, oldest first

    def put(self, result: ScaleResult, filename: str, scale) -> str:
        result_id = uuid.uuid4().hex
        with self._lock:
            self._results[result_id] = StoredResult(result, filename, scale)
            evicted = []
            while len(self._results) > self.max_entries:
                evicted.append(self._results.popitem(last=False)[1])
        for entry in evicted:
            _release(entry)
        return result_id

    def get(self, result_id: str):
        with self._lock:
            return self._results.get(result_id)

    def release_source(self, result_id: str) -> bool:
        """Drop the source behind a virtual result. Returns False for direct results."""
        entry = self.get(result_id)
        if entry is None:
            raise KeyError(result_id)
        return _release(entry)

    def discard(self, result_id: str) -> bool:
        with self._lock:
            entry = self._results.pop(result_id, None)
        if entry is not None:
            _release(entry)
        return entry is not None

    def __len__(self):
        with self._lock:
            return len(self._results)


def _release(entry: StoredResult) -> bool:
    if not entry.result.is_virtual:
        return False
    entry.result.release_source()
    return True
