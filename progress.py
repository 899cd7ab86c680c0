"""Progress tracking for in-flight HTTP requests."""
import threading


class ProgressTracker:
    """Last reported (percent, message) per request id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._progress = {}  # {request_id: (percent, message)}

    def register(self, request_id: str):
        if request_id:
            with self._lock:
                self._progress[request_id] = (0.0, "Queued")

    def callback(self, request_id: str):
        """Progress callback bound to a request id."""
        def report(percent, message):
            self.update(request_id, percent, message)
        return report

    def update(self, request_id: str, percent: float, message: str):
        if request_id:
            with self._lock:
                self._progress[request_id] = (round(float(percent), 1), message)

    def get(self, request_id: str):
        with self._lock:
            return self._progress.get(request_id)

    def unregister(self, request_id: str):
        with self._lock:
            self._progress.pop(request_id, None)
