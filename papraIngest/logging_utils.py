import logging
import sys
import threading


class _ProgressBoard:
    """Single status line at the bottom of a TTY stream (e.g. "[3/10] Uploading: x.pdf").

    Log records emitted while the board is visible are written above it.
    """

    def __init__(self, stream):
        self.stream = stream
        self.lock = threading.RLock()
        self.enabled = bool(getattr(stream, "isatty", lambda: False)())
        self.current = ""

    def _erase(self) -> None:
        self.stream.write("\r\x1b[2K")

    def update(self, text: str) -> None:
        if not self.enabled:
            return
        line = text.splitlines()[0] if text else ""
        with self.lock:
            self._erase()
            self.stream.write(line)
            self.stream.flush()
            self.current = line

    def suspend(self) -> bool:
        """Clear the line and keep the lock held until resume()."""
        if not self.enabled or not self.current:
            return False
        self.lock.acquire()
        try:
            self._erase()
        except Exception:
            self.lock.release()
            return False
        return True

    def resume(self) -> None:
        if not self.enabled or not self.current:
            return
        try:
            self.stream.write(self.current)
            self.stream.flush()
        finally:
            try:
                self.lock.release()
            except RuntimeError:
                pass

    def clear(self) -> None:
        if not self.enabled or not self.current:
            return
        with self.lock:
            self._erase()
            self.stream.flush()
            self.current = ""


board_state = _ProgressBoard(sys.stderr)


class BoardAwareHandler(logging.StreamHandler):
    def __init__(self, stream=None):
        super().__init__(stream or sys.stderr)

    def emit(self, record):
        if board_state.suspend():
            try:
                super().emit(record)
            finally:
                board_state.resume()
        else:
            super().emit(record)


def configure_logging(level, fmt, datefmt):
    handler = BoardAwareHandler()
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # Keep LiteLLM and httpx quiet at INFO
    for name in ("LiteLLM", "litellm", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
    return board_state
