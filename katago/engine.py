"""KataGo engine interface using the JSON analysis protocol."""

import subprocess
import threading
import json
import logging
from typing import Optional, Dict, Any
from queue import Queue, Empty

logger = logging.getLogger(__name__)

READY_MARKER = 'ready to begin handling requests'
RESULT_FIELDS = ('error', 'ownership', 'rootInfo', 'moveInfos')


class KataGoEngine:
    """Interface to a KataGo analysis engine subprocess."""

    def __init__(self, katago_path: str, config_path: str, model_path: str, analysis_timeout: int = 120):
        """Initialize KataGo engine.

        Args:
            katago_path: Path to KataGo executable
            config_path: Path to KataGo analysis config file
            model_path: Path to neural network model
            analysis_timeout: Timeout in seconds for analysis operations (default: 120)
        """
        self.katago_path = katago_path
        self.config_path = config_path
        self.model_path = model_path
        self.process: Optional[subprocess.Popen] = None
        self.output_queue: Queue = Queue()
        self.reader_thread: Optional[threading.Thread] = None
        self.stderr_thread: Optional[threading.Thread] = None
        self.ready_event = threading.Event()
        self.running = False
        self.analysis_timeout = analysis_timeout
        self.query_counter = 0
        self._pending: Dict[str, Dict[str, Any]] = {}
        self._query_lock = threading.Lock()

    def start(self) -> bool:
        """Start the KataGo engine.

        Returns:
            True if started successfully
        """
        try:
            self.process = subprocess.Popen(
                [
                    self.katago_path,
                    'analysis',
                    '-config', self.config_path,
                    '-model', self.model_path
                ],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1
            )

            self.running = True
            self.ready_event.clear()

            self.reader_thread = threading.Thread(target=self._read_output, daemon=True)
            self.reader_thread.start()
            self.stderr_thread = threading.Thread(target=self._read_stderr, daemon=True)
            self.stderr_thread.start()

            return True

        except OSError as e:
            logger.error("Failed to start KataGo: %s", e)
            return False

    def stop(self) -> None:
        """Stop the KataGo engine."""
        if self.process:
            self.running = False
            if self.process.stdin:
                self.process.stdin.close()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.warning("KataGo did not exit, killing it")
                self.process.kill()
            self.process = None
            self.ready_event.clear()

    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def is_ready(self) -> bool:
        """True once KataGo reported that it accepts queries."""
        return self.is_running() and self.ready_event.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until KataGo finished loading its model.

        Args:
            timeout: Maximum seconds to wait (defaults to analysis_timeout)

        Returns:
            True if the engine is ready
        """
        if timeout is None:
            timeout = self.analysis_timeout
        return self.ready_event.wait(timeout) and self.is_running()

    def _read_output(self) -> None:
        """Read responses from KataGo (runs in separate thread)."""
        if not self.process or not self.process.stdout:
            return

        while self.running:
            try:
                line = self.process.stdout.readline()
                if not line:
                    break
                line = line.strip()
                if line:
                    self.output_queue.put(line)
            except (OSError, ValueError) as e:
                logger.error("Error reading KataGo output: %s", e)
                break

    def _read_stderr(self) -> None:
        """Forward KataGo's log output and watch for the ready marker."""
        if not self.process or not self.process.stderr:
            return

        while self.running:
            try:
                line = self.process.stderr.readline()
                if not line:
                    break
                logger.debug("KataGo: %s", line.rstrip())
                if READY_MARKER in line:
                    self.ready_event.set()
            except (OSError, ValueError) as e:
                logger.error("Error reading KataGo log: %s", e)
                break

    def send_query(self, query: Dict[str, Any]) -> str:
        """Send a JSON query to KataGo.

        Args:
            query: Query body; an 'id' is assigned if missing

        Returns:
            The query id
        """
        with self._query_lock:
            if 'id' not in query:
                query['id'] = str(self.query_counter)
                self.query_counter += 1
            if self.process and self.process.stdin:
                self.process.stdin.write(json.dumps(query) + '\n')
                self.process.stdin.flush()
        return query['id']

    def get_response(self, query_id: str, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Wait for the response to a query.

        Responses to other queries that arrive first are kept for their
        own callers.

        Args:
            query_id: Id returned by send_query
            timeout: Maximum seconds to wait (defaults to analysis_timeout)

        Returns:
            Parsed response, or None on timeout or engine error
        """
        if timeout is None:
            timeout = self.analysis_timeout

        while query_id not in self._pending:
            try:
                line = self.output_queue.get(timeout=timeout)
            except Empty:
                logger.warning("Timeout waiting for KataGo response (timeout: %ss)", timeout)
                return None
            try:
                response = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Ignoring non-JSON KataGo output: %s", line[:200])
                continue
            if response.get('isDuringSearch'):
                continue
            if 'warning' in response and not any(field in response for field in RESULT_FIELDS):
                logger.warning("KataGo warning for query %s: %s", response.get('id'), response['warning'])
                continue
            self._pending[str(response.get('id'))] = response

        response = self._pending.pop(query_id)
        if 'error' in response:
            logger.warning("KataGo rejected query %s: %s", query_id, response['error'])
            return None
        return response

    def analyze(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Send a query and wait for its final response."""
        query_id = self.send_query(query)
        return self.get_response(query_id)

    @staticmethod
    def coords_to_gtp(x: int, y: int, board_height: int = 19) -> str:
        """Convert board coordinates to GTP format.

        Args:
            x: Column index (0-based)
            y: Row index (0-based, top row is 0)
            board_height: Number of rows on the board

        Returns:
            GTP move string (e.g., 'D4')
        """
        # Column: A-H, J-Z (skip I)
        col_letter = chr(ord('A') + x if x < 8 else ord('A') + x + 1)
        # Row: 1-board_height (from bottom)
        row_num = board_height - y
        return f'{col_letter}{row_num}'
