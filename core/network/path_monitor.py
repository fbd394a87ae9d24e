"""
Connectivity probe used before every feed request.

Reachability comes from Qt's QNetworkInformation when a backend has been
loaded on the UI thread (see ``load_backend``). When no backend is loaded or
it cannot tell, a short TCP connect to a well-known host decides.
"""
import socket
from typing import Callable, Optional

from PySide6.QtCore import QCoreApplication
from PySide6.QtNetwork import QNetworkInformation

from core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PROBE_HOST = "1.1.1.1"
DEFAULT_PROBE_PORT = 53
DEFAULT_PROBE_TIMEOUT = 3.0


class NetworkPathMonitor:
    """Answers "is there a route to the internet?" once per call."""

    def __init__(self, host: str = DEFAULT_PROBE_HOST, port: int = DEFAULT_PROBE_PORT,
                 timeout: float = DEFAULT_PROBE_TIMEOUT):
        self.host = host
        self.port = port
        self.timeout = timeout

    @staticmethod
    def load_backend() -> bool:
        """Load the platform reachability backend. Call from the UI thread."""
        if QCoreApplication.instance() is None:
            return False
        if QNetworkInformation.instance() is not None:
            return True
        try:
            loaded = QNetworkInformation.loadBackendByFeatures(
                QNetworkInformation.Feature.Reachability
            )
        except Exception as e:
            logger.debug("[NET] QNetworkInformation backend unavailable: %s", e)
            return False
        if loaded:
            logger.info("[NET] Reachability backend: %s", QNetworkInformation.instance().backendName())
        return bool(loaded)

    def check_internet_connectivity(self, completion: Callable[[bool], None]) -> None:
        """Invoke ``completion`` exactly once with the connectivity verdict."""
        connected = self._qt_reachability()
        if connected is None:
            connected = self._socket_probe()
        completion(connected)

    def _qt_reachability(self) -> Optional[bool]:
        info = QNetworkInformation.instance()
        if info is None:
            return None
        reachability = info.reachability()
        if reachability == QNetworkInformation.Reachability.Unknown:
            return None
        return reachability == QNetworkInformation.Reachability.Online

    def _socket_probe(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError as e:
            logger.info("[NET] Connectivity probe to %s:%d failed: %s", self.host, self.port, e)
            return False
