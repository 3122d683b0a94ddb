"""
Shared helpers: per-class child loggers, colored console output and MAC address handling.
"""

import logging
import re

MAC_PATTERN = re.compile(r"^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")


class LoggerMixin:
    """
    Gives a service its own child of the logger it was constructed with,
    named after the concrete class (``UpSnap.StatusPoller``, ``UpSnap.WakeSender``, ...).
    """

    _logger: logging.Logger

    def _build_logger(
        self,
        logger: logging.Logger,
    ) -> None:
        """
        Attach a child logger for this class.

        Args:
            logger (logging.Logger): The parent logger.
        """
        self._logger = logger.getChild(self.__class__.__name__)


class AddressUtils:
    """
    Validation and normalization of link-layer addresses.
    """

    @staticmethod
    def is_valid_mac(mac: str) -> bool:
        """Return True for six hex octets separated consistently by ':' or '-'."""
        return bool(MAC_PATTERN.match(mac.strip())) if mac else False

    @staticmethod
    def normalize_mac(mac: str) -> str:
        """Return the MAC upper-cased with ':' separators."""
        return mac.strip().replace("-", ":").upper()


class ColorFormatter(logging.Formatter):
    """
    Formatter that wraps each line in the ANSI color of its level.

    Colors are only emitted when ``use_color`` is set, so logs redirected to a
    file or a journal stay plain.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[94m",
        logging.INFO: "\033[92m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[95m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, *, use_color: bool = True) -> None:
        super().__init__(fmt)
        self._use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self._use_color:
            return message
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        return f"{color}{message}{self.RESET}"
