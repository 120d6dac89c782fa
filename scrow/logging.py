"""
SCROW - Structured Logging

Every engine operation becomes one JSON line (or a short text line) with
its duration, txid and details. Values under secret-bearing keys are
masked before a record is handed to the standard logging machinery.
"""

import logging
import json
import time
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass, asdict
from enum import Enum


# Detail keys whose values must never be written out
REDACTED_FIELDS = frozenset({
    "private_key", "secret", "nsec", "wif", "signature", "signatures",
})
REDACTED = "[REDACTED]"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def levelno(self) -> int:
        return getattr(logging, self.value)


@dataclass
class LogEntry:
    """One structured record; unset fields are left out of the output."""
    timestamp: float
    level: str
    message: str
    component: str
    operation: Optional[str] = None
    txid: Optional[str] = None
    duration_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        # Enums, bytes and the like are stringified rather than rejected
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        text = f"[{self.level}] {self.message}"
        if self.txid:
            text += f" txid={self.txid}"
        if self.duration_ms:
            text += f" duration={self.duration_ms:.2f}ms"
        if self.error:
            text += f" error={self.error}"
        return text


def redact(details: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of details with secret-bearing values masked."""
    return {
        key: REDACTED if key.lower() in REDACTED_FIELDS else value
        for key, value in details.items()
    }


class StructuredLogger:
    """
    Logger that writes LogEntry records through a stdlib logger.

    Context bound with bind() (e.g. the network) is merged into the
    details of every entry.

    Example:
        logger = StructuredLogger(component="scrow").bind(network="Signet")

        with logger.operation("combine_collab") as op:
            signed = combiner.combine(...)
            op.set_txid(signed.txid)
    """

    def __init__(
        self,
        component: str = "scrow",
        logger: Optional[logging.Logger] = None,
        json_output: bool = True,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            component: Value of the "component" field.
            logger: stdlib logger to write to; a stderr logger named after
                the component if None.
            json_output: JSON lines if True, "[LEVEL] message" text otherwise.
            context: Details added to every entry.
        """
        self.component = component
        self.json_output = json_output
        self.context = dict(context or {})
        self._logger = logger or self._default_logger(component)

    @staticmethod
    def _default_logger(name: str) -> logging.Logger:
        logger = logging.getLogger(name)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
        return logger

    def bind(self, **context) -> "StructuredLogger":
        """Logger writing to the same place with extra fixed details."""
        return StructuredLogger(
            component=self.component,
            logger=self._logger,
            json_output=self.json_output,
            context={**self.context, **context},
        )

    def _log(
        self,
        level: LogLevel,
        message: str,
        operation: str = None,
        txid: str = None,
        duration_ms: float = None,
        error: str = None,
        **details
    ) -> LogEntry:
        merged = {**self.context, **details}
        entry = LogEntry(
            timestamp=time.time(),
            level=level.value,
            message=message,
            component=self.component,
            operation=operation,
            txid=txid,
            duration_ms=duration_ms,
            details=redact(merged) if merged else None,
            error=error,
        )
        self._logger.log(level.levelno, entry.to_json() if self.json_output else entry.to_text())
        return entry

    def debug(self, message: str, **kwargs) -> LogEntry:
        return self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> LogEntry:
        return self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> LogEntry:
        return self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, error: Exception = None, **kwargs) -> LogEntry:
        """The exception is recorded as "TypeName: message"."""
        rendered = f"{type(error).__name__}: {error}" if error is not None else None
        return self._log(LogLevel.ERROR, message, error=rendered, **kwargs)

    def operation(self, name: str) -> "OperationContext":
        """Context manager logging the start and outcome of one operation."""
        return OperationContext(self, name)

    def set_level(self, level: LogLevel) -> None:
        self._logger.setLevel(level.levelno)


class OperationContext:
    """
    Times one operation.

    Logs "Starting <op>" at DEBUG, then "Completed <op>" at INFO or
    "Failed <op>" at ERROR. Exceptions always propagate.
    """

    def __init__(self, logger: StructuredLogger, operation: str):
        self.logger = logger
        self.operation = operation
        self.txid: Optional[str] = None
        self.details: Dict[str, Any] = {}
        self._started = 0.0

    def __enter__(self) -> "OperationContext":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", operation=self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        fields = dict(
            operation=self.operation,
            duration_ms=(time.perf_counter() - self._started) * 1000,
            txid=self.txid,
            **self.details
        )
        if exc_val is None:
            self.logger.info(f"Completed {self.operation}", **fields)
        else:
            self.logger.error(f"Failed {self.operation}", error=exc_val, **fields)
        return False

    def set_txid(self, txid: str) -> None:
        self.txid = txid

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value


# Factory functions

def _dedicated_logger(name: str, handler: logging.Handler, level: LogLevel) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.addHandler(handler)
    logger.setLevel(level.levelno)
    logger.propagate = False
    return logger


def create_file_logger(
    filepath: str,
    component: str = "scrow",
    level: LogLevel = LogLevel.INFO
) -> StructuredLogger:
    """Logger appending JSON lines to filepath."""
    handler = logging.FileHandler(filepath)
    handler.setFormatter(logging.Formatter('%(message)s'))
    return StructuredLogger(
        component=component,
        logger=_dedicated_logger(f"{component}-file", handler, level),
    )


class _CallbackHandler(logging.Handler):
    """Decodes each JSON record and hands the dict to a callback."""

    def __init__(self, callback: Callable[[dict], None]):
        super().__init__()
        self.callback = callback

    def emit(self, record):
        text = record.getMessage()
        try:
            entry = json.loads(text)
        except json.JSONDecodeError:
            entry = {"message": text}
        self.callback(entry)


def create_callback_logger(
    callback: Callable[[dict], None],
    component: str = "scrow"
) -> StructuredLogger:
    """
    Logger that passes every entry, as a dict, to callback.

    Meant for UIs showing an activity feed of escrow operations.
    """
    return StructuredLogger(
        component=component,
        logger=_dedicated_logger(f"{component}-callback", _CallbackHandler(callback), LogLevel.DEBUG),
    )
