"""
Logging for the matching engine.

One console handler for everything; with a log directory, orders, fills and
errors also go to their own files. Records can be rendered as JSON lines
carrying order, fill and symbol context.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from decimal import Decimal

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """
    Renders a record as one JSON object per line.

    Context passed through ``extra`` is copied into the object when set.
    """

    CONTEXT_FIELDS = ("order_id", "fill_id", "symbol", "owner_id", "execution_time_ms")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            (name, getattr(record, name))
            for name in self.CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _make_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JSONFormatter()
    return logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT)


class MatchingEngineLogger:
    """
    Structured logger for order flow, fills and engine performance.

    Attributes:
        logger: Application logger (console, plus application/error files)
        order_logger: Order lifecycle events (orders.log when a directory is set)
        fill_logger: Executions (fills.log when a directory is set)
    """

    def __init__(
        self,
        name: str = "matchbook",
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        use_json: bool = False,
    ):
        """
        Args:
            name: Root logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (None for console only)
            use_json: Emit JSON lines instead of plain text
        """
        self.use_json = use_json
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.handlers.clear()

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(_make_formatter(use_json))
        self.logger.addHandler(console)

        self.order_logger = self.logger
        self.fill_logger = self.logger
        if log_dir:
            self._attach_files(name, Path(log_dir))

    def _attach_files(self, name: str, log_dir: Path) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)

        self.logger.addHandler(self._file_handler(log_dir / "application.log"))
        self.logger.addHandler(self._file_handler(log_dir / "errors.log", logging.ERROR))

        # Child loggers propagate to the application log as well
        self.order_logger = logging.getLogger(f"{name}.orders")
        self.order_logger.addHandler(self._file_handler(log_dir / "orders.log"))
        self.fill_logger = logging.getLogger(f"{name}.fills")
        self.fill_logger.addHandler(self._file_handler(log_dir / "fills.log"))

    def _file_handler(self, path: Path, level: int = logging.NOTSET) -> logging.FileHandler:
        handler = logging.FileHandler(path)
        handler.setLevel(level)
        handler.setFormatter(_make_formatter(self.use_json))
        return handler

    def log_order_submission(
        self,
        order_id: int,
        symbol: str,
        order_type: str,
        side: str,
        quantity: int,
        price: Optional[int],
        owner_id: str,
    ):
        """Log an order accepted by the engine."""
        where = f"@ {price}" if price is not None else "at market"
        self.order_logger.info(
            f"Order {order_id} accepted: {side} {quantity} {symbol} {where} ({order_type})",
            extra={"order_id": order_id, "symbol": symbol, "owner_id": owner_id},
        )

    def log_fill(
        self,
        fill_id: int,
        symbol: str,
        price: int,
        quantity: int,
        taker_side: str,
        maker_order_id: int,
        taker_order_id: int,
        taker_fee: Decimal,
        maker_fee: Decimal,
    ):
        """Log an execution between a taker and a resting maker."""
        self.fill_logger.info(
            f"Fill {fill_id}: {quantity} {symbol} @ {price} "
            f"(taker {taker_order_id} {taker_side}, maker {maker_order_id}, "
            f"fees taker={taker_fee} maker={maker_fee})",
            extra={"fill_id": fill_id, "symbol": symbol, "order_id": taker_order_id},
        )

    def log_order_cancellation(self, order_id: int, symbol: str, cancelled_qty: int):
        self.order_logger.info(
            f"Order {order_id} cancelled, {cancelled_qty} lots released",
            extra={"order_id": order_id, "symbol": symbol},
        )

    def log_self_trade(
        self,
        behavior: str,
        symbol: str,
        taker_order_id: int,
        maker_order_id: int,
        owner_id: str,
        quantity: int,
    ):
        """Log a self-trade that the engine prevented."""
        self.order_logger.info(
            f"Self-trade prevented ({behavior}): taker {taker_order_id}, "
            f"maker {maker_order_id}, quantity {quantity}",
            extra={"order_id": taker_order_id, "symbol": symbol, "owner_id": owner_id},
        )

    def log_performance_metrics(
        self,
        orders_processed: int,
        fills_executed: int,
        avg_latency_ms: float,
        max_latency_ms: float,
    ):
        self.logger.debug(
            f"Performance: {orders_processed} orders, {fills_executed} fills, "
            f"avg latency: {avg_latency_ms:.3f}ms, max latency: {max_latency_ms:.3f}ms",
            extra={"execution_time_ms": round(avg_latency_ms, 3)},
        )

    def log_error(self, message: str, exception: Optional[Exception] = None, **context):
        """Log an error, with the traceback when an exception is given."""
        self.logger.error(message, exc_info=exception, extra=context)

    def info(self, message: str, **context):
        self.logger.info(message, extra=context)

    def warning(self, message: str, **context):
        self.logger.warning(message, extra=context)


_logger: Optional[MatchingEngineLogger] = None


def get_logger(
    name: str = "matchbook",
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    use_json: bool = False,
) -> MatchingEngineLogger:
    """
    Process-wide logger, created on first call.

    Later calls return the same instance and ignore their arguments.
    """
    global _logger

    if _logger is None:
        _logger = MatchingEngineLogger(name, log_level, log_dir, use_json)

    return _logger
