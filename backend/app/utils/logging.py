"""Structured logging for generation and ledger events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, merging the `structured` extra."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        structured = getattr(record, "structured", None)
        if isinstance(structured, dict):
            payload.update(structured)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a single stream handler on the application logger tree."""
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    app_logger = logging.getLogger("backend")
    app_logger.handlers = [handler]
    app_logger.setLevel(level.upper())


class StructuredGenerationLogger:
    """Structured logger for provider calls and credit accounting."""

    def log_provider_call(
        self,
        operation: str,
        account_id: int,
        outcome: str,
        latency_ms: float,
        itinerary_id: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log a provider call with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "account_id": account_id,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if itinerary_id is not None:
            log_data["itinerary_id"] = itinerary_id
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Provider call: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_ledger_change(
        self,
        account_id: int,
        action: str,
        tier: str,
        remaining: int | str,
    ) -> None:
        """Log a credit ledger mutation."""
        logger.info(
            f"Ledger {action} for account {account_id}",
            extra={
                "structured": {
                    "account_id": account_id,
                    "action": action,
                    "tier": tier,
                    "remaining": remaining,
                }
            },
        )

    def log_slot_gaps(
        self,
        itinerary_id: int,
        gaps: dict[int, list[str]],
        duplicates: dict[int, list[str]] | None = None,
    ) -> None:
        """Warn about days missing canonical slots or holding one twice."""
        logger.warning(
            f"Itinerary {itinerary_id} has incomplete days",
            extra={
                "structured": {
                    "itinerary_id": itinerary_id,
                    "gaps": gaps,
                    "duplicates": duplicates or {},
                }
            },
        )

    def log_payment(
        self,
        account_id: int,
        purchase: str,
        payment_id: str,
        outcome: str,
    ) -> None:
        """Log a payment confirmation attempt."""
        log_data = {
            "account_id": account_id,
            "purchase": purchase,
            "payment_id": payment_id,
            "outcome": outcome,
        }
        if outcome == "confirmed":
            logger.info(f"Payment {outcome}: {purchase}", extra={"structured": log_data})
        else:
            logger.warning(f"Payment {outcome}: {purchase}", extra={"structured": log_data})
