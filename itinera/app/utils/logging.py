"""Logging setup and structured logging for itinerary mutations."""

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredMutationLogger:
    """Structured logger for itinerary mutations."""

    def log_mutation(
        self,
        operation: str,
        itinerary_id: uuid.UUID,
        actor_id: str,
        outcome: str,
        latency_ms: float,
        version: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one mutation attempt with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "itinerary_id": str(itinerary_id),
            "actor_id": actor_id,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if version is not None:
            log_data["version"] = version
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Itinerary mutation: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
