"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "hohema-loans"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_step_update(request_id: str, user_id: str, application_id: str, step: int, current_step: int) -> None:
    """Log a wizard step being saved"""
    logging.info(
        "Wizard step saved",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "application_id": application_id,
            "step": step,
            "current_step": current_step,
        },
    )


def log_application_event(request_id: str, user_id: str, application_id: str, event: str, status: str) -> None:
    """Log an application lifecycle event (created, submitted, approved, ...)"""
    logging.info(
        f"Application {event}",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "application_id": application_id,
            "event": event,
            "status": status,
        },
    )


def log_affordability(
    request_id: str,
    user_id: str,
    status: str,
    debt_to_income_ratio: float,
    max_recommended_loan: float,
) -> None:
    """Log the outcome of an affordability assessment"""
    logging.info(
        "Affordability assessed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "affordability_status": status,
            "debt_to_income_ratio": debt_to_income_ratio,
            "max_recommended_loan": max_recommended_loan,
        },
    )
