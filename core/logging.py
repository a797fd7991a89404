"""Structured logging utilities for NXNS Match backend"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any

from config.settings import settings


def setup_logging() -> logging.Logger:
    """Configure application logging with proper formatting"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger("nxns")


logger = setup_logging()


def log_structured(event_type: str, data: Dict[str, Any]) -> None:
    """
    Log structured JSON data for log analysis

    Args:
        event_type: Type of event (e.g., "analysis_start", "photo_cache_hit")
        data: Dictionary containing event data
    """
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "event_type": event_type,
        **data
    }
    logger.info(json.dumps(log_entry, ensure_ascii=False, default=str))
