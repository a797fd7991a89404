"""
Monitoring and Observability Configuration

Optional Sentry error tracking. Photo payloads never leave the server:
request bodies are stripped before events are sent.
"""

import logging
import os
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from config.settings import settings

logger = logging.getLogger(__name__)

# Client errors that should never reach Sentry
EXPECTED_EXCEPTIONS = {
    "InvalidImageException",
    "InvalidFileFormatException",
    "NoFaceDetectedException",
    "ImageNotFoundException",
    "CelebrityValidationException",
    "CelebrityNotFoundException",
}


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    traces_sample_rate: float = 0.1
) -> bool:
    """
    Initialize Sentry error tracking

    Args:
        dsn: Sentry DSN (from env var SENTRY_DSN if not provided)
        environment: Environment name (production, staging, development)
        traces_sample_rate: Percentage of transactions to trace (0.0-1.0)

    Returns:
        True if Sentry initialized successfully, False otherwise
    """
    sentry_dsn = dsn or os.getenv('SENTRY_DSN')
    if not sentry_dsn:
        logger.info("ℹ️ SENTRY_DSN 미설정 - Sentry 비활성화")
        return False

    sentry_env = os.getenv('SENTRY_ENVIRONMENT') or environment or settings.ENVIRONMENT
    traces_rate = float(os.getenv('SENTRY_TRACES_SAMPLE_RATE', traces_sample_rate))
    release = f"nxns-match@{settings.APP_VERSION}"

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=sentry_env,
            release=release,
            traces_sample_rate=traces_rate,
            integrations=[
                FastApiIntegration(
                    transaction_style="endpoint",
                    failed_request_status_codes=[500, 501, 502, 503, 504, 505]
                ),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR
                ),
            ],
            before_send=before_send_filter,
            attach_stacktrace=True,
            send_default_pii=False,
            max_breadcrumbs=50,
            debug=settings.DEBUG,
        )
    except Exception as e:
        logger.error(f"❌ Sentry 초기화 실패: {str(e)}")
        return False

    logger.info(
        f"✅ Sentry initialized\n"
        f"   Environment: {sentry_env}\n"
        f"   Release: {release}\n"
        f"   Traces: {traces_rate * 100}%"
    )
    return True


def before_send_filter(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Filter events before sending to Sentry

    Returns:
        Modified event or None to drop the event
    """
    if event.get('transaction') == 'GET /api/health':
        return None

    values = (event.get('exception') or {}).get('values') or []
    if values and values[0].get('type', '') in EXPECTED_EXCEPTIONS:
        return None

    # base64 photos travel in request bodies
    request = event.get('request')
    if isinstance(request, dict):
        request.pop('data', None)

    return event
