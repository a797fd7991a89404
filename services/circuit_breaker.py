"""Circuit Breaker instances for external API calls"""

from typing import Dict

from pybreaker import CircuitBreaker

from core.exceptions import InvalidImageException
from core.logging import logger


# ========== Circuit Breaker Configuration ==========

# Vision API Circuit Breaker
# - fail_max=5: Open after 5 consecutive failures
# - reset_timeout=60: Wait 60 seconds before trying again
# - undecodable input images do not count as upstream failures
vision_breaker = CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    exclude=[InvalidImageException],
    name='VisionAPI'
)

# Remote photo backends: one breaker each; an open breaker skips that backend
PHOTO_BACKEND_NAMES = ("baidu", "bing", "sogou")

photo_backend_breakers: Dict[str, CircuitBreaker] = {
    name: CircuitBreaker(fail_max=5, reset_timeout=300, name=f"PhotoBackend:{name}")
    for name in PHOTO_BACKEND_NAMES
}


def _breaker_status(breaker: CircuitBreaker) -> dict:
    return {
        "state": str(breaker.current_state),
        "fail_counter": breaker.fail_counter,
        "fail_max": breaker.fail_max,
        "reset_timeout": breaker.reset_timeout,
        "is_open": breaker.current_state == "open",
        "is_closed": breaker.current_state == "closed",
        "is_half_open": breaker.current_state == "half-open"
    }


def get_circuit_breaker_status() -> dict:
    """
    Get current status of all circuit breakers

    Returns:
        Dictionary with circuit breaker statistics
    """
    return {
        "vision_api": _breaker_status(vision_breaker),
        "photo_backends": {
            name: _breaker_status(breaker)
            for name, breaker in photo_backend_breakers.items()
        }
    }


def reset_circuit_breakers():
    """Reset all circuit breakers (admin function)"""
    vision_breaker.close()
    for breaker in photo_backend_breakers.values():
        breaker.close()
    logger.info("[ADMIN] All circuit breakers have been reset")
