"""Health check endpoint.

Learn: Reports the listener state alongside server health. Redis is only
checked when the app actually depends on it (SMSRELAY_SOURCE=redis).
"""

from fastapi import APIRouter, Depends

from smsrelay import __version__
from smsrelay.api.dependencies import get_relay
from smsrelay.relay import SmsRelay

router = APIRouter()


@router.get("/health")
async def health_check(relay: SmsRelay = Depends(get_relay)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok"}

    if relay.source.name == "redis":
        try:
            from redis.asyncio import from_url

            r = from_url(relay.source.redis_url)
            await r.ping()
            await r.aclose()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(v == "ok" for v in checks.values()) else "degraded"

    return {
        "status": status,
        "version": __version__,
        "listener": relay.lifecycle.state.value,
        **checks,
    }
