"""Rate limiting for seller routes.

Limits are counted per seller. ``get_current_seller`` records the resolved
seller id on ``request.state`` and the limiter reads it back; slowapi runs
the check inside the decorated endpoint, after dependencies have resolved.
Requests that never got that far (no seller resolved) are counted per client
address.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings


def remember_seller(request: Request, seller_id: int) -> None:
    request.state.seller_id = seller_id


def seller_or_ip(request: Request) -> str:
    seller_id = getattr(request.state, "seller_id", None)
    if seller_id is not None:
        return f"seller:{seller_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=seller_or_ip, enabled=settings.rate_limit_enabled)
