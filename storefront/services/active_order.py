"""Customer-side "last active order" pointer.

Written once on checkout success, cleared when a tracker observes a terminal
status. Clearing is idempotent.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol

from starlette.responses import Response

from storefront.core.config import (
    ACTIVE_ORDER_COOKIE,
    ACTIVE_ORDER_COOKIE_MAX_AGE_SECONDS,
    ACTIVE_ORDER_COOKIE_SAMESITE,
    ACTIVE_ORDER_COOKIE_SECURE,
)


class ActiveOrderStore(Protocol):
    def get(self) -> Optional[str]:
        ...

    def set(self, order_id: str) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryActiveOrderStore:
    def __init__(self, order_id: Optional[str] = None) -> None:
        self._order_id = order_id

    def get(self) -> Optional[str]:
        return self._order_id

    def set(self, order_id: str) -> None:
        self._order_id = order_id

    def clear(self) -> None:
        self._order_id = None


_UNCHANGED = object()


class CookieActiveOrderStore:
    """Pointer carried by a browser cookie.

    Reads come from the request cookies; writes are recorded and applied to
    the outgoing response with :meth:`apply`.
    """

    def __init__(self, cookies: Mapping[str, str], cookie_name: str = ACTIVE_ORDER_COOKIE) -> None:
        self.cookie_name = cookie_name
        self._order_id: Optional[str] = (cookies.get(cookie_name) or "").strip() or None
        self._pending: object = _UNCHANGED

    def get(self) -> Optional[str]:
        return self._order_id

    def set(self, order_id: str) -> None:
        self._order_id = order_id
        self._pending = order_id

    def clear(self) -> None:
        if self._order_id is None and self._pending is _UNCHANGED:
            return
        self._order_id = None
        self._pending = None

    def apply(self, response: Response) -> None:
        if self._pending is _UNCHANGED:
            return
        if self._pending is None:
            response.delete_cookie(self.cookie_name, path="/")
            return
        response.set_cookie(
            key=self.cookie_name,
            value=str(self._pending),
            max_age=ACTIVE_ORDER_COOKIE_MAX_AGE_SECONDS,
            path="/",
            secure=ACTIVE_ORDER_COOKIE_SECURE,
            httponly=True,
            samesite=ACTIVE_ORDER_COOKIE_SAMESITE,
        )
