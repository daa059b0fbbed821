"""Session login for the legacy Tournament Manager admin interface."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import aiohttp

from ..errors import AuthError

_LOGGER = logging.getLogger(__name__)

LOGIN_PATH = "/admin/login"
LOGIN_USER = "admin"
# The server reads the session from this cookie name only
SESSION_COOKIE_NAME = "user"


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class SessionCookie:
    """Session cookie issued by the admin login.

    Attributes:
        value: Cookie pair as sent back to the server, always ``user="..."``.
        expires: Absolute expiry time (timezone-aware).
    """

    value: str
    expires: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires


def parse_session_cookie(header: str) -> SessionCookie:
    """Extract the session cookie and its expiry from a Set-Cookie header.

    Raises:
        AuthError: If the header has no quoted cookie value or no valid
            ``expires`` attribute.
    """
    pair, *attributes = (part.strip() for part in header.split(";"))
    _, sep, raw_value = pair.partition("=")
    quoted = raw_value.split('"')
    if not sep or len(quoted) < 3 or not quoted[1]:
        raise AuthError("Session cookie has no quoted value")
    value = f'{SESSION_COOKIE_NAME}="{quoted[1]}"'

    expires_raw = None
    for attribute in attributes:
        key, _, attr_value = attribute.partition("=")
        if key.strip().lower() == "expires":
            expires_raw = attr_value.strip()
            break
    if not expires_raw:
        raise AuthError("Session cookie has no expiration")

    try:
        expires = parsedate_to_datetime(expires_raw)
    except (TypeError, ValueError) as err:
        raise AuthError(f"Invalid session cookie expiration: {expires_raw}") from err
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)

    return SessionCookie(value=value, expires=expires)


class SessionAuthenticator:
    """Obtain and cache the admin session cookie for one server."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        address: str,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._address = address
        self._clock = clock
        self._cookie: SessionCookie | None = None

    def _url(self, path: str) -> str:
        return f"http://{self._address}{path}"

    @property
    def cached(self) -> SessionCookie | None:
        return self._cookie

    def is_fresh(self) -> bool:
        return self._cookie is not None and self._cookie.is_fresh(self._clock())

    async def authenticate(self, password: str) -> SessionCookie:
        """Log in with the admin password and cache the session cookie.

        Raises:
            AuthError: On network failure, timeout, or a response without a
                usable session cookie.
        """
        url = self._url(LOGIN_PATH)
        try:
            async with self._session.post(
                url,
                data={"user": LOGIN_USER, "password": password, "submit": ""},
                allow_redirects=False,
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                headers = resp.headers.getall("Set-Cookie", [])
                status = resp.status
        except TimeoutError as err:
            raise AuthError("Login request timed out") from err
        except aiohttp.ClientError as err:
            raise AuthError("Login request failed") from err

        if not headers:
            raise AuthError(
                f"Login response (HTTP {status}) carried no session cookie",
                status=status,
            )

        cookie = parse_session_cookie(headers[0])
        self._cookie = cookie
        _LOGGER.debug("Logged in to %s, session expires %s", self._address, cookie.expires)
        return cookie
