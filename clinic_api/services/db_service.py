import asyncio
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from supabase import AsyncClient, AsyncClientOptions, create_async_client

from clinic_api.core.config import Settings
from clinic_api.core.errors import ConfigError, ConnectivityError
from clinic_api.core.logger import logger

PLACEHOLDER_TOKENS = ("<password>", "<project-ref>", "<your-project>", "your-project-ref")
LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def sanitize_url(value: Optional[str]) -> str:
    """Trims whitespace and one pair of surrounding quotes pasted into the env."""
    value = (value or "").strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1].strip()
    return value


def mask_url(url: str) -> str:
    """Hides credentials embedded in a connection URL, for logs."""
    parsed = urlparse(url)
    if parsed.password:
        return url.replace(f":{parsed.password}@", ":****@", 1)
    return url


class ConnectionManager:
    """
    Owns the single Supabase client of the process.

    The client is created lazily by `ensure_connected()`. Concurrent callers
    arriving while a connect is in flight await the same task, so a burst of
    first requests produces one connect attempt. A failed attempt leaves the
    manager disconnected and the next call tries again.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[AsyncClient] = None
        self._pending: Optional[asyncio.Task] = None
        self.connect_attempts = 0

    @property
    def state(self) -> ConnectionState:
        if self._client is not None:
            return ConnectionState.CONNECTED
        if self._pending is not None and not self._pending.done():
            return ConnectionState.CONNECTING
        return ConnectionState.DISCONNECTED

    @property
    def client(self) -> Optional[AsyncClient]:
        return self._client

    async def ensure_connected(self) -> AsyncClient:
        if self._client is not None:
            return self._client

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._connect())
        pending = self._pending

        try:
            # Shielded so one cancelled request does not abort the shared attempt
            return await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None

    def _validated_target(self):
        url = sanitize_url(self.settings.SUPABASE_URL)
        key = sanitize_url(self.settings.SUPABASE_KEY)

        if not url:
            raise ConfigError("SUPABASE_URL is not set. Add it to the deployment environment variables.")
        if not key:
            raise ConfigError("SUPABASE_KEY is not set. Add it to the deployment environment variables.")

        for token in PLACEHOLDER_TOKENS:
            if token in url or token in key:
                raise ConfigError(f"SUPABASE_URL/SUPABASE_KEY still contains the {token} placeholder. Replace it with the real value.")

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigError(f"SUPABASE_URL must look like https://<host>, got {mask_url(url)!r}.")

        if self.settings.is_serverless and parsed.hostname in LOOPBACK_HOSTS:
            raise ConfigError("SUPABASE_URL cannot point at localhost in a serverless deployment. Use the hosted project URL.")

        return url, key

    async def _connect(self) -> AsyncClient:
        url, key = self._validated_target()
        self.connect_attempts += 1

        selection_timeout = self.settings.DB_SERVER_SELECTION_TIMEOUT_MS / 1000
        connect_timeout = self.settings.DB_CONNECT_TIMEOUT_MS / 1000

        try:
            client = await create_async_client(
                url, key, options=AsyncClientOptions(postgrest_client_timeout=selection_timeout)
            )
        except Exception as e:
            logger.error(f"❌ Failed to initialize Supabase client: {e}")
            raise ConfigError(f"Supabase client could not be created: {e}") from e

        try:
            # Creating the client does no I/O, so query the table to prove the link
            await asyncio.wait_for(
                client.table(self.settings.BOOKINGS_TABLE).select("id").limit(1).execute(),
                timeout=connect_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"❌ Supabase connect timed out after {connect_timeout:.1f}s ({mask_url(url)})")
            raise ConnectivityError(f"Database connection timed out after {connect_timeout:.1f}s") from e
        except Exception as e:
            logger.error(f"❌ Supabase connect failed ({mask_url(url)}): {e}")
            raise ConnectivityError(f"Database connection failed: {e}") from e

        # Stored here, not by the waiters, so the result survives if they are all cancelled
        self._client = client
        logger.info("✅ Supabase connected")
        return client
