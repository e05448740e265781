"""Client for the Firebase Realtime Database holding the monitoring record."""
from __future__ import annotations

import asyncio
import json
import logging
from copy import deepcopy
from typing import Any, Callable

import aiohttp

_LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds
# Firebase sends keep-alive events every 30 seconds on an idle stream
STREAM_READ_TIMEOUT = 90  # seconds


class RealtimeStoreError(Exception):
    """Base error for realtime store failures."""


class StoreReadError(RealtimeStoreError):
    """Reading or streaming from the store failed."""


class StoreWriteError(RealtimeStoreError):
    """Writing a field to the store failed."""


def _apply_at_path(root: Any, path: str, data: Any, merge: bool) -> Any:
    """Return ``root`` with ``data`` put (or patched) at a slash-separated path."""
    keys = [key for key in path.split("/") if key]
    if not keys:
        if merge and isinstance(root, dict) and isinstance(data, dict):
            result = dict(root)
            for key, value in data.items():
                if value is None:
                    result.pop(key, None)
                else:
                    result[key] = value
            return result
        return deepcopy(data)

    result = dict(root) if isinstance(root, dict) else {}
    node = result
    for key in keys[:-1]:
        child = node.get(key)
        child = dict(child) if isinstance(child, dict) else {}
        node[key] = child
        node = child

    last = keys[-1]
    if merge:
        node[last] = _apply_at_path(node.get(last), "", data, merge=True)
    elif data is None:
        node.pop(last, None)
    else:
        node[last] = deepcopy(data)
    return result


class RealtimeStore:
    """Per-field reads, writes and live subscriptions over the REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        database_url: str,
        auth_token: str | None = None,
    ) -> None:
        """Initialize the store client."""
        self._session = session
        self._base_url = database_url.rstrip("/")
        self._auth_token = auth_token or None

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.strip('/')}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    async def async_get(self, path: str) -> Any:
        """Read the value at ``path``."""
        try:
            async with self._session.get(
                self._url(path),
                params=self._params(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as resp:
                resp.raise_for_status()
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            raise StoreReadError(f"Failed to read {path}: {err}") from err

    async def async_set(self, path: str, value: Any) -> None:
        """Overwrite the single field at ``path``."""
        try:
            async with self._session.put(
                self._url(path),
                params=self._params(),
                json=value,
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            ) as resp:
                resp.raise_for_status()
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise StoreWriteError(f"Failed to write {path}: {err}") from err
        _LOGGER.debug("Wrote %s = %s", path, value)

    def async_subscribe(
        self,
        path: str,
        on_snapshot: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> Callable[[], None]:
        """Stream changes at ``path``; call ``on_snapshot`` with the whole object.

        The stream is not retried: a failure calls ``on_error`` once and the
        subscription ends. Call the returned function to release it.
        """
        task = asyncio.create_task(self._async_stream(path, on_snapshot, on_error))

        def _unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return _unsubscribe

    async def _async_stream(
        self,
        path: str,
        on_snapshot: Callable[[Any], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        mirror: Any = None
        try:
            async with self._session.get(
                self._url(path),
                params=self._params(),
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_read=STREAM_READ_TIMEOUT),
            ) as resp:
                resp.raise_for_status()
                _LOGGER.info("Subscribed to %s", path)
                event: str | None = None
                async for raw_line in resp.content:
                    line = raw_line.decode("utf-8").rstrip("\r\n")
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                        continue
                    if not line.startswith("data:") or event is None:
                        continue

                    payload = line[len("data:"):].strip()
                    if event in ("put", "patch"):
                        message = json.loads(payload)
                        mirror = _apply_at_path(
                            mirror,
                            message.get("path", "/"),
                            message.get("data"),
                            merge=event == "patch",
                        )
                        on_snapshot(deepcopy(mirror))
                    elif event == "cancel":
                        raise StoreReadError(f"Subscription to {path} cancelled: {payload}")
                    elif event == "auth_revoked":
                        raise StoreReadError(f"Credentials for {path} are no longer valid")
                    event = None
                raise StoreReadError(f"Stream for {path} closed by server")
        except asyncio.CancelledError:
            _LOGGER.debug("Subscription to %s released", path)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            _LOGGER.error("Realtime stream for %s failed: %s", path, err)
            on_error(StoreReadError(str(err)))
        except StoreReadError as err:
            _LOGGER.error("Realtime stream for %s ended: %s", path, err)
            on_error(err)
