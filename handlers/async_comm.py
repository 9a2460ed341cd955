"""Asynchronous HTTP utilities.

This module provides an aiohttp based client used by the judge, the HTTP translation backends,
the streaming local-model handle and the model downloader.
Transport failures such as timeouts, refused connections and error statuses are translated into
``AsyncCommError`` subclasses so callers only need to handle one exception family.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final, Literal, Self

import aiohttp
from aiohttp.client import ClientSession

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import AsyncIterator, Callable, Iterator
    from pathlib import Path

    from aiohttp.client import ClientResponse


__all__: list[str] = [
    "AsyncCommError",
    "AsyncCommInvalidContentTypeError",
    "AsyncCommTimeoutError",
    "AsyncHttp",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type HTTPMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

CONNECT_TIMEOUT: Final[float] = 1.0
DOWNLOAD_CHUNK_SIZE: Final[int] = 1024 * 1024


class AsyncHttp:
    """Asynchronous HTTP client that decodes responses by content type.

    The aiohttp session is created lazily on first use, so instances may be built outside a running
    event loop. Handlers for "text/plain", "text/html" and "application/json" are registered by default.
    """

    def __init__(self) -> None:
        logger.info("%s initializing", self.__class__.__name__)
        self.__session: ClientSession | None = None
        self.content_handlers: dict[str, Callable[[bytes], Any]] = {}

        self.add_handler("text/plain", lambda x: x.decode("utf-8"))
        self.add_handler("text/html", lambda x: x.decode("utf-8"))
        self.add_handler("application/json", lambda x: json.loads(x.decode("utf-8")))

    async def __aenter__(self) -> Self:
        logger.debug("%s entering context", self.__class__.__name__)
        self.initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        _ = exc_type, exc_val, exc_tb
        logger.debug("%s exiting context", self.__class__.__name__)
        await self.close()

    def initialize_session(self) -> None:
        """Create the aiohttp session unless an open one already exists."""
        if self.__session is None or self.__session.closed:
            self.__session = ClientSession(raise_for_status=True)
            logger.debug("%s session initialized", self.__class__.__name__)

    @property
    def session(self) -> ClientSession:
        """Current aiohttp session, created on demand."""
        self.initialize_session()
        assert self.__session is not None
        return self.__session

    @property
    def is_open(self) -> bool:
        return self.__session is not None and not self.__session.closed

    async def close(self) -> None:
        """Close the aiohttp session if it is open."""
        if self.__session and not self.__session.closed:
            await self.__session.close()
            logger.info("%s session closed", self.__class__.__name__)
        self.__session = None

    async def get(self, *, url: str, headers: dict[str, str] | None = None, total_timeout: float = 10.0) -> Any:
        """Perform an HTTP GET request and return the decoded body."""
        logger.debug("'url': '%s', 'timeout': '%s'", url, total_timeout)
        return await self._request("GET", url=url, headers=headers, total_timeout=total_timeout)

    async def post(
        self,
        *,
        url: str,
        data: Any | None = None,
        headers: dict[str, str] | None = None,
        total_timeout: float = 10.0,
    ) -> Any:
        """Perform an HTTP POST request with a JSON body.

        Args:
            url (str): The URL to send the POST request to.
            data (Any | None): JSON-serialisable request body.
            headers (dict[str, str] | None): Extra request headers (e.g. Authorization).
            total_timeout (float): Total timeout for the request in seconds. Zero or less disables it.

        Returns:
            Any: The decoded response body, parsed as JSON for "application/json".
        """
        # Header values may carry credentials; only their names are logged.
        logger.debug(
            "'url': '%s', 'headers': '%s', 'timeout': '%s'", url, sorted((headers or {}).keys()), total_timeout
        )
        return await self._request("POST", url=url, headers=headers, json=data, total_timeout=total_timeout)

    async def stream_lines(
        self,
        *,
        url: str,
        data: Any | None = None,
        headers: dict[str, str] | None = None,
        total_timeout: float = 0.0,
    ) -> AsyncIterator[str]:
        """POST a JSON body and yield the non-empty lines of the response as they arrive.

        Used for server-sent event streams such as streaming chat completions.

        Raises:
            AsyncCommTimeoutError: If the server does not answer in time.
            AsyncCommError: If the connection fails or the server answers with an error status.
        """
        logger.debug("[stream] 'url': '%s', 'timeout': '%s'", url, total_timeout)
        with self._translate_errors():
            async with self.session.request(
                method="POST",
                url=url,
                headers=headers,
                json=data,
                timeout=self.build_timeout(total_timeout),
            ) as resp:
                resp.raise_for_status()
                async for raw in resp.content:
                    line: str = raw.decode("utf-8").strip()
                    if line:
                        yield line

    async def download(
        self,
        *,
        url: str,
        destination: Path,
        headers: dict[str, str] | None = None,
        on_chunk: Callable[[int], None] | None = None,
        total_timeout: float = 0.0,
    ) -> int:
        """Stream a response body into ``destination``.

        Args:
            url (str): The URL to download.
            destination (Path): File to write. Parent directories are created.
            headers (dict[str, str] | None): Extra request headers.
            on_chunk (Callable[[int], None] | None): Called with the size of every chunk written.
            total_timeout (float): Total timeout in seconds. Zero or less disables it.

        Returns:
            int: Number of bytes written.
        """
        logger.debug("[download] 'url': '%s', 'destination': '%s'", url, destination)
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        written: int = 0
        with self._translate_errors():
            async with self.session.request(
                method="GET",
                url=url,
                headers=headers,
                timeout=self.build_timeout(total_timeout),
            ) as resp:
                resp.raise_for_status()
                fh = await asyncio.to_thread(destination.open, "wb")
                try:
                    async for chunk in resp.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                        await asyncio.to_thread(fh.write, chunk)
                        written += len(chunk)
                        if on_chunk is not None:
                            on_chunk(len(chunk))
                finally:
                    await asyncio.to_thread(fh.close)
        return written

    async def decode_response(self, resp: ClientResponse) -> Any:
        """Decode a response body using the handler registered for its Content-Type.

        Raises:
            AsyncCommInvalidContentTypeError: If no handler is registered for the content type.
        """
        content_type: str = resp.headers.get("Content-Type", "").split(";")[0].strip()
        logger.debug("'Content-Type': '%s'", content_type)

        raw: bytes = await resp.read()
        if not raw:
            logger.debug("Received empty response")
            return None

        handler: Callable[[bytes], Any] | None = self.content_handlers.get(content_type)
        if handler:
            return handler(raw)

        msg: str = f"Unknown Content-Type '{content_type}'"
        raise AsyncCommInvalidContentTypeError(msg)

    def add_handler(self, content_type: str, handler: Callable[[bytes], Any]) -> None:
        if self.content_handlers.get(content_type):
            logger.warning("Handler for content type '%s' already exists, replacing it", content_type)
        self.content_handlers[content_type] = handler
        logger.debug("Added handler for content type '%s'", content_type)

    @staticmethod
    def build_timeout(total_timeout: float) -> aiohttp.ClientTimeout:
        """Translate a total timeout in seconds into an aiohttp timeout object."""
        if total_timeout <= 0:
            return aiohttp.ClientTimeout(total=None)
        if total_timeout < CONNECT_TIMEOUT:
            return aiohttp.ClientTimeout(total=total_timeout)
        return aiohttp.ClientTimeout(connect=CONNECT_TIMEOUT, total=total_timeout)

    async def _request(
        self,
        method: HTTPMethod,
        *,
        url: str,
        total_timeout: float,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and decode its response.

        Raises:
            AsyncCommTimeoutError: If the server does not answer in time.
            AsyncCommError: If the connection fails or the server answers with an error status.
        """
        with self._translate_errors():
            async with self.session.request(
                method=method,
                url=url,
                headers=headers,
                timeout=self.build_timeout(total_timeout),
                **kwargs,
            ) as resp:
                resp.raise_for_status()
                return await self.decode_response(resp)

    @staticmethod
    @contextmanager
    def _translate_errors() -> Iterator[None]:
        """Re-raise aiohttp and socket errors as ``AsyncCommError`` subclasses."""
        try:
            yield
        except TimeoutError as err:
            logger.debug(err)
            msg = "Timeout due to a lack of response from the server."
            raise AsyncCommTimeoutError(msg) from err
        except ConnectionResetError as err:
            logger.debug(err)
            msg = "The connection to the server has been reset."
            raise AsyncCommError(msg) from err
        except aiohttp.ClientConnectorError as err:
            logger.debug(err)
            msg = "Connection failed: the server is unreachable or the port is closed."
            raise AsyncCommError(msg) from err
        except aiohttp.ClientResponseError as err:
            logger.debug(err)
            msg = "Error response from the server."
            raise AsyncCommError(msg, response=err) from err
        except aiohttp.ClientError as err:
            logger.debug(err)
            msg = f"Network error: {err}"
            raise AsyncCommError(msg) from err


class AsyncCommError(Exception):
    """Base class for asynchronous communication errors.

    When constructed with ``response=`` the HTTP status is appended to the message, e.g.
    "Error response from the server.: status='503'".
    """

    def __init__(self, msg: str | BaseException, **kwargs: Any) -> None:
        self.msg: str = str(msg)
        self.status: int | None = None

        rsp: aiohttp.ClientResponseError | None = kwargs.pop("response", None)
        if isinstance(rsp, aiohttp.ClientResponseError):
            self.status = rsp.status
            self.msg = f"{self.msg}: status='{rsp.status}'"

        super().__init__(self.msg)


class AsyncCommTimeoutError(AsyncCommError):
    """The request did not complete within its timeout."""


class AsyncCommInvalidContentTypeError(AsyncCommError):
    """No handler is registered for the response content type."""
