"""
Async HTTP client for remote operations.

Queries and mutations return one decoded JSON value. Live queries and
subscriptions return a Stream that yields one decoded value per message.
"""

import sys
from typing import Any, Optional
from urllib.parse import quote_plus

import httpx

from .config import DEFAULT_BASE_URL, TIMEOUT_DEFAULT, ClientConfig
from .context import Context
from .decoding import decode_json, decoder_for, encode_input
from .errors import (
    ConnectionRefused,
    ContextCancelled,
    InvalidRequest,
    RequestCancelled,
    raise_for_status,
)
from .stream import Stream

HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class OperationClient:
    """Async client for operation endpoints.

    Usage:
        async with OperationClient("http://localhost:9991") as client:
            # One-shot calls
            user = await client.query("/operations/User", {"id": 1}, response=User)
            await client.mutate("/operations/SetName", {"id": 1, "name": "Ada"})

            # Streams
            stream = await client.subscribe("/operations/Messages", response=Message)
            async for message in stream:
                print(message)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = TIMEOUT_DEFAULT,
        max_message_size: Optional[int] = None,
        verbose: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Server address that operation paths are appended to
            timeout: Connect/write/pool timeout; stream reads never time out
            max_message_size: Largest accepted stream message in bytes
            verbose: Whether to print requests and response statuses
            http_client: Externally owned httpx client to send requests with
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_message_size = max_message_size
        self.verbose = verbose
        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(
        cls,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "OperationClient":
        """Create a client from a ClientConfig (loaded from the environment if omitted)."""
        config = config or ClientConfig.from_env()
        return cls(
            base_url=config.base_url,
            timeout=config.timeout,
            max_message_size=config.max_message_size,
            verbose=config.verbose,
            http_client=http_client,
        )

    async def __aenter__(self) -> "OperationClient":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with OperationClient()' context.")
        return self._client

    def _log(self, *args, **kwargs):
        """Print to stderr if verbose mode is enabled."""
        if self.verbose:
            print(*args, file=sys.stderr, **kwargs)

    # -------------------------------------------------------------------------
    # Request building
    # -------------------------------------------------------------------------

    def url_for(self, path: str, input: Any = None, live: bool = False) -> str:
        """Build the GET URL for an operation.

        The input goes JSON-encoded into ``wg_variables``; live queries add
        ``wg_live=true`` after it.

        Raises:
            EncodeError: If the input is not serializable
        """
        url = (self.base_url + "/" + path.lstrip("/")) if path else self.base_url
        params = []
        if input is not None:
            params.append("wg_variables=" + quote_plus(encode_input(input)))
        if live:
            params.append("wg_live=true")
        if params:
            url += "?" + "&".join(params)
        return url

    def _build_request(
        self,
        method: str,
        url: str,
        content: Optional[str] = None,
        timeout: Any = None,
    ) -> httpx.Request:
        try:
            return self.client.build_request(
                method,
                url,
                content=content,
                headers=HEADERS,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.InvalidURL as e:
            raise InvalidRequest(str(e)) from e

    async def _send(self, request: httpx.Request, ctx: Context, stream: bool = False) -> httpx.Response:
        """Dispatch a request, racing it against the context.

        Raises:
            RequestCancelled: If the context fired first
            InvalidRequest: If the URL scheme is not supported
            ConnectionRefused: On any other transport failure
        """
        self._log(f"{request.method} {request.url}")
        try:
            response = await ctx.race(self.client.send(request, stream=stream))
        except ContextCancelled as e:
            raise RequestCancelled(e.reason) from e
        except httpx.UnsupportedProtocol as e:
            raise InvalidRequest(str(e)) from e
        except httpx.TransportError as e:
            raise ConnectionRefused(request.url.scheme, request.url.netloc.decode("ascii")) from e
        self._log(f"<- {response.status_code}")
        return response

    # -------------------------------------------------------------------------
    # One-shot calls
    # -------------------------------------------------------------------------

    async def query(
        self,
        path: str,
        input: Any = None,
        *,
        response: Any = None,
        ctx: Optional[Context] = None,
    ) -> Any:
        """Run a query operation (GET).

        Args:
            path: Operation path, appended to the base URL
            input: Operation variables, sent as ``wg_variables``
            response: Expected response type, see decoding.decoder_for
            ctx: Cancellation signal

        Returns:
            The decoded response body, or None for an empty body.

        Raises:
            EncodeError: If the input is not serializable
            ConnectionRefused: If the server can't be reached
            BadRequest, Unauthorized, InternalServerError, UnknownError: On non-200 status
            DecodeError: If the body is not JSON of the expected type
            RequestCancelled: If the context was cancelled
        """
        request = self._build_request("GET", self.url_for(path, input))
        return await self._call(request, response, ctx)

    async def mutate(
        self,
        path: str,
        input: Any = None,
        *,
        response: Any = None,
        ctx: Optional[Context] = None,
    ) -> Any:
        """Run a mutation operation (POST with a JSON body).

        Same arguments, result and errors as query().
        """
        url = self.url_for(path)
        content = encode_input(input) if input is not None else None
        request = self._build_request("POST", url, content=content)
        return await self._call(request, response, ctx)

    async def _call(self, request: httpx.Request, response: Any, ctx: Optional[Context]) -> Any:
        decoder = decoder_for(response)
        res = await self._send(request, ctx or Context())
        raise_for_status(res.status_code)
        if not res.content.strip():
            return None
        return decode_json(res.content, decoder)

    # -------------------------------------------------------------------------
    # Streams
    # -------------------------------------------------------------------------

    async def live_query(
        self,
        path: str,
        input: Any = None,
        *,
        response: Any = None,
        ctx: Optional[Context] = None,
    ) -> Stream:
        """Open a live query: the server pushes a new result on every change.

        Returns:
            Open Stream of decoded results

        Raises:
            Same as query(), except DecodeError which surfaces from Stream.next()
        """
        return await self._open_stream(path, input, True, response, ctx)

    async def subscribe(
        self,
        path: str,
        input: Any = None,
        *,
        response: Any = None,
        ctx: Optional[Context] = None,
    ) -> Stream:
        """Open a subscription stream. Same contract as live_query()."""
        return await self._open_stream(path, input, False, response, ctx)

    async def _open_stream(
        self,
        path: str,
        input: Any,
        live: bool,
        response: Any,
        ctx: Optional[Context],
    ) -> Stream:
        decoder_for(response)  # fail on a bad response type before connecting
        # A stream may stay silent for as long as the server likes
        timeout = httpx.Timeout(self.timeout, read=None)
        request = self._build_request("GET", self.url_for(path, input, live=live), timeout=timeout)
        res = await self._send(request, ctx or Context(), stream=True)
        if res.status_code != 200:
            await res.aclose()
            raise_for_status(res.status_code)
        return Stream(res, response=response, max_message_size=self.max_message_size)
