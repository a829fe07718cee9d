import json
from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, Callable, ClassVar, Dict, Optional

from aiohttp import ClientSession, ClientTimeout
from pydantic import BaseModel, ConfigDict

from . import __version__
from .exceptions import AutoPagerError, OperationError
from .logging import DefaultLogger, Logger


def serialize_request(request: Any) -> Dict[str, Any]:
    """Turn a request (dict, pydantic model or plain object) into a JSON body.

    Fields set to None are left out so unset parameters are not sent.
    """
    if request is None:
        return {}
    if isinstance(request, dict):
        data = request
    elif hasattr(request, "model_dump"):
        data = request.model_dump()
    else:
        data = vars(request)
    return {key: value for key, value in data.items() if value is not None}


class ServiceClient(BaseModel, AsyncContextManager["ServiceClient"]):
    """Async client invoking operations of a JSON-RPC style service endpoint.

    Each operation is a POST to the same URL, dispatched by the
    ``X-Amz-Target`` header.
    """

    url: str
    target_prefix: str
    timeout: Optional[float] = 60
    session: Optional[ClientSession] = None
    headers: Dict[str, str] = None
    timeout_obj: Optional[ClientTimeout] = None
    logger: Optional[Logger] = None
    _exit_stack: Optional[AsyncExitStack] = None
    _owns_session: bool = False

    DEFAULT_TIMEOUT: ClassVar[int] = 60
    DEFAULT_USER_AGENT: ClassVar[str] = f"autopager/{__version__}"
    CONTENT_TYPE: ClassVar[str] = "application/x-amz-json-1.1"

    DEFAULT_HEADERS: ClassVar[Dict[str, str]] = {
        "Accept": "application/json",
        "Content-Type": CONTENT_TYPE,
        "User-Agent": DEFAULT_USER_AGENT,
    }

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(self, **data):
        if "timeout" in data:
            timeout = data["timeout"]
            if not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValueError("Timeout must be a positive number")

        if not data.get("target_prefix"):
            raise ValueError("target_prefix is required")

        super().__init__(**data)
        default_headers = self.DEFAULT_HEADERS.copy()
        if self.headers:
            default_headers.update(self.headers)
        self.headers = default_headers

        self.timeout_obj = ClientTimeout(total=self.timeout)

        if self.logger is None:
            self.logger = DefaultLogger(name="autopager-client")

    async def __aenter__(self) -> "ServiceClient":
        self._exit_stack = AsyncExitStack()
        if self.session is None:
            self.session = await self._exit_stack.enter_async_context(
                ClientSession(timeout=self.timeout_obj)
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if self._exit_stack:
                await self._exit_stack.aclose()
        finally:
            self._exit_stack = None
            # A caller-supplied session stays open and attached
            if self._owns_session:
                self.session = None
                self._owns_session = False

    def target_for(self, operation: str) -> str:
        return f"{self.target_prefix}.{operation}"

    async def invoke(self, operation: str, request: Any = None) -> Dict[str, Any]:
        """Call one operation and return its decoded JSON response.

        Args:
            operation: Operation name, e.g. "ListTableMetadata"
            request: Request parameters

        Returns:
            The response body as a dict (empty when the service sent no body)

        Raises:
            OperationError: If the service answered with a non-2xx status
            AutoPagerError: If the session is not open or the body is not JSON
            aiohttp.ClientError: Transport failures, unmodified
        """
        if self.session is None:
            raise AutoPagerError("Session not initialized. Use async with context.")

        headers = self.headers.copy()
        headers["X-Amz-Target"] = self.target_for(operation)
        body = serialize_request(request)

        self.logger.debug(f"Calling {self.target_for(operation)} at {self.url}")

        response = await self.session.request(
            method="POST",
            url=self.url,
            data=json.dumps(body),
            headers=headers,
            timeout=self.timeout_obj,
        )
        text = await response.text()
        self.logger.debug(f"Received response: status={response.status}")

        if 200 <= response.status < 300:
            if not text or not text.strip():
                return {}
            try:
                return json.loads(text)
            except ValueError as e:
                raise AutoPagerError(
                    f"Failed to parse JSON response from {operation}: {e}", e
                ) from e

        raise self._operation_error(operation, response.status, response.headers, text)

    def _operation_error(
        self, operation: str, status: int, headers: Any, text: str
    ) -> OperationError:
        try:
            payload = json.loads(text) if text else {}
        except ValueError:
            payload = text

        error_code = None
        error_message = None
        if isinstance(payload, dict):
            error_code = payload.get("__type") or payload.get("code")
            error_message = payload.get("message") or payload.get("Message")
        if not error_code and headers is not None:
            error_code = headers.get("x-amzn-ErrorType")
        if error_code:
            # "com.amazonaws.athena#InvalidRequestException" and "Code:detail" forms
            error_code = error_code.split("#")[-1].split(":")[0]

        self.logger.debug(f"{operation} returned HTTP {status}", error_code=error_code)
        return OperationError(
            operation=operation,
            status=status,
            error_code=error_code,
            error_message=error_message,
            body=payload,
        )

    def invoker(self, operation: str) -> Callable[[Any], Any]:
        """Return a single-argument invoker for ``operation``."""

        async def invoke_operation(request: Any) -> Dict[str, Any]:
            return await self.invoke(operation, request)

        invoke_operation.__name__ = f"invoke_{operation}"
        return invoke_operation
