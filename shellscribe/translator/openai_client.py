"""
Chat completion client for ShellScribe.

This module opens streaming chat completions against an OpenAI-compatible
endpoint and turns transport and HTTP failures into user-facing errors.
"""

import json
import logging
from typing import Any, AsyncIterator, List, Optional, Union

import httpx
from openai import AsyncOpenAI

from shellscribe.models.command_models import ChatMessage, CompletionRequest
from shellscribe.utils.errors import KnownError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.openai.com/v1"

QUOTA_HELP = (
    "Request to OpenAI failed with status 429. This is due to incorrect billing "
    "setup or excessive quota usage. Please follow this guide to fix it: "
    "https://help.openai.com/en/articles/6891831-error-code-429-you-exceeded-your-"
    "current-quota-please-check-your-plan-and-billing-details\n\n"
    "You can activate billing here: "
    "https://platform.openai.com/account/billing/overview . Make sure to add a "
    "payment method if not under an active grant from OpenAI.\n\n"
    "Full message from OpenAI:"
)


class StreamHandle:
    """
    An open streaming response.

    Iterating yields raw text chunks in arrival order. Use as an async context
    manager (or call ``aclose``) to release the connection.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self.response = response

    def __aiter__(self) -> AsyncIterator[str]:
        return self.response.aiter_text()

    async def aclose(self) -> None:
        try:
            await self.response.aclose()
        finally:
            await self._client.aclose()

    async def __aenter__(self) -> "StreamHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _format_body(body: Any) -> str:
    return json.dumps(body, indent=2)


class CompletionClient:
    """
    Async client for streaming chat completions.

    Each ``generate_completion`` call opens its own connection; nothing is
    pooled or shared between requests.
    """

    def __init__(
        self,
        api_key: str,
        api_endpoint: str = DEFAULT_ENDPOINT,
        model: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the completion client.

        Args:
            api_key (str): Credential sent as a bearer token.
            api_endpoint (str): Base URL of the OpenAI-compatible API.
            model (Optional[str]): Model identifier; the request default is
                used when None.
            timeout (float): Request timeout in seconds.
            transport (Optional[httpx.AsyncBaseTransport]): Custom transport,
                mainly for tests.
        """
        if not api_key:
            raise ValueError("An API key is required")

        self.api_key = api_key
        self.api_endpoint = (api_endpoint or DEFAULT_ENDPOINT).rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def build_request(
        self, prompt: Union[str, List[ChatMessage]], number: int = 1
    ) -> CompletionRequest:
        return CompletionRequest(
            prompt=prompt,
            model=self.model,
            number=number,
            api_key=self.api_key,
            api_endpoint=self.api_endpoint,
        )

    async def generate_completion(
        self, prompt: Union[str, List[ChatMessage]], number: int = 1
    ) -> StreamHandle:
        """
        Open a streaming chat completion.

        Args:
            prompt (Union[str, List[ChatMessage]]): Prompt text, or a message
                list which is sent unchanged.
            number (int): Number of completions, clamped to 1..10.

        Returns:
            StreamHandle: The open stream of raw chunks.

        Raises:
            KnownError: If the endpoint is unreachable or answers with an
                error status and body.
        """
        request = self.build_request(prompt, number)
        payload = request.to_payload()
        logger.debug(f"Requesting {payload['n']} completion(s) from {payload['model']}")

        client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        http_request = client.build_request(
            "POST",
            f"{request.api_endpoint}/chat/completions",
            json=payload,
            headers={"Authorization": f"Bearer {request.api_key}"},
        )
        try:
            response = await client.send(http_request, stream=True)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            await client.aclose()
            host = http_request.url.host
            logger.error(f"Could not connect to {host}: {e}")
            raise KnownError(
                f"Error connecting to {host} ({e}). Are you connected to the internet?"
            ) from e
        except Exception:
            await client.aclose()
            raise

        if response.is_error:
            try:
                await self._raise_for_response(response)
            finally:
                await response.aclose()
                await client.aclose()

        return StreamHandle(client, response)

    async def _raise_for_response(self, response: httpx.Response) -> None:
        """
        Raise the error matching an HTTP error response.

        Args:
            response (httpx.Response): A response with an error status.

        Raises:
            KnownError: For 429, or for any other status with a body.
            httpx.HTTPStatusError: For an error status without a body.
        """
        raw = (await response.aread()).decode("utf-8", errors="replace")
        try:
            # Usually JSON, but proxies occasionally answer with HTML
            body: Any = json.loads(raw)
        except json.JSONDecodeError:
            body = raw

        if response.status_code == 429:
            logger.error("Completion request rejected with status 429")
            raise KnownError(f"{QUOTA_HELP}\n\n{_format_body(body)}\n")

        if body:
            logger.error(f"Completion request failed with status {response.status_code}")
            raise KnownError(
                f"Request to OpenAI failed with status {response.status_code}:"
                f"\n\n{_format_body(body)}\n"
            )

        response.raise_for_status()

    async def list_models(self) -> list:
        """
        List the models available at the endpoint.

        Returns:
            list: Model entries whose ``object`` is ``"model"``.
        """
        async with AsyncOpenAI(api_key=self.api_key, base_url=self.api_endpoint) as client:
            page = await client.models.list()
        return [model for model in page.data if model.object == "model"]
