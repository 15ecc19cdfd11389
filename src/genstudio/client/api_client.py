"""Async HTTP client for the GenStudio API."""

import asyncio
import mimetypes
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"

# Older servers only signal overload through the message text
OVERLOADED_MARKER = "Model overloaded"

TERMINAL_STATUSES = ("completed", "failed")


class ApiError(Exception):
    """Error reported by the API, or a transport failure reaching it.

    Attributes:
        message: Human-readable message (the server's `message` when present)
        status_code: HTTP status, None for transport failures
        error_kind: Server's `errorKind` (e.g. "validation", "overloaded")
    """

    def __init__(self, message: str, status_code: int | None = None, error_kind: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_kind = error_kind


@contextmanager
def _parsing_response(path: str):
    """Report a 2xx body without the expected members as an ApiError."""
    try:
        yield
    except (KeyError, TypeError, ValueError) as e:
        raise ApiError(f"Unexpected response from {path}") from e


def is_retryable(exc: BaseException) -> bool:
    """Only model overload is worth retrying automatically."""
    if not isinstance(exc, ApiError):
        return False
    return exc.error_kind == "overloaded" or OVERLOADED_MARKER in exc.message


@dataclass(frozen=True)
class ImageUpload:
    """Image file to send with a generation request."""

    filename: str
    content: bytes
    content_type: str

    @classmethod
    def from_path(cls, path: Path | str) -> "ImageUpload":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )


@dataclass(frozen=True)
class GenerationRecord:
    """A generation as reported by the API."""

    id: str
    prompt: str
    style: str
    status: str
    created_at: datetime | None = None
    image_url: str | None = None
    result_image_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "GenerationRecord":
        created_at = payload.get("created_at")
        return cls(
            id=payload["id"],
            prompt=payload["prompt"],
            style=payload["style"],
            status=payload["status"],
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            image_url=payload.get("imageUrl"),
            result_image_url=payload.get("resultImageUrl"),
        )


class StudioApiClient:
    """Client for the account and generation endpoints.

    Holds the bearer token obtained from signup/login and drops it when the
    server answers 401, so callers can tell a stale session from other errors.

    Example:
        async with StudioApiClient("http://localhost:8000/api") as client:
            await client.login("user@example.com", "secret1")
            generation = await client.create_generation(
                "a lighthouse at dusk", "artistic", ImageUpload.from_path("photo.jpg")
            )
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "StudioApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and unwrap the `data` member of the response envelope.

        Raises:
            ApiError: Non-2xx response, unreadable body or transport failure
        """
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiError(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ApiError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            if response.status_code == 401:
                self.token = None
            message = body.get("message") or f"Request failed with status {response.status_code}"
            logger.debug(
                "api_client.request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error_kind=body.get("errorKind"),
            )
            raise ApiError(message, response.status_code, body.get("errorKind"))

        return body.get("data") or {}

    async def signup(self, email: str, password: str) -> dict[str, Any]:
        """Create an account and keep its token. Returns the user payload."""
        path = "/auth/signup"
        data = await self._request("POST", path, json={"email": email, "password": password})
        with _parsing_response(path):
            self.token = data["token"]
            return data["user"]

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Log in and keep the token. Returns the user payload."""
        path = "/auth/login"
        data = await self._request("POST", path, json={"email": email, "password": password})
        with _parsing_response(path):
            self.token = data["token"]
            return data["user"]

    async def me(self) -> dict[str, Any]:
        data = await self._request("GET", "/auth/me")
        with _parsing_response("/auth/me"):
            return data["user"]

    async def create_generation(
        self, prompt: str, style: str, image: ImageUpload
    ) -> GenerationRecord:
        """Upload an image with prompt and style; the job starts in `processing`."""
        data = await self._request(
            "POST",
            "/generations",
            data={"prompt": prompt, "style": style},
            files={"image": (image.filename, image.content, image.content_type)},
        )
        with _parsing_response("/generations"):
            return GenerationRecord.from_payload(data["generation"])

    async def list_generations(self, limit: int = 5) -> list[GenerationRecord]:
        """Most recent generations of the logged-in user, newest first."""
        data = await self._request("GET", "/generations", params={"limit": limit})
        with _parsing_response("/generations"):
            return [GenerationRecord.from_payload(item) for item in data["generations"]]

    async def get_generation(self, generation_id: str) -> GenerationRecord:
        path = f"/generations/{generation_id}"
        data = await self._request("GET", path)
        with _parsing_response(path):
            return GenerationRecord.from_payload(data["generation"])


async def poll_generation(
    client: StudioApiClient,
    generation_id: str,
    interval: float = 1.0,
    timeout: float = 60.0,
) -> GenerationRecord:
    """Re-fetch a generation until it reaches a terminal status.

    Raises:
        TimeoutError: Still processing after `timeout` seconds
        ApiError: Any failed fetch
    """

    async def _poll() -> GenerationRecord:
        while True:
            generation = await client.get_generation(generation_id)
            if generation.is_terminal:
                return generation
            await asyncio.sleep(interval)

    return await asyncio.wait_for(_poll(), timeout)
