"""Image reference resolution.

Backends cannot reach images served by the annotation app itself or by a
loopback host, so those are fetched here and re-encoded as base64 data URLs.
External URLs are forwarded unchanged unless the caller asks for inline bytes.
"""

import base64
import ipaddress
import logging
import re
from urllib.parse import urljoin, urlsplit

import httpx

from .errors import ContentResolutionError

log = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)
_DEFAULT_MEDIA_TYPE = "application/octet-stream"
_DEFAULT_PORTS = {"http": 80, "https": 443}
_DEFAULT_FETCH_TIMEOUT = 30.0


def is_data_url(reference: str) -> bool:
    return reference.startswith("data:")


def split_data_url(payload: str) -> tuple[str, str] | None:
    """Return ``(media_type, base64_data)`` or None if the payload is not self-describing."""
    match = _DATA_URL_RE.match(payload)
    if match is None:
        return None
    return match.group(1), match.group(2)


def encode_data_url(data: bytes, media_type: str | None = None) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{media_type or _DEFAULT_MEDIA_TYPE};base64,{encoded}"


def _origin(url: str) -> tuple[str, str, int | None]:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    return scheme, (parts.hostname or "").lower(), port or _DEFAULT_PORTS.get(scheme)


def _is_loopback_host(host: str) -> bool:
    if not host:
        return False
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class ContentResolver:
    def __init__(
        self,
        app_origin: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = _DEFAULT_FETCH_TIMEOUT,
    ):
        self._app_origin = app_origin.rstrip("/") if app_origin else None
        self._transport = transport
        self._timeout = timeout

    @property
    def app_origin(self) -> str | None:
        return self._app_origin

    def absolute_url(self, reference: str) -> str:
        if reference.startswith("/") and not reference.startswith("//"):
            if not self._app_origin:
                raise ContentResolutionError(
                    reference,
                    f"Cannot resolve relative image reference without an app origin: {reference}",
                )
            return urljoin(self._app_origin + "/", reference)
        return reference

    def is_local(self, url: str) -> bool:
        """True when a remote backend could not fetch ``url`` itself."""
        _, host, _ = _origin(url)
        if _is_loopback_host(host):
            return True
        if self._app_origin:
            return _origin(url) == _origin(self._app_origin)
        return False

    async def resolve(self, reference: str, *, inline: bool = False) -> str:
        if is_data_url(reference):
            return reference

        url = self.absolute_url(reference)
        if not inline and not self.is_local(url):
            return url
        return await self.fetch_data_url(url, reference=reference)

    async def fetch_data_url(self, url: str, *, reference: str | None = None) -> str:
        reference = reference or url
        if urlsplit(url).scheme.lower() not in _DEFAULT_PORTS:
            raise ContentResolutionError(reference, f"Unsupported image reference: {reference}")

        log.debug("Fetching image content from %s", url)
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("Failed to load image %s: %s", reference, exc)
            raise ContentResolutionError(reference) from exc

        media_type = response.headers.get("content-type", "").split(";")[0].strip()
        return encode_data_url(response.content, media_type)
