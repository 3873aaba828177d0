from typing import Optional

import httpx

from core.config import logger
from core.errors import FetchError
from utils.cloudinary import delivery_url, is_remote_url


class RemoteFetcher:
    """Resolves a photo reference to bytes over HTTP, one attempt per call.

    Plain http(s) references are fetched as-is. Anything else is treated as a
    Cloudinary public id and resolved against the configured cloud.
    """

    def __init__(self, client: httpx.AsyncClient, cloud_name: str = "",
                 delivery_base: str = "https://res.cloudinary.com"):
        self.client = client
        self.cloud_name = cloud_name
        self.delivery_base = delivery_base

    def resolve(self, ref: str) -> str:
        ref = (ref or "").strip()
        if not ref:
            raise FetchError(ref, "referensi kosong")
        if is_remote_url(ref):
            return ref
        if not self.cloud_name:
            raise FetchError(ref, "bukan URL dan CLOUDINARY_CLOUD_NAME tidak diatur")
        return delivery_url(self.cloud_name, ref, base=self.delivery_base, fmt="")

    async def fetch(self, ref: str, url: Optional[str] = None) -> bytes:
        target = url or self.resolve(ref)
        try:
            resp = await self.client.get(target, follow_redirects=True)
        except httpx.TimeoutException as ex:
            raise FetchError(ref, f"timeout: {ex.__class__.__name__}") from ex
        except httpx.HTTPError as ex:
            raise FetchError(ref, ex) from ex
        if resp.status_code < 200 or resp.status_code >= 300:
            raise FetchError(ref, f"HTTP {resp.status_code}")
        if not resp.content:
            raise FetchError(ref, "respon kosong")
        logger.debug(f"fetched {target} ({len(resp.content)} bytes)")
        return resp.content


def make_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout))
