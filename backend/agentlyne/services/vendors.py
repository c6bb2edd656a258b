"""
Third-party voice vendors

- VendorAssetProxy: serves the browser SDK bundles from a local disk cache,
  refilled from a list of CDNs; never breaks the page when all CDNs fail.
- VoiceSessionClient: mints short-lived web call / realtime credentials with
  the server-held API keys, so the keys never reach the browser.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


# ==================== SDK bundles ====================

@dataclass(frozen=True)
class VendorAssetSpec:
    name: str
    filename: str
    candidates: Tuple[str, ...]
    marker: Optional[bytes] = None  # must appear in a genuine bundle


VENDOR_ASSETS: Dict[str, VendorAssetSpec] = {
    "retell-client": VendorAssetSpec(
        name="retell-client",
        filename="retell-client.js",
        candidates=(
            "https://cdn.jsdelivr.net/npm/retell-client-js-sdk/dist/index.umd.js",
            "https://unpkg.com/retell-client-js-sdk/dist/index.umd.js",
        ),
        marker=b"Retell",
    ),
    "webrtc-adapter": VendorAssetSpec(
        name="webrtc-adapter",
        filename="webrtc-adapter.js",
        candidates=(
            "https://webrtc.github.io/adapter/adapter-latest.js",
            "https://cdn.jsdelivr.net/npm/webrtc-adapter/out/adapter.js",
            "https://unpkg.com/webrtc-adapter/out/adapter.js",
        ),
    ),
}


@dataclass
class VendorAsset:
    body: bytes
    origin: str  # cache, network, stale, stub


class VendorAssetProxy:
    """Cache-first proxy for a fixed registry of SDK bundles"""

    def __init__(
        self,
        cache_dir: Path,
        min_bytes: int = 1024,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        assets: Dict[str, VendorAssetSpec] = VENDOR_ASSETS,
    ):
        self.cache_dir = Path(cache_dir)
        self.min_bytes = min_bytes
        self.timeout = timeout
        self.transport = transport
        self.assets = assets

    def looks_valid(self, spec: VendorAssetSpec, body: Optional[bytes]) -> bool:
        if not body or len(body) < self.min_bytes:
            return False
        head = body.lstrip()[:64].lower()
        # CDNs answer missing packages with an HTML error page
        if head.startswith(b"<!doctype") or head.startswith(b"<html"):
            return False
        if spec.marker and spec.marker not in body:
            return False
        return True

    def cache_path(self, spec: VendorAssetSpec) -> Path:
        return self.cache_dir / spec.filename

    def read_cache(self, spec: VendorAssetSpec) -> Optional[bytes]:
        path = self.cache_path(spec)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("vendor %s: cannot read cache %s: %s", spec.name, path, e)
            return None

    def write_cache(self, spec: VendorAssetSpec, body: bytes):
        path = self.cache_path(spec)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(body)
            tmp.replace(path)
        except OSError as e:
            logger.warning("vendor %s: cannot write cache %s: %s", spec.name, path, e)

    async def fetch(self, spec: VendorAssetSpec) -> Optional[bytes]:
        """First candidate URL whose body passes validation, or None"""
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=self.timeout,
            follow_redirects=True,
        ) as client:
            for url in spec.candidates:
                try:
                    response = await client.get(url)
                except httpx.HTTPError as e:
                    logger.warning("vendor %s: %s failed: %s", spec.name, url, e)
                    continue

                if response.status_code != 200:
                    logger.warning("vendor %s: %s returned %s", spec.name, url, response.status_code)
                    continue
                if not self.looks_valid(spec, response.content):
                    logger.warning(
                        "vendor %s: %s returned an unusable body (%s bytes)",
                        spec.name, url, len(response.content),
                    )
                    continue

                logger.info("vendor %s: fetched %s bytes from %s", spec.name, len(response.content), url)
                return response.content
        return None

    @staticmethod
    def stub(spec: VendorAssetSpec) -> bytes:
        return (
            f"console.error('[{spec.name}] SDK could not be loaded from any source; "
            f"voice features are unavailable.');\n"
        ).encode("utf-8")

    async def get(self, name: str, refresh: bool = False) -> VendorAsset:
        """
        Resolve an asset by registry name. Raises KeyError for unknown names.
        Order: valid cache (unless refresh) -> network -> stale cache -> stub.
        """
        spec = self.assets[name]

        cached = self.read_cache(spec)
        if not refresh and self.looks_valid(spec, cached):
            return VendorAsset(cached, "cache")

        fetched = await self.fetch(spec)
        if fetched is not None:
            self.write_cache(spec, fetched)
            return VendorAsset(fetched, "network")

        if cached:
            logger.warning("vendor %s: all sources failed, serving stale cache", spec.name)
            return VendorAsset(cached, "stale")

        logger.error("vendor %s: all sources failed and nothing cached, serving stub", spec.name)
        return VendorAsset(self.stub(spec), "stub")

    def status(self) -> Dict[str, dict]:
        report = {}
        for name, spec in self.assets.items():
            path = self.cache_path(spec)
            body = self.read_cache(spec)
            report[name] = {
                "path": str(path),
                "cached": body is not None,
                "bytes": len(body) if body else 0,
                "valid": self.looks_valid(spec, body),
            }
        return report


# ==================== Session minting ====================

RETELL_WEB_CALL_URL = "https://api.retellai.com/v2/create-web-call"
OPENAI_REALTIME_SESSIONS_URL = "https://api.openai.com/v1/realtime/sessions"


class VendorNotConfigured(Exception):
    """The server has no credential for this vendor"""


class VendorError(Exception):
    """The vendor call failed or returned something unusable"""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def first_present(data: Dict[str, Any], keys: Iterable[str]) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


class VoiceSessionClient:
    """Server-side calls that mint browser credentials"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    async def _post_json(self, vendor: str, url: str, api_key: str, payload: dict,
                         extra_headers: Optional[dict] = None) -> dict:
        headers = {"Authorization": f"Bearer {api_key}"}
        if extra_headers:
            headers.update(extra_headers)

        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", vendor, e)
            raise VendorError(502, f"{vendor} unreachable") from e

        if not response.is_success:
            logger.error("%s returned %s: %s", vendor, response.status_code, response.text[:500])
            raise VendorError(response.status_code, f"{vendor} error")

        try:
            data = response.json()
        except ValueError as e:
            logger.error("%s returned non-JSON body: %s", vendor, response.text[:200])
            raise VendorError(502, f"{vendor} returned an invalid response") from e
        if not isinstance(data, dict):
            raise VendorError(502, f"{vendor} returned an invalid response")
        return data

    async def create_retell_web_call(self, agent_id: Optional[str] = None,
                                     metadata: Optional[dict] = None) -> dict:
        api_key = self.settings.RETELL_API_KEY
        agent_id = agent_id or self.settings.RETELL_AGENT_ID
        if not api_key:
            raise VendorNotConfigured("RETELL_API_KEY not configured")
        if not agent_id:
            raise VendorNotConfigured("RETELL_AGENT_ID not configured")

        payload = {"agent_id": agent_id}
        if metadata:
            payload["metadata"] = metadata

        data = await self._post_json("retell", RETELL_WEB_CALL_URL, api_key, payload)
        access_token = first_present(data, ("access_token", "accessToken", "token", "call_access_token"))
        if not access_token:
            logger.error("retell response without access token, keys: %s", sorted(data))
            raise VendorError(502, "retell returned no access token")

        return {
            "access_token": access_token,
            "call_id": first_present(data, ("call_id", "callId")),
            "agent_id": agent_id,
        }

    async def create_realtime_session(self, model: Optional[str] = None, voice: Optional[str] = None,
                                      instructions: Optional[str] = None) -> dict:
        api_key = self.settings.OPENAI_API_KEY
        if not api_key:
            raise VendorNotConfigured("OPENAI_API_KEY not configured")

        payload = {
            "model": model or self.settings.OPENAI_REALTIME_MODEL,
            "voice": voice or self.settings.OPENAI_REALTIME_VOICE,
        }
        instructions = instructions or self.settings.OPENAI_REALTIME_INSTRUCTIONS
        if instructions:
            payload["instructions"] = instructions

        data = await self._post_json(
            "openai", OPENAI_REALTIME_SESSIONS_URL, api_key, payload,
            extra_headers={"OpenAI-Beta": "realtime=v1"},
        )

        secret = data.get("client_secret")
        expires_at = None
        if isinstance(secret, dict):
            expires_at = secret.get("expires_at")
            secret = secret.get("value")
        if not secret:
            secret = first_present(data, ("value", "token"))
        if not secret:
            logger.error("openai realtime response without client secret, keys: %s", sorted(data))
            raise VendorError(502, "openai returned no client secret")

        return {
            "client_secret": secret,
            "expires_at": expires_at or data.get("expires_at"),
            "session_id": data.get("id"),
            "model": data.get("model", payload["model"]),
        }
