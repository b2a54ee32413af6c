"""Pinata IPFS publisher for generated variant images and thumbnails."""

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from stylegen.services.exceptions import FailureKind, PublishError

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


@dataclass(frozen=True)
class PublishedArtifact:
    """Stable reference to a persisted artifact."""

    id: str
    url: str


def decode_data_url(artifact: str) -> Optional[tuple[bytes, str]]:
    """Decode a base64 data URL into (bytes, mime type).

    Returns:
        Decoded payload, or None if the string is not a data URL

    Raises:
        PublishError: INVALID_INPUT if the payload is not valid base64
    """
    match = DATA_URL_PATTERN.match(artifact)
    if not match:
        return None
    try:
        return base64.b64decode(match.group("data"), validate=True), match.group("mime")
    except (binascii.Error, ValueError) as e:
        raise PublishError(FailureKind.INVALID_INPUT, f"Malformed data URL: {e}") from e


class PinataPublisher:
    """Artifact publisher using the Pinata pinning service."""

    def __init__(
        self,
        jwt_token: str,
        gateway_domain: str = "gateway.pinata.cloud",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Pinata publisher.

        Args:
            jwt_token: Pinata API JWT token (from PINATA_JWT env var)
            gateway_domain: Gateway domain for URL generation (default: public gateway)
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (used to stub the network in tests)
        """
        self.jwt_token = jwt_token
        self.gateway_domain = gateway_domain
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.base_url = "https://api.pinata.cloud"
        self.headers = {"Authorization": f"Bearer {jwt_token}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def fetch_bytes(self, url: str) -> bytes:
        """Download an artifact from a URL (or decode it from a data URL).

        Args:
            url: HTTP/HTTPS URL of the artifact, e.g. a Replicate CDN URL

        Returns:
            Raw artifact bytes

        Raises:
            PublishError: TIMEOUT on timeout, PROVIDER_ERROR on any other download failure
        """
        decoded = decode_data_url(url)
        if decoded is not None:
            return decoded[0]

        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.TimeoutException as e:
            raise PublishError(FailureKind.TIMEOUT, f"Download timeout for {url}: {e}") from e
        except httpx.HTTPError as e:
            raise PublishError(FailureKind.PROVIDER_ERROR, f"Download failed for {url}: {e}") from e

    async def publish(
        self, artifact: str | bytes, name: str, content_type: str = "image/jpeg"
    ) -> PublishedArtifact:
        """Persist an artifact and return its stable reference.

        Args:
            artifact: Raw bytes, a data URL, or an HTTP(S) URL to download first
            name: Semantic filename (e.g., job-<id>-variant-3.jpg)
            content_type: MIME type used when the artifact is raw bytes

        Returns:
            PublishedArtifact with the IPFS CID as id and a gateway URL

        Raises:
            PublishError: Classified failure (RATE_LIMITED, TIMEOUT, INVALID_INPUT, STORAGE_ERROR)
        """
        if not self.jwt_token:
            raise PublishError(FailureKind.STORAGE_ERROR, "PINATA_JWT not configured")

        if isinstance(artifact, str):
            decoded = decode_data_url(artifact)
            if decoded is not None:
                data, content_type = decoded
            else:
                data = await self.fetch_bytes(artifact)
        else:
            data = artifact

        try:
            async with self._client() as client:
                files = {"file": (name, data, content_type)}
                pinata_metadata = {"name": name}

                response = await client.post(
                    f"{self.base_url}/pinning/pinFileToIPFS",
                    headers=self.headers,
                    files=files,
                    data={
                        "pinataOptions": '{"cidVersion": 1}',
                        "pinataMetadata": json.dumps(pinata_metadata),
                    },
                )

                # Error classification
                if response.status_code == 429:
                    raise PublishError(
                        FailureKind.RATE_LIMITED, f"Rate limit exceeded: {response.text}"
                    )
                elif response.status_code == 400:
                    raise PublishError(FailureKind.INVALID_INPUT, f"Bad request: {response.text}")
                elif response.status_code in (401, 403):
                    raise PublishError(
                        FailureKind.STORAGE_ERROR,
                        f"Pinata rejected credentials ({response.status_code}). "
                        "Check PINATA_JWT configuration and pinFileToIPFS permission.",
                    )
                elif response.status_code >= 400:
                    raise PublishError(
                        FailureKind.STORAGE_ERROR,
                        f"Storage unavailable ({response.status_code}): {response.text}",
                    )

                cid = response.json()["IpfsHash"]

        except httpx.TimeoutException as e:
            raise PublishError(
                FailureKind.TIMEOUT, f"Request timeout after {self.timeout_seconds}s: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise PublishError(FailureKind.STORAGE_ERROR, f"Network error: {e}") from e
        except (KeyError, ValueError) as e:
            raise PublishError(FailureKind.STORAGE_ERROR, f"Unexpected Pinata response: {e}") from e

        return PublishedArtifact(id=cid, url=self.get_gateway_url(cid))

    def get_gateway_url(self, cid: str) -> str:
        """Convert CID to gateway URL for browser access.

        Args:
            cid: IPFS CID

        Returns:
            Gateway URL (e.g., "https://gateway.pinata.cloud/ipfs/<CID>")
        """
        return f"https://{self.gateway_domain}/ipfs/{cid}"
