"""RSA-PSS request signing for the venue API, as an httpx.Auth flow.

Signed message: f"{timestamp_ms}{METHOD}{path_without_query}" (SHA-256, PSS
with MGF1 and maximum salt length), sent base64-encoded with the key id and
timestamp headers.
"""

import base64
import time
from collections.abc import Callable, Generator

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

KEY_HEADER = "KALSHI-ACCESS-KEY"
SIGNATURE_HEADER = "KALSHI-ACCESS-SIGNATURE"
TIMESTAMP_HEADER = "KALSHI-ACCESS-TIMESTAMP"


def load_private_key(private_key_pem: str) -> RSAPrivateKey:
    # .env files often carry the PEM with literal "\n" sequences
    pem_content = private_key_pem.replace("\\n", "\n")
    try:
        key = serialization.load_pem_private_key(pem_content.encode(), password=None)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Failed to load RSA private key: {exc}") from exc
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("Private key must be an RSA key")
    return key


class VenueRequestSigner(httpx.Auth):
    def __init__(
        self,
        api_key: str,
        private_key: RSAPrivateKey,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        self.api_key = api_key
        self.private_key = private_key
        self._clock_ms = clock_ms

    def sign(self, timestamp_ms: int, method: str, path: str) -> str:
        path_without_query = path.split("?")[0]
        message = f"{timestamp_ms}{method.upper()}{path_without_query}"
        signature = self.private_key.sign(
            message.encode("utf-8"),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.MAX_LENGTH,
            ),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("utf-8")

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        timestamp_ms = self._clock_ms()
        request.headers[KEY_HEADER] = self.api_key
        request.headers[SIGNATURE_HEADER] = self.sign(
            timestamp_ms, request.method, request.url.path
        )
        request.headers[TIMESTAMP_HEADER] = str(timestamp_ms)
        yield request
