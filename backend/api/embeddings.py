"""
Embedding client for an OpenAI-compatible /embeddings endpoint.
"""

from typing import Dict, List, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """The embedding could not be produced."""


class EmbeddingClient:
    """
    Synchronous embedding client.

    Safe to share across threads: httpx.Client pools connections and is
    thread-safe for independent requests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            base_url: Endpoint root, e.g. "https://api.openai.com/v1"; None disables embedding
            model: Model name sent with every request
            api_key: Bearer token, if the endpoint needs one
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/') if base_url else None
        self.model = model
        self.timeout = timeout
        self.headers: Dict[str, str] = {'Content-Type': 'application/json'}
        if api_key:
            self.headers['Authorization'] = f"Bearer {api_key}"
        self._client: Optional[httpx.Client] = None

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    def _get_client(self) -> httpx.Client:
        """Get or create reusable HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=self.timeout,
                headers=self.headers,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            EmbeddingError: Disabled, request failed, or malformed response
        """
        if not self.enabled:
            raise EmbeddingError("Embedding endpoint is not configured")
        if not text or not text.strip():
            raise EmbeddingError("Nothing to embed")

        try:
            response = self._get_client().post(
                f"{self.base_url}/embeddings",
                json={'model': self.model, 'input': text},
            )
            response.raise_for_status()
            payload = response.json()
            return [float(v) for v in payload['data'][0]['embedding']]
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Unexpected embedding response: {e}") from e

    def close(self):
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None
