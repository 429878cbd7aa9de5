"""
Client for the Open Trivia Database question source.
Fetches categories and question batches; either call succeeds with a
complete payload or raises TriviaServiceError.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

DEFAULT_BASE_URL = "https://opentdb.com"

# Open Trivia DB response codes
RESPONSE_CODE_MESSAGES = {
    1: "Not enough questions match the selected options",
    2: "The question source rejected the request parameters",
    3: "Session token not found",
    4: "Session token has returned all available questions",
    5: "Too many requests, please wait a few seconds and try again",
}


class TriviaServiceError(Exception):
    """Raised when the question source is unreachable or returns an unusable response."""

    def __init__(self, message: str, response_code: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message)
        self.response_code = response_code
        self.status = status


class TriviaClient:
    """
    Thin asynchronous wrapper over the Open Trivia DB HTTP API.

    Categories are cached for ``categories_cache_ttl`` seconds since they
    rarely change.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: float = 10.0,
        categories_cache_ttl: float = 600.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the question source
            request_timeout: Total timeout per request in seconds
            categories_cache_ttl: Seconds a fetched category list stays valid
            session: Existing aiohttp session to borrow, one is created if None
        """
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip('/')
        self.request_timeout = request_timeout
        self.categories_cache_ttl = categories_cache_ttl
        self._session = session
        self._owns_session = session is None
        self._categories_cache: Optional[Dict[str, Any]] = None
        self._cache_timestamp: Optional[float] = None

    async def __aenter__(self) -> "TriviaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().get(url, params=params) as response:
                if response.status < 200 or response.status >= 300:
                    raise TriviaServiceError(
                        f"Question source returned HTTP {response.status}",
                        status=response.status
                    )
                payload = await response.json(content_type=None)
        except TriviaServiceError:
            raise
        except asyncio.TimeoutError as e:
            raise TriviaServiceError(f"Question source timed out after {self.request_timeout}s") from e
        except aiohttp.ClientError as e:
            raise TriviaServiceError(f"Could not reach question source: {e}") from e
        except ValueError as e:
            raise TriviaServiceError(f"Question source returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise TriviaServiceError("Question source returned an unexpected payload")
        return payload

    def clear_cache(self) -> None:
        self._categories_cache = None
        self._cache_timestamp = None

    async def fetch_categories(self) -> Dict[str, Any]:
        """
        Fetch available categories.

        Returns:
            Dictionary with a ``categories`` list of ``{'id', 'name'}`` entries

        Raises:
            TriviaServiceError: If the request fails or the payload is malformed
        """
        if self._categories_cache is not None and self._cache_timestamp is not None:
            if time.monotonic() - self._cache_timestamp < self.categories_cache_ttl:
                self.logger.debug("Returning cached categories")
                return self._categories_cache

        self.logger.info("Fetching categories from question source")
        payload = await self._get_json("/api_category.php")

        raw_categories = payload.get('trivia_categories', payload.get('categories'))
        if not isinstance(raw_categories, list):
            raise TriviaServiceError("Category response is missing the category list")

        try:
            categories = [{'id': int(item['id']), 'name': str(item['name'])} for item in raw_categories]
        except (KeyError, TypeError, ValueError) as e:
            raise TriviaServiceError(f"Malformed category entry: {e}") from e

        result = {'categories': categories}
        self._categories_cache = result
        self._cache_timestamp = time.monotonic()
        self.logger.info(f"Fetched {len(categories)} categories")
        return result

    async def fetch_questions(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Fetch a batch of questions.

        Args:
            params: Request parameters (``amount`` and optional ``category``,
                ``difficulty``, ``type``)

        Returns:
            List of raw question result dictionaries

        Raises:
            TriviaServiceError: On transport failure, non-success status, a
                non-zero response code or a malformed payload
        """
        self.logger.info(f"Fetching questions with params {params}")
        payload = await self._get_json("/api.php", params=params)

        response_code = payload.get('response_code', 0)
        if response_code != 0:
            message = RESPONSE_CODE_MESSAGES.get(
                response_code, f"Question source returned response code {response_code}"
            )
            raise TriviaServiceError(message, response_code=response_code)

        results = payload.get('results')
        if not isinstance(results, list) or not results:
            raise TriviaServiceError("Question source returned no questions")

        self.logger.info(f"Fetched {len(results)} questions")
        return results
