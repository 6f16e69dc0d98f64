# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import quote, urlencode

import requests

from shared.errors import FetchExhausted

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds
MAX_ATTEMPTS = 3
BASE_DELAY = 2.0  # seconds, multiplied by the attempt number


class Fetcher:
    """
    Sequential HTTP GET with bounded retry and linear backoff.

    Attempt n (1-based) that fails is followed by a sleep of
    `base_delay * n` seconds, except after the final attempt.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.session = session or requests.Session()
        self._sleep = sleep

    def url_for(self, path: str, params: Optional[dict] = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def api_url(self, *segments: str, params: Optional[dict] = None) -> str:
        """Builds an upstream `/api/...` url, quoting each path segment."""
        path = "/".join(["api", *(quote(segment, safe="") for segment in segments)])
        return self.url_for(path, params)

    def fetch_json(self, url: str) -> Any:
        """
        Fetches `url` and decodes its JSON body.

        Args:
            url (str): The absolute url to fetch.

        Returns:
            Any: The decoded JSON payload.

        Raises:
            FetchExhausted: If every attempt failed. Carries the last failure reason.
        """
        last_reason = "no attempts made"
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except (requests.RequestException, ValueError) as exc:
                last_reason = str(exc) or exc.__class__.__name__
                logger.warning(
                    "Attempt %d/%d failed for %s: %s",
                    attempt,
                    self.max_attempts,
                    url,
                    last_reason,
                )
            if attempt < self.max_attempts:
                self._sleep(self.base_delay * attempt)
        raise FetchExhausted(url, self.max_attempts, last_reason)

    def fetch_bytes(self, url: str) -> tuple[bytes, str]:
        """
        Fetches raw bytes with a single attempt.

        Returns:
            tuple[bytes, str]: The body and its content type.
        """
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "application/octet-stream")
        return response.content, content_type
