"""
Chat-completions client that generates bilingual post summaries.
"""
import asyncio
import json
import logging
from typing import Dict, Optional

import aiohttp
import async_timeout
import backoff

from moltsum.errors import (
    EmptyResponseError,
    MaxRetriesError,
    RateLimitedError,
    TransportError,
    UpstreamError,
)
from moltsum.utils.http import REQUEST_TIMEOUT, auth_headers, extract_message_text, is_rate_limited

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a content editor for a tech news aggregator. Your job is to write reader-friendly summaries of posts.

Output format:
1. First write a Chinese title (one line, concise and engaging)
2. Then a separator: ---
3. Then a Chinese summary (中文摘要, 150-400 words)
4. Then a separator line: ---
5. Then an English title (one line, concise and engaging)
6. Then a separator: ---
7. Then an English summary

Each summary should be 150-400 words, written in Markdown format.
Preserve the core arguments, technical details, and key insights from the original post.
Make the summaries engaging and easy to read. Use bullet points or subheadings where appropriate.
Do NOT include the "中文摘要" or "English Summary" headers — just start writing the summary directly."""

COMPLETIONS_PATH = "/v1/chat/completions"


def decode_body(data: bytes, charset: str) -> str:
    """Decode an error body for reporting, replacing undecodable bytes."""
    try:
        return data.decode(charset, errors='replace')
    except LookupError:
        return data.decode('utf-8', errors='replace')


def build_user_message(title: str, content: str) -> str:
    return f"Please summarize the following post:\n\nTitle: {title}\n\nContent:\n{content}"


class SummaryGenerator:
    """
    Calls a chat-completions endpoint once per post.

    Rate-limited responses (HTTP 429) are retried with exponential backoff;
    every other failure is raised straight away.
    """
    def __init__(
        self,
        auth_token: str,
        base_url: str,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.auth_token = auth_token
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

        self._post_with_retry = backoff.on_exception(
            backoff.expo,
            RateLimitedError,
            max_tries=max_retries,
            factor=retry_base_delay,
            jitter=None,
            on_backoff=self._log_backoff,
        )(self._post_once)

    @property
    def url(self) -> str:
        return f"{self.base_url}{COMPLETIONS_PATH}"

    @property
    def session(self) -> aiohttp.ClientSession:
        """
        Lazy initialization of aiohttp session.

        Returns:
            aiohttp.ClientSession: The HTTP session
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=auth_headers(self.auth_token))
        return self._session

    async def close_session(self):
        """Close aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SummaryGenerator":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close_session()

    def build_request(self, title: str, content: str) -> Dict:
        return {
            'model': self.model,
            'max_tokens': self.max_tokens,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': build_user_message(title, content)},
            ],
            'stream': False,
            'temperature': self.temperature,
            'top_p': 1,
        }

    async def generate(self, title: str, content: str) -> str:
        """
        Generate the raw bilingual summary text for one post.

        Args:
            title: Post title
            content: Post body

        Returns:
            Text of the completion

        Raises:
            TransportError: Connection failure or timeout
            UpstreamError: Non-success status other than 429
            EmptyResponseError: Success without any text
            MaxRetriesError: Still rate limited after max_retries attempts
        """
        body = self.build_request(title, content)
        try:
            return await self._post_with_retry(body)
        except RateLimitedError as e:
            raise MaxRetriesError(self.max_retries, e) from e

    async def _post_once(self, body: Dict) -> str:
        try:
            async with async_timeout.timeout(self.timeout):
                async with self.session.post(self.url, json=body) as response:
                    data = await response.read()
                    status = response.status
                    charset = response.charset or 'utf-8'
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Request to {self.url} failed: {e!r}") from e

        if is_rate_limited(status):
            raise RateLimitedError(status, decode_body(data, charset))
        if not 200 <= status < 300:
            raise UpstreamError(status, decode_body(data, charset))

        try:
            text = data.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            raise EmptyResponseError(f"Response is not valid {charset} text: {data[:200]!r}") from e

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise EmptyResponseError(f"Response is not JSON: {text[:200]}") from e

        message = extract_message_text(payload)
        if not message:
            raise EmptyResponseError()
        return message

    def _log_backoff(self, details: Dict):
        logger.warning(
            f"Rate limited, waiting {details['wait']:.2f}s before retry "
            f"(attempt {details['tries']}/{self.max_retries})"
        )
