"""
HTTP utilities for moltsum.
"""
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60  # seconds
RATE_LIMIT_STATUS = 429

DEFAULT_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
    'User-Agent': 'moltsum/0.1',
}


def auth_headers(token: str) -> Dict[str, str]:
    """Headers for a bearer-authenticated JSON request."""
    headers = dict(DEFAULT_HEADERS)
    headers['Authorization'] = f"Bearer {token}"
    return headers


def is_rate_limited(status: int) -> bool:
    return status == RATE_LIMIT_STATUS


def extract_message_text(payload: Any) -> Optional[str]:
    """
    Pull the generated text out of a completion response.

    Understands the chat-completions shape (``choices[0].message.content``)
    and the messages shape (``content`` as a list of text blocks).

    Args:
        payload: Decoded JSON response

    Returns:
        The text, or None if there is none
    """
    if not isinstance(payload, dict):
        return None

    choices = payload.get('choices')
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get('message') or {}
        content = message.get('content') if isinstance(message, dict) else None
        if isinstance(content, str) and content:
            return content

    blocks = payload.get('content')
    if isinstance(blocks, list):
        texts = [
            block.get('text') for block in blocks
            if isinstance(block, dict) and block.get('type', 'text') == 'text'
            and isinstance(block.get('text'), str)
        ]
        text = ''.join(texts)
        if text:
            return text

    return None
