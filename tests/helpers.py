"""Shared builders for snapshot fixtures and a scripted generator."""
import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional


LONG_CONTENT = "Agents coordinating over shared memory need clear ownership rules. " * 3

FOUR_PART_RESPONSE = "中文标题\n---\n中文摘要内容\n---\nEnglish Title\n---\nEnglish summary body"


def make_post(post_id: Optional[str], content: Optional[str] = LONG_CONTENT, **extra) -> Dict:
    post = {"title": f"Post {post_id}", "upvotes": 3, "author": {"name": "molty"}}
    if post_id is not None:
        post["id"] = post_id
    if content is not None:
        post["content"] = content
    post.update(extra)
    return post


def make_snapshot(hot: List[Dict] = (), top: List[Dict] = (), new: List[Dict] = (),
                  date: str = "2024-01-01") -> Dict:
    return {
        "date": date,
        "fetchedAt": f"{date}T08:00:00.000Z",
        "feeds": {"hot": list(hot), "top": list(top), "new": list(new)},
        "submolts": [],
        "stats": {"hotCount": len(hot), "topCount": len(top), "newCount": len(new)},
    }


def write_json(path: Path, data: Dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def read_json(path: Path) -> Dict:
    return json.loads(path.read_text(encoding="utf-8"))


class FakeGenerator:
    """Records calls and answers from a per-post script."""

    def __init__(self, responses: Optional[Dict[str, object]] = None, default: str = FOUR_PART_RESPONSE):
        self.responses = responses or {}
        self.default = default
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, title: str, content: str) -> str:
        self.calls.append(title)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            response = self.responses.get(title, self.default)
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.in_flight -= 1
