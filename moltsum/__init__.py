"""
moltsum - Bilingual summary enrichment for Moltbook snapshots

Scans the dated JSON snapshots written by the feed fetcher, generates
Chinese/English summaries for posts that lack one, and writes them back
into every snapshot that references the post.
"""

__version__ = "0.1.0"
