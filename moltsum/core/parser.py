"""
Parsing of bilingual generation responses.

The generator is asked for four sections separated by lines holding only
``---``: Chinese title, Chinese summary, English title, English summary.
Responses produced before titles were requested carry only the two summaries,
and anything else is kept whole as the English summary.
"""
import re

from moltsum.core.post import BilingualSummary, SUMMARY_SEPARATOR

SEPARATOR_PATTERN = re.compile(r"\r?\n---\r?\n")


def parse_bilingual(raw: str) -> BilingualSummary:
    """
    Split a generation response into titles and summaries.

    Args:
        raw: Text returned by the generation endpoint

    Returns:
        BilingualSummary with whichever fields the response provided
    """
    parts = SEPARATOR_PATTERN.split(raw)

    if len(parts) >= 4:
        return BilingualSummary(
            raw=raw,
            title_zh=parts[0].strip(),
            summary_zh=parts[1].strip(),
            title_en=parts[2].strip(),
            # A separator inside the English body is part of the summary
            summary_en=SUMMARY_SEPARATOR.join(parts[3:]).strip(),
        )

    if len(parts) >= 2:
        return BilingualSummary(
            raw=raw,
            summary_zh=parts[0].strip(),
            summary_en=SUMMARY_SEPARATOR.join(parts[1:]).strip(),
        )

    return BilingualSummary(raw=raw, summary_en=raw)
