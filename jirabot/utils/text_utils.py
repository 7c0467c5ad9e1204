"""
Text utilities for Discord messages.
"""

from typing import List

from ..config import MAX_MESSAGE_LENGTH


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 1].rstrip() + "…"


def _break_point(chunk: str, max_length: int) -> int:
    """Find where to end a chunk: paragraph, line, sentence, then word.

    Returns the number of characters to keep, or -1 if no break point lies
    in the second half of the chunk.
    """
    for sep, keep in (("\n\n", 0), ("\n", 0), (". ", 1), ("! ", 1), ("? ", 1), (" ", 0)):
        index = chunk.rfind(sep)
        if index > max_length // 2:
            return index + keep
    return -1


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a long message into chunks that fit Discord's character limit.

    Args:
        text: The text to split.
        max_length: Maximum length per chunk (default: MAX_MESSAGE_LENGTH).

    Returns:
        A list of message chunks, each within the max_length limit.
    """
    if len(text) <= max_length:
        return [text]

    chunks = []
    remaining = text
    while len(remaining) > max_length:
        cut = _break_point(remaining[:max_length], max_length)
        if cut == -1:
            # Hard break if no good break point found
            chunks.append(remaining[:max_length])
            remaining = remaining[max_length:]
            continue
        chunks.append(remaining[:cut].rstrip())
        remaining = remaining[cut:].lstrip()

    if remaining:
        chunks.append(remaining)
    return chunks


def format_error_message(title: str, error: str) -> str:
    """Format an error message consistently for Discord."""
    return f"❌ **{title}:** {error}"
