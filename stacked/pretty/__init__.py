"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, Optional

def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except (AttributeError, ValueError, OSError):
        return 80


def header(text: str, use_emoji: bool = True) -> str:
    """Create a boxed header with optional emoji."""
    emoji = "📚 " if use_emoji else ""
    width = max(get_term_width(), len(text) + len(emoji) + 4)

    h_line = "─" * (width - 2)
    v_line = "│"

    result = [
        f"┌{h_line}┐",
        f"{v_line} {emoji}{text}{' ' * (width - len(text) - len(emoji) - 3)}{v_line}",
        f"└{h_line}┘"
    ]

    return "\n".join(result)


def print_header(text: str, use_emoji: bool = True, file: Optional[IO[str]] = None) -> None:
    """Print a header to file (default stdout)."""
    if file is None:
        file = sys.stdout
    print(header(text, use_emoji), file=file)
