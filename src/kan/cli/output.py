"""Colorful CLI output helpers."""

import sys

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
DIM = "\033[2m"
RESET = "\033[0m"
CHECK = "\u2713"  # ✓
BULLET = "\u2022"  # •
CROSS = "\u2717"  # ✗
WARN = "!"


def _supports_color() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def colorize(text: str, color: str) -> str:
    """Apply color to text if stdout supports it."""
    if _supports_color():
        return f"{color}{text}{RESET}"
    return text


def success(message: str) -> None:
    """Print success message with green checkmark."""
    print(f"{colorize(CHECK, GREEN)} {message}")


def info(message: str) -> None:
    """Print info message with yellow bullet."""
    print(f"{colorize(BULLET, YELLOW)} {message}")


def warning(message: str) -> None:
    """Print warning message with yellow marker."""
    print(f"{colorize(WARN, YELLOW)} {message}")


def header(message: str) -> None:
    """Print header message in blue."""
    print(colorize(message, BLUE))


def error(message: str) -> None:
    """Print error message with red cross."""
    print(f"{colorize(CROSS, RED)} {message}")


def hint(message: str) -> None:
    """Print an indented, dimmed follow-up line."""
    print(f"    {colorize(message, DIM)}")
