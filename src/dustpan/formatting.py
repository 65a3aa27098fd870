"""Formatting helpers for sizes, rates and labels."""

_UNITS = ["K", "M", "G", "T"]


def human_bytes(size_bytes: int) -> str:
    """
    Format bytes with one decimal place (1024-based).

    A unit is only used once the value is strictly greater than it,
    so exactly 1 KiB renders as "1024 B".
    """
    if size_bytes > 1 << 40:
        return f"{size_bytes / (1 << 40):.1f} TB"
    elif size_bytes > 1 << 30:
        return f"{size_bytes / (1 << 30):.1f} GB"
    elif size_bytes > 1 << 20:
        return f"{size_bytes / (1 << 20):.1f} MB"
    elif size_bytes > 1 << 10:
        return f"{size_bytes / (1 << 10):.1f} KB"
    else:
        return f"{size_bytes} B"


def _scaled(size_bytes: int) -> tuple[float, str]:
    value = float(size_bytes)
    suffix = ""
    for unit in _UNITS:
        if value < 1024:
            break
        value /= 1024
        suffix = unit
    return value, suffix


def human_bytes_short(size_bytes: int) -> str:
    """Format bytes as a rounded integer with a one-letter suffix ("2K", "500M")."""
    if size_bytes < 1024:
        return str(size_bytes)
    # Pick the unit from the exact value, then round within it
    value, suffix = _scaled(size_bytes)
    return f"{int(value + 0.5)}{suffix}"


def human_bytes_compact(size_bytes: int) -> str:
    """Format bytes with one decimal and a one-letter suffix ("1.5K")."""
    if size_bytes < 1024:
        return str(size_bytes)
    value, suffix = _scaled(size_bytes)
    return f"{value:.1f}{suffix}"


def format_rate(mb_per_sec: float) -> str:
    """Format a throughput in MB/s, with fewer decimals as it grows."""
    if mb_per_sec < 0.01:
        return "0 MB/s"
    if mb_per_sec < 1:
        return f"{mb_per_sec:.2f} MB/s"
    if mb_per_sec < 10:
        return f"{mb_per_sec:.1f} MB/s"
    return f"{mb_per_sec:.0f} MB/s"


def shorten(text: str, max_len: int) -> str:
    """Truncate text to max_len characters, marking the cut with an ellipsis."""
    if len(text) <= max_len:
        return text
    if max_len <= 1:
        return "…"
    return text[: max_len - 1] + "…"


def format_count(count: int) -> str:
    """Format a file count with thousands separators."""
    return f"{count:,}"
