"""
Helper functions for formatting transfer figures into human-readable strings.
"""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    if bytes_size < 1024:
        return f"{int(bytes_size)} B"

    value = float(bytes_size)
    for unit in SIZE_UNITS[1:]:
        value /= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            return f"{value:.1f} {unit}"
    return f"{value:.1f} {SIZE_UNITS[-1]}"


def format_speed(bytes_per_second: float) -> str:
    """Formats a transfer rate (e.g., '12.4 MB/s')."""
    return f"{format_size(bytes_per_second)}/s"


def format_duration(seconds: float) -> str:
    """Formats a duration as e.g. '2h 34m 12s'."""
    remaining = int(seconds)
    parts = []
    for suffix, length in (("h", 3600), ("m", 60)):
        amount, remaining = divmod(remaining, length)
        if amount:
            parts.append(f"{amount}{suffix}")
    if remaining or not parts:
        parts.append(f"{remaining}s")
    return " ".join(parts)
