"""Utility functions for blob-mirror."""


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def plural(count: int, noun: str) -> str:
    """Format a count with a naively pluralised noun."""
    return f"{count} {noun}{'' if count == 1 else 's'}"
