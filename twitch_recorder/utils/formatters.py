import re


def format_duration_human(total_seconds: int) -> str:
    """
    Formats a duration in total seconds into a human-readable string
    (e.g., "2 hours, 30 minutes, 15 seconds"). Used when a recording ends.
    """
    total_seconds = int(total_seconds)
    if total_seconds < 0:
        total_seconds = 0
    if total_seconds == 0:
        return "no time"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days > 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if minutes > 0:
        parts.append(f"{minutes} minute{'s' if minutes > 1 else ''}")
    if seconds > 0:
        parts.append(f"{seconds} second{'s' if seconds > 1 else ''}")

    return ", ".join(parts)


def mask_secret(value: str, visible: int = 4) -> str:
    """Masks all but the last `visible` characters of a credential."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def sanitize_filename(name: str) -> str:
    if not name:
        return "unknown"
    cleaned = re.sub(r"[^\w _-]", "", name).strip()
    return cleaned or "unknown"
