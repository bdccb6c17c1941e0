# vision_loop/utils/formatting.py

from vision_loop.constants import UNLIMITED_PLAYBACK_DURATION
from vision_loop.core.models import DurationUnit


def format_size_mb(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):.2f}"

def calculate_total_seconds(value: str, unit: DurationUnit) -> int:
    """
    Converts a user-typed amount in `unit` to seconds.

    Empty, non-numeric, negative and zero input all mean "no limit" (-1).
    """
    try:
        amount = int(str(value).strip())
    except ValueError:
        return UNLIMITED_PLAYBACK_DURATION
    if amount <= 0:
        return UNLIMITED_PLAYBACK_DURATION
    return amount * DurationUnit.from_value(unit).seconds

def duration_display_value(total_seconds: int, unit: DurationUnit) -> str:
    """Inverse of calculate_total_seconds for form fields. Whole units only."""
    if total_seconds is None or total_seconds <= 0:
        return ""
    return str(total_seconds // DurationUnit.from_value(unit).seconds)
