"""Time formatting helpers."""
import math


def format_seconds(seconds: float) -> str:
    """Format seconds as m:ss, rounded half up (e.g. 83.5 -> "1:24")."""
    total = max(0, int(math.floor(seconds + 0.5)))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"
