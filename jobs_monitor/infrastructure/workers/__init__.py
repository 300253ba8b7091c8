"""Monitor worker implementations."""
from .hiring_page_monitor import (
    HiringPageMonitor,
    extract_job_titles,
    match_positions,
)

__all__ = [
    "HiringPageMonitor",
    "extract_job_titles",
    "match_positions",
]
