"""
SCROW - Timelock Converter

Human durations to relative-timelock block counts. Always rounds up so the
dispute window is never shorter than requested.
"""

from ..config import Network
from ..constants import SECONDS_PER_HOUR, SECONDS_PER_DAY
from ..errors import TimelockOutOfRange


def seconds_to_blocks(seconds: int, network: Network) -> int:
    """ceil(seconds / block interval)."""
    if seconds < 0:
        raise TimelockOutOfRange(seconds, f"Duration must not be negative, got {seconds}s")
    return -(-seconds // network.block_interval_seconds)


def hours_to_blocks(hours: int, network: Network) -> int:
    return seconds_to_blocks(hours * SECONDS_PER_HOUR, network)


def days_to_blocks(days: int, network: Network) -> int:
    return seconds_to_blocks(days * SECONDS_PER_DAY, network)


def days_hours_to_blocks(days: int, hours: int, network: Network) -> int:
    """Blocks for a duration given as days plus hours (e.g. from a form)."""
    if days < 0 or hours < 0:
        raise TimelockOutOfRange(
            (days, hours), f"Duration must not be negative, got {days}d {hours}h"
        )
    return seconds_to_blocks(days * SECONDS_PER_DAY + hours * SECONDS_PER_HOUR, network)


def blocks_to_seconds(blocks: int, network: Network) -> int:
    """Expected wall-clock length of a timelock, for display."""
    if blocks < 0:
        raise TimelockOutOfRange(blocks)
    return blocks * network.block_interval_seconds
