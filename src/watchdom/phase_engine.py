"""
Phase engine for phase-aware polling.

Pure functions mapping "now vs. target" into a polling phase and the
interval until the next query::

    POLL   more than 30 minutes before the target (or no target)
    HEAT   the last 30 minutes before the target
    GRACE  the first 3 hours after the target
    COOL   later than that
"""

from .enums import Phase


HEAT_THRESHOLD = 1800  # seconds before target
GRACE_THRESHOLD = 10800  # seconds after target
HEAT_NEAR_THRESHOLD = 300

HEAT_NEAR_INTERVAL = 10
HEAT_FAR_INTERVAL = 30
GRACE_INTERVAL = 10
COOL_MAX_INTERVAL = 3600


def determine_phase(target_epoch: int, now: int) -> Phase:
    """
    Determine the polling phase.

    Args:
        target_epoch: Target time in epoch seconds, 0 for no target
        now: Current time in epoch seconds

    Returns:
        The current Phase
    """
    if target_epoch == 0:
        return Phase.POLL

    seconds_to_target = target_epoch - now
    if seconds_to_target > HEAT_THRESHOLD:
        return Phase.POLL
    if seconds_to_target > 0:
        return Phase.HEAT
    if now - target_epoch < GRACE_THRESHOLD:
        return Phase.GRACE
    return Phase.COOL


def calculate_interval(base_interval: int, phase: Phase, seconds_to_target: int) -> int:
    """
    Calculate the next poll interval for a phase.

    COOL doubles the *original* base interval (capped at one hour); it
    never compounds across cycles.

    Args:
        base_interval: Operator-specified interval in seconds
        phase: Current phase
        seconds_to_target: ``target_epoch - now`` (negative after target)

    Returns:
        Seconds until the next query
    """
    if phase is Phase.HEAT:
        if seconds_to_target <= HEAT_NEAR_THRESHOLD:
            return HEAT_NEAR_INTERVAL
        if seconds_to_target <= HEAT_THRESHOLD:
            return HEAT_FAR_INTERVAL
        return base_interval

    if phase is Phase.GRACE:
        return GRACE_INTERVAL

    if phase is Phase.COOL:
        return min(base_interval * 2, COOL_MAX_INTERVAL)

    return base_interval


def grace_exceeded(target_epoch: int, now: int) -> bool:
    """True once a set target is at least GRACE_THRESHOLD in the past."""
    return target_epoch > 0 and now - target_epoch >= GRACE_THRESHOLD
