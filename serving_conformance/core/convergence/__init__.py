from .generation import GenerationStatus, is_settled, track_generation
from .isolation import check_no_keys_present, leaked_keys
from .poller import ConvergencePoller, check_state

__all__ = [
    "ConvergencePoller",
    "GenerationStatus",
    "check_no_keys_present",
    "check_state",
    "is_settled",
    "leaked_keys",
    "track_generation",
]
