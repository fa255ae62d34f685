from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Union

log = logging.getLogger("conformance.isolation")

Keys = Union[Mapping[str, str], Iterable[str]]


def leaked_keys(expected_absent: Keys, actual: Optional[Mapping[str, str]]) -> List[str]:
    """Keys of `expected_absent` that are present in `actual`, sorted."""
    present = actual or {}
    return sorted(k for k in set(expected_absent) if k in present)


def check_no_keys_present(expected_absent: Keys, actual: Optional[Mapping[str, str]]) -> bool:
    """True if _no_ keys from `expected_absent` are present in `actual`.

    Offending keys are logged; the verdict does not depend on logging.
    """
    present = leaked_keys(expected_absent, actual)
    if present:
        log.info("Unexpected keys: %s", present)
    return not present
