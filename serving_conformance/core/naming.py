from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from typing import Optional

_MAX_NAME = 63
_SUFFIX_LEN = 8


@dataclass
class ResourceNames:
    config: str
    image: str
    revision: Optional[str] = None


def object_name_for_test(test_name: str) -> str:
    """Unique DNS-1123 label derived from a test name.

    "TestUpdateConfigurationMetadata" -> "update-configuration-metadata-3f9c0a1b"
    """
    base = re.sub(r"^test[_-]?", "", test_name or "", flags=re.IGNORECASE)
    base = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", base)
    base = re.sub(r"[^a-z0-9]+", "-", base.lower()).strip("-") or "test"
    base = base[: _MAX_NAME - _SUFFIX_LEN - 1].rstrip("-")
    return f"{base}-{secrets.token_hex(_SUFFIX_LEN // 2)}"
