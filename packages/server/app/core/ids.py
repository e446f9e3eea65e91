"""
Entity identifier generation.

Organizations and projects get bare lowercase ULIDs; every other entity gets
``<kind>_<ulid>`` so the kind is visible in logs and payloads.
"""

from __future__ import annotations

from ulid import ULID

BARE_ID_KINDS = frozenset({"org", "prj"})


def generate_id(kind: str = "") -> str:
    """Return a new collision-resistant identifier for an entity of ``kind``."""
    value = str(ULID()).lower()
    if not kind or kind in BARE_ID_KINDS:
        return value
    return f"{kind}_{value}"
