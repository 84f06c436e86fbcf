"""Change detection between fetched and last synced fingerprints."""

from __future__ import annotations

from typing import Mapping


def has_changed(
    previous: Mapping[str, str] | None,
    current: Mapping[str, str],
    enabled: bool = False,
) -> bool:
    """Decide whether a fetch differs from what was last synced.

    With detection disabled every fetch counts as a change. Otherwise any
    difference in the fingerprint mapping, including added or removed
    target names, is a change; so is having no previous fingerprints.
    """
    if not enabled or previous is None:
        return True
    return dict(previous) != dict(current)
