"""Existence checks against the reference snapshot."""
from __future__ import annotations

from typing import Any, Iterable

from .context import ReferenceEntity


def exists(candidate: Any, entities: Iterable[ReferenceEntity]) -> bool:
    """Return True when ``candidate`` matches an entity's ``Id__c`` or ``Id``.

    Comparison is by string value, so a numeric legacy id matches its string
    form. Empty candidates never exist.
    """
    if not candidate:
        return False
    wanted = str(candidate)
    for entity in entities:
        if entity.external_id is not None and str(entity.external_id) == wanted:
            return True
        if entity.id is not None and str(entity.id) == wanted:
            return True
    return False


def tag_exists(tag: str | None, sounds: Iterable[ReferenceEntity]) -> bool:
    return any(sound.tag == tag for sound in sounds)


__all__ = ["exists", "tag_exists"]
