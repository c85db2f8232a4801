"""Identifier remapping for cloned policy documents.

Two identifier shapes are rewritten wherever they occur in a string of the
document, mapping keys included:

* canonical UUIDs (8-4-4-4-12 hex groups), matched case-insensitively;
* bare 32 character hex tokens ("screen hooks").

Each distinct original maps to exactly one fresh identifier, so node ids and
the values referencing them stay consistent. Substitution walks the document
tree; it never operates on a serialized blob, so a replacement cannot span two
strings. Macros ``$(...)`` and sound tags ``{...}`` are reported, never
rewritten.
"""
from __future__ import annotations

import re
import uuid
from typing import Any, Callable, Iterator, Protocol

import structlog

from .report import CloneReport

logger = structlog.get_logger(__name__)

UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
SCREEN_HOOK_PATTERN = re.compile(r"[0-9a-f]{32}", re.IGNORECASE)
MACRO_PATTERN = re.compile(r"\$\([^)]+\)")
SOUND_TAG_PATTERN = re.compile(r"\{[^}]+\}")

_MAX_DRAWS = 64


class IdentifierSource(Protocol):
    def new_uuid(self) -> str: ...

    def new_screen_hook(self) -> str: ...


class RandomIdentifierSource:
    """Identifier source backed by :func:`uuid.uuid4`."""

    def new_uuid(self) -> str:
        return str(uuid.uuid4())

    def new_screen_hook(self) -> str:
        return uuid.uuid4().hex


def iter_strings(document: Any, include_keys: bool = True) -> Iterator[str]:
    if isinstance(document, str):
        yield document
    elif isinstance(document, dict):
        for key, value in document.items():
            if include_keys and isinstance(key, str):
                yield key
            yield from iter_strings(value, include_keys)
    elif isinstance(document, list):
        for item in document:
            yield from iter_strings(item, include_keys)


def rewrite_strings(document: Any, rewrite: Callable[[str], str]) -> Any:
    """Return a copy of ``document`` with every string (and key) rewritten."""
    if isinstance(document, str):
        return rewrite(document)
    if isinstance(document, dict):
        return {
            (rewrite(key) if isinstance(key, str) else key): rewrite_strings(value, rewrite)
            for key, value in document.items()
        }
    if isinstance(document, list):
        return [rewrite_strings(item, rewrite) for item in document]
    return document


class IdentifierRemapper:
    def __init__(self, id_source: IdentifierSource | None = None) -> None:
        self._source = id_source or RandomIdentifierSource()

    def remap(self, document: dict[str, Any], report: CloneReport) -> dict[str, Any]:
        # Every identifier of the input is reserved so no emitted value can collide with one.
        reserved: set[str] = set()
        for text in iter_strings(document):
            reserved.update(match.lower() for match in UUID_PATTERN.findall(text))
            reserved.update(match.lower() for match in SCREEN_HOOK_PATTERN.findall(text))

        uuid_map: dict[str, str] = {}
        for text in iter_strings(document):
            for match in UUID_PATTERN.findall(text):
                key = match.lower()
                if key not in uuid_map:
                    uuid_map[key] = self._draw(self._source.new_uuid, reserved)
        if uuid_map:
            document = rewrite_strings(
                document, lambda text: UUID_PATTERN.sub(lambda m: uuid_map[m.group(0).lower()], text)
            )

        hook_map: dict[str, str] = {}
        for text in iter_strings(document):
            for match in SCREEN_HOOK_PATTERN.findall(text):
                # Keyed by literal: hooks differing only in case get distinct replacements.
                if match not in hook_map:
                    hook_map[match] = self._draw(self._source.new_screen_hook, reserved)
        if hook_map:
            document = rewrite_strings(
                document,
                lambda text: SCREEN_HOOK_PATTERN.sub(lambda m: hook_map[m.group(0)], text),
            )

        self._report_placeholders(document, report)
        logger.debug("policy.clone.identifiers_remapped", uuids=len(uuid_map), screen_hooks=len(hook_map))
        return document

    def _draw(self, generate: Callable[[], str], reserved: set[str]) -> str:
        for _ in range(_MAX_DRAWS):
            candidate = generate()
            if candidate.lower() not in reserved:
                reserved.add(candidate.lower())
                return candidate
        raise RuntimeError("Identifier source keeps producing identifiers already in use")

    @staticmethod
    def _report_placeholders(document: dict[str, Any], report: CloneReport) -> None:
        values = list(iter_strings(document, include_keys=False))
        for text in values:
            for macro in MACRO_PATTERN.findall(text):
                report.add_once(f"Policy is using Macro: {macro}")
        for text in values:
            for tag in SOUND_TAG_PATTERN.findall(text):
                report.add_once(f"Policy is using Sound Tag: {tag}")


def remap_identifiers(
    document: dict[str, Any],
    report: CloneReport,
    id_source: IdentifierSource | None = None,
) -> dict[str, Any]:
    return IdentifierRemapper(id_source).remap(document, report)


__all__ = [
    "IdentifierSource",
    "RandomIdentifierSource",
    "IdentifierRemapper",
    "remap_identifiers",
    "UUID_PATTERN",
    "SCREEN_HOOK_PATTERN",
]
