"""Structural checks run before a policy is saved."""
from __future__ import annotations

from typing import Any, Mapping

from .constants import SUPPORT_CHAT_TITLE
from .document import Policy


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def validate_policy(policy: Policy | Mapping[str, Any]) -> list[str]:
    """Return every violation found; an empty list means the policy is valid."""
    document = policy.to_document() if isinstance(policy, Policy) else _as_mapping(policy)
    errors: list[str] = []

    if not document.get("Name") and not document.get("name"):
        errors.append("Policy name is required")

    nodes = document.get("nodes")
    if not nodes:
        errors.append("Policy must have at least one node")

    for node in nodes or []:
        if not isinstance(node, Mapping):
            continue
        data = _as_mapping(node.get("data"))
        title = node.get("title")
        if title == SUPPORT_CHAT_TITLE and not data.get("name"):
            errors.append(f"Name field for {title} node is required!")
        # Event nodes: an explicit null label means nothing was picked.
        component = _as_mapping(_as_mapping(data.get("config")).get("component"))
        if "label" in component and component["label"] is None:
            errors.append("You need to select an Event from the list!")

    return errors


__all__ = ["validate_policy"]
