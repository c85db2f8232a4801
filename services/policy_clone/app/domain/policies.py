"""Small policy lookups used by list and detail views."""
from __future__ import annotations

from typing import Any, Mapping

from .constants import POLICY_TYPE_LABELS, SYSTEM_SOURCE
from .document import Policy


def get_policy_type_display(code: str | None) -> str:
    if not isinstance(code, str):
        return "Unknown"
    return POLICY_TYPE_LABELS.get(code, "Unknown")


def can_delete_policy(policy: Policy | Mapping[str, Any]) -> bool:
    """SYSTEM policies are managed by the platform and cannot be deleted."""
    source = policy.source if isinstance(policy, Policy) else policy.get("Source__c")
    return source != SYSTEM_SOURCE


__all__ = ["get_policy_type_display", "can_delete_policy"]
