"""Clone report accumulation and rendering."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

REPORT_RULE_WIDTH = 50


@dataclass
class CloneReport:
    messages: list[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        self.messages.append(message)

    def add_once(self, message: str) -> None:
        if message not in self.messages:
            self.messages.append(message)

    def __len__(self) -> int:
        return len(self.messages)


def reference_message(node_name: Any, element_name: Any, kind: str, target: Any, removed: bool) -> str:
    # Missing targets read as JSON null.
    target = "null" if target is None else target
    return (
        f"Component: {node_name} -> Element: {element_name} has "
        f"{'removed ' if removed else ''}reference to {kind} Id: {target}"
    )


def generate_clone_report(report: CloneReport, policy_name: str) -> str:
    """Render the report as downloadable text, messages sorted."""
    if not report.messages:
        return ""
    lines = sorted(report.messages)
    header = f"Policy Clone Report for: {policy_name}\n{'=' * REPORT_RULE_WIDTH}\n\n"
    return header + "\n".join(lines)


__all__ = ["CloneReport", "reference_message", "generate_clone_report"]
