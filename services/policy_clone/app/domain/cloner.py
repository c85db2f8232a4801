"""End-to-end policy clone: remap, sanitize, repair edges, reset identity."""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Mapping

import structlog
from pydantic import ValidationError

from .constants import PolicyType
from .context import CloneConfig, ReferenceContext
from .document import Connection, Edge, Policy, parse_policy
from .errors import PolicyDocumentError
from .identifiers import IdentifierRemapper, IdentifierSource
from .report import CloneReport
from .sanitizers import SanitizeState, sanitize_node

logger = structlog.get_logger(__name__)

# Legacy top-level keys superseded by their record-field counterparts.
LEGACY_IDENTITY_KEYS = ("id", "name", "remoteId", "description")


@dataclass
class CloneResult:
    policy: Policy
    report: CloneReport

    def policy_document(self) -> dict[str, Any]:
        return self.policy.to_document()


def clone_policy(
    policy: Policy | Mapping[str, Any],
    context: ReferenceContext | Mapping[str, Any] | None = None,
    config: CloneConfig | Mapping[str, Any] | None = None,
    *,
    id_source: IdentifierSource | None = None,
) -> CloneResult:
    """Produce a reference-clean copy of ``policy`` and a report of what changed.

    The caller's document is never mutated. Raises :class:`PolicyDocumentError`
    when the input, or the document after identifier remapping, fails to decode.
    """
    source = policy.to_document() if isinstance(policy, Policy) else policy
    original = parse_policy(copy.deepcopy(source))
    report = CloneReport()

    remapped = IdentifierRemapper(id_source).remap(original.to_document(), report)
    try:
        working = Policy.model_validate(remapped)
    except ValidationError as exc:
        logger.error("policy.clone.document_error", errors=exc.error_count())
        raise PolicyDocumentError(
            "Policy document no longer decodes after identifier remapping",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc

    state = SanitizeState(
        context=ReferenceContext.coerce(context),
        config=CloneConfig.coerce(config),
        report=report,
        connections=working.connections,
    )
    kept = [node for node in working.nodes if sanitize_node(node, state)]
    for node in kept:
        if node.connected_from_node is not None and str(node.connected_from_node) in state.dropped_linked_ids:
            node.connected_from_node = None
            node.connected_from_item = None
    working.nodes = kept
    if state.connections is not None:
        working.connections = state.connections
    _prune_dangling(working, state.dropped_ids)

    document = working.to_document()
    _reset_identity(document, original)
    result = CloneResult(policy=parse_policy(document), report=report)
    logger.info(
        "policy.clone.completed",
        nodes_in=len(original.nodes),
        nodes_out=len(kept),
        messages=len(report),
    )
    return result


def _names_dropped(value: Any, dropped: set[str]) -> bool:
    return value is not None and str(value) in dropped


def _prune_dangling(policy: Policy, dropped: set[str]) -> None:
    """Remove connections and edges touching a node (or node output) this clone dropped."""
    if not dropped:
        return
    if policy.connections is not None:
        connections: list[Connection] = [
            connection
            for connection in policy.connections
            if not any(
                endpoint is not None
                and (_names_dropped(endpoint.node_id, dropped) or _names_dropped(endpoint.id, dropped))
                for endpoint in (connection.source, connection.dest)
            )
        ]
        if len(connections) != len(policy.connections):
            logger.info("policy.clone.dangling_pruned", kind="connection", count=len(policy.connections) - len(connections))
            policy.connections = connections
    if policy.edges is not None:
        edges: list[Edge] = [
            edge
            for edge in policy.edges
            if not (_names_dropped(edge.source, dropped) or _names_dropped(edge.target, dropped))
        ]
        if len(edges) != len(policy.edges):
            logger.info("policy.clone.dangling_pruned", kind="edge", count=len(policy.edges) - len(edges))
            policy.edges = edges


def _reset_identity(document: dict[str, Any], original: Policy) -> None:
    document.pop("Id", None)
    document["Id__c"] = None
    document["Name"] = original.name or original.record_name or ""
    document["Description__c"] = original.description or original.record_description or ""
    document["Type__c"] = original.advanced_type or original.record_type or PolicyType.call.value
    for key in LEGACY_IDENTITY_KEYS:
        document.pop(key, None)


__all__ = ["CloneResult", "clone_policy", "LEGACY_IDENTITY_KEYS"]
