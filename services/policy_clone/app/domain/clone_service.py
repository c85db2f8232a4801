"""Clone orchestration around the pure engine: tracing, persistence, audit."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from opentelemetry import metrics, trace
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..persistence.models import AuditLog, CloneRun
from ..persistence.storage import ArtifactStorage
from .cloner import CloneResult, clone_policy
from .context import CloneConfig, ReferenceContext
from .document import parse_policy
from .identifiers import IdentifierSource
from .report import generate_clone_report

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)
clone_runs = meter.create_counter("policy_clone.runs", description="Completed policy clones")
report_messages = meter.create_histogram("policy_clone.report_messages", description="Report lines per clone")


@dataclass
class CloneParams:
    policy: dict[str, Any]
    context: ReferenceContext | None = None
    config: CloneConfig | None = None
    principal: str = "system"
    correlation_id: str = "system"


@dataclass
class CloneOutcome:
    run: CloneRun
    result: CloneResult
    report_text: str


class PolicyCloneService:
    def __init__(self, session: AsyncSession, id_source: IdentifierSource | None = None) -> None:
        self._session = session
        self._storage = ArtifactStorage()
        self._settings = get_settings()
        self._id_source = id_source

    def resolve_config(self, requested: CloneConfig | None) -> CloneConfig:
        defaults = self._settings.clone
        fallback = CloneConfig(
            connector_id=defaults.connector_id,
            dev_org_id=defaults.dev_org_id,
            organization_id=defaults.organization_id,
            namespace_prefix=defaults.namespace_prefix,
        )
        return (requested or CloneConfig()).with_defaults(fallback)

    async def clone(self, params: CloneParams) -> CloneOutcome:
        source = parse_policy(params.policy)
        config = self.resolve_config(params.config)
        with tracer.start_as_current_span("policy.clone") as span:
            span.set_attribute("policy.nodes_in", len(source.nodes))
            result = clone_policy(source, params.context, config, id_source=self._id_source)
            span.set_attribute("policy.nodes_out", len(result.policy.nodes))
            span.set_attribute("policy.report_messages", len(result.report))

        policy_name = str(result.policy.record_name or "")
        report_text = generate_clone_report(result.report, policy_name)
        report_ref = await self._storage.put_text(report_text) if report_text else None

        run = CloneRun(
            source_policy_id=_source_id(source.record_id, source.id),
            source_policy_name=policy_name,
            policy_type=str(result.policy.record_type or ""),
            nodes_in=len(source.nodes),
            nodes_out=len(result.policy.nodes),
            message_count=len(result.report),
            report_ref=report_ref,
            principal=params.principal,
            correlation_id=params.correlation_id,
        )
        self._session.add(run)
        await self._session.flush()
        self._session.add(
            AuditLog(
                principal=params.principal,
                action="policy.cloned",
                old_val={"policyId": run.source_policy_id, "name": policy_name},
                new_val={"cloneRunId": run.id, "messages": run.message_count},
                correlation_id=params.correlation_id,
            )
        )
        clone_runs.add(1, {"policy.type": run.policy_type})
        report_messages.record(run.message_count, {"policy.type": run.policy_type})
        logger.info(
            "policy.clone.run_recorded",
            clone_run_id=run.id,
            principal=params.principal,
            correlation_id=params.correlation_id,
        )
        return CloneOutcome(run=run, result=result, report_text=report_text)

    async def load_report(self, run: CloneRun) -> str | None:
        if not run.report_ref:
            return None
        return await self._storage.get_text(run.report_ref)


def _source_id(*candidates: Any) -> str | None:
    for candidate in candidates:
        if candidate is not None:
            return str(candidate)
    return None


__all__ = ["PolicyCloneService", "CloneParams", "CloneOutcome"]
