"""Policy clone, validation and report API."""
from __future__ import annotations

import re
import uuid
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.oidc import require_admin
from ..domain.clone_service import CloneParams, PolicyCloneService
from ..domain.context import CloneConfig, ReferenceContext
from ..domain.policies import can_delete_policy, get_policy_type_display
from ..domain.report import CloneReport, generate_clone_report
from ..domain.validation import validate_policy
from ..persistence.models import CloneRun
from .deps import get_clone_service, get_db_session

router = APIRouter(prefix="/policies", tags=["policies"])


class PolicyDocumentRequest(BaseModel):
    policy: dict[str, Any]


class ClonePolicyRequest(BaseModel):
    policy: dict[str, Any]
    context: ReferenceContext | None = None
    config: CloneConfig | None = None


class CloneReportBody(BaseModel):
    messages: List[str] = Field(default_factory=list)


class ClonePolicyResponse(BaseModel):
    clone_run_id: str = Field(alias="cloneRunId")
    policy: dict[str, Any]
    report: CloneReportBody
    report_ref: str | None = Field(default=None, alias="reportRef")

    model_config = ConfigDict(populate_by_name=True)


class ValidatePolicyResponse(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class CloneReportRequest(BaseModel):
    policy_name: str = Field(alias="policyName")
    messages: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class CloneRunSummary(BaseModel):
    id: str
    source_policy_id: str | None = Field(alias="sourcePolicyId")
    source_policy_name: str = Field(alias="sourcePolicyName")
    policy_type: str = Field(alias="policyType")
    nodes_in: int = Field(alias="nodesIn")
    nodes_out: int = Field(alias="nodesOut")
    message_count: int = Field(alias="messageCount")
    report_ref: str | None = Field(alias="reportRef")
    principal: str
    created_at: str | None = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


def _run_not_found(run_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Clone run {run_id} not found")


def _report_filename(policy_name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", policy_name).strip("-") or "policy"
    return f"{slug}-clone-report.txt"


def _text_download(text: str, policy_name: str) -> PlainTextResponse:
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{_report_filename(policy_name)}"'},
    )


def _summary(run: CloneRun) -> CloneRunSummary:
    return CloneRunSummary(
        id=run.id,
        sourcePolicyId=run.source_policy_id,
        sourcePolicyName=run.source_policy_name,
        policyType=run.policy_type,
        nodesIn=run.nodes_in,
        nodesOut=run.nodes_out,
        messageCount=run.message_count,
        reportRef=run.report_ref,
        principal=run.principal,
        createdAt=run.created_at.isoformat() if run.created_at else None,
    )


@router.post("/clone", response_model=ClonePolicyResponse)
async def clone_policy_endpoint(
    request: ClonePolicyRequest,
    service: PolicyCloneService = Depends(get_clone_service),
    claims: dict = Depends(require_admin()),
):
    outcome = await service.clone(
        CloneParams(
            policy=request.policy,
            context=request.context,
            config=request.config,
            principal=str(claims.get("sub", "api")),
            correlation_id=str(uuid.uuid4()),
        )
    )
    return ClonePolicyResponse(
        cloneRunId=outcome.run.id,
        policy=outcome.result.policy_document(),
        report=CloneReportBody(messages=outcome.result.report.messages),
        reportRef=outcome.run.report_ref,
    )


@router.post("/validate", response_model=ValidatePolicyResponse)
async def validate_policy_endpoint(request: PolicyDocumentRequest):
    errors = validate_policy(request.policy)
    return ValidatePolicyResponse(valid=not errors, errors=errors)


@router.post("/clone-report", response_class=PlainTextResponse)
async def render_clone_report(request: CloneReportRequest):
    text = generate_clone_report(CloneReport(messages=list(request.messages)), request.policy_name)
    return _text_download(text, request.policy_name)


@router.get("/clone-runs/{run_id}", response_model=CloneRunSummary)
async def get_clone_run(run_id: str, session: AsyncSession = Depends(get_db_session)):
    run = await session.get(CloneRun, run_id)
    if not run:
        raise _run_not_found(run_id)
    return _summary(run)


@router.get("/clone-runs/{run_id}/report", response_class=PlainTextResponse)
async def get_clone_run_report(
    run_id: str,
    session: AsyncSession = Depends(get_db_session),
    service: PolicyCloneService = Depends(get_clone_service),
):
    run = await session.get(CloneRun, run_id)
    if not run:
        raise _run_not_found(run_id)
    text = await service.load_report(run)
    if text is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not generated")
    return _text_download(text, run.source_policy_name)


@router.get("/types/{code}")
async def get_policy_type(code: str):
    return {"code": code, "display": get_policy_type_display(code)}


@router.post("/can-delete")
async def can_delete(request: PolicyDocumentRequest):
    return {"canDelete": can_delete_policy(request.policy)}


__all__ = ["router"]
