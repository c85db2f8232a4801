"""Pydantic models for the JSON policy document.

Models accept and preserve unknown keys, so a policy survives a clone with
every field the engine does not understand left as it was. Documents are
dumped by alias with only the keys that were present on input or assigned by
a sanitizer rule.

Outputs are decoded into a tagged variant chosen by ``templateClass``; each
variant types the structure its sanitizer rule walks. Scalar leaves stay
untyped so an odd value never stops a clone.
"""
from __future__ import annotations

from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, ValidationError, field_validator

from .constants import TemplateClass
from .errors import PolicyDocumentError

# Ids and scalar leaves are kept as found; rules compare them by string form.
Identifier = Any


class DocumentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def unset(self, key: str) -> None:
        """Drop a field (by name or alias) or an extra key from the document."""
        for name, info in type(self).model_fields.items():
            if key in (name, info.alias):
                setattr(self, name, None)
                self.__pydantic_fields_set__.discard(name)
                return
        if self.model_extra is not None:
            self.model_extra.pop(key, None)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


# --- Outputs -----------------------------------------------------------------


class BaseOutput(DocumentModel):
    id: Identifier = None
    name: Any = None
    template_class: Any = Field(default=None, alias="templateClass")
    variables: Any = None
    config: Any = None
    sub_items: Any = Field(default=None, alias="subItems")


class GenericOutput(BaseOutput):
    pass


class ConnectTarget(DocumentModel):
    method: Any = None
    target: Identifier = None


class ConnectConfig(DocumentModel):
    connect_action: dict[str, ConnectTarget] | None = Field(default=None, alias="connectAction")
    follow_me: list[ConnectTarget] | None = Field(default=None, alias="followMe")


class ConnectOutput(BaseOutput):
    config: ConnectConfig | None = None


class QueueRingTarget(DocumentModel):
    group_id: Identifier = Field(default=None, alias="groupId")


class QueueAnnouncement(DocumentModel):
    type: Any = None
    sound_id: Identifier = Field(default=None, alias="soundId")


class QueueVariables(DocumentModel):
    ring_targets: list[QueueRingTarget] | None = Field(default=None, alias="ringTargets")
    announcements: list[QueueAnnouncement] | None = None


class ChimeEntry(DocumentModel):
    chime: Any = None


class ChimeConfig(DocumentModel):
    chime: list[ChimeEntry] | None = None


class ScreenConfig(DocumentModel):
    announcement: Any = None


class QueueOutput(BaseOutput):
    variables: QueueVariables | None = None
    config_callback_and_chime: ChimeConfig | None = Field(default=None, alias="configCallbackAndChime")
    config_for_lua_script: ChimeConfig | None = Field(default=None, alias="configForLuaScript")
    config_screen: ScreenConfig | None = Field(default=None, alias="configScreen")


class RecordVariables(DocumentModel):
    archive_policy_id: Identifier = Field(default=None, alias="archivePolicyId")


class RecordOutput(BaseOutput):
    variables: RecordVariables | None = None


class RecordAnalyseConfig(DocumentModel):
    connector_id: Any = Field(default=None, alias="connectorId")
    dev_org_id: Any = Field(default=None, alias="devOrgId")
    namespace_prefix: Any = Field(default=None, alias="namespacePrefix")


class RecordAnalyseOutput(BaseOutput):
    config: RecordAnalyseConfig | None = None


class SkillRef(DocumentModel):
    external_id: Identifier = Field(default=None, alias="Id__c")
    name: Any = Field(default=None, alias="Name")


class SkillsConfig(DocumentModel):
    skills: list[SkillRef] | None = None


class RequestSkillsOutput(BaseOutput):
    config: SkillsConfig | None = None


class ChatterTarget(DocumentModel):
    target_type: Any = Field(default=None, alias="targetType")
    target: Identifier = None


class NotifySubItems(DocumentModel):
    chatter: list[ChatterTarget] | None = None


class NotifyOutput(BaseOutput):
    sub_items: NotifySubItems | None = Field(default=None, alias="subItems")


class Mailbox(DocumentModel):
    type: Any = None
    group_id: Identifier = Field(default=None, alias="groupId")
    user_id: Identifier = Field(default=None, alias="userId")


class VoicemailVariables(DocumentModel):
    mailbox: Mailbox | None = None


class VoicemailOutput(BaseOutput):
    variables: VoicemailVariables | None = None


class MetaProperty(DocumentModel):
    label: Any = None
    value: Any = None


class KnowledgeComponent(DocumentModel):
    knowledge_base_id: Identifier = Field(default=None, alias="knowledgeBaseId")
    tag_filter: list[Any] | None = Field(default=None, alias="tagFilter")
    meta_property_filter: list[MetaProperty] | None = Field(default=None, alias="metaPropertyFilter")


class KnowledgeConfig(DocumentModel):
    component: KnowledgeComponent | None = None


class KnowledgeOutput(BaseOutput):
    config: KnowledgeConfig | None = None


class AgentComponent(DocumentModel):
    agent_id: Identifier = Field(default=None, alias="agentId")
    agent_version: Any = Field(default=None, alias="agentVersion")
    tokens: list[Any] | None = None


class AgentConfig(DocumentModel):
    component: AgentComponent | None = None


class AgentOutput(BaseOutput):
    config: AgentConfig | None = None


_OUTPUT_VARIANTS = {
    TemplateClass.connect.value: "connect",
    TemplateClass.connect_follow_me.value: "connect",
    TemplateClass.connect_queue.value: "queue",
    TemplateClass.action_record.value: "record",
    TemplateClass.action_record_analyse.value: "record_analyse",
    TemplateClass.action_request_skills.value: "request_skills",
    TemplateClass.action_notify.value: "notify",
    TemplateClass.finish_voicemail.value: "voicemail",
    TemplateClass.ai_voice_knowledge.value: "knowledge",
    TemplateClass.ai_digital_knowledge.value: "knowledge",
    TemplateClass.ai_digital_agent.value: "agent",
    TemplateClass.ai_voice_agent.value: "agent",
}


def _output_variant(value: Any) -> str:
    if isinstance(value, dict):
        template_class = value.get("templateClass", value.get("template_class"))
    else:
        template_class = getattr(value, "template_class", None)
    if not isinstance(template_class, str):
        return "generic"
    return _OUTPUT_VARIANTS.get(template_class, "generic")


PolicyOutput = Annotated[
    Union[
        Annotated[ConnectOutput, Tag("connect")],
        Annotated[QueueOutput, Tag("queue")],
        Annotated[RecordOutput, Tag("record")],
        Annotated[RecordAnalyseOutput, Tag("record_analyse")],
        Annotated[RequestSkillsOutput, Tag("request_skills")],
        Annotated[NotifyOutput, Tag("notify")],
        Annotated[VoicemailOutput, Tag("voicemail")],
        Annotated[KnowledgeOutput, Tag("knowledge")],
        Annotated[AgentOutput, Tag("agent")],
        Annotated[GenericOutput, Tag("generic")],
    ],
    Discriminator(_output_variant),
]


# --- Nodes and graph -----------------------------------------------------------


class SubItemVariables(DocumentModel):
    public_number: Any = Field(default=None, alias="publicNumber")
    flow_hook: Any = Field(default=None, alias="flowHook")


class SubItem(DocumentModel):
    name: Any = None
    variables: SubItemVariables | None = None


class PolicyNode(DocumentModel):
    id: Identifier = None
    template_id: Identifier = Field(default=None, alias="templateId")
    template_class: Any = Field(default=None, alias="templateClass")
    name: Any = None
    title: Any = None
    outputs: list[PolicyOutput] | None = None
    sub_items: list[SubItem] | None = Field(default=None, alias="subItems")
    variables: Any = None
    config: Any = None
    data: dict[str, Any] | None = None
    connected_from_node: Identifier = Field(default=None, alias="connectedFromNode")
    connected_from_item: Identifier = Field(default=None, alias="connectedFromItem")


class ConnectionEndpoint(DocumentModel):
    node_id: Identifier = Field(default=None, alias="nodeID")
    id: Identifier = None


class Connection(DocumentModel):
    id: Identifier = None
    source: ConnectionEndpoint | None = None
    dest: ConnectionEndpoint | None = None


class Edge(DocumentModel):
    id: Identifier = None
    source: Identifier = None
    target: Identifier = None


class Policy(DocumentModel):
    id: Identifier = None
    record_id: Identifier = Field(default=None, alias="Id")
    external_id: Identifier = Field(default=None, alias="Id__c")
    name: Any = None
    record_name: Any = Field(default=None, alias="Name")
    description: Any = None
    record_description: Any = Field(default=None, alias="Description__c")
    type: Any = None
    record_type: Any = Field(default=None, alias="Type__c")
    source: Any = Field(default=None, alias="Source__c")
    remote_id: Identifier = Field(default=None, alias="remoteId")
    nodes: list[PolicyNode] = Field(default_factory=list)
    connections: list[Connection] | None = None
    edges: list[Edge] | None = None

    @field_validator("nodes", mode="before")
    @classmethod
    def _null_nodes(cls, value: Any) -> Any:
        return [] if value is None else value

    def node_ids(self) -> set[str]:
        return {str(node.id) for node in self.nodes if node.id is not None}

    @property
    def advanced_type(self) -> Any:
        """Legacy `type.advanced` value; None unless `type` is an object."""
        return self.type.get("advanced") if isinstance(self.type, dict) else None


def parse_policy(document: Any) -> Policy:
    """Decode a JSON-shaped mapping into a :class:`Policy`."""
    if isinstance(document, Policy):
        return document
    try:
        return Policy.model_validate(document)
    except ValidationError as exc:
        raise PolicyDocumentError(
            f"Policy document failed to decode ({exc.error_count()} errors)",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc


__all__ = [
    "DocumentModel",
    "BaseOutput",
    "GenericOutput",
    "ConnectOutput",
    "ConnectTarget",
    "QueueOutput",
    "RecordOutput",
    "RecordAnalyseOutput",
    "RecordAnalyseConfig",
    "RequestSkillsOutput",
    "NotifyOutput",
    "VoicemailOutput",
    "KnowledgeOutput",
    "AgentOutput",
    "PolicyOutput",
    "SubItem",
    "PolicyNode",
    "Connection",
    "ConnectionEndpoint",
    "Edge",
    "Policy",
    "parse_policy",
]
