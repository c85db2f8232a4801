"""Per-template-class sanitizer rules.

Node rules run for node template classes that carry org-specific bindings and
decide whether the node survives the clone. Every other node has its outputs
run through the output rules. Rules mutate the working copy in place and
append to the clone report.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from .constants import AGENT_HEAD_VERSION, HASH_KEY_FIELD, INBOUND_NUMBER_TEMPLATE_ID, TemplateClass
from .context import CloneConfig, ReferenceContext
from .document import (
    AgentOutput,
    Connection,
    ConnectOutput,
    ConnectTarget,
    KnowledgeOutput,
    NotifyOutput,
    PolicyNode,
    QueueOutput,
    RecordAnalyseConfig,
    RecordAnalyseOutput,
    RecordOutput,
    RequestSkillsOutput,
    VoicemailOutput,
)
from .identifiers import SOUND_TAG_PATTERN
from .report import CloneReport, reference_message
from .resolver import exists, tag_exists


@dataclass
class SanitizeState:
    context: ReferenceContext
    config: CloneConfig
    report: CloneReport
    connections: list[Connection] | None = None
    dropped_linked_ids: set[str] = field(default_factory=set)
    # Ids of dropped nodes and of their outputs.
    dropped_ids: set[str] = field(default_factory=set)

    def remove_connections_from(self, node_id: Any) -> None:
        if self.connections is None or node_id is None:
            return
        self.connections = [
            connection
            for connection in self.connections
            if connection.source is None or str(connection.source.node_id) != str(node_id)
        ]


NodeRule = Callable[[PolicyNode, SanitizeState], bool]
OutputRule = Callable[[PolicyNode, Any, SanitizeState], None]


# --- Node rules ----------------------------------------------------------------


def _drop(node: PolicyNode, state: SanitizeState) -> bool:
    return False


def _drop_with_outgoing(node: PolicyNode, state: SanitizeState) -> bool:
    state.remove_connections_from(node.id)
    return False


def _clear_entry_numbers(node: PolicyNode, state: SanitizeState) -> bool:
    if node.sub_items is None:
        return True
    for item in node.sub_items:
        public_number = item.variables.public_number if item.variables else None
        flow_hook = item.variables.flow_hook if item.variables else None
        if public_number:
            state.report.add(f"Removed Public Number: {item.name} / {public_number}")
        elif flow_hook:
            state.report.add(f"Removed Digital Number: {item.name}")
    node.sub_items = []
    return True


def _unlink_policy(node: PolicyNode, state: SanitizeState) -> bool:
    if node.id is not None:
        state.dropped_linked_ids.add(str(node.id))
    for output in node.outputs or []:
        state.report.add(f"Removed Linked Policy: {output.name}")
    state.remove_connections_from(node.id)
    node.outputs = []
    if node.data is not None and node.data.get("outputs") is not None:
        node.data["outputs"] = []
    return False


NODE_RULES: dict[str, NodeRule] = {
    TemplateClass.policy_to_non_call.value: _drop_with_outgoing,
    # Outgoing connections are deliberately left to the dangling-edge sweep here.
    TemplateClass.policy_to_call.value: _drop,
    TemplateClass.number.value: _clear_entry_numbers,
    TemplateClass.start_digital.value: _clear_entry_numbers,
    TemplateClass.policy.value: _unlink_policy,
    TemplateClass.policy_non_call.value: _unlink_policy,
}


# --- Output rules --------------------------------------------------------------


def _resolve_connect_target(node: PolicyNode, output: ConnectOutput, item: ConnectTarget, state: SanitizeState) -> None:
    if item.method == "USER":
        kind, entities = "User", state.context.users
    elif item.method == "GROUP":
        kind, entities = "Group", state.context.groups
    else:
        return
    found = exists(item.target, entities)
    state.report.add(reference_message(node.name, output.name, kind, item.target, not found))
    if not found:
        item.target = None


def _check_connect(node: PolicyNode, output: ConnectOutput, state: SanitizeState) -> None:
    if output.config is None or not output.config.connect_action:
        return
    for item in output.config.connect_action.values():
        _resolve_connect_target(node, output, item, state)


def _check_follow_me(node: PolicyNode, output: ConnectOutput, state: SanitizeState) -> None:
    if output.config is None or not output.config.follow_me:
        return
    for item in output.config.follow_me:
        _resolve_connect_target(node, output, item, state)


def _check_queue(node: PolicyNode, output: QueueOutput, state: SanitizeState) -> None:
    sounds = state.context.sounds
    variables = output.variables
    if variables is not None and variables.ring_targets is not None:
        for target in variables.ring_targets:
            found = exists(target.group_id, state.context.groups)
            state.report.add(reference_message(node.name, output.name, "Group", target.group_id, not found))
            target.unset(HASH_KEY_FIELD)
            if not found:
                target.group_id = None
    if variables is not None and variables.announcements is not None:
        for announcement in variables.announcements:
            if "sound_id" not in announcement.model_fields_set:
                continue
            found = exists(announcement.sound_id, sounds)
            state.report.add(reference_message(node.name, output.name, "Sound", announcement.sound_id, not found))
            if not found:
                announcement.sound_id = ""
    for chimes in (output.config_callback_and_chime, output.config_for_lua_script):
        if chimes is None or chimes.chime is None:
            continue
        for entry in chimes.chime:
            if entry.chime and not tag_exists(entry.chime, sounds):
                entry.chime = ""
    screen = output.config_screen
    if screen is not None and isinstance(screen.announcement, str) and SOUND_TAG_PATTERN.search(screen.announcement):
        state.report.add(
            f"Component: {node.name} -> Element: {output.name} might have a reference to a Sound Tag: {screen.announcement}"
        )


def _clear_archive_policy(node: PolicyNode, output: RecordOutput, state: SanitizeState) -> None:
    if output.variables is not None:
        output.variables.archive_policy_id = None


def _stamp_connector(node: PolicyNode, output: RecordAnalyseOutput, state: SanitizeState) -> None:
    config = output.config or RecordAnalyseConfig()
    config.connector_id = state.config.connector_id
    config.dev_org_id = state.config.dev_org_id
    config.namespace_prefix = state.config.effective_namespace_prefix
    output.config = config


def _filter_skills(node: PolicyNode, output: RequestSkillsOutput, state: SanitizeState) -> None:
    if output.config is None or output.config.skills is None:
        return
    kept = []
    for skill in output.config.skills:
        if exists(skill.external_id, state.context.skills):
            kept.append(skill)
        else:
            state.report.add(f'Removed Skill "{skill.name}" from {output.name}')
    output.config.skills = kept


def _check_notify(node: PolicyNode, output: NotifyOutput, state: SanitizeState) -> None:
    targets = {"group": state.context.chatter_groups, "user": state.context.sf_users}
    if output.sub_items is None or not output.sub_items.chatter:
        return
    for entry in output.sub_items.chatter:
        entry.unset(HASH_KEY_FIELD)
        entities = targets.get(entry.target_type) if isinstance(entry.target_type, str) else None
        if entities is not None and not exists(entry.target, entities):
            entry.target = ""
    output.unset(HASH_KEY_FIELD)


def _check_voicemail(node: PolicyNode, output: VoicemailOutput, state: SanitizeState) -> None:
    mailbox = output.variables.mailbox if output.variables is not None else None
    if mailbox is None:
        return
    if mailbox.type == "GROUP" and mailbox.group_id:
        if not exists(mailbox.group_id, state.context.groups):
            mailbox.unset("groupId")
    elif mailbox.type == "USER" and mailbox.user_id:
        if not exists(mailbox.user_id, state.context.users):
            mailbox.unset("userId")


def _reset_knowledge_base(node: PolicyNode, output: KnowledgeOutput, state: SanitizeState) -> None:
    component = output.config.component if output.config is not None else None
    if component is None:
        return
    if component.knowledge_base_id:
        state.report.add(f"Removed Knowledge base with ID: {component.knowledge_base_id}")
    for tag in component.tag_filter or []:
        state.report.add(f"Removed Tag: {tag}")
    for prop in component.meta_property_filter or []:
        state.report.add(f"Removed Meta Property: {prop.label} / {prop.value}")
    component.tag_filter = []
    component.meta_property_filter = []
    component.knowledge_base_id = None


def _reset_agent(node: PolicyNode, output: AgentOutput, state: SanitizeState) -> None:
    component = output.config.component if output.config is not None else None
    if component is None:
        return
    if component.agent_id:
        state.report.add(f"Removed Agent with ID: {component.agent_id}")
    component.tokens = []
    component.agent_id = None
    component.agent_version = AGENT_HEAD_VERSION


OUTPUT_RULES: dict[str, OutputRule] = {
    TemplateClass.connect.value: _check_connect,
    TemplateClass.connect_follow_me.value: _check_follow_me,
    TemplateClass.connect_queue.value: _check_queue,
    TemplateClass.action_record.value: _clear_archive_policy,
    TemplateClass.action_record_analyse.value: _stamp_connector,
    TemplateClass.action_request_skills.value: _filter_skills,
    TemplateClass.action_notify.value: _check_notify,
    TemplateClass.finish_voicemail.value: _check_voicemail,
    TemplateClass.ai_voice_knowledge.value: _reset_knowledge_base,
    TemplateClass.ai_digital_knowledge.value: _reset_knowledge_base,
    TemplateClass.ai_digital_agent.value: _reset_agent,
    TemplateClass.ai_voice_agent.value: _reset_agent,
}


def is_legacy_entry_point(node: PolicyNode) -> bool:
    return not node.template_class and str(node.template_id) == str(INBOUND_NUMBER_TEMPLATE_ID)


def _owned_ids(node: PolicyNode) -> set[str]:
    ids = {str(output.id) for output in node.outputs or [] if output.id is not None}
    if node.id is not None:
        ids.add(str(node.id))
    return ids


def _apply_rules(node: PolicyNode, state: SanitizeState) -> bool:
    if is_legacy_entry_point(node):
        return False
    template_class = node.template_class if isinstance(node.template_class, str) else None
    node_rule = NODE_RULES.get(template_class or "")
    if node_rule is not None:
        return node_rule(node, state)
    for output in node.outputs or []:
        output_class = output.template_class if isinstance(output.template_class, str) else None
        output_rule = OUTPUT_RULES.get(output_class or "")
        if output_rule is not None:
            output_rule(node, output, state)
    return True


def sanitize_node(node: PolicyNode, state: SanitizeState) -> bool:
    """Sanitize ``node`` in place; return False when it must be dropped."""
    owned = _owned_ids(node)
    keep = _apply_rules(node, state)
    if not keep:
        state.dropped_ids.update(owned)
    return keep


__all__ = ["SanitizeState", "NODE_RULES", "OUTPUT_RULES", "sanitize_node", "is_legacy_entry_point"]
