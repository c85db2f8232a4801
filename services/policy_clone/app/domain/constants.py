"""Wire-level constants shared by the clone engine."""
from __future__ import annotations

import enum


class TemplateClass(str, enum.Enum):
    """Template classes with clone-specific handling."""

    number = "ModNumber"
    start_digital = "ModStartDigital"
    policy = "ModPolicy"
    policy_non_call = "ModPolicyNC"
    policy_to_non_call = "ModPolicy_ToNonCall"
    policy_to_call = "ModPolicy_ToCall"
    connect = "ModConnect"
    connect_follow_me = "ModConnect_FollowMe"
    connect_queue = "ModConnect_Queue"
    action_record = "ModAction_Record"
    action_record_analyse = "ModAction_RecordAnalyse"
    action_request_skills = "ModAction_RequestSkills"
    action_notify = "ModAction_Notify"
    finish_voicemail = "ModFinish_VoiceMail"
    ai_voice_knowledge = "NatterboxAI_VoiceAIKnowledge"
    ai_digital_knowledge = "NatterboxAI_DigitalAIKnowledge"
    ai_digital_agent = "NatterboxAI_DigitalAIAgent"
    ai_voice_agent = "NatterboxAIVoice_VoiceAIAgent"


class PolicyType(str, enum.Enum):
    call = "CALL"
    data_analytics = "DATA_ANALYTICS"
    digital = "DIGITAL"


POLICY_TYPE_LABELS = {
    PolicyType.call.value: "Call",
    PolicyType.data_analytics.value: "Data Analytics",
    PolicyType.digital.value: "Digital",
}

# Template id of the inbound number entry point.
INBOUND_NUMBER_TEMPLATE_ID = 3

SYSTEM_SOURCE = "SYSTEM"
SUPPORT_CHAT_TITLE = "SupportChat"
AGENT_HEAD_VERSION = "HEAD"
DEFAULT_NAMESPACE_PREFIX = "nbavs"

# UI-only bookkeeping key left behind by the legacy editor.
HASH_KEY_FIELD = "$$hashKey"


__all__ = [
    "TemplateClass",
    "PolicyType",
    "POLICY_TYPE_LABELS",
    "INBOUND_NUMBER_TEMPLATE_ID",
    "SYSTEM_SOURCE",
    "SUPPORT_CHAT_TITLE",
    "AGENT_HEAD_VERSION",
    "DEFAULT_NAMESPACE_PREFIX",
    "HASH_KEY_FIELD",
]
