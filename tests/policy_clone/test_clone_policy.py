import copy
import json

import pytest

from services.policy_clone.app.domain import cloner
from services.policy_clone.app.domain.cloner import clone_policy
from services.policy_clone.app.domain.errors import PolicyDocumentError
from services.policy_clone.app.domain.identifiers import UUID_PATTERN
from services.policy_clone.app.domain.policies import can_delete_policy

N1 = "3f2b8c1e-5a4d-4c7b-9e21-0a1b2c3d4e5f"
N2 = "7d6c5b4a-3e2f-4a1b-8c9d-0e1f2a3b4c5d"
N3 = "c0ffee00-1234-4abc-8def-001122334455"


def _graph_policy() -> dict:
    return {
        "Id": "a0B000000000001",
        "Id__c": 42,
        "Name": "Main Reception",
        "Description__c": "Inbound routing",
        "Type__c": "CALL",
        "nodes": [
            {
                "id": N1,
                "templateId": 66,
                "templateClass": "ModPolicy",
                "name": "Sales Policy",
                "outputs": [{"id": N3, "name": "Sales"}],
            },
            {
                "id": N2,
                "templateId": 4,
                "name": "Connect",
                "connectedFromNode": N1,
                "connectedFromItem": N3,
                "outputs": [
                    {
                        "name": "Ring Sales",
                        "templateClass": "ModConnect",
                        "config": {"connectAction": {"public": {"method": "USER", "target": "u1"}}},
                    }
                ],
            },
        ],
        "connections": [
            {"id": "c1", "source": {"nodeID": N1, "id": N3}, "dest": {"nodeID": N2}},
            {"id": "c2", "source": {"nodeID": N2}, "dest": {"nodeID": N2}},
        ],
        "edges": [
            {"id": "e1", "source": N1, "target": N2},
            {"id": "e2", "source": N2, "target": N2},
        ],
    }


def test_unknown_user_target_is_cleared_and_reported(id_source):
    result = clone_policy(_graph_policy(), {"users": [{"Id": "u2"}]}, id_source=id_source)

    connect = result.policy_document()["nodes"][0]["outputs"][0]
    assert connect["config"]["connectAction"]["public"]["target"] is None
    assert "Component: Connect -> Element: Ring Sales has removed reference to User Id: u1" in result.report.messages


def test_linked_policy_node_and_its_references_are_removed(id_source):
    result = clone_policy(_graph_policy(), id_source=id_source)

    document = result.policy_document()
    assert [node["name"] for node in document["nodes"]] == ["Connect"]
    survivor = document["nodes"][0]
    assert survivor["connectedFromNode"] is None
    assert survivor["connectedFromItem"] is None
    assert [connection["id"] for connection in document["connections"]] == ["c2"]
    assert [edge["id"] for edge in document["edges"]] == ["e2"]
    assert "Removed Linked Policy: Sales" in result.report.messages


def test_no_input_uuid_survives_and_references_still_resolve():
    original = _graph_policy()
    original["nodes"].append({"id": N1.upper() + "-copy", "templateId": 4, "name": "Annotated"})

    document = clone_policy(original).policy_document()

    remaining = {match.lower() for match in UUID_PATTERN.findall(json.dumps(document))}
    assert not remaining & {N1, N2, N3}
    node_ids = {node["id"] for node in document["nodes"]}
    for connection in document["connections"]:
        assert connection["source"]["nodeID"] in node_ids
        assert connection["dest"]["nodeID"] in node_ids
    for edge in document["edges"]:
        assert edge["source"] in node_ids
        assert edge["target"] in node_ids


def test_identity_is_reset_from_record_fields(id_source):
    policy = _graph_policy()
    policy["Source__c"] = "CUSTOMER"

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert "Id" not in document
    assert document["Id__c"] is None
    assert document["Name"] == "Main Reception"
    assert document["Description__c"] == "Inbound routing"
    assert document["Type__c"] == "CALL"
    assert document["Source__c"] == "CUSTOMER"


def test_identity_falls_back_to_legacy_fields(id_source):
    policy = {
        "id": "legacy-id",
        "name": "Legacy Policy",
        "description": "Imported",
        "remoteId": "remote-1",
        "type": {"advanced": "DATA_ANALYTICS"},
        "nodes": [{"id": "n", "name": "Only"}],
    }

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert document["Name"] == "Legacy Policy"
    assert document["Description__c"] == "Imported"
    assert document["Type__c"] == "DATA_ANALYTICS"
    assert document["Id__c"] is None
    for key in ("id", "name", "description", "remoteId"):
        assert key not in document


def test_identity_defaults_when_policy_is_unnamed(id_source):
    document = clone_policy({"nodes": []}, id_source=id_source).policy_document()

    assert document["Name"] == ""
    assert document["Description__c"] == ""
    assert document["Type__c"] == "CALL"
    assert document["nodes"] == []


def test_null_node_list_is_treated_as_empty(id_source):
    result = clone_policy({"Name": "Empty", "nodes": None}, id_source=id_source)

    assert result.policy.nodes == []
    assert len(result.report) == 0


def test_input_document_is_not_mutated(id_source):
    policy = _graph_policy()
    snapshot = copy.deepcopy(policy)

    clone_policy(policy, {"users": [{"Id": "u1"}]}, id_source=id_source)

    assert policy == snapshot


def test_transfer_to_call_node_leaves_no_dangling_connections(id_source):
    policy = {
        "Name": "Transfers",
        "nodes": [
            {"id": "start", "name": "Start"},
            {"id": "transfer", "templateClass": "ModPolicy_ToCall", "name": "Transfer"},
        ],
        "connections": [
            {"id": "in", "source": {"nodeID": "start"}, "dest": {"nodeID": "transfer"}},
            {"id": "out", "source": {"nodeID": "transfer"}, "dest": {"nodeID": "start"}},
            {"id": "loose", "source": {"nodeID": "start"}},
        ],
        "edges": [{"id": "edge", "source": "transfer", "target": "start"}],
    }

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert [node["id"] for node in document["nodes"]] == ["start"]
    assert [connection["id"] for connection in document["connections"]] == ["loose"]
    assert document["edges"] == []


def test_system_policy_is_cloned_but_not_deletable(id_source):
    policy = {"Name": "Platform Default", "Source__c": "SYSTEM", "nodes": [{"id": "n", "name": "Start"}]}

    result = clone_policy(policy, id_source=id_source)

    assert can_delete_policy(policy) is False
    assert result.policy_document()["Name"] == "Platform Default"
    assert [node["name"] for node in result.policy_document()["nodes"]] == ["Start"]


def test_policy_model_input_is_accepted(id_source):
    first = clone_policy(_graph_policy(), id_source=id_source)

    second = clone_policy(first.policy, id_source=id_source)

    assert second.policy_document()["Name"] == "Main Reception"
    assert second.policy.nodes[0].id != first.policy.nodes[0].id


def test_unknown_fields_are_preserved(id_source):
    policy = {
        "Name": "Extras",
        "layout": {"zoom": 1.5},
        "nodes": [{"id": "n", "name": "Start", "x": 10, "y": 20, "ui": {"collapsed": True}}],
    }

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert document["layout"] == {"zoom": 1.5}
    assert document["nodes"][0] == {"id": "n", "name": "Start", "x": 10, "y": 20, "ui": {"collapsed": True}}


def test_malformed_policy_is_rejected():
    with pytest.raises(PolicyDocumentError) as excinfo:
        clone_policy({"Name": "Broken", "nodes": "not-a-list"})

    assert excinfo.value.details
    assert excinfo.value.details[0]["loc"][0] == "nodes"


def test_document_that_stops_decoding_after_remapping_is_rejected(monkeypatch):
    monkeypatch.setattr(cloner.IdentifierRemapper, "remap", lambda self, document, report: {"nodes": "corrupted"})

    with pytest.raises(PolicyDocumentError, match="after identifier remapping"):
        clone_policy({"Name": "Fine", "nodes": []})


def _output_graph(*extra_nodes) -> dict:
    return {
        "Name": "Outputs",
        "nodes": [
            {"id": "a", "name": "Menu", "outputs": [{"id": "out-1", "name": "Press 1"}]},
            {"id": "b", "name": "Reception"},
            *extra_nodes,
        ],
        "connections": [{"id": "conn-out-1-b", "source": {"nodeID": "a", "id": "out-1"}, "dest": {"nodeID": "b"}}],
        "edges": [
            {"id": "edge-out-1-b", "source": "out-1", "target": "b"},
            {"id": "edge-label", "source": "b", "target": "annotation-7"},
        ],
    }


def test_output_sourced_edges_survive_when_nothing_is_dropped(id_source):
    document = clone_policy(_output_graph(), id_source=id_source).policy_document()

    assert [edge["id"] for edge in document["edges"]] == ["edge-out-1-b", "edge-label"]
    assert [connection["id"] for connection in document["connections"]] == ["conn-out-1-b"]


def test_output_sourced_edges_survive_an_unrelated_drop(id_source):
    transfer = {"id": "t", "templateClass": "ModPolicy_ToCall", "name": "Transfer"}
    policy = _output_graph(transfer)
    policy["edges"].append({"id": "edge-t-b", "source": "t", "target": "b"})

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert [edge["id"] for edge in document["edges"]] == ["edge-out-1-b", "edge-label"]
    assert [connection["id"] for connection in document["connections"]] == ["conn-out-1-b"]


def test_edges_from_outputs_of_a_dropped_node_are_removed(id_source):
    linked = {"id": "p", "templateClass": "ModPolicy", "name": "Linked", "outputs": [{"id": "p-out", "name": "Sales"}]}
    policy = _output_graph(linked)
    policy["edges"].append({"id": "edge-p-out-b", "source": "p-out", "target": "b"})
    policy["connections"].append({"id": "conn-p-out-b", "source": {"id": "p-out"}, "dest": {"nodeID": "b"}})

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert [edge["id"] for edge in document["edges"]] == ["edge-out-1-b", "edge-label"]
    assert [connection["id"] for connection in document["connections"]] == ["conn-out-1-b"]


def test_non_object_type_falls_back_to_record_type(id_source):
    policy = {"Name": "Typed", "type": "DIGITAL", "Type__c": "DATA_ANALYTICS", "nodes": []}

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert document["Type__c"] == "DATA_ANALYTICS"
    assert document["type"] == "DIGITAL"


def test_string_type_without_record_type_defaults_to_call(id_source):
    document = clone_policy({"Name": "Typed", "type": "CALL", "nodes": []}, id_source=id_source).policy_document()

    assert document["Type__c"] == "CALL"


def test_non_string_leaves_pass_through(id_source):
    policy = {
        "Name": 2024,
        "Source__c": 7,
        "nodes": [{"id": 10, "name": 42, "title": ["Start"], "templateClass": 5, "outputs": [{"name": 1, "templateClass": None}]}],
    }

    document = clone_policy(policy, id_source=id_source).policy_document()

    assert document["Name"] == 2024
    assert document["Source__c"] == 7
    assert document["nodes"] == [
        {"id": 10, "name": 42, "title": ["Start"], "templateClass": 5, "outputs": [{"name": 1, "templateClass": None}]}
    ]
