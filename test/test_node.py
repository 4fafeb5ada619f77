"""Tests for the resource node tree.

The node runtime is exercised against a spy adapter, so these tests check
which requests get built and sent without any HTTP traffic.
"""

import pytest

from conftest import SpyAdapter
from keycloak_resources.cancellation import CancellationToken
from keycloak_resources.exceptions import (
    ArgumentMissingError,
    DeserializationError,
    RequestCancelledError,
    TransportError,
    UnresolvedPathError,
    UnsupportedOperationError,
)
from keycloak_resources.node import BoundNode, NodeBuilder
from keycloak_resources.request import Operation, ResponseShape


@pytest.fixture
def root(tree, spy_adapter):
    return BoundNode.root(tree, spy_adapter)


# =============================================================================
# Tree descent
# =============================================================================


def test_literal_child_extends_template_and_keeps_bindings(root):
    """Test that a literal child adds its segment and leaves bindings alone."""
    realm = root.admin.realms["master"]

    users = realm.child("users")

    assert str(users.url_template) == str(realm.url_template) + "/users"
    assert users.path_parameters == realm.path_parameters == {"realm": "master"}


def test_attribute_access_maps_underscores_to_hyphens(root):
    user = root.admin.realms["master"].users["u-1"]

    sessions = user.offline_sessions

    assert str(sessions.url_template) == "{+baseurl}/admin/realms/{realm}/users/{user-id}/offline-sessions"


def test_unknown_child_raises(root):
    with pytest.raises(AttributeError, match="no child resource 'groups'"):
        root.admin.groups
    with pytest.raises(KeyError):
        root.admin.child("groups")


def test_indexer_adds_binding_without_mutating_parent(root):
    """Test that indexing copies the parent bindings instead of aliasing them."""
    users = root.admin.realms["master"].users

    first = users["u-1"]
    second = users["u-2"]

    assert users.path_parameters == {"realm": "master"}
    assert first.path_parameters == {"realm": "master", "user-id": "u-1"}
    assert second.path_parameters == {"realm": "master", "user-id": "u-2"}


def test_bindings_are_read_only(root):
    realm = root.admin.realms["master"]

    with pytest.raises(TypeError):
        realm.path_parameters["realm"] = "other"


def test_indexer_rejects_empty_identifier(root):
    with pytest.raises(ArgumentMissingError) as exc_info:
        root.admin.realms[""]

    assert exc_info.value.argument == "realm"


def test_indexing_a_non_collection_raises(root):
    with pytest.raises(UnsupportedOperationError):
        root.admin["x"]


def test_building_nodes_performs_no_io(root, spy_adapter):
    root.admin.realms["master"].users["u-1"].offline_sessions["c-1"]

    assert spy_adapter.sent == []


# =============================================================================
# Request building
# =============================================================================


def test_request_spec_substitutes_bound_placeholders(root):
    node = root.admin.realms["master"].users["u 1"].offline_sessions["c-1"]

    request = node.to_request_spec("GET")

    assert request.method == "GET"
    assert request.url == "http://localhost:8080/admin/realms/master/users/u%201/offline-sessions/c-1"
    assert request.headers == {"Accept": "application/json"}
    assert request.body is None


def test_request_spec_with_unbound_placeholder_raises(tree, spy_adapter):
    users = tree.children["admin"].children["realms"].item.children["users"]
    node = BoundNode(users, spy_adapter, "{+baseurl}/admin/realms/{realm}/users")

    with pytest.raises(UnresolvedPathError) as exc_info:
        node.get()

    assert exc_info.value.placeholder == "realm"
    assert spy_adapter.sent == []


def test_request_spec_with_empty_binding_raises(tree, spy_adapter):
    users = tree.children["admin"].children["realms"].item.children["users"]
    node = BoundNode(users, spy_adapter, "{+baseurl}/admin/realms/{realm}/users", {"realm": ""})

    with pytest.raises(UnresolvedPathError) as exc_info:
        node.get()

    assert exc_info.value.placeholder == "realm"
    assert spy_adapter.sent == []


def test_bodied_request_sets_content_type_and_serializes(root):
    users = root.admin.realms["master"].users

    request = users.to_request_spec("POST", {"username": "john.doe"})

    assert request.body == b'{"username": "john.doe"}'
    assert request.headers["Content-Type"] == "application/json"
    # RAW responses carry no Accept header
    assert "Accept" not in request.headers


def test_caller_headers_take_precedence(root):
    realm = root.admin.realms["master"]

    request = realm.to_request_spec("GET", headers={"accept": "text/plain", "X-Trace": "1"})

    assert request.headers == {"accept": "text/plain", "X-Trace": "1"}


def test_query_parameters_drop_none_values(root):
    request = root.admin.realms["master"].users.to_request_spec("GET", query={"max": 50, "search": None})

    assert request.query == {"max": 50}


def test_missing_required_body_fails_before_adapter_call(root, spy_adapter):
    """Test that ArgumentMissingError is raised with zero adapter invocations."""
    with pytest.raises(ArgumentMissingError, match="body"):
        root.admin.realms["master"].users.post(None)

    with pytest.raises(ArgumentMissingError):
        root.admin.realms["master"].users["u-1"].put()

    assert spy_adapter.sent == []


def test_unsupported_verb_raises(root, spy_adapter):
    with pytest.raises(UnsupportedOperationError, match="DELETE"):
        root.admin.realms["master"].delete()

    assert spy_adapter.sent == []


# =============================================================================
# Execution
# =============================================================================


def test_collection_result_preserves_order(tree):
    adapter = SpyAdapter(result=[{"id": "a"}, {"id": "b"}])
    root = BoundNode.root(tree, adapter)

    result = root.admin.realms.get()

    assert result == [{"id": "a"}, {"id": "b"}]
    request, shape, factory = adapter.sent[0]
    assert request.url == "http://localhost:8080/admin/realms"
    assert shape is ResponseShape.COLLECTION
    assert factory is None


def test_operation_passes_its_factory_to_the_adapter(spy_adapter):
    builder = NodeBuilder()
    builder.add_operation(Operation(method="GET", response_model=str.upper))
    node = BoundNode.root(builder, spy_adapter)

    node.get()

    assert spy_adapter.sent[0][2] is str.upper


def test_adapter_errors_propagate_unchanged(tree):
    error = TransportError("connection refused")

    def fail(request):
        raise error

    root = BoundNode.root(tree, SpyAdapter(on_send=fail))

    with pytest.raises(TransportError) as exc_info:
        root.admin.realms.get()

    assert exc_info.value is error


def test_raw_url_node_ignores_bindings_and_query(root, spy_adapter):
    users = root.admin.realms["master"].users

    page = users.with_url("http://localhost:8080/admin/realms/master/users?first=100&max=100")
    page.get(query={"max": 5})

    request = spy_adapter.sent[0][0]
    assert request.url == "http://localhost:8080/admin/realms/master/users?first=100&max=100"
    assert request.query == {}


def test_raw_url_is_inherited_by_children(root, spy_adapter):
    realm = root.admin.realms["master"].with_url("http://other/realm-link")

    realm.users["u-1"].get()

    assert spy_adapter.sent[0][0].url == "http://other/realm-link"


# =============================================================================
# Cancellation
# =============================================================================


def test_cancel_mid_flight_raises_and_aborts_once(tree):
    """Test that cancelling during send discards the result and aborts once."""
    token = CancellationToken()
    adapter = SpyAdapter(result=[{"id": "a"}], on_send=lambda request: token.cancel())
    root = BoundNode.root(tree, adapter)

    with pytest.raises(RequestCancelledError):
        root.admin.realms.get(cancellation=token)

    assert len(adapter.aborted) == 1
    assert adapter.aborted[0] is adapter.sent[0][0]


def test_transport_error_after_cancel_becomes_cancelled(tree):
    token = CancellationToken()

    def cancel_and_fail(request):
        token.cancel()
        raise TransportError("Request aborted")

    adapter = SpyAdapter(on_send=cancel_and_fail)
    root = BoundNode.root(tree, adapter)

    with pytest.raises(RequestCancelledError) as exc_info:
        root.admin.realms.get(cancellation=token)

    assert isinstance(exc_info.value.__cause__, TransportError)
    assert len(adapter.aborted) == 1


def test_deserialization_error_after_cancel_becomes_cancelled(tree):
    token = CancellationToken()

    def cancel_and_fail(request):
        token.cancel()
        raise DeserializationError("truncated body")

    adapter = SpyAdapter(on_send=cancel_and_fail)
    root = BoundNode.root(tree, adapter)

    with pytest.raises(RequestCancelledError) as exc_info:
        root.admin.realms.get(cancellation=token)

    assert isinstance(exc_info.value.__cause__, DeserializationError)
    assert len(adapter.aborted) == 1


def test_deserialization_error_without_cancel_propagates(tree):
    def fail(request):
        raise DeserializationError("bad body")

    root = BoundNode.root(tree, SpyAdapter(on_send=fail))

    with pytest.raises(DeserializationError):
        root.admin.realms.get(cancellation=CancellationToken())


def test_already_cancelled_token_skips_adapter(root, spy_adapter):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(RequestCancelledError):
        root.admin.realms.get(cancellation=token)

    assert spy_adapter.sent == []
    assert spy_adapter.aborted == []


def test_uncancelled_token_returns_result_without_abort(tree):
    token = CancellationToken()
    adapter = SpyAdapter(result={"realm": "master"})
    root = BoundNode.root(tree, adapter)

    result = root.admin.realms["master"].get(cancellation=token)
    token.cancel()

    assert result == {"realm": "master"}
    assert adapter.aborted == []
