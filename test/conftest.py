"""Shared fixtures for the resource client tests."""

import json

import pytest

from keycloak_resources.generator import Endpoint, build_tree
from keycloak_resources.request import ResponseShape


class SpyAdapter:
    """Records every call instead of talking to a server.

    send() returns ``result`` unchanged and runs ``on_send`` first, if set,
    which lets tests raise errors or cancel tokens mid-flight.
    """

    base_url = "http://localhost:8080"

    def __init__(self, result=None, on_send=None):
        self.result = result
        self.on_send = on_send
        self.sent = []
        self.aborted = []

    def serialize(self, body, content_type):
        return json.dumps(body).encode("utf-8")

    def send(self, request, shape, factory):
        self.sent.append((request, shape, factory))
        if self.on_send is not None:
            self.on_send(request)
        return self.result

    def abort(self, request):
        self.aborted.append(request)


@pytest.fixture
def spy_adapter():
    return SpyAdapter()


@pytest.fixture
def tree():
    """A small tree: /admin/realms/{realm}/users/{user-id}/offline-sessions/{clientUuid}."""
    return build_tree(
        [
            Endpoint(path="/admin/realms", method="GET", response_shape=ResponseShape.COLLECTION),
            Endpoint(path="/admin/realms/{realm}", method="GET"),
            Endpoint(path="/admin/realms/{realm}/users", method="GET", response_shape=ResponseShape.COLLECTION),
            Endpoint(
                path="/admin/realms/{realm}/users",
                method="POST",
                response_shape=ResponseShape.RAW,
                body_required=True,
            ),
            Endpoint(path="/admin/realms/{realm}/users/{user%2Did}", method="GET"),
            Endpoint(
                path="/admin/realms/{realm}/users/{user%2Did}",
                method="PUT",
                response_shape=ResponseShape.NONE,
                body_required=True,
            ),
            Endpoint(
                path="/admin/realms/{realm}/users/{user%2Did}/offline-sessions/{clientUuid}",
                method="GET",
                response_shape=ResponseShape.COLLECTION,
            ),
        ]
    )
