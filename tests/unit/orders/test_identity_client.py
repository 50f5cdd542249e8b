"""Unit tests for RPCIdentityValidator against an in-process gRPC server."""

from __future__ import annotations

import time
from concurrent import futures
from unittest.mock import MagicMock

import grpc
import pytest

from modules.core.middleware import correlation_id_var
from modules.orders.clients.exceptions import IdentityUnavailable
from modules.orders.clients.identity import RPCIdentityValidator
from modules.orders.clients.user_pb import ValidateUserRequest, ValidateUserResponse

pytestmark = pytest.mark.unit


class FakeUserService:
    """``ValidateUser`` handler knowing a fixed set of user ids."""

    def __init__(self, known):
        self.known = set(known)
        self.requests = []
        self.metadata = []
        self.abort_with = None
        self.delay = 0.0

    def validate_user(self, request, context):
        self.requests.append(request)
        self.metadata.append(dict(context.invocation_metadata()))
        if self.delay:
            time.sleep(self.delay)
        if self.abort_with is not None:
            context.abort(self.abort_with, "validate error: boom")
        return ValidateUserResponse(ok=request.id in self.known)


def _serve(service, service_name="user.UserService"):
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=2))
    handler = grpc.method_handlers_generic_handler(
        service_name,
        {
            "ValidateUser": grpc.unary_unary_rpc_method_handler(
                service.validate_user,
                request_deserializer=ValidateUserRequest.FromString,
                response_serializer=ValidateUserResponse.SerializeToString,
            )
        },
    )
    server.add_generic_rpc_handlers((handler,))
    port = server.add_insecure_port("127.0.0.1:0")
    server.start()
    return server, f"127.0.0.1:{port}"


@pytest.fixture()
def user_service():
    service = FakeUserService(known={"user-1"})
    server, target = _serve(service)
    service.target = target
    yield service
    server.stop(grace=None)


@pytest.fixture()
def validator(user_service):
    client = RPCIdentityValidator(user_service.target, timeout=2.0)
    yield client
    client.close()


class TestValidate:
    def test_known_user(self, validator):
        assert validator.validate("user-1") is True

    def test_unknown_user(self, validator):
        assert validator.validate("ghost") is False

    def test_sends_user_id(self, validator, user_service):
        validator.validate("user-1")

        assert [request.id for request in user_service.requests] == ["user-1"]

    def test_calls_configured_service(self):
        service = FakeUserService(known={"user-1"})
        server, target = _serve(service, service_name="acme.v1.Users")
        client = RPCIdentityValidator(target, service="acme.v1.Users", timeout=2.0)
        try:
            assert client.validate("user-1") is True
        finally:
            client.close()
            server.stop(grace=None)

    def test_forwards_request_id(self, validator, user_service):
        token = correlation_id_var.set("cid-identity")
        try:
            validator.validate("user-1")
        finally:
            correlation_id_var.reset(token)

        assert user_service.metadata[0]["x-request-id"] == "cid-identity"

    def test_no_request_id_outside_a_request(self, validator, user_service):
        validator.validate("user-1")

        assert "x-request-id" not in user_service.metadata[0]


class TestUnavailable:
    @pytest.mark.parametrize(
        "code",
        [grpc.StatusCode.INTERNAL, grpc.StatusCode.INVALID_ARGUMENT, grpc.StatusCode.UNAVAILABLE],
    )
    def test_error_status(self, validator, user_service, code):
        user_service.abort_with = code

        with pytest.raises(IdentityUnavailable, match=code.name):
            validator.validate("user-1")

    def test_deadline_exceeded(self, user_service):
        user_service.delay = 0.5
        client = RPCIdentityValidator(user_service.target, timeout=0.1)
        try:
            with pytest.raises(IdentityUnavailable, match="DEADLINE_EXCEEDED"):
                client.validate("user-1")
        finally:
            client.close()

    def test_server_down(self):
        server, target = _serve(FakeUserService(known=()))
        server.stop(grace=None).wait()
        client = RPCIdentityValidator(target, timeout=0.2)
        try:
            with pytest.raises(IdentityUnavailable):
                client.validate("user-1")
        finally:
            client.close()

    def test_unimplemented_method(self, user_service):
        client = RPCIdentityValidator(user_service.target, service="other.Users", timeout=2.0)
        try:
            with pytest.raises(IdentityUnavailable, match="UNIMPLEMENTED"):
                client.validate("user-1")
        finally:
            client.close()


class TestClose:
    def test_close_closes_channel(self):
        channel = MagicMock()

        RPCIdentityValidator("users.test:50051", channel=channel).close()

        channel.close.assert_called_once_with()
