"""gRPC implementation of the identity capability.

Calls the user service's unary ``/{service}/ValidateUser`` method
(``ValidateUserRequest{id}`` -> ``ValidateUserResponse{ok}``) over an
insecure channel.  Any non-OK status, including an expired deadline or an
unreachable server, means the check could not be performed.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import grpc
import structlog

from modules.core.middleware import REQUEST_ID_HEADER, get_correlation_id
from modules.orders.clients.exceptions import IdentityUnavailable
from modules.orders.clients.interfaces import IIdentityValidator
from modules.orders.clients.user_pb import ValidateUserRequest, ValidateUserResponse

logger = structlog.get_logger(__name__)

DEFAULT_RPC_SERVICE = "user.UserService"
_VALIDATE_METHOD = "ValidateUser"

# gRPC metadata keys are lower-case.
REQUEST_ID_METADATA = REQUEST_ID_HEADER.lower()


class RPCIdentityValidator(IIdentityValidator):
    """Identity validator backed by the user service gRPC endpoint.

    Calls wait for the channel to become ready, bounded by *timeout*
    seconds.  Pass *channel* to reuse an existing ``grpc.Channel``.
    """

    def __init__(
        self,
        target: str,
        service: str = DEFAULT_RPC_SERVICE,
        timeout: float = 5.0,
        channel: Optional[grpc.Channel] = None,
    ) -> None:
        self._target = target
        self._timeout = timeout
        self._method = f"/{service}/{_VALIDATE_METHOD}"
        self._channel = channel or grpc.insecure_channel(target)
        self._validate_user = self._channel.unary_unary(
            self._method,
            request_serializer=ValidateUserRequest.SerializeToString,
            response_deserializer=ValidateUserResponse.FromString,
        )

    def close(self) -> None:
        self._channel.close()

    def validate(self, user_id: str) -> bool:
        metadata: List[Tuple[str, str]] = []
        correlation_id = get_correlation_id()
        if correlation_id:
            metadata.append((REQUEST_ID_METADATA, correlation_id))

        try:
            response = self._validate_user(
                ValidateUserRequest(id=user_id),
                timeout=self._timeout,
                metadata=metadata,
                wait_for_ready=True,
            )
        except grpc.RpcError as exc:
            code = exc.code() if isinstance(exc, grpc.Call) else None
            details = exc.details() if isinstance(exc, grpc.Call) else str(exc)
            logger.warning(
                "identity.request_failed",
                user_id=user_id,
                grpc_code=getattr(code, "name", None),
                error=details,
            )
            raise IdentityUnavailable(
                f"{_VALIDATE_METHOD}: {getattr(code, 'name', 'UNKNOWN')}: {details}"
            ) from exc

        return response.ok
