"""Protobuf messages of the user service ``ValidateUser`` RPC.

Wire-compatible with the user service's ``user.proto``::

    syntax = "proto3";
    package user;

    message ValidateUserRequest  { string id = 1; }
    message ValidateUserResponse { bool   ok = 1; }

The descriptors are registered in a private pool so they never clash with
another copy of ``user.proto`` loaded into the default pool.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "user"

_Field = descriptor_pb2.FieldDescriptorProto


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="orders/user_validate.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    request = proto.message_type.add(name="ValidateUserRequest")
    request.field.add(
        name="id",
        json_name="id",
        number=1,
        type=_Field.TYPE_STRING,
        label=_Field.LABEL_OPTIONAL,
    )
    response = proto.message_type.add(name="ValidateUserResponse")
    response.field.add(
        name="ok",
        json_name="ok",
        number=1,
        type=_Field.TYPE_BOOL,
        label=_Field.LABEL_OPTIONAL,
    )
    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())

ValidateUserRequest = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.ValidateUserRequest")
)
ValidateUserResponse = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.ValidateUserResponse")
)
