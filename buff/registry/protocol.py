"""Protobuf messages for the registry's gRPC services.

The message set mirrors buff.proto (package `buff_server_grpc`). Instead of
shipping generated *_pb2 modules, the file descriptor is assembled here and
registered in a private descriptor pool, which keeps the wire contract in
one readable table.

PublishRequest carries the package metadata next to the artifact bytes, so
the registry does not have to dig the manifest out of the archive.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PROTO_PACKAGE = "buff_server_grpc"

LOGIN_METHOD = f"/{PROTO_PACKAGE}.AuthService/Login"
PUBLISH_METHOD = f"/{PROTO_PACKAGE}.RegistryService/Publish"

_F = descriptor_pb2.FieldDescriptorProto

# message name → [(field name, number, type, repeated, message type)]
_MESSAGES: dict[str, list[tuple]] = {
    "LoginRequest": [
        ("email", 1, _F.TYPE_STRING, False, None),
        ("password", 2, _F.TYPE_STRING, False, None),
    ],
    "LoginResponse": [
        ("token", 1, _F.TYPE_STRING, False, None),
    ],
    "Package": [
        ("name", 1, _F.TYPE_STRING, False, None),
        ("description", 2, _F.TYPE_STRING, False, None),
        ("homepage", 3, _F.TYPE_STRING, False, None),
        ("repository_url", 4, _F.TYPE_STRING, False, None),
        ("keywords", 5, _F.TYPE_STRING, True, None),
        ("version", 6, _F.TYPE_STRING, False, None),
    ],
    "PublishRequest": [
        ("artifact", 1, _F.TYPE_BYTES, False, None),
        ("package", 2, _F.TYPE_MESSAGE, False, "Package"),
    ],
    "PublishResponse": [
        ("result", 1, _F.TYPE_BOOL, False, None),
    ],
}

# service name → [(method, request, response)]
_SERVICES: dict[str, list[tuple[str, str, str]]] = {
    "AuthService": [("Login", "LoginRequest", "LoginResponse")],
    "RegistryService": [("Publish", "PublishRequest", "PublishResponse")],
}


def _qualified(name: str) -> str:
    return f".{PROTO_PACKAGE}.{name}"


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="buff.proto",
        package=PROTO_PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message = proto.message_type.add(name=message_name)
        for field_name, number, field_type, repeated, type_name in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = _qualified(type_name)

    for service_name, methods in _SERVICES.items():
        service = proto.service.add(name=service_name)
        for method_name, request, response in methods:
            service.method.add(
                name=method_name,
                input_type=_qualified(request),
                output_type=_qualified(response),
            )
    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(build_file_descriptor().SerializeToString())


def _message_class(name: str) -> type:
    descriptor = _pool.FindMessageTypeByName(f"{PROTO_PACKAGE}.{name}")
    return message_factory.GetMessageClass(descriptor)


LoginRequest = _message_class("LoginRequest")
LoginResponse = _message_class("LoginResponse")
Package = _message_class("Package")
PublishRequest = _message_class("PublishRequest")
PublishResponse = _message_class("PublishResponse")
