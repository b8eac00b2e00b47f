"""OSMPBF message classes.

The ``fileformat`` and ``osmformat`` schemas are declared here as field tables
and registered in a private descriptor pool at import time, so no generated
``_pb2`` module is needed.
"""
from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from osmpbf_core.protocol import DEFAULT_DATE_GRANULARITY, DEFAULT_GRANULARITY

PACKAGE = "OSMPBF"

_F = descriptor_pb2.FieldDescriptorProto

OPTIONAL = _F.LABEL_OPTIONAL
REQUIRED = _F.LABEL_REQUIRED
REPEATED = _F.LABEL_REPEATED

# Extra options per field: type_name (nested message/enum), default, packed.
_PACKED = {"packed": True}

# message name -> {field name: (number, type, label, extras)}
SCHEMA: dict[str, dict[str, tuple]] = {
    # fileformat.proto
    "Blob": {
        "raw": (1, _F.TYPE_BYTES, OPTIONAL, {}),
        "raw_size": (2, _F.TYPE_INT32, OPTIONAL, {}),
        "zlib_data": (3, _F.TYPE_BYTES, OPTIONAL, {}),
        "lzma_data": (4, _F.TYPE_BYTES, OPTIONAL, {}),
        "OBSOLETE_bzip2_data": (5, _F.TYPE_BYTES, OPTIONAL, {}),
        "lz4_data": (6, _F.TYPE_BYTES, OPTIONAL, {}),
        "zstd_data": (7, _F.TYPE_BYTES, OPTIONAL, {}),
    },
    "BlobHeader": {
        "type": (1, _F.TYPE_STRING, REQUIRED, {}),
        "indexdata": (2, _F.TYPE_BYTES, OPTIONAL, {}),
        "datasize": (3, _F.TYPE_INT32, REQUIRED, {}),
    },
    # osmformat.proto
    "HeaderBBox": {
        "left": (1, _F.TYPE_SINT64, REQUIRED, {}),
        "right": (2, _F.TYPE_SINT64, REQUIRED, {}),
        "top": (3, _F.TYPE_SINT64, REQUIRED, {}),
        "bottom": (4, _F.TYPE_SINT64, REQUIRED, {}),
    },
    "HeaderBlock": {
        "bbox": (1, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "HeaderBBox"}),
        "required_features": (4, _F.TYPE_STRING, REPEATED, {}),
        "optional_features": (5, _F.TYPE_STRING, REPEATED, {}),
        "writingprogram": (16, _F.TYPE_STRING, OPTIONAL, {}),
        "source": (17, _F.TYPE_STRING, OPTIONAL, {}),
        "osmosis_replication_timestamp": (32, _F.TYPE_INT64, OPTIONAL, {}),
        "osmosis_replication_sequence_number": (33, _F.TYPE_INT64, OPTIONAL, {}),
        "osmosis_replication_base_url": (34, _F.TYPE_STRING, OPTIONAL, {}),
    },
    "StringTable": {
        "s": (1, _F.TYPE_BYTES, REPEATED, {}),
    },
    "Info": {
        "version": (1, _F.TYPE_INT32, OPTIONAL, {"default_value": "-1"}),
        "timestamp": (2, _F.TYPE_INT64, OPTIONAL, {}),
        "changeset": (3, _F.TYPE_INT64, OPTIONAL, {}),
        "uid": (4, _F.TYPE_INT32, OPTIONAL, {}),
        "user_sid": (5, _F.TYPE_UINT32, OPTIONAL, {}),
        "visible": (6, _F.TYPE_BOOL, OPTIONAL, {}),
    },
    "DenseInfo": {
        "version": (1, _F.TYPE_INT32, REPEATED, _PACKED),
        "timestamp": (2, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "changeset": (3, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "uid": (4, _F.TYPE_SINT32, REPEATED, _PACKED),  # DELTA coded
        "user_sid": (5, _F.TYPE_SINT32, REPEATED, _PACKED),  # DELTA coded
        "visible": (6, _F.TYPE_BOOL, REPEATED, _PACKED),
    },
    "ChangeSet": {
        "id": (1, _F.TYPE_INT64, REQUIRED, {}),
    },
    "Node": {
        "id": (1, _F.TYPE_SINT64, REQUIRED, {}),
        "keys": (2, _F.TYPE_UINT32, REPEATED, _PACKED),
        "vals": (3, _F.TYPE_UINT32, REPEATED, _PACKED),
        "info": (4, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "Info"}),
        "lat": (8, _F.TYPE_SINT64, REQUIRED, {}),
        "lon": (9, _F.TYPE_SINT64, REQUIRED, {}),
    },
    "DenseNodes": {
        "id": (1, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "denseinfo": (5, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "DenseInfo"}),
        "lat": (8, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "lon": (9, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "keys_vals": (10, _F.TYPE_INT32, REPEATED, _PACKED),
    },
    "Way": {
        "id": (1, _F.TYPE_INT64, REQUIRED, {}),
        "keys": (2, _F.TYPE_UINT32, REPEATED, _PACKED),
        "vals": (3, _F.TYPE_UINT32, REPEATED, _PACKED),
        "info": (4, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "Info"}),
        "refs": (8, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "lat": (9, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded, LocationsOnWays
        "lon": (10, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded, LocationsOnWays
    },
    "Relation": {
        "id": (1, _F.TYPE_INT64, REQUIRED, {}),
        "keys": (2, _F.TYPE_UINT32, REPEATED, _PACKED),
        "vals": (3, _F.TYPE_UINT32, REPEATED, _PACKED),
        "info": (4, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "Info"}),
        "roles_sid": (8, _F.TYPE_INT32, REPEATED, _PACKED),
        "memids": (9, _F.TYPE_SINT64, REPEATED, _PACKED),  # DELTA coded
        "types": (10, _F.TYPE_ENUM, REPEATED, {"type_name": "Relation.MemberType", "packed": True}),
    },
    "PrimitiveGroup": {
        "nodes": (1, _F.TYPE_MESSAGE, REPEATED, {"type_name": "Node"}),
        "dense": (2, _F.TYPE_MESSAGE, OPTIONAL, {"type_name": "DenseNodes"}),
        "ways": (3, _F.TYPE_MESSAGE, REPEATED, {"type_name": "Way"}),
        "relations": (4, _F.TYPE_MESSAGE, REPEATED, {"type_name": "Relation"}),
        "changesets": (5, _F.TYPE_MESSAGE, REPEATED, {"type_name": "ChangeSet"}),
    },
    "PrimitiveBlock": {
        "stringtable": (1, _F.TYPE_MESSAGE, REQUIRED, {"type_name": "StringTable"}),
        "primitivegroup": (2, _F.TYPE_MESSAGE, REPEATED, {"type_name": "PrimitiveGroup"}),
        "granularity": (17, _F.TYPE_INT32, OPTIONAL, {"default_value": str(DEFAULT_GRANULARITY)}),
        "lat_offset": (19, _F.TYPE_INT64, OPTIONAL, {"default_value": "0"}),
        "lon_offset": (20, _F.TYPE_INT64, OPTIONAL, {"default_value": "0"}),
        "date_granularity": (18, _F.TYPE_INT32, OPTIONAL, {"default_value": str(DEFAULT_DATE_GRANULARITY)}),
    },
}

# message name -> {enum name: [(value name, number)]}
ENUMS: dict[str, dict[str, list[tuple[str, int]]]] = {
    "Relation": {"MemberType": [("NODE", 0), ("WAY", 1), ("RELATION", 2)]},
}


def _file_proto() -> descriptor_pb2.FileDescriptorProto:
    fp = descriptor_pb2.FileDescriptorProto(
        name="osmpbf/osmformat.proto", package=PACKAGE, syntax="proto2"
    )
    for msg_name, fields in SCHEMA.items():
        msg = fp.message_type.add(name=msg_name)
        for enum_name, values in ENUMS.get(msg_name, {}).items():
            enum = msg.enum_type.add(name=enum_name)
            for value_name, number in values:
                enum.value.add(name=value_name, number=number)
        for field_name, (number, field_type, label, extras) in fields.items():
            fd = msg.field.add(name=field_name, number=number, type=field_type, label=label)
            if "type_name" in extras:
                fd.type_name = f".{PACKAGE}.{extras['type_name']}"
            if "default_value" in extras:
                fd.default_value = extras["default_value"]
            if extras.get("packed"):
                fd.options.packed = True
    return fp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_proto().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


Blob = _message_class("Blob")
BlobHeader = _message_class("BlobHeader")
HeaderBBox = _message_class("HeaderBBox")
HeaderBlock = _message_class("HeaderBlock")
StringTable = _message_class("StringTable")
Info = _message_class("Info")
DenseInfo = _message_class("DenseInfo")
ChangeSet = _message_class("ChangeSet")
Node = _message_class("Node")
DenseNodes = _message_class("DenseNodes")
Way = _message_class("Way")
Relation = _message_class("Relation")
PrimitiveGroup = _message_class("PrimitiveGroup")
PrimitiveBlock = _message_class("PrimitiveBlock")
