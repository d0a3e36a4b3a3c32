"""
Remote write wire encoding.

The message classes mirror Prometheus ``prompb`` (remote.proto/types.proto)
for the subset this tool sends: WriteRequest, TimeSeries, Label, Sample.
They are built at import time from a FileDescriptorProto, so no generated
``_pb2`` module has to be shipped.

Body on the wire = snappy block compression of the serialized WriteRequest.
"""

# pylint: disable=line-too-long
from __future__ import annotations

from typing import Any

import snappy
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from remote_write_replay.core.domain.types import WriteBatch
from remote_write_replay.core.errors import SerializationError

_PACKAGE = "prometheus"

_FieldProto = descriptor_pb2.FieldDescriptorProto


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="remote_write_replay/prompb.proto",
        package=_PACKAGE,
        syntax="proto3",
    )

    label = file_proto.message_type.add(name="Label")
    label.field.add(name="name", number=1, type=_FieldProto.TYPE_STRING, label=_FieldProto.LABEL_OPTIONAL)
    label.field.add(name="value", number=2, type=_FieldProto.TYPE_STRING, label=_FieldProto.LABEL_OPTIONAL)

    sample = file_proto.message_type.add(name="Sample")
    sample.field.add(name="value", number=1, type=_FieldProto.TYPE_DOUBLE, label=_FieldProto.LABEL_OPTIONAL)
    sample.field.add(name="timestamp", number=2, type=_FieldProto.TYPE_INT64, label=_FieldProto.LABEL_OPTIONAL)

    series = file_proto.message_type.add(name="TimeSeries")
    series.field.add(
        name="labels",
        number=1,
        type=_FieldProto.TYPE_MESSAGE,
        label=_FieldProto.LABEL_REPEATED,
        type_name=f".{_PACKAGE}.Label",
    )
    series.field.add(
        name="samples",
        number=2,
        type=_FieldProto.TYPE_MESSAGE,
        label=_FieldProto.LABEL_REPEATED,
        type_name=f".{_PACKAGE}.Sample",
    )

    request = file_proto.message_type.add(name="WriteRequest")
    request.field.add(
        name="timeseries",
        number=1,
        type=_FieldProto.TYPE_MESSAGE,
        label=_FieldProto.LABEL_REPEATED,
        type_name=f".{_PACKAGE}.TimeSeries",
    )

    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file_descriptor().SerializeToString())


def _message_class(name: str) -> Any:
    return message_factory.GetMessageClass(
        _POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}")
    )


WriteRequest = _message_class("WriteRequest")
TimeSeries = _message_class("TimeSeries")
LabelMessage = _message_class("Label")
SampleMessage = _message_class("Sample")


def to_write_request(batch: WriteBatch) -> Any:
    """Convert a domain batch into a WriteRequest message."""
    request = WriteRequest()

    for projection in batch.timeseries:
        series = request.timeseries.add()

        for label in projection.labels:
            series.labels.add(name=label.name, value=label.value)

        for sample in projection.samples:
            series.samples.add(value=sample.value, timestamp=sample.timestamp_ms)

    return request


def serialize(batch: WriteBatch) -> bytes:
    try:
        return to_write_request(batch).SerializeToString()
    except Exception as exc:
        raise SerializationError(f"failed to serialize batch: {exc}") from exc


def compress(data: bytes) -> bytes:
    try:
        return snappy.compress(data)
    except Exception as exc:
        raise SerializationError(f"failed to compress batch: {exc}") from exc


def encode(batch: WriteBatch) -> bytes:
    """Request body for one batch: compress(serialize(batch))."""
    return compress(serialize(batch))
