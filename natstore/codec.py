"""
Payload codecs

Converts outbound payloads to bytes and inbound bytes back to values.
JSON is the default wire encoding; protobuf messages can be carried with
:class:`ProtobufCodec`.
"""

import json
from typing import Any, Optional, Protocol, Type

from google.protobuf.json_format import MessageToDict, ParseDict
from google.protobuf.message import DecodeError, Message

from natstore.errors import DeserializationError, SerializationError


class Codec(Protocol):
    """Serialization boundary used by the basic and durable tiers"""

    def serialize(self, value: Any) -> bytes:
        ...

    def deserialize(self, data: bytes, into: Optional[Any] = None) -> Any:
        ...


class JsonCodec:
    """UTF-8 JSON codec"""

    def __init__(self, **dumps_kwargs):
        self.dumps_kwargs = dumps_kwargs

    def serialize(self, value: Any) -> bytes:
        """Encode a JSON-serializable value

        Raises:
            SerializationError: value is not JSON serializable
        """
        try:
            return json.dumps(value, **self.dumps_kwargs).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"json encode: {e}") from e

    def deserialize(self, data: bytes, into: Optional[Any] = None) -> Any:
        """Decode JSON bytes

        Args:
            data: Raw payload
            into: Optional callable applied to the decoded value (for
                example a dataclass or a pydantic model constructor)

        Raises:
            DeserializationError: payload is not valid JSON or ``into`` rejects it
        """
        try:
            value = json.loads(data.decode("utf-8")) if data else None
        except (UnicodeDecodeError, ValueError) as e:
            raise DeserializationError(f"json decode: {e}") from e

        if into is None:
            return value
        try:
            if isinstance(value, dict):
                return into(**value)
            return into(value)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"json decode into {into}: {e}") from e


class ProtobufCodec:
    """Binary protobuf codec bound to a message type"""

    def __init__(self, message_type: Type[Message]):
        self.message_type = message_type

    def serialize(self, value: Any) -> bytes:
        """Encode a protobuf message, or a dict matching the bound message type"""
        try:
            if isinstance(value, dict):
                message = self.message_type()
                ParseDict(value, message)
                value = message
            if not isinstance(value, Message):
                raise TypeError(f"expected protobuf message, got {type(value).__name__}")
            return value.SerializeToString()
        except Exception as e:
            raise SerializationError(f"protobuf encode: {e}") from e

    def deserialize(self, data: bytes, into: Optional[Any] = None) -> Any:
        """Decode bytes into the bound message type

        Args:
            data: Raw payload
            into: ``dict`` to get a plain dictionary instead of a message
        """
        message = self.message_type()
        try:
            message.ParseFromString(data)
        except DecodeError as e:
            raise DeserializationError(f"protobuf decode: {e}") from e
        if into is dict:
            return MessageToDict(message, preserving_proto_field_name=True)
        return message


DEFAULT_CODEC = JsonCodec()
