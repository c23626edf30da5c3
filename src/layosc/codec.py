# -*- coding: utf-8 -*-
"""
OSC encoding and decoding of bridge messages.

The bit-level OSC format is handled by python-osc; this module maps OSC
messages onto the typed vocabulary of `layosc.types.messages` and enforces the
envelope rules:

- a bundle must hold exactly one message (empty, multiple and nested bundles
  are contract violations),
- a bare message is accepted but logged as non-conforming,
- addresses are matched exactly against the fixed address table,
- argument count and types must match the message definition exactly.

Examples
--------
```python
from layosc.codec import decode_request, encode
from layosc.types import PauliX
assert decode_request(encode(PauliX(0, 1))) == PauliX(0, 1)
```
"""

from __future__ import annotations

from typing import Literal, Union

from loguru import logger
from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_bundle import ParseError as BundleParseError
from pythonosc.osc_bundle_builder import IMMEDIATELY, OscBundleBuilder
from pythonosc.osc_bundle_builder import BuildError as BundleBuildError
from pythonosc.osc_message import OscMessage
from pythonosc.osc_message import ParseError as MessageParseError
from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from layosc.types.errors import (
    ArityError,
    EncodeError,
    EnvelopeError,
    InvalidAddress,
    InvalidArguments,
    MalformedPacket,
)
from layosc.types.messages import (
    I32_MAX,
    I32_MIN,
    REQUEST_TYPES,
    RESPONSE_TYPES,
    Message,
    Request,
    Response,
)

MessageKind = Literal["request", "response"]


# ============================================================================


def encode(message: Message, bundled: bool = False) -> bytes:
    """Encode a message into an OSC datagram.

    Parameters
    ----------
    message : Message
        Any request or response.
    bundled : bool
        Wrap the message in a single-message bundle, time tag "immediately".

    Raises
    ------
    EncodeError
        If python-osc refuses to build the packet. Message types validate their
        fields on construction, so this indicates a bug.
    """
    builder = OscMessageBuilder(address=message.ADDRESS)
    for value, arg_type in zip(message.args, message.ARG_TYPES):
        builder.add_arg(value, arg_type)
    try:
        osc_msg = builder.build()
        if not bundled:
            return osc_msg.dgram
        bundle_builder = OscBundleBuilder(IMMEDIATELY)
        bundle_builder.add_content(osc_msg)
        return bundle_builder.build().dgram
    except (BuildError, BundleBuildError) as e:
        raise EncodeError(f"Could not encode {message}: {e}") from e


# ============================================================================


def unwrap_packet(dgram: bytes) -> OscMessage:
    """Parse a datagram and return the single OSC message it carries."""
    try:
        if OscBundle.dgram_is_bundle(dgram):
            bundle = OscBundle(dgram)
        elif OscMessage.dgram_is_message(dgram):
            osc_msg = OscMessage(dgram)
            logger.warning("Message without Bundle: {}", osc_msg.address)
            return osc_msg
        else:
            raise MalformedPacket(f"Not an OSC packet (len={len(dgram)}).")
    except (MessageParseError, BundleParseError) as e:
        raise MalformedPacket(f"OSC Error {e!r}") from e

    contents = list(bundle)
    if len(contents) == 0:
        raise EnvelopeError("Received empty bundle.")
    if len(contents) != 1:
        raise EnvelopeError("Multiple messages in same bundle.")
    content = contents[0]
    if isinstance(content, OscBundle):
        raise EnvelopeError("Received nested bundle.")
    return content


def _check_args(address: str, params: list, arg_types: tuple[str, ...]) -> None:
    if len(params) != len(arg_types):
        raise ArityError(
            f"{address} takes {len(arg_types)} arguments, got {len(params)}."
        )
    for i, (value, arg_type) in enumerate(zip(params, arg_types)):
        if arg_type == "i":
            ok = type(value) is int and I32_MIN <= value <= I32_MAX
        else:
            ok = type(value) is float
        if not ok:
            raise InvalidArguments(
                f"{address} argument {i} expected '{arg_type}', got {value!r}."
            )


def message_from_osc(
    osc_msg: OscMessage, table: dict[str, type[Message]]
) -> Message:
    """Look up the message type for an OSC message and build it."""
    cls = table.get(osc_msg.address)
    if cls is None:
        raise InvalidAddress(osc_msg.address)
    params = list(osc_msg.params)
    _check_args(osc_msg.address, params, cls.ARG_TYPES)
    try:
        return cls(*params)
    except ValueError as e:
        raise InvalidArguments(f"{osc_msg.address}: {e}") from e


def decode_request(dgram: bytes) -> Request:
    return message_from_osc(unwrap_packet(dgram), REQUEST_TYPES)


def decode_response(dgram: bytes) -> Response:
    return message_from_osc(unwrap_packet(dgram), RESPONSE_TYPES)


def decode(dgram: bytes, kind: MessageKind = "request") -> Union[Request, Response]:
    """Decode a datagram as a request or a response.

    `/Mz` exists in both directions, so the caller says which one it expects.

    Raises
    ------
    DecodeError
        `MalformedPacket`, `InvalidAddress` or `InvalidArguments` for bad
        packets; `ArityError` and `EnvelopeError`, which are also
        `ContractError`s, for protocol violations.
    """
    if kind == "request":
        return decode_request(dgram)
    elif kind == "response":
        return decode_response(dgram)
    raise ValueError(f"Unknown message kind: {kind}")
