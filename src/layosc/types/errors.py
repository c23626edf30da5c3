"""Exception hierarchy for the bridge.

Errors fall into four classes, and the loops react to them differently:

1. Transient decode errors (`MalformedPacket`, `InvalidAddress`,
   `InvalidArguments`) - logged, packet dropped, loop continues.
2. Protocol contract violations (`ContractError` and subclasses) - fatal to the
   task that detected them, and so to the whole pipeline.
3. Transport errors (`TransportError`) - fatal at startup.
4. Channel errors (`ChannelClosed`, `PipelineTerminated`) - a peer task has
   already died, the pipeline shuts down.

`ArityError` and `EnvelopeError` are both a `DecodeError` (decoding failed)
and a `ContractError` (the sender is broken, not the network), so code that
only cares whether a datagram decoded can catch `DecodeError`, while the
receiver loop checks for `ContractError` first.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class DecodeError(BridgeError):
    """A datagram could not be turned into a typed message."""

    pass


class MalformedPacket(DecodeError):
    """Datagram is not a parseable OSC message or bundle."""

    pass


class InvalidAddress(DecodeError):
    """OSC address does not match any known message."""

    def __init__(self, addr: str):
        super().__init__(f"Invalid address `{addr}`")
        self.addr = addr


class InvalidArguments(DecodeError):
    """OSC arguments have the wrong type or value."""

    pass


class ContractError(BridgeError):
    """Protocol contract violated by the caller or configuration."""

    pass


class ArityError(ContractError, InvalidArguments):
    """Wrong number of arguments for a message."""

    pass


class EnvelopeError(ContractError, DecodeError):
    """Bundle is empty, holds several messages, or is nested."""

    pass


class UnsupportedOperation(ContractError):
    """The backend does not implement the requested operation."""

    pass


class EncodeError(BridgeError):
    """A well-formed message could not be encoded."""

    pass


class TransportError(BridgeError):
    """Failed to bind or use a UDP endpoint."""

    pass


class ChannelClosed(BridgeError):
    """Send on, or receive from, a closed and drained channel."""

    pass


class PipelineTerminated(BridgeError):
    """A loop that should run forever has stopped."""

    pass
