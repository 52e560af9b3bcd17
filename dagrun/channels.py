"""Channels carrying information packets between graph nodes.

Two kinds exist: an mpsc channel (bounded queue, one reader) and a
broadcast channel (bounded ring buffer, every reader sees every packet
unless it falls behind). Both can be used from threads and from asyncio.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from .errors import DagError
from .state import Content

_POLL_INTERVAL = 0.05
_TIMEOUT = object()


@dataclass(frozen=True)
class NodeId:
    """Identifier of a node in the graph."""

    value: int


class RecvError(DagError):
    """A packet could not be received."""


class SendError(DagError):
    """A packet could not be sent; ``content`` holds the packet."""

    def __init__(self, content: Content | None = None, message: str = "channel has no active receivers") -> None:
        self.content = content
        super().__init__(message)


class ChannelNotExist(RecvError, SendError):
    """No channel is registered for the given node."""

    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        self.content = None
        Exception.__init__(self, f"no channel for node {node_id.value}")


class ChannelClosed(RecvError):
    """The channel is closed and holds no more packets."""

    def __init__(self) -> None:
        super().__init__("channel closed")


class ChannelLagged(RecvError):
    """The receiver fell behind; ``skipped`` packets were lost to it."""

    def __init__(self, skipped: int) -> None:
        self.skipped = skipped
        super().__init__(f"receiver lagged behind by {skipped} packets")


def _check_capacity(capacity: int) -> None:
    if capacity <= 0:
        raise ValueError("channel capacity must be greater than zero")


def _wait(cond: threading.Condition, predicate: Callable[[], bool], timeout: float | None) -> bool:
    return cond.wait_for(predicate, timeout)


class _MpscCore:
    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.cond = threading.Condition()
        self.queue: deque[Content] = deque()
        self.senders = 1
        self.open = True


class _MpscSender:
    def __init__(self, core: _MpscCore) -> None:
        self._core = core
        self._dropped = False

    def send(self, content: Content, timeout: float | None) -> Any:
        core = self._core
        with core.cond:
            ready = _wait(core.cond, lambda: not core.open or len(core.queue) < core.capacity, timeout)
            if not ready:
                return _TIMEOUT
            if not core.open or self._dropped:
                raise SendError(content)
            core.queue.append(content)
            core.cond.notify_all()
        return None

    def drop(self) -> None:
        core = self._core
        with core.cond:
            if not self._dropped:
                self._dropped = True
                core.senders -= 1
                core.cond.notify_all()

    def clone(self) -> _MpscSender:
        core = self._core
        with core.cond:
            core.senders += 1
        return _MpscSender(core)


class _MpscReceiver:
    def __init__(self, core: _MpscCore) -> None:
        self._core = core

    def recv(self, timeout: float | None) -> Any:
        core = self._core
        with core.cond:
            ready = _wait(core.cond, lambda: bool(core.queue) or core.senders == 0 or not core.open, timeout)
            if not ready:
                return _TIMEOUT
            if core.queue:
                content = core.queue.popleft()
                core.cond.notify_all()
                return content
            raise ChannelClosed()

    def close(self) -> None:
        core = self._core
        with core.cond:
            core.open = False
            core.queue.clear()
            core.cond.notify_all()

    def clone(self) -> _MpscReceiver:
        raise TypeError("an mpsc channel has a single receiver")


class _BroadcastCore:
    def __init__(self, capacity: int) -> None:
        self.cond = threading.Condition()
        self.buffer: deque[Content] = deque(maxlen=capacity)
        self.tail = 0
        self.senders = 1
        self.receivers = 1


class _BroadcastSender:
    def __init__(self, core: _BroadcastCore) -> None:
        self._core = core
        self._dropped = False

    def send(self, content: Content, timeout: float | None) -> Any:
        core = self._core
        with core.cond:
            if core.receivers == 0 or self._dropped:
                raise SendError(content)
            core.buffer.append(content)
            core.tail += 1
            core.cond.notify_all()
        return None

    def drop(self) -> None:
        core = self._core
        with core.cond:
            if not self._dropped:
                self._dropped = True
                core.senders -= 1
                core.cond.notify_all()

    def clone(self) -> _BroadcastSender:
        core = self._core
        with core.cond:
            core.senders += 1
        return _BroadcastSender(core)


class _BroadcastReceiver:
    def __init__(self, core: _BroadcastCore, position: int) -> None:
        self._core = core
        self._position = position
        self._closed = False

    def recv(self, timeout: float | None) -> Any:
        core = self._core
        with core.cond:
            if self._closed:
                raise ChannelClosed()
            ready = _wait(core.cond, lambda: self._position < core.tail or core.senders == 0, timeout)
            if not ready:
                return _TIMEOUT
            oldest = core.tail - len(core.buffer)
            if self._position < oldest:
                skipped = oldest - self._position
                self._position = oldest
                raise ChannelLagged(skipped)
            if self._position < core.tail:
                content = core.buffer[self._position - oldest]
                self._position += 1
                return content
            raise ChannelClosed()

    def close(self) -> None:
        core = self._core
        with core.cond:
            if not self._closed:
                self._closed = True
                core.receivers -= 1

    def clone(self) -> _BroadcastReceiver:
        core = self._core
        with core.cond:
            core.receivers += 1
            return _BroadcastReceiver(core, core.tail)


class InChannel:
    """The receiving end of a channel.

    Copying a broadcast receiver subscribes a new receiver that sees packets
    sent from then on; an mpsc receiver cannot be copied.
    """

    def __init__(self, receiver: _MpscReceiver | _BroadcastReceiver) -> None:
        self._receiver = receiver

    def blocking_recv(self) -> Content:
        """Wait for the next packet in the current thread."""
        return self._receiver.recv(None)

    async def recv(self) -> Content:
        """Wait for the next packet without blocking the event loop."""
        result = self._receiver.recv(0)
        while result is _TIMEOUT:
            result = await asyncio.to_thread(self._receiver.recv, _POLL_INTERVAL)
        return result

    def close(self) -> None:
        """Stop receiving; packets still held for this receiver are dropped."""
        self._receiver.close()

    def __copy__(self) -> InChannel:
        return InChannel(self._receiver.clone())


class OutChannel:
    """The sending end of a channel. Copying it adds another sender."""

    def __init__(self, sender: _MpscSender | _BroadcastSender) -> None:
        self._sender = sender

    def blocking_send(self, content: Content) -> None:
        """Send a packet, waiting in this thread while an mpsc channel is full."""
        self._sender.send(content, None)

    async def send(self, content: Content) -> None:
        """Send a packet, waiting without blocking the event loop while full."""
        result = self._sender.send(content, 0)
        while result is _TIMEOUT:
            result = await asyncio.to_thread(self._sender.send, content, _POLL_INTERVAL)

    def _drop(self) -> None:
        self._sender.drop()

    def __copy__(self) -> OutChannel:
        return OutChannel(self._sender.clone())


def mpsc_channel(capacity: int) -> tuple[OutChannel, InChannel]:
    """A bounded queue channel: ``(sender, receiver)``."""
    _check_capacity(capacity)
    core = _MpscCore(capacity)
    return OutChannel(_MpscSender(core)), InChannel(_MpscReceiver(core))


def broadcast_channel(capacity: int) -> tuple[OutChannel, InChannel]:
    """A broadcast channel keeping the last ``capacity`` packets: ``(sender, receiver)``."""
    _check_capacity(capacity)
    core = _BroadcastCore(capacity)
    return OutChannel(_BroadcastSender(core)), InChannel(_BroadcastReceiver(core, 0))


class InChannels:
    """The input channels of a node, keyed by the node they come from."""

    def __init__(self, channels: dict[NodeId, InChannel] | None = None) -> None:
        self.channels: dict[NodeId, InChannel] = dict(channels or {})

    def __setitem__(self, node_id: NodeId, channel: InChannel) -> None:
        self.channels[node_id] = channel

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.channels

    def __len__(self) -> int:
        return len(self.channels)

    def _get(self, node_id: NodeId) -> InChannel:
        channel = self.channels.get(node_id)
        if channel is None:
            raise ChannelNotExist(node_id)
        return channel

    def blocking_recv_from(self, node_id: NodeId) -> Content:
        return self._get(node_id).blocking_recv()

    async def recv_from(self, node_id: NodeId) -> Content:
        return await self._get(node_id).recv()

    def close(self, node_id: NodeId) -> None:
        """Close the channel from ``node_id`` and forget it."""
        channel = self.channels.pop(node_id, None)
        if channel is not None:
            channel.close()


class OutChannels:
    """The output channels of a node, keyed by the node they go to."""

    def __init__(self, channels: dict[NodeId, OutChannel] | None = None) -> None:
        self.channels: dict[NodeId, OutChannel] = dict(channels or {})

    def __setitem__(self, node_id: NodeId, channel: OutChannel) -> None:
        self.channels[node_id] = channel

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.channels

    def __len__(self) -> int:
        return len(self.channels)

    def _get(self, node_id: NodeId) -> OutChannel:
        channel = self.channels.get(node_id)
        if channel is None:
            raise ChannelNotExist(node_id)
        return channel

    def blocking_send_to(self, node_id: NodeId, content: Content) -> None:
        self._get(node_id).blocking_send(content)

    async def send_to(self, node_id: NodeId, content: Content) -> None:
        await self._get(node_id).send(content)

    def close(self, node_id: NodeId) -> None:
        """Drop the sender to ``node_id`` and forget it."""
        channel = self.channels.pop(node_id, None)
        if channel is not None:
            channel._drop()