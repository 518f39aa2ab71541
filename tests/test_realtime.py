"""Tests for the per-tenant realtime hub."""

import asyncio

from wa_gateway.realtime import RealtimeHub


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.received = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.received.append(data)


def test_publish_reaches_only_the_tenant():
    hub = RealtimeHub()
    mvp, other = FakeSocket(), FakeSocket()

    async def scenario():
        await hub.subscribe("mvp", mvp)
        await hub.subscribe("other", other)
        return await hub.publish("mvp", {"type": "connection_update", "state": "open"})

    assert asyncio.run(scenario()) == 1
    assert mvp.received == [{"type": "connection_update", "state": "open"}]
    assert other.received == []


def test_failed_socket_is_dropped():
    hub = RealtimeHub()
    good, bad = FakeSocket(), FakeSocket(fail=True)

    async def scenario():
        await hub.subscribe("mvp", good)
        await hub.subscribe("mvp", bad)
        return await hub.publish("mvp", {"type": "qrcode_updated"})

    assert asyncio.run(scenario()) == 1
    assert hub.subscriber_count("mvp") == 1


def test_unsubscribe_last_socket_forgets_tenant():
    hub = RealtimeHub()
    ws = FakeSocket()

    async def scenario():
        await hub.subscribe("mvp", ws)
        await hub.unsubscribe("mvp", ws)
        return await hub.publish("mvp", {"type": "connection_update"})

    assert asyncio.run(scenario()) == 0
    assert hub.subscriber_count("mvp") == 0
