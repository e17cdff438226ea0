import asyncio

from src.operator_console.domain.models.session import ConnectionStatus
from src.operator_console.session.transport import RealtimeTransport


async def settle(rounds=20):
    for _ in range(rounds):
        await asyncio.sleep(0)


async def test_no_handle_stays_disconnected(connector):
    statuses = []
    transport = RealtimeTransport(base_url="ws://agent/ws/client", connector=connector, on_status_change=statuses.append)

    await transport.open(None)

    assert transport.status == ConnectionStatus.DISCONNECTED
    assert connector.connections == []
    assert statuses == []


async def test_connected_only_after_agent_says_so(connector):
    statuses = []
    transport = RealtimeTransport(base_url="ws://agent/ws/client/", connector=connector, on_status_change=statuses.append)

    await transport.open("CA123")
    await settle()

    # Socket is open but the agent has not confirmed the call yet.
    assert connector.latest.url == "ws://agent/ws/client/CA123"
    assert transport.status == ConnectionStatus.CONNECTING

    connector.latest.send({"type": "call_status", "status": "connected"})
    await settle()
    assert transport.status == ConnectionStatus.CONNECTED

    connector.latest.drop()
    await settle()
    assert transport.status == ConnectionStatus.DISCONNECTED
    assert connector.latest.closed
    assert transport.call_handle is None
    assert statuses == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED, ConnectionStatus.DISCONNECTED]


async def test_socket_error_drops_to_disconnected_without_reconnect(connector):
    transport = RealtimeTransport(base_url="ws://agent/ws/client", connector=connector)

    await transport.open("CA1")
    await settle()
    connector.latest.send({"type": "call_status", "status": "connected"})
    connector.latest.fail(ConnectionResetError("reset by peer"))
    await settle()

    assert transport.status == ConnectionStatus.DISCONNECTED
    assert len(connector.connections) == 1


async def test_connect_failure_is_disconnected():
    async def refuse(url):
        raise OSError("connection refused")

    transport = RealtimeTransport(base_url="ws://agent/ws/client", connector=refuse)
    await transport.open("CA1")
    await settle()

    assert transport.status == ConnectionStatus.DISCONNECTED


async def test_dispatches_updates_and_call_end(connector):
    updates = []
    ended = []
    transport = RealtimeTransport(
        base_url="ws://agent/ws/client",
        connector=connector,
        on_conversation_update=updates.append,
        on_call_ended=lambda: ended.append(True),
    )

    await transport.open("CA1")
    await settle()
    connection = connector.latest
    connection.send_raw("{broken")
    connection.send({"type": "volume", "level": 4})
    connection.send({"type": "conversation_update", "role": "caller", "content": "He fell down"})
    connection.send({"type": "call_status", "status": "ended"})
    await settle()

    assert [(u.role, u.content) for u in updates] == [("caller", "He fell down")]
    assert ended == [True]
    await transport.close()


async def test_new_handle_replaces_previous_connection(connector):
    transport = RealtimeTransport(base_url="ws://agent/ws/client", connector=connector)

    await transport.open("CA1")
    await settle()
    await transport.open("CA1")
    await settle()
    assert len(connector.connections) == 1

    await transport.open("CA2")
    await settle()

    first, second = connector.connections
    assert first.closed
    assert not second.closed
    assert transport.call_handle == "CA2"
    assert transport.status == ConnectionStatus.CONNECTING

    await transport.close()
    assert second.closed
    assert transport.status == ConnectionStatus.DISCONNECTED


async def test_context_manager_closes(connector):
    async with RealtimeTransport(base_url="ws://agent/ws/client", connector=connector) as transport:
        await transport.open("CA9")
        await settle()
    assert connector.latest.closed
    assert transport.status == ConnectionStatus.DISCONNECTED
