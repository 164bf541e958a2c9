"""Notification and payload builders shared by event_keeper tests."""

import asyncio
import base64

from twob_core import LogNotification
from twob_core.registry import (
    CLOSE_POSITION_LAYOUT,
    CLOSE_POSITION_SCHEMA,
    MARKET_UPDATE_LAYOUT,
    MARKET_UPDATE_SCHEMA,
)


PROGRAM_ID = "DkjFmy1YNDDDaXoy3ZvuCnpb294UDbpbT457gUyiFS5V"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
AUTHORITY_BYTES = bytes([7] * 32)


def market_update_line(market_id=7, base_flow=500, quote_flow=1_000) -> str:
    body = MARKET_UPDATE_LAYOUT.build(
        {"market_id": market_id, "base_flow": base_flow, "quote_flow": quote_flow}
    )
    return data_line(MARKET_UPDATE_SCHEMA.discriminator + body)


def close_position_line(market_id=7, is_buy=1) -> str:
    body = CLOSE_POSITION_LAYOUT.build(
        {
            "position_authority": AUTHORITY_BYTES,
            "market_id": market_id,
            "start_slot": 100,
            "end_slot": 200,
            "deposit_amount": 1_000,
            "swapped_amount": 400,
            "remaining_amount": 600,
            "fee_amount": 3,
            "is_buy": is_buy,
        }
    )
    return data_line(CLOSE_POSITION_SCHEMA.discriminator + body)


def data_line(payload: bytes) -> str:
    return "Program data: " + base64.b64encode(payload).decode()


def program_logs(*lines: str, program_id: str = PROGRAM_ID) -> tuple[str, ...]:
    """Wrap lines in one top-level invocation of ``program_id``."""
    return (
        f"Program {program_id} invoke [1]",
        *lines,
        f"Program {program_id} consumed 4210 of 200000 compute units",
        f"Program {program_id} success",
    )


def notification(*lines: str, signature="sig-1", slot=1_000, logs=None) -> LogNotification:
    return LogNotification(
        slot=slot,
        signature=signature,
        logs=logs if logs is not None else program_logs(*lines),
    )


class FakeClient:
    """Stand-in for LogsSubscriptionClient driven by a scripted queue.

    ``next_notification`` pops queued items (raising exceptions), then
    returns None (stream closed) or blocks forever when ``hang`` is set.
    """

    def __init__(self, items=(), connect_error=None, hang=False):
        self.items = list(items)
        self.connect_error = connect_error
        self.hang = hang
        self.connected = False
        self.closed = False
        self.recv_calls = 0

    async def connect(self) -> int:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        return 42

    async def next_notification(self):
        self.recv_calls += 1
        if self.items:
            item = self.items.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if self.hang:
            await asyncio.Event().wait()
        return None

    async def close(self) -> None:
        self.closed = True


class ScriptedFactory:
    """Client factory returning prepared clients, then hanging ones."""

    def __init__(self, *clients: FakeClient):
        self.clients = list(clients)
        self.created: list[FakeClient] = []

    def __call__(self) -> FakeClient:
        client = self.clients.pop(0) if self.clients else FakeClient(hang=True)
        self.created.append(client)
        return client


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
