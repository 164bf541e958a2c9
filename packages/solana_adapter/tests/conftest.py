"""Test fixtures for solana_adapter tests."""

import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedOK


PROGRAM_ID = "DkjFmy1YNDDDaXoy3ZvuCnpb294UDbpbT457gUyiFS5V"


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection.

    ``recv`` replays queued messages, then raises ConnectionClosedOK (or
    blocks forever when ``hang`` is set, like an idle feed).
    """

    def __init__(self, messages=None, hang=False):
        self.sent: list[dict] = []
        self.closed = False
        self._messages = list(messages or [])
        self._hang = hang

    def push(self, message) -> None:
        self._messages.append(message)

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def recv(self):
        if self._messages:
            message = self._messages.pop(0)
            if isinstance(message, BaseException):
                raise message
            return message if isinstance(message, str) else json.dumps(message)
        if self._hang:
            await asyncio.Event().wait()
        raise ConnectionClosedOK(None, None)

    async def close(self) -> None:
        self.closed = True


def subscribe_ack(request_id=1, subscription_id=42) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": subscription_id}


def logs_notification(signature="sig1", slot=100, logs=None, subscription_id=42, err=None) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {
            "result": {
                "context": {"slot": slot},
                "value": {"signature": signature, "err": err, "logs": logs or []},
            },
            "subscription": subscription_id,
        },
    }


@pytest.fixture
def program_id():
    return PROGRAM_ID


@pytest.fixture
def make_ack():
    return subscribe_ack


@pytest.fixture
def make_notification():
    return logs_notification


@pytest.fixture
def fake_ws_factory():
    return FakeWebSocket
