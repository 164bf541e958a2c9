"""Convert Solana JSON-RPC pubsub messages to twob_core objects.

Solana RPC Reference:
- logsSubscribe: https://solana.com/docs/rpc/websocket/logssubscribe
- logsUnsubscribe: https://solana.com/docs/rpc/websocket/logsunsubscribe
"""

from typing import Any, Optional

from twob_core.events import LogNotification


LOGS_NOTIFICATION_METHOD = "logsNotification"


def build_logs_subscribe_request(request_id: int, program_id: str, commitment: str) -> dict:
    """Build a logsSubscribe request filtered to transactions mentioning a program."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "logsSubscribe",
        "params": [{"mentions": [program_id]}, {"commitment": commitment}],
    }


def build_logs_unsubscribe_request(request_id: int, subscription_id: int) -> dict:
    """Build a logsUnsubscribe request for an active subscription."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "logsUnsubscribe",
        "params": [subscription_id],
    }


class LogsNormalizer:
    """Converts raw pubsub messages into LogNotification objects.

    Responsibilities:
    - Recognise logsNotification messages among acks and other traffic
    - Extract slot, signature, err and logs
    - Reject malformed notifications with ValueError
    """

    def is_logs_notification(self, message: dict) -> bool:
        """Check if message is a logsNotification (as opposed to an ack)."""
        return message.get("method") == LOGS_NOTIFICATION_METHOD

    def subscription_id(self, message: dict) -> Optional[int]:
        """Get the subscription id a notification belongs to."""
        params = message.get("params")
        if not isinstance(params, dict):
            return None
        return params.get("subscription")

    def normalize_logs_notification(self, message: dict) -> LogNotification:
        """Convert a logsNotification message to LogNotification.

        Message format:
        {
            "jsonrpc": "2.0",
            "method": "logsNotification",
            "params": {
                "result": {
                    "context": {"slot": 5208469},
                    "value": {
                        "signature": "5h6xBEauJ3PK6SWC...",
                        "err": null,
                        "logs": ["Program ... invoke [1]", ...]
                    }
                },
                "subscription": 24040
            }
        }

        Args:
            message: Decoded JSON message.

        Returns:
            LogNotification with logs as an immutable tuple.

        Raises:
            ValueError: If required fields are missing or mistyped.
        """
        try:
            result = message["params"]["result"]
            slot = result["context"]["slot"]
            value = result["value"]
            signature = value["signature"]
            logs: Any = value.get("logs") or []
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed logsNotification: {e!r}") from e

        if not isinstance(slot, int) or not isinstance(signature, str):
            raise ValueError(
                f"Malformed logsNotification: slot={slot!r} signature={signature!r}"
            )
        if not isinstance(logs, list) or not all(isinstance(line, str) for line in logs):
            raise ValueError("Malformed logsNotification: logs must be a list of strings")

        return LogNotification(
            slot=slot,
            signature=signature,
            logs=tuple(logs),
            err=value.get("err"),
        )
