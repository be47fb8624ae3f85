"""Map a sentinel to the webhook that should receive its notification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from leasesentinel.lib.exceptions import RoutingError
from leasesentinel.lib.records import NotificationMethod, SentinelRecord


@dataclass(frozen=True)
class Route:
    destination: str
    payload: dict[str, Any]


class ChannelRouter:
    """Sends custom webhooks directly and everything else through the relay.

    The relay webhook fans out to Slack, Teams, email and SMS, so its payload
    also carries the method and the handle (address, phone, channel) to use.
    """

    def __init__(self, relay_url: str | None = None) -> None:
        self.relay_url = relay_url

    def build_payload(self, record: SentinelRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": record.event_name,
            "date": record.trigger_date.isoformat(),
            "clause": record.original_text,
        }
        if record.notification_method != NotificationMethod.CUSTOM.value:
            payload = {
                "method": record.notification_method,
                "handle": record.notification_target,
                **payload,
            }
        return payload

    def route(self, record: SentinelRecord) -> Route:
        payload = self.build_payload(record)

        if record.notification_method == NotificationMethod.CUSTOM.value:
            return Route(destination=record.notification_target, payload=payload)

        if not self.relay_url:
            raise RoutingError(
                f"No relay webhook configured for {record.notification_method!r} notifications"
            )
        return Route(destination=self.relay_url, payload=payload)
