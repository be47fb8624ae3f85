"""Tests for notification routing."""

import pytest

from leasesentinel.lib.exceptions import RoutingError
from leasesentinel.lib.routing import ChannelRouter

RELAY = "https://relay.example.com/hook"


class TestBuildPayload:
    def test_custom_payload(self, make_record):
        record = make_record()
        payload = ChannelRouter(RELAY).build_payload(record)

        assert payload == {
            "event": "Renewal notice",
            "date": "2025-06-15",
            "clause": record.original_text,
        }

    def test_relay_payload_carries_method_and_handle(self, make_record):
        record = make_record(notification_method="email", notification_target="ops@example.com")
        payload = ChannelRouter(RELAY).build_payload(record)

        assert payload["method"] == "email"
        assert payload["handle"] == "ops@example.com"
        assert payload["event"] == "Renewal notice"
        assert payload["date"] == "2025-06-15"


class TestRoute:
    def test_custom_goes_direct(self, make_record):
        record = make_record()
        route = ChannelRouter(RELAY).route(record)
        assert route.destination == "https://hooks.example.com/alice"

    def test_custom_without_relay(self, make_record):
        route = ChannelRouter().route(make_record())
        assert route.destination == "https://hooks.example.com/alice"

    @pytest.mark.parametrize("method", ["slack", "teams", "email", "sms"])
    def test_other_methods_go_through_relay(self, make_record, method):
        record = make_record(notification_method=method, notification_target="#leases")
        route = ChannelRouter(RELAY).route(record)

        assert route.destination == RELAY
        assert route.payload["method"] == method
        assert route.payload["handle"] == "#leases"

    def test_missing_relay_raises(self, make_record):
        record = make_record(notification_method="sms", notification_target="+15555550100")
        with pytest.raises(RoutingError):
            ChannelRouter(None).route(record)
