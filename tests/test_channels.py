"""Tests for slackseek.channels.resolve_channel_names."""

import pytest

from slackseek.channels import resolve_channel_names
from tests.conftest import slack_error

NAMES = {"C1": "eng", "C2": "ops", "C3": "random"}


def _info(failing: set[str]):
    def side_effect(channel):
        if channel in failing:
            raise slack_error("channel_not_found")
        return {"ok": True, "channel": {"id": channel, "name": NAMES[channel]}}
    return side_effect


class TestResolveChannelNames:
    @pytest.mark.asyncio
    async def test_all_resolve_in_input_order(self, gateway, client, events):
        client.conversations_info.side_effect = _info(set())

        names = await resolve_channel_names(gateway, ["C3", "C1", "C2"], events)

        assert names == ["random", "eng", "ops"]

    @pytest.mark.asyncio
    async def test_failures_are_excluded(self, gateway, client, events, caplog):
        client.conversations_info.side_effect = _info({"C2"})

        names = await resolve_channel_names(gateway, ["C1", "C2", "C3"], events)

        assert names == ["eng", "random"]
        assert "C2" in caplog.text

    @pytest.mark.asyncio
    async def test_all_fail_returns_empty(self, gateway, client, events, caplog):
        client.conversations_info.side_effect = _info({"C1", "C2"})

        names = await resolve_channel_names(gateway, ["C1", "C2"], events)

        assert names == []
        assert "falling back" in caplog.text

    @pytest.mark.asyncio
    async def test_one_lookup_per_id(self, gateway, client, events):
        client.conversations_info.side_effect = _info(set())

        await resolve_channel_names(gateway, ["C1", "C2"], events)

        assert client.conversations_info.await_count == 2
