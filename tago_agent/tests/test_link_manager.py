"""Tests for link supervision."""

from __future__ import annotations

import pytest

from tago_agent.core.exceptions import AssociationTimeout
from tago_agent.core.link import LinkManager
from tago_agent.models.state import LinkState


@pytest.mark.asyncio
async def test_ensure_up_connects(agent_config, mock_link_layer):
    """Test a healthy link is brought up and made persistent."""
    link = LinkManager(agent_config.network, mock_link_layer)
    assert link.state is LinkState.DOWN

    await link.ensure_up()

    assert link.state is LinkState.UP
    mock_link_layer.connect.assert_called_once_with("TestNet", "secret-pass")
    mock_link_layer.enable_persistent_reconnect.assert_called_once()


@pytest.mark.asyncio
async def test_ensure_up_is_idempotent(agent_config, mock_link_layer):
    """Test a second call on a healthy link is a no-op."""
    link = LinkManager(agent_config.network, mock_link_layer)

    await link.ensure_up()
    await link.ensure_up()

    assert mock_link_layer.connect.call_count == 1
    assert link.connect_attempts == 1


@pytest.mark.asyncio
async def test_ensure_up_retries_transient_failures(agent_config, mock_link_layer):
    """Test association polls until the link comes up."""
    mock_link_layer.is_associated.side_effect = [False, False, False] + [True] * 5
    link = LinkManager(agent_config.network, mock_link_layer)

    await link.ensure_up()

    assert link.state is LinkState.UP
    assert mock_link_layer.is_associated.call_count == 4
    mock_link_layer.connect.assert_called_once()


def test_null_address_is_not_healthy(agent_config, mock_link_layer):
    """Test an associated link without an address is unhealthy."""
    mock_link_layer.local_address.return_value = "0.0.0.0"
    link = LinkManager(agent_config.network, mock_link_layer)

    assert link.is_healthy() is False

    mock_link_layer.local_address.return_value = None
    assert link.is_healthy() is False


@pytest.mark.asyncio
async def test_association_timeout_after_ceiling(agent_config, mock_link_layer):
    """Test exhausting the attempt ceiling raises the fatal error once."""
    mock_link_layer.is_associated.return_value = False
    link = LinkManager(agent_config.network, mock_link_layer)

    with pytest.raises(AssociationTimeout) as exc_info:
        await link.ensure_up()

    assert exc_info.value.attempts == 20
    assert mock_link_layer.is_associated.call_count == 20
    mock_link_layer.connect.assert_called_once()
    mock_link_layer.enable_persistent_reconnect.assert_not_called()
    assert link.state is LinkState.DOWN


@pytest.mark.asyncio
async def test_lost_link_is_reconnected(agent_config, mock_link_layer):
    """Test a link that lost its address runs the connect sequence again."""
    link = LinkManager(agent_config.network, mock_link_layer)
    await link.ensure_up()

    mock_link_layer.local_address.side_effect = [None, "10.0.0.3", "10.0.0.3"]
    await link.ensure_up()

    assert link.state is LinkState.UP
    assert mock_link_layer.connect.call_count == 2
