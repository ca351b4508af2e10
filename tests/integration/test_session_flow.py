"""
Integration Tests for a full FightSlot session
==============================================

Purpose
-------
Drive a session end to end over the fakes: initial load, network
registration, fight, and the post-fight refresh picking up new state.
"""

import pytest

from fightslot.modules.contracts.registry import ContractKind
from fightslot.modules.fight.orchestrator import FightState
from fightslot.modules.session.service import FightSlotSession
from fightslot.modules.shared.exceptions import NetworkReconciliationError
from tests.conftest import ONE_TOKEN, PLAYER, FakeWallet


@pytest.mark.integration
class TestSessionFlow:
    async def test_fight_on_unknown_chain(self, gateway, event_bus, record_events):
        """Test registration, fight and refreshed stats in one session."""
        # Arrange
        wallet = FakeWallet(chain_id=1)
        wallet.switch_errors = [4902]
        session = FightSlotSession(PLAYER, gateway, wallet, event_bus=event_bus)
        gateway.load_player(xp=40, hp=150)
        states = record_events("fight.state_changed")
        chain_events = record_events("chain.*")

        session.reload()
        await session.wait_idle()
        before = session.require_ready()

        # Fight costs HP and earns XP and rewards
        gateway.load_player(
            xp=55,
            hp=120,
            rewards=(ONE_TOKEN, 4 * ONE_TOKEN, 10 * ONE_TOKEN, 0),
        )

        # Act
        outcome = await session.fight()
        await session.wait_idle()
        after = session.require_ready()

        # Assert
        assert outcome.status is True
        assert before.xp == 40 and after.xp == 55
        assert before.hp == 150 and after.hp == 120
        assert str(after.reward_display) == "4.00"
        assert after.cycle == before.cycle + 1
        assert after.fight_state is FightState.IDLE
        assert wallet.count("wallet_addEthereumChain") == 1
        assert [s["state"] for s in states][-1] == "IDLE"
        assert {"chain_id": 56} in chain_events

    async def test_rejected_network_leaves_state_untouched(self, gateway, event_bus):
        """Test a rejected switch sends no transaction and no refresh."""
        # Arrange
        wallet = FakeWallet(chain_id=1)
        wallet.switch_errors = [4001]
        session = FightSlotSession(PLAYER, gateway, wallet, event_bus=event_bus)
        gateway.load_player()
        session.reload()
        await session.wait_idle()
        reads = len(gateway.calls)

        # Act
        with pytest.raises(NetworkReconciliationError) as exc_info:
            await session.fight()
        await session.wait_idle()

        # Assert
        assert exc_info.value.error_code == "NETWORK_RECONCILIATION_FAILED"
        assert gateway.transactions == []
        assert len(gateway.calls) == reads
        assert session.snapshot().cycle == 1

    async def test_empty_character_slot_session(self, gateway, wallet, event_bus):
        """Test a player without a character gets weapon and reward data only."""
        # Arrange
        session = FightSlotSession(PLAYER, gateway, wallet, event_bus=event_bus)
        gateway.load_player(char_slot=0)

        # Act
        session.reload()
        await session.wait_idle()
        snap = session.require_ready()

        # Assert
        assert snap.base_attack == 120
        assert snap.level is None
        assert snap.success_rate_percent is None
        assert not any(
            contract is ContractKind.CHARACTER for contract, _, _ in gateway.calls
        )
