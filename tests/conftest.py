"""
Pytest Configuration and Fixtures for FightSlot Tests
=====================================================

Purpose
-------
Centralized fixtures for the FightSlot test suite: an in-memory contract
gateway, a scriptable wallet, per-test configuration and event buses.

Responsibilities
----------------
- Test environment variables (set before any fightslot import)
- ConfigManager isolation between tests
- FakeGateway: programmable contract reads and fight transactions
- FakeWallet: programmable EIP-1193 chain id / switch / add responses
- Event recording helpers

Architecture Notes
------------------
- Unit tests never touch the network; web3 objects are only mocked
- Fakes validate every call against the contract registry, so a wrongly
  wired read fails the test the same way it would fail in production
- Gates (``asyncio.Event``) let a test hold a read in flight and release
  replies out of order
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("GAME_CONTRACT", "0x" + "11" * 20)
os.environ.setdefault("CHARACTER_CONTRACT", "0x" + "22" * 20)
os.environ.setdefault("WEAPON_CONTRACT", "0x" + "33" * 20)
os.environ.setdefault("REWARD_POOL_CONTRACT", "0x" + "44" * 20)

import pytest
from web3 import Web3

from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.bus import EventBus
from fightslot.core.event.types import ListenerPriority
from fightslot.core.exceptions import RpcError, WalletRequestError
from fightslot.core.rpc.gateway import TransactionResult
from fightslot.modules.contracts.registry import ContractKind, validate_call

PLAYER = Web3.to_checksum_address("0x" + "ab" * 20)
OTHER_PLAYER = Web3.to_checksum_address("0x" + "cd" * 20)

ONE_TOKEN = 10**18

CallKey = Tuple[ContractKind, str, Tuple[Any, ...]]


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """
    Fresh ConfigManager per test, built from defaults only.

    Points the YAML directory at an empty temp dir so the repository's
    ``config/`` overrides do not leak into assertions.
    """
    ConfigManager.reset()
    ConfigManager.initialize(config_dir=tmp_path)
    yield ConfigManager
    ConfigManager.reset()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(config_manager=ConfigManager)


@pytest.fixture
def player_address() -> str:
    return PLAYER


# ============================================================================
# FAKE GATEWAY
# ============================================================================


@dataclass
class Reply:
    """One scripted response: a value, or an error, optionally held by a gate."""

    value: Any = None
    error: Optional[BaseException] = None
    gate: Optional[asyncio.Event] = None


class FakeGateway:
    """
    In-memory ``ContractGateway``.

    Replies are scripted per (contract, method, args). When several replies
    are scripted for one key they are consumed in order and the last one
    repeats. Unscripted reads raise ``RpcError``.
    """

    def __init__(self) -> None:
        self._replies: Dict[CallKey, List[Reply]] = {}
        self.calls: List[CallKey] = []
        self.transactions: List[Tuple[ContractKind, str, Tuple[Any, ...], str]] = []
        self.fight_reply: Reply = Reply(
            value=TransactionResult((True, 2), "0x" + "f0" * 32, 123)
        )

    def program(
        self, contract: ContractKind, method: str, args: Sequence[Any], *replies: Any
    ) -> None:
        self._replies[(contract, method, tuple(args))] = [
            r if isinstance(r, Reply) else Reply(value=r) for r in replies
        ]

    def load_player(
        self,
        address: str = PLAYER,
        *,
        char_slot: int = 7,
        weapon_slot: int = 3,
        base_attack: int = 120,
        hp: int = 150,
        xp: int = 40,
        level: int = 5,
        angel: int = 2,
        skill: int = 4,
        char_type: int = 1,
        status: int = 0,
        success_rate: int = 7550,
        hp_require_base: int = 50,
        rewards: Tuple[int, int, int, int] = (
            ONE_TOKEN,
            5 * ONE_TOKEN // 2,
            10 * ONE_TOKEN,
            0,
        ),
    ) -> None:
        """Script a complete, consistent on-chain state for ``address``."""
        game, char, weapon = ContractKind.GAME, ContractKind.CHARACTER, ContractKind.WEAPON
        self.program(game, "getCharSlot1", (address,), char_slot)
        self.program(game, "getWeaponSlot1", (address,), weapon_slot)
        self.program(game, "hpRequireBase", (), hp_require_base)
        self.program(ContractKind.REWARD_POOL, "rewards", (address,), rewards)
        self.program(weapon, "getBaseAttack", (weapon_slot,), base_attack)
        for method, value in (
            ("getCharHP", hp),
            ("getCharXP", xp),
            ("getCharLevel", level),
            ("getAngelModifier", angel),
            ("getCharSkill", skill),
            ("getCharType", char_type),
            ("getCharStatus", status),
        ):
            self.program(char, method, (char_slot,), value)
        self.program(game, "getSuccessRate", (char_slot, base_attack), success_rate)

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for _, name, args in self.calls if name == method]

    async def call(
        self, contract: ContractKind, method: str, args: Sequence[Any] = ()
    ) -> Any:
        validate_call(contract, method, args)
        key = (contract, method, tuple(args))
        self.calls.append(key)

        queue = self._replies.get(key)
        if not queue:
            raise RpcError(f"{contract.value}.{method}", reason=f"unscripted read {args!r}")
        reply = queue.pop(0) if len(queue) > 1 else queue[0]

        if reply.gate is not None:
            await reply.gate.wait()
        if reply.error is not None:
            raise reply.error
        return reply.value

    async def transact(
        self,
        contract: ContractKind,
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionResult:
        validate_call(contract, method, args)
        self.transactions.append((contract, method, tuple(args), sender))

        reply = self.fight_reply
        if reply.gate is not None:
            await reply.gate.wait()
        if reply.error is not None:
            raise reply.error
        return reply.value


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


# ============================================================================
# FAKE WALLET
# ============================================================================


class FakeWallet:
    """
    Scriptable ``WalletProvider``.

    ``switch_errors`` is consumed one entry per ``switch_chain`` call; a
    ``None`` entry means that call succeeds. A successful switch or add
    updates the active chain the way a real wallet would.
    """

    def __init__(self, chain_id: int = 56) -> None:
        self.active_chain = chain_id
        self.known_chains = {chain_id, 56}
        self.switch_errors: List[Optional[int]] = []
        self.add_error: Optional[int] = None
        self.query_error: Optional[int] = None
        self.gate: Optional[asyncio.Event] = None
        self.requests: List[Tuple[str, Any]] = []

    async def chain_id(self) -> int:
        self.requests.append(("eth_chainId", None))
        if self.gate is not None:
            await self.gate.wait()
        if self.query_error is not None:
            raise WalletRequestError("eth_chainId", self.query_error, "query failed")
        return self.active_chain

    async def switch_chain(self, chain_id: int) -> None:
        self.requests.append(("wallet_switchEthereumChain", chain_id))
        code = self.switch_errors.pop(0) if self.switch_errors else None
        if code is not None:
            raise WalletRequestError("wallet_switchEthereumChain", code, "switch failed")
        self.active_chain = chain_id

    async def add_chain(self, descriptor: Any) -> None:
        self.requests.append(("wallet_addEthereumChain", dict(descriptor)))
        if self.add_error is not None:
            raise WalletRequestError("wallet_addEthereumChain", self.add_error, "add failed")
        self.known_chains.add(int(descriptor["chainId"], 16))

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.requests if name == method)


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


# ============================================================================
# EVENT HELPERS
# ============================================================================


@pytest.fixture
def record_events(event_bus) -> Callable[[str], List[Dict[str, Any]]]:
    """
    Subscribe a recorder to ``pattern`` and return the list it fills.

    Usage: ``resolved = record_events("sync.field_resolved")``
    """

    def _record(pattern: str, bus: Optional[EventBus] = None) -> List[Dict[str, Any]]:
        received: List[Dict[str, Any]] = []
        (bus or event_bus).subscribe(
            pattern,
            received.append,
            priority=ListenerPriority.HIGH,
            identifier=f"test-recorder@{pattern}",
        )
        return received

    return _record
