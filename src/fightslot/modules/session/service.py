"""
FightSlot Session

Purpose
-------
One player's view of the game: wires the synchronizer, reconciler and fight
orchestrator onto a single event bus and exposes the three user actions
(reload, toggle display, fight) plus the ``CombatSnapshot`` the
presentation layer renders.

Refresh triggers
----------------
- ``reload()``: explicit user refresh
- ``toggle_display()``: switching between placeholder art and NFT art
- a confirmed fight (handled by the orchestrator)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from fightslot.core.config.config import Config
from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.bus import EventBus
from fightslot.core.event.types import CallbackType, ListenerPriority
from fightslot.core.logging.logger import get_logger
from fightslot.core.rpc.gateway import ContractGateway, Web3ContractGateway
from fightslot.core.rpc.wallet import WalletProvider, Web3Wallet
from fightslot.modules.chain.reconciler import ChainReconciler
from fightslot.modules.fight.orchestrator import FightOrchestrator, FightState
from fightslot.modules.shared.exceptions import DataNotReadyError
from fightslot.modules.shared.models import (
    FightOutcome,
    RewardAccount,
    TokenRef,
    normalize_address,
)
from fightslot.modules.stats import deriver
from fightslot.modules.sync import plan as fields
from fightslot.modules.sync.plan import FetchPlan
from fightslot.modules.sync.synchronizer import StateSynchronizer

logger = get_logger(__name__)


class DisplayMode(str, Enum):
    PLACEHOLDER = "PLACEHOLDER"
    NFT_ART = "NFT_ART"


@dataclass(frozen=True)
class CombatSnapshot:
    """
    Everything the HUD renders. Every value is individually nullable.

    ``loading`` lists fields still waiting for data; ``failed`` lists fields
    whose last read failed. A ``None`` value that appears in neither sits
    behind an empty or failed character/weapon slot.
    """

    address: str
    cycle: int
    char_ref: Optional[TokenRef] = None
    weapon_ref: Optional[TokenRef] = None
    hp: Optional[int] = None
    xp: Optional[int] = None
    level: Optional[int] = None
    angel_modifier: Optional[int] = None
    skill: Optional[int] = None
    char_type: Optional[int] = None
    char_status: Optional[int] = None
    base_attack: Optional[int] = None
    hp_required: Optional[int] = None
    success_rate_percent: Optional[float] = None
    rewards: Optional[RewardAccount] = None
    reward_display: Optional[Decimal] = None
    reward_symbol: Optional[str] = None
    character_image_url: Optional[str] = None
    mob_image_url: Optional[str] = None
    display_mode: DisplayMode = DisplayMode.PLACEHOLDER
    fight_state: FightState = FightState.IDLE
    loading: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def is_loading(self) -> bool:
        return bool(self.loading)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly form (enums by value, Decimal as string)."""
        data = asdict(self)
        data["display_mode"] = self.display_mode.value
        data["fight_state"] = self.fight_state.value
        data["reward_display"] = (
            str(self.reward_display) if self.reward_display is not None else None
        )
        return data


def _ref(value: Any) -> Optional[TokenRef]:
    return TokenRef(int(value)) if value is not None else None


class FightSlotSession:
    """
    Args:
        address: Player address (checksum-normalized)
        gateway: Contract seam
        wallet: Wallet seam
        config_manager: Configuration manager
        event_bus: Event bus; a new one per session when omitted
        plan: Fetch plan override
    """

    def __init__(
        self,
        address: str,
        gateway: ContractGateway,
        wallet: WalletProvider,
        *,
        config_manager: type[ConfigManager] = ConfigManager,
        event_bus: Optional[EventBus] = None,
        plan: Optional[FetchPlan] = None,
    ) -> None:
        self.address = normalize_address(address)
        self._config = config_manager
        self.events = event_bus or EventBus(config_manager=config_manager)
        self.synchronizer = StateSynchronizer(
            gateway, config_manager, self.events, plan=plan
        )
        self.reconciler = ChainReconciler(wallet, config_manager, self.events)
        self.orchestrator = FightOrchestrator(
            gateway, self.reconciler, self.synchronizer, config_manager, self.events
        )
        self._display_mode = DisplayMode.PLACEHOLDER

    @classmethod
    def from_config(cls, address: str, **kwargs: Any) -> "FightSlotSession":
        """
        Build a session on web3 from ``Config`` and ``ConfigManager``.

        Raises:
            ConfigurationError: If contract addresses are missing or malformed
        """
        Config.validate(strict=True)
        ConfigManager.initialize()

        wallet = Web3Wallet.from_url(
            Config.WALLET_RPC_URL or Config.RPC_URL,
            timeout=ConfigManager.get_float("rpc.wallet_timeout_seconds", 60.0),
        )
        gateway = Web3ContractGateway.from_url(
            Config.RPC_URL,
            Config.contract_addresses(),
            read_timeout=ConfigManager.get_float("rpc.read_timeout_seconds", 15.0),
            write_timeout=ConfigManager.get_float("rpc.write_timeout_seconds", 180.0),
            signer=wallet.w3,
        )
        logger.info(
            "Session created from config",
            extra={"player_address": address, "chain_id": Config.REQUIRED_CHAIN_ID},
        )
        return cls(address, gateway, wallet, **kwargs)

    # ------------------------------------------------------------------ #
    # User actions
    # ------------------------------------------------------------------ #

    @property
    def display_mode(self) -> DisplayMode:
        return self._display_mode

    def reload(self) -> int:
        """
        Start a refresh cycle and return its number.

        The first reload leaves the placeholder art for the NFT art; the
        session never goes back to placeholders.
        """
        if self._display_mode is not DisplayMode.NFT_ART:
            self._display_mode = DisplayMode.NFT_ART
            logger.debug(
                "Display mode switched",
                extra={"display_mode": self._display_mode.value},
            )
        return self.synchronizer.synchronize(self.address)

    def toggle_display(self) -> DisplayMode:
        """Show the NFT art and refresh the data behind it."""
        self.reload()
        return self._display_mode

    async def fight(self) -> FightOutcome:
        return await self.orchestrator.request_fight(self.address)

    async def wait_idle(self) -> None:
        await self.synchronizer.wait_idle()
        await self.events.drain()

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
    ) -> str:
        return self.events.subscribe(event_name, callback, priority=priority)

    # ------------------------------------------------------------------ #
    # Presentation output
    # ------------------------------------------------------------------ #

    def snapshot(self) -> CombatSnapshot:
        sync = self.synchronizer.snapshot()
        derived = deriver.derive(sync)

        if self._display_mode is DisplayMode.PLACEHOLDER:
            char_img = self._config.get("assets.character_placeholder")
            mob_img = self._config.get("assets.mobster_placeholder")
        else:
            char_img = derived.character_image_url
            mob_img = derived.mob_image_url

        return CombatSnapshot(
            address=self.address,
            cycle=sync.cycle,
            char_ref=_ref(sync.value(fields.CHAR_SLOT)),
            weapon_ref=_ref(sync.value(fields.WEAPON_SLOT)),
            hp=sync.value(fields.CHAR_HP),
            xp=sync.value(fields.CHAR_XP),
            level=sync.value(fields.CHAR_LEVEL),
            angel_modifier=sync.value(fields.ANGEL_MODIFIER),
            skill=sync.value(fields.CHAR_SKILL),
            char_type=sync.value(fields.CHAR_TYPE),
            char_status=sync.value(fields.CHAR_STATUS),
            base_attack=sync.value(fields.BASE_ATTACK),
            hp_required=derived.hp_required,
            success_rate_percent=derived.success_rate_percent,
            rewards=sync.value(fields.REWARDS),
            reward_display=derived.reward_display,
            reward_symbol=self._config.get("rewards.symbol"),
            character_image_url=char_img,
            mob_image_url=mob_img,
            display_mode=self._display_mode,
            fight_state=self.orchestrator.state,
            loading=sync.loading(),
            failed=sync.failed(),
        )

    def require_ready(self) -> CombatSnapshot:
        """
        Snapshot that is guaranteed to have finished loading.

        Raises:
            DataNotReadyError: If any field is still pending
        """
        snap = self.snapshot()
        if snap.loading:
            raise DataNotReadyError(snap.loading)
        return snap
