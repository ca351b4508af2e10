"""
FightSlot - Command Line Entry Point
====================================

    python -m fightslot <address> [--fight] [--json] [--config-dir DIR]

Lifecycle
---------
1. Validate configuration and build the session from it
2. Run one refresh cycle and print the combat snapshot
3. Optionally submit a fight and print the refreshed snapshot
4. Flush logging on the way out
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from fightslot.core.config.config import Config
from fightslot.core.config.manager import ConfigManager
from fightslot.core.exceptions import FightSlotInfrastructureException
from fightslot.core.logging.logger import (
    LogContext,
    get_logger,
    get_logging_health,
    shutdown_logging,
)
from fightslot.modules.session.service import CombatSnapshot, FightSlotSession
from fightslot.modules.shared.exceptions import FightSlotDomainException

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fightslot",
        description="Show a player's FightSlot combat readiness and optionally fight.",
    )
    parser.add_argument("address", help="player wallet address (0x...)")
    parser.add_argument(
        "--fight",
        action="store_true",
        help="submit fightSlot1 after the initial refresh",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="print snapshots as JSON",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="directory with YAML overrides (default: ./config)",
    )
    return parser


def _render(snapshot: CombatSnapshot, as_json: bool) -> str:
    if as_json:
        return json.dumps(snapshot.to_dict(), indent=2, default=str)

    def show(value: object) -> str:
        return "-" if value is None else str(value)

    char_id = snapshot.char_ref.token_id if snapshot.char_ref else None
    weapon_id = snapshot.weapon_ref.token_id if snapshot.weapon_ref else None
    rate = (
        f"{snapshot.success_rate_percent:g} %"
        if snapshot.success_rate_percent is not None
        else "-"
    )
    rewards = (
        f"{snapshot.reward_display} {snapshot.reward_symbol or ''}".strip()
        if snapshot.reward_display is not None
        else "-"
    )

    lines = [
        f"Player            : {snapshot.address}",
        f"Cycle             : {snapshot.cycle}",
        f"Character ID      : {show(char_id)}",
        f"Weapon ID         : {show(weapon_id)}",
        f"Current HP        : {show(snapshot.hp)}",
        f"Current XP        : {show(snapshot.xp)}",
        f"Level             : {show(snapshot.level)}",
        f"Base attack       : {show(snapshot.base_attack)}",
        f"HP required       : {show(snapshot.hp_required)}",
        f"Success rate      : {rate}",
        f"Accumulated reward: {rewards}",
        f"Character art     : {show(snapshot.character_image_url)}",
        f"Mobster art       : {show(snapshot.mob_image_url)}",
        f"Fight state       : {snapshot.fight_state.value}",
    ]
    if snapshot.loading:
        lines.append(f"Still loading     : {', '.join(snapshot.loading)}")
    if snapshot.failed:
        lines.append(f"No data           : {', '.join(snapshot.failed)}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    ConfigManager.initialize(args.config_dir)
    logger.debug(
        "Configuration ready",
        extra={
            "static_config": Config.get_config_summary(),
            "dynamic_config": ConfigManager.health_snapshot(),
        },
    )
    session = FightSlotSession.from_config(args.address)

    async with LogContext(player_address=session.address, component="cli"):
        session.reload()
        await session.wait_idle()
        print(_render(session.snapshot(), args.json))

        if not args.fight:
            return EXIT_OK

        try:
            outcome = await session.fight()
        except FightSlotDomainException as exc:
            logger.warning("Fight failed", extra={"error_code": exc.error_code})
            print(f"Fight failed: {exc.message}", file=sys.stderr)
            return EXIT_FAILED

        print(
            f"Fight {'won' if outcome.status else 'lost'}"
            f" (drop={outcome.drop}, tx={outcome.tx_hash})"
        )
        await session.wait_idle()
        print(_render(session.snapshot(), args.json))
        return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(run(args))
    except FightSlotInfrastructureException as exc:
        logger.critical(f"Startup failure: {exc}", extra={"error_code": exc.error_code})
        print(f"{exc.error_code}: {exc.message}", file=sys.stderr)
        return EXIT_CONFIG if exc.error_code == "CONFIG_ERROR" else EXIT_FAILED
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_FAILED
    finally:
        logger.debug(
            "CLI finished",
            extra={"environment": Config.ENVIRONMENT, "client": Config.CLIENT_NAME},
        )
        health = get_logging_health()
        if health.records_dropped:
            sys.stderr.write(f"{health.records_dropped} log records were dropped\n")
        shutdown_logging()
