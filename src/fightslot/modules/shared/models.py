"""
Value types shared across the FightSlot services.

Everything here is immutable and built from decoded contract output.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3

# Token id 0 means "no NFT in this slot"
UNSET_TOKEN_ID = 0


def normalize_address(address: str) -> str:
    """
    Checksum-normalize a player address.

    Raises:
        ValueError: If ``address`` is not a 20-byte hex string
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid player address: {address!r}")
    return Web3.to_checksum_address(address)


@dataclass(frozen=True)
class TokenRef:
    """Character or weapon slot reference."""

    token_id: int

    @property
    def is_set(self) -> bool:
        return self.token_id != UNSET_TOKEN_ID


@dataclass(frozen=True)
class RewardAccount:
    """Reward pool ledger for one address (18-decimal fixed point)."""

    total_received: int
    total_accumulated: int
    current_limit: int
    limit_reset: int

    @classmethod
    def from_tuple(cls, values: Sequence[Any]) -> "RewardAccount":
        received, accumulated, limit, reset = (int(v) for v in values)
        return cls(received, accumulated, limit, reset)

    def decreased_fields(self, previous: "RewardAccount") -> List[str]:
        """Fields that went down since ``previous``."""
        return [
            name
            for name, value in asdict(self).items()
            if value < getattr(previous, name)
        ]

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class FightOutcome:
    status: bool
    drop: int
    tx_hash: Optional[str] = None

    @classmethod
    def from_outputs(cls, outputs: Sequence[Any], tx_hash: Optional[str] = None) -> "FightOutcome":
        status, drop = outputs[0], outputs[1]
        return cls(status=bool(status), drop=int(drop), tx_hash=tx_hash)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
