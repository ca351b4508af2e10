"""
RPC seams for the FightSlot client: contract gateway and wallet.
"""

from fightslot.core.rpc.gateway import (
    ContractGateway,
    TransactionResult,
    Web3ContractGateway,
)
from fightslot.core.rpc.wallet import WalletProvider, Web3Wallet

__all__ = [
    "ContractGateway",
    "TransactionResult",
    "Web3ContractGateway",
    "WalletProvider",
    "Web3Wallet",
]
