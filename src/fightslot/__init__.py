"""
FightSlot: client-side orchestration for an on-chain fight slot.

Synchronizes a player's character and weapon NFT state, derives combat
readiness, and drives the ``fightSlot1`` transaction after reconciling the
wallet's network.
"""

__version__ = "1.0.0"
