"""
FightSlot Test Suite
====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests against fakes (no network)
- tests/integration/   : Session-level tests wiring every service together

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test one service's behavior
- Integration tests: Full session over FakeGateway/FakeWallet
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
