"""
Configuration subsystem for FightSlot.

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at startup (.env supported)
- RPC endpoints, contract addresses, required chain id, timeouts

**Dynamic (ConfigManager):**
- Built-in defaults deep-merged with YAML files from ``config/``
- Chain descriptor, synchronizer flags, art URLs, listener timeouts
- In-memory overrides for tuning and tests

Usage
-----
```python
from fightslot.core.config import Config, ConfigManager

rpc_url = Config.RPC_URL
descriptor_name = ConfigManager.get("chain.chain_name")
```
"""

from fightslot.core.config.config import Config, Environment
from fightslot.core.config.errors import ConfigError, ConfigValidationError
from fightslot.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigError",
    "ConfigValidationError",
]
