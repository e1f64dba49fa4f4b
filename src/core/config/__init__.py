"""
Configuration subsystem for Kilnbook.

Static configuration is loaded from environment variables (.env support)
at startup; see ``src.core.config.config`` for the full list of keys.

Usage
-----
```python
from src.core.config import Config

Config.validate()
db_url = Config.DATABASE_URL
if Config.is_production():
    logger.info("Running in production mode")
```
"""

from src.core.config.config import CacheBackend, Config, Environment

__all__ = [
    "CacheBackend",
    "Config",
    "Environment",
]
