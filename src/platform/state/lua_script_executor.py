"""
Lua Scripts for Redis

Simplified approach using redis-py's built-in register_script().
Every `*.lua` file in a script directory is registered under its file stem.
"""

from pathlib import Path
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import NoScriptError

from src.platform.logging.loguru_io import Logger


class LuaScripts:
    """Manages Lua scripts using redis-py's register_script()"""

    def __init__(self, *, scripts_dir: Path) -> None:
        self.scripts_dir = scripts_dir
        self._sources: dict[str, str] = {}
        self._scripts: dict[str, Any] = {}
        self._initialized: bool = False

    def initialize(self, *, client: Redis) -> None:
        """Load Lua scripts (idempotent)"""
        if self._initialized:
            return

        for path in sorted(self.scripts_dir.glob('*.lua')):
            self._sources[path.stem] = path.read_text()
            self._scripts[path.stem] = client.register_script(self._sources[path.stem])

        if not self._scripts:
            Logger.base.warning(f'⚠️ [LUA] No scripts found in {self.scripts_dir}')

        self._initialized = True

    async def run(self, name: str, *, client: Redis, keys: list[str], args: list[Any]) -> Any:
        """Execute a registered script with auto-retry on NoScriptError"""
        self.initialize(client=client)
        if name not in self._scripts:
            raise RuntimeError(f'Lua script not registered: {name}')

        try:
            return await self._scripts[name](keys=keys, args=args, client=client)
        except NoScriptError:
            Logger.base.warning(f'⚠️ [LUA] {name} not found, re-registering...')
            self._scripts[name] = client.register_script(self._sources[name])
            return await self._scripts[name](keys=keys, args=args, client=client)
