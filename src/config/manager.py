"""Persistent terminal configuration.

The JSON file holds the shared secret, so it is written owner-only and
replaced atomically. Every successful write keeps the previous file in
``backups/`` so a corrupted file can be rolled back on the next load.
"""

import asyncio
import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from exchange.models import CONFIG_KEYS
from .schema import Config

DEFAULT_CONFIG_PATH = "/etc/ostara/config.json"
MAX_BACKUPS = 10
# Editors write in several steps; wait for the file to settle
RELOAD_DELAY = 0.5


class ConfigBackups:
    """Rotating copies of the configuration file."""

    def __init__(self, directory: Path, keep: int = MAX_BACKUPS):
        self.directory = directory
        self.keep = keep
        self.logger = logging.getLogger(__name__)

    def newest_first(self) -> List[Path]:
        """Backups, newest first."""
        return sorted(
            self.directory.glob("config_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

    def take(self, source: Path) -> None:
        """Copy ``source`` aside and drop the oldest copies beyond ``keep``."""
        if not source.exists():
            return
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        try:
            shutil.copy2(source, self.directory / f"config_{stamp}.json")
            for stale in self.newest_first()[self.keep:]:
                stale.unlink()
        except OSError as e:
            self.logger.debug(f"Backup of {source.name} skipped: {e}")

    def restore_latest(self, target: Path) -> bool:
        """Put the newest backup in place of ``target``; False when there is none."""
        backups = self.newest_first()
        if not backups:
            return False
        self.logger.info(f"Restoring configuration from {backups[0].name}")
        try:
            shutil.copy2(backups[0], target)
        except OSError as e:
            self.logger.error(f"Restore of {backups[0].name} failed: {e}")
            return False
        return True


class ConfigFileHandler(FileSystemEventHandler):
    """Forwards edits of the config file to the manager's event loop."""

    def __init__(self, config_manager: "ConfigManager", loop: asyncio.AbstractEventLoop):
        self.config_manager = config_manager
        self.loop = loop

    def on_modified(self, event):
        # Runs on the watchdog observer thread
        if event.is_directory or event.src_path != str(self.config_manager.config_path):
            return
        asyncio.run_coroutine_threadsafe(self.config_manager._handle_file_change(), self.loop)


class ConfigManager:
    """Loads, validates and stores the kiosk configuration.

    Also serves as the terminal's key-value store: :meth:`get` answers the
    ``API_URL``, ``CLIENT_ID`` and ``SHARED_SECRET`` lookups.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path or os.getenv("OSTARA_CONFIG", DEFAULT_CONFIG_PATH))
        self.logger = logging.getLogger(__name__)
        self.backups = ConfigBackups(self.config_path.parent / "backups")

        self.current_config: Optional[Config] = None
        self.change_callbacks: List[Callable] = []
        self.observer: Optional[Observer] = None

        try:
            self.backups.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Cannot create {self.backups.directory}: {e}")

    async def initialize(self, watch: bool = True) -> Config:
        """Load the configuration and optionally follow edits to the file."""
        self.logger.info(f"Using configuration file {self.config_path}")
        config = await self.load_config()
        if watch:
            self._watch()
        return config

    async def load_config(self, _restored: bool = False) -> Config:
        """Read and validate the file, creating or repairing it when needed."""
        if not self.config_path.exists():
            self.logger.info("No configuration file yet, writing defaults")
            await self.save_config(Config())

        try:
            data = json.loads(self.config_path.read_text())
            self.current_config = Config(**data)
        except OSError as e:
            # Unreadable, or never written because the directory is read-only
            self.logger.error(f"Cannot read {self.config_path}, using defaults: {e}")
            self.current_config = Config()
            return self.current_config
        except (TypeError, ValueError) as e:
            # JSONDecodeError and pydantic's ValidationError are ValueErrors;
            # a top-level value that is not an object is a TypeError
            self.logger.error(f"Configuration file rejected: {e}")
            if _restored:
                self.logger.warning("Restored file is unusable as well, using defaults")
                self.current_config = Config()
                return self.current_config
            if not self.backups.restore_latest(self.config_path):
                self.logger.warning("No backup to restore, writing defaults")
                await self.save_config(Config())
            return await self.load_config(_restored=True)

        return self.current_config

    async def save_config(self, config: Config) -> bool:
        """Write ``config`` to disk and tell the listeners."""
        self.backups.take(self.config_path)
        staging = self.config_path.with_suffix(".tmp")
        try:
            staging.write_text(json.dumps(config.model_dump(), indent=2))
            os.chmod(staging, 0o600)
            staging.replace(self.config_path)
        except OSError as e:
            self.logger.error(f"Could not write {self.config_path}: {e}")
            return False

        self.current_config = config
        self.logger.info("Configuration saved")
        await self._notify_change_callbacks(config)
        return True

    async def update_config(self, updates: Dict[str, Any]) -> bool:
        """Apply ``{"section.field": value}`` updates; False if they don't validate."""
        data = (await self.get_config()).model_dump()
        for dotted, value in updates.items():
            *sections, name = dotted.split(".")
            target = data
            for section in sections:
                target = target.setdefault(section, {})
            target[name] = value

        try:
            config = Config(**data)
        except ValueError as e:
            self.logger.error(f"Rejected configuration update: {e}")
            return False
        return await self.save_config(config)

    async def update_terminal(self, api_url: str, client_id: str, shared_secret: str) -> bool:
        """Store the endpoint and credentials the terminal signs requests with."""
        return await self.update_config({
            "terminal.API_URL": api_url,
            "terminal.CLIENT_ID": client_id,
            "terminal.SHARED_SECRET": shared_secret,
        })

    async def get_config(self) -> Config:
        if self.current_config is None:
            await self.load_config()
        return self.current_config

    def get(self, key: str) -> Optional[str]:
        """Key-value lookup of a terminal setting; ``None`` when absent."""
        if key not in CONFIG_KEYS or self.current_config is None:
            return None
        return getattr(self.current_config.terminal, key) or None

    # File watching

    def _watch(self) -> None:
        if self.observer:
            return
        handler = ConfigFileHandler(self, asyncio.get_running_loop())
        observer = Observer()
        try:
            observer.schedule(handler, str(self.config_path.parent), recursive=False)
            observer.start()
        except OSError as e:
            self.logger.error(f"Not watching {self.config_path}: {e}")
            return
        self.observer = observer
        self.logger.info("Watching configuration file for changes")

    async def _handle_file_change(self) -> None:
        await asyncio.sleep(RELOAD_DELAY)

        previous = self.current_config
        config = await self.load_config()
        # Our own saves have already notified
        if previous is not None and previous.model_dump() == config.model_dump():
            return

        self.logger.info("Configuration file edited, reloading")
        await self._notify_change_callbacks(config)

    # Listeners

    def add_change_callback(self, callback: Callable) -> None:
        """Register a sync or async callable receiving the new :class:`Config`."""
        self.change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable) -> None:
        if callback in self.change_callbacks:
            self.change_callbacks.remove(callback)

    async def _notify_change_callbacks(self, config: Config) -> None:
        for callback in list(self.change_callbacks):
            try:
                result = callback(config)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self.logger.error(f"Configuration listener failed: {e}")

    async def shutdown(self) -> None:
        """Stop following the configuration file."""
        if self.observer:
            self.observer.stop()
            self.observer.join(timeout=5)
            self.observer = None
            self.logger.info("Stopped watching configuration file")
