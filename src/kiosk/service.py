#!/usr/bin/env python3
"""Ostara Kiosk Service.

Runs the PIN terminal: loads configuration, wires the signed-request
exchanges into the session state machine and serves the gateway the
display talks to.
"""

import asyncio
import logging
import logging.handlers
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from config import Config, ConfigManager
from exchange import ActionExchange, AuthExchange, HttpTokenClient, TokenCodec
from .session import KioskSession


class KioskService:
    """Kiosk terminal service."""

    def __init__(self, config_path: Optional[str] = None, open_config_editor: bool = False):
        """Initialize service."""
        self.config_manager = ConfigManager(config_path)
        self.open_config_editor = open_config_editor
        self.client: Optional[HttpTokenClient] = None
        self.session: Optional[KioskSession] = None
        self.gateway = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def _setup_logging(self, config: Config) -> None:
        """Set up console, syslog and file logging."""
        root = logging.getLogger()
        root.setLevel(getattr(logging, config.system.log_level))

        # Prevent duplicate logs
        if root.handlers:
            root.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Console handler for systemd journal
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        # Syslog handler
        if Path('/dev/log').exists():
            try:
                syslog_handler = logging.handlers.SysLogHandler(address='/dev/log', facility='daemon')
                syslog_handler.setLevel(logging.INFO)
                syslog_handler.setFormatter(logging.Formatter('ostara-kiosk[%(process)d]: %(levelname)s - %(message)s'))
                root.addHandler(syslog_handler)
            except OSError as e:
                self.logger.warning(f"Failed to set up syslog handler: {e}")

        # File handler for detailed debugging
        try:
            log_dir = Path(config.system.log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_dir / "kiosk.log",
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            self.logger.warning(f"Failed to set up file handler: {e}")

    def build_session(self, config: Config) -> KioskSession:
        """Wire the exchanges into a session for ``config``."""
        self.client = HttpTokenClient(timeout=config.exchange.request_timeout)
        codec = TokenCodec(verify_signatures=config.exchange.verify_response_signatures)
        if not config.exchange.verify_response_signatures:
            self.logger.warning("Response signatures are not verified; the remote identity payload is trusted as received")

        return KioskSession(
            self.config_manager,
            AuthExchange(self.client, codec),
            ActionExchange(self.client, codec),
            result_display_seconds=config.kiosk.result_display_seconds,
            error_display_seconds=config.kiosk.error_display_seconds,
        )

    async def start(self) -> None:
        """Start the kiosk service."""
        # Imported here so the session can run without the web stack
        from api import APIGateway

        config = await self.config_manager.initialize()
        self._setup_logging(config)

        self.logger.info("=" * 60)
        self.logger.info("Starting Ostara Kiosk Service")
        self.logger.info(f"PID: {os.getpid()}")
        self.logger.info(f"Config: {self.config_manager.config_path}")
        self.logger.info("=" * 60)

        self.session = self.build_session(config)
        self.config_manager.add_change_callback(self._on_config_change)

        open_editor = self.open_config_editor or config.kiosk.open_config_editor
        state = await self.session.initialize(open_config_editor=open_editor)
        self.logger.info(f"Session ready in state {state.name}")

        self.gateway = APIGateway(self.session, self.config_manager, config.api)
        self.running = True
        await self.gateway.start()

    async def _on_config_change(self, new_config: Config) -> None:
        """Handle configuration changes."""
        if self.session:
            await self.session.reload_config()

    async def stop(self) -> None:
        """Stop the kiosk service."""
        if not self.running:
            return
        self.logger.info("Stopping Ostara Kiosk Service")
        self.running = False

        if self.gateway:
            await self.gateway.stop()
        if self.session:
            await self.session.shutdown()
        if self.client:
            await self.client.close()
        await self.config_manager.shutdown()

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        signal_names = {
            signal.SIGTERM: "SIGTERM",
            signal.SIGINT: "SIGINT"
        }

        signal_name = signal_names.get(signum, f"Signal {signum}")
        self.logger.info(f"Received {signal_name}")
        asyncio.create_task(self.stop())


async def main():
    """Main entry point."""
    service = KioskService(open_config_editor="--config" in sys.argv[1:])

    # Set up signal handlers
    signal.signal(signal.SIGTERM, service._signal_handler)
    signal.signal(signal.SIGINT, service._signal_handler)

    try:
        await service.start()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logging.error(f"Service error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await service.stop()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
