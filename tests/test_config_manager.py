"""Tests for configuration persistence."""

import json

import pytest

from config import ConfigManager
from exchange import ConfigError, TerminalConfig


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "ostara" / "config.json"


@pytest.fixture
def manager(config_path):
    return ConfigManager(str(config_path))


def write_config(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


@pytest.mark.asyncio
async def test_missing_file_created_from_defaults(manager, config_path):
    config = await manager.initialize(watch=False)

    assert config_path.exists()
    assert config.kiosk.result_display_seconds == 2.0
    assert config.kiosk.error_display_seconds == 3.0
    assert config.exchange.verify_response_signatures is False
    assert manager.get("API_URL") is None
    assert oct(config_path.stat().st_mode & 0o777) == oct(0o600)


@pytest.mark.asyncio
async def test_terminal_values_persisted(manager, config_path):
    await manager.initialize(watch=False)

    assert await manager.update_terminal("https://ostara.test/api", "42", "s3cret")

    stored = json.loads(config_path.read_text())
    assert stored["terminal"] == {
        "API_URL": "https://ostara.test/api",
        "CLIENT_ID": "42",
        "SHARED_SECRET": "s3cret",
    }

    reopened = ConfigManager(str(config_path))
    await reopened.load_config()
    assert reopened.get("CLIENT_ID") == "42"
    assert reopened.get("SHARED_SECRET") == "s3cret"


@pytest.mark.asyncio
async def test_get_only_answers_terminal_keys(manager):
    assert manager.get("API_URL") is None

    await manager.initialize(watch=False)
    await manager.update_terminal("https://ostara.test/api", "42", "")

    assert manager.get("SHARED_SECRET") is None
    assert manager.get("system") is None
    assert manager.get("api_url") is None


@pytest.mark.asyncio
async def test_numeric_client_id_accepted(manager, config_path):
    write_config(config_path, {"terminal": {"API_URL": "http://ostara.test", "CLIENT_ID": 7, "SHARED_SECRET": "k"}})

    await manager.load_config()

    assert manager.get("CLIENT_ID") == "7"
    assert TerminalConfig.from_store(manager).client_id == 7


@pytest.mark.asyncio
async def test_terminal_config_from_incomplete_store(manager):
    await manager.initialize(watch=False)
    await manager.update_terminal("https://ostara.test/api", "42", "")

    with pytest.raises(ConfigError) as exc_info:
        TerminalConfig.from_store(manager)

    assert exc_info.value.missing_keys == ["SHARED_SECRET"]


@pytest.mark.asyncio
async def test_corrupt_file_restored_from_backup(manager, config_path):
    original = {"terminal": {"API_URL": "http://ostara.test", "CLIENT_ID": "1", "SHARED_SECRET": "k"}}
    write_config(config_path, original)
    await manager.load_config()
    await manager.update_terminal("http://ostara.test", "2", "k")

    config_path.write_text("{not json")
    config = await manager.load_config()

    assert config.terminal.CLIENT_ID == "1"
    assert json.loads(config_path.read_text())["terminal"]["CLIENT_ID"] == "1"


@pytest.mark.asyncio
async def test_corrupt_file_without_backups_falls_back_to_defaults(manager, config_path):
    write_config(config_path, {"kiosk": {"error_display_seconds": "soon"}})

    config = await manager.load_config()

    assert config.kiosk.error_display_seconds == 3.0
    assert manager.get("API_URL") is None


@pytest.mark.asyncio
async def test_invalid_update_rejected(manager):
    await manager.initialize(watch=False)

    assert not await manager.update_config({"kiosk.result_display_seconds": -1})
    assert not await manager.update_config({"unknown": True})
    assert (await manager.get_config()).kiosk.result_display_seconds == 2.0


@pytest.mark.asyncio
async def test_change_callbacks_notified_on_save(manager):
    await manager.initialize(watch=False)
    received = []

    async def on_change(config):
        received.append(config.terminal.CLIENT_ID)

    def broken(config):
        raise RuntimeError("listener failed")

    manager.add_change_callback(broken)
    manager.add_change_callback(on_change)
    await manager.update_terminal("http://ostara.test", "9", "k")

    manager.remove_change_callback(on_change)
    await manager.update_terminal("http://ostara.test", "10", "k")

    assert received == ["9"]


@pytest.mark.asyncio
async def test_backups_are_capped(manager):
    await manager.initialize(watch=False)

    for client_id in range(15):
        await manager.update_terminal("http://ostara.test", str(client_id), "k")

    assert len(manager.backups.newest_first()) == 10


@pytest.mark.asyncio
async def test_unwritable_location_falls_back_to_defaults(tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")
    manager = ConfigManager(str(blocker / "config.json"))

    config = await manager.initialize(watch=False)

    assert config.kiosk.error_display_seconds == 3.0
    assert manager.get("API_URL") is None
    assert not await manager.update_terminal("http://ostara.test", "1", "k")
    with pytest.raises(ConfigError):
        TerminalConfig.from_store(manager)


@pytest.mark.asyncio
async def test_non_object_file_rejected(manager, config_path):
    write_config(config_path, ["not", "a", "config"])

    config = await manager.load_config()

    assert config.terminal.API_URL is None
    assert json.loads(config_path.read_text())["kiosk"]["result_display_seconds"] == 2.0
