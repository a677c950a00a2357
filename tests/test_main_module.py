import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from linkrelay import main
from linkrelay.relay.errors import FatalStartupError
from linkrelay.ui import console


@pytest.fixture(autouse=True)
def _restore_env(monkeypatch):
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


def make_store():
    return SimpleNamespace(initialize=AsyncMock(), shutdown=AsyncMock())


def make_runtime(reload_result=(2, 1)):
    return SimpleNamespace(reload=AsyncMock(return_value=reload_result))


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LINKRELAY_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("LINKRELAY_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "linkrelay.exe")])

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("LINKRELAY_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with patch.object(main, "load_dotenv"), pytest.raises(SystemExit) as excinfo:
        main.load_environment()

    assert excinfo.value.code == 1


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    with patch.object(main, "load_dotenv"):
        assert main.load_environment() == "abc"


def test_build_intents_enables_message_content():
    intents = main.build_intents()
    assert intents.message_content is True
    assert intents.guilds is True


def test_load_cogs_registers_every_cog():
    bot = SimpleNamespace(add_cog=MagicMock())
    runtime = SimpleNamespace()

    main.load_cogs(bot, runtime)

    names = [type(call.args[0]).__name__ for call in bot.add_cog.call_args_list]
    assert names == ["EventsListenerCog", "MessageListenerCog", "RelayCommandsCog"]


@pytest.mark.asyncio
async def test_async_main_database_failure_returns_one():
    store = make_store()
    store.initialize.side_effect = OSError("read-only filesystem")

    with patch.object(main, "load_environment", return_value="token"), \
         patch.object(main, "BindingStore", return_value=store):
        assert await main.async_main() == 1

    store.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_refuses_to_start_without_bindings():
    store = make_store()
    runtime = make_runtime()
    runtime.reload.side_effect = FatalStartupError("Could not load relay bindings: locked")
    bot = SimpleNamespace()

    with patch.object(main, "load_environment", return_value="token"), \
         patch.object(main, "BindingStore", return_value=store), \
         patch.object(main, "create_bot", return_value=(bot, runtime)), \
         patch.object(main, "shutdown_runtime", new=AsyncMock()) as shutdown, \
         patch.object(main, "run_bot_session", new=AsyncMock()) as session:
        assert await main.async_main() == 1

    shutdown.assert_awaited_once_with(bot, store)
    session.assert_not_awaited()


@pytest.mark.asyncio
async def test_async_main_returns_restart_code():
    control = console.ConsoleControl()
    control.request_restart()

    with patch.object(main, "load_environment", return_value="token"), \
         patch.object(main, "BindingStore", return_value=make_store()), \
         patch.object(main, "create_bot", return_value=(SimpleNamespace(), make_runtime())), \
         patch.object(main, "ConsoleControl", return_value=control), \
         patch.object(main, "run_bot_session", new=AsyncMock(return_value=0)):
        assert await main.async_main() == main.RESTART_EXIT_CODE


@pytest.mark.asyncio
async def test_async_main_passes_session_exit_code():
    with patch.object(main, "load_environment", return_value="token"), \
         patch.object(main, "BindingStore", return_value=make_store()), \
         patch.object(main, "create_bot", return_value=(SimpleNamespace(), make_runtime())), \
         patch.object(main, "run_bot_session", new=AsyncMock(return_value=1)):
        assert await main.async_main() == 1


@pytest.mark.asyncio
async def test_shutdown_runtime_closes_bot_and_store():
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    store = make_store()

    await main.shutdown_runtime(bot, store)

    bot.close.assert_awaited_once()
    store.shutdown.assert_awaited_once()


def _close_and_return(value):
    def runner(coro):
        coro.close()
        return value
    return runner


def test_main_restart_reexecutes_process():
    with patch.object(main.asyncio, "run", side_effect=_close_and_return(main.RESTART_EXIT_CODE)), \
         patch.object(main.os, "execv") as execv:
        main.main()

    execv.assert_called_once()
    assert execv.call_args.args[0] == sys.executable


@pytest.mark.parametrize(
    "exit_value, expected",
    [(3, 3), (None, 1), ("7", 7), ("bad", 1)],
)
def test_main_maps_system_exit_codes(exit_value, expected):
    def runner(coro):
        coro.close()
        raise SystemExit(exit_value)

    with patch.object(main.asyncio, "run", side_effect=runner):
        assert main.main() == expected


def test_main_keyboard_interrupt_returns_zero():
    def runner(coro):
        coro.close()
        raise KeyboardInterrupt

    with patch.object(main.asyncio, "run", side_effect=runner):
        assert main.main() == 0
