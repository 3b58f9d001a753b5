"""Unit tests for engines.script.isolate and context."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from probehost.engines.script import (
    CapabilityError,
    IsolateManager,
    PluginDescriptor,
    RunContext,
    ScriptLoadError,
    is_valid_plugin_id,
)
from tests.utils.plugins import OK_SCRIPT, make_descriptor


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    return RunContext(
        plugin_id="test-plugin",
        app_data_dir=tmp_path,
        app_version="1.2.3",
        now=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )


class TestPluginIds:
    @pytest.mark.parametrize("plugin_id", ["mock", "cursor", "my-plugin_2", "a.b"])
    def test_valid(self, plugin_id: str) -> None:
        assert is_valid_plugin_id(plugin_id)

    @pytest.mark.parametrize("plugin_id", ["", "../etc", "a/b", ".hidden", "a..b", "x" * 65, None])
    def test_invalid(self, plugin_id: object) -> None:
        assert not is_valid_plugin_id(plugin_id)

    def test_descriptor_rejects_invalid_id(self) -> None:
        with pytest.raises(ValueError, match="invalid plugin id"):
            PluginDescriptor(id="../x", script="")

    def test_display_name_falls_back_to_id(self) -> None:
        assert PluginDescriptor(id="mock", script="").display_name == "mock"
        assert PluginDescriptor(id="mock", script="", name="Mock").display_name == "Mock"


class TestRunContext:
    def test_paths_and_clock(self, run_context: RunContext, tmp_path: Path) -> None:
        ctx = run_context.to_probe_ctx()
        assert ctx.plugin_id == "test-plugin"
        assert ctx.now_iso == "2026-01-02T03:04:05Z"
        assert ctx.app.version == "1.2.3"
        assert ctx.app.app_data_dir == str(tmp_path.resolve())
        assert ctx.app.plugin_data_dir == str(tmp_path.resolve() / "plugins_data" / "test-plugin")
        assert Path(ctx.app.plugin_data_dir).is_dir()

    def test_capabilities_present(self, run_context: RunContext) -> None:
        host = run_context.to_probe_ctx().host
        assert callable(host.storage.query)
        assert callable(host.storage.exec)
        assert callable(host.http.request)
        assert callable(host.fs.read_text)
        assert callable(host.log.info)

    def test_close_disables_capabilities(self, run_context: RunContext) -> None:
        host = run_context.to_probe_ctx().host
        run_context.close()
        run_context.close()
        assert run_context.closed
        with pytest.raises(CapabilityError, match="run context disposed"):
            host.fs.exists("x")
        with pytest.raises(CapabilityError, match="run context disposed"):
            host.storage.query("/tmp/x.db", "SELECT 1")
        with pytest.raises(CapabilityError, match="run context disposed"):
            host.http.request("GET", "https://example.com/")
        host.log.info("still fine")


class TestIsolateManager:
    def test_create_and_invoke(self, run_context: RunContext) -> None:
        manager = IsolateManager()
        handle = manager.create_context(make_descriptor(OK_SCRIPT), run_context)
        result = handle.invoke()
        assert result["lines"][0] == {"type": "text", "label": "Plugin", "value": "test-plugin"}
        manager.dispose(handle)
        assert handle.disposed
        assert run_context.closed

    def test_dispose_is_idempotent(self, run_context: RunContext) -> None:
        manager = IsolateManager()
        handle = manager.create_context(make_descriptor(OK_SCRIPT), run_context)
        manager.dispose(handle)
        manager.dispose(handle)
        with pytest.raises(RuntimeError, match="already disposed"):
            handle.invoke()

    def test_syntax_error(self, run_context: RunContext) -> None:
        with pytest.raises(ScriptLoadError, match="script does not compile"):
            IsolateManager().create_context(make_descriptor("def probe(ctx:\n"), run_context)

    def test_raise_while_loading(self, run_context: RunContext) -> None:
        with pytest.raises(ScriptLoadError, match="script failed to load: ZeroDivisionError"):
            IsolateManager().create_context(make_descriptor("x = 1 / 0\n"), run_context)

    def test_missing_entry_point(self, run_context: RunContext) -> None:
        with pytest.raises(ScriptLoadError, match=r"does not define a probe\(ctx\) function"):
            IsolateManager().create_context(make_descriptor("probe = 1\n"), run_context)

    def test_module_state_not_shared(self, tmp_path: Path) -> None:
        source = (
            "seen = []\n"
            "def probe(ctx):\n"
            "    seen.append(1)\n"
            "    return len(seen)\n"
        )
        manager = IsolateManager()
        counts = []
        for _ in range(2):
            rc = RunContext(plugin_id="counter", app_data_dir=tmp_path)
            handle = manager.create_context(make_descriptor(source, plugin_id="counter"), rc)
            counts.append(handle.invoke())
            manager.dispose(handle)
        assert counts == [1, 1]
