from datetime import datetime, timezone
from pathlib import Path
import tempfile

from snipq.config_manager import ConfigManager
from snipq.models import ExpansionContext
from ui.gui_api import GUIApi

NOW = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _api(td: str, **kwargs) -> GUIApi:
    root = Path(td)
    vault = root / "vault"
    _write(vault / "settings.yaml", "timezone: UTC\nhistoryLimit: 3\nexcludedApps: [keepass]\n")
    _write(vault / "groups" / "personal" / "group.yaml", "name: Personal\n")
    snippets = vault / "groups" / "personal" / "snippets"
    _write(snippets / "hello.yaml", "id: hello\nname: Hello\ntrigger: ':hello'\ntemplate: 'Hello, {{name|friend}}!'\n")
    _write(snippets / "today.yaml", "id: today\nname: Today\ntrigger: ':today'\ntemplate: '{{date}} {{app}}'\n")
    _write(
        snippets / "secret.yaml",
        "id: secret\nname: Secret\ntrigger: ':secret'\ntemplate: '{{code}}'\nstrict: true\ntags: [sensitive]\n",
    )
    config = ConfigManager(base_dir=root / "profile")
    return GUIApi(vault_path=str(vault), config=config, **kwargs)


def test_queries_return_status_dicts():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        groups = api.get_groups()
        assert groups["status"] == "success"
        assert [g["id"] for g in groups["groups"]] == ["personal"]

        snippets = api.get_snippets("personal")
        assert [s["id"] for s in snippets["snippets"]] == ["hello", "secret", "today"]

        missing = api.get_snippets("nope")
        assert missing["status"] == "error"
        assert missing["kind"] == "InvalidGroup"

        assert api.search_snippets("hel")["count"] == 1
        info = api.get_vault_info()
        assert info["status"] == "success"
        assert info["snippets"] == 3
        assert info["errors"] == []
        assert api.get_settings()["settings"]["historyLimit"] == 3


def test_expand_and_preview():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        result = api.expand_snippet(":hello?name=John")
        assert result["status"] == "success"
        assert result["output"] == "Hello, John!"
        assert result["cursorOffset"] == 12
        assert result["usedSnippet"] == "hello"
        assert result["usedParams"] == {"name": "John"}

        assert api.expand_snippet(":hello", params={"name": "Ann"})["output"] == "Hello, Ann!"
        assert api.preview_snippet(":hello") == {"status": "success", "output": "Hello, friend!"}


def test_errors_are_reported_by_kind():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        assert api.expand_snippet(":nope")["kind"] == "TriggerNotFound"
        assert api.expand_snippet(":secret")["kind"] == "MissingRequiredPlaceholder"
        assert api.expand_snippet(":hello?=x")["kind"] == "MalformedParameter"
        assert api.expand_snippet(":hello", params={"name": {"a": 1}})["kind"] == "MalformedParameter"
        excluded = api.expand_snippet(":hello", app_id="keepass")
        assert excluded["status"] == "error"
        assert excluded["kind"] == "AppExcluded"
        assert api.preview_snippet(":nope")["kind"] == "TriggerNotFound"


def test_context_provider_supplies_clock_and_app():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td, context_provider=lambda: ExpansionContext(app_id="editor", now=NOW))
        assert api.expand_snippet(":today")["output"] == "2024-03-05 editor"
        assert api.expand_snippet(":today", app_id="mail")["output"] == "2024-03-05 mail"


def test_history_and_sink():
    with tempfile.TemporaryDirectory() as td:
        sunk = []
        api = _api(td, history_sink=sunk.append)
        for trigger in (":hello", ":today", ":hello?name=A", ":today", ":secret?code=9"):
            api.expand_snippet(trigger)
        history = api.get_history()
        assert history["count"] == 3
        assert [e["snippetId"] for e in history["entries"]] == ["today", "hello", "today"]
        assert len(sunk) == 4
        assert api.clear_history()["status"] == "success"
        assert api.get_history()["count"] == 0


def test_reload_publishes_new_snapshot():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        before = api.service.state.version
        _write(
            Path(td) / "vault" / "groups" / "personal" / "snippets" / "bye.yaml",
            "id: bye\nname: Bye\ntrigger: ':bye'\ntemplate: 'Bye!'\n",
        )
        assert api.expand_snippet(":bye")["kind"] == "TriggerNotFound"
        result = api.reload()
        assert result["status"] == "success"
        assert result["snippets"] == 4
        assert result["version"] > before
        assert api.expand_snippet(":bye")["output"] == "Bye!"


def test_start_watching_reloads_on_change():
    from watchdog.events import FileModifiedEvent

    class FakeObserver:
        def __init__(self):
            self.handlers = []

        def schedule(self, handler, path, recursive=False):
            self.handlers.append(handler)

        def start(self):
            pass

        def stop(self):
            pass

        def join(self, timeout=None):
            pass

    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        obs = FakeObserver()
        assert api.start_watching(observer=obs, debounce=0) == {"status": "success", "running": True}
        _write(Path(td) / "vault" / "settings.yaml", "timezone: UTC\nhistoryLimit: 1\n")
        for handler in obs.handlers:
            handler.dispatch(FileModifiedEvent(str(Path(td) / "vault" / "settings.yaml")))
        assert api.get_settings()["settings"]["historyLimit"] == 1
        assert api.expand_snippet(":hello", app_id="keepass")["status"] == "success"
        api.shutdown()


def test_get_snippet_lists_placeholders():
    with tempfile.TemporaryDirectory() as td:
        api = _api(td)
        result = api.get_snippet("today")
        assert result["status"] == "success"
        assert result["snippet"]["trigger"] == ":today"
        assert result["placeholders"] == ["date", "app"]
        assert api.get_snippet("nope")["kind"] == "InvalidSnippet"


def test_get_variables():
    with tempfile.TemporaryDirectory() as td:
        variables = _api(td).get_variables()
        assert variables["status"] == "success"
        assert {"date", "time", "uuid", "clipboard"} <= set(variables["variables"])


def test_injected_history_sink_sees_expansions():
    with tempfile.TemporaryDirectory() as td:
        sunk = []
        api = _api(td, history_sink=sunk.append)
        api.expand_snippet(":hello")
        assert [e.snippet_id for e in sunk] == ["hello"]
        api.preview_snippet(":hello")
        assert len(sunk) == 1
