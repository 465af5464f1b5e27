"""
Tests for the command-line entry point.
"""

import pytest

from conftest import COLLECTION
from jobtracker import main as cli
from jobtracker.config import Config
from jobtracker.errors import ConfigurationError


def _args(*argv):
    return cli.build_parser().parse_args(list(argv))


class TestParser:
    """Tests for argument parsing."""

    def test_add_defaults(self):
        args = _args("add", "--company", "Acme", "--title", "Engineer")

        assert args.status == "Applied"
        assert args.notes == ""
        assert len(args.applied_date) == 10

    def test_status_choices_enforced(self):
        with pytest.raises(SystemExit):
            _args("status", "x", "Ghosted")

    def test_command_required(self):
        with pytest.raises(SystemExit):
            _args()


class TestRunCommand:
    """Tests for run_command against a fake session."""

    def test_whoami(self, session, capsys):
        assert cli.run_command(_args("whoami"), session) == 0
        assert capsys.readouterr().out.strip() == "user-1"

    def test_add(self, session, store, capsys):
        code = cli.run_command(
            _args("add", "--company", "Acme", "--title", "Engineer", "--date", "2024-05-01", "--link", "acme.com"),
            session,
        )

        assert code == 0
        assert capsys.readouterr().out.strip() == "doc-1"
        op, path, payload = store.writes[0]
        assert (op, path) == ("add", COLLECTION)
        assert payload["postingLink"] == "acme.com"

    def test_add_rejected(self, session, store):
        assert cli.run_command(_args("add", "--company", " ", "--title", "Engineer"), session) == 1
        assert store.writes == []

    def test_status(self, session, store):
        assert cli.run_command(_args("status", "x", "Offer"), session) == 0
        assert store.writes == [("update", f"{COLLECTION}/x", {"status": "Offer"})]

    def test_delete_prompts(self, session, store, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert cli.run_command(_args("delete", "x"), session) == 1
        assert store.writes == []

        monkeypatch.setattr("builtins.input", lambda prompt: "yes")

        assert cli.run_command(_args("delete", "x"), session) == 0
        assert store.writes == [("delete", f"{COLLECTION}/x", None)]

    def test_delete_yes_flag(self, session, store, monkeypatch):
        monkeypatch.setattr("builtins.input", pytest.fail)

        assert cli.run_command(_args("delete", "x", "--yes"), session) == 0

    def test_list(self, session, store, capsys):
        store.initial_snapshots[COLLECTION] = {
            "old": {"company": "Initech", "title": "Analyst", "appliedDate": "2024-01-10"},
            "new": {"company": "Acme", "title": "Engineer", "appliedDate": "2024-03-05"},
        }

        assert cli.run_command(_args("list"), session) == 0

        out = capsys.readouterr().out
        assert out.startswith("2 Applications Tracked")
        assert out.index("Acme") < out.index("Initech")
        assert store.unsubscribed == [COLLECTION]

    def test_list_subscription_failure(self, session, store):
        def broken_subscribe(path, on_snapshot, on_error):
            on_error(RuntimeError("permission denied"))
            return lambda: None

        store.subscribe = broken_subscribe

        assert cli.run_command(_args("list"), session) == 1

    def test_without_identity(self, anonymous_session, store):
        assert cli.run_command(_args("status", "x", "Offer"), anonymous_session) == 1
        assert store.calls == []


class TestMain:
    """Tests for main()."""

    def test_configuration_error_exits_with_1(self, monkeypatch, capsys):
        def missing(*args, **kwargs):
            raise ConfigurationError("Firebase config is missing.")

        monkeypatch.setattr(cli, "load_config", missing)

        assert cli.main(["list"]) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_session_closed_after_command(self, monkeypatch, session, provider):
        monkeypatch.setattr(cli, "load_config", lambda: object())
        monkeypatch.setattr(cli, "setup_logging", lambda: None)
        monkeypatch.setattr(cli, "bootstrap", lambda config: session)

        assert cli.main(["whoami"]) == 0
        assert provider.listener_count == 0


def test_wait_for_snapshot_times_out(session):
    mirror = cli.LiveCollectionMirror(session)
    mirror.start()

    assert cli.wait_for_snapshot(mirror, timeout=0.2) is False


def test_setup_logging_keeps_stdout_for_output(monkeypatch, tmp_path):
    captured = {}
    monkeypatch.setattr(cli, "LOG_DIR", tmp_path)
    monkeypatch.setattr(cli, "get_config", Config)
    monkeypatch.setattr(cli.logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

    cli.setup_logging()

    stream_handlers = [h for h in captured["handlers"] if type(h) is cli.logging.StreamHandler]
    assert [h.stream for h in stream_handlers] == [cli.sys.stderr]
    for handler in captured["handlers"]:
        handler.close()
