import json
import re
import sys
from pathlib import Path

import pytest

import status_chat.cli as cli
from status_chat.models import ErrorKind, ResultEnvelope, Strategy


@pytest.fixture
def no_logging(monkeypatch):
    # Avoid touching real logs/paths during tests
    monkeypatch.setattr(cli, "setup_logging", lambda *a, **k: None)


@pytest.fixture
def fake_client(monkeypatch):
    """
    Monkeypatch StatusChatClient to capture its construction and calls
    without touching the network.
    """
    calls = {"init": None, "ops": [], "results": {}}

    def ok(data):
        return ResultEnvelope.ok(data=data, http_status=200, strategy=Strategy.RELAY_FETCH)

    class FakeClient:
        def __init__(self, endpoint, **kwargs):
            calls["init"] = {"endpoint": endpoint, **kwargs}
            self.endpoint = endpoint

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def health_check(self):
            calls["ops"].append("health")
            return calls["results"].get("health", ok({"status": "ok"}))

        async def get_statuses(self):
            calls["ops"].append("statuses")
            return calls["results"].get(
                "statuses",
                ok({"statuses": [{"name": "ana", "status": "coding", "timestamp": "2025-01-01T00:00:00Z"}]}),
            )

        async def update_status(self, name, status):
            calls["ops"].append(("update-status", name, status))
            if not name.strip() or not status.strip():
                raise ValueError("Both a name and a status message are required")
            return calls["results"].get("update-status", ok({"success": True}))

        parse_statuses = staticmethod(cli.StatusChatClient.parse_statuses)

    monkeypatch.setattr(cli, "StatusChatClient", FakeClient)
    return calls


def _run_main_with_args(monkeypatch, argv):
    monkeypatch.setattr(sys, "argv", ["status-chat"] + argv)
    # main() runs asyncio.run(...) and always exits with the command's code
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    return exc_info.value.code


def test_default_runs_health_then_feed(no_logging, fake_client, monkeypatch, tmp_path, capsys):
    code = _run_main_with_args(monkeypatch, ["--prefs-file", str(tmp_path / "prefs.json")])

    assert code == 0
    assert fake_client["ops"] == ["health", "statuses"]
    assert fake_client["init"]["endpoint"] == cli.DEFAULT_ENDPOINT
    assert "ana" in capsys.readouterr().out


def test_failed_health_check_skips_feed(no_logging, fake_client, monkeypatch, tmp_path):
    fake_client["results"]["health"] = ResultEnvelope.failure(
        ErrorKind.ALL_STRATEGIES_EXHAUSTED, "All strategies exhausted", attempts=9
    )
    code = _run_main_with_args(monkeypatch, ["--prefs-file", str(tmp_path / "prefs.json")])

    assert code == 1
    assert fake_client["ops"] == ["health"]


def test_invalid_endpoint_exits_with_code_2(no_logging, fake_client, monkeypatch, tmp_path):
    fake_client["results"]["statuses"] = ResultEnvelope.failure(
        ErrorKind.INVALID_ENDPOINT, "Invalid endpoint URL"
    )
    code = _run_main_with_args(
        monkeypatch, ["--list", "--url", "not a url", "--prefs-file", str(tmp_path / "p.json")]
    )

    assert code == 2
    assert fake_client["init"]["endpoint"] == "not a url"


def test_transport_flags_reach_client(no_logging, fake_client, monkeypatch, tmp_path):
    args = [
        "--health",
        "--no-relay",
        "--timeout", "2.5",
        "--max-attempts", "5",
        "--backoff", "0.5",
        "--no-retry-mutating",
        "--prefs-file", str(tmp_path / "prefs.json"),
    ]
    code = _run_main_with_args(monkeypatch, args)

    init = fake_client["init"]
    assert code == 0
    assert init["relay_url"] is None
    assert init["timeout"] == 2.5
    assert init["retry_policy"].max_attempts == 5
    assert init["retry_policy"].backoff_step == 0.5
    assert init["retry_policy"].retry_mutating is False


def test_set_url_persists_and_is_used_next_run(no_logging, fake_client, monkeypatch, tmp_path):
    prefs = tmp_path / "prefs.json"
    url = "https://script.google.com/macros/s/abc/exec"

    assert _run_main_with_args(monkeypatch, ["--set-url", url, "--prefs-file", str(prefs)]) == 0
    assert json.loads(prefs.read_text())["chat-api-url"] == url
    assert fake_client["init"] is None

    assert _run_main_with_args(monkeypatch, ["--health", "--prefs-file", str(prefs)]) == 0
    assert fake_client["init"]["endpoint"] == url


def test_set_url_rejects_invalid_url(no_logging, fake_client, monkeypatch, tmp_path):
    prefs = tmp_path / "prefs.json"
    code = _run_main_with_args(monkeypatch, ["--set-url", "not a url", "--prefs-file", str(prefs)])

    assert code == 2
    assert not prefs.exists()


def test_post_saves_username_for_next_time(no_logging, fake_client, monkeypatch, tmp_path):
    prefs = tmp_path / "prefs.json"
    code = _run_main_with_args(
        monkeypatch, ["--post", "writing tests", "--name", "ana", "--prefs-file", str(prefs)]
    )
    assert code == 0
    assert fake_client["ops"] == [("update-status", "ana", "writing tests"), "statuses"]

    # Name now comes from the saved preferences
    code = _run_main_with_args(monkeypatch, ["--post", "lunch", "--prefs-file", str(prefs)])
    assert code == 0
    assert fake_client["ops"][-2] == ("update-status", "ana", "lunch")


def test_post_refreshes_feed_after_update(no_logging, fake_client, monkeypatch, tmp_path, capsys):
    code = _run_main_with_args(
        monkeypatch, ["--post", "lunch", "--name", "ana", "--prefs-file", str(tmp_path / "prefs.json")]
    )

    assert code == 0
    assert fake_client["ops"] == [("update-status", "ana", "lunch"), "statuses"]
    assert "ana" in capsys.readouterr().out


def test_post_failure_does_not_refresh_feed(no_logging, fake_client, monkeypatch, tmp_path):
    fake_client["results"]["update-status"] = ResultEnvelope.failure(
        ErrorKind.ALL_STRATEGIES_EXHAUSTED, "All strategies exhausted", attempts=9
    )
    code = _run_main_with_args(
        monkeypatch, ["--post", "lunch", "--name", "ana", "--prefs-file", str(tmp_path / "prefs.json")]
    )

    assert code == 1
    assert fake_client["ops"] == [("update-status", "ana", "lunch")]


def test_json_post_prints_only_the_update_envelope(
    no_logging, fake_client, monkeypatch, tmp_path, capsys
):
    code = _run_main_with_args(
        monkeypatch,
        ["--post", "lunch", "--name", "ana", "--json", "--prefs-file", str(tmp_path / "prefs.json")],
    )
    doc = json.loads(capsys.readouterr().out)

    assert code == 0
    assert doc["data"] == {"success": True}
    assert fake_client["ops"] == [("update-status", "ana", "lunch")]


def test_post_without_name_fails(no_logging, fake_client, monkeypatch, tmp_path):
    code = _run_main_with_args(
        monkeypatch, ["--post", "lunch", "--prefs-file", str(tmp_path / "prefs.json")]
    )
    assert code == 1
    assert fake_client["ops"] == []


def test_watch_refreshes_for_given_iterations(no_logging, fake_client, monkeypatch, tmp_path):
    args = [
        "--watch",
        "--interval", "0",
        "--iterations", "3",
        "--prefs-file", str(tmp_path / "prefs.json"),
    ]
    code = _run_main_with_args(monkeypatch, args)

    assert code == 0
    assert fake_client["ops"] == ["statuses", "statuses", "statuses"]


def test_json_output_prints_envelope(no_logging, fake_client, monkeypatch, tmp_path, capsys):
    code = _run_main_with_args(
        monkeypatch, ["--list", "--json", "--prefs-file", str(tmp_path / "prefs.json")]
    )
    doc = json.loads(capsys.readouterr().out)

    assert code == 0
    assert doc["success"] is True
    assert doc["strategyUsed"] == "RelayFetch"
    assert doc["data"]["statuses"][0]["name"] == "ana"


def test_mode_flags_are_mutually_exclusive(no_logging, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["status-chat", "--health", "--watch"])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 2


@pytest.mark.parametrize("flag, value", [("--backoff", "-1"), ("--max-attempts", "0")])
def test_invalid_retry_settings_exit_with_code_1(
    no_logging, fake_client, monkeypatch, tmp_path, flag, value
):
    code = _run_main_with_args(
        monkeypatch, ["--health", flag, value, "--prefs-file", str(tmp_path / "prefs.json")]
    )

    assert code == 1
    assert fake_client["init"] is None


def test_feed_refresh_logs_last_updated_time(no_logging, fake_client, monkeypatch, tmp_path):
    messages = []
    sink_id = cli.logger.add(messages.append, format="{message}")
    try:
        code = _run_main_with_args(
            monkeypatch, ["--list", "--prefs-file", str(tmp_path / "prefs.json")]
        )
    finally:
        cli.logger.remove(sink_id)

    assert code == 0
    assert any(re.fullmatch(r"Last updated: \d\d:\d\d:\d\d\n", m) for m in messages)


def test_watch_uses_compact_console_format(fake_client, monkeypatch, tmp_path):
    seen = {}
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: seen.update(kwargs))
    args = ["--watch", "--interval", "0", "--iterations", "1", "--prefs-file", str(tmp_path / "p.json")]

    assert _run_main_with_args(monkeypatch, args) == 0
    assert seen["compact"] is True

    assert _run_main_with_args(monkeypatch, ["--list", "--prefs-file", str(tmp_path / "p.json")]) == 0
    assert seen["compact"] is False
