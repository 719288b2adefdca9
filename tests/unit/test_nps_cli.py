import io
import json
import logging

import pytest

from nps_auth import cli
from nps_auth.utils.secret_store import decrypt_secret
from tests.radius_helpers import ACCESS_ACCEPT, ACCESS_REJECT, SECRET, attr, build_reply


@pytest.fixture(autouse=True)
def log_levels(monkeypatch):
    levels = []
    monkeypatch.setattr(cli, "configure", lambda level, handlers=None: levels.append(level))
    return levels


def _server_args(port):
    return [
        "--host",
        "127.0.0.1",
        "--port",
        str(port),
        "--secret",
        SECRET.decode(),
        "--timeout-ms",
        "200",
        "--retries",
        "1",
    ]


@pytest.mark.integration
def test_login_success(fake_nps, capsys):
    server = fake_nps(lambda req, n: build_reply(ACCESS_ACCEPT, req, attr(11, b"netops")))
    code = cli.main(
        ["login", "alice", "--password", "pw", "--auth-method", "pap", *_server_args(server.port)]
    )
    out = json.loads(capsys.readouterr().out)
    assert code == 0
    assert out["success"] is True
    assert out["code"] == "ACCESS_ACCEPT"
    assert out["groups"] == ["netops"]
    assert out["used_server"] == "primary"


@pytest.mark.integration
def test_login_reject_password_from_stdin(fake_nps, capsys, monkeypatch):
    server = fake_nps(lambda req, n: build_reply(ACCESS_REJECT, req))
    monkeypatch.setattr("sys.stdin", io.StringIO("pw\n"))
    code = cli.main(["login", "alice", "--stdin", *_server_args(server.port)])
    out = json.loads(capsys.readouterr().out)
    assert code == 1
    assert out["code"] == "ACCESS_REJECT"
    assert "pw" not in json.dumps(out.get("attributes"))


@pytest.mark.integration
def test_login_without_message_authenticator(fake_nps, capsys):
    server = fake_nps(lambda req, n: build_reply(ACCESS_ACCEPT, req))
    cli.main(
        [
            "login",
            "alice",
            "--password",
            "pw",
            "--no-message-authenticator",
            *_server_args(server.port),
        ]
    )
    capsys.readouterr()
    assert bytes([80, 18]) not in server.requests[0][20:]


@pytest.mark.integration
def test_probe(fake_nps, capsys):
    server = fake_nps(lambda req, n: build_reply(ACCESS_REJECT, req))
    code = cli.main(["probe", *_server_args(server.port)])
    out = json.loads(capsys.readouterr().out)
    assert code == 0
    assert "Access-Reject" in out["message"]


def test_config_file_and_flags(tmp_path, fake_nps, capsys):
    server = fake_nps(lambda req, n: build_reply(ACCESS_REJECT, req))
    path = tmp_path / "nps.conf"
    path.write_text(
        f"[radius]\nprimary_host = 127.0.0.1\nprimary_port = 1\nshared_secret = {SECRET.decode()}\n",
        encoding="utf-8",
    )
    code = cli.main(["-c", str(path), "probe", "--port", str(server.port)])
    capsys.readouterr()
    assert code == 0
    assert len(server.requests) == 1


def test_invalid_configuration_exit_code(capsys):
    code = cli.main(["probe", "--host", "127.0.0.1"])
    err = capsys.readouterr().err
    assert code == 2
    assert err.startswith("Error: ")


def test_missing_config_file(tmp_path, capsys):
    code = cli.main(["-c", str(tmp_path / "nope.conf"), "probe"])
    assert code == 2
    assert "not found" in capsys.readouterr().err


def test_encrypt_secret(capsys, monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "cli-test")
    assert cli.main(["encrypt-secret", "--secret", "abc"]) == 0
    stored = capsys.readouterr().out.strip()
    assert stored != "abc"
    assert decrypt_secret(stored) == "abc"


def test_encrypt_empty_secret(capsys):
    assert cli.main(["encrypt-secret", "--secret", ""]) == 1
    assert "empty" in capsys.readouterr().err


def test_debug_flag(capsys, log_levels):
    cli.main(["--debug", "encrypt-secret", "--secret", "x"])
    cli.main(["encrypt-secret", "--secret", "x"])
    capsys.readouterr()
    assert log_levels == [logging.DEBUG, logging.WARNING]
