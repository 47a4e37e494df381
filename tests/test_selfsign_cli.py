import json
import os
import stat

import pytest
import requests

import cert_info
import selfsign_cli
import selfsign_client


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SELFSIGN_NAME", raising=False)
    monkeypatch.delenv("SELFSIGN_DAYS", raising=False)
    return tmp_path


def test_generate_defaults(workdir, capsys):
    assert selfsign_cli.main(["generate"]) == 0
    assert "success: generated certificate" in capsys.readouterr().out

    key_pem = (workdir / "private.key").read_text()
    cert_pem = (workdir / "certificate_pub.crt").read_text()
    assert cert_info.key_matches(key_pem, cert_pem)

    info = cert_info.describe(cert_pem)
    assert info["subject"] == [["CN", "selfsign.localhost"]]
    assert info["days"] == 365


def test_generate_private_key_mode(workdir):
    assert selfsign_cli.main(["generate"]) == 0
    mode = stat.S_IMODE(os.stat(workdir / "private.key").st_mode)
    assert mode & 0o077 == 0


def test_generate_all_flags(workdir):
    argv = ["generate", "--keyout", "k.pem", "--out", "c.pem",
            "-n", "example.com", "-c", "US", "-s", "CA", "-l", "San Francisco",
            "-o", "Acme", "-u", "Eng", "--days", "30"]
    assert selfsign_cli.main(argv) == 0
    info = cert_info.describe((workdir / "c.pem").read_text())
    assert [k for k, _ in info["subject"]] == ["CN", "C", "ST", "L", "O", "OU"]
    assert info["days"] == 30


def test_generate_env_defaults(workdir, monkeypatch):
    monkeypatch.setenv("SELFSIGN_NAME", "env.local")
    monkeypatch.setenv("SELFSIGN_DAYS", "7")
    assert selfsign_cli.main(["generate"]) == 0
    info = cert_info.describe((workdir / "certificate_pub.crt").read_text())
    assert info["subject"] == [["CN", "env.local"]]
    assert info["days"] == 7


@pytest.mark.parametrize("existing, flag", [("private.key", "--keyout"), ("certificate_pub.crt", "--out")])
def test_generate_refuses_overwrite(workdir, capsys, existing, flag):
    (workdir / existing).write_text("keep me")
    assert selfsign_cli.main(["generate"]) == 1
    assert f"{flag} file exists: {existing}" in capsys.readouterr().err
    assert (workdir / existing).read_text() == "keep me"


@pytest.mark.parametrize("argv, message", [
    (["generate", "-n", ""], "--name"),
    (["generate", "--days", "0"], "--days"),
    (["generate", "-c", "USA"], "--country"),
])
def test_generate_rejects_bad_input(workdir, capsys, argv, message):
    assert selfsign_cli.main(argv) == 1
    assert message in capsys.readouterr().err
    assert not (workdir / "private.key").exists()
    assert not (workdir / "certificate_pub.crt").exists()


def test_generate_warns_past_suggested_max(workdir, capsys):
    assert selfsign_cli.main(["generate", "--days", "400"]) == 0
    captured = capsys.readouterr()
    assert "[WARN]" in captured.err
    assert "success" in captured.out


def test_info_json(pair_files, capsys):
    _, cert_path = pair_files
    assert selfsign_cli.main(["info", str(cert_path), "--json"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["subject"][0] == ["CN", "example.com"]
    assert info["self_signed"] is True


def test_info_text(pair_files, capsys):
    _, cert_path = pair_files
    assert selfsign_cli.main(["info", str(cert_path)]) == 0
    out = capsys.readouterr().out
    assert "CN=example.com, C=US, ST=CA, L=San Francisco, O=Acme, OU=Eng" in out
    assert "RSA 2048, signed with sha256" in out


def test_info_missing_file(tmp_path, capsys):
    assert selfsign_cli.main(["info", str(tmp_path / "nope.crt")]) == 1
    assert "cannot read certificate" in capsys.readouterr().err


def test_probe_match(pair_files, monkeypatch, capsys):
    _, cert_path = pair_files
    served = cert_info.describe(cert_path.read_text())
    monkeypatch.setattr(selfsign_client.CertProbe, "fetch", lambda self: served)
    assert selfsign_cli.main(["probe", "--cert", str(cert_path)]) == 0
    assert "presents" in capsys.readouterr().out


def test_probe_mismatch(pair_files, minimal_pair, monkeypatch):
    _, cert_path = pair_files
    served = cert_info.describe(minimal_pair[1])
    monkeypatch.setattr(selfsign_client.CertProbe, "fetch", lambda self: served)
    assert selfsign_cli.main(["probe", "--cert", str(cert_path)]) == 1


def test_probe_connection_error(pair_files, monkeypatch, capsys):
    _, cert_path = pair_files

    def refuse(*args, **kwargs):
        raise requests.ConnectionError("refused")
    monkeypatch.setattr(selfsign_client.requests, "get", refuse)
    assert selfsign_cli.main(["probe", "--cert", str(cert_path)]) == 1
    assert "probe failed" in capsys.readouterr().err


def test_generate_cleans_key_when_cert_write_fails(workdir, monkeypatch, capsys):
    def disk_full(path, data):
        raise OSError(28, "No space left on device")
    real_write = selfsign_cli._write_public
    monkeypatch.setattr(selfsign_cli, "_write_public", disk_full)

    assert selfsign_cli.main(["generate"]) == 1
    assert "No space left on device" in capsys.readouterr().err
    assert not (workdir / "private.key").exists()
    assert not (workdir / "certificate_pub.crt").exists()

    monkeypatch.setattr(selfsign_cli, "_write_public", real_write)
    assert selfsign_cli.main(["generate"]) == 0


def test_info_ed25519(tmp_path, ed25519_cert_pem, capsys):
    cert_path = tmp_path / "ed.crt"
    cert_path.write_text(ed25519_cert_pem)
    assert selfsign_cli.main(["info", str(cert_path)]) == 0
    assert "key:         Ed25519, signed with Ed25519" in capsys.readouterr().out
