"""Tests for CLI commands — exercises the Typer app via CliRunner."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from proofvault.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def offline_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every command at temp state with simulated backends."""
    monkeypatch.setenv("PROOFVAULT_STATE_DB_PATH", str(tmp_path / "state.db"))
    monkeypatch.setenv("PROOFVAULT_LEDGER_DB_PATH", str(tmp_path / "registry.db"))
    monkeypatch.setenv("PROOFVAULT_CONTENT_STORE_PATH", str(tmp_path / "content"))
    monkeypatch.setenv("PROOFVAULT_STORAGE_BACKEND", "local")
    monkeypatch.setenv("PROOFVAULT_DEAL_SOURCE", "simulated")
    monkeypatch.setenv("PROOFVAULT_SIMULATED_DELAY_MIN", "0")
    monkeypatch.setenv("PROOFVAULT_SIMULATED_DELAY_MAX", "0")
    monkeypatch.setenv("COLUMNS", "200")
    return tmp_path


def _write(tmp_path: Path, name: str, data: bytes) -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


def _certify(path: Path, *extra: str) -> str:
    result = runner.invoke(app, ["certify", str(path), *extra])
    assert result.exit_code == 0, result.output
    return result.output.strip().splitlines()[-1].strip()


class TestCertifyCommand:
    def test_certify_prints_proof_id(self, offline_env: Path):
        path = _write(offline_env, "hello.txt", b"hello world!")
        result = runner.invoke(app, ["certify", str(path)])
        assert result.exit_code == 0, result.output
        assert "Proof created" in result.output
        assert result.output.strip().splitlines()[-1].strip().startswith("PV-")

    def test_duplicate_exits_nonzero(self, offline_env: Path):
        path = _write(offline_env, "dup.txt", b"twice")
        _certify(path)
        result = runner.invoke(app, ["certify", str(path)])
        assert result.exit_code == 1
        assert "DuplicateHashError" in result.output

    def test_batch(self, offline_env: Path):
        a = _write(offline_env, "a.txt", b"aaa")
        b = _write(offline_env, "b.txt", b"bbb")
        result = runner.invoke(app, ["certify", str(a), str(b), "--no-anchor"])
        assert result.exit_code == 0, result.output
        assert "a.txt" in result.output and "b.txt" in result.output

    def test_missing_file(self, offline_env: Path):
        result = runner.invoke(app, ["certify", str(offline_env / "absent.txt")])
        assert result.exit_code != 0


class TestVerifyCommand:
    def test_verified(self, offline_env: Path):
        path = _write(offline_env, "v.txt", b"verify me")
        proof_id = _certify(path)
        result = runner.invoke(app, ["verify", proof_id, str(path)])
        assert result.exit_code == 0, result.output
        assert "VERIFIED" in result.output

    def test_mismatch(self, offline_env: Path):
        proof_id = _certify(_write(offline_env, "v.txt", b"verify me"))
        other = _write(offline_env, "other.txt", b"something else")
        result = runner.invoke(app, ["verify", proof_id, str(other)])
        assert result.exit_code == 1
        assert "MISMATCH" in result.output

    def test_unknown_proof(self, offline_env: Path):
        path = _write(offline_env, "v.txt", b"x")
        result = runner.invoke(app, ["verify", "PV-missing", str(path)])
        assert result.exit_code == 1
        assert "NotFoundError" in result.output


class TestProofCommands:
    def test_show(self, offline_env: Path):
        proof_id = _certify(_write(offline_env, "s.txt", b"show"))
        result = runner.invoke(app, ["show", proof_id])
        assert result.exit_code == 0, result.output
        assert "s.txt" in result.output

    def test_show_json(self, offline_env: Path):
        proof_id = _certify(_write(offline_env, "s.txt", b"show"))
        result = runner.invoke(app, ["show", proof_id, "--json"])
        assert result.exit_code == 0, result.output
        assert proof_id in result.output

    def test_list_and_stats(self, offline_env: Path):
        _certify(_write(offline_env, "one.txt", b"1"))
        _certify(_write(offline_env, "two.txt", b"2"), "--no-anchor")

        listed = runner.invoke(app, ["list", "--sort-by", "file_name", "--order", "asc"])
        assert listed.exit_code == 0, listed.output
        assert listed.output.index("one.txt") < listed.output.index("two.txt")

        anchored = runner.invoke(app, ["list", "--on-chain"])
        assert "one.txt" in anchored.output
        assert "two.txt" not in anchored.output

        stats = runner.invoke(app, ["stats"])
        assert stats.exit_code == 0, stats.output
        assert "Total proofs" in stats.output

    def test_list_empty(self):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No proofs found" in result.output

    def test_anchor_then_mint(self, offline_env: Path):
        proof_id = _certify(_write(offline_env, "m.txt", b"mint"), "--no-anchor")

        early = runner.invoke(app, ["mint", proof_id])
        assert early.exit_code == 1

        anchored = runner.invoke(app, ["anchor", proof_id])
        assert anchored.exit_code == 0, anchored.output
        assert "Anchored" in anchored.output

        minted = runner.invoke(app, ["mint", proof_id])
        assert minted.exit_code == 0, minted.output
        assert "token #1" in minted.output


class TestDealsCommand:
    def test_simulated_deals(self):
        result = runner.invoke(app, ["deals", "bafy-locator-1", "bafy-locator-2"])
        assert result.exit_code == 0, result.output
        assert "health" in result.output
        assert "providers" in result.output


class TestWebhooksCommands:
    def test_add_list_remove(self):
        added = runner.invoke(
            app, ["webhooks", "add", "https://hooks.example/in", "-e", "proof_created", "--name", "CI"]
        )
        assert added.exit_code == 0, added.output
        webhook_id = added.output.strip().splitlines()[-1].strip()

        listed = runner.invoke(app, ["webhooks", "list"])
        assert listed.exit_code == 0, listed.output
        assert "CI" in listed.output

        removed = runner.invoke(app, ["webhooks", "remove", webhook_id])
        assert removed.exit_code == 0, removed.output
        again = runner.invoke(app, ["webhooks", "remove", webhook_id])
        assert again.exit_code == 1

    def test_list_empty_shows_events(self):
        result = runner.invoke(app, ["webhooks", "list"])
        assert result.exit_code == 0
        assert "proof_created" in result.output

    def test_add_rejects_bad_url(self):
        result = runner.invoke(app, ["webhooks", "add", "ftp://nope"])
        assert result.exit_code == 1

    def test_logs_empty(self):
        result = runner.invoke(app, ["webhooks", "logs"])
        assert result.exit_code == 0
        assert "No deliveries logged" in result.output
