"""
Tests for the rodt CLI commands.
"""

import json

import click
import pytest
import requests
from click.testing import CliRunner

from rodt.cli import rodt_commands
from rodt.cli.rodt_commands import RodtClient, rodt


class FakeClient:
    """Records calls and returns canned API responses."""

    node_url = "http://fake"

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def _record(self, name, *args):
        self.calls.append((name, args))
        if self.fail:
            raise click.ClickException("RODT: token t1 does not exist (token_not_found)")

    def mint(self, caller, owner_id, metadata, token_id=None, royalty=None):
        self._record("mint", caller, owner_id, metadata, token_id, royalty)
        return {"success": True, "token_id": token_id or "01HX", "token": {}}

    def get_token(self, token_id):
        self._record("get_token", token_id)
        return {
            "success": True,
            "token": {
                "token_id": token_id,
                "owner_id": "alice",
                "approved_account_ids": {"bob": 0},
                "royalty": {"carol": 1000},
                "metadata": {"issuer_name": "cableguard", "dns_server": None},
            },
        }

    def transfer(self, caller, receiver_id, token_id, approval_id=None, memo=None, msg=None):
        self._record("transfer", caller, receiver_id, token_id, approval_id, memo, msg)
        status = "pending" if msg is not None else "completed"
        return {
            "success": True,
            "outcome": {
                "token_id": token_id,
                "previous_owner_id": caller,
                "receiver_id": receiver_id,
                "status": status,
            },
        }

    def approve(self, caller, token_id, account_id, msg=None):
        self._record("approve", caller, token_id, account_id, msg)
        return {"success": True, "token_id": token_id, "approval_id": 3}

    def revoke(self, caller, token_id, account_id=None):
        self._record("revoke", caller, token_id, account_id)
        return {"success": True, "token_id": token_id}

    def payout(self, token_id, balance, max_len_payout=None):
        self._record("payout", token_id, balance, max_len_payout)
        return {"success": True, "payout": {"bob": 3, "alice": 6}}

    def list_tokens(self, account_id=None, from_index=0, limit=None):
        self._record("list_tokens", account_id, from_index, limit)
        return {"success": True, "tokens": [{"token_id": "t1", "owner_id": "alice"}]}

    def supply(self, account_id=None):
        self._record("supply", account_id)
        if account_id:
            return {"success": True, "supply": 2}
        return {"success": True, "total_supply": 5}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake():
    return FakeClient()


def _invoke(runner, fake, args):
    return runner.invoke(rodt, args, obj={"client": fake})


def test_mint_passes_parsed_json(runner, fake):
    result = _invoke(
        runner,
        fake,
        ["mint", "--caller", "forge", "--owner", "alice", "--token-id", "t1",
         "--metadata", '{"issuer_name": "cg"}', "--royalty", '{"bob": 1000}'],
    )
    assert result.exit_code == 0, result.output
    assert "Minted" in result.output
    assert fake.calls == [("mint", ("forge", "alice", {"issuer_name": "cg"}, "t1", {"bob": 1000}))]


def test_mint_bad_json_exits_with_error(runner, fake):
    result = _invoke(runner, fake, ["mint", "--caller", "forge", "--owner", "alice", "--metadata", "{"])
    assert result.exit_code == 1
    assert fake.calls == []


def test_token_json_output(runner, fake):
    result = _invoke(runner, fake, ["--json", "token", "t1"])
    assert result.exit_code == 0
    assert json.loads(result.output)["token"]["owner_id"] == "alice"


def test_token_table_output(runner, fake):
    result = _invoke(runner, fake, ["token", "t1"])
    assert result.exit_code == 0
    assert "alice" in result.output
    assert "cableguard" in result.output


def test_transfer_with_msg_uses_cross_party_call(runner, fake):
    result = _invoke(
        runner, fake, ["transfer", "--caller", "alice", "--to", "bob", "--token-id", "t1", "--msg", "hi"]
    )
    assert result.exit_code == 0
    assert "pending" in result.output
    assert fake.calls == [("transfer", ("alice", "bob", "t1", None, None, "hi"))]


def test_approve_and_revoke(runner, fake):
    result = _invoke(runner, fake, ["approve", "--caller", "alice", "--token-id", "t1", "--account", "bob"])
    assert result.exit_code == 0
    assert "3" in result.output

    result = _invoke(runner, fake, ["revoke", "--caller", "alice", "--token-id", "t1"])
    assert result.exit_code == 0
    assert fake.calls[-1] == ("revoke", ("alice", "t1", None))


def test_payout_reports_unassigned_remainder(runner, fake):
    result = _invoke(runner, fake, ["payout", "t1", "--balance", "10"])
    assert result.exit_code == 0
    assert "1 unassigned" in result.output


def test_tokens_and_supply(runner, fake):
    result = _invoke(runner, fake, ["tokens", "--owner", "alice", "--limit", "5"])
    assert result.exit_code == 0
    assert fake.calls[-1] == ("list_tokens", ("alice", 0, 5))

    result = _invoke(runner, fake, ["supply"])
    assert result.output.strip() == "5"
    result = _invoke(runner, fake, ["supply", "--owner", "alice"])
    assert result.output.strip() == "2"


def test_api_error_exits_nonzero(runner):
    result = _invoke(runner, FakeClient(fail=True), ["token", "t1"])
    assert result.exit_code == 1
    assert "does not exist" in result.output


class _Response:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def test_client_request_success(monkeypatch):
    captured = {}

    def fake_request(method, url, timeout, **kwargs):
        captured.update(method=method, url=url, kwargs=kwargs)
        return _Response(200, {"success": True, "total_supply": 1})

    monkeypatch.setattr(rodt_commands.requests, "request", fake_request)
    client = RodtClient("http://node:8080/")
    assert client.supply()["total_supply"] == 1
    assert captured["url"] == "http://node:8080/rodt/total-supply"


def test_client_request_error_body(monkeypatch):
    monkeypatch.setattr(
        rodt_commands.requests,
        "request",
        lambda *a, **k: _Response(403, {"success": False, "error": "nope", "code": "not_owner"}),
    )
    with pytest.raises(click.ClickException, match="nope"):
        RodtClient("http://node").approve("bob", "t1", "bob")


def test_client_request_connection_error(monkeypatch):
    def boom(*a, **k):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(rodt_commands.requests, "request", boom)
    with pytest.raises(click.ClickException, match="refused"):
        RodtClient("http://node").get_token("t1")
