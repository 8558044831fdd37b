#!/usr/bin/env python3
"""
RODT CLI Commands - Token Ledger Interface

Provides CLI equivalents for the RODT API endpoints:
- Mint tokens and inspect them
- Transfer, approve and revoke
- Query payouts, listings and supply
- Serve a ledger node
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click
import requests
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rodt.core.config import Config

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


class RodtClient:
    """Client for the RODT ledger HTTP API."""

    def __init__(self, node_url: str, timeout: float = 30.0):
        self.node_url = node_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        """Make an HTTP request and return the decoded JSON body."""
        url = f"{self.node_url}/{endpoint.lstrip('/')}"
        logger.debug("RODT request: %s %s", method, url)
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error("RODT API error: %s", e)
            raise click.ClickException(f"RODT API error: {e}")
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = data.get("error") or f"HTTP {response.status_code}"
            raise click.ClickException(f"{message} ({data.get('code', 'error')})")
        return data

    def mint(
        self,
        caller: str,
        owner_id: str,
        metadata: dict[str, Any],
        token_id: str | None = None,
        royalty: dict[str, int] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"caller": caller, "owner_id": owner_id, "metadata": metadata}
        if token_id:
            payload["token_id"] = token_id
        if royalty:
            payload["royalty"] = royalty
        return self._request("POST", "/rodt/mint", json=payload)

    def get_token(self, token_id: str) -> dict[str, Any]:
        return self._request("GET", f"/rodt/tokens/{token_id}")

    def transfer(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: int | None = None,
        memo: str | None = None,
        msg: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "caller": caller,
            "receiver_id": receiver_id,
            "token_id": token_id,
            "approval_id": approval_id,
            "memo": memo,
        }
        if msg is not None:
            payload["msg"] = msg
            return self._request("POST", "/rodt/transfer-call", json=payload)
        return self._request("POST", "/rodt/transfer", json=payload)

    def approve(self, caller: str, token_id: str, account_id: str, msg: str | None = None) -> dict[str, Any]:
        return self._request(
            "POST",
            "/rodt/approve",
            json={"caller": caller, "token_id": token_id, "account_id": account_id, "msg": msg},
        )

    def revoke(self, caller: str, token_id: str, account_id: str | None = None) -> dict[str, Any]:
        if account_id is None:
            return self._request(
                "POST", "/rodt/revoke-all", json={"caller": caller, "token_id": token_id}
            )
        return self._request(
            "POST",
            "/rodt/revoke",
            json={"caller": caller, "token_id": token_id, "account_id": account_id},
        )

    def payout(self, token_id: str, balance: int, max_len_payout: int | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"balance": balance}
        if max_len_payout is not None:
            params["max_len_payout"] = max_len_payout
        return self._request("GET", f"/rodt/tokens/{token_id}/payout", params=params)

    def list_tokens(self, account_id: str | None = None, from_index: int = 0, limit: int | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"from_index": from_index}
        if limit is not None:
            params["limit"] = limit
        if account_id:
            return self._request("GET", f"/rodt/owners/{account_id}/tokens", params=params)
        return self._request("GET", "/rodt/tokens", params=params)

    def supply(self, account_id: str | None = None) -> dict[str, Any]:
        if account_id:
            return self._request("GET", f"/rodt/owners/{account_id}/supply")
        return self._request("GET", "/rodt/total-supply")


def _print_token(token: dict[str, Any]) -> None:
    table = Table(show_header=False, box=box.ROUNDED)
    table.add_row("[bold cyan]Token ID", token["token_id"])
    table.add_row("[bold cyan]Owner", token["owner_id"])
    approvals = token.get("approved_account_ids") or {}
    table.add_row(
        "[bold cyan]Approvals",
        ", ".join(f"{acct}#{aid}" for acct, aid in approvals.items()) or "[dim]none[/]",
    )
    royalty = token.get("royalty") or {}
    table.add_row(
        "[bold cyan]Royalty",
        ", ".join(f"{acct}: {bp / 100:.2f}%" for acct, bp in royalty.items()) or "[dim]none[/]",
    )
    for key, value in (token.get("metadata") or {}).items():
        if value is not None:
            table.add_row(f"[cyan]{key}", str(value))
    console.print(Panel(table, title="[bold green]RODT", border_style="green"))


def _emit(ctx: click.Context, data: dict[str, Any]) -> bool:
    """Print raw JSON when --json is set. Returns True if handled."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(data, indent=2))
        return True
    return False


@click.group()
@click.option("--node-url", default=None, help="RODT node URL (defaults to RODT_NODE_URL)")
@click.option("--json", "json_output", is_flag=True, help="Print raw JSON responses")
@click.pass_context
def rodt(ctx: click.Context, node_url: str | None, json_output: bool):
    """RODT token ledger commands."""
    ctx.ensure_object(dict)
    if "client" not in ctx.obj:
        ctx.obj["client"] = RodtClient(node_url or Config.from_env().node_url)
    ctx.obj["json_output"] = json_output


@rodt.command("mint")
@click.option("--caller", required=True, help="Account requesting the mint")
@click.option("--owner", "owner_id", required=True, help="Account receiving the token")
@click.option("--token-id", default=None, help="Token id (ULID generated when omitted)")
@click.option("--metadata", "metadata_json", default="{}", help="JSON object of metadata fields")
@click.option("--royalty", "royalty_json", default=None, help='JSON object, e.g. {"bob": 1000}')
@click.pass_context
def mint_token(ctx: click.Context, caller: str, owner_id: str, token_id: str | None,
               metadata_json: str, royalty_json: str | None):
    """
    Mint a new RODT.

    Example:
        rodt mint --caller alice --owner alice --royalty '{"bob": 1000}'
    """
    try:
        metadata = json.loads(metadata_json)
        royalty = json.loads(royalty_json) if royalty_json else None
        result = ctx.obj["client"].mint(caller, owner_id, metadata, token_id, royalty)
        if _emit(ctx, result):
            return
        console.print(f"[bold green]Minted[/] {result['token_id']}")
    except (click.ClickException, ValueError, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("token")
@click.argument("token_id")
@click.pass_context
def show_token(ctx: click.Context, token_id: str):
    """Show a token with its metadata, approvals and royalty."""
    try:
        result = ctx.obj["client"].get_token(token_id)
        if _emit(ctx, result):
            return
        _print_token(result["token"])
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("transfer")
@click.option("--caller", required=True, help="Owner or approved spender")
@click.option("--to", "receiver_id", required=True, help="Receiver account")
@click.option("--token-id", required=True)
@click.option("--approval-id", type=int, default=None)
@click.option("--memo", default=None)
@click.option("--msg", default=None, help="Call the receiver's nft_on_transfer hook with this message")
@click.pass_context
def transfer_token(ctx: click.Context, caller: str, receiver_id: str, token_id: str,
                   approval_id: int | None, memo: str | None, msg: str | None):
    """Transfer a token, optionally as a cross-party transfer."""
    try:
        result = ctx.obj["client"].transfer(caller, receiver_id, token_id, approval_id, memo, msg)
        if _emit(ctx, result):
            return
        outcome = result["outcome"]
        console.print(
            f"[bold green]{outcome['status']}[/] {token_id}: "
            f"{outcome['previous_owner_id']} -> {outcome['receiver_id']}"
        )
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("approve")
@click.option("--caller", required=True, help="Token owner")
@click.option("--token-id", required=True)
@click.option("--account", "account_id", required=True, help="Spender to approve")
@click.option("--msg", default=None, help="Notify the spender with this message")
@click.pass_context
def approve_account(ctx: click.Context, caller: str, token_id: str, account_id: str, msg: str | None):
    """Approve an account to transfer a token."""
    try:
        result = ctx.obj["client"].approve(caller, token_id, account_id, msg)
        if _emit(ctx, result):
            return
        console.print(f"[bold green]Approved[/] {account_id} with approval id {result['approval_id']}")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("revoke")
@click.option("--caller", required=True, help="Token owner")
@click.option("--token-id", required=True)
@click.option("--account", "account_id", default=None, help="Spender to revoke (all when omitted)")
@click.pass_context
def revoke_account(ctx: click.Context, caller: str, token_id: str, account_id: str | None):
    """Revoke one approval, or all of them."""
    try:
        result = ctx.obj["client"].revoke(caller, token_id, account_id)
        if _emit(ctx, result):
            return
        console.print(f"[bold green]Revoked[/] {account_id or 'all approvals'} on {token_id}")
    except click.ClickException as exc:
        _handle_cli_error(exc)


@rodt.command("payout")
@click.argument("token_id")
@click.option("--balance", type=int, required=True)
@click.option("--max-len-payout", type=int, default=None)
@click.pass_context
def show_payout(ctx: click.Context, token_id: str, balance: int, max_len_payout: int | None):
    """Show how a balance would be split for a token."""
    try:
        result = ctx.obj["client"].payout(token_id, balance, max_len_payout)
        if _emit(ctx, result):
            return
        payout = result["payout"]
        table = Table(box=box.SIMPLE)
        table.add_column("Account", style="cyan")
        table.add_column("Amount", justify="right")
        for account_id, amount in payout.items():
            table.add_row(account_id, str(amount))
        console.print(table)
        unassigned = balance - sum(int(v) for v in payout.values())
        if unassigned:
            console.print(f"[dim]{unassigned} unassigned (rounding)[/]")
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("tokens")
@click.option("--owner", "account_id", default=None, help="Only tokens held by this account")
@click.option("--from-index", type=int, default=0)
@click.option("--limit", type=int, default=None)
@click.pass_context
def list_tokens(ctx: click.Context, account_id: str | None, from_index: int, limit: int | None):
    """List tokens, ordered by token id."""
    try:
        result = ctx.obj["client"].list_tokens(account_id, from_index, limit)
        if _emit(ctx, result):
            return
        table = Table(box=box.SIMPLE)
        table.add_column("Token ID", style="cyan")
        table.add_column("Owner")
        for token in result["tokens"]:
            table.add_row(token["token_id"], token["owner_id"])
        console.print(table)
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("supply")
@click.option("--owner", "account_id", default=None, help="Count only this account's tokens")
@click.pass_context
def show_supply(ctx: click.Context, account_id: str | None):
    """Show total supply, or one account's supply."""
    try:
        result = ctx.obj["client"].supply(account_id)
        if _emit(ctx, result):
            return
        value = result["supply"] if account_id else result["total_supply"]
        console.print(str(value))
    except (click.ClickException, KeyError) as exc:
        _handle_cli_error(exc)


@rodt.command("serve")
@click.option("--host", default="127.0.0.1")
@click.option("--port", type=int, default=8080)
def serve(host: str, port: int):
    """Run a ledger node configured from RODT_* environment variables."""
    from rodt.core.api_routes.rodt import create_app
    from rodt.core.logging_config import setup_from_config

    config = Config.from_env()
    setup_from_config(config)
    app = create_app(config=config)
    app.run(host=host, port=port)


def main() -> None:
    rodt(obj={})


if __name__ == "__main__":
    main()
