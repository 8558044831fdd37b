from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple, Type

from flask import Flask, jsonify, request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from rodt.core.config import Config
from rodt.core.contracts.rodt_contract import RodtContract
from rodt.core.input_validation_schemas import (
    ApproveInput,
    IsApprovedQuery,
    MintInput,
    PageQuery,
    PayoutQuery,
    RevokeAllInput,
    RevokeInput,
    TransferCallInput,
    TransferInput,
    TransferPayoutInput,
)
from rodt.core.rodt_exceptions import (
    AuthorizationError,
    InvalidArgumentError,
    RodtError,
    TokenAlreadyExistsError,
    TokenNotFoundError,
)

logger = logging.getLogger(__name__)


class InvalidPayload(Exception):
    """Request body or query string failed schema validation."""

    def __init__(self, errors: list) -> None:
        super().__init__("Invalid request payload")
        self.errors = errors


def _error_response(
    message: str, status: int, code: str, context: Optional[Dict[str, Any]] = None
) -> Tuple[Any, int]:
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if context:
        body["context"] = context
    return jsonify(body), status


def _success_response(payload: Dict[str, Any], status: int = 200) -> Tuple[Any, int]:
    body = {"success": True}
    body.update(payload)
    return jsonify(body), status


def _status_for(exc: RodtError) -> int:
    if isinstance(exc, TokenNotFoundError):
        return 404
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, TokenAlreadyExistsError):
        return 409
    return 400


def _parse(model: Type[BaseModel], payload: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise InvalidPayload(exc.errors(include_url=False, include_context=False)) from exc


def _body(model: Type[BaseModel]) -> Any:
    return _parse(model, request.get_json(silent=True) or {})


def _query(model: Type[BaseModel]) -> Any:
    return _parse(model, request.args.to_dict())


def _contract_errors(f: Callable) -> Callable:
    """Translate ledger rejections into JSON error responses."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except InvalidPayload as exc:
            logger.warning(
                "PydanticValidationError in %s",
                f.__name__,
                extra={"event": "rodt.api.invalid_payload", "function": f.__name__},
            )
            return _error_response(
                "Invalid request payload",
                status=400,
                code="invalid_payload",
                context={"errors": exc.errors},
            )
        except RodtError as exc:
            logger.info(
                "Request rejected: %s",
                exc.message,
                extra={"event": "rodt.api.rejected", "function": f.__name__, "code": exc.code},
            )
            return _error_response(
                exc.message, status=_status_for(exc), code=exc.code, context=exc.details or None
            )

    return decorated_function


def add_rodt_routes(app: Flask, contract: RodtContract) -> None:
    """
    Add RODT contract endpoints to a Flask app.

    Args:
        app: Flask application
        contract: Contract instance served by the app
    """
    config = contract.config

    def _page_query() -> PageQuery:
        query = _query(PageQuery)
        if query.limit is not None and query.limit > config.max_page_limit:
            raise InvalidArgumentError(
                f"RODT: limit must not exceed {config.max_page_limit}, got {query.limit}",
                details={"limit": query.limit, "max_page_limit": config.max_page_limit},
            )
        return query

    # ===== MINT & VIEWS =====

    @app.route("/rodt/mint", methods=["POST"])
    @_contract_errors
    def mint_token():
        """
        Mint a RODT

        POST /rodt/mint
        {
            "caller": "alice",
            "owner_id": "alice",
            "token_id": "optional, ULID generated when absent",
            "metadata": {"issuer_name": "...", ...},
            "royalty": {"bob": 1000}
        }
        """
        model = _body(MintInput)
        token_id = contract.mint(
            model.caller,
            model.owner_id,
            metadata=model.metadata,
            token_id=model.token_id,
            royalty=model.royalty,
        )
        return _success_response({"token_id": token_id, "token": contract.token(token_id)}, 201)

    @app.route("/rodt/tokens/<token_id>", methods=["GET"])
    def get_token(token_id: str):
        token = contract.token(token_id)
        if token is None:
            return _error_response(
                f"RODT: token {token_id} does not exist", status=404, code="token_not_found"
            )
        return _success_response({"token": token})

    @app.route("/rodt/metadata", methods=["GET"])
    def get_contract_metadata():
        return _success_response({"metadata": contract.metadata()})

    # ===== TRANSFERS =====

    @app.route("/rodt/transfer", methods=["POST"])
    @_contract_errors
    def transfer_token():
        model = _body(TransferInput)
        outcome = contract.transfer(
            model.caller, model.receiver_id, model.token_id, model.approval_id, model.memo
        )
        return _success_response({"outcome": outcome.to_dict()})

    @app.route("/rodt/transfer-call", methods=["POST"])
    @_contract_errors
    def transfer_call():
        """
        Cross-party transfer; the receiver hook runs on the next
        /rodt/continuations/process call.
        """
        model = _body(TransferCallInput)
        outcome = contract.transfer_and_call(
            model.caller,
            model.receiver_id,
            model.token_id,
            model.approval_id,
            model.memo,
            model.msg,
        )
        return _success_response({"outcome": outcome.to_dict()}, 202)

    @app.route("/rodt/continuations/process", methods=["POST"])
    def process_continuations():
        jobs = contract.process_continuations()
        return _success_response({"processed": len(jobs)})

    @app.route("/rodt/transfer-payout", methods=["POST"])
    @_contract_errors
    def transfer_payout():
        model = _body(TransferPayoutInput)
        max_len = model.max_len_payout if model.max_len_payout is not None else config.max_len_payout
        result = contract.transfer_payout(
            model.caller,
            model.receiver_id,
            model.token_id,
            model.approval_id,
            model.memo,
            balance=model.balance,
            max_len_payout=max_len,
        )
        return _success_response(result.to_dict())

    # ===== APPROVALS =====

    @app.route("/rodt/approve", methods=["POST"])
    @_contract_errors
    def approve_account():
        model = _body(ApproveInput)
        approval_id = contract.approve(model.caller, model.token_id, model.account_id, model.msg)
        return _success_response({"token_id": model.token_id, "approval_id": approval_id})

    @app.route("/rodt/tokens/<token_id>/approved/<account_id>", methods=["GET"])
    @_contract_errors
    def is_approved(token_id: str, account_id: str):
        query = _query(IsApprovedQuery)
        approved = contract.is_approved(token_id, account_id, query.approval_id)
        return _success_response({"token_id": token_id, "account_id": account_id, "approved": approved})

    @app.route("/rodt/revoke", methods=["POST"])
    @_contract_errors
    def revoke_account():
        model = _body(RevokeInput)
        contract.revoke(model.caller, model.token_id, model.account_id)
        return _success_response({"token_id": model.token_id})

    @app.route("/rodt/revoke-all", methods=["POST"])
    @_contract_errors
    def revoke_all():
        model = _body(RevokeAllInput)
        contract.revoke_all(model.caller, model.token_id)
        return _success_response({"token_id": model.token_id})

    # ===== ROYALTY =====

    @app.route("/rodt/tokens/<token_id>/payout", methods=["GET"])
    @_contract_errors
    def get_payout(token_id: str):
        query = _query(PayoutQuery)
        max_len = query.max_len_payout if query.max_len_payout is not None else config.max_len_payout
        payout = contract.payout(token_id, query.balance, max_len)
        return _success_response({"token_id": token_id, "payout": payout})

    # ===== ENUMERATION =====

    @app.route("/rodt/total-supply", methods=["GET"])
    def total_supply():
        return _success_response({"total_supply": contract.total_supply()})

    @app.route("/rodt/tokens", methods=["GET"])
    @_contract_errors
    def list_tokens():
        query = _page_query()
        return _success_response({"tokens": contract.tokens(query.from_index, query.limit)})

    @app.route("/rodt/owners/<account_id>/tokens", methods=["GET"])
    @_contract_errors
    def tokens_for_owner(account_id: str):
        query = _page_query()
        tokens = contract.tokens_for_owner(account_id, query.from_index, query.limit)
        return _success_response({"account_id": account_id, "tokens": tokens})

    @app.route("/rodt/owners/<account_id>/supply", methods=["GET"])
    def supply_for_owner(account_id: str):
        return _success_response(
            {"account_id": account_id, "supply": contract.supply_for_owner(account_id)}
        )


def create_app(contract: RodtContract | None = None, config: Config | None = None) -> Flask:
    """Build a Flask app serving ``contract`` (or one built from config)."""
    if contract is None:
        contract = RodtContract.from_config(config or Config.from_env())
    app = Flask(__name__)
    app.config["RODT_CONTRACT"] = contract
    add_rodt_routes(app, contract)
    return app
