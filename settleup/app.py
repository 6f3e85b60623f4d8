from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

from flask import Flask, current_app, jsonify, request, session
from flask_cors import CORS

from .config import config
from .errors import SettleUpError, ValidationError
from .models import Allocation, BalanceSummary, PeerBalance, SimplifiedPayment, SplitParticipant
from .money import Money, to_cents, to_decimal
from .observability import setup_logging
from .repository import GroupRepository
from .service import BalanceService
from .simplify import simplify
from .splits import compute_split

logger = logging.getLogger(__name__)


def create_app(repository: Optional[GroupRepository] = None, settings=None) -> Flask:
    settings = settings or config
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["SESSION_COOKIE_NAME"] = settings.SESSION_COOKIE_NAME
    app.config["SESSION_COOKIE_HTTPONLY"] = settings.SESSION_COOKIE_HTTPONLY
    app.config["SESSION_COOKIE_SAMESITE"] = settings.SESSION_COOKIE_SAMESITE
    app.config["DEFAULT_CURRENCY"] = settings.DEFAULT_CURRENCY

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": settings.CORS_ORIGINS}},
    )

    if repository is None:
        from .db import Database, MySQLGroupRepository

        repository = MySQLGroupRepository(Database(settings), settings.DEFAULT_CURRENCY)
    app.extensions["settleup"] = BalanceService(repository, settings.DEFAULT_CURRENCY)

    register_error_handlers(app)
    register_routes(app)
    return app


def require_login(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "authentication_required"}), 401
        return func(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SettleUpError)
    def handle_settleup_error(exc: SettleUpError):
        if exc.http_status >= 500:
            logger.error("Request failed: %s", exc.message, extra={"error_code": exc.code})
        else:
            logger.info("Request rejected: %s", exc.message, extra={"error_code": exc.code})
        return jsonify(exc.to_response()), exc.http_status


def register_routes(app: Flask) -> None:
    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    @app.post("/api/splits")
    def create_split():
        payload = _json_payload()
        currency = payload.get("currency") or current_app.config["DEFAULT_CURRENCY"]
        if payload.get("amount") is None:
            return jsonify({"error": "missing_fields"}), 400
        total = Money.of(to_cents(payload["amount"]), currency)
        split_type = payload.get("split_type") or "EQUAL"

        participants = _split_participants(payload)
        allocations = compute_split(total, split_type, participants)
        return jsonify(
            {
                "amount": _amount(total),
                "currency": total.currency,
                "split_type": str(split_type).upper(),
                "splits": [_allocation(allocation) for allocation in allocations],
            }
        )

    @app.get("/api/groups/<int:group_id>/balances")
    @require_login
    def get_group_balances(group_id: int):
        user_id = session["user_id"]
        balances = _service().group_balances(user_id, group_id)
        return jsonify({"group_id": group_id, "balances": [_peer_balance(b) for b in balances]})

    @app.get("/api/groups/<int:group_id>/balances/<int:peer_id>")
    @require_login
    def get_pairwise_balance(group_id: int, peer_id: int):
        user_id = session["user_id"]
        balance = _service().pairwise_balance(user_id, peer_id, group_id)
        return jsonify(
            {
                "group_id": group_id,
                "user_id": peer_id,
                "net_balance": _amount(balance),
                "currency": balance.currency,
            }
        )

    @app.get("/api/groups/<int:group_id>/settlements")
    @require_login
    def get_group_settlements(group_id: int):
        payments = _service().simplified_group_payments(session["user_id"], group_id)
        return jsonify({"group_id": group_id, "settlements": [_payment(p) for p in payments]})

    @app.get("/api/balances/summary")
    @require_login
    def get_overall_summary():
        summary = _service().overall_summary(session["user_id"])
        return jsonify(_summary(summary))

    @app.post("/api/settlements/simplify")
    def simplify_balances():
        payload = _json_payload()
        currency = payload.get("currency") or current_app.config["DEFAULT_CURRENCY"]
        rows = payload.get("balances")
        if not isinstance(rows, list):
            return jsonify({"error": "missing_fields"}), 400

        net_balances: Dict[int, Money] = {}
        for row in rows:
            try:
                user_id = int(row["user_id"])
                amount = row["amount"]
            except (KeyError, TypeError, ValueError):
                raise ValidationError("invalid balance entry", code="invalid_balance_payload") from None
            if user_id in net_balances:
                raise ValidationError(
                    f"user {user_id} listed more than once", code="duplicate_balance_entry"
                )
            net_balances[user_id] = Money.of(to_cents(amount), currency)

        payments = simplify(net_balances, currency)
        return jsonify({"settlements": [_payment(p) for p in payments]})


def _service() -> BalanceService:
    return current_app.extensions["settleup"]


def _json_payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object", code="invalid_payload")
    return payload


def _split_participants(payload: Dict[str, Any]) -> List[SplitParticipant]:
    items = payload.get("participants")
    if items is None:
        # EQUAL splits may send a plain list of user ids
        items = [{"user_id": user_id} for user_id in payload.get("split_among") or []]
    if not isinstance(items, list):
        raise ValidationError("participants must be a list", code="invalid_share_payload")

    participants = []
    for item in items:
        try:
            user_id = int(item["user_id"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("invalid participant entry", code="invalid_share_payload") from None
        value = item.get("value")
        participants.append(SplitParticipant(user_id, None if value is None else to_decimal(value)))
    return participants


def _amount(money: Money) -> float:
    return float(money.amount)


def _allocation(allocation: Allocation) -> Dict[str, Any]:
    return {"user_id": allocation.participant, "amount": _amount(allocation.amount)}


def _peer_balance(balance: PeerBalance) -> Dict[str, Any]:
    return {
        "user_id": balance.peer,
        "net_balance": _amount(balance.amount),
        "currency": balance.amount.currency,
    }


def _payment(payment: SimplifiedPayment) -> Dict[str, Any]:
    return {
        "from_user_id": payment.from_user,
        "to_user_id": payment.to_user,
        "amount": _amount(payment.amount),
        "currency": payment.currency,
    }


def _summary(summary: BalanceSummary) -> Dict[str, Any]:
    return {
        "total_owed_to_user": _amount(summary.total_owed_to_observer),
        "total_owed_by_user": _amount(summary.total_owed_by_observer),
        "net_balance": _amount(summary.net),
        "currency": summary.currency,
    }


if __name__ == "__main__":
    create_app().run(debug=True)
