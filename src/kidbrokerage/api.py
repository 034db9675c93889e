"""JSON export helpers for Kid Brokerage read views."""

from __future__ import annotations

import json
from typing import Dict, Optional

from .models import AccountDetail, MarketSummary, TickerEvent, Transaction
from .money import format_amount


class ApiExporter:
    """Convert Kid Brokerage read views to JSON friendly dictionaries."""

    def account_snapshot(self, detail: AccountDetail) -> Dict[str, object]:
        account = detail.account
        return {
            "id": account.id,
            "name": account.name,
            "kind": account.kind.value,
            "kid": {"id": detail.kid.id, "name": detail.kid.name},
            "balance_cents": detail.balance_cents,
            "balance": format_amount(detail.balance_cents),
            "transactions": [self._serialise_transaction(tx) for tx in detail.transactions],
            "ticker_history": [self._serialise_ticker_event(event) for event in detail.ticker_events],
            "market": self._serialise_market(detail.market),
        }

    def to_json(self, payload: Dict[str, object]) -> str:
        return json.dumps(payload, sort_keys=True)

    def _serialise_transaction(self, transaction: Transaction) -> Dict[str, object]:
        return {
            "id": transaction.id,
            "occurred_on": transaction.occurred_on.isoformat(),
            "type": transaction.direction.value,
            "amount_cents": transaction.amount_cents,
            "signed_amount": format_amount(transaction.signed_amount_cents),
            "note": transaction.note,
            "shares": transaction.fill.shares if transaction.fill else None,
            "price": transaction.fill.price if transaction.fill else None,
        }

    def _serialise_ticker_event(self, event: TickerEvent) -> Dict[str, object]:
        return {"ticker": event.ticker, "effective_date": event.effective_date.isoformat()}

    def _serialise_market(self, summary: Optional[MarketSummary]) -> Optional[Dict[str, object]]:
        if summary is None:
            return None
        payload: Dict[str, object] = {
            "ticker": summary.ticker,
            "total_shares": summary.position.total_shares,
            "cost_basis_cents": summary.position.cost_basis_cents,
            "price": summary.price,
            "market_value_cents": None,
            "gain_loss_cents": None,
            "gain_loss_percent": None,
        }
        if summary.valuation is not None:
            payload.update(
                market_value_cents=summary.valuation.market_value_cents,
                gain_loss_cents=summary.valuation.gain_loss_cents,
                gain_loss_percent=summary.valuation.gain_loss_percent,
            )
        return payload


__all__ = ["ApiExporter"]
