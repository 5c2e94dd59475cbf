# Overview: Cash receipts/payments and the payment source balances they move.

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from ..domain.entities import (
    CASH_EXPENSE,
    CASH_INCOME,
    CashContact,
    CashTransaction,
    PaymentSource,
)
from ..domain.state import AppState, CommandResult
from ..time_utils import parse_iso_date, to_ledger_date
from .ledger_service import IdFactory, default_id_factory


logger = logging.getLogger(__name__)


class CashflowError(Exception):
    """Raised when a cash movement is refused."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PaymentSourceNotFoundError(CashflowError):
    pass


def _find_source(state: AppState, source_id: str) -> PaymentSource:
    for source in state.payment_sources:
        if source.id == source_id:
            return source
    raise PaymentSourceNotFoundError("Payment source not found", details={"payment_source_id": source_id})


def record_cash_transaction(
    state: AppState,
    *,
    type: str,
    amount: int,
    contact_id: str,
    contact_name: str,
    payment_source_id: str,
    branch_id: str,
    notes: str = "",
    when: Optional[str] = None,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    """Income raises the chosen source's balance, expense lowers it (may go negative)."""
    if type not in (CASH_INCOME, CASH_EXPENSE):
        raise CashflowError(f"Unknown cash transaction type: {type}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise CashflowError("amount must be a positive integer", details={"amount": amount})
    if branch_id not in state.store_settings.branch_ids():
        raise CashflowError(f"Unknown branch: {branch_id}", details={"branch_id": branch_id})
    source = _find_source(state, payment_source_id)

    tx = CashTransaction(
        id=id_factory("CT"),
        type=type,
        date=to_ledger_date(when),
        amount=amount,
        contact=CashContact(id=contact_id or "", name=contact_name or ""),
        notes=notes or "",
        payment_source_id=source.id,
        branch_id=branch_id,
    )
    delta = amount if type == CASH_INCOME else -amount
    moved = replace(source, balance=source.balance + delta)
    sources = tuple(moved if s.id == source.id else s for s in state.payment_sources)

    logger.info("Cash %s %s of %d via %s", type, tx.id, amount, source.id)
    return CommandResult(
        replace(state, cash_transactions=(tx,) + state.cash_transactions, payment_sources=sources),
        tx,
    )


def list_cash_transactions(
    state: AppState,
    branch_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    type: Optional[str] = None,
) -> list[CashTransaction]:
    result = []
    for tx in state.cash_transactions:
        if tx.branch_id != branch_id:
            continue
        if type and tx.type != type:
            continue
        tx_date = parse_iso_date(tx.date)
        if start and (tx_date is None or tx_date < start):
            continue
        if end and (tx_date is None or tx_date > end):
            continue
        result.append(tx)
    return result


def cash_summary(transactions: list[CashTransaction]) -> dict:
    income = sum(t.amount for t in transactions if t.type == CASH_INCOME)
    expense = sum(t.amount for t in transactions if t.type == CASH_EXPENSE)
    return {"total_income": income, "total_expense": expense, "net": income - expense}


def create_payment_source(
    state: AppState,
    name: str,
    balance: int = 0,
    is_default: bool = False,
    *,
    id_factory: IdFactory = default_id_factory,
) -> CommandResult:
    if not (name or "").strip():
        raise CashflowError("name is required")
    source = PaymentSource(id=id_factory("PS"), name=name.strip(), balance=balance, is_default=is_default)
    sources = state.payment_sources
    if is_default:
        sources = tuple(replace(s, is_default=False) for s in sources)
    return CommandResult(replace(state, payment_sources=sources + (source,)), source)


def update_payment_source(state: AppState, source_id: str, patch: dict) -> CommandResult:
    source = _find_source(state, source_id)
    changes = {k: v for k, v in patch.items() if k in ("name", "balance", "is_default")}
    updated = replace(source, **changes)
    sources = []
    for s in state.payment_sources:
        if s.id == source_id:
            sources.append(updated)
        elif updated.is_default and changes.get("is_default"):
            sources.append(replace(s, is_default=False))
        else:
            sources.append(s)
    return CommandResult(replace(state, payment_sources=tuple(sources)), updated)


def delete_payment_source(state: AppState, source_id: str) -> CommandResult:
    _find_source(state, source_id)
    if any(t.payment_source_id == source_id for t in state.cash_transactions):
        raise CashflowError("Payment source has cash transactions", details={"payment_source_id": source_id})
    sources = tuple(s for s in state.payment_sources if s.id != source_id)
    return CommandResult(replace(state, payment_sources=sources), source_id)
