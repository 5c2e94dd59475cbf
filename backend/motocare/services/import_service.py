# Overview: Bulk part import from the shop's CSV price list.

from __future__ import annotations

import csv
import io
import logging
import time
from dataclasses import dataclass, replace
from datetime import date, datetime

from ..domain.entities import STOCK_IN, UNCATEGORIZED, Part
from ..domain.state import AppState
from .ledger_service import (
    IdFactory,
    UnknownBranchError,
    default_id_factory,
    record_manual_adjustment,
)


logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("danh mục sản phẩm", "đơn giá nhập")
MIN_COLUMNS = 6
CSV_IMPORT_NOTE = "Nhập kho từ tệp CSV"

# Column positions in the exported price list
COL_NAME = 1
COL_PURCHASE_PRICE = 2
COL_SELLING_PRICE = 3
COL_STOCK = 5


class CsvImportError(ValueError):
    """Raised when the file as a whole cannot be imported."""


@dataclass(frozen=True)
class ImportSummary:
    added: int = 0
    updated: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return {"added": self.added, "updated": self.updated, "skipped": self.skipped}


@dataclass(frozen=True)
class ImportResult:
    state: AppState
    transactions: tuple
    summary: ImportSummary


def _parse_price(text: str) -> int | None:
    cleaned = text.strip().replace(".", "")
    if not cleaned:
        return None
    try:
        return int(float(cleaned))
    except ValueError:
        return None


def _parse_stock(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def import_parts_csv(
    state: AppState,
    text: str,
    branch_id: str,
    *,
    today: date | datetime | str | None = None,
    id_factory: IdFactory = default_id_factory,
) -> ImportResult:
    """
    Upsert parts by exact name and stock them into branch_id.

    Bad rows are skipped and counted; only a wrong header aborts the import.
    Stock arrives as a "Nhập kho" row valued at the purchase price.
    """
    if branch_id not in state.store_settings.branch_ids():
        raise UnknownBranchError(f"Unknown branch: {branch_id}", details={"branch_id": branch_id})

    reader = csv.reader(io.StringIO(text.strip()))
    header = next(reader, None)
    header_text = ",".join(header or ()).lower()
    if not all(h in header_text for h in REQUIRED_HEADERS):
        raise CsvImportError('Header must contain "Danh mục sản phẩm" and "Đơn giá nhập"')

    added = updated = skipped = 0
    current = state
    rows = []
    for index, row in enumerate(reader):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < MIN_COLUMNS:
            skipped += 1
            continue
        cells = [cell.strip().strip('"') for cell in row]
        name = cells[COL_NAME]
        price = _parse_price(cells[COL_PURCHASE_PRICE])
        selling_price = _parse_price(cells[COL_SELLING_PRICE])
        stock = _parse_stock(cells[COL_STOCK])
        if not name or price is None or selling_price is None or price < 0 or selling_price < 0 or stock < 0:
            skipped += 1
            continue

        existing = next((p for p in current.parts if p.name == name), None)
        if existing is not None:
            part = replace(existing, price=price, selling_price=selling_price)
            updated += 1
        else:
            part = Part(
                id=f"P{int(time.time() * 1000)}-{index}",
                name=name,
                sku=_unique_sku(current, name, index),
                price=price,
                selling_price=selling_price,
                category=UNCATEGORIZED,
            )
            added += 1
        current = current.with_parts_replaced({part.id: part})

        if stock > 0:
            result = record_manual_adjustment(
                current, part.id, branch_id, STOCK_IN, stock,
                unit_price=price, notes=CSV_IMPORT_NOTE, today=today, id_factory=id_factory,
            )
            current = result.state
            rows.extend(result.transactions)

    summary = ImportSummary(added, updated, skipped)
    logger.info("CSV import into %s: %s", branch_id, summary)
    return ImportResult(current, tuple(rows), summary)


def _unique_sku(state: AppState, name: str, index: int) -> str:
    first_word = name.split(" ")[0] or f"SKU{index}"
    if any(p.sku == first_word for p in state.parts):
        return f"{first_word}-{int(time.time() * 1000)}{index}"
    return first_word
