import csv
import io
import hashlib
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import List, Dict, Iterable, Optional

from dateutil import parser as date_parser

from pocket_ledger.models.csv_import import CSVColumnMapping, CSVImportRow, ParsedCSV
from pocket_ledger.models.money import MAX_MONEY
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

CURRENCY_CHARS = "$€£¥, \t"

EXPORT_COLUMNS = [
    "date", "payee", "amount", "category", "subcategory", "memo", "reconciled", "account_id",
]


# ===== PARSING =====

def parse_csv_file(content: bytes) -> ParsedCSV:
    """Split raw CSV bytes into the header row and one dict per non-empty data row."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValueError(f"CSV parsing error: {e}")

    try:
        reader = csv.DictReader(io.StringIO(text), restval="")
        headers = [h.strip() for h in (reader.fieldnames or [])]
        if not headers:
            raise ValueError("CSV parsing error: file has no header row")
        reader.fieldnames = headers

        rows = []
        for raw in reader:
            row = {k: (v or "").strip() for k, v in raw.items() if k is not None}
            if not any(row.values()):
                continue
            rows.append(row)
    except csv.Error as e:
        raise ValueError(f"CSV parsing error: {e}")

    logger.debug(f"Parsed CSV with {len(headers)} columns and {len(rows)} rows")
    return ParsedCSV(headers=headers, rows=rows)


def parse_amount(amount_str: Optional[str]) -> Decimal:
    """
    Parse an amount as it appears in bank exports.
    Handles: $1,234.56, (1234.56), -1234.56, € 12. Anything unreadable or too
    large for a ledger column is 0.
    """
    if not amount_str:
        return Decimal("0.00")

    cleaned = "".join(ch for ch in str(amount_str).strip() if ch not in CURRENCY_CHARS)

    # Accounting notation
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0.00")

    if not amount.is_finite() or abs(amount) >= MAX_MONEY:
        return Decimal("0.00")
    return round(amount, 2)


def parse_date(date_str: Optional[str], today: Optional[date] = None) -> date:
    """
    Parse a date cell. ISO and anything dateutil understands come first, then
    three-part strings where a 4-digit third part is taken as MM/DD/YYYY.
    An empty cell means today; anything else unreadable raises ValueError.
    """
    if not date_str or not date_str.strip():
        return today or date.today()

    value = date_str.strip()

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return date_parser.parse(value, default=datetime.combine(today or date.today(), time())).date()
    except (ValueError, OverflowError):
        pass

    parts = value.replace("-", "/").split("/")
    if len(parts) == 3 and len(parts[2]) == 4:
        first, second, third = parts
        try:
            return datetime.strptime(f"{third}-{first}-{second}", "%Y-%m-%d").date()
        except ValueError:
            pass

    raise ValueError(f"Unrecognized date: {date_str}")


def map_csv_rows(rows: List[Dict[str, str]], mapping: CSVColumnMapping,
                 today: Optional[date] = None) -> List[CSVImportRow]:
    """Apply a header-to-field mapping. Debit columns become outflows, credit columns inflows."""
    mapped = []
    for row in rows:
        error = None

        if mapping.amount:
            amount = parse_amount(row.get(mapping.amount))
        elif mapping.debit or mapping.credit:
            debit = abs(parse_amount(row.get(mapping.debit))) if mapping.debit else Decimal("0.00")
            credit = abs(parse_amount(row.get(mapping.credit))) if mapping.credit else Decimal("0.00")
            amount = credit - debit
        else:
            amount = Decimal("0.00")

        try:
            transaction_date = parse_date(row.get(mapping.date) if mapping.date else "", today)
        except ValueError as e:
            transaction_date = today or date.today()
            error = str(e)

        payee = (row.get(mapping.payee) or "").strip() if mapping.payee else ""
        memo = (row.get(mapping.memo) or "").strip() if mapping.memo else ""
        category = (row.get(mapping.category) or "").strip() if mapping.category else ""

        mapped.append(CSVImportRow(
            transaction_date=transaction_date,
            amount=amount,
            payee=payee or "Unknown",
            memo=memo or None,
            category=category or None,
            error=error,
        ))
    return mapped


# ===== DEDUPLICATION & CATEGORIES =====

def dedup_key(transaction_date: date, amount: Decimal, payee: str) -> str:
    """Natural key of a transaction: date, amount to the cent, lowercased payee"""
    return f"{transaction_date.isoformat()}|{round(Decimal(amount), 2):.2f}|{payee.lower()}"


def generate_import_id(transaction_date: date, amount: Decimal, payee: str) -> str:
    return hashlib.sha256(dedup_key(transaction_date, amount, payee).encode()).hexdigest()


def detect_duplicates(import_rows: List[CSVImportRow], existing_transactions: Iterable) -> List[CSVImportRow]:
    """Flag rows whose key exactly matches an existing transaction. Nothing is dropped."""
    existing_keys = {
        dedup_key(t.transaction_date, t.amount, t.payee) for t in existing_transactions
    }
    return [
        row.model_copy(update={
            "is_duplicate": dedup_key(row.transaction_date, row.amount, row.payee) in existing_keys
        })
        for row in import_rows
    ]


def auto_assign_categories(import_rows: List[CSVImportRow], existing_transactions: Iterable) -> List[CSVImportRow]:
    """Fill missing categories from the first categorized transaction seen for the same payee."""
    payee_category_map = {}
    for t in existing_transactions:
        normalized_payee = t.payee.lower().strip()
        if t.category and normalized_payee not in payee_category_map:
            payee_category_map[normalized_payee] = t.category

    assigned = []
    for row in import_rows:
        if not row.category:
            matched = payee_category_map.get(row.payee.lower().strip())
            if matched:
                row = row.model_copy(update={"category": matched})
        assigned.append(row)
    return assigned


# ===== EXPORT =====

def export_transactions_csv(transactions: Iterable) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for t in transactions:
        writer.writerow({
            "date": t.transaction_date.isoformat(),
            "payee": t.payee,
            "amount": f"{t.amount:.2f}",
            "category": t.category or "",
            "subcategory": t.subcategory or "",
            "memo": t.memo or "",
            "reconciled": "true" if t.reconciled else "false",
            "account_id": t.account_id,
        })
    return output.getvalue()
