"""Spreadsheet import and export.

Uploaded statements arrive as ``.csv`` or ``.xlsx`` with a header row. Rows
come back as header-keyed dicts; ``parse_transactions`` turns them into
RawTransactions using the column aliases bank and card exports commonly
carry. Columns it does not recognise are kept in ``RawTransaction.extra``.
"""

import csv
import zipfile
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import structlog
from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from transactwise.errors import InputError
from transactwise.models import RawTransaction

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")

DATE_COLUMNS = ("TransactionDate", "Transaction Date", "Date", "Posting Date")
STATEMENT_COLUMNS = ("Appears On Your Statement As", "Statement Description")
DESCRIPTION_COLUMNS = ("Description", "Payee", "Name")
AMOUNT_COLUMNS = ("Amount",)
CATEGORY_COLUMNS = ("Category",)
PAYMENT_ACCOUNT_COLUMNS = ("Payment Account", "Account")
MEMO_COLUMNS = ("Memo", "Notes")

_KNOWN_COLUMNS = {
    name.casefold()
    for group in (
        DATE_COLUMNS,
        STATEMENT_COLUMNS,
        DESCRIPTION_COLUMNS,
        AMOUNT_COLUMNS,
        CATEGORY_COLUMNS,
        PAYMENT_ACCOUNT_COLUMNS,
        MEMO_COLUMNS,
    )
    for name in group
}

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%d-%b-%Y", "%Y/%m/%d")


def _extension(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise InputError(
            f"Unsupported file type '{suffix or path.name}', expected one of "
            f"{', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return suffix


def _header(values: Iterable[Any]) -> list[str]:
    return [str(v).strip() if v is not None else "" for v in values]


def _is_blank(row: dict[str, Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in row.values())


def _read_csv(path: Path) -> list[dict[str, Any]]:
    try:
        with path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if not header:
                return []
            columns = _header(header)
            return [dict(zip(columns, values, strict=False)) for values in reader]
    except (UnicodeDecodeError, csv.Error) as e:
        raise InputError(f"Could not read CSV file {path.name}: {e}") from e


def _read_xlsx(path: Path) -> list[dict[str, Any]]:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
        raise InputError(f"Could not read Excel file {path.name}: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        columns = _header(header)
        return [dict(zip(columns, values, strict=False)) for values in rows]
    finally:
        workbook.close()


def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read the first sheet of a spreadsheet as header-keyed rows.

    Blank rows are skipped; columns with an empty header are dropped.

    Raises:
        InputError: The file is missing, has an unsupported extension,
            cannot be parsed, or holds no data rows.
    """
    path = Path(path)
    suffix = _extension(path)
    if not path.is_file():
        raise InputError(f"File not found: {path}")

    rows = _read_csv(path) if suffix == ".csv" else _read_xlsx(path)
    rows = [{k: v for k, v in row.items() if k} for row in rows]
    rows = [row for row in rows if row and not _is_blank(row)]
    if not rows:
        raise InputError(f"{path.name} contains no data rows")

    logger.info("spreadsheet_read", file=path.name, rows=len(rows))
    return rows


def _lookup(row: dict[str, Any], aliases: Sequence[str]) -> Any:
    folded = {key.casefold(): value for key, value in row.items()}
    for alias in aliases:
        value = folded.get(alias.casefold())
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_amount(value: Any) -> Decimal | None:
    """Parse a signed amount; "(12.50)" and "$-1,200" are both negative."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))

    text = str(value).strip().replace(",", "").replace("$", "").replace(" ", "")
    if not text:
        return None
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_transactions(rows: Sequence[dict[str, Any]]) -> list[RawTransaction]:
    """Map spreadsheet rows to RawTransactions.

    A row is usable when it has a parseable amount and some text to match
    on. Unusable rows are skipped and logged; indices are assigned to the
    usable rows in order, starting at 0.

    Raises:
        InputError: No row is usable.
    """
    transactions: list[RawTransaction] = []
    skipped = 0

    for row_number, row in enumerate(rows, start=1):
        amount = parse_amount(_lookup(row, AMOUNT_COLUMNS))
        statement_text = _optional_text(_lookup(row, STATEMENT_COLUMNS)) or ""
        description = _optional_text(_lookup(row, DESCRIPTION_COLUMNS)) or ""
        if amount is None or not (statement_text or description):
            skipped += 1
            logger.warning("transaction_row_skipped", row=row_number)
            continue

        raw_date = _lookup(row, DATE_COLUMNS)
        parsed_date = parse_date(raw_date)
        if raw_date is not None and parsed_date is None:
            logger.warning("transaction_date_unparsed", row=row_number, value=str(raw_date))

        transactions.append(
            RawTransaction(
                index=len(transactions),
                date=parsed_date,
                amount=amount,
                statement_text=statement_text,
                description=description,
                category=_optional_text(_lookup(row, CATEGORY_COLUMNS)),
                payment_account=_optional_text(_lookup(row, PAYMENT_ACCOUNT_COLUMNS)),
                memo=_optional_text(_lookup(row, MEMO_COLUMNS)),
                extra={k: v for k, v in row.items() if k.casefold() not in _KNOWN_COLUMNS},
            )
        )

    if not transactions:
        raise InputError("No valid transactions found: each row needs an amount and a description")

    logger.info("transactions_parsed", transactions=len(transactions), skipped=skipped)
    return transactions


def load_transactions(path: str | Path) -> list[RawTransaction]:
    return parse_transactions(read_rows(path))


def write_rows(path: str | Path, rows: Sequence[dict[str, Any]], columns: Sequence[str]) -> Path:
    """Write rows under a header row to ``.xlsx`` or ``.csv``."""
    path = Path(path)
    suffix = _extension(path)

    if suffix == ".csv":
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(columns), extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)
    else:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Transactions"
        sheet.append(list(columns))
        for row in rows:
            sheet.append([row.get(column) for column in columns])
        workbook.save(path)

    logger.info("spreadsheet_written", file=path.name, rows=len(rows))
    return path
