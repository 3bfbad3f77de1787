"""
Import pipeline — loads account records from a pipe-delimited text file.

File format (first line is a header and is always skipped):

    accountNumber|transactionAmount|description|transactionDate|transactionTime|customerId
    8872838283|123.00|FUND TRANSFER|2019-09-12|11:11:11|222
    8872838299|1500.50|ATM WITHDRAWL|2019-09-12|12:00:00|333

Stages:
  1. read     — iterate lines, skip the header and blank lines
  2. parse    — split on "|" into up to 6 positional fields; missing trailing
                fields are treated as empty, extra ones ignored
  3. transform — a hook that may modify a record or return None to drop it.
                 The default is a pass-through.
  4. write    — accumulate records into batches (default 10) and insert each
                full batch; the final partial batch is flushed at end of file

Failure handling:
  - A line that cannot be parsed raises LineParseError and aborts the
    rest of the import (fail-fast). Batches already written stay written.
    There is no per-line skip mode.
  - A transform that returns None just drops that record; the run continues
    and the record is counted as skipped.
  - A failed batch write raises BatchWriteError; nothing from that batch
    is stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import LineParseError
from app.models.account import AccountRecord
from app.services import record_store

logger = logging.getLogger(__name__)

DELIMITER = "|"
FIELD_NAMES = (
    "account_number",
    "transaction_amount",
    "description",
    "transaction_date",
    "transaction_time",
    "customer_id",
)
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
DEFAULT_BATCH_SIZE = 10

# Receives a parsed record; returns it (possibly modified) or None to drop it
Transform = Callable[[AccountRecord], AccountRecord | None]


@dataclass(frozen=True)
class ImportResult:
    records_written: int
    records_skipped: int


def passthrough(record: AccountRecord) -> AccountRecord:
    """Default transform: keep every record unchanged."""
    logger.debug("Processing account: %s", record.account_number)
    return record


def tokenize(line: str) -> dict[str, str]:
    """
    Split one data line into named fields.

    Short lines are padded with empty strings rather than rejected;
    fields beyond the sixth are ignored.
    """
    values = line.rstrip("\r\n").split(DELIMITER)
    values = (values + [""] * len(FIELD_NAMES))[: len(FIELD_NAMES)]
    return {name: value.strip() for name, value in zip(FIELD_NAMES, values)}


def parse_line(line: str, line_number: int) -> AccountRecord:
    """
    Turn one data line into an unsaved AccountRecord.

    The date and time columns are combined into one datetime, which is
    stored in both transaction_date and transaction_time. Balance starts
    equal to the transaction amount.

    Raises:
        LineParseError: Missing required value, bad amount, or bad date/time.
    """
    fields = tokenize(line)

    for required in ("account_number", "customer_id"):
        if not fields[required]:
            raise LineParseError(line_number, f"{required} is required")

    try:
        amount = Decimal(fields["transaction_amount"])
    except InvalidOperation:
        raise LineParseError(
            line_number, f"invalid transaction amount {fields['transaction_amount']!r}"
        )
    if not amount.is_finite():
        raise LineParseError(
            line_number, f"invalid transaction amount {fields['transaction_amount']!r}"
        )

    try:
        date_part = datetime.strptime(fields["transaction_date"], DATE_FORMAT).date()
        time_part = datetime.strptime(fields["transaction_time"], TIME_FORMAT).time()
    except ValueError as exc:
        raise LineParseError(line_number, f"invalid transaction date/time: {exc}")

    transaction_at = datetime.combine(date_part, time_part)

    return AccountRecord(
        account_number=fields["account_number"],
        customer_id=fields["customer_id"],
        transaction_amount=amount,
        balance=amount,
        description=fields["description"] or None,
        transaction_date=transaction_at,
        transaction_time=transaction_at,
        version=0,
    )


async def import_accounts(
    db: AsyncSession,
    lines: Iterable[str],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    transform: Transform = passthrough,
) -> ImportResult:
    """
    Run the whole pipeline over `lines` (any iterable of text lines, e.g. an open file).

    Each full batch is inserted and committed as soon as it fills, so memory
    use is bounded by batch_size regardless of file size.

    Args:
        db: Session used for the batch inserts. Committed once per batch.
        lines: Source lines; the first one is the header.
        batch_size: Records per insert.
        transform: Per-record hook; returning None drops the record.

    Returns:
        ImportResult with counts of written and dropped records.

    Raises:
        LineParseError: First unparseable line (aborts the import).
        BatchWriteError: A batch insert failed.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")

    written = 0
    skipped = 0
    batch: list[AccountRecord] = []

    for line_number, line in enumerate(lines, start=1):
        if line_number == 1:
            continue  # header
        if not line.strip():
            continue

        record = parse_line(line, line_number)
        processed = transform(record)
        if processed is None:
            skipped += 1
            logger.info("Transform dropped account %s (line %d)", record.account_number, line_number)
            continue

        batch.append(processed)
        if len(batch) >= batch_size:
            written += await record_store.insert_batch(db, batch)
            batch = []

    if batch:
        written += await record_store.insert_batch(db, batch)

    logger.info("Import finished: %d records written, %d skipped", written, skipped)
    return ImportResult(records_written=written, records_skipped=skipped)
