"""
Batch conversion with watermark tracking.

Drives a row stream through a RecordConverter until the stream ends or
`max_entries` messages were produced. Skipped rows don't count toward the
limit, but their date still moves the watermark: the next incremental run
starts after every row this run looked at.
"""

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging

from sms_backup.convert.converter import ConvertedMessage, RecordConverter, Row, SmsColumns, parse_int

logger = logging.getLogger(__name__)

# Watermark of a store that was never backed up
DEFAULT_MAX_SYNCED_DATE = -1


@dataclass
class ConversionResult:
    """Messages of one batch and the highest row date seen."""

    max_date: int = DEFAULT_MAX_SYNCED_DATE
    messages: List[ConvertedMessage] = field(default_factory=list)
    rows_visited: int = 0
    rows_skipped: int = 0
    cancelled: bool = False


class BatchConverter:
    """Converts a row stream into a ConversionResult."""

    def __init__(self, converter: RecordConverter):
        self.converter = converter

    def convert_batch(
        self,
        rows: Iterable[Row],
        max_entries: int,
        floor_date: int = DEFAULT_MAX_SYNCED_DATE,
        cancel: Optional[threading.Event] = None,
    ) -> ConversionResult:
        """
        Convert rows in delivery order.

        Args:
            rows: Row stream; consumed lazily, one row at a time.
            max_entries: Upper bound on converted messages.
            floor_date: Starting watermark (epoch millis).
            cancel: Optional event; once set, no further row is pulled.

        Returns:
            ConversionResult with the messages and the new watermark.
        """
        result = ConversionResult(max_date=floor_date)
        if max_entries <= 0:
            return result

        iterator = iter(rows)
        while len(result.messages) < max_entries:
            if cancel is not None and cancel.is_set():
                logger.info(f"Batch cancelled after {result.rows_visited} rows")
                result.cancelled = True
                break

            row = next(iterator, None)
            if row is None:
                break
            result.rows_visited += 1

            date = parse_int(row.get(SmsColumns.DATE))
            if date is not None and date > result.max_date:
                result.max_date = date

            message = self.converter.convert(row)
            if message is None:
                result.rows_skipped += 1
            else:
                result.messages.append(message)

        logger.info(
            f"Converted {len(result.messages)} messages from {result.rows_visited} rows "
            f"({result.rows_skipped} skipped), watermark {result.max_date}"
        )
        return result
