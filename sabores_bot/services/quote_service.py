"""Quote requests (orçamentos) stored as a JSON list in a single file.

Every mutation reads and rewrites the whole file. That is fine for a home
bakery's volume, but there is no cross-process locking: two processes
writing the same file can lose updates.

Mutations work on the raw JSON objects, so records this service does not
understand (hand-edited statuses, extra fields) are written back untouched.
"""

import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from sabores_bot.logging_config import get_logger
from sabores_bot.schemas.quote import QuoteRequest, QuoteStats, QuoteStatus

logger = get_logger("quote_service")


class QuoteStorageError(Exception):
    """The quotes file could not be read for update or could not be written."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class QuoteService:
    def __init__(self, path: Union[str, Path], clock: Callable[[], float] = time.time):
        self.path = Path(path)
        self.clock = clock
        self._lock = threading.Lock()
        self._last_id = 0

    def init_file(self) -> None:
        """Create an empty quotes file if there is none yet."""
        with self._lock:
            if self.path.exists():
                return
            self._write_raw([])
            logger.info("Quotes file created", extra={"context": {"path": str(self.path)}})

    def _load_raw(self) -> list[Any]:
        """Raw file contents. Raises QuoteStorageError when the file is unreadable."""
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            raise QuoteStorageError(f"Error loading quotes from {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise QuoteStorageError(f"Quotes file {self.path} does not contain a list")
        return raw

    def _read_records(self) -> list[QuoteRequest]:
        try:
            raw = self._load_raw()
        except QuoteStorageError as e:
            logger.error(str(e))
            return []

        quotes = []
        for item in raw:
            try:
                quotes.append(QuoteRequest.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid quote record: {e.error_count()} error(s)")
        return quotes

    def _write_raw(self, records: list[Any]) -> None:
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(records, handle, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Error saving quotes to {self.path}: {e}")
            raise QuoteStorageError(str(e)) from e

    def _next_id(self, records: list[Any]) -> int:
        # Creation time in ms, bumped when two quotes land in the same millisecond.
        candidate = int(self.clock() * 1000)
        existing = [r.get("id") for r in records if isinstance(r, dict)]
        highest = max([self._last_id] + [i for i in existing if isinstance(i, int)])
        if candidate <= highest:
            candidate = highest + 1
        self._last_id = candidate
        return candidate

    def add_quote(self, numero: str, mensagem: str, tem_imagem: bool = False) -> QuoteRequest:
        with self._lock:
            records = self._load_raw()
            quote = QuoteRequest(
                id=self._next_id(records),
                numero=numero,
                mensagem=mensagem,
                timestamp=_now_iso(),
                status=QuoteStatus.NEW,
                tem_imagem=tem_imagem,
            )
            records.append(quote.to_record())
            self._write_raw(records)

        logger.info(
            "New quote added",
            extra={"context": {"id": quote.id, "numero": numero, "preview": mensagem[:100]}},
        )
        return quote

    def list_quotes(self, status: Optional[QuoteStatus] = None) -> list[QuoteRequest]:
        with self._lock:
            quotes = self._read_records()
        if status:
            return [quote for quote in quotes if quote.status == status]
        return quotes

    def update_status(self, quote_id: int, status: QuoteStatus) -> bool:
        """Set a new status. Returns False when the quote does not exist."""
        with self._lock:
            records = self._load_raw()
            for record in records:
                if isinstance(record, dict) and record.get("id") == quote_id:
                    record["status"] = status.value
                    record["updatedAt"] = _now_iso()
                    break
            else:
                logger.warning(f"Quote {quote_id} not found")
                return False
            self._write_raw(records)

        logger.info(f"Quote {quote_id} updated to status {status.value}")
        return True

    def get_stats(self) -> QuoteStats:
        quotes = self.list_quotes()
        return QuoteStats(
            total=len(quotes),
            novos=sum(1 for q in quotes if q.status == QuoteStatus.NEW),
            em_andamento=sum(1 for q in quotes if q.status == QuoteStatus.IN_PROGRESS),
            concluidos=sum(1 for q in quotes if q.status == QuoteStatus.DONE),
            com_imagem=sum(1 for q in quotes if q.tem_imagem),
        )
