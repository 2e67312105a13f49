"""Google Sheets client factory and the batch-update sink.

Call :func:`get_sheets_service` instead of building the discovery client at
import time; tests hand :class:`SheetsSink` a fake ``service_factory``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Sequence

logger = logging.getLogger("subbot.sheets")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

_PLAIN_SHEET_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


@lru_cache(maxsize=4)
def get_sheets_service(credentials_path: str) -> Any:
    """Return a cached Sheets v4 service authorized with a service account."""
    from google.oauth2 import service_account  # local import (lazy)
    from googleapiclient.discovery import build

    creds = service_account.Credentials.from_service_account_file(credentials_path, scopes=SCOPES)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


def a1_range(sheet: str, row: int, column: str = "A") -> str:
    """'Sheet'!A<row>, quoting sheet names the A1 grammar can't take bare."""
    if _PLAIN_SHEET_NAME_RE.match(sheet):
        name = sheet
    else:
        name = "'" + sheet.replace("'", "''") + "'"
    return f"{name}!{column}{int(row)}"


@dataclass(frozen=True)
class SheetUpdate:
    range_a1: str
    values: List[List[str]]

    def to_body(self) -> Dict[str, Any]:
        return {"range": self.range_a1, "values": self.values}


class SheetsSink:
    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: str,
        service_factory: Callable[[str], Any] = get_sheets_service,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self._service_factory = service_factory

    def push(self, updates: Sequence[SheetUpdate]) -> int:
        """Write every update in one values.batchUpdate call. Blocking.

        Returns the number of updated rows reported by the API.
        """
        if not updates:
            return 0
        service = self._service_factory(self.credentials_path)
        body = {
            "valueInputOption": "USER_ENTERED",
            "data": [u.to_body() for u in updates],
        }
        resp = (
            service.spreadsheets()
            .values()
            .batchUpdate(spreadsheetId=self.spreadsheet_id, body=body)
            .execute()
        )
        updated = int((resp or {}).get("totalUpdatedRows") or 0)
        logger.info("Updated Google Sheets: %d rows in %d ranges", updated, len(updates))
        return updated
