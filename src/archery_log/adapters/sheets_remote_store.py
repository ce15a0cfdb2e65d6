"""Google Sheets remote store over the Sheets v4 values API."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from urllib.parse import quote

import httpx

from archery_log.adapters.session_rows import (
    Record,
    assemble_sessions,
    flatten_sessions,
)
from archery_log.domain.errors import RemoteError
from archery_log.domain.sessions import Session
from archery_log.services.clock import Clock, SystemClock, isoformat_utc
from archery_log.services.sync import RemoteStore

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4"

SESSION_COLUMNS = (
    "session_id",
    "session_date",
    "created_at",
    "updated_at",
    "location",
    "notes",
    "location_lat",
    "location_lng",
)
END_COLUMNS = (
    "end_id",
    "session_id",
    "end_index",
    "shots_count",
    "distance_meters",
    "end_total",
    "photo_file_id",
    "photo_name",
    "photo_uploaded_at",
    "photo_web_view_link",
)
SHOT_COLUMNS = ("shot_id", "end_id", "shot_index", "score", "shot_value")

SESSIONS_HEADER_RANGE = "sessions!A1:H1"
SESSIONS_RANGE = "sessions!A2:H"
ENDS_RANGE = "ends!A2:J"
SHOTS_RANGE = "shots!A2:E"
META_RANGE = "meta!A2:B2"
# Sheets written before location was added carry notes in the fifth column.
_LEGACY_SESSION_WIDTH = 6
_LOCATION_HEADER = "location"


@dataclass
class HttpxSheetsRemoteStore(RemoteStore):
    """Stores sessions in sessions/ends/shots tabs of a spreadsheet."""

    access_token: str
    http_client: httpx.AsyncClient
    base_url: str = SHEETS_BASE_URL
    timeout: float = 15
    clock: Clock = field(default_factory=SystemClock)

    @classmethod
    def create(
        cls,
        access_token: str,
        base_url: str = SHEETS_BASE_URL,
        timeout: float = 15,
        clock: Clock | None = None,
    ) -> "HttpxSheetsRemoteStore":
        """Create a store with a managed httpx session."""
        return cls(
            access_token=access_token,
            http_client=httpx.AsyncClient(),
            base_url=base_url,
            timeout=timeout,
            clock=clock or SystemClock(),
        )

    async def pull(self, store_id: str) -> list[Session]:
        """Read all three data tabs and rebuild sessions."""
        header_rows, session_rows, end_rows, shot_rows = await asyncio.gather(
            self._get_values(store_id, SESSIONS_HEADER_RANGE),
            self._get_values(store_id, SESSIONS_RANGE),
            self._get_values(store_id, ENDS_RANGE),
            self._get_values(store_id, SHOTS_RANGE),
        )
        legacy = _legacy_layout(header_rows)
        return assemble_sessions(
            [_session_record(row, legacy) for row in session_rows],
            [_record(END_COLUMNS, row) for row in end_rows],
            [_record(SHOT_COLUMNS, row) for row in shot_rows],
        )

    async def push(self, store_id: str, sessions: Sequence[Session]) -> str:
        """Replace the data tabs with the given sessions."""
        session_records, end_records, shot_records = flatten_sessions(sessions)
        for data_range in (SESSIONS_RANGE, ENDS_RANGE, SHOTS_RANGE):
            await self._clear(store_id, data_range)
        tabs = (
            ("sessions", "H", SESSION_COLUMNS, session_records),
            ("ends", "J", END_COLUMNS, end_records),
            ("shots", "E", SHOT_COLUMNS, shot_records),
        )
        for tab, last_column, columns, records in tabs:
            if not records:
                continue
            rows = [_row(columns, record) for record in records]
            await self._write(store_id, f"{tab}!A2:{last_column}{len(rows) + 1}", rows)

        synced_at = isoformat_utc(self.clock.now())
        await self._write(store_id, META_RANGE, [["last_synced_at", synced_at]])
        return synced_at

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _get_values(self, store_id: str, data_range: str) -> list[list[str]]:
        payload = await self._request("GET", self._values_url(store_id, data_range))
        return payload.get("values") or []

    async def _clear(self, store_id: str, data_range: str) -> None:
        url = f"{self._values_url(store_id, data_range)}:clear"
        await self._request("POST", url, json={})

    async def _write(
        self, store_id: str, data_range: str, values: list[list[str]]
    ) -> None:
        await self._request(
            "PUT",
            self._values_url(store_id, data_range),
            params={"valueInputOption": "RAW"},
            json={"range": data_range, "majorDimension": "ROWS", "values": values},
        )

    def _values_url(self, store_id: str, data_range: str) -> str:
        return (
            f"{self.base_url}/spreadsheets/{quote(store_id, safe='')}"
            f"/values/{quote(data_range, safe='')}"
        )

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None = None,
        json: dict[str, object] | None = None,
    ) -> dict[str, object]:
        try:
            response = await self.http_client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteError(
                "Google API request failed: "
                f"{exc.response.status_code} {exc.response.text}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"Google API request failed: {exc}") from exc
        return response.json()


def _record(columns: Sequence[str], row: Sequence[str]) -> Record:
    return {
        column: row[index] for index, column in enumerate(columns) if index < len(row)
    }


def _legacy_layout(header_rows: list[list[str]]) -> bool | None:
    """Return whether the header predates the location column.

    None when the sheet has no header row.
    """
    if not header_rows or not header_rows[0]:
        return None
    header = [str(cell).strip().lower() for cell in header_rows[0]]
    return _LOCATION_HEADER not in header


def _session_record(row: Sequence[str], legacy: bool | None = None) -> Record:
    # Trailing empty cells are omitted, so row width only decides without a header.
    if legacy is None:
        legacy = len(row) < _LEGACY_SESSION_WIDTH
    record = _record(SESSION_COLUMNS, row)
    if legacy:
        record["notes"] = record.pop("location", "")
    return record


def _row(columns: Sequence[str], record: Record) -> list[str]:
    return [
        "" if record.get(column) is None else str(record[column]) for column in columns
    ]
