# Role: External tool adapter for the records backend: vendor/bank directories, record creation
# (purchase, order, manual transaction, counterparty), and the two read-side queries (event P&L, vendor balance).
# Every call returns a RecordResult; network and payload problems become ok=False, never exceptions.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

import ticketdesk.config as config
from ticketdesk.models.entities import DirectoryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordResult:
    ok: bool
    data: Any = field(default_factory=dict)
    error: Optional[str] = None


def _unwrap(payload: Any) -> Any:
    # Backend wraps most bodies as {"success": true, "data": ...}
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_text(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or f"HTTP {r.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


def _directory_entries(rows: Any) -> List[DirectoryEntry]:
    if not isinstance(rows, list):
        raise ValueError("expected a list")
    entries: List[DirectoryEntry] = []
    for row in rows:
        if not isinstance(row, dict) or row.get("id") is None:
            continue
        name = row.get("name") or row.get("bank_name") or ""
        entries.append(DirectoryEntry(id=str(row["id"]), name=str(name), balance=float(row.get("balance") or 0)))
    return entries


def is_visible_record(record: Dict[str, Any]) -> bool:
    # Key line: inventory assigned to an order is counted once, via its sale record.
    return record.get("record_type") == "sale" or not record.get("sale_id")


class RecordsClient:
    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None) -> None:
        self._base_url = base_url
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return (self._base_url or config.BACKEND_BASE_URL).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if config.BACKEND_TOKEN:
            headers["Authorization"] = f"Bearer {config.BACKEND_TOKEN}"
        return headers

    def _request(self, method: str, path: str, *, json: Optional[dict] = None, params: Optional[dict] = None) -> RecordResult:
        # 1) Send request with auth + timeout
        # 2) Map non-2xx to the backend's own error text (the gate turns it into a friendly message)
        # 3) Unwrap {"data": ...}
        try:
            r = self._session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=self._headers(),
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
            if not r.ok:
                error = _error_text(r)
                if config.DEBUG:
                    logger.debug("RECORDS %s %s -> %s: %s", method, path, r.status_code, error)
                return RecordResult(ok=False, error=error)

            data = _unwrap(r.json()) if r.content else {}

            if config.DEBUG:
                logger.debug("RECORDS %s %s -> ok", method, path)

            return RecordResult(ok=True, data=data)

        except requests.RequestException as e:
            return RecordResult(ok=False, error=f"Network error: connection to records service failed ({e})")
        except (TypeError, ValueError) as e:
            return RecordResult(ok=False, error=f"Invalid response from records service: {e}")

    # -----------------------------
    # Directories
    # -----------------------------

    def _directory(self, path: str) -> RecordResult:
        result = self._request("GET", path)
        if not result.ok:
            return result
        try:
            return RecordResult(ok=True, data=_directory_entries(result.data))
        except (TypeError, ValueError) as e:
            return RecordResult(ok=False, error=f"Invalid directory payload: {e}")

    def list_vendors(self) -> RecordResult:
        return self._directory("/vendors")

    def list_banks(self) -> RecordResult:
        return self._directory("/banks")

    # -----------------------------
    # Record creation
    # -----------------------------

    def create_purchase(self, payload: Dict[str, Any]) -> RecordResult:
        return self._request("POST", "/inventory-records/purchases", json=payload)

    def create_order(self, payload: Dict[str, Any]) -> RecordResult:
        return self._request("POST", "/inventory-records/orders", json=payload)

    def create_manual_transaction(self, payload: Dict[str, Any]) -> RecordResult:
        return self._request("POST", "/transactions/manual", json=payload)

    def create_counterparty(self, payload: Dict[str, Any]) -> RecordResult:
        return self._request("POST", "/directory/counterparties", json=payload)

    # -----------------------------
    # Queries
    # -----------------------------

    def run_profit_loss(self, event_name: str, event_id: str) -> RecordResult:
        result = self._request("GET", "/inventory-records", params={"game_id": event_id})
        if not result.ok:
            return result

        records = result.data if isinstance(result.data, list) else []
        visible = [r for r in records if isinstance(r, dict) and is_visible_record(r)]

        total_quantity = 0
        total_cost = 0.0
        target_selling = 0.0
        projected_profit = 0.0
        for record in visible:
            cost = record.get("cost")
            selling = record.get("selling")
            if record.get("quantity"):
                total_quantity += int(record["quantity"])
            if isinstance(cost, (int, float)):
                total_cost += cost
            if isinstance(selling, (int, float)):
                target_selling += selling
            if isinstance(cost, (int, float)) and isinstance(selling, (int, float)):
                projected_profit += selling - cost

        return RecordResult(
            ok=True,
            data={
                "eventName": event_name,
                "gameId": event_id,
                "totalQuantity": total_quantity,
                "totalCost": total_cost,
                "targetSelling": target_selling,
                "projectedProfit": projected_profit,
                "recordCount": len(visible),
            },
        )

    def run_vendor_balance(self, vendor_name: str, vendor_id: str, known_balance: float = 0.0) -> RecordResult:
        result = self._request("GET", f"/vendors/{vendor_id}/transactions")
        if not result.ok:
            return RecordResult(ok=False, error=f"Unable to fetch balance information for {vendor_name}: {result.error}")

        data = result.data if isinstance(result.data, dict) else {}
        vendor = data.get("vendor") or {}
        totals = {"total": 0, "paid": 0, "pending": 0, "owed": 0}
        totals.update(data.get("totals") or {})

        return RecordResult(
            ok=True,
            data={
                "vendorName": vendor_name,
                "vendorId": vendor_id,
                "balance": float(vendor.get("balance") or known_balance or 0),
                "totals": totals,
            },
        )

    def list_transactions(self) -> RecordResult:
        return self._request("GET", "/transactions")
