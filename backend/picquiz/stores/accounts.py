"""
Account store implementations.

Two interchangeable backends behind one AccountStore interface: a Supabase
table (``WinterUsers``) reached through PostgREST, and a local JSON file for
development. The backend is chosen once at startup by create_account_store.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from picquiz.core.datetime_utils import parse_timestamp
from picquiz.engine.types import Account
from picquiz.stores.base import AccountStore, StoreUnavailableError
from picquiz.stores.supabase import SupabaseClient

logger = logging.getLogger(__name__)


def account_to_row(account: Account) -> Dict[str, Any]:
    """Serialize using the table's column names."""
    return {
        "Username": account.username,
        "Password": account.password_hash,
        "CorrectAnswers": account.correct_answers,
        "TotalAnswered": account.total_answered,
        "IsCheater": account.is_cheater,
        "IsBanned": account.is_banned,
        "LastSeen": account.last_seen.isoformat() if account.last_seen else None,
    }


def account_from_row(row: Dict[str, Any]) -> Account:
    return Account(
        username=row["Username"],
        password_hash=row.get("Password") or "",
        correct_answers=int(row.get("CorrectAnswers") or 0),
        total_answered=int(row.get("TotalAnswered") or 0),
        is_cheater=bool(row.get("IsCheater")),
        is_banned=bool(row.get("IsBanned")),
        last_seen=parse_timestamp(row.get("LastSeen")),
    )


class SupabaseAccountStore(AccountStore):
    """Accounts in a Supabase table, via the PostgREST API."""

    NAME = "SupabaseAccountStore"

    def __init__(self, client: SupabaseClient, table: str = "WinterUsers"):
        self.client = client
        self.path = f"/rest/v1/{table}"

    def _rows(self, operation: str, response: httpx.Response) -> List[Dict[str, Any]]:
        data = self.client.json(self.NAME, operation, response)
        if not isinstance(data, list):
            raise StoreUnavailableError(
                self.NAME, operation, ValueError("expected a JSON array")
            )
        return data

    def get(self, username: str) -> Optional[Account]:
        response = self.client.request(
            self.NAME,
            "get",
            "GET",
            self.path,
            params={"Username": f"eq.{username}", "select": "*"},
        )
        rows = self._rows("get", response)
        return account_from_row(rows[0]) if rows else None

    def create(self, account: Account) -> bool:
        response = self.client.request(
            self.NAME,
            "create",
            "POST",
            self.path,
            json=account_to_row(account),
            headers={"Prefer": "return=minimal"},
            # 409: primary key violation, the username is taken
            expected=(200, 201, 204, 409),
        )
        if response.status_code == 409:
            logger.info(f"Registration rejected, username taken: {account.username}")
            return False
        return True

    def update(self, account: Account) -> None:
        row = account_to_row(account)
        del row["Username"]
        self.client.request(
            self.NAME,
            "update",
            "PATCH",
            self.path,
            params={"Username": f"eq.{account.username}"},
            json=row,
            headers={"Prefer": "return=minimal"},
        )

    def delete(self, username: str) -> bool:
        response = self.client.request(
            self.NAME,
            "delete",
            "DELETE",
            self.path,
            params={"Username": f"eq.{username}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(self._rows("delete", response))

    def list(self) -> List[Account]:
        response = self.client.request(
            self.NAME, "list", "GET", self.path, params={"select": "*"}
        )
        return [account_from_row(row) for row in self._rows("list", response)]


class LocalFileAccountStore(AccountStore):
    """
    Accounts in a JSON file.

    A process-wide lock serializes read-modify-write cycles; writes go to a
    temporary file that replaces the original atomically.
    """

    NAME = "LocalFileAccountStore"

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self, operation: str) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StoreUnavailableError(self.NAME, operation, e) from e
        return data if isinstance(data, list) else []

    def _save(self, operation: str, rows: List[Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(rows, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StoreUnavailableError(self.NAME, operation, e) from e

    @staticmethod
    def _index(rows: List[Dict[str, Any]], username: str) -> int:
        for i, row in enumerate(rows):
            if row.get("Username") == username:
                return i
        return -1

    def get(self, username: str) -> Optional[Account]:
        with self._lock:
            rows = self._load("get")
        i = self._index(rows, username)
        return account_from_row(rows[i]) if i >= 0 else None

    def create(self, account: Account) -> bool:
        with self._lock:
            rows = self._load("create")
            if self._index(rows, account.username) >= 0:
                return False
            rows.append(account_to_row(account))
            self._save("create", rows)
        return True

    def update(self, account: Account) -> None:
        with self._lock:
            rows = self._load("update")
            i = self._index(rows, account.username)
            if i < 0:
                logger.warning(f"Update for unknown account {account.username} ignored")
                return
            rows[i] = account_to_row(account)
            self._save("update", rows)

    def delete(self, username: str) -> bool:
        with self._lock:
            rows = self._load("delete")
            i = self._index(rows, username)
            if i < 0:
                return False
            del rows[i]
            self._save("delete", rows)
        return True

    def list(self) -> List[Account]:
        with self._lock:
            rows = self._load("list")
        return [account_from_row(row) for row in rows]


def create_account_store(
    settings: Any, client: Optional[SupabaseClient] = None
) -> AccountStore:
    """Pick the account backend once, from configuration."""
    if settings.use_remote_backends:
        logger.info("Using Supabase account store")
        client = client or SupabaseClient(
            settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.STORE_TIMEOUT_SECONDS
        )
        return SupabaseAccountStore(client, settings.SUPABASE_USERS_TABLE)

    logger.warning(
        f"No Supabase credentials configured, using local account file "
        f"{settings.LOCAL_USERS_FILE}"
    )
    return LocalFileAccountStore(settings.LOCAL_USERS_FILE)
