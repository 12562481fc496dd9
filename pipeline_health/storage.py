import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List

from pydantic import ValidationError

from .errors import AccountNotFoundError, DataAccessError
from .schemas import AccountRecords, ActionItem, QualificationNote, Transcript


class HealthDataSource(ABC):
    """Read-only access to the records pipeline health is computed from"""

    @abstractmethod
    async def get_qualification_notes(self, account_id: str) -> List[QualificationNote]:
        ...

    @abstractmethod
    async def get_transcripts(self, account_id: str) -> List[Transcript]:
        ...

    @abstractmethod
    async def get_action_items(self, account_id: str) -> List[ActionItem]:
        ...

    async def get_account_records(self, account_id: str) -> AccountRecords:
        """All three record kinds for one account, as a single snapshot"""
        return AccountRecords(
            account_id=account_id,
            qualification_notes=await self.get_qualification_notes(account_id),
            transcripts=await self.get_transcripts(account_id),
            action_items=await self.get_action_items(account_id),
        )


class InMemoryDataSource(HealthDataSource):
    def __init__(self, accounts: Iterable[AccountRecords] = ()):
        self.accounts: Dict[str, AccountRecords] = {a.account_id: a for a in accounts}

    def add(self, records: AccountRecords):
        self.accounts[records.account_id] = records

    def _get(self, account_id: str) -> AccountRecords:
        records = self.accounts.get(account_id)
        if records is None:
            raise AccountNotFoundError(account_id)
        return records

    async def get_qualification_notes(self, account_id: str) -> List[QualificationNote]:
        return list(self._get(account_id).qualification_notes)

    async def get_transcripts(self, account_id: str) -> List[Transcript]:
        return list(self._get(account_id).transcripts)

    async def get_action_items(self, account_id: str) -> List[ActionItem]:
        return list(self._get(account_id).action_items)


class JsonDirectoryDataSource(HealthDataSource):
    """
    Accounts stored as one JSON file each: <data_dir>/<account_id>.json

    The file holds an AccountRecords object. It is re-read on every call so
    edits on disk are picked up without a restart.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def list_account_ids(self) -> List[str]:
        if not self.data_dir.is_dir():
            raise DataAccessError(f"Data directory {self.data_dir} does not exist")
        return sorted(path.stem for path in self.data_dir.glob("*.json"))

    def _path_for(self, account_id: str) -> Path:
        # Account ids map straight to file names, so refuse anything path-like
        if not account_id or "/" in account_id or "\\" in account_id or account_id.startswith("."):
            raise AccountNotFoundError(account_id)
        return self.data_dir / f"{account_id}.json"

    def _load(self, account_id: str) -> AccountRecords:
        path = self._path_for(account_id)
        if not path.exists():
            raise AccountNotFoundError(account_id)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            data.setdefault("account_id", account_id)
            return AccountRecords(**data)
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise DataAccessError(f"Failed to load account {account_id} from {path}: {e}") from e

    async def _records(self, account_id: str) -> AccountRecords:
        return await asyncio.to_thread(self._load, account_id)

    async def get_account_records(self, account_id: str) -> AccountRecords:
        # Single read: notes, transcripts and action items share one file version
        return await self._records(account_id)

    async def get_qualification_notes(self, account_id: str) -> List[QualificationNote]:
        return (await self._records(account_id)).qualification_notes

    async def get_transcripts(self, account_id: str) -> List[Transcript]:
        return (await self._records(account_id)).transcripts

    async def get_action_items(self, account_id: str) -> List[ActionItem]:
        return (await self._records(account_id)).action_items
