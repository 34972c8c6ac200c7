from __future__ import annotations

import json
import logging
import shutil
import threading
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return str(o)
    if isinstance(o, Enum):
        return o.value
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


class JsonRepository:
    """
    Stockage JSON (liste d'objets) avec clé primaire configurable.
    - écriture sous verrou, ignorée si le contenu ne change pas
    - rotation des sauvegardes .bak.json (backup_keep)
    - fichier corrompu mis de côté en .corrupt.json
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        entity_name: str = "entity",
        key: str = "id",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.entity_name = entity_name
        self.key = key
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))
        self._lock = threading.RLock()

        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        if not self.filepath.exists():
            self._write_raw([])

    # ---------------- I/O bas niveau ---------------- #

    def _read_raw(self) -> List[Record]:
        try:
            data = json.loads(self.filepath.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            quarantine = self.filepath.with_suffix(".corrupt.json")
            logger.warning("Corrupt %s store %s, moved aside to %s", self.entity_name, self.filepath, quarantine)
            shutil.copy2(self.filepath, quarantine)
            return []
        return data if isinstance(data, list) else []

    def _backups(self) -> List[Path]:
        return sorted(self.filepath.parent.glob(f"{self.filepath.stem}.*.bak.json"))

    def _backup_current(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0 or not self.filepath.exists():
            return
        ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        shutil.copy2(self.filepath, self.filepath.with_suffix(f".{ts}.bak.json"))
        backups = self._backups()
        for old in backups[: max(0, len(backups) - self.backup_keep)]:
            old.unlink(missing_ok=True)

    def _write_raw(self, rows: Iterable[Mapping[str, Any]]) -> None:
        dump = json.dumps(list(rows), ensure_ascii=False, indent=2, default=_json_default)
        with self._lock:
            if self.filepath.exists() and self.filepath.read_text(encoding="utf-8") == dump:
                return
            self._backup_current()
            self.filepath.write_text(dump, encoding="utf-8")

    @staticmethod
    def _to_dict(item: Union[BaseModel, Mapping[str, Any]]) -> Record:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        return dict(item)

    # ---------------- CRUD ---------------- #

    def list_all(self) -> List[Record]:
        return self._read_raw()

    def get_by_id(self, obj_id: Any) -> Optional[Record]:
        return self.find_one(lambda r: str(r.get(self.key)) == str(obj_id))

    def add(self, item: Union[BaseModel, Mapping[str, Any]]) -> Record:
        record = self._to_dict(item)
        k = self.key
        if not record.get(k):
            raise ValueError(f"Cannot add {self.entity_name} without '{k}'")
        with self._lock:
            rows = self._read_raw()
            if any(str(r.get(k)) == str(record[k]) for r in rows):
                raise ValueError(f"{self.entity_name} with {k}={record[k]} already exists")
            rows.append(record)
            self._write_raw(rows)
        return record

    def upsert(self, item: Union[BaseModel, Mapping[str, Any]]) -> Record:
        """Remplace l'enregistrement de même clé (position conservée), sinon ajoute."""
        record = self._to_dict(item)
        k = self.key
        if not record.get(k):
            raise ValueError(f"Cannot upsert {self.entity_name} without '{k}'")
        with self._lock:
            rows = self._read_raw()
            for idx, existing in enumerate(rows):
                if str(existing.get(k)) == str(record[k]):
                    rows[idx] = record
                    break
            else:
                rows.append(record)
            self._write_raw(rows)
        return record

    def delete(self, obj_id: Any) -> bool:
        with self._lock:
            rows = self._read_raw()
            kept = [r for r in rows if str(r.get(self.key)) != str(obj_id)]
            if len(kept) == len(rows):
                return False
            self._write_raw(kept)
        return True

    # ---------------- Recherches ---------------- #

    def find(self, predicate: Callable[[Record], bool]) -> List[Record]:
        return [r for r in self._read_raw() if predicate(r)]

    def find_one(self, predicate: Callable[[Record], bool]) -> Optional[Record]:
        for r in self._read_raw():
            if predicate(r):
                return r
        return None
