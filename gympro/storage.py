from __future__ import annotations

import json
import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Iterable, List, Tuple

from .env import get_env
from .models import IngestResult, WorkoutSet, new_set_id, parse_records

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_LOGS_FILENAME = "gympro_logs.json"
LOGGER = logging.getLogger(__name__)


def _data_dir() -> Path:
    override = get_env("DATA_DIR")
    base = Path(override).expanduser() if override else DEFAULT_DATA_DIR
    base.mkdir(parents=True, exist_ok=True)
    return base


def logs_file() -> Path:
    override = get_env("LOGS_FILE")
    if override:
        target = Path(override).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        return target
    return _data_dir() / DEFAULT_LOGS_FILENAME


def _save_records_to_file(path: Path, records: Iterable[Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps([_as_payload(record) for record in records], indent=2, sort_keys=True) + "\n"

    with NamedTemporaryFile("w", dir=path.parent, delete=False, encoding="utf-8") as tmp:
        tmp.write(payload)
        temp_path = Path(tmp.name)
    temp_path.replace(path)


def _load_records_from_file(path: Path) -> List[Any]:
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("[]\n", encoding="utf-8")
        return []

    raw = path.read_text(encoding="utf-8").strip() or "[]"
    try:
        records = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list")

    backfilled, changed = _assign_missing_ids(records)
    if changed:
        LOGGER.info("Assigned ids to legacy records in %s", path)
        _save_records_to_file(path, backfilled)
    return backfilled


def load_records() -> List[Any]:
    """Raw persisted records, exactly as stored (ids backfilled)."""
    return _load_records_from_file(logs_file())


def load_sets() -> IngestResult:
    """Validated records; malformed rows are reported, not raised."""
    return parse_records(load_records())


def save_records(records: Iterable[Any]) -> None:
    _save_records_to_file(logs_file(), records)


def append_records(new_records: Iterable[Any]) -> List[Any]:
    """Append records and keep the stored list in date order."""
    records = load_records()
    added = [_as_payload(record) for record in new_records]
    records.extend(added)
    records.sort(key=_stored_date)
    save_records(records)
    LOGGER.info("Stored %d new set(s); %d total", len(added), len(records))
    return records


def delete_record(record_id: str) -> bool:
    """Remove the record with ``record_id``; False when it does not exist."""
    if not record_id:
        return False
    records = load_records()
    remaining = [
        record
        for record in records
        if not (isinstance(record, dict) and str(record.get("id")) == str(record_id))
    ]
    if len(remaining) == len(records):
        return False
    save_records(remaining)
    LOGGER.info("Deleted record %s", record_id)
    return True


def clear_records() -> int:
    """Drop every stored record and return how many there were."""
    count = len(load_records())
    save_records([])
    LOGGER.info("Cleared %d record(s)", count)
    return count


def _as_payload(record: Any) -> Any:
    if isinstance(record, WorkoutSet):
        return record.to_dict()
    return record


def _stored_date(record: Any) -> str:
    if isinstance(record, dict):
        return str(record.get("date") or "")
    return ""


def _assign_missing_ids(records: list[Any]) -> Tuple[list[Any], bool]:
    upgraded: list[Any] = []
    changed = False
    for record in records:
        if isinstance(record, dict) and not str(record.get("id") or "").strip():
            record = {**record, "id": new_set_id()}
            changed = True
        upgraded.append(record)
    return upgraded, changed
