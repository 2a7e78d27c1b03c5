from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.app_setting import AppSetting


class PreferenceStore(Protocol):
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def set(self, key: str, value: Optional[str]) -> None: ...


class SettingsPreferenceStore:
    """Preferencias guardadas na tabela app_settings."""

    def __init__(self, db: Session, *, autocommit: bool = True):
        self.db = db
        self.autocommit = autocommit

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        s = self.db.execute(select(AppSetting).where(AppSetting.key == key)).scalar_one_or_none()
        return s.value if s else default

    def set(self, key: str, value: Optional[str]) -> None:
        s = self.db.execute(select(AppSetting).where(AppSetting.key == key)).scalar_one_or_none()
        if s:
            s.value = value
        else:
            self.db.add(AppSetting(key=key, value=value))
        self.db.flush()
        if self.autocommit:
            self.db.commit()


class MemoryPreferenceStore:
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, Optional[str]] = dict(initial or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: Optional[str]) -> None:
        self._data[key] = value


def _load_json(store: PreferenceStore, key: str, default: Any) -> Any:
    raw = store.get(key)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def _columns_key(user_id: Optional[int]) -> str:
    return f"chessboard:columns:{user_id or 0}"


def _versions_key(project_id: Optional[int]) -> str:
    return f"chessboard:versions:{project_id or 0}"


def load_column_settings(
    store: PreferenceStore,
    user_id: Optional[int],
    default_order: Sequence[str],
) -> Dict[str, List[str]]:
    """
    Le a ordem e as colunas escondidas da tabela.
    Colunas desconhecidas sao ignoradas; colunas novas entram no fim.
    """
    data = _load_json(store, _columns_key(user_id), {})
    if not isinstance(data, dict):
        data = {}

    known = list(default_order)
    order = [str(c) for c in data.get("order", []) if str(c) in known]
    order += [c for c in known if c not in order]
    hidden = [str(c) for c in data.get("hidden", []) if str(c) in known]
    return {"order": order, "hidden": hidden}


def save_column_settings(
    store: PreferenceStore,
    user_id: Optional[int],
    order: Sequence[str],
    hidden: Sequence[str] = (),
) -> None:
    payload = {"order": [str(c) for c in order], "hidden": [str(c) for c in hidden]}
    store.set(_columns_key(user_id), json.dumps(payload))


def load_selected_versions(store: PreferenceStore, project_id: Optional[int]) -> Dict[int, int]:
    data = _load_json(store, _versions_key(project_id), {})
    if not isinstance(data, dict):
        return {}

    versions: Dict[int, int] = {}
    for doc_id, version_id in data.items():
        try:
            versions[int(doc_id)] = int(version_id)
        except (TypeError, ValueError):
            continue
    return versions


def save_selected_versions(
    store: PreferenceStore,
    project_id: Optional[int],
    versions: Mapping[int, int],
) -> None:
    payload = {str(doc_id): int(version_id) for doc_id, version_id in versions.items()}
    store.set(_versions_key(project_id), json.dumps(payload))
