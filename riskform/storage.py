"""Autosave state and named drafts on top of a pluggable key-value store.

All keys live under a namespace prefix ``P``::

    P:<formId>                   current autosave state
    P:drafts:<formId>            JSON list of draft index entries
    P:draft:<formId>:<draftId>   one draft's saved state

Reads fail soft (``None`` or ``[]``), writes raise
:class:`~riskform.errors.StorageWriteError`, and delete/rename are best
effort. Draft index updates are read-modify-write: they are serialised per
:class:`FormStorage` instance but not across instances sharing a backend.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote, unquote

import streamlit as st

from riskform.answers import to_serialisable
from riskform.errors import FormImportError, SchemaMismatchError, StorageWriteError
from riskform.settings import DEFAULT_AUTOSAVE_INTERVAL_MS, DEFAULT_NAMESPACE, Settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String key-value capability supplied by the host."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...

    def length(self) -> int: ...


class InMemoryStore:
    """Dictionary-backed store for tests and scripts."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

    def length(self) -> int:
        return len(self._data)


class SessionStateStore:
    """Store entries in Streamlit's ``st.session_state``."""

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None) -> None:
        self._state = state if state is not None else st.session_state

    def get(self, key: str) -> Optional[str]:
        value = self._state.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._state[key] = value

    def remove(self, key: str) -> None:
        if key in self._state:
            del self._state[key]

    def keys(self) -> List[str]:
        return [str(key) for key in list(self._state.keys())]

    def length(self) -> int:
        return len(self.keys())


class JsonFileStore:
    """One ``<quoted key>.json`` file per entry inside ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return [unquote(path.stem) for path in sorted(self.directory.glob("*.json"))]

    def length(self) -> int:
        return len(self.keys())


@dataclass(frozen=True)
class StorageInfo:
    """Aggregate usage of the namespaced keys."""

    total_size: int
    item_count: int
    form_count: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "totalSize": self.total_size,
            "itemCount": self.item_count,
            "formCount": self.form_count,
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_draft_id() -> str:
    """Return a time-ordered draft identifier."""

    return f"draft-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class FormStorage:
    """Persist form state and drafts in a namespaced :class:`KeyValueStore`."""

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = DEFAULT_NAMESPACE,
        autosave_interval_ms: int = DEFAULT_AUTOSAVE_INTERVAL_MS,
    ) -> None:
        self.store = store
        self.namespace = namespace
        self.autosave_interval_ms = autosave_interval_ms
        self._prefix = f"{namespace}:"
        self._index_lock = threading.Lock()

    @classmethod
    def from_settings(cls, store: KeyValueStore, settings: Settings) -> "FormStorage":
        return cls(
            store,
            namespace=settings.namespace,
            autosave_interval_ms=settings.autosave_interval_ms,
        )

    # -- keys ---------------------------------------------------------------

    def state_key(self, form_id: str) -> str:
        return f"{self._prefix}{form_id}"

    def drafts_key(self, form_id: str) -> str:
        return f"{self._prefix}drafts:{form_id}"

    def draft_key(self, form_id: str, draft_id: str) -> str:
        return f"{self._prefix}draft:{form_id}:{draft_id}"

    def _form_id_from_key(self, key: str) -> str:
        rest = key[len(self._prefix):]
        if rest.startswith("drafts:"):
            return rest[len("drafts:"):]
        if rest.startswith("draft:"):
            return rest[len("draft:"):].rsplit(":", 1)[0]
        return rest

    # -- helpers ------------------------------------------------------------

    def _write_json(self, key: str, payload: Any) -> None:
        self.store.set(key, json.dumps(payload, default=to_serialisable))

    def _read_json(self, key: str) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    @staticmethod
    def _build_state(
        form_id: str, values: Mapping[str, Any], draft_id: Optional[str], is_draft: bool
    ) -> Dict[str, Any]:
        return {
            "formId": form_id,
            "values": dict(values),
            "autoSave": {
                "lastSavedAt": _now(),
                "isDraft": is_draft,
                "draftId": draft_id or "",
            },
            "timestamp": _now(),
        }

    def _load_state(self, key: str, what: str) -> Optional[Dict[str, Any]]:
        try:
            state = self._read_json(key)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to load %s from %s", what, key)
            return None
        if state is None:
            return None
        if not isinstance(state, dict):
            logger.warning("Ignoring malformed %s stored at %s", what, key)
            return None
        return state

    # -- current state ------------------------------------------------------

    def save_form_state(
        self, form_id: str, values: Mapping[str, Any], draft_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Write ``values`` as the current state of ``form_id`` and return it."""

        state = self._build_state(form_id, values, draft_id, is_draft=draft_id is not None)
        try:
            self._write_json(self.state_key(form_id), state)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Failed to save form state for %s", form_id)
            raise StorageWriteError("Failed to save form state") from exc
        return state

    def load_form_state(self, form_id: str) -> Optional[Dict[str, Any]]:
        return self._load_state(self.state_key(form_id), "form state")

    def autosave_due(self, form_id: str, now: Optional[datetime] = None) -> bool:
        """Return whether the caller's autosave timer should write ``form_id`` again.

        True when nothing is saved yet, when the saved ``lastSavedAt`` cannot
        be read, or when at least ``autosave_interval_ms`` has passed since it.
        """

        state = self.load_form_state(form_id)
        if state is None:
            return True
        auto_save = state.get("autoSave")
        last_saved = auto_save.get("lastSavedAt") if isinstance(auto_save, dict) else None
        if not isinstance(last_saved, str):
            return True
        try:
            saved_at = datetime.fromisoformat(last_saved.replace("Z", "+00:00"))
        except ValueError:
            return True
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)

        current = now or datetime.now(timezone.utc)
        elapsed_ms = (current - saved_at).total_seconds() * 1000
        return elapsed_ms >= self.autosave_interval_ms

    def clear_form_state(self, form_id: str) -> None:
        try:
            self.store.remove(self.state_key(form_id))
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to clear form state for %s", form_id)

    # -- drafts -------------------------------------------------------------

    def save_draft(
        self,
        form_id: str,
        name: str,
        values: Mapping[str, Any],
        draft_id: Optional[str] = None,
    ) -> str:
        """Save ``values`` as a named draft and return its identifier.

        Saving with an existing ``draft_id`` overwrites that draft and
        refreshes its index entry instead of adding a new one.
        """

        target_id = draft_id or new_draft_id()
        state = self._build_state(form_id, values, target_id, is_draft=True)

        try:
            self._write_json(self.draft_key(form_id, target_id), state)
            with self._index_lock:
                entries = self.get_drafts_list(form_id)
                now = _now()
                for entry in entries:
                    if entry.get("id") == target_id:
                        entry["name"] = name
                        entry["updatedAt"] = now
                        break
                else:
                    entries.append(
                        {"id": target_id, "name": name, "createdAt": now, "updatedAt": now}
                    )
                self._write_json(self.drafts_key(form_id), entries)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Failed to save draft %s for %s", target_id, form_id)
            raise StorageWriteError("Failed to save draft") from exc

        return target_id

    def load_draft(self, form_id: str, draft_id: str) -> Optional[Dict[str, Any]]:
        return self._load_state(self.draft_key(form_id, draft_id), "draft")

    def get_drafts_list(self, form_id: str) -> List[Dict[str, Any]]:
        """Return the draft index entries of ``form_id`` (``[]`` when unreadable)."""

        key = self.drafts_key(form_id)
        try:
            entries = self._read_json(key)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to read drafts list %s", key)
            return []
        if entries is None:
            return []
        if not isinstance(entries, list):
            logger.warning("Ignoring malformed drafts list stored at %s", key)
            return []
        return [entry for entry in entries if isinstance(entry, dict) and entry.get("id")]

    def delete_draft(self, form_id: str, draft_id: str) -> None:
        try:
            self.store.remove(self.draft_key(form_id, draft_id))
            with self._index_lock:
                entries = [
                    entry for entry in self.get_drafts_list(form_id) if entry.get("id") != draft_id
                ]
                self._write_json(self.drafts_key(form_id), entries)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to delete draft %s for %s", draft_id, form_id)

    def rename_draft(self, form_id: str, draft_id: str, new_name: str) -> None:
        try:
            with self._index_lock:
                entries = self.get_drafts_list(form_id)
                for entry in entries:
                    if entry.get("id") == draft_id:
                        entry["name"] = new_name
                        entry["updatedAt"] = _now()
                        self._write_json(self.drafts_key(form_id), entries)
                        return
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to rename draft %s for %s", draft_id, form_id)

    # -- import / export ----------------------------------------------------

    def export_form_state(self, form_id: str) -> str:
        """Return the current state of ``form_id`` as indented JSON."""

        state = self.load_form_state(form_id)
        if state is None:
            raise StorageWriteError("No form state to export")
        return json.dumps(state, indent=2, default=to_serialisable)

    def import_form_state(self, form_id: str, json_data: str) -> Dict[str, Any]:
        """Save exported state back as the current state of ``form_id``."""

        try:
            state = json.loads(json_data)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to import form state for %s: %s", form_id, exc)
            raise FormImportError("Invalid form data") from exc

        if not isinstance(state, dict):
            raise FormImportError("Invalid form data")
        if state.get("formId") != form_id:
            logger.error("Refusing to import state of %r into %r", state.get("formId"), form_id)
            raise SchemaMismatchError(form_id, state.get("formId"))

        values = state.get("values")
        if not isinstance(values, dict):
            raise FormImportError("Invalid form data")

        auto_save = state.get("autoSave")
        draft_id = auto_save.get("draftId") if isinstance(auto_save, dict) else None
        return self.save_form_state(form_id, values, draft_id or None)

    # -- maintenance --------------------------------------------------------

    def _namespaced_keys(self) -> List[str]:
        return [key for key in self.store.keys() if key.startswith(self._prefix)]

    def get_storage_info(self) -> StorageInfo:
        total_size = 0
        item_count = 0
        form_ids = set()

        for key in self._namespaced_keys():
            item_count += 1
            value = self.store.get(key)
            if value:
                total_size += len(value)
                form_ids.add(self._form_id_from_key(key))

        return StorageInfo(total_size=total_size, item_count=item_count, form_count=len(form_ids))

    def clear_all_storage(self) -> None:
        """Remove every key under this namespace."""

        try:
            for key in self._namespaced_keys():
                self.store.remove(key)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to clear storage namespace %s", self.namespace)


__all__ = [
    "FormStorage",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "SessionStateStore",
    "StorageInfo",
    "new_draft_id",
]
