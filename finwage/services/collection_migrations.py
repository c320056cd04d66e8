"""Schema migrations for PocketBase collections.

Migration modules live in ``migrations/versions`` and are named
``<timestamp>_<name>.py``. Each one defines ``revision``, ``description``,
``upgrade(op)`` and ``downgrade(op)``; ``op`` is a :class:`MigrationOps`
bound to an authenticated :class:`PocketBaseClient`.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import os
import re
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Dict, List, Optional

from integrations.pocketbase.client import PocketBaseClient, PocketBaseError

logger = logging.getLogger(__name__)

VERSIONS_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "migrations",
    "versions",
)
VERSION_FILE_RE = re.compile(r"^(\d+)_\w+\.py$")

_UNSET = object()


class MigrationError(Exception):
    """A migration could not be applied or rolled back."""


class MigrationOps:
    """Collection-level operations available to migration scripts.

    Every operation reads the collection, changes it and PATCHes the result
    back, mirroring how the PocketBase admin UI saves a collection.
    """

    def __init__(self, client: PocketBaseClient) -> None:
        self.client = client

    def _save(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Updating collection %s: %s", collection, sorted(payload))
        return self.client.update_collection(collection, payload)

    def set_rules(
        self,
        collection: str,
        *,
        listRule: Any = _UNSET,  # noqa: N803
        viewRule: Any = _UNSET,  # noqa: N803
        createRule: Any = _UNSET,  # noqa: N803
        updateRule: Any = _UNSET,  # noqa: N803
        deleteRule: Any = _UNSET,  # noqa: N803
    ) -> Dict[str, Any]:
        """Set API rules; ``""`` opens a rule to everyone, ``None`` restricts it to superusers."""
        rules = {
            name: value
            for name, value in (
                ("listRule", listRule),
                ("viewRule", viewRule),
                ("createRule", createRule),
                ("updateRule", updateRule),
                ("deleteRule", deleteRule),
            )
            if value is not _UNSET
        }
        if not rules:
            raise MigrationError("set_rules needs at least one rule")
        return self._save(collection, rules)

    def rename_collection(self, collection: str, new_name: str) -> Dict[str, Any]:
        return self._save(collection, {"name": new_name})

    def _fields(self, collection: str) -> List[Dict[str, Any]]:
        data = self.client.get_collection(collection)
        return list(data.get("fields") or [])

    def add_field(self, collection: str, field: Dict[str, Any], index: Optional[int] = None) -> Dict[str, Any]:
        """Add ``field``; a field with the same id is replaced in place."""
        fields = self._fields(collection)
        field_id = field.get("id")
        existing = [i for i, f in enumerate(fields) if field_id and f.get("id") == field_id]
        if existing:
            fields[existing[0]] = {**fields[existing[0]], **field}
        elif index is None or index >= len(fields):
            fields.append(dict(field))
        else:
            fields.insert(index, dict(field))
        return self._save(collection, {"fields": fields})

    def remove_field(self, collection: str, field_id: str) -> Dict[str, Any]:
        fields = self._fields(collection)
        remaining = [f for f in fields if f.get("id") != field_id]
        if len(remaining) == len(fields):
            raise MigrationError(f"Field {field_id!r} not found on collection {collection!r}")
        return self._save(collection, {"fields": remaining})

    def rename_field(self, collection: str, old_name: str, new_name: str) -> Dict[str, Any]:
        fields = self._fields(collection)
        for field in fields:
            if field.get("name") == old_name:
                field["name"] = new_name
                break
        else:
            if any(f.get("name") == new_name for f in fields):
                logger.info("Field %s.%s already renamed to %s", collection, old_name, new_name)
                return {}
            raise MigrationError(f"Field {old_name!r} not found on collection {collection!r}")
        return self._save(collection, {"fields": fields})


@dataclass
class MigrationScript:
    revision: str
    description: str
    path: str
    module: ModuleType

    def upgrade(self, op: MigrationOps) -> None:
        self.module.upgrade(op)

    def downgrade(self, op: MigrationOps) -> None:
        self.module.downgrade(op)


def load_scripts(versions_dir: str = VERSIONS_DIR) -> List[MigrationScript]:
    """Load every migration module in ``versions_dir``, oldest first."""
    scripts = []
    for filename in sorted(os.listdir(versions_dir)):
        if not VERSION_FILE_RE.match(filename):
            continue
        path = os.path.join(versions_dir, filename)
        spec = importlib.util.spec_from_file_location(f"pb_migration_{filename[:-3]}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        revision = getattr(module, "revision", filename[:-3])
        scripts.append(
            MigrationScript(
                revision=revision,
                description=getattr(module, "description", "") or (module.__doc__ or "").strip(),
                path=path,
                module=module,
            )
        )
    scripts.sort(key=lambda s: int(VERSION_FILE_RE.match(os.path.basename(s.path)).group(1)))
    return scripts


class MigrationRunner:
    """Apply and roll back collection migrations, tracking state in a JSON file."""

    def __init__(self, client: PocketBaseClient, state_file: str, versions_dir: str = VERSIONS_DIR) -> None:
        self.ops = MigrationOps(client)
        self.state_file = state_file
        self.scripts = load_scripts(versions_dir)

    # ------------------------------------------------------------------
    # state
    def applied(self) -> List[str]:
        if not os.path.exists(self.state_file):
            return []
        with open(self.state_file, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return list(data.get("applied", []))

    def _write_applied(self, applied: List[str]) -> None:
        directory = os.path.dirname(self.state_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.state_file + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump({"applied": applied}, fh, indent=2)
        os.replace(tmp_path, self.state_file)

    # ------------------------------------------------------------------
    # commands
    def status(self) -> List[Dict[str, Any]]:
        applied = set(self.applied())
        return [
            {"revision": s.revision, "description": s.description, "applied": s.revision in applied}
            for s in self.scripts
        ]

    def upgrade(self, target: Optional[str] = None) -> List[str]:
        """Apply pending migrations up to and including ``target`` (default: all)."""
        if target and target not in {s.revision for s in self.scripts}:
            raise MigrationError(f"Unknown revision {target!r}")

        applied = self.applied()
        done: List[str] = []
        for script in self.scripts:
            if script.revision not in applied:
                logger.info("Applying migration %s: %s", script.revision, script.description)
                try:
                    script.upgrade(self.ops)
                except PocketBaseError as exc:
                    raise MigrationError(f"Migration {script.revision} failed: {exc}") from exc
                applied.append(script.revision)
                self._write_applied(applied)
                done.append(script.revision)
            if script.revision == target:
                break
        return done

    def downgrade(self, steps: int = 1) -> List[str]:
        """Roll back the ``steps`` most recently applied migrations, newest first."""
        applied = self.applied()
        by_revision = {s.revision: s for s in self.scripts}
        done: List[str] = []
        for revision in reversed(applied[-steps:] if steps > 0 else []):
            script = by_revision.get(revision)
            if script is None:
                raise MigrationError(f"Applied revision {revision!r} has no migration file")
            logger.info("Reverting migration %s: %s", script.revision, script.description)
            try:
                script.downgrade(self.ops)
            except PocketBaseError as exc:
                raise MigrationError(f"Rollback of {script.revision} failed: {exc}") from exc
            applied.remove(revision)
            self._write_applied(applied)
            done.append(revision)
        return done
