"""
Project state storage for Slab Visualizer.

Keeps one JSON record per project so the generation pipeline can report
status transitions (pending -> processing -> completed | failed) and the
final result reference.

The record schema includes:
- schema_version, id, created_at, updated_at
- status
- result_image_url, prompt_used
- error, failed_stage (on failure)
- any extra caller fields (e.g. name, slab_id, reference_image_url)
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import threading
import uuid

from SV_Libs.constants import (
    FIELD_CREATED_AT,
    FIELD_PROJECT_ID,
    FIELD_SCHEMA_VERSION,
    FIELD_STATUS,
    FIELD_UPDATED_AT,
    FILENAME_REPLACEMENT_CHAR,
    PROJECT_EXTENSION,
    PROJECT_STATUS_COMPLETED,
    PROJECT_STATUS_FAILED,
    PROJECT_STATUS_PENDING,
    PROJECT_STATUS_PROCESSING,
    SAFE_FILENAME_CHARS,
    SCHEMA_VERSION,
)

logger = logging.getLogger(__name__)

PROJECT_STATUSES = {
    PROJECT_STATUS_PENDING,
    PROJECT_STATUS_PROCESSING,
    PROJECT_STATUS_COMPLETED,
    PROJECT_STATUS_FAILED,
}


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class ProjectStateStore:
    """JSON-file record store, one file per project id."""

    def __init__(self, directory: Any):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, project_id: str) -> Path:
        safe_id = "".join(
            c if c.isalnum() or c in SAFE_FILENAME_CHARS else FILENAME_REPLACEMENT_CHAR
            for c in str(project_id)
        ).strip(FILENAME_REPLACEMENT_CHAR)

        if not safe_id:
            raise ValueError(f"Invalid project id: {project_id!r}")

        return self.directory / f"{safe_id}{PROJECT_EXTENSION}"

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable project record {path}: {e}")
            return {}

        return payload if isinstance(payload, dict) else {}

    def _write(self, path: Path, payload: Dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def create_project(self, project_id: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
        """
        Create a pending project record.

        Args:
            project_id: Record id (random UUID if omitted)
            **fields: Extra fields to store

        Returns:
            The stored record

        Raises:
            FileExistsError: If a record with this id exists
        """
        project_id = str(project_id or uuid.uuid4())
        path = self._path(project_id)

        with self._lock:
            if path.exists():
                raise FileExistsError(f"Project already exists: {project_id}")

            timestamp = _now()
            payload: Dict[str, Any] = dict(fields)
            payload.update({
                FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
                FIELD_PROJECT_ID: project_id,
                FIELD_STATUS: PROJECT_STATUS_PENDING,
                FIELD_CREATED_AT: timestamp,
                FIELD_UPDATED_AT: timestamp,
            })
            self._write(path, payload)

        return payload

    def load_project_state(self, project_id: str) -> Dict[str, Any]:
        """
        Load a project record.

        Raises:
            KeyError: If no record exists for project_id
        """
        path = self._path(project_id)
        payload = self._read(path)
        if not payload:
            raise KeyError(f"No project record for id: {project_id}")
        return payload

    def persist_project_state(self, project_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge fields into a project record, creating it if needed.

        Args:
            project_id: Record id
            fields: Fields to set; "status" must be a known project status

        Returns:
            The stored record

        Raises:
            ValueError: If status is not a known project status
        """
        status = fields.get(FIELD_STATUS)
        if status is not None and status not in PROJECT_STATUSES:
            raise ValueError(f"Unknown project status: {status}")

        path = self._path(project_id)

        with self._lock:
            payload = self._read(path)
            if not payload:
                payload = {
                    FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
                    FIELD_PROJECT_ID: str(project_id),
                    FIELD_STATUS: PROJECT_STATUS_PENDING,
                    FIELD_CREATED_AT: _now(),
                }

            payload.update(fields)
            payload[FIELD_UPDATED_AT] = _now()
            self._write(path, payload)

        logger.debug(f"Project {project_id} state: {payload.get(FIELD_STATUS)}")
        return payload

    def list_projects(self) -> List[str]:
        """Sorted ids of stored projects."""
        if not self.directory.exists():
            return []
        return sorted(path.stem for path in self.directory.glob(f"*{PROJECT_EXTENSION}"))
