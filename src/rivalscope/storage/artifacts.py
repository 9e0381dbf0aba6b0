"""Project-scoped, append-only artifact storage.

Each artifact is a typed JSON payload with a creation timestamp. The pipeline only writes
evidence bundles and reads back the most recent one per project.
"""

from __future__ import annotations

import hashlib
import json
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from rivalscope.errors import ArtifactStoreError
from rivalscope.logging import get_logger
from rivalscope.models.bundle import BUNDLE_ARTIFACT_KIND, EvidenceBundle
from rivalscope.models.cache import utcnow

logger = get_logger(__name__)

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]+")


class Artifact(BaseModel):
    project_id: str
    kind: str
    payload: dict[str, Any]
    created_at: datetime = Field(default_factory=utcnow)


class ArtifactStore(Protocol):
    def append(self, project_id: str, kind: str, payload: dict[str, Any]) -> Artifact:
        ...

    def latest(self, project_id: str, kind: str) -> Artifact | None:
        ...


def _latest(artifacts: list[Artifact], kind: str) -> Artifact | None:
    # Ties on created_at go to the later append.
    best: Artifact | None = None
    for a in artifacts:
        if a.kind == kind and (best is None or a.created_at >= best.created_at):
            best = a
    return best


@dataclass
class MemoryArtifactStore:
    _items: dict[str, list[Artifact]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def append(self, project_id: str, kind: str, payload: dict[str, Any]) -> Artifact:
        artifact = Artifact(project_id=project_id, kind=kind, payload=payload)
        with self._lock:
            self._items.setdefault(project_id, []).append(artifact)
        return artifact

    def latest(self, project_id: str, kind: str) -> Artifact | None:
        with self._lock:
            return _latest(list(self._items.get(project_id, [])), kind)


@dataclass
class FileArtifactStore:
    """Append-only JSONL file per project under `root`."""

    root: Path

    def __post_init__(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, project_id: str) -> Path:
        # Distinct ids map to distinct files even when their sanitized stems collide.
        safe = _SAFE_ID.sub("_", project_id).strip("._") or "project"
        digest = hashlib.sha256(project_id.encode("utf-8")).hexdigest()[:12]
        return self.root / f"{safe}-{digest}.jsonl"

    def append(self, project_id: str, kind: str, payload: dict[str, Any]) -> Artifact:
        artifact = Artifact(project_id=project_id, kind=kind, payload=payload)
        line = json.dumps(artifact.model_dump(mode="json"), ensure_ascii=False)
        try:
            with self.path_for(project_id).open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise ArtifactStoreError(f"Failed to append artifact for project {project_id}: {e}") from e
        return artifact

    def iter_artifacts(self, project_id: str) -> list[Artifact]:
        path = self.path_for(project_id)
        artifacts: list[Artifact] = []
        if not path.exists():
            return artifacts
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                artifact = Artifact.model_validate_json(line)
            except ValidationError:
                logger.warning("Skipping unreadable artifact line", extra={"path": str(path)})
                continue
            if artifact.project_id == project_id:
                artifacts.append(artifact)
        return artifacts

    def latest(self, project_id: str, kind: str) -> Artifact | None:
        return _latest(self.iter_artifacts(project_id), kind)


def write_bundle(store: ArtifactStore, project_id: str, bundle: EvidenceBundle) -> Artifact:
    return store.append(project_id, BUNDLE_ARTIFACT_KIND, bundle.to_payload())


def read_latest_bundle(store: ArtifactStore, project_id: str) -> EvidenceBundle | None:
    """Most recently created bundle for a project, or None when there is none."""

    artifact = store.latest(project_id, BUNDLE_ARTIFACT_KIND)
    if artifact is None:
        return None
    try:
        return EvidenceBundle.from_payload(artifact.payload)
    except ValidationError as e:
        raise ArtifactStoreError(f"Stored evidence bundle for project {project_id} is invalid: {e}") from e
