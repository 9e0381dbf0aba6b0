"""Tests for artifact stores and bundle persistence."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from rivalscope.errors import ArtifactStoreError
from rivalscope.models.bundle import BUNDLE_ARTIFACT_KIND, BundleMeta, EvidenceBundle
from rivalscope.storage.artifacts import (
    FileArtifactStore,
    MemoryArtifactStore,
    read_latest_bundle,
    write_bundle,
)


def _bundle(company: str) -> EvidenceBundle:
    return EvidenceBundle(
        meta=BundleMeta(
            company=company,
            harvested_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            limit_per_category=5,
        )
    )


def test_file_store_returns_latest_of_kind(tmp_path: Path) -> None:
    """The newest artifact of the requested kind wins; other kinds are ignored."""

    store = FileArtifactStore(tmp_path)
    store.append("p1", "note", {"n": 1})
    store.append("p1", BUNDLE_ARTIFACT_KIND, {"v": 1})
    store.append("p1", BUNDLE_ARTIFACT_KIND, {"v": 2})
    store.append("p1", "note", {"n": 2})

    latest = store.latest("p1", BUNDLE_ARTIFACT_KIND)
    assert latest is not None and latest.payload == {"v": 2}
    assert store.latest("p2", BUNDLE_ARTIFACT_KIND) is None


def test_bundles_persist_across_store_instances(tmp_path: Path) -> None:
    """A bundle written by one store instance is read back by another."""

    write_bundle(FileArtifactStore(tmp_path), "p1", _bundle("Old"))
    write_bundle(FileArtifactStore(tmp_path), "p1", _bundle("New"))

    bundle = read_latest_bundle(FileArtifactStore(tmp_path), "p1")
    assert bundle is not None
    assert bundle.meta.company == "New"
    assert read_latest_bundle(FileArtifactStore(tmp_path), "missing") is None


def test_project_ids_cannot_escape_the_root(tmp_path: Path) -> None:
    """Unsafe characters in project ids are replaced."""

    store = FileArtifactStore(tmp_path / "artifacts")
    path = store.path_for("../../etc/passwd")
    assert path.parent == tmp_path / "artifacts"


def test_ids_that_sanitize_alike_stay_separate(tmp_path: Path) -> None:
    """Project ids differing only in unsafe characters never read each other's artifacts."""

    store = FileArtifactStore(tmp_path)
    store.append("acme/x", BUNDLE_ARTIFACT_KIND, {"who": "acme/x"})

    assert store.path_for("acme/x") != store.path_for("acme_x")
    assert store.latest("acme_x", BUNDLE_ARTIFACT_KIND) is None

    # A foreign record in a project file is ignored too.
    foreign = store.path_for("acme/x").read_text(encoding="utf-8")
    store.path_for("acme_x").write_text(foreign, encoding="utf-8")
    assert store.latest("acme_x", BUNDLE_ARTIFACT_KIND) is None
    latest = store.latest("acme/x", BUNDLE_ARTIFACT_KIND)
    assert latest is not None and latest.payload == {"who": "acme/x"}


def test_invalid_stored_bundle_raises() -> None:
    """A corrupted bundle payload is reported as an artifact store error."""

    store = MemoryArtifactStore()
    store.append("p1", BUNDLE_ARTIFACT_KIND, {"meta": {"company": "Acme"}})
    with pytest.raises(ArtifactStoreError):
        read_latest_bundle(store, "p1")
