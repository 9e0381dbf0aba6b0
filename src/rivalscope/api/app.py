"""FastAPI app exposing evidence collection and coverage."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from rivalscope import __version__
from rivalscope.config import PipelineConfig, Settings, load_settings
from rivalscope.errors import ArtifactStoreError, ConfigError
from rivalscope.evidence.packs import HarvestContext
from rivalscope.logging import configure_logging, get_logger
from rivalscope.models.category import HarvestCategory
from rivalscope.models.coverage import EvidenceReport
from rivalscope.pipeline import collect_evidence, evaluate_project
from rivalscope.storage.artifacts import ArtifactStore, FileArtifactStore
from rivalscope.tools.web_search import SearchProvider, get_search_provider


class CollectEvidenceRequest(BaseModel):
    """Collect-evidence request."""

    company: str = Field(min_length=1)
    url: str | None = None
    context: str | None = None
    categories: list[HarvestCategory] | None = None
    limit_per_category: int | None = Field(default=None, ge=1, le=50)


def create_app(
    settings: Settings | None = None,
    *,
    store: ArtifactStore | None = None,
    search: SearchProvider | None = None,
    config: PipelineConfig | None = None,
) -> FastAPI:
    """Create FastAPI app."""

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)

    artifacts = store or FileArtifactStore(settings.artifacts_dir)
    pipeline_config = config or settings.pipeline_config()

    app = FastAPI(title="Rivalscope", version=__version__)

    def _search() -> SearchProvider:
        if search is not None:
            return search
        try:
            return get_search_provider(settings)
        except ConfigError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/projects/{project_id}/collect-evidence")
    async def collect(project_id: str, req: CollectEvidenceRequest) -> dict[str, Any]:
        logger.info("API evidence collection requested", extra={"project_id": project_id, "company": req.company})
        ctx = HarvestContext(**req.model_dump())
        try:
            bundle = await collect_evidence(
                project_id, ctx, search=_search(), store=artifacts, config=pipeline_config
            )
        except ArtifactStoreError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        return bundle.to_payload()

    @app.get("/projects/{project_id}/coverage")
    def coverage(
        project_id: str,
        competitor_domain: list[str] | None = Query(default=None),
    ) -> EvidenceReport:
        logger.info("API coverage requested", extra={"project_id": project_id})
        try:
            return evaluate_project(
                project_id,
                store=artifacts,
                competitor_domains=competitor_domain,
                config=pipeline_config,
            )
        except ArtifactStoreError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e

    return app
