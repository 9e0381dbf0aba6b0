"""Pipeline entry points.

Wires the evidence stages together:

- `collect_evidence`: query packs -> harvest -> persisted bundle.
- `evaluate_project`: latest bundle -> claims -> dedup -> rank -> coverage.
- `deep_harvest`: fetch -> Pass A triage -> shortlist -> Pass B deep extraction.

All tunables arrive through an explicit `PipelineConfig`.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Sequence

from rivalscope.config import PipelineConfig
from rivalscope.evidence.cache import EvidenceCache
from rivalscope.evidence.claims import claims_from_bundle, group_claims
from rivalscope.evidence.coverage import compute_coverage
from rivalscope.evidence.dedup import dedupe_claims
from rivalscope.evidence.deep_read import DeepReader
from rivalscope.evidence.fetcher import ParallelFetcher
from rivalscope.evidence.harvester import Harvester
from rivalscope.evidence.normalize import extract_domain
from rivalscope.evidence.packs import HarvestContext
from rivalscope.evidence.rank import rank_claims
from rivalscope.evidence.shortlist import PageTriager, perform_shortlist
from rivalscope.llm.client import ChatCompleter
from rivalscope.logging import get_logger, run_context, set_stage
from rivalscope.models.bundle import EvidenceBundle
from rivalscope.models.cache import utcnow
from rivalscope.models.claim import EvidenceClaim
from rivalscope.models.coverage import EvidenceReport
from rivalscope.models.page import DeepHarvestResult
from rivalscope.storage.artifacts import ArtifactStore, read_latest_bundle, write_bundle
from rivalscope.tools.page_fetcher import ContentExtractor
from rivalscope.tools.web_search import SearchProvider

logger = get_logger(__name__)


def new_run_id(project_id: str) -> str:
    return f"{project_id}-{uuid.uuid4().hex[:8]}"


async def collect_evidence(
    project_id: str,
    ctx: HarvestContext,
    *,
    search: SearchProvider,
    store: ArtifactStore,
    config: PipelineConfig | None = None,
) -> EvidenceBundle:
    """Harvest evidence for one competitor and persist the bundle as a new artifact."""

    cfg = config or PipelineConfig()
    with run_context(run_id=new_run_id(project_id), stage="harvest"):
        bundle = await Harvester(search=search, config=cfg.harvest).harvest(ctx)
        set_stage("persist")
        write_bundle(store, project_id, bundle)
        logger.info("Evidence bundle stored", extra={"project_id": project_id, "sources": bundle.totals.sources})
    return bundle


def bundle_competitor_domains(bundle: EvidenceBundle) -> list[str]:
    domain = extract_domain(bundle.meta.url) if bundle.meta.url else ""
    return [domain] if domain else []


def evaluate_claims(
    project_id: str,
    claims: Iterable[EvidenceClaim],
    competitor_domains: Sequence[str] = (),
    *,
    config: PipelineConfig | None = None,
    now: datetime | None = None,
) -> EvidenceReport:
    """Dedup, rank and score an arbitrary claim set."""

    cfg = config or PipelineConfig()
    ts = now or utcnow()
    unique = dedupe_claims(claims, cfg.dedup)
    ranked = rank_claims(unique, competitor_domains, now=ts, config=cfg.rank)
    grouped = group_claims(ranked)
    coverage = compute_coverage(grouped, competitor_domains, now=ts, config=cfg.coverage)
    return EvidenceReport(project_id=project_id, claims_by_category=grouped, coverage=coverage)


def evaluate_project(
    project_id: str,
    *,
    store: ArtifactStore,
    competitor_domains: Sequence[str] | None = None,
    extra_claims: Iterable[EvidenceClaim] = (),
    config: PipelineConfig | None = None,
    now: datetime | None = None,
) -> EvidenceReport:
    """Coverage report for the most recent bundle of a project.

    A project without a bundle evaluates to an empty claim set (label ``Insufficient``).
    Competitor domains default to the domain of the harvested company URL.
    """

    with run_context(run_id=new_run_id(project_id), stage="evaluate"):
        bundle = read_latest_bundle(store, project_id)
        claims: list[EvidenceClaim] = list(extra_claims)
        domains: Sequence[str] = competitor_domains or ()
        harvested_at: str | None = None
        if bundle is None:
            logger.info("No evidence bundle for project", extra={"project_id": project_id})
        else:
            claims = claims_from_bundle(bundle) + claims
            harvested_at = bundle.meta.harvested_at.isoformat()
            if competitor_domains is None:
                domains = bundle_competitor_domains(bundle)

        report = evaluate_claims(project_id, claims, domains, config=config, now=now)
        logger.info(
            "Coverage computed",
            extra={
                "project_id": project_id,
                "total_claims": report.coverage.total_claims,
                "confidence_label": report.coverage.confidence_label,
            },
        )
    return report.model_copy(update={"bundle_harvested_at": harvested_at})


async def deep_harvest(
    urls: Sequence[str],
    *,
    extractor: ContentExtractor,
    llm: ChatCompleter,
    cache: EvidenceCache | None = None,
    config: PipelineConfig | None = None,
    run_id: str | None = None,
) -> DeepHarvestResult:
    """Fetch candidate pages, triage them, and deep-read only the shortlist."""

    cfg = config or PipelineConfig()
    with run_context(run_id=run_id or new_run_id("deep"), stage="fetch"):
        batch = await ParallelFetcher(extractor=extractor, cache=cache, config=cfg.fetch).fetch_all(urls)

        set_stage("triage")
        triager = PageTriager(llm=llm, cache=cache, config=cfg.triage)
        shortlist = await perform_shortlist(batch.results, triager, cfg.shortlist)

        set_stage("deep_read")
        claims = await DeepReader(llm=llm, config=cfg.deep_read).read(shortlist.shortlisted)

    return DeepHarvestResult(fetch=batch.stats, shortlist=shortlist, claims=claims)
