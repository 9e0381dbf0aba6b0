"""CLI entrypoints for Rivalscope."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from rivalscope.config import load_settings
from rivalscope.errors import ConfigError
from rivalscope.evidence.cache import EvidenceCache
from rivalscope.evidence.coverage import coverage_from_rows
from rivalscope.evidence.packs import HarvestContext
from rivalscope.llm.client import LLMClient
from rivalscope.logging import configure_logging, get_logger
from rivalscope.pipeline import collect_evidence, deep_harvest, evaluate_project
from rivalscope.storage.artifacts import FileArtifactStore
from rivalscope.storage.cache_store import get_cache_store
from rivalscope.tools.page_fetcher import HttpContentExtractor
from rivalscope.tools.web_search import get_search_provider

app = typer.Typer(add_completion=False, help="Rivalscope competitor evidence CLI")
logger = get_logger(__name__)


def _emit(payload: object, output: Path | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    typer.echo(str(output))


@app.command()
def harvest(
    project_id: str = typer.Argument(..., help="Project the bundle is stored under"),
    company: str = typer.Option(..., "--company", "-c", help="Competitor company name"),
    url: str | None = typer.Option(None, "--url", help="Competitor website (enables site: queries)"),
    context: str | None = typer.Option(None, "--context", help="Free-text market context"),
    limit: int | None = typer.Option(None, "--limit", min=1, max=50, help="Sources kept per category"),
    artifacts_dir: Path | None = typer.Option(
        None,
        "--artifacts-dir",
        help="Artifacts directory (overrides RIVALSCOPE_ARTIFACTS_DIR)",
    ),
) -> None:
    """Harvest public evidence for a competitor and store a new bundle."""

    settings = load_settings()
    if artifacts_dir is not None:
        settings.artifacts_dir = artifacts_dir
    configure_logging(settings.log_level)

    try:
        search = get_search_provider(settings)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e

    ctx = HarvestContext(company=company, url=url, context=context, limit_per_category=limit)
    bundle = asyncio.run(
        collect_evidence(
            project_id,
            ctx,
            search=search,
            store=FileArtifactStore(settings.artifacts_dir),
            config=settings.pipeline_config(),
        )
    )
    typer.echo(
        f"{bundle.totals.sources} sources, {bundle.totals.unique_domains} domains "
        f"-> {FileArtifactStore(settings.artifacts_dir).path_for(project_id)}"
    )


@app.command()
def coverage(
    project_id: str = typer.Argument(..., help="Project to evaluate"),
    competitor_domain: list[str] | None = typer.Option(
        None, "--competitor-domain", "-d", help="First-party domain (repeatable)"
    ),
    rows_file: Path | None = typer.Option(
        None,
        "--rows-file",
        help="JSON list of persisted evidence rows; uses the simplified scorer instead of the bundle",
    ),
    artifacts_dir: Path | None = typer.Option(None, "--artifacts-dir"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
) -> None:
    """Compute evidence coverage and the confidence label for a project."""

    settings = load_settings()
    if artifacts_dir is not None:
        settings.artifacts_dir = artifacts_dir
    configure_logging(settings.log_level)
    config = settings.pipeline_config()

    if rows_file is not None:
        rows = json.loads(rows_file.read_text(encoding="utf-8"))
        if not isinstance(rows, list):
            raise typer.BadParameter("The rows file must contain a JSON list.")
        result = coverage_from_rows(rows, competitor_domain or (), config=config.coverage)
        _emit(result.model_dump(mode="json"), output)
        return

    report = evaluate_project(
        project_id,
        store=FileArtifactStore(settings.artifacts_dir),
        competitor_domains=competitor_domain,
        config=config,
    )
    _emit(report.model_dump(mode="json"), output)


@app.command("deep-read")
def deep_read(
    urls: list[str] = typer.Argument(None, help="Candidate page URLs"),
    urls_file: Path | None = typer.Option(None, "--urls-file", help="Text file with one URL per line"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
) -> None:
    """Fetch candidate pages, shortlist them and extract claims from the shortlist."""

    candidates = list(urls or [])
    if urls_file is not None:
        candidates += [line.strip() for line in urls_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    if not candidates:
        raise typer.BadParameter("Provide URLs as arguments or via --urls-file.")

    settings = load_settings()
    configure_logging(settings.log_level)
    config = settings.pipeline_config()

    try:
        llm = LLMClient(settings)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e

    extractor = HttpContentExtractor(settings)
    cache = EvidenceCache(get_cache_store(settings), stale_after_days=config.fetch.stale_after_days)
    try:
        result = asyncio.run(deep_harvest(candidates, extractor=extractor, llm=llm, cache=cache, config=config))
    finally:
        extractor.close()

    logger.info("Deep read finished", extra={"claims": len(result.claims)})
    _emit(result.model_dump(mode="json"), output)


if __name__ == "__main__":
    app()
