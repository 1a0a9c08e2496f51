# lit_curation/cli/pipeline_cli.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from lit_curation.config.settings import get_settings
from lit_curation.errors import CurationError
from lit_curation.models import PaperState
from lit_curation.workflow.orchestrator import Orchestrator
from lit_curation.workflow.processors import BatchOutcome
from lit_curation.workflow.review import ReviewEntry, render_review_text
from lit_curation.workflow.session import Session, SessionUpdate
from lit_curation.workflow.stages import Stage

app = typer.Typer(help="End-to-end pipeline: keywords -> search -> download -> process -> verify.")
console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def build_orchestrator(
    download_dir: Optional[Path] = None,
    max_results: Optional[int] = None,
) -> Orchestrator:
    """Orchestrator wired with the bundled HTTP clients; tests patch this."""
    orchestrator = Orchestrator.from_settings()
    if download_dir is not None:
        orchestrator.download_dir = download_dir
    if max_results is not None:
        orchestrator.max_results = max_results
    return orchestrator


def _print_update(update: SessionUpdate) -> None:
    if update.kind == "paper" and update.item is not None:
        paper = update.item
        if paper.status.state is PaperState.FAILED:
            console.print(f"  [red]x[/red] {paper.title} [dim]({paper.status.message})[/dim]")
        elif paper.status.state is PaperState.DOWNLOADING:
            console.print(f"  [dim]{update.message}[/dim] {paper.doi}")
        else:
            console.print(f"  [green]{paper.status.state.value}[/green] {paper.title}")
    elif update.kind == "claim" and update.item is not None:
        claim = update.item
        console.print(f"  [cyan]{claim.verification_status}[/cyan] {claim.text}")


def _check(outcome: BatchOutcome) -> None:
    if outcome.aborted:
        console.print(f"[red]{outcome.name} failed:[/red] {outcome.last_error}")
        raise typer.Exit(code=1)
    console.print(f"[dim]{outcome.summary()}[/dim]")


def _papers_table(session: Session) -> Table:
    tbl = Table(title=f"Papers ({len(session.papers)})")
    tbl.add_column("#", justify="right")
    tbl.add_column("Title", overflow="fold")
    tbl.add_column("DOI", overflow="fold")
    tbl.add_column("Status")
    for idx, paper in enumerate(session.papers, start=1):
        tbl.add_row(str(idx), paper.title, paper.doi, str(paper.status))
    return tbl


def _print_review(entries: List[ReviewEntry]) -> None:
    if not entries:
        console.print("[yellow]No verified claims.[/yellow]")
        return
    for entry in entries:
        console.print(f"[bold]{entry.text}[/bold]")
        if not entry.supporting_titles:
            console.print("  (no supporting papers in the collection)")
        for title in entry.supporting_titles:
            console.print(f"  - {title}")


def _enter(session: Session, stage: Stage) -> None:
    session.go_to(stage)
    console.rule(f"[bold cyan]{stage.label}[/bold cyan]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("run")
def run_pipeline(
    topic: Optional[str] = typer.Option(
        None,
        "--topic",
        "-t",
        help="Research topic; used to generate keywords when --keywords is not given.",
    ),
    keywords: Optional[str] = typer.Option(
        None,
        "--keywords",
        "-k",
        help="Comma-separated search keywords (skips keyword generation).",
    ),
    claims: List[str] = typer.Option(
        None,
        "--claim",
        "-c",
        help="Claim to verify against the papers. Can be passed multiple times.",
    ),
    dois: List[str] = typer.Option(
        None,
        "--doi",
        help="Extra DOI to queue alongside the search results. Can be passed multiple times.",
    ),
    max_results: Optional[int] = typer.Option(
        None,
        "--max-results",
        "-n",
        min=1,
        help="Search result ceiling. Defaults to settings.SEARCH_MAX_RESULTS.",
    ),
    download_dir: Optional[Path] = typer.Option(
        None,
        "--download-dir",
        "-d",
        help="Where PDFs are saved. Defaults to settings.download_dir.",
    ),
    skip_download: bool = typer.Option(False, "--skip-download", help="Stop before downloading PDFs."),
    skip_process: bool = typer.Option(False, "--skip-process", help="Do not rename / extract PDFs."),
    skip_verify: bool = typer.Option(False, "--skip-verify", help="Do not verify claims."),
    review_file: Optional[Path] = typer.Option(
        None,
        "--review-file",
        "-o",
        help="Also write the final review as plain text to this file.",
    ),
):
    """
    Run every stage of one curation session in a single process.
    """
    logging.basicConfig(level=get_settings().LOG_LEVEL.upper())

    orchestrator = build_orchestrator(download_dir=download_dir, max_results=max_results)
    session = orchestrator.session
    session.subscribe(_print_update)

    try:
        # 1. Topic -> keywords
        _enter(session, Stage.TOPIC_DEFINITION)
        if topic:
            session.set_topic(topic)
        if keywords:
            session.set_keywords(keywords)
        elif topic:
            _check(orchestrator.generate_keywords())
        console.print(f"Keywords: [bold]{session.keywords or '(none)'}[/bold]")

        if not session.keyword_list and not dois:
            console.print("[red]ERROR: No keywords or DOIs to work with (use --topic, --keywords or --doi).[/red]")
            raise typer.Exit(code=1)

        # 2. Search + manual DOIs
        _enter(session, Stage.FETCHING_PAPERS)
        if session.keyword_list:
            _check(orchestrator.search())
        if dois:
            session.add_dois(dois)
        console.print(_papers_table(session))

        # 3. Download
        if not skip_download:
            _enter(session, Stage.DOWNLOADING_PDFS)
            _check(orchestrator.download())

            # 4. Rename + extract
            if not skip_process:
                _enter(session, Stage.PROCESSING_PDFS)
                _check(orchestrator.process())

        # 5. Claims
        _enter(session, Stage.CLAIM_VERIFICATION)
        for text in claims or []:
            session.add_claim(text)
        if session.claims and not skip_verify:
            _check(orchestrator.verify())
    except CurationError as exc:
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=1)

    # 6. Review
    _enter(session, Stage.FINAL_REVIEW)
    console.print(_papers_table(session))
    entries = orchestrator.review()
    _print_review(entries)
    if review_file is not None:
        review_file.write_text(render_review_text(entries) + "\n", encoding="utf-8")
        console.print(f"Review written to {review_file}")
    console.print(f"[green]{session.status_message}[/green]")


@app.command("stages")
def list_stages():
    """
    List the pipeline stages in order.
    """
    tbl = Table(title="Stages")
    tbl.add_column("#", justify="right")
    tbl.add_column("Stage")
    for stage in Stage:
        tbl.add_row(str(int(stage)), stage.label)
    console.print(tbl)
