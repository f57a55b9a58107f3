"""Typer CLI entrypoint for the hiring panel."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from .config import read_yaml
from .container import HiringContainer, create_container
from .errors import Outcome
from .logging import configure_logging
from .schemas.config import AppConfig, load_config
from .service import HiringService

app = typer.Typer(help="Reviewer assignment and interview lifecycle CLI.")

OPERATIONS = frozenset(
    {
        "refer",
        "delete_referral",
        "view_referrals",
        "configure_reviewer",
        "grant_authority",
        "remove_reviewer",
        "remove_role",
        "reviewer_summary",
        "start_interview",
        "locate",
        "create_or_update_task",
        "set_work",
        "show_work",
        "delete_task",
        "review_task",
        "evaluate_task",
        "task_list",
        "status",
        "finalize_tasks",
        "review_interview",
        "evaluate_interview",
        "close_interview",
        "decide_hire",
        "generate_report",
        "status_counts",
    }
)


def _load_settings(config: Optional[Path]) -> AppConfig:
    if config is None:
        return AppConfig()
    try:
        return load_config(read_yaml(config))
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="config") from exc


def _load_roster(roster: Path) -> dict[str, Any]:
    loaded = read_yaml(roster)
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Roster file must be a YAML object", param_name="roster")
    return loaded


def _build(app_config: AppConfig, roster: dict[str, Any]) -> HiringContainer:
    settings = app_config.to_settings()
    if roster.get("admin") and "admin_id" not in settings["service"]:
        settings["service"]["admin_id"] = str(roster["admin"])
    container = create_container(settings=settings)
    _seed(container.service(), settings["service"].get("admin_id"), roster)
    return container


def _seed(service: HiringService, admin_id: Optional[str], roster: dict[str, Any]) -> None:
    """Register reviewers and referrals listed in the roster."""
    for reviewer in roster.get("reviewers") or []:
        reviewer_id = str(reviewer["id"])
        for role in reviewer.get("roles") or []:
            _expect(
                service.grant_authority(
                    admin_id or "",
                    reviewer_id,
                    role["specialization"],
                    role.get("authority", "NONE"),
                ),
                f"grant {reviewer_id}",
            )
            _expect(
                service.configure_reviewer(
                    reviewer_id,
                    role["specialization"],
                    willing=True,
                    queue_max=role.get("queue_max"),
                    can_interview=role.get("willing_to_interview", True),
                ),
                f"configure {reviewer_id}",
            )
    for referral in roster.get("referrals") or []:
        _expect(
            service.refer(
                str(referral["referrer_id"]),
                str(referral["candidate_id"]),
                referral.get("specializations") or [],
                candidate_name=referral.get("candidate_name"),
                rating=referral.get("rating", 3),
                notes=referral.get("notes", ""),
            ),
            f"refer {referral['candidate_id']}",
        )


def _expect(outcome: Outcome, what: str) -> None:
    if not outcome.ok:
        raise typer.BadParameter(f"{what}: {outcome.message}", param_name="roster")


def _render(step: int, operation: str, outcome: Outcome) -> str:
    status = "ok" if outcome.ok else outcome.kind.value
    return f"[{step}] {operation}: {status}\n{outcome.message}"


@app.command("check-config")
def check_config(
    config: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="YAML config path."),
) -> None:
    """Validate a YAML config file and print the effective settings."""
    app_config = _load_settings(config)
    typer.echo(json.dumps(app_config.to_settings(), indent=2, sort_keys=True))


@app.command()
def capacity(
    roster: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Roster YAML path."),
    reviewer: str = typer.Option(..., help="Reviewer id to summarize."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Print the capacity table of one reviewer."""
    configure_logging(log_level)
    container = _build(_load_settings(config), _load_roster(roster))
    outcome = container.service().reviewer_summary(reviewer)
    typer.echo(outcome.message)
    if not outcome.ok:
        raise typer.Exit(code=1)


@app.command()
def simulate(
    roster: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Roster YAML path."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, resolve_path=True, help="Store dump output (JSON)."),
    strict: bool = typer.Option(False, help="Exit non-zero when any step fails."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Replay the roster's steps against an in-memory store and scripted chat."""
    configure_logging(log_level)
    loaded = _load_roster(roster)
    container = _build(_load_settings(config), loaded)
    service = container.service()
    transport = container.transport()

    for target, responses in (loaded.get("answers") or {}).items():
        transport.answer(str(target), *(responses or []))

    failures = 0
    for index, step in enumerate(loaded.get("steps") or [], start=1):
        operation = step.get("op")
        if operation not in OPERATIONS:
            raise typer.BadParameter(f"Unknown operation in step {index}: {operation!r}", param_name="roster")
        try:
            outcome = getattr(service, operation)(**(step.get("args") or {}))
        except TypeError as exc:
            raise typer.BadParameter(f"Invalid arguments in step {index}: {exc}", param_name="roster") from exc
        failures += 0 if outcome.ok else 1
        typer.echo(_render(index, operation, outcome))

    if output:
        output.write_text(json.dumps(container.store().dump(), indent=2), encoding="utf-8")
        typer.echo(f"Store saved to {output}.")
    if strict and failures:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
