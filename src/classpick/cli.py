"""Typer CLI entrypoint for classpick."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import typer
import yaml

from classpick.config import AppSettings, MalformedHeaderPolicy, load_settings
from classpick.errors import ClasspickConfigError, ClasspickError
from classpick.logging_utils import LOG_FILE_NAME, configure_logging
from classpick.sync.models import SyncRequest, SyncRunOptions, SyncRunResult
from classpick.sync.pipeline import check_run_paths, run_sync, run_version_scan, validate_request

EXIT_ABORTED = 1
EXIT_CONFIG_ERROR = 2
EXIT_RUN_ERROR = 3

SEPARATOR_LINE = "-" * 40

app = typer.Typer(
    add_completion=False,
    help="Copy the compiled class files that belong to a Java source tree.",
    no_args_is_help=True,
)


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    configure: bool,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file)
    if configure:
        logger = configure_logging(settings.paths.logs_root / LOG_FILE_NAME)
    else:
        logger = logging.getLogger("classpick")
    return settings, logger


def _normalize_choice(value: str | None, *, allowed: set[str], option_name: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in allowed:
        allowed_rendered = ",".join(sorted(allowed))
        raise typer.BadParameter(f"{option_name} must be one of: {allowed_rendered}")
    return normalized


def _echo_sync_result(result: SyncRunResult) -> None:
    if result.auxiliary_log:
        typer.echo("Auxiliary files:")
        for record in result.auxiliary_log:
            typer.echo(f"auxiliary: {record.relative_path.as_posix()}, size_bytes: {record.size_bytes}")
        typer.echo(SEPARATOR_LINE)

    if result.status == "ABORTED":
        typer.echo("No class files were copied; these source files have no matching class file:", err=True)
        for item in result.unresolved:
            typer.echo(f"unresolved: {item.source.relative_path.as_posix()} ({item.reason})", err=True)
        typer.echo(f"run_id: {result.run_id}")
        if result.summary_path is not None:
            typer.echo(f"summary_path: {result.summary_path}")
        return

    current_source: Path | None = None
    for record in result.artifact_log:
        if record.source_path != current_source:
            typer.echo(SEPARATOR_LINE)
            current_source = record.source_path
        typer.echo(
            f"source: {record.source_path.as_posix()}, class: {record.artifact_path.as_posix()}, "
            f"size_bytes: {record.size_bytes}, version: {record.version}"
        )
    typer.echo(SEPARATOR_LINE)

    summary = result.summary
    typer.echo(f"run_id: {result.run_id}")
    typer.echo(f"dry_run: {result.dry_run}")
    typer.echo(f"source_count: {summary.source_count}")
    typer.echo(f"class_count: {summary.artifact_count}")
    typer.echo(f"auxiliary_count: {summary.auxiliary_count}")
    typer.echo(f"copied_total: {summary.copied_total}")
    if len(summary.version_counts) > 1:
        typer.echo("version_counts:")
        for version, count in summary.version_counts.items():
            typer.echo(f"  {version}: {count}")
    elif summary.version_counts:
        typer.echo(f"version: {next(iter(summary.version_counts))}")
    if result.summary_path is not None:
        typer.echo(f"summary_path: {result.summary_path}")
        typer.echo(f"artifact_log_path: {result.artifact_log_path}")
    if summary.multiple_versions:
        typer.echo("WARNING: class files target more than one JDK version.", err=True)


@app.command("sync")
def sync_cmd(
    source_dir: Path = typer.Option(
        ...,
        "--source-dir",
        "-s",
        help="Source tree containing .java files.",
    ),
    class_dir: Path = typer.Option(
        ...,
        "--class-dir",
        "-c",
        help="Compiled class tree.",
    ),
    output_dir: Path = typer.Option(
        ...,
        "--output-dir",
        "-o",
        help="Output directory (created if missing).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Resolve and classify without copying anything.",
    ),
    allow_nested_only: bool = typer.Option(
        False,
        "--allow-nested-only",
        help="Accept sources that only have nested ($-suffixed) class files.",
    ),
    malformed_policy: str | None = typer.Option(
        None,
        "--malformed-policy",
        help="What to do with class files failing the header check: abort or warn.",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Copy auxiliary files, then every class file matching a source file."""

    normalized_policy = _normalize_choice(
        malformed_policy,
        allowed={"abort", "warn"},
        option_name="malformed-policy",
    )
    settings, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    request = SyncRequest(source_dir=source_dir, class_dir=class_dir, output_dir=output_dir)
    try:
        check_run_paths(settings, validate_request(request))
    except ClasspickConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc

    logger = configure_logging(settings.paths.logs_root / LOG_FILE_NAME)
    options = SyncRunOptions(
        dry_run=dry_run,
        require_primary=settings.matching.require_primary and not allow_nested_only,
        malformed_header_policy=cast(
            MalformedHeaderPolicy,
            normalized_policy or settings.headers.malformed_policy,
        ),
        progress_every=settings.report.progress_every,
    )

    try:
        result = run_sync(settings, request, options=options, logger=logger)
    except ClasspickConfigError as exc:
        logger.error("sync.config_error error=%s", exc)
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    except ClasspickError as exc:
        logger.error("sync.failed error=%s", exc)
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_RUN_ERROR) from exc

    _echo_sync_result(result)
    if result.status == "ABORTED":
        raise typer.Exit(code=EXIT_ABORTED)


@app.command("scan-versions")
def scan_versions_cmd(
    class_dir: Path = typer.Option(
        ...,
        "--class-dir",
        "-c",
        help="Compiled class tree to inspect.",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Report the JDK version of every class file without copying."""

    settings, logger = _load_and_optionally_configure_logger(config_file, configure=True)
    try:
        result = run_version_scan(
            class_dir,
            artifact_suffix=settings.matching.artifact_suffix,
            logger=logger,
        )
    except ClasspickConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    except ClasspickError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_RUN_ERROR) from exc

    typer.echo(f"class_dir: {result.class_dir}")
    typer.echo(f"class_count: {len(result.entries)}")
    typer.echo("version_counts:")
    for version, count in result.version_counts.items():
        typer.echo(f"  {version}: {count}")
    if result.multiple_versions:
        typer.echo("WARNING: class files target more than one JDK version.", err=True)


@app.command("show-config")
def show_config(
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Print the effective configuration after env overrides."""

    settings, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
