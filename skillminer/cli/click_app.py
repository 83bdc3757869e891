"""Command line entrypoint."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import click

from ..config import MineSettings
from ..core.json import dumps
from ..core.log import configure_logging
from ..core.timestamps import format_timestamp
from ..errors import SkillMinerError
from ..manifest import ManifestState, ManifestStore
from ..models import DraftStatus
from ..pipeline.miner import build_components, mine_progressive


def fail(command: str, message: str) -> NoReturn:
    raise SystemExit(f"{command}: {message}")


@dataclass
class AppEnv:
    overrides: dict[str, Any]

    def settings(self, command: str, **extra: Any) -> MineSettings:
        try:
            return MineSettings.load(**self.overrides, **extra)
        except SkillMinerError as exc:
            fail(command, str(exc))

    def store(self, command: str) -> tuple[ManifestStore, ManifestState]:
        settings = self.settings(command)
        store = ManifestStore.for_directory(settings.drafts_dir)
        try:
            return store, store.load()
        except SkillMinerError as exc:
            fail(command, str(exc))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.option("--drafts-dir", type=click.Path(path_type=Path), default=None, help="Drafts directory holding manifest.json")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, drafts_dir: Optional[Path]) -> None:
    """Mine Claude Code history into reusable skill drafts."""
    configure_logging(verbose=verbose, json_logs=json_logs)
    ctx.obj = AppEnv(overrides={"drafts_dir": drafts_dir})


@cli.command("mine")
@click.option("--projects-dir", type=click.Path(path_type=Path), default=None, help="Claude Code projects directory")
@click.option("--max-days", type=int, default=None, help="Lookback limit in days [default: 30]")
@click.option("--max-windows", type=int, default=None, help="Stop after this many windows (0 = unlimited)")
@click.option("--min-messages", type=int, default=None, help="Skip conversations shorter than this [default: 4]")
@click.option("--parallel", type=int, default=None, help="Concurrent extraction calls [default: 4]")
@click.option("--min-significance", type=float, default=None, help="Stop below this significance ratio [default: 0.3]")
@click.option("--model", "ai_model", default=None, help="Model passed to the AI command")
@click.option("--dry-run", is_flag=True, help="Scan and extract without writing drafts or manifest")
@click.pass_obj
def mine_command(env: AppEnv, dry_run: bool, **options: Any) -> None:
    """Scan recent history window by window and draft skills from it."""
    settings = env.settings("mine", **options)
    store = ManifestStore.for_directory(settings.drafts_dir)
    try:
        state = store.load()
        scanner, coordinator = build_components(settings)
        result = mine_progressive(
            settings,
            state,
            scanner=scanner,
            coordinator=coordinator,
            store=store,
            dry_run=dry_run,
        )
    except SkillMinerError as exc:
        fail("mine", str(exc))

    click.echo(
        f"windows: {result.windows_processed}  new: {result.new_conversations}  "
        f"drafts: {len(result.drafts)}  pending: {result.pending}  ai calls: {result.stats.total_calls}"
    )
    for draft in result.drafts:
        click.echo(f"  {draft.name}  ({len(draft.sources)} conversations)")
    if result.stats.extract_failures:
        click.echo(f"{result.stats.extract_failures} topic(s) failed and will be retried next run.")
    if dry_run:
        click.echo("Dry run: nothing written.")


@cli.command("list")
@click.option("--status", "status_filter", type=click.Choice([s.value for s in DraftStatus]), default=None)
@click.option("--json", "as_json", is_flag=True, help="Emit machine-readable output")
@click.pass_obj
def list_command(env: AppEnv, status_filter: Optional[str], as_json: bool) -> None:
    """List draft records."""
    _, state = env.store("list")
    entries = [e for e in state.entries if status_filter is None or e.status.value == status_filter]
    if as_json:
        click.echo(dumps([entry.model_dump(mode="json") for entry in entries], pretty=True))
        return
    if not entries:
        click.echo("No drafts.")
        return
    for entry in entries:
        click.echo(
            f"{entry.slug:<24} {entry.status.value:<9} patterns={entry.pattern_count} "
            f"conversations={entry.conversation_count} generated={format_timestamp(entry.generated_at)}"
        )


def _change_status(env: AppEnv, command: str, names: tuple[str, ...], status: DraftStatus) -> None:
    store, state = env.store(command)
    try:
        for name in names:
            state.update_status(name, status)
            click.echo(f"{name}: {status.value}")
        store.save(state)
    except SkillMinerError as exc:
        fail(command, str(exc))


@cli.command("approve")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def approve_command(env: AppEnv, names: tuple[str, ...]) -> None:
    """Approve drafts."""
    _change_status(env, "approve", names, DraftStatus.APPROVED)


@cli.command("reject")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def reject_command(env: AppEnv, names: tuple[str, ...]) -> None:
    """Reject drafts."""
    _change_status(env, "reject", names, DraftStatus.REJECTED)


@cli.command("reopen")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def reopen_command(env: AppEnv, names: tuple[str, ...]) -> None:
    """Move drafts back to draft status."""
    _change_status(env, "reopen", names, DraftStatus.DRAFT)


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="Emit machine-readable output")
@click.pass_obj
def status_command(env: AppEnv, as_json: bool) -> None:
    """Show mined, pending and draft counts."""
    store, state = env.store("status")
    by_status = {status.value: 0 for status in DraftStatus}
    for entry in state.entries:
        by_status[entry.status.value] += 1
    summary = {
        "manifest": str(store.path),
        "mined": len(state.mined_ids),
        "pending": len(state.pending),
        "drafts": by_status,
    }
    if as_json:
        click.echo(dumps(summary, pretty=True))
        return
    click.echo(f"manifest: {summary['manifest']}")
    click.echo(f"mined: {summary['mined']}  pending: {summary['pending']}")
    click.echo("  ".join(f"{name}: {count}" for name, count in by_status.items()))


def main() -> None:
    cli()


__all__ = ["cli", "main"]
