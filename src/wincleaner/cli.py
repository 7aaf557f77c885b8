"""CLI interface for WinCleaner."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict
from typing import Any

import click

from wincleaner.core.engine import CleanupEngine
from wincleaner.core.enrichment import AIEnricher
from wincleaner.core.registry import ScannerRegistry
from wincleaner.core.report import cleaning_stats, format_cleaning_report, summarize_items
from wincleaner.core.scanner_loader import load_scanners
from wincleaner.core.windows_backend import WindowsBackend
from wincleaner.models import Category, CleanupItem, RetentionPolicy, RiskLevel, ScanProgress, ScanStage
from wincleaner.settings import DEFAULTS, Settings, coerce
from wincleaner.utils import bytes_to_human

_RISK_COLORS = {RiskLevel.SAFE: "green", RiskLevel.CAUTION: "yellow", RiskLevel.HIGH: "red"}


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_engine(settings: Settings, simulate: bool = False, batch_size: int | None = None) -> CleanupEngine:
    registry = ScannerRegistry()
    load_scanners(registry)
    config = settings.enrichment_config()
    return CleanupEngine(
        registry,
        None if simulate else WindowsBackend(),
        enricher=AIEnricher(config) if config.enabled else None,
        batch_size=batch_size or settings.batch_size,
        inter_batch_delay=settings.inter_batch_delay,
        use_real_backend=settings.use_real_backend and not simulate,
    )


def _retention(settings: Settings, wechat_months: int | None, qq_months: int | None) -> RetentionPolicy:
    policy = settings.retention_policy()
    months = dict(policy.months_to_keep)
    if wechat_months is not None:
        months[Category.WECHAT] = max(0, wechat_months)
    if qq_months is not None:
        months[Category.QQ] = max(0, qq_months)
    return RetentionPolicy(months)


def _item_dict(item: CleanupItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "path": item.path,
        "size_bytes": item.size_bytes,
        "category": item.category.value,
        "risk_level": item.risk_level.value,
        "can_delete": item.can_delete,
        "suggestion": item.suggestion,
        "last_modified": item.last_modified.isoformat() if item.last_modified else None,
        "retained": item.retained,
        "scanner_id": item.scanner_id,
    }


def _scan_progress_printer(as_json: bool):
    def on_progress(progress: ScanProgress) -> None:
        if as_json:
            return
        if progress.stage is ScanStage.FALLBACK:
            click.echo(
                f"  {click.style('!', fg='yellow')} Windows backend unavailable, showing simulated data",
                err=True,
            )

    return on_progress


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.pass_context
def main(ctx: click.Context, verbose: int) -> None:
    """WinCleaner, a cautious cleanup tool for Windows."""
    _setup_logging(verbose)
    ctx.obj = Settings()


# ── list ─────────────────────────────────────────────────────────────────

@main.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_cmd(settings: Settings, as_json: bool) -> None:
    """List available scan categories."""
    engine = _build_engine(settings, simulate=True)
    scanners = engine.registry.get_all()

    if as_json:
        data = [{"id": s.id, "name": s.name, "description": s.description} for s in scanners]
        click.echo(json.dumps(data, indent=2))
        return

    for scanner in scanners:
        click.echo(f"  {click.style(scanner.id, fg='cyan', bold=True):30s}  {scanner.name}")
        click.echo(f"    {scanner.description}")


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("scanner_ids", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--simulate", is_flag=True, help="Use simulated data instead of the real system")
@click.option("--wechat-months", type=int, default=None, help="Months of WeChat history to keep")
@click.option("--qq-months", type=int, default=None, help="Months of QQ history to keep")
@click.pass_obj
def scan(
    settings: Settings,
    scanner_ids: tuple[str, ...],
    as_json: bool,
    simulate: bool,
    wechat_months: int | None,
    qq_months: int | None,
) -> None:
    """Scan for cleanable items (preview only, never deletes)."""
    engine = _build_engine(settings, simulate)
    ids = list(scanner_ids) if scanner_ids else None

    if not as_json:
        count = len(engine.registry.resolve(ids))
        click.echo(f"\nScanning {count} categories...\n")

    session = engine.scan(
        ids,
        retention=_retention(settings, wechat_months, qq_months),
        on_progress=_scan_progress_printer(as_json),
    )

    if as_json:
        data = {
            "status": session.progress.stage.value if session.progress else "completed",
            "simulated": session.simulated,
            "failed_scanners": session.failed_scanners,
            "summary": summarize_items(session.items),
            "items": [_item_dict(item) for item in session.items],
        }
        click.echo(json.dumps(data, indent=2))
        return

    by_scanner: dict[str, list[CleanupItem]] = {}
    for item in session.items:
        by_scanner.setdefault(item.scanner_id, []).append(item)

    for scanner in engine.registry.resolve(ids):
        items = by_scanner.get(scanner.id, [])
        if scanner.id in session.failed_scanners:
            click.echo(f"  {click.style('✗', fg='red')} {scanner.name:30s} — error during scan")
        elif not items:
            click.echo(f"  {click.style('·', fg='bright_black')} {scanner.name:30s} — nothing found")
        else:
            total = sum(i.size_bytes for i in items)
            click.echo(
                f"  {click.style('✓', fg='green')} {scanner.name:30s} — "
                f"{click.style(bytes_to_human(total), fg='green', bold=True)} ({len(items):,} items)"
            )
            for item in items:
                risk = click.style(item.risk_level.value, fg=_RISK_COLORS[item.risk_level])
                click.echo(f"      [{risk}] {item.name}: {bytes_to_human(item.size_bytes)}  {item.suggestion}")

    summary = summarize_items(session.items)
    if session.simulated:
        click.echo(f"\n{click.style('(simulated data)', fg='yellow')}")
    click.echo(
        f"\nReclaimable: {click.style(bytes_to_human(summary['reclaimable_bytes']), fg='green', bold=True)}"
        f" of {bytes_to_human(summary['total_bytes'])}"
        f"  (estimated performance gain: {summary['performance_gain']})\n"
    )


# ── clean ────────────────────────────────────────────────────────────────

def _select(items: list[CleanupItem], include_caution: bool) -> list[CleanupItem]:
    allowed = {RiskLevel.SAFE, RiskLevel.CAUTION} if include_caution else {RiskLevel.SAFE}
    return [item for item in items if item.can_delete and item.risk_level in allowed]


@main.command()
@click.argument("scanner_ids", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be cleaned without doing it")
@click.option("--include-caution", is_flag=True, help="Also clean items that need review")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Items deleted per batch")
@click.option("--simulate", is_flag=True, help="Use simulated data instead of the real system")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--wechat-months", type=int, default=None, help="Months of WeChat history to keep")
@click.option("--qq-months", type=int, default=None, help="Months of QQ history to keep")
@click.pass_obj
def clean(
    settings: Settings,
    scanner_ids: tuple[str, ...],
    yes: bool,
    dry_run: bool,
    include_caution: bool,
    batch_size: int | None,
    simulate: bool,
    as_json: bool,
    wechat_months: int | None,
    qq_months: int | None,
) -> None:
    """Scan the selected categories and clean what is deletable."""
    engine = _build_engine(settings, simulate, batch_size)
    ids = list(scanner_ids) if scanner_ids else None

    if not as_json:
        click.echo("\nScanning...\n")

    session = engine.scan(
        ids,
        retention=_retention(settings, wechat_months, qq_months),
        on_progress=_scan_progress_printer(as_json),
    )
    selected = _select(session.items, include_caution)

    if not selected:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_clean", "items": []}))
        else:
            click.echo("Nothing to clean.")
        return

    total = sum(item.size_bytes for item in selected)
    if not as_json:
        for item in selected:
            click.echo(f"  {item.name:40s} {bytes_to_human(item.size_bytes):>10s}  {item.path}")
        click.echo(f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)} in {len(selected)} items\n")

    if dry_run:
        if as_json:
            data = {"status": "dry_run", "would_free_bytes": total, "items": [_item_dict(i) for i in selected]}
            click.echo(json.dumps(data, indent=2))
        else:
            click.echo("(dry run — nothing was deleted)")
        return

    if not yes and not as_json:
        choice = click.prompt("Clean these items? [y/N]", default="n", show_default=False)
        match choice.lower():
            case "y" | "yes":
                pass
            case _:
                click.echo("Aborted.")
                return

    def on_current_item(item: CleanupItem | None) -> None:
        if item is not None and not as_json:
            click.echo(f"  {click.style('→', fg='cyan')} {item.name}")

    result = engine.clean(selected, on_current_item=on_current_item)

    if as_json:
        data = {
            "status": "cleaned" if result.success else "partial",
            "stats": cleaning_stats(result),
            "result": asdict(result),
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo()
    click.echo(format_cleaning_report(result, selected))
    click.echo()
    if not result.success:
        sys.exit(1)


# ── status ───────────────────────────────────────────────────────────────

@main.command()
@click.option("--simulate", is_flag=True, help="Use simulated data instead of the real system")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def status(settings: Settings, simulate: bool, as_json: bool) -> None:
    """Show memory usage and DNS cache size."""
    engine = _build_engine(settings, simulate)
    info = engine.system_status()

    if as_json:
        click.echo(json.dumps(asdict(info), indent=2))
        return

    click.echo(f"\n  Memory:     {bytes_to_human(info.memory_total - info.memory_available)} of "
               f"{bytes_to_human(info.memory_total)} used ({info.memory_used_percent:.1f}%)")
    click.echo(f"  DNS cache:  {info.dns_entries:,} entries")
    if info.simulated:
        click.echo(f"  {click.style('(simulated data)', fg='yellow')}")
    click.echo()


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Read and change persisted settings."""


@config.command("get")
@click.argument("key", required=False)
@click.pass_obj
def config_get(settings: Settings, key: str | None) -> None:
    """Print one setting, or all of them when KEY is omitted."""
    if key is None:
        for name in DEFAULTS:
            click.echo(f"{name} = {json.dumps(settings.get(name))}")
        return
    if key not in DEFAULTS:
        click.echo(f"Unknown setting '{key}'.", err=True)
        sys.exit(1)
    click.echo(json.dumps(settings.get(key)))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_obj
def config_set(settings: Settings, key: str, value: str) -> None:
    """Change a setting and save it."""
    if key not in DEFAULTS:
        click.echo(f"Unknown setting '{key}'.", err=True)
        sys.exit(1)
    try:
        typed = coerce(key, value)
    except ValueError as exc:
        click.echo(f"Invalid value: {exc}", err=True)
        sys.exit(1)
    settings.set(key, typed)
    click.echo(f"{key} = {json.dumps(typed)}")
