"""
Menu pricing CLI.

Operator commands for inspecting prices and promotions against the
configured catalog database.
"""

from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from menu_pricing.models import Base
from menu_pricing.services.domain import PricingService
from shared.config.constants import ServiceType, Zone
from shared.config.logging import get_logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure import db as database
from shared.infrastructure.correlation import correlation_scope
from shared.utils.exceptions import AppException

app = typer.Typer(
    name="menu-pricing",
    help="Menu promotion and pricing CLI",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)


@app.callback()
def main() -> None:
    setup_logging()

    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error: %s", error)
        if settings.environment == "production":
            for error in config_errors:
                console.print(f"[red]✗ {error}[/red]")
            raise typer.Exit(1)
        logger.warning("Running with development defaults")


def _parse_at(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"'{value}' is not an ISO datetime (e.g. 2024-05-07T18:30)")


def _parse_selections(values: list[str]) -> dict[int, int]:
    selections = {}
    for value in values:
        item_id, sep, option_id = value.partition("=")
        if not sep or not item_id.isdigit() or not option_id.isdigit():
            raise typer.BadParameter(f"'{value}' must look like ITEM_ID=OPTION_ID")
        selections[int(item_id)] = int(option_id)
    return selections


def _fail(exc: AppException) -> None:
    console.print(f"[red]✗ {exc.detail}[/red]")
    raise typer.Exit(1)


# =============================================================================
# Database Commands
# =============================================================================

@app.command("init-db")
def init_db(
    demo: bool = typer.Option(False, "--demo", help="Seed the demo catalog"),
):
    """Create the catalog tables (and optionally the demo catalog)."""
    console.print("[blue]Creating tables...[/blue]")
    Base.metadata.create_all(bind=database.engine)
    console.print("[green]✓ Tables ready[/green]")

    if not demo:
        return

    from menu_pricing.seed import seed_demo

    with database.get_db_context() as db:
        ids = seed_demo(db)

    if not ids:
        console.print("[yellow]Database already has data. Skipping seed.[/yellow]")
        return

    table = Table(title="Demo catalog")
    table.add_column("Entity", style="cyan")
    table.add_column("ID", style="green")
    for name, entity_id in ids.items():
        table.add_row(name, str(entity_id))
    console.print(table)


# =============================================================================
# Pricing Commands
# =============================================================================

@app.command()
def price(
    product_id: int = typer.Argument(..., help="Product ID"),
    variant_id: Optional[int] = typer.Option(None, "--variant", "-v", help="Variant ID"),
    zone: Zone = typer.Option(Zone(settings.default_zone), "--zone", "-z", help="Pricing zone"),
    service_type: ServiceType = typer.Option(ServiceType(settings.default_service_type), "--service", "-s", help="Service type"),
    at: Optional[str] = typer.Option(None, "--at", help="Evaluate at this ISO datetime instead of now"),
    option: Optional[List[int]] = typer.Option(None, "--option", "-o", help="Section option ID (repeatable)"),
):
    """Show the effective price of a product or variant."""
    moment = _parse_at(at)

    with correlation_scope(), database.get_db_context() as db:
        try:
            breakdown = PricingService(db).price_for(product_id, variant_id, zone, service_type, moment, option or [])
        except AppException as exc:
            _fail(exc)

    table = Table(title=f"Price for product {product_id}" + (f" / variant {variant_id}" if variant_id else ""))
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Zone / service", f"{breakdown.zone} / {breakdown.service_type}")
    table.add_row("Evaluated at", breakdown.evaluated_at.isoformat(sep=" ", timespec="minutes"))
    table.add_row("Base price", str(breakdown.base_price))
    if breakdown.is_daily_special:
        table.add_row("Daily special", str(breakdown.daily_special_price))
    if breakdown.applied_promotion:
        promo = breakdown.applied_promotion
        table.add_row("Promotion", f"{promo.promotion_name} (#{promo.promotion_id}, {promo.match_level})")
    if breakdown.special_price is not None:
        table.add_row("Special price", str(breakdown.special_price))
    if breakdown.discounted_price is not None:
        table.add_row("Discounted price", str(breakdown.discounted_price))
    if option:
        table.add_row("Options", str(breakdown.options_price))
        if breakdown.options_savings:
            table.add_row("Bundle savings", str(breakdown.options_savings))
    table.add_row("Final price", f"[bold]{breakdown.final_price}[/bold]")

    console.print(table)


@app.command()
def promotions(
    product_id: Optional[int] = typer.Option(None, "--product", "-p", help="Product ID"),
    variant_id: Optional[int] = typer.Option(None, "--variant", "-v", help="Variant ID"),
    combo_id: Optional[int] = typer.Option(None, "--combo", "-c", help="Combo ID"),
    service_type: ServiceType = typer.Option(ServiceType(settings.default_service_type), "--service", "-s", help="Service type"),
    at: Optional[str] = typer.Option(None, "--at", help="Evaluate at this ISO datetime instead of now"),
):
    """List promotion items applicable to a target right now (or at --at)."""
    moment = _parse_at(at)

    with correlation_scope(), database.get_db_context() as db:
        try:
            items = PricingService(db).applicable_promotions(
                product_id=product_id,
                variant_id=variant_id,
                combo_id=combo_id,
                service_type=service_type,
                at=moment,
            )
        except AppException as exc:
            _fail(exc)

    if not items:
        console.print("[yellow]No applicable promotions[/yellow]")
        return

    table = Table(title="Applicable promotion items")
    table.add_column("Item", style="cyan")
    table.add_column("Promotion", style="cyan")
    table.add_column("Validity")
    table.add_column("Service")
    table.add_column("Discount %", style="green")

    for item in items:
        table.add_row(
            str(item.id),
            str(item.promotion_id),
            item.validity_type or "-",
            item.service_type or "both",
            str(item.discount_percentage) if item.discount_percentage is not None else "-",
        )
    console.print(table)


@app.command()
def combo(
    combo_id: int = typer.Argument(..., help="Combo ID"),
    select: Optional[List[str]] = typer.Option(None, "--select", help="Choice selection as ITEM_ID=OPTION_ID (repeatable)"),
    zone: Zone = typer.Option(Zone(settings.default_zone), "--zone", "-z", help="Pricing zone"),
    service_type: ServiceType = typer.Option(ServiceType(settings.default_service_type), "--service", "-s", help="Service type"),
):
    """Show combo availability and, with selections, its price."""
    selections = _parse_selections(select or [])

    with correlation_scope(), database.get_db_context() as db:
        service = PricingService(db)
        try:
            availability = service.combo_availability(combo_id)
        except AppException as exc:
            _fail(exc)

        status = "[green]available[/green]" if availability.is_available else "[red]unavailable[/red]"
        console.print(f"{availability.name} (#{availability.combo_id}): {status}")
        if availability.inactive_options_count:
            console.print(f"[yellow]⚠ {availability.inactive_options_count} inactive option(s)[/yellow]")

        try:
            combo_price = service.combo_price(combo_id, selections, zone, service_type)
        except AppException as exc:
            _fail(exc)

    console.print(f"Price ({zone.value} / {service_type.value}): [bold]{combo_price}[/bold]")


# =============================================================================
# Admin Commands
# =============================================================================

@app.command("check-rules")
def check_rules():
    """Report promotion items the evaluator would silently exclude."""
    with correlation_scope(), database.get_db_context() as db:
        problems = PricingService(db).scan_rules()

    if not problems:
        console.print("[green]✓ All promotion rules are valid[/green]")
        return

    table = Table(title="Invalid promotion rules")
    table.add_column("Item", style="cyan")
    table.add_column("Promotion", style="cyan")
    table.add_column("Problem", style="red")
    for problem in problems:
        table.add_row(str(problem.item_id), str(problem.promotion_id), problem.reason)
    console.print(table)
    raise typer.Exit(1)


if __name__ == "__main__":
    app()
