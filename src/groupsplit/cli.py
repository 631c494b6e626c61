"""CLI for GroupSplit using Typer."""

import logging
import sys

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .db import Database
from .exceptions import GroupSplitError, MemberNotFoundError, ValidationError
from .models import Group, GroupDetails, MemberSummary
from .service import GroupLedgerService

app = typer.Typer(
    name="groupsplit",
    help="Track shared group expenses and work out who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _fail(e: Exception, verbose: bool):
    """Print an error and exit, or re-raise in verbose mode."""
    if isinstance(e, ValidationError):
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
    else:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
    if verbose:
        raise e
    sys.exit(1)


def _member_ids(group: Group, names: list[str]) -> list[str]:
    """Resolve display names to member ids."""
    ids = []
    for name in names:
        member = group.find_member_by_name(name)
        if member is None:
            raise MemberNotFoundError(name, group.id)
        ids.append(member.id)
    return ids


def parse_split_values(group: Group, values: list[str]) -> dict[str, float]:
    """
    Parse NAME=VALUE pairs into a member id -> value mapping.

    Raises:
        typer.BadParameter: If a pair is malformed
        MemberNotFoundError: If a name is not a group member
    """
    split_data: dict[str, float] = {}
    for item in values:
        name, sep, raw_value = item.rpartition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{item}'")
        try:
            value = float(raw_value)
        except ValueError as e:
            raise typer.BadParameter(f"'{raw_value}' is not a number") from e
        [member_id] = _member_ids(group, [name.strip()])
        split_data[member_id] = value
    return split_data


def format_money(amount: float, settings: Settings, use_color: bool = True) -> str:
    """
    Format a signed balance.

    Positive amounts (owed to the member) are green with a plus sign,
    negative amounts (the member owes) are red with a minus sign.
    """
    symbol = settings.currency_symbol
    if abs(amount) < settings.settle_epsilon:
        return f"0.00 {symbol}"
    text = f"{'+' if amount > 0 else '-'}{abs(amount):,.2f} {symbol}"
    if not use_color:
        return text
    color = "green" if amount > 0 else "red"
    return f"[{color}]{text}[/{color}]"


def display_group_details(details: GroupDetails, settings: Settings):
    """Display balances and debts in table format."""
    group = details.group
    visibility = "private" if group.is_private else "public"
    console.print(f"\n[bold]{group.name}[/bold] [dim]({visibility}, {group.id})[/dim]")
    if details.viewer_name:
        console.print(f"  Viewing as: {details.viewer_name}")
    console.print(
        f"  Visible: {len(details.visible_expenses)} expenses, "
        f"{len(details.visible_payments)} payments"
    )
    console.print()

    title = "Balances relative to you" if details.relative else "Balances"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Paid", justify="right")
    table.add_column("Owed", justify="right")
    table.add_column("Balance", justify="right")

    for balance in details.balances:
        table.add_row(
            balance.member_name,
            f"{balance.total_paid:,.2f}",
            f"{balance.total_owed:,.2f}",
            format_money(balance.net_balance, settings),
        )
    console.print(table)

    if not details.debts:
        console.print("\n[green]✓ Nothing to settle.[/green]\n")
        return

    title = "Direct debts" if details.relative else "Suggested transfers"
    debt_table = Table(title=title, show_header=True, header_style="bold magenta")
    debt_table.add_column("From", style="red")
    debt_table.add_column("To", style="green")
    debt_table.add_column("Amount", justify="right")
    for debt in details.debts:
        debt_table.add_row(
            debt.from_member,
            debt.to_member,
            f"{debt.amount:,.2f} {settings.currency_symbol}",
        )
    console.print(debt_table)


def display_member_summary(summary: MemberSummary, settings: Settings):
    """Display one member's expenses and payments."""
    console.print(f"\n[bold]{summary.member.name}[/bold]")
    console.print(f"  Total paid: {summary.total_paid:,.2f} {settings.currency_symbol}")
    console.print(f"  Total owed: {summary.total_owed:,.2f} {settings.currency_symbol}")
    console.print(f"  Balance:    {format_money(summary.net_balance, settings)}")
    console.print()

    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="dim")
    table.add_column("Description", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Split", style="yellow")
    for expense in summary.expenses:
        table.add_row(
            expense.date.date().isoformat(),
            expense.description,
            f"{expense.amount:,.2f}",
            expense.split_mode,
        )
    console.print(table)

    for label, payments in (
        ("Payments made", summary.payments_made),
        ("Payments received", summary.payments_received),
    ):
        if payments:
            console.print(f"\n[bold]{label}:[/bold]")
            for payment in payments:
                console.print(
                    f"  {payment.date.date()}  {payment.from_member} → "
                    f"{payment.to_member}  {payment.amount:,.2f} "
                    f"{settings.currency_symbol}"
                )


@app.command()
def create_group(
    name: str = typer.Argument(..., help="Group name"),
    members: list[str] = typer.Option(
        ..., "--member", "-m", help="Member name (repeat for each member)"
    ),
    private: bool = typer.Option(
        False, "--private", help="Members only see expenses they take part in"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a group with its members."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        group = service.create_group(name, members, is_private=private)
        console.print(f"\n[bold green]✓ Created group {group.name}[/bold green]")
        console.print(f"  ID: [cyan]{group.id}[/cyan]")
        console.print(f"  Join code: [cyan]{group.code}[/cyan]")
        console.print(f"  Members: {', '.join(m.name for m in group.members)}\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def add_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="New member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        member = service.add_member(group_id, name)
        console.print(f"\n[bold green]✓ Added {member.name}[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def remove_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a member from a group (their expenses stay recorded)."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        service.remove_member(group_id, name)
        console.print(f"\n[bold green]✓ Removed {name}[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def edit_group(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str | None = typer.Option(None, "--name", help="New group name"),
    private: bool | None = typer.Option(
        None, "--private/--public", help="Switch the group's visibility"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Rename a group or change its visibility."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        group = service.update_group_settings(group_id, name=name, is_private=private)
        visibility = "private" if group.is_private else "public"
        console.print(
            f"\n[bold green]✓ {group.name} is now {visibility}[/bold green]\n"
        )

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def archive(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Archive a group whose members are all settled up."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        group = service.archive_group(group_id)
        console.print(f"\n[bold green]✓ Archived {group.name}[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def unarchive(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Restore an archived group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        group = service.unarchive_group(group_id)
        console.print(f"\n[bold green]✓ Restored {group.name}[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all groups."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        all_groups = db.list_groups()
        if not all_groups:
            console.print("[yellow]No groups yet.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Code")
        table.add_column("Visibility")
        table.add_column("Members")
        for group in all_groups:
            visibility = "private" if group.is_private else "public"
            table.add_row(
                group.id,
                group.name,
                group.code or "",
                f"{visibility} (archived)" if group.archived else visibility,
                ", ".join(m.name for m in group.members),
            )
        console.print(table)

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def add_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    amount: float = typer.Argument(..., help="Total amount"),
    description: str = typer.Argument(..., help="What the expense was for"),
    paid_by: str = typer.Option(..., "--paid-by", help="Name of the member who paid"),
    participants: list[str] = typer.Option(
        [],
        "--participant",
        "-p",
        help="Name of a member sharing the expense (default: everyone)",
    ),
    split: str = typer.Option(
        "equally", "--split", help="Split mode: equally, shares or amounts"
    ),
    values: list[str] = typer.Option(
        [],
        "--value",
        "-s",
        help="NAME=VALUE weight (shares) or amount (amounts), repeatable",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record an expense paid by one member."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        group = service.get_group(group_id)
        [payer_id] = _member_ids(group, [paid_by])
        participant_ids = (
            _member_ids(group, participants)
            if participants
            else [m.id for m in group.members]
        )
        split_data = parse_split_values(group, values) if values else None

        expense = service.add_expense(
            group_id,
            amount=amount,
            paid_by=payer_id,
            description=description,
            participants=participant_ids,
            split_mode=split,  # type: ignore[arg-type]
            split_data=split_data,
        )
        console.print(
            f"\n[bold green]✓ Added '{expense.description}' "
            f"({expense.amount:,.2f} {settings.currency_symbol})[/bold green]"
        )
        console.print(f"  ID: [dim]{expense.id}[/dim]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def remove_expense(
    expense_id: str = typer.Argument(..., help="Expense ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        service.delete_expense(expense_id)
        console.print("\n[bold green]✓ Expense deleted[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def pay(
    group_id: str = typer.Argument(..., help="Group ID"),
    from_name: str = typer.Argument(..., help="Member who pays"),
    to_name: str = typer.Argument(..., help="Member who receives"),
    amount: float = typer.Argument(..., help="Amount paid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a settlement payment between two members."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        payment = service.register_payment(group_id, from_name, to_name, amount)
        console.print(
            f"\n[bold green]✓ {payment.from_member} paid {payment.to_member} "
            f"{payment.amount:,.2f} {settings.currency_symbol}[/bold green]"
        )
        console.print(f"  ID: [dim]{payment.id}[/dim]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def remove_payment(
    payment_id: str = typer.Argument(..., help="Payment ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a payment."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        service.delete_payment(payment_id)
        console.print("\n[bold green]✓ Payment deleted[/bold green]\n")

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    from_name: str = typer.Argument(..., help="Member who owes"),
    to_name: str = typer.Argument(..., help="Member who is owed"),
    viewer: str = typer.Option(
        None, "--viewer", help="Your member name (required for private groups)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Mark a suggested debt as paid in full."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        details = service.get_group_details(group_id, viewer_name=viewer)
        debt = next(
            (
                d
                for d in details.debts
                if d.from_member == from_name and d.to_member == to_name
            ),
            None,
        )
        if debt is None:
            console.print(
                f"[yellow]No debt from {from_name} to {to_name} to settle.[/yellow]"
            )
            return

        service.settle_debt(group_id, debt)
        console.print(
            f"\n[bold green]✓ Settled: {debt.from_member} → {debt.to_member} "
            f"{debt.amount:,.2f} {settings.currency_symbol}[/bold green]\n"
        )

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def show(
    group_id: str = typer.Argument(..., help="Group ID"),
    viewer: str = typer.Option(
        None, "--viewer", help="Your member name (required for private groups)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Show balances and debts for a group.

    Public groups list everyone's balance and the fewest suggested transfers.
    Private groups show only what the viewer took part in: balances relative
    to the viewer and the direct debts involving them.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        details = service.get_group_details(group_id, viewer_name=viewer)
        if details.group.is_private and not details.relative:
            console.print(
                "[yellow]This group is private. Pass --viewer with your member "
                "name to see your balances.[/yellow]"
            )
        display_group_details(details, settings)

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def member(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    viewer: str = typer.Option(
        None, "--viewer", help="Your member name (required for private groups)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show one member's expenses, payments and totals."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = GroupLedgerService(settings, db)

        summary = service.get_member_summary(group_id, name, viewer_name=viewer)
        display_member_summary(summary, settings)

    except (GroupSplitError, ValueError) as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
