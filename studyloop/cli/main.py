"""
studyloop - terminal study sessions against a hosted study-set backend.

Usage:
    studyloop play SET_ID          # Play a study set
    studyloop explore              # Browse trending public sets
    studyloop play --file set.json # Play a set stored on disk
    studyloop dashboard            # Streak, XP, daily pick and feed
    studyloop search TERM          # Fuzzy search public sets
    studyloop library saved        # Sets you created or saved
    studyloop rate SET_ID 5        # Rate a set
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, TypeVar

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config import get_settings
from studyloop.api.rpc_client import RpcClient, RpcError
from studyloop.api.schemas import (
    CommentTarget,
    ConnectionType,
    CreateFullSetParams,
    ExploreSort,
    LibraryTab,
    RateSetParams,
    UpdateFullSetParams,
)
from studyloop.api.study_service import (
    MIN_SEARCH_LENGTH,
    MalformedSetError,
    StudyService,
    parse_set_for_play,
)
from studyloop.delivery.toast import ToastCenter
from studyloop.delivery.visuals import Spinner, sets_table
from studyloop.player.runner import SessionRunner
from studyloop.player.session import PlayerState

T = TypeVar("T")

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="studyloop",
    help="📚 studyloop - study sets, quizzes and streaks from the terminal",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def _require_backend() -> None:
    if not get_settings().has_backend_configured():
        console.print(
            "[red]No backend configured.[/red] Set SUPABASE_URL and SUPABASE_ANON_KEY "
            "(environment or .env)."
        )
        raise typer.Exit(1)


async def _with_service(action: Callable[[StudyService], Awaitable[T]]) -> T:
    async with RpcClient.from_settings() as rpc:
        return await action(StudyService(rpc))


def _call(action: Callable[[StudyService], Awaitable[T]], message: str = "Loading...") -> T:
    """Run one service action, turning remote failures into a red error line."""
    _require_backend()
    try:
        with Spinner(console, message):
            return asyncio.run(_with_service(action))
    except RpcError as e:
        logger.debug(f"{e.procedure} failed: code={e.code} details={e.details} hint={e.hint}")
        console.print(f"[red]✗ {escape(e.message)}[/red]")
        if e.hint:
            console.print(f"[dim]{escape(e.hint)}[/dim]")
        raise typer.Exit(1)


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not read {escape(str(path))}: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _make_rng() -> random.Random:
    seed = get_settings().shuffle_seed
    return random.Random(seed) if seed is not None else random.Random()


# =============================================================================
# Study Commands
# =============================================================================


@app.command()
def play(
    set_id: Annotated[
        str | None, typer.Argument(help="Study set to play")
    ] = None,
    file: Annotated[
        Path | None, typer.Option("--file", "-f", help="Play a set stored as JSON")
    ] = None,
    offline: Annotated[
        bool, typer.Option("--offline", help="Do not report the session")
    ] = False,
) -> None:
    """
    Play a study set.

    Items are shown one at a time; answers are graded locally and the whole
    session is reported once at the end for XP, streak and review levels.
    """
    if set_id is None and file is None:
        console.print("[red]Give a SET_ID or --file[/red]")
        raise typer.Exit(2)

    data = None
    if file:
        try:
            data = parse_set_for_play(_load_json(file))
        except MalformedSetError as e:
            console.print(f"[red]Invalid set file: {escape(str(e))}[/red]")
            raise typer.Exit(1)
    if not offline:
        _require_backend()
    elif data is None:
        console.print("[red]--offline needs --file[/red]")
        raise typer.Exit(2)

    session = asyncio.run(_play(set_id, data, offline))
    # No data means the set never loaded, so nothing was played
    if session.data is None or session.state not in (PlayerState.FINISHED, PlayerState.CLOSED):
        raise typer.Exit(1)


async def _play(set_id: str | None, data, offline: bool):
    settings = get_settings()
    toasts = ToastCenter(console, history_size=settings.toast_history_size)

    if offline:
        return await SessionRunner(console, toasts, rng=_make_rng()).play(data=data)

    async with RpcClient.from_settings(settings) as rpc:
        runner = SessionRunner(console, toasts, StudyService(rpc), rng=_make_rng())
        return await runner.play(set_id=set_id, data=data)


@app.command()
def dashboard() -> None:
    """Show streak, XP, today's pick and your feed."""
    home = _call(lambda s: s.get_home_dashboard(), "Loading dashboard...")

    if home.user_stats:
        stats = home.user_stats
        console.print(Panel(
            f"🔥 Streak: [bold]{stats.streak}[/bold] days   "
            f"⭐ XP: [bold]{stats.total_xp}[/bold]   "
            f"Level {stats.level}\n"
            f"Cards due: {stats.cards_due}   Minutes today: {stats.minutes_today}",
            title="[bold]Your Stats[/bold]",
            border_style="cyan",
        ))

    if home.daily_pick:
        pick = home.daily_pick
        console.print(Panel(
            f"{escape(pick.message)}\n\n[bold]{escape(pick.set.title)}[/bold] "
            f"[dim]({escape(pick.set.subject or 'General')} · ★ {pick.set.average_rating:.1f})[/dim]\n"
            f"[dim]{escape(pick.set.id)}[/dim]",
            title="[bold]Daily Pick[/bold]",
            border_style="yellow",
        ))

    if home.continue_studying:
        console.print(sets_table("Continue Studying", [
            {"id": s.id, "title": s.title, "subject": s.subject}
            for s in home.continue_studying
        ]))

    if home.feed_content:
        table = Table(title="Following" if home.feed_type == "following" else "Recommended")
        table.add_column("What", style="bold")
        table.add_column("Who")
        table.add_column("Details", style="dim")
        for entry in home.feed_content:
            if entry.type == "feed":
                who = entry.creator.username if entry.creator and entry.creator.username else "-"
                table.add_row(
                    Text(entry.title),
                    Text(who),
                    Text(f"{entry.set_id} · {entry.stats.cards_count} cards · ★ {entry.stats.average_rating:.1f}"),
                )
            else:
                table.add_row(Text(f"👤 {entry.username}"), "", Text(f"{entry.xp} XP · {entry.bio or ''}"))
        console.print(table)


@app.command("continue")
def continue_studying(
    limit: Annotated[
        int, typer.Option("--limit", "-n", help="Number of sets to show")
    ] = 10,
) -> None:
    """List sets you have recently studied."""
    rows = _call(lambda s: s.get_continue_studying(limit_count=limit))
    if not rows:
        console.print("[yellow]Nothing in progress. Try 'studyloop search'.[/yellow]")
        return
    console.print(sets_table("Continue Studying", [
        {
            "id": r.id,
            "title": r.title,
            "subject": r.subject.name if r.subject else None,
            "rating": r.average_rating,
            "cards": r.cards_due,
        }
        for r in rows
    ]))


@app.command()
def search(
    term: Annotated[str, typer.Argument(help="Words to search for")],
) -> None:
    """Fuzzy search public study sets."""
    rows = _call(lambda s: s.search_study_sets(term), "Searching...")
    if not rows:
        console.print(f"[yellow]No sets match '{escape(term)}'[/yellow]")
        return
    console.print(sets_table(f"Results for '{term}'", [
        {"id": r.id, "title": r.title, "rating": r.average_rating}
        for r in rows
    ]))


@app.command()
def subjects() -> None:
    """List subjects."""
    rows = _call(lambda s: s.get_subjects())
    table = Table(title="Subjects")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Subject", style="bold")
    table.add_column("Slug", style="cyan")
    for subject in rows:
        table.add_row(str(subject.id), Text(f"{subject.emoji or ''} {subject.name}".strip()), Text(subject.slug))
    console.print(table)


@app.command()
def library(
    tab: Annotated[
        str, typer.Argument(help="created or saved")
    ] = "created",
    limit: Annotated[
        int, typer.Option("--limit", "-n", help="Page size")
    ] = 20,
    offset: Annotated[
        int, typer.Option("--offset", help="Rows to skip")
    ] = 0,
) -> None:
    """List the sets you created or saved."""
    if tab not in ("created", "saved"):
        console.print("[red]Tab must be 'created' or 'saved'[/red]")
        raise typer.Exit(2)
    tab_type: LibraryTab = tab  # type: ignore[assignment]
    rows = _call(lambda s: s.get_library_content(tab_type, limit, offset))
    if not rows:
        console.print(f"[yellow]No {tab} sets yet[/yellow]")
        return
    console.print(sets_table(f"Library · {tab}", [
        {
            "id": r.id,
            "title": r.title,
            "subject": r.subject.name if r.subject else None,
            "rating": r.average_rating,
            "cards": r.cards_count,
        }
        for r in rows
    ]))


# =============================================================================
# Explore
# =============================================================================


@app.command()
def explore(
    subject: Annotated[
        list[int] | None, typer.Option("--subject", "-s", help="Subject id (repeatable)")
    ] = None,
    sort: Annotated[
        str, typer.Option("--sort", help="trending, newest or top_rated")
    ] = "trending",
) -> None:
    """Browse public sets by subject and popularity."""
    if sort not in ("trending", "newest", "top_rated"):
        console.print("[red]Sort must be trending, newest or top_rated[/red]")
        raise typer.Exit(2)
    sort_by: ExploreSort = sort  # type: ignore[assignment]
    result = _call(lambda s: s.get_explore_initial(subject or None, sort_by), "Exploring...")

    if result.categories:
        names = ", ".join(f"{c.emoji or ''} {c.name} ({c.id})".strip() for c in result.categories)
        console.print(Text(f"Subjects: {names}", style="dim"))
    if not result.results:
        console.print("[yellow]No public sets found[/yellow]")
        return
    console.print(sets_table(f"Explore · {sort.replace('_', ' ')}", [
        {
            "id": r.id,
            "title": r.title,
            "subject": r.subject.name if r.subject else None,
            "rating": r.average_rating,
            "cards": r.cards_count,
        }
        for r in result.results
    ]))


@app.command()
def users(
    query: Annotated[str, typer.Argument(help="Username or name to look for")],
    limit: Annotated[
        int, typer.Option("--limit", "-n", help="Number of people to show")
    ] = 20,
) -> None:
    """Find people to follow."""
    if len(query.strip()) < MIN_SEARCH_LENGTH:
        console.print(f"[red]Search needs at least {MIN_SEARCH_LENGTH} characters[/red]")
        raise typer.Exit(2)
    rows = _call(lambda s: s.search_users(query, limit), "Searching...")
    if not rows:
        console.print(f"[yellow]No people match '{escape(query)}'[/yellow]")
        return
    table = Table(title=Text(f"People matching '{query}'"))
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("User", style="bold")
    table.add_column("Level", justify="right")
    table.add_column("Followers", justify="right")
    table.add_column("")
    for user in rows:
        table.add_row(
            Text(user.id),
            Text(f"@{user.username}" + (f" ({user.full_name})" if user.full_name else "")),
            str(user.level),
            str(user.followers_count),
            "following" if user.is_following else "",
        )
    console.print(table)


# =============================================================================
# Set Management
# =============================================================================


@app.command()
def clone(
    set_id: Annotated[str, typer.Argument(help="Set to copy into your library")],
) -> None:
    """Copy a set into your library."""
    new_id = _call(lambda s: s.clone_set(set_id), "Cloning...")
    console.print(f"[green]✓ Cloned[/green] {escape(new_id or '')}".rstrip())


@app.command()
def delete(
    set_id: Annotated[str, typer.Argument(help="Set to delete")],
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Skip confirmation")
    ] = False,
) -> None:
    """Delete one of your sets."""
    if not yes and not typer.confirm(f"Delete set {set_id}?"):
        raise typer.Exit(0)
    _call(lambda s: s.delete_set(set_id), "Deleting...")
    console.print("[green]✓ Deleted[/green]")


@app.command()
def rate(
    set_id: Annotated[str, typer.Argument(help="Set to rate")],
    rating: Annotated[int, typer.Argument(help="Stars, 1-5")],
    review: Annotated[
        str | None, typer.Option("--review", "-r", help="Optional written review")
    ] = None,
) -> None:
    """Rate a set."""
    try:
        params = RateSetParams(p_set_id=set_id, p_rating=rating, p_review=review)
    except ValidationError:
        console.print("[red]Rating must be between 1 and 5[/red]")
        raise typer.Exit(2)
    result = _call(lambda s: s.rate_set(params))
    console.print(f"[green]✓ Rated[/green] - now ★ {result.new_average:.1f} ({result.new_total} ratings)")


@app.command()
def create(
    file: Annotated[Path, typer.Argument(help="JSON file with title, subject_id, tags and items")],
) -> None:
    """Create a set (with items) from a JSON file."""
    try:
        params = CreateFullSetParams.model_validate(_load_json(file))
    except ValidationError as e:
        console.print("[red]Invalid set file:[/red]")
        console.print(Text(str(e)))
        raise typer.Exit(2)
    new_id = _call(lambda s: s.create_full_set(params), "Creating set...")
    console.print(f"[green]✓ Created[/green] {escape(params.title)} [dim]({escape(new_id)})[/dim]")


@app.command()
def edit(
    set_id: Annotated[str, typer.Argument(help="Set to replace")],
    file: Annotated[Path, typer.Argument(help="JSON file with the full set: title, subject_id, tags and items")],
) -> None:
    """
    Replace one of your sets from a JSON file.

    Items with an "id" are updated, items without one are added, and items
    left out of the file are removed.
    """
    raw = _load_json(file)
    try:
        params = UpdateFullSetParams.model_validate({**raw, "set_id": set_id} if isinstance(raw, dict) else raw)
    except ValidationError as e:
        console.print("[red]Invalid set file:[/red]")
        console.print(Text(str(e)))
        raise typer.Exit(2)
    _call(lambda s: s.update_full_set(params), "Saving set...")
    console.print(f"[green]✓ Updated[/green] {escape(params.title)} [dim]({len(params.items)} items)[/dim]")


# =============================================================================
# People
# =============================================================================


@app.command()
def profile(
    user_id: Annotated[str, typer.Argument(help="User to show")],
) -> None:
    """Show a user's profile and public sets."""
    result = _call(lambda s: s.get_user_profile(user_id), "Loading profile...")
    info = result.profile

    body = Text()
    body.append(f"@{info.username}", style="bold")
    if info.full_name:
        body.append(f"  {info.full_name}")
    if info.bio:
        body.append(f"\n{info.bio}", style="italic")
    body.append(
        f"\nLevel {info.level} · {info.total_xp} XP · 🔥 {info.streak} · "
        f"{info.followers_count} followers · {info.following_count} following"
    )
    if info.is_own_profile:
        body.append("\nThis is you", style="dim")
    elif info.is_following:
        body.append("\nYou follow this user", style="dim")
    console.print(Panel(body, title="[bold]Profile[/bold]", border_style="cyan"))

    if result.sets:
        console.print(sets_table("Public Sets", [
            {
                "id": s.id,
                "title": s.title,
                "subject": s.subject.name if s.subject else None,
                "rating": s.average_rating,
                "cards": s.cards_count,
            }
            for s in result.sets
        ]))


@app.command()
def connections(
    user_id: Annotated[str, typer.Argument(help="Whose connections to list")],
    following: Annotated[
        bool, typer.Option("--following", help="List who they follow instead of their followers")
    ] = False,
    query: Annotated[
        str, typer.Option("--query", "-q", help="Filter by username")
    ] = "",
) -> None:
    """List a user's followers or the people they follow."""
    kind: ConnectionType = "following" if following else "followers"
    rows = _call(lambda s: s.get_user_connections(user_id, kind, query))
    if not rows:
        console.print(f"[dim]No {kind} yet[/dim]")
        return
    table = Table(title=kind.capitalize())
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("User", style="bold")
    table.add_column("Level", justify="right")
    table.add_column("")
    for user in rows:
        table.add_row(
            Text(user.id),
            Text(f"@{user.username}"),
            str(user.level),
            "following" if user.is_following else "",
        )
    console.print(table)


@app.command()
def follow(
    user_id: Annotated[str, typer.Argument(help="User to follow")],
) -> None:
    """Follow a user."""
    _call(lambda s: s.follow_user(user_id), "Following...")
    console.print("[green]✓ Following[/green]")


@app.command()
def unfollow(
    user_id: Annotated[str, typer.Argument(help="User to stop following")],
) -> None:
    """Stop following a user."""
    _call(lambda s: s.unfollow_user(user_id), "Unfollowing...")
    console.print("[green]✓ Unfollowed[/green]")


# =============================================================================
# Comments
# =============================================================================


@app.command()
def comments(
    target_id: Annotated[str, typer.Argument(help="Set or item id")],
    item: Annotated[
        bool, typer.Option("--item", help="Target is an item, not a set")
    ] = False,
) -> None:
    """Show the comment thread of a set or item."""
    target: CommentTarget = "item" if item else "set"
    thread = _call(lambda s: s.get_comments(target_id, target))
    if not thread:
        console.print("[dim]No comments yet[/dim]")
        return
    for comment in thread:
        console.print(
            f"[bold]{escape(comment.user.username)}[/bold] "
            f"[dim]{escape(comment.created_at or '')} · {escape(comment.id)}[/dim]"
        )
        console.print(Text(f"  {comment.content}"))
        for reply in comment.replies:
            console.print(f"    ↳ [bold]{escape(reply.user.username)}[/bold]: {escape(reply.content)}")


@app.command()
def comment(
    target_id: Annotated[str, typer.Argument(help="Set or item id")],
    text: Annotated[str, typer.Argument(help="Comment text")],
    reply_to: Annotated[
        str | None, typer.Option("--reply-to", help="Parent comment id")
    ] = None,
    item: Annotated[
        bool, typer.Option("--item", help="Target is an item, not a set")
    ] = False,
) -> None:
    """Post a comment or a reply."""
    if not text.strip():
        console.print("[red]Comment must not be empty[/red]")
        raise typer.Exit(2)
    target: CommentTarget = "item" if item else "set"
    _call(lambda s: s.post_comment(target_id, target, text, reply_to), "Posting...")
    console.print("[green]✓ Posted[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def configure_logging(level: str, log_file: str | None = None) -> None:
    """One stderr sink at the configured level, plus an optional file."""
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB")


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """
    📚 studyloop - study sets, quizzes and streaks from the terminal

    \b
    Quick Start:
      studyloop search biology     # Find a set
      studyloop play SET_ID        # Study it
      studyloop dashboard          # See your streak and XP
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
