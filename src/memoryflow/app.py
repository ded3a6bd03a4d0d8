"""Interactive CLI application."""
import logging
from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt, IntPrompt, Confirm

from memoryflow.db import init_db, DEFAULT_DB_PATH, DEFAULT_CONTENT_DIR
from memoryflow.logging import configure_logging
from memoryflow.models import Topic
from memoryflow.scheduler import ReviewScheduler, ReviewStatus, stage_label
from memoryflow.settings import (
    load_scheduler_config, set_repeat_final_interval, load_streak, save_streak,
)
from memoryflow.stats import get_scheduling_stats
from memoryflow.streaks import current_streak_as_of
from memoryflow.topics import (
    create_topic, list_topics, get_due_topics, review_topic, reset_topic,
    reschedule_topic, remove_custom_schedule, delete_topic, read_content,
)

console = Console()

STATUS_STYLE = {
    ReviewStatus.OVERDUE: ("red", "Overdue"),
    ReviewStatus.DUE_TODAY: ("yellow", "Due today"),
    ReviewStatus.UPCOMING: ("green", "Upcoming"),
}


def show_welcome():
    console.print(Panel(
        "[bold]MemoryFlow[/bold]\n[dim]Spaced repetition for your notes[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("review", "Review topics due today"),
        ("add", "Add a topic"),
        ("list", "All topics with status"),
        ("reset", "Restart a topic at stage 0"),
        ("schedule", "Pick a review date for a topic"),
        ("delete", "Delete a topic"),
        ("stats", "Scheduling statistics"),
        ("config", "Scheduler settings"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def render_topics(topics: list[Topic], scheduler: ReviewScheduler, title: str = "Topics") -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Stage")
    table.add_column("Next review")
    table.add_column("Status")
    for i, topic in enumerate(topics, 1):
        color, label = STATUS_STYLE[scheduler.classify(topic)]
        if scheduler.is_retired(topic):
            label = "Mastered"
        elif topic.use_custom_schedule:
            label += " (custom)"
        table.add_row(
            str(i),
            topic.title,
            f"{topic.current_stage} · {stage_label(topic.current_stage)}",
            topic.next_review_date.strftime("%Y-%m-%d %H:%M"),
            f"[{color}]{label}[/{color}]",
        )
    console.print(table)


def choose_topic(topics: list[Topic], scheduler: ReviewScheduler) -> Topic | None:
    if not topics:
        console.print("[yellow]No topics yet. Use 'add' to create one.[/yellow]")
        return None
    render_topics(topics, scheduler)
    index = IntPrompt.ask("Topic number", choices=[str(i) for i in range(1, len(topics) + 1)])
    return topics[index - 1]


def cmd_review(db_path: str, scheduler: ReviewScheduler):
    due = get_due_topics(db_path, scheduler=scheduler)
    if not due:
        console.print("[green]All caught up! Nothing due today.[/green]")
        return
    streak = load_streak(db_path)
    console.print(f"\n[bold]Review Session[/bold] — {len(due)} topics\n")
    for i, topic in enumerate(due, 1):
        body = read_content(topic) or "[dim](no notes)[/dim]"
        console.print(Panel(body, title=f"{topic.title} ({i}/{len(due)})", border_style="cyan"))
        if not Confirm.ask("Mark as reviewed?", default=True):
            continue
        updated, streak = review_topic(db_path, topic.id, streak, scheduler=scheduler)
        save_streak(db_path, streak)
        console.print(
            f"[green]Stage {updated.current_stage}[/green] · next review "
            f"{updated.next_review_date:%Y-%m-%d}\n"
        )
    console.print(f"[bold]Streak: {streak.current_streak} days[/bold]")


def cmd_add(db_path: str, content_dir: str, scheduler: ReviewScheduler):
    title = Prompt.ask("Title").strip()
    if not title:
        console.print("[red]Title is required.[/red]")
        return
    content = Prompt.ask("Notes (markdown)", default="")
    tags = [t.strip() for t in Prompt.ask("Tags (comma separated)", default="").split(",") if t.strip()]
    topic = create_topic(
        db_path, title, content=content, tags=tags, content_dir=content_dir, scheduler=scheduler,
    )
    console.print(f"[green]Added '{topic.title}'. First review {topic.next_review_date:%Y-%m-%d}.[/green]")


def cmd_list(db_path: str, scheduler: ReviewScheduler):
    topics = list_topics(db_path)
    if not topics:
        console.print("[yellow]No topics yet. Use 'add' to create one.[/yellow]")
        return
    render_topics(topics, scheduler, title="All Topics")


def cmd_reset(db_path: str, scheduler: ReviewScheduler):
    topic = choose_topic(list_topics(db_path), scheduler)
    if topic is None:
        return
    if Confirm.ask(f"Reset '{topic.title}' to stage 0?", default=False):
        updated = reset_topic(db_path, topic.id, scheduler=scheduler)
        console.print(f"[green]Reset. Next review {updated.next_review_date:%Y-%m-%d}.[/green]")


def cmd_schedule(db_path: str, scheduler: ReviewScheduler):
    topic = choose_topic(list_topics(db_path), scheduler)
    if topic is None:
        return
    if topic.use_custom_schedule and Confirm.ask("Return to automatic scheduling?", default=False):
        updated = remove_custom_schedule(db_path, topic.id, scheduler=scheduler)
        console.print(f"[green]Automatic. Next review {updated.next_review_date:%Y-%m-%d}.[/green]")
        return
    raw = Prompt.ask("Review on (YYYY-MM-DD HH:MM)")
    try:
        when = datetime.strptime(raw.strip(), "%Y-%m-%d %H:%M")
    except ValueError:
        console.print(f"[red]Invalid date: {raw}[/red]")
        return
    is_custom = Confirm.ask("Keep this date fixed (custom schedule)?", default=True)
    reschedule_topic(db_path, topic.id, when, is_custom, scheduler=scheduler)
    console.print(f"[green]Rescheduled '{topic.title}' to {when:%Y-%m-%d %H:%M}.[/green]")


def cmd_delete(db_path: str, scheduler: ReviewScheduler):
    topic = choose_topic(list_topics(db_path), scheduler)
    if topic is None:
        return
    if Confirm.ask(f"Delete '{topic.title}' and its notes?", default=False):
        delete_topic(db_path, topic.id)
        console.print("[green]Deleted.[/green]")


def cmd_stats(db_path: str, scheduler: ReviewScheduler):
    stats = get_scheduling_stats(db_path, scheduler=scheduler)
    streak = load_streak(db_path)
    console.print(Panel(
        f"Topics: [bold]{stats['total_topics']}[/bold]  |  "
        f"Due today: [bold]{stats['due_today']}[/bold]  |  "
        f"Overdue: [bold red]{stats['overdue']}[/bold red]  |  "
        f"Next 7 days: [bold]{stats['upcoming_7_days']}[/bold]",
        title="Review Dashboard", border_style="blue",
    ))
    console.print(
        f"  Reviews: [bold]{stats['total_reviews']}[/bold] "
        f"(avg {stats['average_reviews']} per topic)  |  "
        f"Custom schedules: [bold]{stats['custom_schedules']}[/bold]  |  "
        f"Streak: [bold]{current_streak_as_of(streak, scheduler.clock().date())}[/bold] "
        f"(best {streak.longest_streak})"
    )
    table = Table(title="Stage Distribution")
    table.add_column("Stage", justify="right")
    table.add_column("Interval")
    table.add_column("Topics", justify="right")
    for stage, count in stats["stage_distribution"].items():
        table.add_row(str(stage), stage_label(stage), str(count))
    console.print(table)


def cmd_config(db_path: str) -> ReviewScheduler:
    config = load_scheduler_config(db_path)
    console.print(
        f"Final interval repeats every 30 days: "
        f"[bold]{'yes' if config.repeat_final_interval else 'no (mastered)'}[/bold]"
    )
    repeat = Confirm.ask("Repeat the final interval?", default=config.repeat_final_interval)
    set_repeat_final_interval(db_path, repeat)
    return ReviewScheduler(load_scheduler_config(db_path))


def main():
    configure_logging(logging.WARNING)
    db_path = DEFAULT_DB_PATH
    content_dir = DEFAULT_CONTENT_DIR
    init_db(db_path)
    scheduler = ReviewScheduler(load_scheduler_config(db_path))

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice == "review":
                cmd_review(db_path, scheduler)
            elif choice == "add":
                cmd_add(db_path, content_dir, scheduler)
            elif choice == "list":
                cmd_list(db_path, scheduler)
            elif choice == "reset":
                cmd_reset(db_path, scheduler)
            elif choice == "schedule":
                cmd_schedule(db_path, scheduler)
            elif choice == "delete":
                cmd_delete(db_path, scheduler)
            elif choice == "stats":
                cmd_stats(db_path, scheduler)
            elif choice == "config":
                scheduler = cmd_config(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you at your next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
