"""Interactive CLI application."""
import re
import string
import time
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from studio.bank import QuestionBank
from studio.config import Settings, load_settings
from studio.dashboard import (
    get_category_scores, get_mastery_color, get_mastery_label, get_study_stats, get_weak_categories,
)
from studio.errors import StudioError
from studio.grading import InvalidSubmission
from studio.importer import import_board, load_question_file
from studio.logs import configure_logging
from studio.paging import BoardEditor
from studio.progress import MODES, QuizProgress, load_progress
from studio.scripture import lookup_scripture
from studio.selector import QuizSettings
from studio.session import FEEDBACK, QuizSession
from studio.whiteboards import create_whiteboard, get_whiteboard, list_whiteboards

console = Console()

MODE_LABELS = {
    "adaptive": "Adaptive Exam",
    "crossref": "Cross-Reference Focus",
    "motif": "Motif Drill",
    "explain": "Explain-Why Mode",
    "book": "Book Exam",
    "alphabet": "Greek + Hebrew Alphabet Drill",
}


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "whiteboard"


def show_welcome():
    console.print(Panel(
        "[bold]Last Day Studio[/bold]\n[dim]Whiteboards and adaptive Bible quizzes[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("quiz", "Start a quiz session"),
        ("retake", "Retake the questions missed last session"),
        ("dashboard", "Mastery + high scores"),
        ("boards", "List or create whiteboards"),
        ("pdf", "Add PDF pages to a whiteboard"),
        ("export", "Export a whiteboard to JSON or PNG"),
        ("import", "Import a whiteboard backup or question file"),
        ("scripture", "Look up a passage"),
        ("serve", "Run the HTTP API"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _letters(count: int) -> list[str]:
    return list(string.ascii_lowercase[:count])


def ask_response(question):
    """Prompt for an answer in the shape the question type expects."""
    if question.type == "text":
        return Prompt.ask("\nYour answer")
    letters = _letters(len(question.choices))
    for letter, choice in zip(letters, question.choices):
        console.print(f"  [cyan]{letter})[/cyan] {choice}")
    if question.type == "mcq":
        picked = Prompt.ask("\nYour answer", choices=letters)
        return question.choices[letters.index(picked)]
    raw = Prompt.ask("\nYour answers (comma separated letters)")
    picked = [token.strip().lower() for token in raw.split(",") if token.strip()]
    return [question.choices[letters.index(p)] for p in picked if p in letters]


def run_quiz_session(session: QuizSession) -> None:
    try:
        question = session.start()
    except StudioError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    label = MODE_LABELS[session.settings.mode]
    console.print(f"\n[bold]{label}[/bold] · {session.settings.length} questions\n")

    while question is not None:
        console.print(Panel(
            question.prompt,
            title=f"Q{session.shown}/{session.settings.length} · {question.category} · difficulty {question.difficulty}",
            border_style="cyan",
        ))
        started = time.monotonic()
        grade = None
        while grade is None:
            response = ask_response(question)
            explanation = None
            if session.settings.mode == "explain":
                explanation = Prompt.ask("Why? (at least 6 words)")
            grade = session.tick(time.monotonic() - started)
            started = time.monotonic()
            if grade is not None:
                break
            try:
                grade = session.submit(response, explanation)
            except InvalidSubmission as e:
                console.print(f"[yellow]{e}[/yellow]")

        color = "green" if grade.correct else "red"
        console.print(f"[{color}]{session.feedback}[/{color}] Correct: [green]{grade.correct_answer}[/green]")
        if grade.explain_ratio is not None:
            hits = ", ".join(grade.explain_hits[:4]) or "none"
            console.print(f"[dim]Why score: {round(grade.explain_ratio * 100)}% (matched terms: {hits})[/dim]")
        console.print(f"[dim]{session.current.reference}: {session.current.explanation}[/dim]")
        console.print(f"Score: [bold]{session.score}[/bold]")

        if session.chain is not None:
            chain = session.chain
            console.print(f"\n[bold]Theme chain:[/bold] {chain.prompt}")
            letters = _letters(len(chain.options))
            for letter, option in zip(letters, chain.options):
                console.print(f"  [cyan]{letter})[/cyan] {option}")
            picked = Prompt.ask("Link", choices=letters + ["skip"], default="skip")
            if picked != "skip":
                bonus = session.answer_chain(chain.options[letters.index(picked)])
                if bonus:
                    console.print(f"[green]Strong link. Bonus +{bonus}.[/green] {chain.explanation}")
                else:
                    console.print(f"Best link: {chain.answer}. {chain.explanation}")
        console.print()
        question = session.next_question() if session.state == FEEDBACK else None

    show_summary(session)


def show_summary(session: QuizSession) -> None:
    summary = session.finish()
    console.print(Panel(
        f"Score [bold]{summary.score}[/bold]  |  Accuracy [bold]{summary.accuracy}%[/bold]  |  "
        f"Longest streak [bold]{summary.longest_streak}[/bold]  |  High score [bold]{summary.high_score}[/bold]"
        + ("\n[green]New high score![/green]" if summary.new_high_score else ""),
        title="Session Results", border_style="blue",
    ))
    if not summary.misses:
        console.print("[green]No misses in this session.[/green]")
        return
    table = Table(title="Missed Questions")
    table.add_column("Question")
    table.add_column("Your answer")
    table.add_column("Correct", style="green")
    table.add_column("Reference", style="dim")
    for miss in summary.misses:
        table.add_row(miss.prompt, miss.response, miss.correct_answer, miss.reference)
    console.print(table)


def cmd_quiz(settings: Settings, bank: QuestionBank, progress: QuizProgress):
    console.print("\n[bold]Quiz Setup[/bold]")
    mode = Prompt.ask("Mode", choices=list(MODES), default="adaptive")
    testament = Prompt.ask("Testament", choices=["all", "OT", "NT"], default="all")
    book_scope = "all"
    if mode == "book":
        books = bank.books_in_bank()
        console.print("[dim]" + ", ".join(books) + "[/dim]")
        book_scope = Prompt.ask("Book", choices=["all"] + books, default="all")
    length = IntPrompt.ask("Number of questions", default=10)
    seconds = IntPrompt.ask("Seconds per question", default=45)
    difficulty = IntPrompt.ask("Starting difficulty", choices=[str(n) for n in range(1, 6)], default=2)
    quiz_settings = QuizSettings(
        mode=mode, testament=testament, book_scope=book_scope,
        length=length, seconds=seconds, difficulty=difficulty,
    )
    session = QuizSession(quiz_settings, bank, progress, progress_path=settings.progress_path)
    run_quiz_session(session)
    return session


def cmd_retake(last_session):
    if last_session is None:
        console.print("[yellow]Finish a quiz first.[/yellow]")
        return None
    retake = last_session.retake_missed()
    if retake is None:
        console.print("[green]Nothing to retake. No misses last session.[/green]")
        return last_session
    run_quiz_session(retake)
    return retake


def cmd_dashboard(bank: QuestionBank, progress: QuizProgress):
    stats = get_study_stats(progress)
    accuracy = stats["accuracy"]
    color = get_mastery_color(accuracy)
    console.print(Panel(
        f"Overall accuracy [bold]{accuracy}%[/bold] [{color}]{get_mastery_label(accuracy)}[/{color}]",
        title="Mastery Dashboard", border_style="blue",
    ))

    table = Table(title="Categories")
    table.add_column("Category", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for row in get_category_scores(progress, bank):
        row_color = get_mastery_color(row["score"])
        table.add_row(row["category"], str(row["attempts"]), f"{row['score']}%",
                      f"[{row_color}]{row['label']}[/{row_color}]")
    console.print(table)

    console.print(f"\n  Seen: [bold]{stats['questions_seen']}[/bold]  |  "
                  f"Due now: [bold]{stats['due_now']}[/bold]  |  "
                  f"Mastered: [bold]{stats['mastered']}[/bold]")
    scores = "  ".join(f"{MODE_LABELS[m]}: [bold]{stats['high_scores'].get(m, 0)}[/bold]" for m in MODES)
    console.print(f"  High scores: {scores}")

    weak = get_weak_categories(progress, bank)
    if weak:
        console.print(f"\n  [yellow]Recommendation: review {weak[0]['category']}[/yellow]")


def _pick_board(db_path: str):
    boards = list_whiteboards(db_path)
    if not boards:
        console.print("[yellow]No whiteboards yet. Create one with 'boards'.[/yellow]")
        return None
    for idx, board in enumerate(boards, 1):
        console.print(f"  [cyan]{idx}[/cyan]) {board['title']} [dim]({board['pageCount']} pages)[/dim]")
    choice = IntPrompt.ask("Board", choices=[str(n) for n in range(1, len(boards) + 1)])
    return get_whiteboard(db_path, boards[choice - 1]["id"])


def cmd_boards(db_path: str):
    boards = list_whiteboards(db_path)
    table = Table(title="Whiteboards")
    table.add_column("Title", style="cyan")
    table.add_column("Author")
    table.add_column("Pages", justify="right")
    table.add_column("Strokes", justify="right")
    table.add_column("Updated", style="dim")
    for board in boards:
        table.add_row(board["title"], board["author"], str(board["pageCount"]),
                      str(board["pathCount"]), board["updatedAt"])
    console.print(table)
    if Prompt.ask("Create a new board?", choices=["y", "n"], default="n") == "y":
        title = Prompt.ask("Title", default="Untitled Whiteboard")
        author = Prompt.ask("Author", default="Member")
        created = create_whiteboard(db_path, title=title, author=author)
        console.print(f"[green]Created {created['whiteboard'].title}[/green]")


def cmd_pdf(db_path: str):
    board = _pick_board(db_path)
    if board is None:
        return
    file_path = Prompt.ask("PDF path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    editor = BoardEditor(board)
    keys = editor.import_pdf(Path(file_path).read_bytes(), Path(file_path).name)
    if not keys:
        console.print(f"[red]{editor.status_message}[/red]")
        return
    editor.save(db_path)
    console.print(f"[green]{editor.status_message}[/green] [dim]Backgrounds are not saved with the board.[/dim]")


def cmd_export(db_path: str):
    board = _pick_board(db_path)
    if board is None:
        return
    fmt = Prompt.ask("Format", choices=["json", "png"], default="json")
    editor = BoardEditor(board)
    out = Path(f"{slugify(board.title)}.{fmt}")
    if fmt == "json":
        out.write_text(editor.export_json(), encoding="utf-8")
    else:
        out.write_bytes(editor.export_png())
    console.print(f"[green]{fmt.upper()} exported to {out}[/green]")


def cmd_import(db_path: str, bank: QuestionBank):
    kind = Prompt.ask("Import", choices=["board", "questions"], default="board")
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if kind == "board":
        created = import_board(db_path, file_path)
        console.print(f"[green]Imported {created['whiteboard'].title} as {created['whiteboard'].id}[/green]")
    else:
        added = bank.extend(load_question_file(file_path))
        console.print(f"[green]Added {added} questions to this session's bank[/green]")


def cmd_scripture(settings: Settings):
    query = Prompt.ask("Reference (e.g. John 3:16-18)")
    translation = Prompt.ask("Translation", choices=["web", "kjv", "asv", "ylt"], default="web")
    passage = lookup_scripture(query, translation, timeout=settings.scripture_timeout)
    lines = "\n".join(f"[dim]{v.verse}[/dim] {v.text}" for v in passage.verses) or "[dim]No verses returned.[/dim]"
    console.print(Panel(lines, title=f"{passage.reference} · {passage.translation}", border_style="green"))


def cmd_serve(settings: Settings):
    import uvicorn
    from studio.api import create_app
    console.print(f"[dim]Serving on http://{settings.host}:{settings.port} (Ctrl+C to stop)[/dim]")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


def main():
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level, console)
    bank = QuestionBank()
    progress = load_progress(settings.progress_path)
    last_session = None

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="quiz").strip().lower()
        try:
            if choice == "quiz":
                last_session = cmd_quiz(settings, bank, progress)
            elif choice == "retake":
                last_session = cmd_retake(last_session)
            elif choice == "dashboard":
                cmd_dashboard(bank, progress)
            elif choice == "boards":
                cmd_boards(settings.db_path)
            elif choice == "pdf":
                cmd_pdf(settings.db_path)
            elif choice == "export":
                cmd_export(settings.db_path)
            elif choice == "import":
                cmd_import(settings.db_path, bank)
            elif choice == "scripture":
                cmd_scripture(settings)
            elif choice == "serve":
                cmd_serve(settings)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Peace be with you.[/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except (StudioError, OSError) as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
