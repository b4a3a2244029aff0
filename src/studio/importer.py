"""Import whiteboard backups and extra question banks from files."""
import json
import logging
from pathlib import Path

from studio.bank import question_from_dict
from studio.errors import ValidationError
from studio.models import Question, Whiteboard
from studio.schema import parse_whiteboard
from studio.whiteboards import create_whiteboard

logger = logging.getLogger(__name__)


def read_structured_file(file_path: str):
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        import yaml
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValidationError(f"Could not parse {path.name}: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ValidationError(f"Could not parse {path.name}: {exc}") from exc


def import_board_json(file_path: str) -> Whiteboard:
    """Read an exported whiteboard backup into a sanitized document.

    Single-page backups that only carry ``paths`` load as one page.
    """
    data = read_structured_file(file_path)
    if not isinstance(data, dict):
        raise ValidationError(f"{Path(file_path).name} is not a whiteboard backup")
    return parse_whiteboard(data)


def import_board(db_path: str, file_path: str) -> dict:
    """Store a backup as a new board; the backup's id is not reused."""
    board = import_board_json(file_path)
    payload = board.to_dict()
    created = create_whiteboard(
        db_path,
        title=board.title,
        author=board.author,
        page_drawings=payload["pageDrawings"],
        page_order=payload["pageOrder"],
        page_labels=payload["pageLabels"],
        active_page_key=payload["activePageKey"],
        preview_image=payload["previewImage"],
    )
    logger.info("Imported %s as whiteboard %s", Path(file_path).name, created["whiteboard"].id)
    return created


def load_question_file(file_path: str) -> list[Question]:
    """Load questions from a JSON or YAML file.

    Accepts either a list of questions or ``{"questions": [...]}``.
    """
    data = read_structured_file(file_path)
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list):
        raise ValidationError(f"{Path(file_path).name} has no question list")
    questions = []
    for idx, raw in enumerate(data, 1):
        try:
            questions.append(question_from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Question {idx} in {Path(file_path).name} is invalid: {exc}") from exc
    return questions
