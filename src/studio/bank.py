"""Question bank: packaged questions, generated alphabet drills, book lookup."""
import json
import random
import re
from pathlib import Path
from typing import Optional

from studio.models import Question, ThemeChain

CONTENT_DIR = Path(__file__).parent / "content"

QUESTION_TYPES = ("mcq", "text", "multi")
TESTAMENTS = ("OT", "NT", "Both")

BOOKS = [
    "Genesis", "Exodus", "Leviticus", "Numbers", "Deuteronomy", "Joshua", "Judges", "Ruth",
    "1 Samuel", "2 Samuel", "1 Kings", "2 Kings", "1 Chronicles", "2 Chronicles", "Ezra",
    "Nehemiah", "Esther", "Job", "Psalms", "Proverbs", "Ecclesiastes", "Song of Solomon",
    "Isaiah", "Jeremiah", "Lamentations", "Ezekiel", "Daniel", "Hosea", "Joel", "Amos",
    "Obadiah", "Jonah", "Micah", "Nahum", "Habakkuk", "Zephaniah", "Haggai", "Zechariah",
    "Malachi", "Matthew", "Mark", "Luke", "John", "Acts", "Romans", "1 Corinthians",
    "2 Corinthians", "Galatians", "Ephesians", "Philippians", "Colossians", "1 Thessalonians",
    "2 Thessalonians", "1 Timothy", "2 Timothy", "Titus", "Philemon", "Hebrews", "James",
    "1 Peter", "2 Peter", "1 John", "2 John", "3 John", "Jude", "Revelation",
]

BOOK_NUMBERS = {book: idx for idx, book in enumerate(BOOKS, 1)}

# Common abbreviations on top of the full and space-free names
MANUAL_ALIASES = {
    "gen": "Genesis", "exod": "Exodus", "lev": "Leviticus", "num": "Numbers",
    "deut": "Deuteronomy", "josh": "Joshua", "judg": "Judges", "psalm": "Psalms",
    "ps": "Psalms", "prov": "Proverbs", "eccl": "Ecclesiastes", "song": "Song of Solomon",
    "sos": "Song of Solomon", "isa": "Isaiah", "jer": "Jeremiah", "lam": "Lamentations",
    "ezek": "Ezekiel", "dan": "Daniel", "hos": "Hosea", "obad": "Obadiah", "hab": "Habakkuk",
    "zech": "Zechariah", "mal": "Malachi", "matt": "Matthew", "rom": "Romans",
    "rev": "Revelation", "1 cor": "1 Corinthians", "2 cor": "2 Corinthians",
    "1 thess": "1 Thessalonians", "2 thess": "2 Thessalonians", "1 tim": "1 Timothy",
    "2 tim": "2 Timothy", "phlm": "Philemon", "1 pet": "1 Peter", "2 pet": "2 Peter",
}


def normalize_book_token(value) -> str:
    text = re.sub(r"[^a-z0-9\s]", "", str(value).lower())
    return re.sub(r"\s+", " ", text).strip()


def _build_aliases() -> dict[str, str]:
    aliases = {}
    for book in BOOKS:
        aliases[normalize_book_token(book)] = book
        aliases[normalize_book_token(book.replace(" ", ""))] = book
    for alias, book in MANUAL_ALIASES.items():
        aliases[normalize_book_token(alias)] = book
    return aliases


BOOK_ALIASES = _build_aliases()

_REFERENCE_BOOK = re.compile(r"^([1-3]?\s?[A-Za-z]+(?:\s+[A-Za-z]+)*)\s+\d")


def resolve_book_name(raw) -> Optional[str]:
    return BOOK_ALIASES.get(normalize_book_token(raw))


def infer_primary_book(reference) -> Optional[str]:
    """Book of the first citation in a reference like ``"Acts 2:16; Joel 2:28"``."""
    if not reference:
        return None
    first = str(reference).split(";")[0].strip()
    match = _REFERENCE_BOOK.match(first)
    if not match:
        return None
    return resolve_book_name(match.group(1))


def question_from_dict(raw: dict) -> Question:
    qtype = raw.get("type", "mcq")
    if qtype not in QUESTION_TYPES:
        raise ValueError(f"Unsupported question type {qtype!r} for {raw.get('id')!r}")
    return Question(
        id=str(raw["id"]),
        prompt=str(raw["prompt"]),
        type=qtype,
        testament=raw.get("testament", "Both"),
        category=raw.get("category", ""),
        difficulty=int(raw.get("difficulty") or 2),
        tags=list(raw.get("tags") or []),
        choices=list(raw.get("choices") or []),
        answer=raw.get("answer"),
        answers=list(raw.get("answers") or []),
        reference=raw.get("reference", ""),
        explanation=raw.get("explanation", ""),
    )


def load_questions() -> list[Question]:
    """Load the packaged question bank from questions.json."""
    data = json.loads((CONTENT_DIR / "questions.json").read_text(encoding="utf-8"))
    return [question_from_dict(q) for q in data["questions"]]


def load_theme_chains() -> list[ThemeChain]:
    data = json.loads((CONTENT_DIR / "theme_chains.json").read_text(encoding="utf-8"))
    return [ThemeChain(**chain) for chain in data["chains"]]


def load_alphabets() -> dict[str, list[dict]]:
    return json.loads((CONTENT_DIR / "alphabets.json").read_text(encoding="utf-8"))


def build_alphabet_choices(items: list[dict], answer_index: int, to_label, rng=None, count: int = 4) -> list[str]:
    """The answer plus distractors spaced three letters apart, shuffled."""
    rng = rng or random
    wanted = min(count, len(items))
    picked = [answer_index]
    for step in range(1, len(items) + 1):
        if len(picked) >= wanted:
            break
        candidate = (answer_index + step * 3) % len(items)
        if candidate not in picked:
            picked.append(candidate)
    # lengths divisible by 3 cycle early; fill with neighbours
    for step in range(1, len(items)):
        if len(picked) >= wanted:
            break
        candidate = (answer_index + step) % len(items)
        if candidate not in picked:
            picked.append(candidate)
    labels = [to_label(items[idx]) for idx in picked]
    rng.shuffle(labels)
    return labels


def _name_label(letter: dict) -> str:
    return f"{letter['name']} ({letter['pronunciation']})"


def build_alphabet_family(items: list[dict], family: str, rng=None) -> list[Question]:
    """Two questions per letter: name from script, then script from name."""
    tag = family.lower()
    questions = []
    for idx, letter in enumerate(items):
        questions.append(Question(
            id=f"alphabet-{tag}-name-{idx + 1}",
            prompt=f"{family}: What is the name/pronunciation of the letter {letter['script']}?",
            type="mcq",
            testament="Both",
            category="Alphabet",
            difficulty=1,
            tags=["alphabet", tag, "pronunciation"],
            choices=build_alphabet_choices(items, idx, _name_label, rng),
            answer=_name_label(letter),
            reference=f"{family} Alphabet",
            explanation=(
                f"{letter['script']} is {letter['name']}. Pronunciation: {letter['pronunciation']}. "
                f"Transliteration: {letter['transliteration']}."
            ),
        ))
        questions.append(Question(
            id=f"alphabet-{tag}-script-{idx + 1}",
            prompt=f"{family}: Which letter is {_name_label(letter)}?",
            type="mcq",
            testament="Both",
            category="Alphabet",
            difficulty=2,
            tags=["alphabet", tag, "pronunciation"],
            choices=build_alphabet_choices(items, idx, lambda entry: entry["script"], rng),
            answer=letter["script"],
            reference=f"{family} Alphabet",
            explanation=f"{letter['name']} is written {letter['script']}. Transliteration: {letter['transliteration']}.",
        ))
    return questions


def build_alphabet_questions(rng=None) -> list[Question]:
    alphabets = load_alphabets()
    return [
        *build_alphabet_family(alphabets["greek"], "Greek", rng),
        *build_alphabet_family(alphabets["hebrew"], "Hebrew", rng),
    ]


class QuestionBank:
    """Bank questions plus alphabet drills, indexed by id."""

    def __init__(self, questions: Optional[list[Question]] = None, alphabet: Optional[list[Question]] = None,
                 theme_chains: Optional[list[ThemeChain]] = None):
        self.questions = load_questions() if questions is None else list(questions)
        self.alphabet = build_alphabet_questions() if alphabet is None else list(alphabet)
        self.theme_chains = load_theme_chains() if theme_chains is None else list(theme_chains)
        self.index = {q.id: q for q in [*self.questions, *self.alphabet]}
        self.books = {q.id: infer_primary_book(q.reference) for q in self.questions}

    def get(self, question_id: str) -> Optional[Question]:
        return self.index.get(question_id)

    def book_of(self, question: Question) -> Optional[str]:
        return self.books.get(question.id)

    def books_in_bank(self) -> list[str]:
        present = {book for book in self.books.values() if book}
        return [book for book in BOOKS if book in present]

    def extend(self, questions: list[Question]) -> int:
        """Add questions whose ids are not already in the bank. Returns how many were added."""
        added = 0
        for question in questions:
            if question.id in self.index:
                continue
            self.questions.append(question)
            self.index[question.id] = question
            self.books[question.id] = infer_primary_book(question.reference)
            added += 1
        return added
