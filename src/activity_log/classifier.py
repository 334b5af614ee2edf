"""Keyword rules that map an application and window title to an activity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

UNCATEGORIZED = "Uncategorized"

EMAIL = "Email"
PROGRAMMING = "Programming"
COMMUNICATION = "Communication"
RESEARCH = "Research & documentation"
WEB_BROWSING = "Web browsing"
DOCUMENTS = "Document editing"
SPREADSHEETS = "Spreadsheets & data"
PRESENTATIONS = "Presentations"
FILES = "File management"
MEDIA = "Media"

Predicate = Callable[[str, str], bool]

BROWSERS = ("safari", "chrome", "arc", "firefox", "edge", "brave", "opera", "vivaldi")
SOURCE_EXTENSIONS = (
    ".go", ".py", ".js", ".ts", ".rs", ".cpp", ".c", ".java", ".rb", ".kt", ".swift", ".cs",
)
DOCUMENTATION_KEYWORDS = (
    "arxiv", "qiita", "stackoverflow", "docs", "doc:", "documentation", "mdn",
)


@dataclass(slots=True, frozen=True)
class Rule:
    """Assigns ``label`` when ``predicate(app, title)`` holds.

    Both arguments are passed lower-cased.
    """

    label: str
    predicate: Predicate


def _contains_any(value: str, needles: Iterable[str]) -> bool:
    return any(needle in value for needle in needles)


def app_is(*names: str) -> Predicate:
    return lambda app, title: app in names


def app_contains(*needles: str) -> Predicate:
    return lambda app, title: _contains_any(app, needles)


def title_contains(*needles: str) -> Predicate:
    return lambda app, title: _contains_any(title, needles)


def either(*predicates: Predicate) -> Predicate:
    return lambda app, title: any(p(app, title) for p in predicates)


def both(*predicates: Predicate) -> Predicate:
    return lambda app, title: all(p(app, title) for p in predicates)


is_browser = app_contains(*BROWSERS)

# Order matters: the first matching rule wins.
RULES: tuple[Rule, ...] = (
    Rule(
        EMAIL,
        either(
            app_is("mail"),
            app_contains("outlook"),
            title_contains("gmail", "outlook", "yahoo mail"),
        ),
    ),
    Rule(
        PROGRAMMING,
        either(
            app_contains("visual studio code", "intellij", "goland"),
            app_is("xcode"),
        ),
    ),
    Rule(PROGRAMMING, title_contains(*SOURCE_EXTENSIONS)),
    Rule(COMMUNICATION, app_contains("slack", "teams", "discord", "zoom", "meet")),
    Rule(RESEARCH, both(is_browser, title_contains(*DOCUMENTATION_KEYWORDS))),
    Rule(WEB_BROWSING, is_browser),
    Rule(DOCUMENTS, app_contains("word", "pages", "notion", "obsidian")),
    Rule(SPREADSHEETS, app_contains("excel", "numbers", "sheets")),
    Rule(PRESENTATIONS, app_contains("powerpoint", "keynote")),
    Rule(FILES, app_contains("finder", "path finder")),
    Rule(MEDIA, title_contains("youtube", "netflix", "twitch", "spotify", "music", "soundcloud")),
)


def classify(application: str, title: str, rules: Sequence[Rule] = RULES) -> str:
    """Return the label of the first rule matching the pair, or UNCATEGORIZED."""
    app = (application or "").lower()
    lowered_title = (title or "").lower()
    for rule in rules:
        if rule.predicate(app, lowered_title):
            return rule.label
    return UNCATEGORIZED
