from bible_reader.models.book import BibleBook
from bible_reader.models.chapter import BibleChapter
from bible_reader.models.verse import BibleVerse
from bible_reader.models.highlight import VerseHighlight
from bible_reader.models.note import VerseNote
from bible_reader.models.hidden_version import HiddenVersion

__all__ = [
    "BibleBook",
    "BibleChapter",
    "BibleVerse",
    "VerseHighlight",
    "VerseNote",
    "HiddenVersion",
]
