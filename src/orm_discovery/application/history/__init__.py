"""
Research History - indexed store of searches and questions.
"""

from .keywords import STOP_WORDS, extract_keywords, normalize_keywords
from .recorder import ResearchRecorder
from .store import DEFAULT_MAX_ENTRIES, HISTORY_FILENAME, HistoryStore, generate_entry_id

__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "HISTORY_FILENAME",
    "STOP_WORDS",
    "HistoryStore",
    "ResearchRecorder",
    "extract_keywords",
    "generate_entry_id",
    "normalize_keywords",
]
