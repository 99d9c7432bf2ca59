"""
ORM Discovery - O'Reilly Learning platform client and MCP server.

Authenticates against the learning platform with a headless browser,
searches and reads books, asks O'Reilly Answers questions and keeps a
searchable research history of what was looked up.

Usage:
    from orm_discovery.container import ApplicationContainer
    from orm_discovery.config import Settings

    container = ApplicationContainer()
    container.config.from_dict(Settings.from_env().as_container_config())

    client = container.content_client()
    results = await client.search("kubernetes operators", rows=10)
    for result in results:
        print(f"{result.id}: {result.title}")
"""

from .domain.entities import (
    Answer,
    BookDetail,
    CanonicalResult,
    ChapterContent,
    ContentType,
    EntryType,
    ResearchEntry,
    TableOfContents,
)
from .shared.exceptions import (
    AuthenticationError,
    ContentNotFoundError,
    ORMDiscoveryError,
    PersistenceError,
    TransientNetworkError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "Answer",
    "AuthenticationError",
    "BookDetail",
    "CanonicalResult",
    "ChapterContent",
    "ContentNotFoundError",
    "ContentType",
    "EntryType",
    "ORMDiscoveryError",
    "PersistenceError",
    "ResearchEntry",
    "TableOfContents",
    "TransientNetworkError",
    "ValidationError",
    "__version__",
]
