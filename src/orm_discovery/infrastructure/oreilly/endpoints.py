"""Learning platform endpoint table."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

LEARNING_BASE_URL = "https://learning.oreilly.com"
WWW_BASE_URL = "https://www.oreilly.com"


@dataclass(frozen=True)
class SearchEndpoint:
    name: str
    url: str


# Priority order: the first endpoint with a non-empty result list wins.
SEARCH_ENDPOINTS: tuple[SearchEndpoint, ...] = (
    SearchEndpoint("v2", f"{LEARNING_BASE_URL}/api/v2/search/"),
    SearchEndpoint("learning-search", f"{LEARNING_BASE_URL}/search/api/search/"),
    SearchEndpoint("www-search", f"{WWW_BASE_URL}/search/api/search/"),
    SearchEndpoint("legacy", f"{LEARNING_BASE_URL}/api/search/"),
)

SEARCH_REFERER = f"{LEARNING_BASE_URL}/search/"
ANSWERS_REFERER = f"{LEARNING_BASE_URL}/answers2/"

QUESTIONS_URL = f"{LEARNING_BASE_URL}/api/v1/miso-answers-relay-service/questions/"

# Filter query sent with every question: English books, videos and articles
# excluding content behind add-on permissions.
ANSWER_FILTER_QUERY = (
    '(type:book OR type:video OR type:article) AND language:("en" OR "EN" OR "en-au" OR "en-gb" '
    'OR "en-GB" OR "en-us" OR "en-US") '
    "AND ( NOT custom_attributes.required_p_permissions:aia ) "
    "AND ( NOT custom_attributes.required_p_permissions:cldsc ) "
    "AND ( NOT custom_attributes.required_p_permissions:cprex ) "
    "AND ( NOT custom_attributes.required_p_permissions:lvtrg ) "
    "AND ( NOT custom_attributes.required_p_permissions:ntbks ) "
    "AND ( NOT custom_attributes.required_p_permissions:scnrio )"
)

ANSWER_SOURCE_FIELDS = [
    "custom_attributes.ourn",
    "custom_attributes.publishers",
    "custom_attributes.marketing_type*",
    "custom_attributes.required_p_permissions",
    "url",
    "cover_image",
    "authors",
    "html",
]


def _segment(value: str) -> str:
    return quote(value, safe="")


def book_detail_url(book_id: str) -> str:
    return f"{LEARNING_BASE_URL}/api/v1/book/{_segment(book_id)}/"


def book_toc_url(book_id: str) -> str:
    return f"{LEARNING_BASE_URL}/api/v1/book/{_segment(book_id)}/flat-toc/"


def chapter_metadata_url(book_id: str, chapter: str) -> str:
    return f"{LEARNING_BASE_URL}/api/v1/book/{_segment(book_id)}/chapter/{_segment(chapter)}.html"


def chapter_file_url(book_id: str, chapter: str) -> str:
    return f"{LEARNING_BASE_URL}/api/v2/epubs/urn:orm:book:{_segment(book_id)}/files/{_segment(chapter)}.html"


def book_page_url(book_id: str) -> str:
    return f"{LEARNING_BASE_URL}/library/view/-/{_segment(book_id)}/"


def question_url(question_id: str) -> str:
    return f"{QUESTIONS_URL}{_segment(question_id)}/"
