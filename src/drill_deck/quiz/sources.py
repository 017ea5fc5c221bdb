"""Resolve spreadsheet links and load question banks from CSV exports.

Google Sheets links are turned into CSV export URLs. A link to a whole
published workbook (no ``gid``) is ambiguous, so :func:`resolve_sources`
raises :class:`~drill_deck.quiz.errors.SheetSelectionRequired` until the
caller picks sheets. Any other URL is fetched as-is, and a plain path or
``file:`` URL is read from disk.
"""

from __future__ import annotations

import csv
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union
from urllib.parse import parse_qs, urlparse
from urllib.request import url2pathname

import requests

from .errors import (
    NoQuestionsFound,
    QuizError,
    SheetSelectionRequired,
    SourceUnavailable,
)
from .models import Question
from .normalizer import normalize_rows, parse_csv_rows
from .randomness import RandomSource, SystemRandomSource, shuffled

__all__ = [
    "CONFIG_SHEET_NAME",
    "GoogleSheetLink",
    "ExternalCsvLink",
    "SheetLink",
    "SheetOption",
    "SheetMetadata",
    "LoadSettings",
    "parse_sheet_link",
    "build_csv_url",
    "needs_sheet_selection",
    "fetch_sheet_list",
    "partition_sheet_options",
    "fetch_sheet_metadata",
    "fetch_csv_rows",
    "resolve_sources",
    "load_question_bank",
]

GOOGLE_HOST = "docs.google.com"
CONFIG_SHEET_NAME = "_config"

_PUBLISHED_PATH = re.compile(r"/spreadsheets/d/e/([a-zA-Z0-9_-]+)")
_CLASSIC_PATH = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_SHEET_ENTRY = re.compile(r'items\.push\(\{name: "([^"]+)",[^}]*gid: "([^"]+)"')
_SUMMARY_KEYS = ("setsummary", "summary")


class HttpSession(Protocol):
    """The slice of :class:`requests.Session` used here."""

    def get(self, url: str, **kwargs) -> requests.Response: ...


@dataclass(frozen=True)
class GoogleSheetLink:
    variant: str  # "classic" or "published"
    id: str
    gid: Optional[str] = None


@dataclass(frozen=True)
class ExternalCsvLink:
    url: str


SheetLink = Union[GoogleSheetLink, ExternalCsvLink]


@dataclass(frozen=True)
class SheetOption:
    gid: str
    label: str


@dataclass(frozen=True)
class SheetMetadata:
    sheet_name: str
    module: Optional[str] = None
    summary: Optional[str] = None


@dataclass(frozen=True)
class LoadSettings:
    shuffle: bool = True
    question_limit: Optional[int] = None
    timeout_seconds: float = 15.0
    max_workers: int = 4


def parse_sheet_link(url: str) -> SheetLink:
    text = url.strip()
    try:
        parsed = urlparse(text)
    except ValueError:
        return ExternalCsvLink(text)
    if GOOGLE_HOST not in (parsed.hostname or ""):
        return ExternalCsvLink(text)

    gid_values = parse_qs(parsed.query).get("gid") or [None]
    gid = gid_values[0] or None
    match = _PUBLISHED_PATH.search(parsed.path)
    if match:
        return GoogleSheetLink("published", match.group(1), gid)
    match = _CLASSIC_PATH.search(parsed.path)
    if match:
        return GoogleSheetLink("classic", match.group(1), gid)
    return ExternalCsvLink(text)


def build_csv_url(link: SheetLink, gid: Optional[str] = None) -> str:
    if isinstance(link, ExternalCsvLink):
        return link.url
    sheet = gid or link.gid or "0"
    if link.variant == "published":
        return (
            f"https://{GOOGLE_HOST}/spreadsheets/d/e/{link.id}"
            f"/pub?output=csv&gid={sheet}"
        )
    return (
        f"https://{GOOGLE_HOST}/spreadsheets/d/{link.id}"
        f"/export?format=csv&gid={sheet}"
    )


def needs_sheet_selection(link: SheetLink) -> bool:
    return isinstance(link, GoogleSheetLink) and not link.gid


def fetch_sheet_list(
    link: SheetLink,
    http: HttpSession,
    *,
    timeout: float = 15.0,
) -> List[SheetOption]:
    """List the tabs of a workbook published to the web."""

    if not isinstance(link, GoogleSheetLink):
        raise ValueError("Sheet lists are only available for Google Sheets.")
    if link.variant == "published":
        index_url = f"https://{GOOGLE_HOST}/spreadsheets/d/e/{link.id}/pubhtml"
    else:
        index_url = f"https://{GOOGLE_HOST}/spreadsheets/d/{link.id}/pubhtml"
    html = _download(
        http,
        index_url,
        timeout=timeout,
        failure=(
            "Unable to load the sheet index. Ensure the spreadsheet is "
            "published to the web."
        ),
    )
    sheets = [
        SheetOption(gid=gid, label=label)
        for label, gid in _SHEET_ENTRY.findall(html)
    ]
    if not sheets:
        raise SourceUnavailable(
            "No published sheets were found. Double-check the Google Sheets "
            "sharing settings.",
            url=index_url,
        )
    return sheets


def partition_sheet_options(
    options: Sequence[SheetOption],
) -> Tuple[List[SheetOption], Optional[SheetOption]]:
    """Split question sheets from the optional ``_config`` sheet."""

    questions: List[SheetOption] = []
    config: Optional[SheetOption] = None
    for option in options:
        if _sheet_key(option.label) == CONFIG_SHEET_NAME:
            config = option
        else:
            questions.append(option)
    return questions, config


def fetch_sheet_metadata(
    link: SheetLink,
    config_sheet: Optional[SheetOption],
    http: HttpSession,
    *,
    timeout: float = 15.0,
) -> Dict[str, SheetMetadata]:
    """Read ``sheetname, module, summary`` rows from the ``_config`` sheet.

    Keys are sheet names trimmed and lower-cased.
    """

    if config_sheet is None or not isinstance(link, GoogleSheetLink):
        return {}
    text = _download(
        http,
        build_csv_url(link, config_sheet.gid),
        timeout=timeout,
        failure="Unable to download the configuration sheet.",
    )
    metadata: Dict[str, SheetMetadata] = {}
    for row in _parse_rows(text, build_csv_url(link, config_sheet.gid)):
        name = (row.get("sheetname") or "").strip()
        if not name:
            continue
        summary = ""
        for key in _SUMMARY_KEYS:
            summary = (row.get(key) or "").strip()
            if summary:
                break
        metadata[_sheet_key(name)] = SheetMetadata(
            sheet_name=name,
            module=(row.get("module") or "").strip() or None,
            summary=summary or None,
        )
    return metadata


def fetch_csv_rows(
    url: str, http: HttpSession, *, timeout: float = 15.0
) -> List[dict[str, str]]:
    local = _local_path(url)
    if local is not None:
        text = _read_local(local, url)
    else:
        text = _download(
            http, url, timeout=timeout, failure="Unable to download CSV"
        )
    return _parse_rows(text, url)


def resolve_sources(
    url: str,
    http: HttpSession,
    *,
    gids: Optional[Sequence[str]] = None,
    all_sheets: bool = False,
    timeout: float = 15.0,
    logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Return the CSV URLs to load for ``url``.

    Raises :class:`SheetSelectionRequired` for a whole-workbook link when
    neither ``gids`` nor ``all_sheets`` says which tabs to use.
    """

    logger = logger or logging.getLogger(__name__)
    link = parse_sheet_link(url)
    if gids:
        return [build_csv_url(link, gid) for gid in gids]
    if not needs_sheet_selection(link):
        return [build_csv_url(link)]

    questions, config_sheet = partition_sheet_options(
        fetch_sheet_list(link, http, timeout=timeout)
    )
    if all_sheets:
        return [build_csv_url(link, sheet.gid) for sheet in questions]
    try:
        metadata = fetch_sheet_metadata(
            link, config_sheet, http, timeout=timeout
        )
    except SourceUnavailable as exc:
        # The _config sheet only decorates the picker.
        logger.warning(
            "Ignoring unavailable sheet metadata",
            extra={"url": exc.url, "status": exc.status},
        )
        metadata = {}
    raise SheetSelectionRequired(questions, metadata)


def load_question_bank(
    urls: Sequence[str],
    *,
    settings: LoadSettings = LoadSettings(),
    http: Optional[HttpSession] = None,
    rng: Optional[RandomSource] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Question]:
    """Fetch and normalize every source concurrently, then merge them.

    All sources must succeed: one unreachable or empty source fails the
    whole load. The merged bank is shuffled (if enabled) before the question
    limit is applied.
    """

    if not urls:
        raise NoQuestionsFound("No question sources were selected.")
    if http is None:
        with requests.Session() as session:
            return load_question_bank(
                urls, settings=settings, http=session, rng=rng, logger=logger
            )
    rng = rng or SystemRandomSource()
    logger = logger or logging.getLogger(__name__)

    logger.info(
        "Loading question bank",
        extra={"source_count": len(urls), "shuffle": settings.shuffle},
    )

    def _load_one(url: str) -> List[dict[str, str]]:
        return fetch_csv_rows(url, http, timeout=settings.timeout_seconds)

    workers = max(1, min(settings.max_workers, len(urls)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_load_one, url) for url in urls]
        try:
            row_sets = [future.result() for future in futures]
        except QuizError as exc:
            for future in futures:
                future.cancel()
            logger.error(
                "Question source failed",
                extra={
                    "url": getattr(exc, "url", None),
                    "status": getattr(exc, "status", None),
                },
            )
            raise

    # Normalize on the calling thread so the random source is never shared.
    merged: List[Question] = []
    for url, rows in zip(urls, row_sets):
        questions = normalize_rows(rows, rng, source=url)
        logger.info(
            "Normalized question source",
            extra={
                "url": url,
                "row_count": len(rows),
                "question_count": len(questions),
            },
        )
        merged.extend(questions)

    if settings.shuffle:
        merged = shuffled(merged, rng)
    if settings.question_limit:
        merged = merged[: settings.question_limit]

    logger.info(
        "Question bank ready", extra={"question_count": len(merged)}
    )
    return merged


def _download(
    http: HttpSession, url: str, *, timeout: float, failure: str
) -> str:
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise SourceUnavailable(f"{failure} ({exc})", url=url) from exc
    if not response.ok:
        raise SourceUnavailable(
            f"{failure} ({response.status_code})",
            url=url,
            status=response.status_code,
        )
    return response.text


def _local_path(url: str) -> Optional[Path]:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))
    # One-letter schemes are Windows drive letters.
    if len(parsed.scheme) <= 1:
        return Path(url).expanduser()
    return None


def _read_local(path: Path, url: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceUnavailable(
            f"Unable to read CSV file ({exc.strerror or exc})", url=url
        ) from exc


def _parse_rows(text: str, url: str) -> List[dict[str, str]]:
    try:
        return parse_csv_rows(text)
    except csv.Error as exc:
        raise SourceUnavailable(
            f"Unable to parse CSV ({exc})", url=url
        ) from exc


def _sheet_key(label: str) -> str:
    return label.strip().lower()
