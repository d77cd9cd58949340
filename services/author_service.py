"""
services/author_service.py – Work out who built a megabase from its source link.

Reddit posts are fetched and scanned for the submitting user; the operator
confirms each candidate in turn.  For any other link the page only has to be
reachable, and the operator types the author by hand.
"""

import logging
import re
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import httpx
from bs4 import BeautifulSoup

from services.exceptions import AuthorNotFoundError, NotReachableError

# ── Configuration ────────────────────────────────────────────────────────────

HTTP_TIMEOUT: float = 30.0

# Reddit throttles the default httpx agent aggressively.
USER_AGENT: str = "megabase-index-incrementer/0.3 (python-httpx)"

REDDIT_HOST: str = "reddit.com"

# JSON blobs embedded in Reddit pages carry the submitter as "author":"name".
JSON_AUTHOR_PATTERN: re.Pattern = re.compile(r'"author":"([^"]+)"')

# Plain mentions of a user, e.g. "/u/name/" or "/u/name ".
MENTION_PATTERN: re.Pattern = re.compile(r'/u/([^/" ]+)[/" ]')

# Profile links found in anchors: /u/name or /user/name.
PROFILE_HREF_PATTERN: re.Pattern = re.compile(r"/u(?:ser)?/([^/\"\s?#]+)")

# ── Types ────────────────────────────────────────────────────────────────────
Prompt = Callable[[str], str]

logger = logging.getLogger(__name__)


# ── Public API ───────────────────────────────────────────────────────────────


def resolve_author(
    source_link: str,
    prompt: Prompt,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """
    Determine the author of the megabase showcased at *source_link*.

    Parameters
    ----------
    source_link : Post or video URL describing the megabase.
    prompt      : Asks the operator a question and returns the stripped answer.
    client      : Optional pre-configured httpx client (tests inject one
                  backed by a mock transport).

    Returns
    -------
    For Reddit links a profile path such as "/user/name/"; otherwise whatever
    the operator typed.

    Raises
    ------
    NotReachableError   on network failure or a non-200 answer.
    AuthorNotFoundError when no candidate is accepted or none is typed.
    """
    url = source_link.strip()
    with _client_scope(client) as http:
        if REDDIT_HOST in url:
            return _resolve_reddit_author(http, url, prompt)
        return _resolve_manual_author(http, url, prompt)


def candidate_authors(page: str) -> List[str]:
    """
    Collect candidate submitters from a Reddit page, in page order.

    JSON "author" fields win when present; otherwise /u/ mentions are
    harvested from profile anchors first and then from the raw text.
    """
    names = JSON_AUTHOR_PATTERN.findall(page)
    if not names:
        names = _profile_anchor_names(page) + MENTION_PATTERN.findall(page)
    return [f"/user/{name}/" for name in _unique(names)]


# ── Private helpers ───────────────────────────────────────────────────────────


@contextmanager
def _client_scope(client: Optional[httpx.Client]) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with httpx.Client(
        timeout=HTTP_TIMEOUT,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    ) as owned:
        yield owned


def _resolve_reddit_author(http: httpx.Client, url: str, prompt: Prompt) -> str:
    try:
        response = http.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NotReachableError(
            f"Reddit returned HTTP {exc.response.status_code} for {url}."
        ) from exc
    except httpx.RequestError as exc:
        raise NotReachableError(f"Network error while fetching {url}: {exc}") from exc

    for candidate in candidate_authors(response.text):
        answer = prompt(
            f"Found post to be submitted by {candidate}, press enter if this is "
            'correct, "n" to see next user'
        )
        if not answer:
            logger.info("Author of %s confirmed as %s.", url, candidate)
            return candidate

    raise AuthorNotFoundError(f"Didn't find any accepted user on {url}.")


def _resolve_manual_author(http: httpx.Client, url: str, prompt: Prompt) -> str:
    try:
        response = http.head(url)
    except httpx.RequestError as exc:
        raise NotReachableError(f"Network error while checking {url}: {exc}") from exc

    if response.status_code != 200:
        raise NotReachableError(f"Status code {response.status_code} for URL {url}.")

    author = prompt("Please enter the user who created the save")
    if not author:
        raise AuthorNotFoundError("Author is required.")
    return author


def _profile_anchor_names(page: str) -> List[str]:
    soup = BeautifulSoup(page, "html.parser")
    names: List[str] = []
    for anchor in soup.find_all("a", href=True):
        match = PROFILE_HREF_PATTERN.search(anchor["href"])
        if match:
            names.append(match.group(1))
    return names


def _unique(names: List[str]) -> List[str]:
    # De-duplicate while preserving order.
    seen: set = set()
    unique: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique
