"""Client-side search over cached owner/pet/visit snapshots."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

CACHE_TTL = 10.0
DEFAULT_PER_PAGE = 10

DOMAIN_FIELDS = {
    "owners": ("id", "first_name", "last_name"),
    "pets": ("id", "name", "species", "condition"),
    "visits": ("id", "date", "diagnosis"),
}
DOMAINS = tuple(DOMAIN_FIELDS)
ANY = "any"

_TOKEN_RE = re.compile(r'"([^"]+)"|\'([^\']+)\'|(\S+)')
_ID_RE = re.compile(r"^#?(\d+)$")


def tokenize(text: str | None) -> list[str]:
    """Split on whitespace; single- or double-quoted phrases stay whole."""
    tokens = []
    for dq, sq, bare in _TOKEN_RE.findall(text or ""):
        token = (dq or sq or bare).strip()
        if token:
            tokens.append(token)
    return tokens


@dataclass(frozen=True)
class ParsedQuery:
    raw: str
    tokens: tuple[str, ...] = ()
    terms: tuple[str, ...] = ()
    id: int | None = None
    domain: str = ANY
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @property
    def q(self) -> str | None:
        return " ".join(self.terms) or None

    @property
    def is_empty(self) -> bool:
        return self.id is None and not self.terms


def parse_search_input(
    text: str | None, *, domain: str = ANY, page: int = 1, per_page: int = DEFAULT_PER_PAGE
) -> ParsedQuery:
    """Pull the id filter (``#5`` or ``5``) out of the tokens.

    When several tokens look like ids the last one wins; the remaining
    tokens become lower-cased AND terms.
    """
    tokens = tokenize(text)
    found = None
    terms = []
    for token in tokens:
        m = _ID_RE.match(token)
        if m:
            found = int(m.group(1))
        else:
            terms.append(token.lower())
    return ParsedQuery(
        raw=text or "",
        tokens=tuple(tokens),
        terms=tuple(terms),
        id=found,
        domain=domain if domain in DOMAIN_FIELDS else ANY,
        page=max(1, int(page)),
        per_page=max(1, int(per_page)),
    )


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def row_matches_terms(row: dict, fields, terms) -> bool:
    """Every term must be a substring of at least one single field."""
    if not terms:
        return False
    values = [str(row[f]).lower() for f in fields if row.get(f) is not None]
    return all(any(term in value for value in values) for term in terms)


def match_rows(domain: str, rows: list[dict], parsed: ParsedQuery) -> list[dict]:
    if parsed.id is not None:
        if domain == "visits":
            return [
                r for r in rows
                if _as_int(r.get("id")) == parsed.id or _as_int(r.get("pet_id")) == parsed.id
            ]
        return [r for r in rows if _as_int(r.get("id")) == parsed.id]
    return [r for r in rows if row_matches_terms(r, DOMAIN_FIELDS[domain], parsed.terms)]


class TTLCache:
    """Per-key cache whose entries expire ``ttl`` seconds after being stored."""

    def __init__(self, ttl: float = CACHE_TTL, clock=time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict = {}

    def get(self, key):
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key, value) -> None:
        self._entries[key] = (self._clock(), value)


@dataclass
class DomainPage:
    domain: str
    page: int
    per_page: int
    total: int
    data: list[dict] = field(default_factory=list)


class SearchEngine:
    """Searches the three record lists, fetching each at most once per TTL."""

    def __init__(self, client, *, ttl: float = CACHE_TTL, clock=time.monotonic) -> None:
        self.cache = TTLCache(ttl, clock)
        self._fetchers = {
            "owners": client.list_owners,
            "pets": client.all_pets,
            "visits": client.all_visits,
        }
        self._locks: dict[str, asyncio.Lock] = {}

    async def fetch(self, domain: str, force: bool = False) -> list[dict]:
        if domain not in self._fetchers:
            raise ValueError(f"unknown domain: {domain}")
        lock = self._locks.setdefault(domain, asyncio.Lock())
        async with lock:
            if not force:
                rows = self.cache.get(domain)
                if rows is not None:
                    return rows
            rows = await self._fetchers[domain]()
            if not isinstance(rows, list):
                rows = []
            log.debug("fetched %d %s", len(rows), domain)
            self.cache.put(domain, rows)
            return rows

    async def search_domain(self, domain: str, parsed: ParsedQuery) -> DomainPage:
        rows = await self.fetch(domain)
        matched = match_rows(domain, rows, parsed)
        start = (parsed.page - 1) * parsed.per_page
        return DomainPage(
            domain=domain,
            page=parsed.page,
            per_page=parsed.per_page,
            total=len(matched),
            data=matched[start:start + parsed.per_page],
        )

    async def search(self, parsed: ParsedQuery, domain: str | None = None) -> list[DomainPage]:
        domain = domain or parsed.domain
        if domain not in DOMAIN_FIELDS:
            return list(await asyncio.gather(*(self.search_domain(d, parsed) for d in DOMAINS)))
        return [await self.search_domain(domain, parsed)]
