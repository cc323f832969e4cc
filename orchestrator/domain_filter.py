from collections.abc import Iterable
from urllib.parse import urlsplit

from models.search_result import SearchResult


def _normalize_domain(domain: str) -> str:
    domain = domain.strip().lower().rstrip(".")
    if domain.startswith("*."):
        domain = domain[2:]
    return domain


class DomainFilter:
    """
    Accepts a URL only when its host is an allow-listed domain or a subdomain of one.

    Fails closed: unparsable URLs and URLs without a host are rejected.
    """

    def __init__(self, allowed_domains: Iterable[str]):
        self.allowed_domains = frozenset(
            d for d in (_normalize_domain(x) for x in allowed_domains) if d
        )

    def is_allowed(self, url: str) -> bool:
        if not isinstance(url, str) or not url.strip():
            return False
        try:
            host = urlsplit(url.strip()).hostname
        except ValueError:
            return False
        if not host:
            return False

        host = host.lower().rstrip(".")
        # Suffix match needs the separating dot: evil-example.com is not example.com
        return any(host == d or host.endswith("." + d) for d in self.allowed_domains)

    def filter(self, results: Iterable[SearchResult]) -> tuple[SearchResult, ...]:
        return tuple(r for r in results if self.is_allowed(r.url))
