from __future__ import annotations

from typing import Iterable, Optional, Set
from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments and lower-casing scheme and host.
    """
    parts = list(urlparse(url.strip()))
    parts[0] = parts[0].lower()
    parts[1] = parts[1].lower()
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def domain_of(url: str) -> str:
    return urlparse(url).netloc.lower()


def is_http_url(url: str) -> bool:
    return urlparse(url).scheme in ("http", "https")


def extract_links(html: str, base_url: str) -> Set[str]:
    """
    Extract absolute http(s) links from an HTML string.
    """
    soup = BeautifulSoup(html, "html.parser")
    out: Set[str] = set()
    for a in soup.select("a[href]"):
        href = a.get("href")
        if not href:
            continue
        absolute = urljoin(base_url, href)
        if is_http_url(absolute):
            out.add(normalize_url(absolute))
    return out


def extract_title(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        return og_title.get("content").strip()
    if soup.title and soup.title.string:
        return soup.title.string.strip() or None
    return None


def filter_domains(urls: Iterable[str], allowed_domains: Iterable[str]) -> Set[str]:
    allowed = {d.lower() for d in allowed_domains}
    return {u for u in urls if domain_of(u) in allowed}
