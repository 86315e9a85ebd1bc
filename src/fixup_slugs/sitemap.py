"""sitemaps.org XML for the marketplace's slugged pages."""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date

from .config import SitemapConfig, SitemapRoute
from .core.model import SluggedRecord

logger = logging.getLogger(__name__)

NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

STATIC_PAGES: list[tuple[str, float, str]] = [
    ("/", 1.0, "daily"),
    ("/services", 0.9, "daily"),
    ("/mechanics", 0.9, "daily"),
    ("/search", 0.8, "weekly"),
    ("/about", 0.7, "monthly"),
    ("/contact", 0.7, "monthly"),
]


@dataclass(frozen=True)
class SitemapEntry:
    loc: str
    lastmod: str
    changefreq: str
    priority: float


@dataclass
class SitemapStats:
    total: int = 0
    by_route: dict[str, int] = field(default_factory=dict)


def _route_for(kind: str, config: SitemapConfig) -> SitemapRoute:
    return config.routes.get(kind) or SitemapRoute(path=kind, priority=0.5)


def _lastmod(record: SluggedRecord, today: str) -> str:
    if record.updated_at:
        return record.updated_at[:10]
    return today


def collect_entries(
    records_by_kind: dict[str, list[SluggedRecord]],
    config: SitemapConfig,
    today: date | None = None,
) -> list[SitemapEntry]:
    """Static pages first, then every record, capped at `config.max_urls`."""
    day = (today or date.today()).isoformat()
    base = config.base_url.rstrip("/")

    static = [
        SitemapEntry(f"{base}{path}", day, freq, prio)
        for path, prio, freq in STATIC_PAGES
    ]

    dynamic: list[SitemapEntry] = []
    for kind in sorted(records_by_kind):
        route = _route_for(kind, config)
        path = route.path.strip("/")
        for record in records_by_kind[kind]:
            segment = record.slug or str(record.id)
            dynamic.append(
                SitemapEntry(
                    f"{base}/{path}/{segment}",
                    _lastmod(record, day),
                    route.changefreq,
                    route.priority,
                )
            )

    if len(static) > config.max_urls:
        logger.warning("Sitemap capped at %d URLs, dropping static pages", config.max_urls)
        static = static[: max(config.max_urls, 0)]

    room = max(config.max_urls - len(static), 0)
    if len(dynamic) > room:
        logger.warning(
            "Sitemap capped at %d URLs, dropping %d lowest-priority records",
            config.max_urls, len(dynamic) - room,
        )
        # stable sort keeps per-kind order among equal priorities
        dynamic = sorted(dynamic, key=lambda e: -e.priority)[:room]

    return static + dynamic


def build_sitemap(
    records_by_kind: dict[str, list[SluggedRecord]],
    config: SitemapConfig,
    today: date | None = None,
) -> str:
    urlset = ET.Element("urlset", xmlns=NS)
    for entry in collect_entries(records_by_kind, config, today):
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = entry.loc
        ET.SubElement(url, "lastmod").text = entry.lastmod
        ET.SubElement(url, "changefreq").text = entry.changefreq
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    ET.indent(urlset)
    body = ET.tostring(urlset, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def sitemap_stats(xml: str, config: SitemapConfig | None = None) -> SitemapStats:
    """Count URLs overall and per configured record route."""
    config = config or SitemapConfig()
    root = ET.fromstring(xml)
    locs = [el.text or "" for el in root.iter(f"{{{NS}}}loc")]
    base = config.base_url.rstrip("/")

    stats = SitemapStats(total=len(locs))
    for kind, route in config.routes.items():
        prefix = f"{base}/{route.path.strip('/')}/"
        stats.by_route[kind] = sum(1 for loc in locs if loc.startswith(prefix))
    return stats
