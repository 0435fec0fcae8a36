import asyncio
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from polite_crawler.config import CrawlConfig
from polite_crawler.engines.crawler import Crawler
from polite_crawler.errors import ScrapeError
from polite_crawler.spiders.sfs import START_URL, SfsDocument, SfsSpider

SAMPLE = {
    "dokumentlista": {
        "@traffar": "3",
        "@nasta_sida": "//data.riksdagen.se/dokumentlista/?doktyp=SFS&utformat=json&p=2",
        "dokument": [
            {
                "id": "sfs-2024-1",
                "dok_id": "sfs-2024-1",
                "titel": "Lag om exempel",
                "datum": "2024-01-01",
                "dokument_url_text": "//data.riksdagen.se/dokument/sfs-2024-1.text",
                "rm": "2024",
            },
            {"id": "sfs-2024-2", "dok_id": "sfs-2024-2", "titel": "Förordning om test"},
            {"id": "broken", "titel": "missing dok_id"},
        ],
    }
}


def test_parse_payload_yields_documents_and_next_page():
    items, discovered = SfsSpider.parse_payload(SAMPLE, source_url="https://data.riksdagen.se/x")

    assert [doc.dok_id for doc in items] == ["sfs-2024-1", "sfs-2024-2"]
    assert items[0].dokument_url_text == "https://data.riksdagen.se/dokument/sfs-2024-1.text"
    assert items[0].extra == {"rm": "2024"}
    assert discovered == ["https://data.riksdagen.se/dokumentlista/?doktyp=SFS&utformat=json&p=2"]


def test_last_page_discovers_nothing():
    payload = {"dokumentlista": {"dokument": {"id": "one", "dok_id": "one"}}}
    items, discovered = SfsSpider.parse_payload(payload, source_url="x")

    assert [doc.dok_id for doc in items] == ["one"]
    assert discovered == []


@pytest.mark.parametrize("payload", [{}, [], {"dokumentlista": "nope"}, {"dokumentlista": {"dokument": 3}}])
def test_malformed_payload_is_a_scrape_error(payload):
    with pytest.raises(ScrapeError):
        SfsSpider.parse_payload(payload, source_url="x")


def test_start_urls_drop_the_fragment():
    spider = SfsSpider()
    assert spider.start_urls() == [START_URL.split("#")[0]]


def test_from_config_overrides_start_urls(tmp_path):
    cfg = CrawlConfig(start_urls=["https://mirror.test/list?utformat=json"], output_dir=str(tmp_path), retries=0)
    spider = SfsSpider.from_config(cfg)

    assert spider.start_urls() == ["https://mirror.test/list?utformat=json"]
    assert spider.output_dir == str(tmp_path)
    assert spider.retries == 0


def test_process_writes_one_file_per_document(tmp_path):
    spider = SfsSpider(output_dir=str(tmp_path))
    doc = SfsDocument(id="a", dok_id="sfs/2024:1", titel="Lag")

    asyncio.run(spider.process(doc))

    written = tmp_path / "sfs" / "sfs_2024_1.json"
    assert json.loads(written.read_text(encoding="utf-8")) == {"id": "a", "dok_id": "sfs/2024:1", "titel": "Lag"}


def test_scrape_requires_open_session():
    with pytest.raises(ScrapeError):
        asyncio.run(SfsSpider().scrape("https://data.riksdagen.se/x"))


async def _crawl_fake_api(tmp_path):
    async def handler(request):
        page = request.query.get("p", "1")
        if page == "1":
            body = {"dokumentlista": {
                "@nasta_sida": str(request.url.with_query({"p": "2"})),
                "dokument": [{"id": "1", "dok_id": "d1"}, {"id": "2", "dok_id": "d2"}],
            }}
        else:
            body = {"dokumentlista": {"dokument": [{"id": "3", "dok_id": "d3"}]}}
        return web.json_response(body)

    app = web.Application()
    app.router.add_get("/dokumentlista/", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        spider = SfsSpider(
            output_dir=str(tmp_path), retries=0, start_urls=[str(server.make_url("/dokumentlista/?p=1"))]
        )
        config = CrawlConfig(crawling_concurrency=2, processing_concurrency=2, min_request_interval=0.01)
        return await Crawler(config).crawl(spider)
    finally:
        await server.close()


def test_end_to_end_against_local_api(tmp_path):
    summary = asyncio.run(_crawl_fake_api(tmp_path))

    assert summary.completed
    assert summary.crawled == 2
    assert summary.items_processed == 3
    assert sorted(p.name for p in (tmp_path / "sfs").iterdir()) == ["d1.json", "d2.json", "d3.json"]
