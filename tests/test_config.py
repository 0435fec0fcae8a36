import json

import pytest

from polite_crawler.config import CrawlConfig, migrate_config
from polite_crawler.errors import ConfigError
from polite_crawler.version import CONFIG_SCHEMA_VERSION


def test_defaults_are_valid():
    cfg = CrawlConfig()
    cfg.validate()
    assert cfg.spider == "sfs"
    assert cfg.user_agent.startswith("polite_crawler/")
    assert cfg.to_dict()["schema_version"] == CONFIG_SCHEMA_VERSION


@pytest.mark.parametrize(
    "overrides",
    [
        {"crawling_concurrency": 0},
        {"processing_concurrency": -1},
        {"min_request_interval": -0.1},
        {"item_channel_capacity": 0},
        {"run_timeout": 0},
        {"retries": -1},
        {"spider": ""},
    ],
)
def test_validate_rejects_bad_values(overrides):
    with pytest.raises(ConfigError):
        CrawlConfig(**overrides).validate()


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        CrawlConfig(crawling_concurrency=0).validate()


def test_from_env(monkeypatch):
    monkeypatch.setenv("CRAWLER_SPIDER", "links")
    monkeypatch.setenv("CRAWLER_START_URLS", "https://a.test/, https://b.test/")
    monkeypatch.setenv("CRAWLER_CRAWLING_CONCURRENCY", "8")
    monkeypatch.setenv("CRAWLER_MIN_REQUEST_INTERVAL", "1.5")
    monkeypatch.setenv("CRAWLER_RUN_TIMEOUT", "60")

    cfg = CrawlConfig.from_env()

    assert cfg.spider == "links"
    assert cfg.start_urls == ["https://a.test/", "https://b.test/"]
    assert cfg.crawling_concurrency == 8
    assert cfg.min_request_interval == 1.5
    assert cfg.run_timeout == 60.0
    assert cfg.allowed_domains is None


def test_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("CRAWLER_CRAWLING_CONCURRENCY", "lots")
    with pytest.raises(ConfigError):
        CrawlConfig.from_env()


def test_from_file_migrates_v1(tmp_path):
    path = tmp_path / "crawl.json"
    path.write_text(json.dumps({
        "schema_version": 1,
        "start_urls": ["https://shop.test/"],
        "max_concurrency": 3,
        "delay": 2.0,
        "max_depth": 4,
        "output_path": "output/product_urls.json",
    }), encoding="utf-8")

    cfg = CrawlConfig.from_file(path)

    assert cfg.schema_version == CONFIG_SCHEMA_VERSION
    assert cfg.crawling_concurrency == 3
    assert cfg.min_request_interval == 2.0
    assert cfg.start_urls == ["https://shop.test/"]


def test_from_file_errors(tmp_path):
    with pytest.raises(ConfigError):
        CrawlConfig.from_file(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        CrawlConfig.from_file(bad)

    unknown = tmp_path / "unknown.json"
    unknown.write_text(json.dumps({"schema_version": 2, "turbo": True}), encoding="utf-8")
    with pytest.raises(ConfigError):
        CrawlConfig.from_file(unknown)


def test_migrate_current_schema_is_untouched():
    raw = {"schema_version": CONFIG_SCHEMA_VERSION, "crawling_concurrency": 2}
    assert migrate_config(dict(raw)) == raw
