import json

from polite_crawler.ui.cli import EXIT_CANCELLED, EXIT_ENGINE_ERROR, EXIT_OK, run_cli


def test_list_spiders(capsys):
    assert run_cli(["--list-spiders"]) == EXIT_OK
    out = capsys.readouterr().out.split()
    assert "sfs" in out and "links" in out


def test_runs_a_dotted_spider_and_prints_summary(capsys):
    code = run_cli(["fake_spiders:StaticSpider", "--delay", "0", "--crawling-concurrency", "2"])

    assert code == EXIT_OK
    summary = json.loads(capsys.readouterr().out)
    assert summary["crawled"] == 3
    assert summary["items_processed"] == 2
    assert summary["status"] == "completed"


def test_invalid_settings_exit_with_engine_error():
    assert run_cli(["fake_spiders:StaticSpider", "--crawling-concurrency", "0"]) == EXIT_ENGINE_ERROR
    assert run_cli(["does-not-exist"]) == EXIT_ENGINE_ERROR


def test_timeout_reports_cancelled(capsys):
    code = run_cli(["fake_spiders:EndlessSpider", "--delay", "0", "--timeout", "0.2"])

    assert code == EXIT_CANCELLED
    assert json.loads(capsys.readouterr().out)["status"] == "cancelled"
