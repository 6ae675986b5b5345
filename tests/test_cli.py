import logging

import pytest

from papraIngest import config as config_module
from papraIngest import ingest, main as cli, papra_client
from papraIngest.config import config
from papraIngest.ingest import UploadResult, UploadSummary


class DummyClient:
    def __init__(self, url, api_key, organization_id):
        self.args = (url, api_key, organization_id)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        pass


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Run main() against a stub client and a recording ingest class."""
    calls = {}

    class RecordingIngest:
        outcome = [True]

        def __init__(self, client):
            calls["client"] = client.args

        def upload_pdfs(self, source, ocr_languages=(), tags=(), autotag=False):
            calls["upload"] = {"source": source, "ocr_languages": ocr_languages, "tags": tags, "autotag": autotag}
            return UploadSummary([UploadResult(path=source, success=ok) for ok in self.outcome])

    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli, "load_config", lambda path: True)
    monkeypatch.setattr(papra_client, "PapraClient", DummyClient)
    monkeypatch.setattr(ingest, "PapraIngest", RecordingIngest)
    calls["ingest_cls"] = RecordingIngest
    calls["source"] = str(tmp_path)
    return calls


def test_setup_flag_runs_wizard_only(monkeypatch, cli_env):
    seen = []
    monkeypatch.setattr(config_module, "run_setup", lambda path: seen.append(path))

    assert cli.main(["--setup", "--config-file", "/tmp/x.conf"]) == 0
    assert seen == ["/tmp/x.conf"]
    assert "upload" not in cli_env


def test_upload_passes_options(cli_env):
    code = cli.main([cli_env["source"], "-t", "Finance, Bills", "-o", "eng,deu", "--autotag"])

    assert code == 0
    assert cli_env["client"] == ("https://papra.test", "papra-key", "org_1")
    assert cli_env["upload"] == {
        "source": cli_env["source"],
        "ocr_languages": ["eng", "deu"],
        "tags": ["Finance", "Bills"],
        "autotag": True,
    }


def test_autotag_disabled_without_api_key(cli_env, caplog):
    config.remove_option("OPENROUTER", "api_key")
    caplog.set_level(logging.INFO)

    assert cli.main([cli_env["source"], "--autotag"]) == 0
    assert cli_env["upload"]["autotag"] is False
    assert any("skipping auto-tagging" in rec.message for rec in caplog.records)


def test_invalid_ocr_language_exits_with_error(cli_env, caplog):
    assert cli.main([cli_env["source"], "-o", "eng,klingon"]) == 1
    assert "upload" not in cli_env
    assert any("klingon" in rec.message for rec in caplog.records)


def test_failed_upload_sets_exit_code(cli_env):
    cli_env["ingest_cls"].outcome = [True, False]
    assert cli.main([cli_env["source"]]) == 1


def test_no_source_is_a_noop(cli_env):
    assert cli.main([]) == 0
    assert "upload" not in cli_env


def test_invalid_config_runs_wizard(monkeypatch, cli_env):
    config.remove_option("PAPRA", "url")
    seen = []

    def fake_setup(path):
        seen.append(path)
        config.set("PAPRA", "url", "https://papra.fixed")

    monkeypatch.setattr(config_module, "run_setup", fake_setup)
    assert cli.main([cli_env["source"]]) == 0
    assert seen == [config_module.DEFAULT_CONFIG_PATH]
    assert cli_env["client"][0] == "https://papra.fixed"
