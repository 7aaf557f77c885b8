"""Tests for the command-line interface."""

from __future__ import annotations

import json
import sys

import pytest
from click.testing import CliRunner

from wincleaner.cli import main

pytestmark = pytest.mark.usefixtures("isolate_settings")


@pytest.fixture
def run():
    runner = CliRunner()

    def _run(*args, input=None):
        return runner.invoke(main, list(args), input=input)

    return _run


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestList:
    def test_json_lists_every_category(self, run):
        data = _json(run("list", "--json"))
        assert [entry["id"] for entry in data][:3] == ["junk_files", "system_cache", "system_logs"]
        assert len(data) == 11

    def test_text(self, run):
        result = run("list")
        assert result.exit_code == 0
        assert "WeChat" in result.output


class TestScan:
    def test_simulated_json(self, run):
        data = _json(run("scan", "system_cache", "--simulate", "--json"))

        assert data["status"] == "completed"
        assert data["simulated"] is True
        assert data["failed_scanners"] == []
        assert data["summary"]["total_items"] == len(data["items"]) == 6
        assert {item["scanner_id"] for item in data["items"]} == {"system_cache"}

    def test_retention_months_override(self, run):
        kept = _json(run("scan", "wechat", "--simulate", "--json"))
        none = _json(run("scan", "wechat", "--simulate", "--json", "--wechat-months", "0"))

        assert any(item["retained"] for item in kept["items"])
        assert not any(item["retained"] for item in none["items"])

    def test_text_output(self, run):
        result = run("scan", "junk_files", "--simulate")
        assert result.exit_code == 0
        assert "Junk Files" in result.output
        assert "Reclaimable:" in result.output
        assert "(simulated data)" in result.output

    @pytest.mark.skipif(sys.platform == "win32", reason="the Windows backend is available there")
    def test_falls_back_to_simulation_off_windows(self, run):
        result = run("scan", "junk_files")
        assert result.exit_code == 0
        assert "(simulated data)" in result.output


class TestClean:
    def test_dry_run_deletes_nothing(self, run):
        data = _json(run("clean", "junk_files", "--simulate", "--dry-run", "--json"))
        assert data["status"] == "dry_run"
        assert data["would_free_bytes"] == sum(item["size_bytes"] for item in data["items"])
        assert all(item["risk_level"] == "safe" for item in data["items"])

    def test_retention_months_override_matches_scan(self, run):
        scanned = _json(run("scan", "wechat", "--simulate", "--json", "--wechat-months", "0"))
        clean = ("clean", "wechat", "--simulate", "--dry-run", "--include-caution", "--json")
        kept = _json(run(*clean))
        none = _json(run(*clean, "--wechat-months", "0"))

        preview = {i["id"] for i in scanned["items"] if i["can_delete"] and i["risk_level"] != "high"}
        assert {i["id"] for i in none["items"]} == preview
        assert len(none["items"]) > len(kept["items"])

    def test_nothing_to_clean(self, run):
        data = _json(run("clean", "registry_remnants", "--simulate", "--json"))
        assert data == {"status": "nothing_to_clean", "items": []}

    def test_include_caution(self, run):
        data = _json(run("clean", "registry_remnants", "--simulate", "--dry-run", "--include-caution", "--json"))
        assert len(data["items"]) == 2

    def test_yes_cleans(self, run):
        data = _json(run("clean", "junk_files", "--simulate", "--yes", "--json", "--batch-size", "2"))

        assert data["status"] == "cleaned"
        assert data["result"]["simulated"] is True
        assert data["stats"]["success"] == len(data["result"]["deleted_item_ids"]) > 0
        assert data["stats"]["failed"] == 0

    def test_prompt_abort(self, run):
        result = run("clean", "junk_files", "--simulate", input="n\n")
        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert "Cleaning report" not in result.output

    def test_prompt_confirm(self, run):
        result = run("clean", "junk_files", "--simulate", input="y\n")
        assert result.exit_code == 0
        assert "Cleaning report (simulated)" in result.output

    def test_invalid_batch_size(self, run):
        result = run("clean", "--simulate", "--batch-size", "0")
        assert result.exit_code == 2


class TestStatus:
    def test_simulated_json(self, run):
        data = _json(run("status", "--simulate", "--json"))
        assert data["simulated"] is True
        assert data["dns_entries"] == 156
        assert data["memory_used_percent"] == 62.5

    def test_text(self, run):
        result = run("status", "--simulate")
        assert result.exit_code == 0
        assert "DNS cache:  156 entries" in result.output


class TestConfig:
    def test_get_all(self, run):
        result = run("config", "get")
        assert result.exit_code == 0
        assert "cleaning.inter_batch_delay = 0" in result.output
        assert "retention.wechat_months = 3" in result.output

    def test_set_then_get(self, run, isolate_settings):
        assert run("config", "set", "retention.qq_months", "12").exit_code == 0
        assert run("config", "get", "retention.qq_months").output.strip() == "12"
        saved = json.loads(isolate_settings.read_text())
        assert saved["retention"]["qq_months"] == 12
        assert saved["cleaning"]["inter_batch_delay"] == 0

    def test_set_boolean(self, run):
        assert run("config", "set", "backend.use_real", "off").exit_code == 0
        assert run("config", "get", "backend.use_real").output.strip() == "false"

    def test_unknown_key(self, run):
        assert run("config", "get", "nope").exit_code == 1
        assert run("config", "set", "nope", "1").exit_code == 1

    def test_invalid_value(self, run):
        result = run("config", "set", "cleaning.batch_size", "many")
        assert result.exit_code == 1
