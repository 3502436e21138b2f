"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest

from pos_recon import __version__
from pos_recon.cli import EXIT_STORE_UNAVAILABLE, main
from pos_recon.reporting.errors import OrderStoreUnavailable


@pytest.fixture
def snapshot_files(tmp_path, sample_snapshot):
    orders, items = sample_snapshot
    orders_file = tmp_path / "orders.json"
    items_file = tmp_path / "items.json"
    orders_file.write_text(json.dumps(orders))
    items_file.write_text(json.dumps(items))
    return str(orders_file), str(items_file)


class TestCLI:
    def test_cli_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert f"POS Recon {__version__}" in capsys.readouterr().out

    def test_cli_no_command(self, capsys):
        assert main([]) == 1
        assert "Available commands" in capsys.readouterr().out

    def test_report_table(self, snapshot_files, capsys):
        orders_file, items_file = snapshot_files
        code = main([
            "report", "--dimension", "product", "--start", "2026-10-01", "--end", "2026-10-02",
            "--orders-file", orders_file, "--items-file", items_file,
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "PRODUCT REPORT 2026-10-01 .. 2026-10-02" in out
        assert "Ca phe sua" in out
        assert "TOTAL" in out
        assert "Page 1/1 (2 rows)" in out

    def test_report_json(self, snapshot_files, capsys):
        orders_file, _ = snapshot_files
        code = main([
            "report", "--dimension", "channel", "--start", "2026-10-01", "--end", "2026-10-02",
            "--orders-file", orders_file, "--json",
        ])
        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["grandTotal"]["cancelledOrders"] == 1
        assert {row["key"] for row in result["page"]} == {"dine-in", "takeaway"}

    def test_summary(self, snapshot_files, capsys):
        orders_file, items_file = snapshot_files
        code = main([
            "summary", "--start", "2026-10-01", "--end", "2026-10-02",
            "--orders-file", orders_file, "--items-file", items_file,
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "Unique customers:       2" in out
        assert "Peak hour:              12:00" in out

    def test_floor_filter_with_tables_file(self, snapshot_files, tmp_path, capsys):
        orders_file, _ = snapshot_files
        tables_file = tmp_path / "tables.json"
        tables_file.write_text(json.dumps([{"id": 3, "floor": "1F"}, {"id": 5, "floor": "2F"}]))
        code = main([
            "report", "--start", "2026-10-01", "--end", "2026-10-02",
            "--orders-file", orders_file, "--floor", "1F", "--tables-file", str(tables_file), "--json",
        ])
        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["grandTotal"]["orderCount"] == 1
        assert result["totalCount"] == 1

    def test_floor_filter_needs_table_source(self, snapshot_files):
        orders_file, _ = snapshot_files
        code = main([
            "report", "--start", "2026-10-01", "--end", "2026-10-02",
            "--orders-file", orders_file, "--floor", "1F",
        ])
        assert code == 1

    def test_inverted_range_fails(self, snapshot_files):
        orders_file, _ = snapshot_files
        assert main(["summary", "--start", "2026-10-05", "--end", "2026-10-01", "--orders-file", orders_file]) == 1

    @patch("pos_recon.cli.build_service")
    def test_store_unavailable_exit_code(self, mock_build):
        mock_build.return_value.report.side_effect = OrderStoreUnavailable("timeout")
        code = main(["report", "--start", "2026-10-01", "--end", "2026-10-02"])
        assert code == EXIT_STORE_UNAVAILABLE
