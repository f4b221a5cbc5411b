"""
Tests for the command-line interface.
"""

import json

import pytest

from benchmarking import config as config_module
from benchmarking.cli import build_config, create_parser, main, validate_args
from benchmarking.config import DriftLabConfig
from data_ingestion.types import SURVEY_COLUMNS


# =============================================================
# FIXTURES
# =============================================================

@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)
    for key in ("BENCHMARK_ITERATIONS", "BENCHMARK_TOP_K", "BENCHMARK_DEADLINE_S"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def store_url(cohort_engine):
    return str(cohort_engine.url)


# =============================================================
# TEST: Arguments
# =============================================================

class TestArguments:
    """Parsing, validation and configuration overlay."""

    def test_strategy_and_list_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--strategy", "full_recompute", "--list-strategies"])

    def test_unknown_strategy_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--strategy", "strategy9"])

    @pytest.mark.parametrize("argv, message", [
        (["--iterations", "0"], "--iterations"),
        (["--top-k", "0"], "--top-k"),
        (["--deadline", "0"], "--deadline"),
        (["--reads-per-change", "-1"], "--reads-per-change"),
        (["--recommend", "--strategy", "full_recompute"], "--recommend"),
    ])
    def test_validation_errors(self, argv, message):
        errors = validate_args(create_parser().parse_args(argv))
        assert len(errors) == 1
        assert errors[0].startswith(message)

    def test_build_config_overlays_arguments(self):
        args = create_parser().parse_args([
            "--iterations", "7", "--top-k", "3", "--parallel", "--no-verify",
            "--reads-per-change", "200", "--database-url", "sqlite:///other.db",
        ])

        config = build_config(args, base=DriftLabConfig())

        assert config.benchmark.iterations == 7
        assert config.benchmark.top_k == 3
        assert config.benchmark.parallel is True
        assert config.benchmark.verify_samples is False
        assert config.cost_model.reads_per_change == 200
        assert config.store.database_url == "sqlite:///other.db"

    def test_build_config_keeps_base_defaults(self):
        config = build_config(create_parser().parse_args([]), base=DriftLabConfig())
        assert config.benchmark.iterations == 10
        assert config.benchmark.top_k == 5


# =============================================================
# TEST: Commands
# =============================================================

class TestMain:
    """End-to-end CLI runs against a SQLite file."""

    def test_list_strategies(self, capsys):
        assert main(["--list-strategies"]) == 0

        out = capsys.readouterr().out
        assert "materialized_snapshot" in out
        assert "O(log n)" in out

    def test_invalid_arguments_exit_1(self, capsys):
        assert main(["--iterations", "0"]) == 1
        assert "Error: --iterations" in capsys.readouterr().err

    def test_single_strategy_json(self, store_url, capsys):
        code = main([
            "--database-url", store_url, "--strategy", "incremental_delta",
            "-n", "2", "-k", "3", "--json", "--log-level", "WARNING",
        ])

        assert code == 0
        reports = json.loads(capsys.readouterr().out)
        assert len(reports) == 1
        assert reports[0]["strategyId"] == "incremental_delta"
        assert reports[0]["completedIterations"] == 2
        assert len(reports[0]["sampleRows"]) == 3
        assert reports[0]["error"] is None

    def test_all_strategies_text_defers_to_recommend(self, store_url, capsys):
        code = main(["--database-url", store_url, "-n", "2", "--log-level", "WARNING"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Strategy 1: Full SQL Recompute" in out
        assert "Strategy 4: Window Matrix" in out
        assert "Cheapest for these runs:" not in out
        assert "use --recommend" in out

    def test_empty_store_exits_1(self, engine, capsys):
        code = main(["--database-url", str(engine.url), "-s", "full_recompute", "--log-level", "WARNING"])

        assert code == 1
        assert "EmptyRecordStore" in capsys.readouterr().out

    def test_recommend(self, store_url, capsys):
        code = main(["--database-url", store_url, "--recommend", "-n", "2", "--log-level", "WARNING"])

        assert code == 0
        choice = json.loads(capsys.readouterr().out)
        assert choice["strategy_id"] in ("full_recompute", "windowed_partition")
        assert "materialized_snapshot" in choice["excluded"]

    def test_load_csv_missing_file(self, engine, tmp_path, capsys):
        code = main([
            "--database-url", str(engine.url),
            "--load-csv", str(tmp_path / "absent.csv"),
            "--log-level", "CRITICAL",
        ])
        assert code == 1

    def test_load_csv(self, engine, tmp_path, capsys):
        path = tmp_path / "survey.csv"
        header = ",".join(f'"{h}"' for h in SURVEY_COLUMNS)
        row = "18-22,Male,North State University,,,,,3,,4,,5,"
        path.write_text(f"{header}\n{row}\n", encoding="utf-8")

        code = main(["--database-url", str(engine.url), "--load-csv", str(path), "--log-level", "WARNING"])

        assert code == 0
        assert "Loaded 1 records" in capsys.readouterr().out
