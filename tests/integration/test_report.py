"""
Smoke tests for report rendering, output sinks and the command line.
"""

import argparse
import io
import json
import os
from unittest.mock import patch

import pytest

import config
from aggregator import compute_comprehensive_assessment
from models import Category
from orchestrator import RiskAssessor
from report import JsonFileSink, LogSink, StreamSink, format_report
from riskguard import main, parse_categories

TIMESTAMP = "2026-01-10T12:00:00+00:00"


@pytest.fixture
def assessment(make_signal):
    signals = {
        "chain": make_signal("chain", 85, ["Contract source code is not verified"],
                             metrics={"topHolderPercentage": 60.0}),
        "sentiment": None,
        "market": make_signal("market", 45, [], ["Top 50 cryptocurrency by market cap"]),
        "dex": None,
    }
    return compute_comprehensive_assessment(
        "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984", signals,
        project_name="Uniswap", token_symbol="UNI", timestamp=TIMESTAMP)


class TestFormatReport:
    """Tests for the markdown report."""

    @pytest.mark.smoke
    def test_sections_present(self, assessment):
        text = format_report(assessment)
        assert text.startswith("# Comprehensive Risk Assessment for Uniswap (UNI)")
        for heading in ("## Risk Summary", "## Risk Breakdown", "## Key Risk Factors",
                        "## Positive Indicators", "## Recommendations"):
            assert heading in text

    @pytest.mark.smoke
    def test_absent_categories_marked(self, assessment):
        text = format_report(assessment)
        assert "- **Social Media Risk:** Not Available" in text
        assert "- **DEX Risk:** Not Available" in text
        assert "- **Blockchain Risk:** 85/100 (High)" in text

    @pytest.mark.smoke
    def test_factors_listed_with_tags(self, assessment):
        text = format_report(assessment)
        assert "- [chain] Contract source code is not verified" in text
        assert "- [market] Top 50 cryptocurrency by market cap" in text


class TestSinks:
    """Tests for the output sinks."""

    @pytest.mark.smoke
    def test_json_file_sink(self, assessment, tmp_path):
        sink = JsonFileSink(str(tmp_path / "reports"))
        sink.publish(assessment)
        assert os.path.basename(sink.last_path) == (
            "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984_20260110T120000.json")
        with open(sink.last_path) as f:
            saved = json.load(f)
        assert saved["overallScore"] == assessment.overall_score
        assert saved["breakdown"] == {"chain": 85, "market": 45}
        assert saved["details"]["chain"]["keyIssues"] == ["Contract source code is not verified"]
        assert saved["riskBreakdown"]["chain"]["riskFactors"] == ["Contract source code is not verified"]
        assert "sentiment" not in saved["riskBreakdown"]

    @pytest.mark.smoke
    def test_stream_sink_json(self, assessment):
        stream = io.StringIO()
        StreamSink(stream, as_json=True).publish(assessment)
        payload = json.loads(stream.getvalue())
        assert payload["projectName"] == "Uniswap"
        assert payload["overallLevel"] == assessment.overall_level.value

    @pytest.mark.smoke
    def test_stream_sink_markdown(self, assessment):
        stream = io.StringIO()
        StreamSink(stream).publish(assessment)
        assert "## Risk Summary" in stream.getvalue()

    @pytest.mark.smoke
    def test_log_sink(self, assessment, caplog):
        with caplog.at_level("INFO", logger="report"):
            LogSink().publish(assessment)
        assert "Uniswap (UNI)" in caplog.text
        assert "chain=85" in caplog.text


class TestCommandLine:
    """Tests for argument parsing and exit codes."""

    @pytest.mark.smoke
    def test_parse_categories(self):
        assert parse_categories("Market, dex") == ("market", "dex")

    @pytest.mark.smoke
    @pytest.mark.parametrize("value", ["onchain", "", " , "])
    def test_parse_categories_rejects_unknown(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_categories(value)

    @pytest.mark.smoke
    def test_blank_identifier_exits_nonzero(self):
        with patch("riskguard.config.ProviderConfig.from_env",
                   return_value=config.ProviderConfig()):
            assert main(["   "]) == 1

    @pytest.mark.smoke
    def test_successful_run_prints_report(self, fake_provider, make_dex_record, capsys):
        def build(args):
            return RiskAssessor(providers={Category.DEX: fake_provider(make_dex_record())},
                                sinks=[StreamSink(as_json=args.json)])

        with patch("riskguard.build_assessor", side_effect=build):
            assert main(["pepe", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["breakdown"] == {"dex": 80}
