"""
Integration tests for the assessment orchestrator.

Providers are replaced with fakes so the fan-out, absence handling, timeouts
and sink delivery can be exercised end to end without the network.
"""

import threading
from concurrent.futures import TimeoutError as FuturesTimeout
from concurrent.futures import wait
from unittest.mock import patch

import pytest

import config
from errors import MalformedProviderResponse, ProviderUnavailable
from models import Category, RiskLevel
from orchestrator import RiskAssessor

ADDRESS = "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"


class RecordingSink:
    def __init__(self):
        self.published = []

    def publish(self, assessment):
        self.published.append(assessment)


class BrokenSink:
    def publish(self, assessment):
        raise RuntimeError("webhook down")


@pytest.fixture
def healthy_providers(fake_provider, make_chain_record, make_sentiment_record,
                      make_market_record, make_dex_record):
    """Every branch succeeds: chain 0, sentiment 50, market 40, dex 80."""
    return {
        Category.CHAIN: fake_provider(make_chain_record()),
        Category.SENTIMENT: fake_provider(make_sentiment_record()),
        Category.MARKET: fake_provider(make_market_record(market_cap_rank=20)),
        Category.DEX: fake_provider(make_dex_record()),
    }


class TestFanOut:
    """Tests for concurrent branches and absence handling."""

    @pytest.mark.integration
    def test_all_branches_present(self, healthy_providers):
        assessment = RiskAssessor(providers=healthy_providers).assess(ADDRESS)
        assert dict(assessment.breakdown) == {"chain": 0, "sentiment": 50, "market": 40, "dex": 80}
        # 0.35*0 + 0.2*50 + 0.25*40 + 0.2*80 = 36
        assert assessment.overall_score == 36
        assert assessment.overall_level == RiskLevel.LOW

    @pytest.mark.integration
    @pytest.mark.parametrize("error", [
        ProviderUnavailable("etherscan", "connection refused"),
        MalformedProviderResponse("etherscan", "bad payload"),
        RuntimeError("unexpected"),
    ])
    def test_failed_branch_is_absent(self, healthy_providers, fake_provider, error):
        healthy_providers[Category.CHAIN] = fake_provider(error=error)
        assessor = RiskAssessor(providers=healthy_providers)
        signals, _ = assessor.collect_signals(ADDRESS)
        assert signals[Category.CHAIN] is None
        assert signals[Category.DEX].score == 80

        assessment = assessor.assess(ADDRESS)
        assert "chain" not in assessment.breakdown
        # (0.2*50 + 0.25*40 + 0.2*80) / 0.65 = 55.4
        assert assessment.overall_score == 55

    @pytest.mark.integration
    def test_unsupported_identifier_skips_provider(self, healthy_providers, fake_provider,
                                                   make_chain_record):
        chain = fake_provider(make_chain_record(), supports=False)
        healthy_providers[Category.CHAIN] = chain
        signals, records = RiskAssessor(providers=healthy_providers).collect_signals("uni")
        assert signals[Category.CHAIN] is None
        assert Category.CHAIN not in records
        assert chain.calls == []

    @pytest.mark.integration
    def test_missing_provider_is_absent(self, healthy_providers):
        del healthy_providers[Category.SENTIMENT]
        signals, _ = RiskAssessor(providers=healthy_providers).collect_signals("uni")
        assert signals[Category.SENTIMENT] is None
        assert set(signals) == set(Category)

    @pytest.mark.integration
    def test_slow_branch_times_out(self, healthy_providers, fake_provider, make_dex_record):
        release = threading.Event()
        healthy_providers[Category.DEX] = fake_provider(make_dex_record(), block=release)
        settings = config.AssessorConfig(branch_timeout=0.2)
        try:
            signals, _ = RiskAssessor(providers=healthy_providers,
                                      assessor_config=settings).collect_signals(ADDRESS)
        finally:
            release.set()
        assert signals[Category.DEX] is None
        assert signals[Category.MARKET].score == 40

    @pytest.mark.integration
    def test_branches_finishing_at_the_deadline_are_kept(self, healthy_providers):
        def deadline_fires_late(futures, timeout=None):
            wait(list(futures))
            raise FuturesTimeout()

        with patch("orchestrator.as_completed", side_effect=deadline_fires_late):
            signals, records = RiskAssessor(providers=healthy_providers).collect_signals(ADDRESS)
        assert all(signals[c] is not None for c in Category)
        assert signals[Category.DEX].score == 80
        assert set(records) == set(Category)

    @pytest.mark.integration
    def test_category_subset(self, healthy_providers):
        settings = config.AssessorConfig(categories=("market", "dex"))
        assessor = RiskAssessor(providers=healthy_providers, assessor_config=settings)
        assessment = assessor.assess(ADDRESS)
        assert list(assessment.breakdown) == ["market", "dex"]
        assert healthy_providers[Category.CHAIN].calls == []

    @pytest.mark.integration
    def test_every_branch_failing_gives_neutral_default(self, fake_provider):
        down = ProviderUnavailable("any", "down")
        providers = {c: fake_provider(error=down) for c in Category}
        assessment = RiskAssessor(providers=providers).assess("pepe")
        assert assessment.overall_score == config.NEUTRAL_SCORE
        assert assessment.risk_factors == (config.INSUFFICIENT_DATA_FACTOR,)


class TestAssess:
    """Tests for identifier handling, display names and sinks."""

    @pytest.mark.integration
    def test_address_extracted_from_question(self, healthy_providers):
        RiskAssessor(providers=healthy_providers).assess(f"what about {ADDRESS}?")
        assert healthy_providers[Category.DEX].calls == [ADDRESS]

    @pytest.mark.integration
    def test_empty_identifier_rejected(self, healthy_providers):
        with pytest.raises(ValueError):
            RiskAssessor(providers=healthy_providers).assess("   ")

    @pytest.mark.integration
    def test_display_name_prefers_market_record(self, healthy_providers):
        assessment = RiskAssessor(providers=healthy_providers).assess(ADDRESS)
        assert assessment.project_name == "Test Coin"
        assert assessment.token_symbol == "TST"

    @pytest.mark.integration
    def test_display_name_falls_back_to_identifier(self, fake_provider, make_dex_record):
        providers = {Category.DEX: fake_provider(make_dex_record())}
        assessment = RiskAssessor(providers=providers).assess("pepe")
        assert assessment.project_name == "pepe"
        assert assessment.token_symbol == "UNKNOWN"

    @pytest.mark.integration
    def test_sinks_receive_assessment(self, healthy_providers):
        sink = RecordingSink()
        assessment = RiskAssessor(providers=healthy_providers, sinks=[sink]).assess(ADDRESS)
        assert sink.published == [assessment]

    @pytest.mark.integration
    def test_broken_sink_does_not_block_others(self, healthy_providers):
        sink = RecordingSink()
        assessor = RiskAssessor(providers=healthy_providers, sinks=[BrokenSink(), sink])
        assessment = assessor.assess(ADDRESS)
        assert sink.published == [assessment]
