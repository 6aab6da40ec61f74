"""
Crypto Risk Guard - Assessment Orchestrator

Fans the four category branches (fetch + score) out to a thread pool, joins
them under a deadline and hands the surviving signals to the aggregator. A
branch that fails or runs out of time is reported as absent; it never blocks
or aborts the others.
"""
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout

import config
import scorers
from aggregator import compute_comprehensive_assessment
from errors import RiskGuardError
from models import Category, ComprehensiveAssessment
from providers import default_providers, extract_identifier
from utils import get_logger

log = get_logger("orchestrator")


class RiskAssessor:
    """Runs one comprehensive assessment per call.

    providers: {Category: object with supports(identifier) and fetch(identifier)}
    sinks: objects with publish(assessment), notified after every assessment.
    """

    def __init__(self, providers: dict = None, provider_config: config.ProviderConfig = None,
                 assessor_config: config.AssessorConfig = None, sinks: list = None):
        self.settings = assessor_config or config.AssessorConfig()
        if providers is None:
            providers = default_providers(provider_config or config.ProviderConfig.from_env())
        self.providers = {Category(k): v for k, v in providers.items()}
        self.sinks = list(sinks or [])

    def _run_branch(self, category: Category, identifier: str):
        """Fetch and score one category. Returns (record, signal)."""
        t_start = time.monotonic()
        record = self.providers[category].fetch(identifier)
        signal = scorers.score(category, record)
        log.info(f"  [{category.value}] score={signal.score} ({signal.level.value}) "
                 f"in {time.monotonic() - t_start:.1f}s")
        return record, signal

    def collect_signals(self, identifier: str) -> tuple[dict, dict]:
        """Run every enabled branch concurrently.

        Returns ({category: signal or None}, {category: record}) with an entry in
        the first dict for every enabled category.
        """
        signals = {}
        records = {}
        enabled = [Category(c) for c in self.settings.categories]

        branches = []
        for category in enabled:
            provider = self.providers.get(category)
            if provider is None:
                log.info(f"  [{category.value}] no provider configured, skipping")
                signals[category] = None
            elif not provider.supports(identifier):
                log.info(f"  [{category.value}] not applicable to '{identifier}', skipping")
                signals[category] = None
            else:
                branches.append(category)

        if not branches:
            return signals, records

        pool = ThreadPoolExecutor(max_workers=min(self.settings.max_workers, len(branches)))
        futures = {pool.submit(self._run_branch, c, identifier): c for c in branches}
        try:
            for future in as_completed(futures, timeout=self.settings.branch_timeout):
                self._collect(futures[future], future, signals, records)
        except FuturesTimeout:
            for future, category in futures.items():
                if category in signals:
                    continue
                if future.done():
                    # finished after the deadline fired but before we got here
                    self._collect(category, future, signals, records)
                else:
                    future.cancel()
                    log.warning(f"  [{category.value}] timed out after "
                                f"{self.settings.branch_timeout}s, category absent")
                    signals[category] = None
        finally:
            # Do not wait for abandoned branches
            pool.shutdown(wait=False, cancel_futures=True)

        return signals, records

    @staticmethod
    def _collect(category: Category, future, signals: dict, records: dict):
        """Record a finished branch, or mark its category absent if it raised."""
        try:
            records[category], signals[category] = future.result()
        except RiskGuardError as e:
            log.warning(f"  [{category.value}] provider failed, category absent: {e}")
            signals[category] = None
        except Exception as e:
            log.warning(f"  [{category.value}] scoring failed, category absent: "
                        f"{type(e).__name__}: {e}")
            signals[category] = None

    def assess(self, text: str) -> ComprehensiveAssessment:
        identifier = extract_identifier(text)
        if not identifier:
            raise ValueError("an asset identifier (address, symbol or name) is required")

        log.info(f"=== RISK GUARD: Assessing {identifier} ===")
        t_start = time.monotonic()
        signals, records = self.collect_signals(identifier)

        assessment = compute_comprehensive_assessment(
            identifier,
            signals,
            self.settings.weights,
            project_name=self._display_name(records, identifier),
            token_symbol=self._display_symbol(records),
        )

        absent = [c.value for c, s in signals.items() if s is None]
        if absent:
            log.info(f"  Absent categories: {', '.join(absent)}")
        log.info(f"=== RISK GUARD: {identifier} scored {assessment.overall_score}/100 "
                 f"({assessment.overall_level.value}) in {time.monotonic() - t_start:.1f}s ===")

        self._publish(assessment)
        return assessment

    def _publish(self, assessment: ComprehensiveAssessment):
        for sink in self.sinks:
            try:
                sink.publish(assessment)
            except Exception as e:
                log.warning(f"  Output sink {type(sink).__name__} failed: {e}")

    @staticmethod
    def _display_name(records: dict, identifier: str) -> str:
        for category in (Category.MARKET, Category.CHAIN, Category.DEX):
            name = getattr(records.get(category), "name", None)
            if name:
                return name
        return identifier

    @staticmethod
    def _display_symbol(records: dict) -> str:
        for category in (Category.MARKET, Category.CHAIN, Category.DEX):
            symbol = getattr(records.get(category), "symbol", None)
            if symbol:
                return symbol.upper()
        return "UNKNOWN"
