"""
CHAIN - On-chain Contract & Holder Risk

Accumulates distinct identified risks from zero: verification, proxy
upgradeability, metadata, contract age, holder concentration and source-code
security findings.
"""
import config
from models import Category, ChainRecord, RiskSignal
from stats import holder_concentration
from utils import clamp, safe_float


class ChainRiskScorer:
    """Scores a ChainRecord. Stateless; one instance can serve every request."""

    category = Category.CHAIN

    def compute_risk(self, record: ChainRecord) -> RiskSignal:
        score = 0
        negatives = []
        positives = []

        # ─── Verification & Contract Shape ───────────────────────────────
        if not record.is_verified:
            score += config.CHAIN_UNVERIFIED_PENALTY
            negatives.append("Contract source code is not verified, "
                             "so it cannot be audited for vulnerabilities")
        else:
            positives.append("Contract source code is verified and auditable")

        if record.is_proxy:
            score += config.CHAIN_PROXY_PENALTY
            negatives.append("Contract is an upgradeable proxy; the admin can "
                             "change its implementation at any time")

        if not record.name or not record.symbol:
            score += config.CHAIN_MISSING_METADATA_PENALTY
            negatives.append("Token name or symbol is missing from contract metadata")

        # ─── Contract Age ────────────────────────────────────────────────
        age_penalty, age_factor = self._age_penalty(record.age_days)
        score += age_penalty
        if age_factor:
            negatives.append(age_factor)
        elif record.age_days is not None and record.age_days >= config.CHAIN_MATURE_AGE_DAYS:
            positives.append(f"Contract has been deployed for over a year "
                             f"({int(record.age_days)} days)")

        # ─── Holder Concentration ────────────────────────────────────────
        top_holder, top10 = holder_concentration(list(record.holder_percentages))

        for threshold, penalty in config.CHAIN_TOP_HOLDER_TIERS:
            if top_holder > threshold:
                score += penalty
                negatives.append(self._top_holder_factor(top_holder, threshold))
                break

        for threshold, penalty in config.CHAIN_TOP10_TIERS:
            if top10 > threshold:
                score += penalty
                negatives.append(f"Top 10 holders control {top10:.1f}% of the supply")
                break

        if record.holder_percentages and top10 <= config.CHAIN_TOP10_DISTRIBUTED_PCT:
            positives.append(f"Token supply is broadly distributed "
                             f"(top 10 holders own {top10:.1f}%)")

        # ─── Security Findings ───────────────────────────────────────────
        for finding in record.findings:
            severity = getattr(finding.severity, "value", finding.severity)
            score += config.CHAIN_SEVERITY_PENALTIES.get(severity, 0)
            negatives.append(f"{finding.name} - {finding.description}")

        if record.is_verified and not record.findings:
            positives.append("No risky patterns detected in the contract source")

        # Unusual transfer activity is reported, not scored
        tx = record.transactions
        if tx and tx.large_tx_count_24h > config.CHAIN_LARGE_TX_ALERT_COUNT:
            negatives.append(f"Unusual number of large transactions "
                             f"({tx.large_tx_count_24h} over {config.CHAIN_LARGE_TX_ETH} ETH) "
                             f"in the past 24 hours")

        metrics = {
            "topHolderPercentage": round(top_holder, 2),
            "top10Percentage": round(top10, 2),
            "ageDays": None if record.age_days is None else round(safe_float(record.age_days), 1),
            "findingCount": len(record.findings),
        }
        if tx:
            metrics.update({
                "totalTxCount": tx.total_tx_count,
                "recentTxCount": tx.recent_tx_count,
                "uniqueAddressCount": tx.unique_address_count,
                "averageTransferAmount": round(tx.average_transfer_amount, 4),
            })

        return RiskSignal(
            category=self.category,
            score=int(clamp(score, 0, 100)),
            negative_factors=negatives,
            positive_factors=positives,
            metrics=metrics,
        )

    def _age_penalty(self, age_days: float | None) -> tuple[int, str | None]:
        if age_days is None:
            return config.CHAIN_UNKNOWN_AGE_PENALTY, "Contract age could not be determined"
        age_days = max(safe_float(age_days), 0.0)
        for max_days, penalty in config.CHAIN_AGE_TIERS:
            if age_days < max_days:
                if max_days <= 30:
                    return penalty, f"Contract is very new ({int(age_days)} days old)"
                return penalty, f"Contract is relatively new ({int(age_days)} days old)"
        return 0, None

    def _top_holder_factor(self, top_holder: float, threshold: float) -> str:
        if threshold >= 50:
            label = "Extreme"
        elif threshold >= 20:
            label = "High"
        else:
            label = "Notable"
        return f"{label} concentration of tokens ({top_holder:.1f}%) in a single wallet"
