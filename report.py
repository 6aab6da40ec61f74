"""
Crypto Risk Guard - Output Ports

Sinks receive every finished assessment through publish(). Delivery (chat,
HTTP, files) lives here, not in the scoring code.
"""
import json
import os
import re
import sys

import config
from models import Category, ComprehensiveAssessment
from utils import get_logger, save_json

log = get_logger("report")

CATEGORY_TITLES = {
    Category.CHAIN: "Blockchain Risk",
    Category.SENTIMENT: "Social Media Risk",
    Category.MARKET: "Market Risk",
    Category.DEX: "DEX Risk",
}


def format_report(assessment: ComprehensiveAssessment) -> str:
    """Markdown rendering of an assessment."""
    a = assessment
    lines = [
        f"# Comprehensive Risk Assessment for {a.project_name} ({a.token_symbol})",
        "",
        "## Risk Summary",
        f"**Overall Risk Score:** {a.overall_score}/100 ({a.overall_level.value} Risk)",
        "",
        f"- **Identifier:** {a.project_identifier}",
        f"- **Analysis Date:** {a.timestamp}",
        "",
        "## Risk Breakdown",
    ]
    for category in Category.ordered():
        title = CATEGORY_TITLES[category]
        detail = a.details.get(category.value)
        if detail is None:
            lines.append(f"- **{title}:** Not Available")
        else:
            lines.append(f"- **{title}:** {detail.score}/100 ({detail.level.value})")

    lines += ["", "## Key Risk Factors"]
    lines += [f"- {f}" for f in a.risk_factors] or ["- No significant risk factors identified"]
    lines += ["", "## Positive Indicators"]
    lines += [f"- {f}" for f in a.positive_factors] or ["- No notable positive indicators"]

    if a.details:
        lines += ["", "## Detailed Analysis"]
        for category in Category.ordered():
            detail = a.details.get(category.value)
            if detail is None:
                continue
            lines += ["", f"### {CATEGORY_TITLES[category]}: {detail.score}/100 ({detail.level.value})"]
            for issue in detail.key_issues:
                lines.append(f"- Issue: {issue}")
            for positive in detail.positive_factors:
                lines.append(f"- Positive: {positive}")

    lines += ["", "## Recommendations"]
    lines += [f"- {r}" for r in a.recommendations]
    lines += ["", "*This is an automated risk assessment. Always conduct your own research "
                  "before making investment decisions.*"]
    return "\n".join(lines)


class LogSink:
    """Writes a one-line summary and the capped factors to the log."""

    def publish(self, assessment: ComprehensiveAssessment):
        breakdown = ", ".join(f"{k}={v}" for k, v in assessment.breakdown.items()) or "none"
        log.info(f"{assessment.project_name} ({assessment.token_symbol}): "
                 f"{assessment.overall_score}/100 {assessment.overall_level.value} [{breakdown}]")
        for factor in assessment.risk_factors:
            log.info(f"  - {factor}")
        for factor in assessment.positive_factors:
            log.info(f"  + {factor}")


class JsonFileSink:
    """Saves each assessment as JSON, one file per assessment, under `directory`."""

    def __init__(self, directory: str = config.REPORTS_DIR):
        self.directory = directory
        self.last_path = None

    def _filename(self, assessment: ComprehensiveAssessment) -> str:
        slug = re.sub(r"[^A-Za-z0-9_-]+", "_", assessment.project_identifier).strip("_") or "asset"
        stamp = re.sub(r"[^0-9T]", "", assessment.timestamp)[:15]
        return f"{slug}_{stamp}.json"

    def publish(self, assessment: ComprehensiveAssessment):
        path = os.path.join(self.directory, self._filename(assessment))
        save_json(path, assessment.to_dict())
        self.last_path = path
        log.info(f"Assessment saved to {path}")


class StreamSink:
    """Prints the markdown report (or JSON) to a stream, stdout by default."""

    def __init__(self, stream=None, as_json: bool = False):
        self.stream = stream or sys.stdout
        self.as_json = as_json

    def publish(self, assessment: ComprehensiveAssessment):
        if self.as_json:
            text = json.dumps(assessment.to_dict(), indent=2)
        else:
            text = format_report(assessment)
        self.stream.write(text + "\n")
        self.stream.flush()
