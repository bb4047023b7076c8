"""
Insight assembly for the read path.

A report combines the question, the executed query and its rows with:
- summary: deterministic record count ("Found N records")
- analysis: prose from the reasoning provider, given the rows verbatim
- key_findings: output of a pluggable extractor over the rows
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .reasoning import ReasoningProvider

logger = logging.getLogger(__name__)

# rows, limit -> findings
KeyFindingsExtractor = Callable[[List[Dict[str, Any]], int], List[str]]


@dataclass
class CypherQuery:
    """A generated graph query and its parameters."""

    cypher: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    explanation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cypher": self.cypher,
            "parameters": self.parameters,
            "explanation": self.explanation,
        }


@dataclass
class InsightReport:
    """Structured answer to a question over the graph."""

    question: str
    query: CypherQuery
    rows: List[Dict[str, Any]]
    summary: str
    analysis: str
    key_findings: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def record_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "query": self.query.to_dict(),
            "rows": self.rows,
            "summary": self.summary,
            "analysis": self.analysis,
            "key_findings": self.key_findings,
            "record_count": self.record_count,
            "created_at": self.created_at.isoformat(),
        }

    def to_markdown(self) -> str:
        """Render the report as a Markdown document."""
        lines = [
            "# Data Analysis Results",
            "",
            f"**Query:** {self.question}",
            "",
            "## Summary",
            self.summary,
            "",
            "## Analysis",
            self.analysis,
            "",
            "## Key Findings",
        ]
        lines.extend(f"• {finding}" for finding in self.key_findings)
        lines.extend(
            [
                "",
                "## Technical Details",
                f"**Records Found:** {self.record_count}",
                f"**Query:** `{self.query.cypher}`",
            ]
        )
        return "\n".join(lines)


def _format_scalar(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return str(value)
    if isinstance(value, list) and value and all(
        isinstance(v, (str, int, float, bool)) for v in value
    ):
        return ", ".join(str(v) for v in value)
    return None


def row_key_findings(rows: List[Dict[str, Any]], limit: int) -> List[str]:
    """
    Default extractor: one finding per row, built from its scalar columns.

    Rows with no scalar columns (only nodes or nested maps) are skipped.
    """
    findings: List[str] = []
    for row in rows:
        if len(findings) >= limit:
            break
        parts = []
        for column, value in row.items():
            text = _format_scalar(value)
            if text is not None:
                parts.append(f"{column}: {text}")
        if parts:
            findings.append("; ".join(parts))
    return findings


class InsightAssembler:
    """
    Builds InsightReports from query results.

    Example:
        assembler = InsightAssembler(ClaudeReasoningProvider(config.reasoning))
        report = assembler.assemble(question, CypherQuery(cypher), rows)
        print(report.to_markdown())
    """

    def __init__(
        self,
        reasoner: ReasoningProvider,
        key_findings_extractor: KeyFindingsExtractor = row_key_findings,
        max_key_findings: int = 5,
    ):
        self.reasoner = reasoner
        self.key_findings_extractor = key_findings_extractor
        self.max_key_findings = max_key_findings

    @staticmethod
    def summarize(rows: List[Dict[str, Any]]) -> str:
        return f"Found {len(rows)} records"

    def assemble(self, question: str, query: CypherQuery, rows: List[Dict[str, Any]]) -> InsightReport:
        """
        Raises:
            ReasoningError: If the reasoning provider fails
        """
        data = json.dumps(rows, ensure_ascii=False, default=str)
        analysis = self.reasoner.analyze(question, data)

        key_findings = list(self.key_findings_extractor(rows, self.max_key_findings))
        key_findings = key_findings[: self.max_key_findings]

        report = InsightReport(
            question=question,
            query=query,
            rows=rows,
            summary=self.summarize(rows),
            analysis=analysis,
            key_findings=key_findings,
        )
        logger.info(f"Assembled report: {report.summary}, {len(key_findings)} key findings")
        return report
