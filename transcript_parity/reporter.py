"""
Transcript Parity Reporting.

============================================================
PURPOSE
============================================================
Renders already-computed results for people and machines.

Report types:
1. Single comparison report (DiffReport)
2. Batch report (DetailedBatchResult)
3. Deep analysis report (DeepAnalysisResult)
4. Certification document (PerfectParityValidation)

Formats: text, json, markdown, html.
JSON is the complete to_dict() serialization. HTML escapes
every piece of engine output.

============================================================
"""

import html
import json
import logging
import platform
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .exceptions import ReportFormatError
from .models import (
    DeepAnalysisResult,
    DetailedBatchResult,
    DiffReport,
    PerfectParityValidation,
)


logger = logging.getLogger(__name__)


class ReportFormat(Enum):
    """Supported output formats."""
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"
    HTML = "html"

    @property
    def extension(self) -> str:
        return {"text": "txt", "json": "json", "markdown": "md", "html": "html"}[self.value]


def parse_format(fmt: Union[str, ReportFormat]) -> ReportFormat:
    """Resolve a format name, raising ReportFormatError for unknown names."""
    if isinstance(fmt, ReportFormat):
        return fmt
    try:
        return ReportFormat(str(fmt).lower())
    except ValueError:
        raise ReportFormatError(str(fmt))


RULE = "=" * 60
SUBRULE = "-" * 60

HTML_STYLES = """
    body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; background: #f5f5f5; }
    .container { max-width: 1200px; margin: 0 auto; padding: 20px; }
    h2 { border-bottom: 2px solid #3498db; padding-bottom: 5px; }
    section { background: white; padding: 20px; margin-bottom: 20px; border-radius: 8px; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 10px; text-align: left; border-bottom: 1px solid #eee; }
    tr.highlight td { font-weight: bold; background: #e8f4f8; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(120px, 1fr)); gap: 15px; }
    .item { text-align: center; padding: 15px; border-radius: 8px; background: #f8f9fa; }
    .item .value { display: block; font-size: 24px; font-weight: bold; }
    .item .label { display: block; font-size: 12px; color: #666; text-transform: uppercase; }
    .critical { color: #c0392b; }
    .major { color: #e67e22; }
    .minor { color: #f39c12; }
    .formatting, .success { color: #27ae60; }
    .failure { color: #c0392b; }
    .diff-entry { margin-bottom: 20px; border: 1px solid #ddd; border-radius: 8px; padding: 10px 15px; }
    .diff-content { display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }
    pre { white-space: pre-wrap; word-wrap: break-word; background: #fafafa; padding: 10px; }
"""


def _indent(text: str, prefix: str = "      ") -> str:
    return "\n".join(prefix + line for line in text.split("\n"))


def _esc(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _html_page(title: str, body: List[str]) -> str:
    lines = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="UTF-8">',
        f"  <title>{_esc(title)}</title>",
        f"  <style>{HTML_STYLES}  </style>",
        "</head>",
        "<body>",
        '  <div class="container">',
        f"    <h1>{_esc(title)}</h1>",
    ]
    lines.extend(body)
    lines.extend(["  </div>", "</body>", "</html>"])
    return "\n".join(lines)


# ============================================================
# REPORT GENERATOR
# ============================================================

class ReportGenerator:
    """Pure renderers from result objects to text."""

    def generate(self, report: DiffReport, fmt: Union[str, ReportFormat] = ReportFormat.TEXT) -> str:
        """Render a single comparison report."""
        renderers: Dict[ReportFormat, Callable[[DiffReport], str]] = {
            ReportFormat.TEXT: self._report_text,
            ReportFormat.JSON: self._json,
            ReportFormat.MARKDOWN: self._report_markdown,
            ReportFormat.HTML: self._report_html,
        }
        return renderers[parse_format(fmt)](report)

    def generate_batch(
        self,
        result: DetailedBatchResult,
        fmt: Union[str, ReportFormat] = ReportFormat.TEXT,
    ) -> str:
        """Render a batch result."""
        renderers: Dict[ReportFormat, Callable[[DetailedBatchResult], str]] = {
            ReportFormat.TEXT: self._batch_text,
            ReportFormat.JSON: self._json,
            ReportFormat.MARKDOWN: self._batch_markdown,
            ReportFormat.HTML: self._batch_html,
        }
        return renderers[parse_format(fmt)](result)

    def generate_analysis(
        self,
        analysis: DeepAnalysisResult,
        fmt: Union[str, ReportFormat] = ReportFormat.MARKDOWN,
    ) -> str:
        """Render a deep analysis. HTML is not offered for analyses."""
        resolved = parse_format(fmt)
        if resolved == ReportFormat.JSON:
            return self._json(analysis)
        if resolved == ReportFormat.MARKDOWN:
            return self._analysis_markdown(analysis)
        if resolved == ReportFormat.TEXT:
            return self._analysis_text(analysis)
        raise ReportFormatError(resolved.value)

    @staticmethod
    def _json(result: Any) -> str:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    # --------------------------------------------------------
    # Single report
    # --------------------------------------------------------

    def _report_text(self, report: DiffReport) -> str:
        lines = [
            RULE,
            "TRANSCRIPT COMPARISON REPORT",
            RULE,
            "",
            f"Transcript A: {report.transcript_a}",
            f"Transcript B: {report.transcript_b}",
            "",
            SUBRULE,
            "SUMMARY",
            SUBRULE,
            f"Total Commands:  {report.total_commands}",
            f"Exact Matches:   {report.exact_matches}",
            f"Close Matches:   {report.close_matches}",
            f"Differences:     {len(report.differences)}",
            f"Parity Score:    {report.parity_score:.2f}%",
            "",
            "Differences by Severity:",
            f"  Critical:   {report.summary.critical}",
            f"  Major:      {report.summary.major}",
            f"  Minor:      {report.summary.minor}",
            f"  Formatting: {report.summary.formatting}",
        ]

        if report.differences:
            lines.extend(["", SUBRULE, "DIFFERENCES", SUBRULE])
            for diff in report.differences:
                lines.extend([
                    "",
                    f"[{diff.index}] Command: {diff.command}",
                    f"    Severity: {diff.severity.value.upper()}",
                    f"    Category: {diff.category}",
                    f"    Similarity: {diff.similarity * 100:.1f}%",
                    "    Expected:",
                    _indent(diff.expected),
                    "    Actual:",
                    _indent(diff.actual),
                ])

        lines.extend(["", RULE])
        return "\n".join(lines)

    def _report_markdown(self, report: DiffReport) -> str:
        lines = [
            "# Transcript Comparison Report",
            "",
            "## Overview",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Transcript A | {report.transcript_a} |",
            f"| Transcript B | {report.transcript_b} |",
            f"| Total Commands | {report.total_commands} |",
            f"| Exact Matches | {report.exact_matches} |",
            f"| Close Matches | {report.close_matches} |",
            f"| Differences | {len(report.differences)} |",
            f"| **Parity Score** | **{report.parity_score:.2f}%** |",
            "",
            "## Differences by Severity",
            "",
            "| Severity | Count |",
            "|----------|-------|",
            f"| Critical | {report.summary.critical} |",
            f"| Major | {report.summary.major} |",
            f"| Minor | {report.summary.minor} |",
            f"| Formatting | {report.summary.formatting} |",
        ]

        if report.differences:
            lines.extend(["", "## Detailed Differences", ""])
            for diff in report.differences:
                lines.extend([
                    f"### [{diff.index}] `{diff.command}`",
                    "",
                    f"- **Severity:** {diff.severity.value}",
                    f"- **Category:** {diff.category}",
                    f"- **Similarity:** {diff.similarity * 100:.1f}%",
                    "",
                    "**Expected:**",
                    "```",
                    diff.expected,
                    "```",
                    "",
                    "**Actual:**",
                    "```",
                    diff.actual,
                    "```",
                    "",
                ])

        return "\n".join(lines)

    def _report_html(self, report: DiffReport) -> str:
        summary = report.summary
        body = [
            '    <section class="summary">',
            "      <h2>Summary</h2>",
            "      <table>",
            "        <tr><th>Metric</th><th>Value</th></tr>",
            f"        <tr><td>Transcript A</td><td>{_esc(report.transcript_a)}</td></tr>",
            f"        <tr><td>Transcript B</td><td>{_esc(report.transcript_b)}</td></tr>",
            f"        <tr><td>Total Commands</td><td>{report.total_commands}</td></tr>",
            f"        <tr><td>Exact Matches</td><td>{report.exact_matches}</td></tr>",
            f"        <tr><td>Close Matches</td><td>{report.close_matches}</td></tr>",
            f"        <tr><td>Differences</td><td>{len(report.differences)}</td></tr>",
            f'        <tr class="highlight"><td>Parity Score</td><td>{report.parity_score:.2f}%</td></tr>',
            "      </table>",
            "    </section>",
            '    <section class="severity">',
            "      <h2>Differences by Severity</h2>",
            '      <div class="grid">',
        ]
        for name, count in summary.to_dict().items():
            body.append(
                f'        <div class="item {name}"><span class="value">{count}</span>'
                f'<span class="label">{name.title()}</span></div>'
            )
        body.extend(["      </div>", "    </section>"])

        if report.differences:
            body.extend(['    <section class="differences">', "      <h2>Detailed Differences</h2>"])
            for diff in report.differences:
                severity = diff.severity.value
                body.extend([
                    f'      <div class="diff-entry {severity}">',
                    f"        <p>[{diff.index}] <code>{_esc(diff.command)}</code> "
                    f'<span class="{severity}">{severity}</span></p>',
                    f"        <p>Category: {_esc(diff.category)} | "
                    f"Similarity: {diff.similarity * 100:.1f}%</p>",
                    '        <div class="diff-content">',
                    f"          <div><h4>Expected</h4><pre>{_esc(diff.expected)}</pre></div>",
                    f"          <div><h4>Actual</h4><pre>{_esc(diff.actual)}</pre></div>",
                    "        </div>",
                    "      </div>",
                ])
            body.append("    </section>")

        return _html_page("Transcript Comparison Report", body)

    # --------------------------------------------------------
    # Batch report
    # --------------------------------------------------------

    def _worst_lines(self, result: DetailedBatchResult, template: str) -> List[str]:
        lines = []
        for sequence_id in result.worst_sequences:
            seq = result.get_result(sequence_id)
            if seq:
                lines.append(template.format(
                    id=sequence_id, count=seq.diff_count, parity=seq.parity_score
                ))
        return lines

    def _batch_text(self, result: DetailedBatchResult) -> str:
        lines = [
            RULE,
            "BATCH COMPARISON REPORT",
            RULE,
            "",
            SUBRULE,
            "SUMMARY",
            SUBRULE,
            f"Total Sequences:     {len(result.sequences)}",
            f"Successful:          {result.success_count}",
            f"Failed:              {result.failure_count}",
            f"Total Differences:   {result.total_differences}",
            f"Aggregate Parity:    {result.aggregate_parity_score:.2f}%",
            f"Total Time:          {result.total_execution_time:.0f}ms",
            "",
        ]

        if result.worst_sequences:
            lines.append("Worst Sequences:")
            lines.extend(self._worst_lines(result, "  - {id}: {count} differences ({parity:.1f}%)"))
            lines.append("")

        lines.extend([SUBRULE, "SEQUENCE RESULTS", SUBRULE])
        for seq in result.results:
            lines.append(f"{'✓' if seq.success else '✗'} {seq.name}")
            lines.append(f"    Parity: {seq.parity_score:.2f}%")
            lines.append(f"    Differences: {seq.diff_count}")
            lines.append(f"    Time: {seq.execution_time:.0f}ms")
            if seq.note:
                lines.append(f"    Note: {seq.note}")
            if seq.error:
                lines.append(f"    Error: {seq.error}")
            lines.append("")

        lines.append(RULE)
        return "\n".join(lines)

    def _batch_markdown(self, result: DetailedBatchResult) -> str:
        lines = [
            "# Batch Comparison Report",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Total Sequences | {len(result.sequences)} |",
            f"| Successful | {result.success_count} |",
            f"| Failed | {result.failure_count} |",
            f"| Total Differences | {result.total_differences} |",
            f"| **Aggregate Parity** | **{result.aggregate_parity_score:.2f}%** |",
            f"| Total Time | {result.total_execution_time:.0f}ms |",
            "",
        ]

        if result.worst_sequences:
            lines.extend(["## Worst Sequences", ""])
            lines.extend(self._worst_lines(result, "- **{id}**: {count} differences ({parity:.1f}%)"))
            lines.append("")

        lines.extend([
            "## Sequence Results",
            "",
            "| Sequence | Status | Parity | Differences | Time |",
            "|----------|--------|--------|-------------|------|",
        ])
        for seq in result.results:
            lines.append(
                f"| {seq.name} | {'✓' if seq.success else '✗'} | {seq.parity_score:.1f}% "
                f"| {seq.diff_count} | {seq.execution_time:.0f}ms |"
            )

        return "\n".join(lines)

    def _batch_html(self, result: DetailedBatchResult) -> str:
        stats = [
            ("", len(result.sequences), "Sequences"),
            ("success", result.success_count, "Successful"),
            ("failure", result.failure_count, "Failed"),
            ("", result.total_differences, "Differences"),
            ("highlight", f"{result.aggregate_parity_score:.1f}%", "Parity"),
            ("", f"{result.total_execution_time:.0f}ms", "Time"),
        ]
        body = ['    <section class="summary">', "      <h2>Summary</h2>", '      <div class="grid">']
        for css, value, label in stats:
            body.append(
                f'        <div class="item {css}"><span class="value">{value}</span>'
                f'<span class="label">{label}</span></div>'
            )
        body.extend([
            "      </div>",
            "    </section>",
            '    <section class="results">',
            "      <h2>Sequence Results</h2>",
            "      <table>",
            "        <tr><th>Sequence</th><th>Status</th><th>Parity</th><th>Differences</th><th>Time</th></tr>",
        ])
        for seq in result.results:
            status = "success" if seq.success else "failure"
            body.append(
                f'        <tr class="{status}"><td>{_esc(seq.name)}</td>'
                f'<td class="{status}">{"✓" if seq.success else "✗"}</td>'
                f"<td>{seq.parity_score:.1f}%</td><td>{seq.diff_count}</td>"
                f"<td>{seq.execution_time:.0f}ms</td></tr>"
            )
        body.extend(["      </table>", "    </section>"])
        return _html_page("Batch Comparison Report", body)

    # --------------------------------------------------------
    # Deep analysis report
    # --------------------------------------------------------

    def _analysis_markdown(self, analysis: DeepAnalysisResult) -> str:
        lines = [
            f"# Deep Analysis: {analysis.sequence_id}",
            "",
            f"**Overall Risk:** {analysis.risk_assessment.value.upper()}",
            f"**Differences:** {analysis.metadata.total_differences}",
            f"**Analyzer Version:** {analysis.metadata.analyzer_version}",
            "",
            "## Fix Recommendations",
            "",
            "| Priority | Effort | Risk | Command | Target Files | Fix |",
            "|----------|--------|------|---------|--------------|-----|",
        ]
        for rec in analysis.fix_recommendations:
            diff = analysis.differences[rec.difference_index]
            lines.append(
                f"| {rec.priority.value} | {rec.effort.value} | {rec.regression_risk.value} "
                f"| `{diff.command}` | {', '.join(rec.target_files)} | {rec.description} |"
            )

        lines.extend(["", "## Root Causes", ""])
        for diff, cause in zip(analysis.differences, analysis.root_cause_analysis):
            lines.extend([
                f"### [{diff.command_index}] `{diff.command}`",
                "",
                f"- **Type:** {diff.difference_type.value}",
                f"- **Systems:** {', '.join(s.value for s in diff.affected_systems)}",
                f"- **Confidence:** {cause.confidence:.2f}",
                "",
                cause.explanation,
                "",
            ])
        return "\n".join(lines)

    def _analysis_text(self, analysis: DeepAnalysisResult) -> str:
        lines = [
            RULE,
            f"DEEP ANALYSIS: {analysis.sequence_id}",
            RULE,
            f"Overall Risk: {analysis.risk_assessment.value.upper()}",
            f"Differences:  {analysis.metadata.total_differences}",
            "",
        ]
        for rec in analysis.fix_recommendations:
            diff = analysis.differences[rec.difference_index]
            cause = analysis.root_cause_analysis[rec.difference_index]
            lines.extend([
                f"[{rec.priority.value.upper()}] {diff.command} ({diff.difference_type.value})",
                f"    Effort: {rec.effort.value}  Risk: {rec.regression_risk.value}",
                f"    Files: {', '.join(rec.target_files)}",
                f"    {cause.explanation}",
                "",
            ])
        lines.append(RULE)
        return "\n".join(lines)


# ============================================================
# REPORT EXPORTER
# ============================================================

class ReportExporter:
    """Writes rendered reports to disk."""

    def __init__(
        self,
        output_dir: Union[str, Path] = "reports",
        generator: Optional[ReportGenerator] = None,
    ):
        self._output_dir = Path(output_dir)
        self._generator = generator or ReportGenerator()

    def _write(self, content: str, name: str, fmt: ReportFormat) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / f"{name}.{fmt.extension}"
        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {fmt.value} report to {path}")
        return path

    def export(self, report: DiffReport, name: str, fmt: Union[str, ReportFormat] = ReportFormat.TEXT) -> Path:
        resolved = parse_format(fmt)
        return self._write(self._generator.generate(report, resolved), name, resolved)

    def export_batch(
        self,
        result: DetailedBatchResult,
        name: str,
        fmt: Union[str, ReportFormat] = ReportFormat.TEXT,
    ) -> Path:
        resolved = parse_format(fmt)
        return self._write(self._generator.generate_batch(result, resolved), name, resolved)


# ============================================================
# CERTIFICATION GENERATOR
# ============================================================

class CertificationGenerator:
    """Renders a markdown certification document from a validation run."""

    def __init__(
        self,
        title: str = "Transcript Parity Certification",
        notes: Optional[List[str]] = None,
        max_failure_points: int = 10,
    ):
        self._title = title
        self._notes = list(notes or [])
        self._max_failure_points = max_failure_points

    def generate(self, validation: PerfectParityValidation, version: Optional[str] = None) -> str:
        from . import __version__

        issued = validation.certification.issued_at
        sections = [
            self._header(issued, version or __version__),
            self._executive_summary(validation),
            self._sequence_results(validation),
            self._seed_results(validation),
            self._criteria(validation),
            self._regressions(validation),
            self._recommendations(validation),
        ]
        if self._notes:
            sections.append("## Additional Notes\n\n" + "\n".join(f"- {n}" for n in self._notes))
        sections.append(self._version_section(validation, issued, version or __version__))
        return "\n\n".join(sections)

    def write_to_file(self, certification: str, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(certification, encoding="utf-8")
        logger.info(f"Wrote certification to {path}")
        return path

    def _header(self, issued: datetime, version: str) -> str:
        return "\n".join([
            f"# {self._title}",
            "",
            f"**Generated:** {issued.strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"**Version:** {version}",
            "",
            "---",
        ])

    def _executive_summary(self, validation: PerfectParityValidation) -> str:
        cert = validation.certification
        lines = ["## Executive Summary", ""]
        if cert.certified:
            lines.append("✅ **CERTIFICATION: PERFECT PARITY ACHIEVED**")
            lines.append("")
            lines.append(
                "Every sequence reproduced the reference transcript exactly, "
                "consistently across all tested seeds, with no regressions."
            )
        else:
            lines.append(f"❌ **CERTIFICATION LEVEL: {cert.level.value.upper()}**")
            lines.append("")
            lines.append(
                f"{len(validation.sequence_validations) - validation.perfect_sequences} "
                f"sequence(s) did not reach perfect parity."
            )
        lines.extend([
            "",
            f"- **Aggregate Parity:** {validation.aggregate_parity_score:.2f}%",
            f"- **Perfect Sequences:** {validation.perfect_sequences}/{len(validation.sequence_validations)}",
            f"- **Overall Score:** {cert.overall_score:.2f}",
            f"- **Sustainability Score:** {cert.sustainability_score:.0f}",
            f"- **Completeness:** {validation.completeness:.1f}%",
        ])
        return "\n".join(lines)

    def _sequence_results(self, validation: PerfectParityValidation) -> str:
        lines = [
            "## Sequence Results",
            "",
            "| Sequence | Parity % | Differences | Status |",
            "|----------|----------|-------------|--------|",
        ]
        for v in validation.sequence_validations:
            differences = "error" if v.differences < 0 else str(v.differences)
            lines.append(
                f"| {v.sequence_name} | {v.parity_score:.1f}% | {differences} "
                f"| {'✅' if v.is_perfect else '❌'} |"
            )

        failures = [
            (v, fp) for v in validation.sequence_validations for fp in v.failure_points
        ]
        if failures:
            lines.extend(["", "### Failure Points", ""])
            for v, fp in failures[:self._max_failure_points]:
                lines.append(f"- **{v.sequence_id} [{fp.command_index}]** `{fp.command}` ({fp.failure_type})")
            if len(failures) > self._max_failure_points:
                lines.append(f"- ... and {len(failures) - self._max_failure_points} more")
        return "\n".join(lines)

    def _seed_results(self, validation: PerfectParityValidation) -> str:
        lines = [
            "## Test Results by Seed",
            "",
            f"**Total Seeds Tested:** {len(validation.seed_results)}",
            "",
            "| Seed | Aggregate Parity % | Differences | Status |",
            "|------|--------------------|-------------|--------|",
        ]
        for s in validation.seed_results:
            lines.append(
                f"| {s.seed} | {s.aggregate_parity_score:.1f}% | {s.total_differences} "
                f"| {'✅' if s.consistent else '⚠️'} |"
            )
        if validation.seed_variations:
            lines.extend(["", "### Seed Variations", ""])
            for var in validation.seed_variations:
                lines.append(
                    f"- **{var.sequence_id}** seed {var.seed}: "
                    f"{var.baseline_parity_score:.2f}% -> {var.parity_score:.2f}% "
                    f"({var.baseline_difference_count} -> {var.difference_count} differences, {var.impact} impact)"
                )
        return "\n".join(lines)

    def _criteria(self, validation: PerfectParityValidation) -> str:
        lines = [
            "## Certification Criteria",
            "",
            "| Criterion | Score | Status | Details |",
            "|-----------|-------|--------|---------|",
        ]
        for c in validation.certification.criteria:
            lines.append(f"| {c.name} | {c.score:.1f} | {'✅' if c.passed else '❌'} | {c.details} |")
        return "\n".join(lines)

    def _regressions(self, validation: PerfectParityValidation) -> str:
        if not validation.regressions:
            return "## Regressions\n\nNo regressions against the supplied baseline."
        lines = [
            "## Regressions",
            "",
            "| Sequence | Baseline % | Current % | Change | Severity |",
            "|----------|------------|-----------|--------|----------|",
        ]
        for r in validation.regressions:
            lines.append(
                f"| {r.sequence_id} | {r.baseline_score:.2f} | {r.current_score:.2f} "
                f"| {r.change:+.2f} | {r.severity.value} |"
            )
        return "\n".join(lines)

    def _recommendations(self, validation: PerfectParityValidation) -> str:
        recs = validation.certification.maintenance_recommendations
        return "## Maintenance Recommendations\n\n" + "\n".join(f"- {r}" for r in recs)

    def _version_section(self, validation: PerfectParityValidation, issued: datetime, version: str) -> str:
        return "\n".join([
            "## Version Information",
            "",
            "| Property | Value |",
            "|----------|-------|",
            f"| Package Version | {version} |",
            f"| Python Version | {platform.python_version()} |",
            f"| Certification Date | {issued.isoformat()} |",
            f"| Certification ID | {validation.certification.certification_id} |",
        ])
