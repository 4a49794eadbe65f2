"""Quality checks and structural comparison over parsed TypeScript."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .models import AnalysisReport, AnalysisResult, Declaration, Issue, StructureDiff
from .parser import TypeScriptParser

logger = logging.getLogger(__name__)

DEFAULT_LARGE_FILE_LINES = 500
DEFAULT_COMPLEXITY_THRESHOLD = 20
DEFAULT_DIFF_TOLERANCE = 2

DOCUMENTED_KINDS = ("function", "class", "interface")
NAMED_TYPE_KINDS = ("class", "interface")


class CodeAnalyzer:
    """Detect advisory issues in a source unit and diff two versions of one.

    Every check works on the parsed declaration model, so results are only
    as precise as the parser. The unused-import check in particular is a
    textual heuristic and reports both false positives and negatives.
    """

    def __init__(
        self,
        large_file_lines: int = DEFAULT_LARGE_FILE_LINES,
        complexity_threshold: int = DEFAULT_COMPLEXITY_THRESHOLD,
        diff_tolerance: int = DEFAULT_DIFF_TOLERANCE,
    ):
        self.large_file_lines = large_file_lines
        self.complexity_threshold = complexity_threshold
        self.diff_tolerance = diff_tolerance
        self.parser = TypeScriptParser()

    @classmethod
    def from_config(cls, config: Dict) -> "CodeAnalyzer":
        """Build an analyzer from the ``[analysis]`` section of the config."""
        analysis = config.get("analysis", {})
        return cls(
            large_file_lines=int(analysis.get("large_file_lines", DEFAULT_LARGE_FILE_LINES)),
            complexity_threshold=int(analysis.get("complexity_threshold", DEFAULT_COMPLEXITY_THRESHOLD)),
            diff_tolerance=int(analysis.get("diff_tolerance", DEFAULT_DIFF_TOLERANCE)),
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def analyze_source(self, source: str, file_path: str = "source.ts") -> AnalysisReport:
        result = self.parser.parse_source(source, file_path)
        issues = self.detect_issues(result)
        return AnalysisReport(
            file_path=file_path,
            issues=issues,
            metrics=result.metrics,
            summary=self.summarize(result, issues),
        )

    def analyze_file(self, file_path: Path) -> AnalysisReport:
        source = Path(file_path).read_text(encoding="utf-8")
        return self.analyze_source(source, str(file_path))

    def detect_issues(self, result: AnalysisResult) -> List[Issue]:
        issues: List[Issue] = []
        metrics = result.metrics

        if metrics.lines_of_code > self.large_file_lines:
            issues.append(Issue(
                type="large-file",
                severity="warning",
                message=f"File has {metrics.lines_of_code} lines. Consider splitting into smaller modules.",
            ))

        if metrics.cyclomatic_complexity > self.complexity_threshold:
            issues.append(Issue(
                type="complexity",
                severity="warning",
                message=f"High cyclomatic complexity: {metrics.cyclomatic_complexity}. Consider refactoring.",
            ))

        for decl in result.tree.walk():
            issues.extend(self._check_declaration(decl))

        issues.extend(self._check_unused_imports(result))
        logger.debug("%s: %d issue(s)", result.file_path, len(issues))
        return issues

    def _check_declaration(self, decl: Declaration) -> List[Issue]:
        issues = []
        if decl.is_exported and not decl.doc and decl.kind in DOCUMENTED_KINDS:
            issues.append(Issue(
                type="missing-jsdoc",
                severity="info",
                message=f"Exported {decl.kind} '{decl.name}' is missing JSDoc documentation",
                node=decl.name,
                line=decl.start_line,
            ))
        if decl.kind in NAMED_TYPE_KINDS and not decl.name[:1].isupper():
            issues.append(Issue(
                type="naming",
                severity="warning",
                message=f"{decl.kind} '{decl.name}' should start with an uppercase letter",
                node=decl.name,
                line=decl.start_line,
            ))
        return issues

    def _check_unused_imports(self, result: AnalysisResult) -> List[Issue]:
        """Flag named imports that never show up in the declaration model.

        An import counts as used if some declaration (at any depth) carries
        its name, or its name occurs anywhere in serialized metadata such as
        parameter types or heritage clauses. Usage inside function bodies is
        invisible to this check.
        """
        names = set()
        blobs = []
        for decl in result.tree.walk():
            names.add(decl.name)
            blobs.append(json.dumps(decl.metadata, default=str))
        haystack = "\n".join(blobs)

        issues = []
        for record in result.imports:
            if record.is_type_only:
                continue
            for named in record.named_imports:
                if named in names or named in haystack:
                    continue
                issues.append(Issue(
                    type="dead-code",
                    severity="info",
                    message=f"Import '{named}' from '{record.module_specifier}' may be unused",
                    node=named,
                ))
        return issues

    @staticmethod
    def summarize(result: AnalysisResult, issues: List[Issue]) -> str:
        m = result.metrics
        parts = [
            f"{m.lines_of_code} LOC",
            f"{m.function_count} functions",
            f"{m.class_count} classes",
            f"{m.import_count} imports",
            f"{m.export_count} exports",
            f"complexity: {m.cyclomatic_complexity}",
        ]

        counts = {"error": 0, "warning": 0, "info": 0}
        for issue in issues:
            counts[issue.severity] = counts.get(issue.severity, 0) + 1
        buckets = [
            f"{counts['error']} errors" if counts["error"] else None,
            f"{counts['warning']} warnings" if counts["warning"] else None,
            f"{counts['info']} info" if counts["info"] else None,
        ]
        issue_text = ", ".join(b for b in buckets if b)
        return ", ".join(parts) + (f" | Issues: {issue_text}" if issue_text else " | No issues")

    # ------------------------------------------------------------------
    # Structural diff
    # ------------------------------------------------------------------

    def compare_structure(self, old_source: str, new_source: str) -> StructureDiff:
        """Compare top-level declarations of two versions of a file.

        Declarations are keyed as ``kind:name``. A declaration present in
        both is reported as modified when its line span changed by more than
        ``diff_tolerance`` lines, which misses same-length rewrites.
        """
        old = self._spans(self.parser.parse_source(old_source, "a.ts"))
        new = self._spans(self.parser.parse_source(new_source, "b.ts"))

        return StructureDiff(
            added=[key for key in new if key not in old],
            removed=[key for key in old if key not in new],
            modified=[
                key for key in old
                if key in new and abs(old[key] - new[key]) > self.diff_tolerance
            ],
        )

    @staticmethod
    def _spans(result: AnalysisResult) -> Dict[str, int]:
        spans: Dict[str, int] = {}
        for decl in result.declarations:
            spans.setdefault(decl.identifier, decl.span)
        return spans


_default_analyzer: Optional[CodeAnalyzer] = None


def _analyzer() -> CodeAnalyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = CodeAnalyzer()
    return _default_analyzer


def analyze_source(source: str, file_path: str = "source.ts") -> AnalysisReport:
    """Analyze *source* with the default thresholds."""
    return _analyzer().analyze_source(source, file_path)


def analyze_file(file_path: Path) -> AnalysisReport:
    return _analyzer().analyze_file(file_path)


def compare_structure(old_source: str, new_source: str) -> StructureDiff:
    """Structural diff of two sources with the default tolerance."""
    return _analyzer().compare_structure(old_source, new_source)
