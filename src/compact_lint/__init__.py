"""compact_lint: static analysis for Compact smart-contract sources."""

__all__ = [
    "__version__",
    "analyze",
    "analyze_dict",
    "analyze_file",
    "validate_result",
    "Analyzer",
    "AnalyzeOptions",
    "AnalyzerConfig",
    "AnalysisResult",
    "Issue",
    "RuleTable",
    "RuleTableError",
    "load_rule_table",
]
__version__ = "0.1.0"

# Programmatic entrypoints
from compact_lint.api import (  # noqa: E402, F401
    analyze,
    analyze_dict,
    analyze_file,
    validate_result,
)
from compact_lint.core.analyzer import Analyzer  # noqa: E402, F401
from compact_lint.core.config import AnalyzeOptions, AnalyzerConfig  # noqa: E402, F401
from compact_lint.core.rule_table import (  # noqa: E402, F401
    RuleTable,
    RuleTableError,
    load_rule_table,
)
from compact_lint.model.analysis_result import AnalysisResult  # noqa: E402, F401
from compact_lint.model.issue import Issue  # noqa: E402, F401
