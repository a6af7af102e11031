"""Pre-execution safety checks for shell commands run by coding agents."""

__version__ = "0.5.0"

from safety_net.analyze import analyze_command  # noqa: E402
from safety_net.config import Config, ConfigError, CustomRule, load_config  # noqa: E402
from safety_net.context import AnalysisContext, AnalysisResult  # noqa: E402

__all__ = [
    "AnalysisContext",
    "AnalysisResult",
    "Config",
    "ConfigError",
    "CustomRule",
    "analyze_command",
    "load_config",
]
