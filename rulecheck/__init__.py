"""Test runner for regular-expression code rules with snapshot baselines."""

__version__ = "0.1.0"
__all__ = ["case_result", "find_file", "reporter", "rules", "snapshot", "verify"]