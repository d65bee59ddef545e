"""
Target identifier parsing.
"""

from .parser import TargetParser, parse_target, parse_targets

__all__ = ["TargetParser", "parse_target", "parse_targets"]
