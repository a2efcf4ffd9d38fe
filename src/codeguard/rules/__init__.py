from .engine import Rule, RuleSet, evaluate, load_ruleset, parse_ruleset
from .validators import RuleContext, register_validator

__all__ = [
    "Rule",
    "RuleContext",
    "RuleSet",
    "evaluate",
    "load_ruleset",
    "parse_ruleset",
    "register_validator",
]
