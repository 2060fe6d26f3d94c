"""Decision rules and collaborator protocols.

Public API:
- Rule, DEFAULT_RULES, RULE_TABLE_VERSION: the ordered rule table
- first_match: evaluate a rule table against an indicator snapshot
- MarketDataSource, OrderGateway, HistoryStore: collaborator protocols
"""

from core.strategy.protocol import (
    HistoryStore,
    HoldingsCallback,
    MarketDataSource,
    OrderGateway,
    RecommendationsCallback,
)
from core.strategy.rules import (
    DEFAULT_RULES,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RULE_TABLE_VERSION,
    Rule,
    first_match,
)

__all__ = [
    "HistoryStore",
    "HoldingsCallback",
    "MarketDataSource",
    "OrderGateway",
    "RecommendationsCallback",
    "DEFAULT_RULES",
    "RSI_OVERBOUGHT",
    "RSI_OVERSOLD",
    "RULE_TABLE_VERSION",
    "Rule",
    "first_match",
]
