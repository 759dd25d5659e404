"""Learning module: pattern mining and next-command suggestions."""

from cmdpal.learning.miner import (
    PatternMiner,
    SequenceObservation,
    calculate_confidence,
    calculate_recency_factor,
    mine_sequences,
)
from cmdpal.learning.suggestions import match_next_commands, rank_suggestions

__all__ = [
    # Mining
    "PatternMiner",
    "SequenceObservation",
    "calculate_confidence",
    "calculate_recency_factor",
    "mine_sequences",
    # Suggestions
    "match_next_commands",
    "rank_suggestions",
]
