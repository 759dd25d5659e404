"""Next-command prediction from mined patterns.

A pattern predicts a next command when the tail of the user's recent
commands equals a prefix of the pattern's sequence; the command right
after that prefix is the prediction. Each distinct predicted command keeps
the best-scoring pattern that produced it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from cmdpal.store.models import CommandPattern, PatternSuggestion


def match_next_commands(
    pattern: CommandPattern,
    last_commands: Sequence[str],
) -> list[str]:
    """Commands ``pattern`` predicts after ``last_commands``.

    Tries every window W from 1 up to ``min(len(last_commands),
    len(sequence) - 1)``; the last W recent commands must equal the first
    W commands of the pattern, and ``sequence[W]`` is then predicted.
    """
    sequence = pattern.command_sequence
    predictions: list[str] = []
    for window in range(1, min(len(last_commands), len(sequence) - 1) + 1):
        if list(sequence[:window]) == list(last_commands[-window:]):
            predictions.append(sequence[window])
    return predictions


def rank_suggestions(
    patterns: Iterable[CommandPattern],
    last_commands: Sequence[str],
    limit: int,
) -> list[PatternSuggestion]:
    """Rank predicted next commands by their best pattern's confidence.

    Args:
        patterns: Candidate patterns, highest confidence first. On equal
            confidence the first pattern to predict a command wins.
        last_commands: Recent commands, oldest first.
        limit: Maximum number of suggestions.

    Returns:
        One suggestion per distinct command, confidence descending.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    if not last_commands:
        return []

    best: dict[str, PatternSuggestion] = {}
    for pattern in patterns:
        for next_command in match_next_commands(pattern, last_commands):
            current = best.get(next_command)
            if current is None or pattern.confidence > current.confidence:
                best[next_command] = PatternSuggestion(
                    next_command=next_command,
                    confidence=pattern.confidence,
                    pattern_frequency=pattern.frequency,
                    context=pattern.pattern_id,
                )

    ranked = sorted(best.values(), key=lambda s: s.confidence, reverse=True)
    return ranked[:limit]
