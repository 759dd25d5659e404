"""Command sequence mining and confidence scoring.

Discovers recurring command sequences in a chronological invocation list:

1. Slide a window of every width in [min_len, max_len] across the list.
2. Key each window by its ``" -> "``-joined command ids, so identical
   sequences collide and accumulate the gaps between their commands.
3. Turn the accumulated gaps back into an occurrence count and drop
   sequences seen fewer than ``min_pattern_frequency`` times.
4. Score each survivor by blending frequency (saturating at 20
   occurrences) with recency (decaying over ~30 days).

Everything here is pure: the store loads the invocations and persists the
resulting CommandPattern rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from cmdpal.core.config import MiningConfig
from cmdpal.core.logging import get_logger
from cmdpal.store.models import CommandPattern
from cmdpal.utils.time import format_timestamp, parse_timestamp, utc_now

_logger = get_logger("learning.miner")


@dataclass
class SequenceObservation:
    """Evidence accumulated for one distinct command sequence."""

    sequence: list[str]
    time_diffs: list[float] = field(default_factory=list)
    """Gaps in seconds between consecutive commands, across all occurrences."""

    last_seen: str = ""
    """Latest timestamp of an occurrence's final command."""

    @property
    def frequency(self) -> int:
        """Occurrence count recovered from the number of gap samples."""
        return len(self.time_diffs) // max(len(self.sequence) - 1, 1)

    @property
    def avg_time_between_commands(self) -> float | None:
        if not self.time_diffs:
            return None
        return sum(self.time_diffs) / len(self.time_diffs)


def mine_sequences(
    commands: Sequence[tuple[str, str]],
    min_len: int,
    max_len: int,
) -> dict[str, SequenceObservation]:
    """Accumulate every window of width ``min_len..max_len``.

    Args:
        commands: (command_id, timestamp) pairs in chronological order.
        min_len: Shortest window width.
        max_len: Longest window width (inclusive).

    Returns:
        Mapping of pattern_id to its accumulated observation. Gaps whose
        timestamps do not parse are skipped rather than counted as zero.
    """
    observations: dict[str, SequenceObservation] = {}
    parsed = [parse_timestamp(ts) for _, ts in commands]

    for seq_len in range(min_len, max_len + 1):
        for start in range(len(commands) - seq_len + 1):
            window = commands[start:start + seq_len]
            sequence = [command_id for command_id, _ in window]
            pattern_id = CommandPattern.make_pattern_id(sequence)

            obs = observations.get(pattern_id)
            if obs is None:
                obs = SequenceObservation(sequence=sequence)
                observations[pattern_id] = obs

            for offset in range(seq_len - 1):
                earlier = parsed[start + offset]
                later = parsed[start + offset + 1]
                if earlier is None or later is None:
                    continue
                obs.time_diffs.append((later - earlier).total_seconds())

            window_end = window[-1][1]
            if window_end > obs.last_seen:
                obs.last_seen = window_end

    return observations


def calculate_recency_factor(
    last_seen: str,
    now: datetime,
    config: MiningConfig | None = None,
) -> float:
    """Recency weight in [recency_floor, 1.0].

    ``1 / (1 + days / 30)`` over whole elapsed days, so a pattern seen today
    scores 1.0 and one last seen 30 days ago scores 0.5. Unparsable
    timestamps get ``unparsable_recency`` (0.5).
    """
    config = config or MiningConfig()
    last_time = parse_timestamp(last_seen)
    if last_time is None:
        _logger.debug("unparsable_last_seen", last_seen=last_seen)
        return config.unparsable_recency

    # Clock skew can put last_seen in the future; treat that as "today"
    days_ago = max((now - last_time).days, 0)
    factor = 1.0 / (1.0 + days_ago / config.recency_decay_days)
    return min(max(factor, config.recency_floor), 1.0)


def calculate_confidence(
    frequency: int,
    recency_factor: float,
    config: MiningConfig | None = None,
) -> float:
    """Blend frequency and recency into a confidence in [0, 1].

    With defaults: ``min(0.7 * min(frequency / 20, 1) + 0.3 * recency, 1)``.
    """
    config = config or MiningConfig()
    frequency_factor = min(frequency / config.frequency_saturation, 1.0)
    weight = config.frequency_weight
    return min(frequency_factor * weight + recency_factor * (1.0 - weight), 1.0)


class PatternMiner:
    """Turns a chronological invocation list into scored CommandPatterns."""

    def __init__(self, config: MiningConfig | None = None) -> None:
        self.config = config or MiningConfig()

    def mine(
        self,
        commands: Sequence[tuple[str, str]],
        min_len: int,
        max_len: int,
        now: datetime | None = None,
    ) -> list[CommandPattern]:
        """Discover and score recurring sequences.

        Args:
            commands: (command_id, timestamp) pairs, oldest first.
            min_len: Shortest sequence length (>= 2).
            max_len: Longest sequence length (>= min_len).
            now: Scoring instant. Defaults to the current UTC time; it also
                becomes each pattern's ``last_seen``.

        Returns:
            Patterns sorted by confidence, then frequency, descending.

        Raises:
            ValueError: If the length bounds are invalid.
        """
        if min_len < 2:
            raise ValueError(f"min_len must be at least 2, got {min_len}")
        if max_len < min_len:
            raise ValueError(
                f"max_len ({max_len}) must not be less than min_len ({min_len})"
            )
        if len(commands) < min_len:
            return []

        now = now or utc_now()
        stamp = format_timestamp(now)
        patterns: list[CommandPattern] = []

        for pattern_id, obs in mine_sequences(commands, min_len, max_len).items():
            frequency = obs.frequency
            if frequency < self.config.min_pattern_frequency:
                continue

            recency = calculate_recency_factor(obs.last_seen, now, self.config)
            patterns.append(
                CommandPattern(
                    pattern_id=pattern_id,
                    command_sequence=obs.sequence,
                    frequency=frequency,
                    confidence=calculate_confidence(frequency, recency, self.config),
                    last_seen=stamp,
                    avg_time_between_commands=obs.avg_time_between_commands,
                )
            )

        patterns.sort(key=lambda p: (-p.confidence, -p.frequency, p.pattern_id))
        return patterns
