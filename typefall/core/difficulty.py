from __future__ import annotations

from dataclasses import dataclass

from typefall.api.models import DURATION_CHOICES, Difficulty, GameMode


MIN_SPAWN_RATE_MS = 500


class InvalidSettingError(ValueError):
    """Raised when a difficulty / duration / mode value is not recognized."""


@dataclass(frozen=True, slots=True)
class DifficultyProfile:
    base_speed: float
    speed_increment: float
    base_spawn_interval_ms: int
    spawn_decrement_ms: int


PROFILES: dict[Difficulty, DifficultyProfile] = {
    Difficulty.easy: DifficultyProfile(base_speed=1.5, speed_increment=0.1, base_spawn_interval_ms=2500, spawn_decrement_ms=50),
    Difficulty.medium: DifficultyProfile(base_speed=2.5, speed_increment=0.15, base_spawn_interval_ms=2000, spawn_decrement_ms=75),
    Difficulty.hard: DifficultyProfile(base_speed=4.0, speed_increment=0.2, base_spawn_interval_ms=1500, spawn_decrement_ms=100),
}


def parse_difficulty(value: Difficulty | str) -> Difficulty:
    try:
        return Difficulty(str(value).strip().casefold())
    except ValueError as e:
        allowed = ",".join(d.value for d in Difficulty)
        raise InvalidSettingError(f"Unknown difficulty '{value}' (allowed: {allowed})") from e


def parse_mode(value: GameMode | str) -> GameMode:
    try:
        return GameMode(str(value).strip().casefold())
    except ValueError as e:
        allowed = ",".join(m.value for m in GameMode)
        raise InvalidSettingError(f"Unknown mode '{value}' (allowed: {allowed})") from e


def parse_duration(value: int) -> int:
    if isinstance(value, bool) or value not in DURATION_CHOICES:
        allowed = ",".join(str(d) for d in DURATION_CHOICES)
        raise InvalidSettingError(f"Unsupported duration '{value}' (allowed: {allowed})")
    return int(value)


def profile_for(difficulty: Difficulty | str) -> DifficultyProfile:
    return PROFILES[parse_difficulty(difficulty)]


def word_speed(difficulty: Difficulty | str, level: int) -> float:
    p = profile_for(difficulty)
    return p.base_speed + (max(level, 1) - 1) * p.speed_increment


def spawn_interval_ms(difficulty: Difficulty | str, level: int) -> int:
    p = profile_for(difficulty)
    return max(MIN_SPAWN_RATE_MS, p.base_spawn_interval_ms - (max(level, 1) - 1) * p.spawn_decrement_ms)
