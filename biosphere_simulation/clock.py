from __future__ import annotations

import logging
import math
from enum import Enum

from .config import ClockConfig

logger = logging.getLogger(__name__)


class TimeOfDay(str, Enum):
    NIGHT = "night"
    DAWN = "dawn"
    MORNING = "morning"
    NOON = "noon"
    AFTERNOON = "afternoon"
    SUNSET = "sunset"
    DUSK = "dusk"


def _lerp(a: float, b: float, t: float) -> float:
    t = max(0.0, min(1.0, t))
    return a + (b - a) * t


def _progress(h: float, start: float, end: float) -> float:
    span = end - start
    if span <= 0:
        return 1.0
    return (h - start) / span


class EnvironmentClock:
    """
    Day/night driver for the whole simulation.

    A day is ``cycle_seconds`` long and is tracked as a fraction ``time01`` in
    [0, 1). From the clock hour derived from it the clock answers the phase of
    day, the air temperature, the photosynthetic efficiency plants see and the
    ambient light level. The clock starts at sunrise on day 0.
    """

    NOON_HOUR = 12.0
    PHASE_WINDOW = 0.1  # hours either side of noon / sunset

    def __init__(self, config: ClockConfig | None = None) -> None:
        self.config = config or ClockConfig()
        cfg = self.config

        self.base_cycle_seconds = cfg.cycle_seconds
        self.cycle_seconds = cfg.cycle_seconds

        self.dawn_hour = cfg.dawn_hour
        self.sunrise_hour = cfg.sunrise_hour
        self.sunset_hour = cfg.sunset_hour
        self.dusk_hour = cfg.dusk_hour

        self.min_temperature = cfg.min_temperature
        self.max_temperature = cfg.max_temperature
        self.temperature_min_hour = cfg.temperature_min_hour
        self.temperature_peak_hour = cfg.temperature_peak_hour
        self.evening_hour = cfg.evening_hour

        self._validate()

        self.day = 0
        self.time01 = self.sunrise_hour / 24.0

    # ------------------------------------------------------------------ #
    # Configuration repair
    # ------------------------------------------------------------------ #
    def _validate(self) -> None:
        if self.sunset_hour <= self.sunrise_hour:
            corrected = min(self.sunrise_hour + 0.1, 23.999)
            logger.warning(
                "Sunset hour %.3f is not after sunrise %.3f; using %.3f",
                self.sunset_hour,
                self.sunrise_hour,
                corrected,
            )
            self.sunset_hour = corrected

        if self.dawn_hour > self.sunrise_hour:
            logger.warning("Dawn hour %.3f after sunrise; clamping to sunrise", self.dawn_hour)
            self.dawn_hour = self.sunrise_hour

        if self.dusk_hour < self.sunset_hour:
            logger.warning("Dusk hour %.3f before sunset; clamping to sunset", self.dusk_hour)
            self.dusk_hour = self.sunset_hour

        if self.temperature_peak_hour <= self.temperature_min_hour:
            corrected = min(self.temperature_min_hour + 0.1, 23.999)
            logger.warning(
                "Temperature peak hour %.3f is not after minimum hour %.3f; using %.3f",
                self.temperature_peak_hour,
                self.temperature_min_hour,
                corrected,
            )
            self.temperature_peak_hour = corrected

        if self.evening_hour <= self.temperature_peak_hour:
            corrected = min(self.temperature_peak_hour + 0.1, 23.999)
            logger.warning("Evening hour %.3f is not after peak hour; using %.3f", self.evening_hour, corrected)
            self.evening_hour = corrected

        if self.cycle_seconds <= 0:
            logger.warning("Cycle length %.3f s is not positive; clock will not advance", self.cycle_seconds)

    # ------------------------------------------------------------------ #
    # Time keeping
    # ------------------------------------------------------------------ #
    def advance(self, dt: float) -> None:
        if self.cycle_seconds <= 0 or dt <= 0:
            return
        self.time01 += dt / self.cycle_seconds
        while self.time01 >= 1.0:
            self.time01 -= 1.0
            self.day += 1
            logger.debug("Day %d begins", self.day)

    def set_speed(self, speed: float) -> None:
        """Shorten the day by ``speed`` (1 = base cycle length)."""
        if speed <= 0:
            logger.warning("Ignoring non-positive clock speed %r", speed)
            return
        self.cycle_seconds = self.base_cycle_seconds / speed

    def set_hour(self, hour: float) -> None:
        self.time01 = (hour % 24.0) / 24.0

    def restore(self, day: int, time01: float) -> None:
        self.day = max(0, int(day))
        self.time01 = float(time01) % 1.0

    @property
    def clock_hour(self) -> float:
        return self.time01 * 24.0

    @property
    def hours(self) -> int:
        return int(self.clock_hour)

    @property
    def minutes(self) -> int:
        return int((self.clock_hour - self.hours) * 60.0)

    # ------------------------------------------------------------------ #
    # Phase
    # ------------------------------------------------------------------ #
    def phase_at(self, h: float) -> TimeOfDay:
        if h >= self.dusk_hour or h < self.dawn_hour:
            return TimeOfDay.NIGHT
        if h < self.sunrise_hour:
            return TimeOfDay.DAWN
        if h < self.NOON_HOUR:
            return TimeOfDay.MORNING
        if abs(h - self.NOON_HOUR) < self.PHASE_WINDOW:
            return TimeOfDay.NOON
        if h < self.sunset_hour:
            return TimeOfDay.AFTERNOON
        if abs(h - self.sunset_hour) < self.PHASE_WINDOW:
            return TimeOfDay.SUNSET
        return TimeOfDay.DUSK

    @property
    def phase(self) -> TimeOfDay:
        return self.phase_at(self.clock_hour)

    @property
    def is_night(self) -> bool:
        return self.phase is TimeOfDay.NIGHT

    # ------------------------------------------------------------------ #
    # Temperature
    # ------------------------------------------------------------------ #
    def temperature_at(self, h: float) -> float:
        lo, hi = self.min_temperature, self.max_temperature
        if h >= self.evening_hour or h < self.temperature_min_hour:
            return lo
        if h < self.temperature_peak_hour:
            p = _progress(h, self.temperature_min_hour, self.temperature_peak_hour)
            return _lerp(lo, hi, math.sin(p * math.pi / 2.0))
        p = _progress(h, self.temperature_peak_hour, self.evening_hour)
        return _lerp(lo, hi, math.cos(p * math.pi / 2.0))

    @property
    def temperature(self) -> float:
        return self.temperature_at(self.clock_hour)

    # ------------------------------------------------------------------ #
    # Light
    # ------------------------------------------------------------------ #
    def efficiency_at(self, h: float) -> float:
        """Fraction of maximum photosynthesis available at clock hour ``h``."""
        phase = self.phase_at(h)
        if phase is TimeOfDay.NIGHT:
            return 0.0
        if phase is TimeOfDay.DAWN:
            return _lerp(0.0, 0.5, _progress(h, self.dawn_hour, self.sunrise_hour))
        if phase is TimeOfDay.MORNING:
            return _lerp(0.5, 1.0, _progress(h, self.sunrise_hour, self.NOON_HOUR))
        if phase is TimeOfDay.NOON:
            return 1.0
        if phase is TimeOfDay.AFTERNOON:
            return _lerp(1.0, 0.5, _progress(h, self.NOON_HOUR, self.sunset_hour))
        if phase is TimeOfDay.SUNSET:
            return 0.3
        return _lerp(0.3, 0.0, _progress(h, self.sunset_hour, self.dusk_hour))

    @property
    def photosynthetic_efficiency(self) -> float:
        return self.efficiency_at(self.clock_hour)

    def light_intensity_at(self, h: float) -> float:
        sun = self.config.sun_max_intensity
        moon = self.config.moon_intensity
        phase = self.phase_at(h)
        if phase is TimeOfDay.NIGHT:
            return moon
        if phase is TimeOfDay.DAWN:
            return _lerp(moon, 0.5 * sun, _progress(h, self.dawn_hour, self.sunrise_hour))
        if phase is TimeOfDay.MORNING:
            return _lerp(0.5 * sun, sun, _progress(h, self.sunrise_hour, self.NOON_HOUR))
        if phase is TimeOfDay.NOON:
            return sun
        if phase is TimeOfDay.AFTERNOON:
            return _lerp(sun, 0.5 * sun, _progress(h, self.NOON_HOUR, self.sunset_hour))
        if phase is TimeOfDay.SUNSET:
            return 0.3 * sun
        return _lerp(0.3 * sun, moon, _progress(h, self.sunset_hour, self.dusk_hour))

    @property
    def light_intensity(self) -> float:
        return self.light_intensity_at(self.clock_hour)

    def __repr__(self) -> str:
        return f"EnvironmentClock(day={self.day}, time={self.hours:02d}:{self.minutes:02d}, phase={self.phase.value})"


__all__ = ["EnvironmentClock", "TimeOfDay"]
