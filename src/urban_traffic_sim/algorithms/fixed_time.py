"""
Estrategia de tiempos fijos.

Baseline de comparación: los tiempos no dependen de las colas, solo de si
es hora pico.
"""

from typing import Tuple

from .base import SignalController


class FixedTimeController(SignalController):
    """Verde y amarillo constantes, con un extra de verde en hora pico."""

    name = "fixed"

    def yellow_time(self) -> float:
        return self.config.fixed_yellow_time

    def green_bounds(self) -> Tuple[float, float]:
        green = self.config.fixed_green_time
        return green, green + self.config.fixed_peak_bonus

    def base_green(self, is_peak_hour: bool) -> float:
        if is_peak_hour:
            return self.config.fixed_green_time + self.config.fixed_peak_bonus
        return self.config.fixed_green_time

    def green_duration(self, queue: int, is_peak_hour: bool) -> float:
        return self.base_green(is_peak_hour)
