"""
Estrategia de ahorro de energía.

Con poco tráfico fuera de hora pico usa el verde mínimo, para que los
vehículos detenidos en el eje opuesto no consuman en ralentí. Con cola,
el verde crece con un incremento pequeño y nunca supera energy_max_green.
"""

from typing import Tuple

from .base import SignalController, clamp_to_red_bounds

PEAK_EXTRA_GREEN = 2.0


class EnergySavingController(SignalController):
    """Controlador que prioriza verdes cortos con poco tráfico."""

    name = "energy"

    def yellow_time(self) -> float:
        return self.config.energy_yellow_time

    def green_bounds(self) -> Tuple[float, float]:
        return self.config.energy_min_green, self.config.energy_max_green

    def base_green(self, is_peak_hour: bool) -> float:
        base = self.config.energy_base_green
        return base + PEAK_EXTRA_GREEN if is_peak_hour else base

    def green_duration(self, queue: int, is_peak_hour: bool) -> float:
        cfg = self.config

        if queue <= cfg.energy_low_traffic_threshold and not is_peak_hour:
            green = cfg.energy_min_green
        else:
            base = self.base_green(is_peak_hour)
            green = base + cfg.energy_increment * (queue - cfg.energy_low_traffic_threshold)

        green = clamp_to_red_bounds(green, cfg.energy_yellow_time,
                                    cfg.energy_min_red, cfg.energy_max_red)
        green = max(green, cfg.energy_min_green)
        # El techo se aplica al final: manda sobre los límites de rojo
        return min(green, cfg.energy_max_green)
