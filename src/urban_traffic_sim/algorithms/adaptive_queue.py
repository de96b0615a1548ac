"""
Estrategia adaptativa por tamaño de cola.

El verde crece linealmente con la cola del eje que lo recibe por encima
de un umbral, y se acorta cuando no hay nadie esperando fuera de hora
pico. El resultado siempre queda dentro de [min_green, max_green].
"""

from typing import Tuple

from .base import SignalController, clamp, clamp_to_red_bounds

# Multiplicadores del verde base
PEAK_FACTOR = 1.5
EMPTY_QUEUE_FACTOR = 0.6


class AdaptiveQueueController(SignalController):
    """
    Controlador que ajusta el verde según la cola.

    Fórmula:
        base = base_green * 1.5 en hora pico
        cola vacía fuera de pico: max(min_green, base * 0.6)
        cola > umbral: base + incremento * (cola - umbral)
    y luego se recorta a los límites de rojo del eje opuesto y, por último,
    a los límites de verde, con lo que la duración es monótona en la cola.
    """

    name = "adaptive"

    def yellow_time(self) -> float:
        return self.config.adaptive_yellow_time

    def green_bounds(self) -> Tuple[float, float]:
        return self.config.adaptive_min_green, self.config.adaptive_max_green

    def base_green(self, is_peak_hour: bool) -> float:
        base = self.config.adaptive_base_green
        return base * PEAK_FACTOR if is_peak_hour else base

    def green_duration(self, queue: int, is_peak_hour: bool) -> float:
        cfg = self.config
        base = self.base_green(is_peak_hour)

        if queue == 0 and not is_peak_hour:
            green = max(cfg.adaptive_min_green, base * EMPTY_QUEUE_FACTOR)
        elif queue > cfg.adaptive_queue_threshold:
            green = base + cfg.adaptive_increment * (queue - cfg.adaptive_queue_threshold)
        else:
            green = base

        green = clamp_to_red_bounds(green, cfg.adaptive_yellow_time,
                                    cfg.adaptive_min_red, cfg.adaptive_max_red)
        return clamp(green, cfg.adaptive_min_green, cfg.adaptive_max_green)
