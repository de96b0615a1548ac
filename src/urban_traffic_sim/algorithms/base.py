"""
Contrato común de las estrategias de control de semáforos.

Una estrategia decide, cada vez que vence el temporizador de un semáforo,
cuál es la próxima fase y cuánto dura. Todas recorren el mismo ciclo de
cuatro fases; solo difieren en cómo calculan la duración del verde.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from ..simulator.traffic_light import LightState, PhaseChange, SignalPhase
from ..utils.config import SimulationConfig, TrafficLightConfig


# Ciclo de fases: siempre se avanza exactamente un paso
NEXT_PHASE = {
    SignalPhase.NS_GREEN_EW_RED: SignalPhase.NS_YELLOW_EW_RED,
    SignalPhase.NS_YELLOW_EW_RED: SignalPhase.NS_RED_EW_GREEN,
    SignalPhase.NS_RED_EW_GREEN: SignalPhase.NS_RED_EW_YELLOW,
    SignalPhase.NS_RED_EW_YELLOW: SignalPhase.NS_GREEN_EW_RED,
}


def next_phase(phase: Optional[SignalPhase]) -> SignalPhase:
    """Fase siguiente en el ciclo; sin fase previa se arranca en verde norte-sur."""
    if phase is None:
        return SignalPhase.NS_GREEN_EW_RED
    return NEXT_PHASE[phase]


def axis_queue(queue_sizes: Sequence[int], axis: Tuple[str, str]) -> int:
    """
    Cola representativa de un eje: la mayor de sus dos aproximaciones.

    Args:
        queue_sizes: Tamaños en orden norte, este, sur, oeste
        axis: Par de direcciones del eje

    Returns:
        int: Vehículos en la aproximación más cargada del eje
    """
    return max(queue_sizes[TrafficLightConfig.DIRECTIONS.index(d)] for d in axis)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def clamp_to_red_bounds(green: float, yellow: float, min_red: float, max_red: float) -> float:
    """
    Ajusta un verde para que el eje opuesto respete sus límites de rojo.

    El eje que pasa a rojo permanece en rojo durante verde + amarillo.
    """
    return clamp(green, min_red - yellow, max_red - yellow)


class SignalController(ABC):
    """
    Estrategia de control de un semáforo.

    Las subclases implementan yellow_time(), green_bounds() y
    green_duration(); el ciclo de fases, la fase inicial y el estado de la
    luz por dirección son comunes.
    """

    name = "base"

    def __init__(self, config: SimulationConfig):
        """
        Args:
            config: Configuración compartida (solo lectura)
        """
        self.config = config
        self.decisions_made = 0

    @abstractmethod
    def yellow_time(self) -> float:
        """Duración de las fases amarillas."""

    @abstractmethod
    def green_bounds(self) -> Tuple[float, float]:
        """Límites (mínimo, máximo) del verde de esta estrategia."""

    @abstractmethod
    def base_green(self, is_peak_hour: bool) -> float:
        """Verde de referencia, antes de mirar las colas."""

    @abstractmethod
    def green_duration(self, queue: int, is_peak_hour: bool) -> float:
        """
        Duración del verde para el eje que está por recibirlo.

        Args:
            queue: Cola del eje (mayor de sus dos aproximaciones)
            is_peak_hour: True si es hora pico
        """

    def initialize(self, signal):
        """
        Fija la fase inicial del semáforo según su dirección sugerida.

        Si la pista menciona este u oeste arranca en verde este-oeste; en
        cualquier otro caso arranca en verde norte-sur.
        """
        hint = (signal.initial_direction or "").lower()
        if "east" in hint or "west" in hint:
            phase = SignalPhase.NS_RED_EW_GREEN
        else:
            phase = SignalPhase.NS_GREEN_EW_RED

        lower, upper = self.green_bounds()
        duration = clamp(self.base_green(signal.peak_hour), lower, upper)
        signal.set_phase(phase, duration)

    def decide_next_phase(self, signal, delta_time: float, queue_sizes: Sequence[int],
                          is_peak_hour: bool) -> PhaseChange:
        """
        Decide la próxima fase cuando venció el temporizador.

        Args:
            signal: Semáforo que consulta
            delta_time: Paso de tiempo de la simulación
            queue_sizes: Colas en orden norte, este, sur, oeste
            is_peak_hour: True si es hora pico

        Returns:
            PhaseChange: Fase a la que se entra y su duración
        """
        upcoming = next_phase(signal.current_phase)
        self.decisions_made += 1

        if upcoming.is_yellow:
            return PhaseChange(upcoming, self.yellow_time())

        queue = axis_queue(queue_sizes, upcoming.active_axis)
        return PhaseChange(upcoming, self.green_duration(queue, is_peak_hour))

    def state_for_approach(self, signal, direction: Optional[str]) -> LightState:
        """
        Estado de la luz para una dirección de aproximación.

        Una dirección desconocida (o None) se trata como roja.
        """
        if not direction or signal.current_phase is None:
            return LightState.RED

        direction = direction.lower()
        if direction not in TrafficLightConfig.DIRECTIONS:
            return LightState.RED

        phase = signal.current_phase
        if direction in phase.active_axis:
            return LightState.YELLOW if phase.is_yellow else LightState.GREEN
        return LightState.RED

    def __repr__(self) -> str:
        return f"{type(self).__name__}(decisions={self.decisions_made})"
