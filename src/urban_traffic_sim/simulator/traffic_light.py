"""
Modelo de semáforo como máquina de estados de cuatro fases.

Este módulo implementa el semáforo de una intersección: la fase actual,
el temporizador de fase, las colas de vehículos por dirección de
aproximación, y la delegación de las decisiones a una estrategia de
control (ver el paquete algorithms).
"""

import logging
import math
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from ..utils.config import SimulationConfig, TrafficLightConfig

logger = logging.getLogger(__name__)


class LightState(Enum):
    """Estados posibles de una luz para una dirección."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class SignalPhase(Enum):
    """
    Fases del semáforo.

    En toda fase exactamente un eje (norte-sur o este-oeste) está en verde
    o amarillo; el otro está en rojo.
    """
    NS_GREEN_EW_RED = "ns_green_ew_red"
    NS_YELLOW_EW_RED = "ns_yellow_ew_red"
    NS_RED_EW_GREEN = "ns_red_ew_green"
    NS_RED_EW_YELLOW = "ns_red_ew_yellow"

    @property
    def active_axis(self) -> Tuple[str, str]:
        """Direcciones del eje que tiene verde o amarillo."""
        if self in (SignalPhase.NS_GREEN_EW_RED, SignalPhase.NS_YELLOW_EW_RED):
            return TrafficLightConfig.NORTH_SOUTH
        return TrafficLightConfig.EAST_WEST

    @property
    def is_yellow(self) -> bool:
        return self in (SignalPhase.NS_YELLOW_EW_RED, SignalPhase.NS_RED_EW_YELLOW)


@dataclass(frozen=True)
class PhaseChange:
    """Decisión de una estrategia: próxima fase y su duración en segundos."""
    next_phase: SignalPhase
    duration: float


class VehicleQueue:
    """Cola FIFO de vehículos esperando en una dirección de aproximación."""

    def __init__(self):
        self._items: Deque = deque()

    def enqueue(self, vehicle):
        self._items.append(vehicle)

    def dequeue(self):
        """Retira y retorna el primer vehículo, o None si está vacía."""
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self):
        return self._items[0] if self._items else None

    def remove(self, vehicle) -> bool:
        """
        Remueve un vehículo concreto de la cola.

        Returns:
            bool: True si el vehículo estaba en la cola
        """
        if self._items and self._items[0] is vehicle:
            self._items.popleft()
            return True
        try:
            self._items.remove(vehicle)
        except ValueError:
            return False
        return True

    def clear(self):
        self._items.clear()

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, vehicle) -> bool:
        return vehicle in self._items

    def __iter__(self):
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"VehicleQueue(size={len(self._items)})"


class TrafficSignal:
    """
    Semáforo de una intersección.

    Posee una cola por dirección (norte, este, sur, oeste) y delega en su
    estrategia de control la elección de la próxima fase y su duración.
    El motor de simulación es el único que lo modifica; los getters de
    fase y de tamaño de colas pueden llamarse desde otro hilo.
    """

    def __init__(self, node_id: str, direction_hint: str, config: SimulationConfig,
                 controller=None):
        """
        Inicializa un semáforo.

        Args:
            node_id: ID del nodo que controla
            direction_hint: Dirección de aproximación inicial sugerida por la red
            config: Configuración compartida (solo lectura)
            controller: Estrategia de control; si es None se crea según
                        config.signal_mode
        """
        self.node_id = node_id
        self.initial_direction = (direction_hint or TrafficLightConfig.UNKNOWN_DIRECTION).lower()
        self.config = config
        self.peak_hour = config.peak_hour

        self.current_phase: Optional[SignalPhase] = None
        self.phase_timer = 0.0

        self._queues: Dict[str, VehicleQueue] = {
            direction: VehicleQueue() for direction in TrafficLightConfig.DIRECTIONS
        }
        self._lock = threading.Lock()

        # Estadísticas
        self.phase_changes = 0
        self.phase_history: Deque[Tuple[SignalPhase, float]] = deque(
            maxlen=TrafficLightConfig.PHASE_HISTORY_SIZE
        )

        if controller is None:
            from ..algorithms import create_controller
            controller = create_controller(config)
        self.controller = controller

        if self.controller is not None:
            self.controller.initialize(self)

        if self.current_phase is None:
            # La estrategia debe fijar la fase inicial; si no lo hizo, usar un valor seguro
            logger.warning("Semáforo %s sin fase inicial, usando fase por defecto", node_id)
            self._apply_fallback()

    def set_phase(self, phase: SignalPhase, duration: float):
        """
        Fija la fase actual y su duración.

        Args:
            phase: Nueva fase
            duration: Segundos que dura la fase
        """
        self.current_phase = phase
        self.phase_timer = duration
        self.phase_history.append((phase, duration))
        logger.debug("Semáforo %s → %s (%.1fs)", self.node_id, phase.name, duration)

    def _apply_fallback(self):
        self.set_phase(SignalPhase.NS_GREEN_EW_RED, self.config.fixed_green_time)

    def update(self, delta_time: float, is_peak_hour: bool):
        """
        Avanza el temporizador de fase y, si expiró, consulta la estrategia.

        Args:
            delta_time: Paso de tiempo (segundos)
            is_peak_hour: True si es hora pico
        """
        self.peak_hour = is_peak_hour
        self.phase_timer -= delta_time

        if self.phase_timer > 0:
            return

        if self.controller is None:
            logger.warning("Semáforo %s sin estrategia, aplicando fase por defecto", self.node_id)
            self._apply_fallback()
            self.phase_changes += 1
            return

        decision = self.controller.decide_next_phase(
            self, delta_time, self.get_all_queue_sizes(), is_peak_hour
        )

        if not self._is_usable(decision):
            logger.warning("Semáforo %s: decisión inválida %r, aplicando fase por defecto",
                           self.node_id, decision)
            self._apply_fallback()
        else:
            self.set_phase(decision.next_phase, decision.duration)
        self.phase_changes += 1

    @staticmethod
    def _is_usable(decision: Optional[PhaseChange]) -> bool:
        """Una fase de duración 0 es válida: vence en el paso siguiente."""
        if decision is None or decision.next_phase is None:
            return False
        try:
            duration = float(decision.duration)
        except (TypeError, ValueError):
            return False
        return math.isfinite(duration) and duration >= 0

    def state_for_approach(self, direction: Optional[str]) -> LightState:
        """
        Retorna el estado de la luz para una dirección de aproximación.

        Args:
            direction: "north", "east", "south" o "west"

        Returns:
            LightState: Estado de la luz (RED si la dirección es desconocida)
        """
        if self.controller is None:
            return LightState.RED
        return self.controller.state_for_approach(self, direction)

    def can_vehicle_pass(self, direction: Optional[str]) -> bool:
        """Un vehículo solo puede salir con luz verde."""
        return self.state_for_approach(direction) == LightState.GREEN

    def add_vehicle_to_queue(self, direction: str, vehicle) -> bool:
        """
        Agrega un vehículo al final de la cola de una dirección.

        Returns:
            bool: False si la dirección no existe
        """
        queue = self._queues.get((direction or "").lower())
        if queue is None:
            return False
        with self._lock:
            queue.enqueue(vehicle)
        return True

    def pop_vehicle_from_queue(self, direction: str):
        """Retira el primer vehículo de la cola de una dirección (o None)."""
        queue = self._queues.get((direction or "").lower())
        if queue is None:
            return None
        with self._lock:
            return queue.dequeue()

    def remove_vehicle_from_queue(self, direction: str, vehicle) -> bool:
        """Remueve un vehículo concreto de la cola de una dirección."""
        queue = self._queues.get((direction or "").lower())
        if queue is None:
            return False
        with self._lock:
            return queue.remove(vehicle)

    def get_queue_length(self, direction: str) -> int:
        queue = self._queues.get((direction or "").lower())
        if queue is None:
            return 0
        with self._lock:
            return len(queue)

    def get_all_queue_sizes(self) -> Tuple[int, int, int, int]:
        """
        Retorna el tamaño de las cuatro colas en orden norte, este, sur, oeste.
        """
        with self._lock:
            return tuple(len(self._queues[d]) for d in TrafficLightConfig.DIRECTIONS)

    def get_total_vehicles_in_queues(self) -> int:
        """Total de vehículos esperando en el semáforo."""
        with self._lock:
            return sum(len(queue) for queue in self._queues.values())

    def get_queued_vehicles(self, direction: str) -> List:
        """Copia de la cola de una dirección, del primero al último."""
        queue = self._queues.get((direction or "").lower())
        if queue is None:
            return []
        with self._lock:
            return list(queue)

    def clear_queues(self):
        with self._lock:
            for queue in self._queues.values():
                queue.clear()

    def get_status_string(self) -> str:
        """
        Retorna una representación legible del estado actual.

        Returns:
            str: String con estado formateado
        """
        phase = self.current_phase.name if self.current_phase else "INDEFINIDA"
        sizes = self.get_all_queue_sizes()
        return (f"Semáforo {self.node_id} | Fase: {phase} | "
                f"Restante: {self.phase_timer:.1f}s | "
                f"Colas N/E/S/O: {sizes[0]}/{sizes[1]}/{sizes[2]}/{sizes[3]}")

    def __str__(self) -> str:
        return f"TrafficSignal({self.node_id}, {self.current_phase.name if self.current_phase else None})"

    def __repr__(self) -> str:
        return (f"TrafficSignal(node='{self.node_id}', "
                f"phase={self.current_phase.name if self.current_phase else None}, "
                f"timer={self.phase_timer:.1f}s, "
                f"controller={type(self.controller).__name__})")
