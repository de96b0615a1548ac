"""
Modelo de vehículo que recorre una ruta nodo a nodo.

Este módulo implementa un vehículo individual: su ruta precalculada, su
posición fraccionaria sobre la arista que está recorriendo, y los
acumuladores de tiempo de viaje, tiempo de espera y combustible.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..utils.config import SimulatorConfig


class VehicleState(Enum):
    """Estados posibles de un vehículo."""
    AT_NODE = "at_node"      # En un nodo, todavía no partió
    MOVING = "moving"        # Recorriendo una arista
    WAITING = "waiting"      # En la cola de un semáforo
    ARRIVED = "arrived"      # Llegó a destino


class Vehicle:
    """
    Representa un vehículo individual en la simulación.

    La posición es la fracción recorrida (en [0, 1)) de la arista entre el
    nodo actual y el siguiente de la ruta; 0 significa que está parado en
    el nodo actual. Los acumuladores solo crecen.
    """

    def __init__(self, vehicle_id: str, origin: str, destination: str, route: List[str]):
        """
        Inicializa un vehículo.

        Args:
            vehicle_id: Identificador ("V1", "V2", ...)
            origin: ID del nodo de origen
            destination: ID del nodo de destino
            route: IDs de nodos desde origen hasta destino (inclusive)
        """
        self.id = vehicle_id
        self.origin = origin
        self.destination = destination
        self.route = list(route)

        # Ubicación
        self.current_node = origin
        self.position = 0.0
        self._route_index = 0

        # Acumuladores
        self.travel_time = 0.0
        self.wait_time = 0.0
        self.fuel_consumed = 0.0

        # Consumo (litros por segundo)
        self.fuel_rate_moving = SimulatorConfig.FUEL_RATE_MOVING
        self.fuel_rate_idle = SimulatorConfig.FUEL_RATE_IDLE

        # Cola de semáforo en la que espera: (nodo, dirección) o None
        self.queued_at: Optional[Tuple[str, str]] = None

        self.state = VehicleState.AT_NODE

    def next_node(self) -> Optional[str]:
        """Nodo siguiente de la ruta, o None si ya está en el último."""
        if self._route_index + 1 < len(self.route):
            return self.route[self._route_index + 1]
        return None

    def increment_travel_time(self, dt: float):
        if dt > 0:
            self.travel_time += dt

    def increment_wait_time(self, dt: float):
        if dt > 0:
            self.wait_time += dt

    def increment_fuel(self, dt: float, moving: bool):
        """
        Suma el consumo de un paso.

        Args:
            dt: Paso de tiempo (segundos)
            moving: True si avanzó sobre la arista en este paso
        """
        if dt <= 0:
            return
        rate = self.fuel_rate_moving if moving else self.fuel_rate_idle
        self.fuel_consumed += rate * dt

    def depart(self, advance: float):
        """Sale del nodo actual con un avance inicial sobre la arista."""
        self.queued_at = None
        self.position = max(0.0, advance)
        self.state = VehicleState.MOVING

    def advance(self, fraction: float):
        self.position += fraction

    def advance_to(self, node_id: str):
        """
        Llega al nodo siguiente de la ruta y queda parado en él.

        Args:
            node_id: ID del nodo alcanzado
        """
        self.current_node = node_id
        self.position = 0.0
        if self._route_index + 1 < len(self.route) and self.route[self._route_index + 1] == node_id:
            self._route_index += 1
        else:
            self._route_index = self.route.index(node_id, self._route_index)
        self.state = VehicleState.ARRIVED if self.has_arrived() else VehicleState.AT_NODE

    def mark_waiting(self, node_id: str, direction: str):
        self.queued_at = (node_id, direction)
        self.state = VehicleState.WAITING

    @property
    def is_queued(self) -> bool:
        return self.queued_at is not None

    def has_arrived(self) -> bool:
        """Llegó cuando está parado sobre el nodo destino."""
        return self.current_node == self.destination and self.position == 0.0

    def get_statistics(self) -> Dict:
        """
        Retorna estadísticas del viaje del vehículo.

        Returns:
            Dict: Diccionario con métricas del vehículo
        """
        return {
            'id': self.id,
            'origin': self.origin,
            'destination': self.destination,
            'route_length': len(self.route),
            'travel_time': self.travel_time,
            'wait_time': self.wait_time,
            'fuel_consumed': self.fuel_consumed,
            'arrived': self.has_arrived()
        }

    def __str__(self) -> str:
        return f"Vehicle({self.id}, {self.current_node}→{self.next_node()}, {self.position:.2f})"

    def __repr__(self) -> str:
        return (f"Vehicle(id='{self.id}', route={self.origin}→{self.destination}, "
                f"node={self.current_node}, pos={self.position:.2f}, "
                f"state={self.state.value})")
