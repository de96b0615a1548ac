"""
Generador de vehículos con origen y destino aleatorios.

Cada vehículo nace con una ruta ya calculada; si no se encuentra un par
origen-destino conectado en un número acotado de intentos, la generación
de ese vehículo se descarta sin error.
"""

import logging
import math
from typing import Dict, Optional

import numpy as np

from ..utils.config import SimulatorConfig
from .routing import RouteFinder
from .traffic_network import TrafficNetwork
from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class VehicleGenerator:
    """
    Genera vehículos sobre una red vial.

    Usa un numpy.random.Generator propio, de modo que con la misma semilla
    la secuencia de vehículos es la misma.
    """

    def __init__(self, network: TrafficNetwork, route_finder: Optional[RouteFinder] = None,
                 seed: Optional[int] = None):
        """
        Inicializa el generador.

        Args:
            network: Red vial
            route_finder: Buscador de rutas (se crea uno si es None)
            seed: Semilla para reproducibilidad (opcional)
        """
        self.network = network
        self.route_finder = route_finder or RouteFinder(network)

        self.random_seed = seed
        self.rng = np.random.default_rng(seed)

        # Estadísticas
        self.total_vehicles_generated = 0
        self.failed_attempts = 0
        self.failed_generations = 0

    def set_random_seed(self, seed: Optional[int]):
        """
        Establece semilla para reproducibilidad.

        Args:
            seed: Semilla para el generador aleatorio
        """
        self.random_seed = seed
        self.rng = np.random.default_rng(seed)

    def _pick_node(self, node_ids):
        return node_ids[int(self.rng.integers(len(node_ids)))]

    def generate_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        """
        Intenta generar un vehículo con una ruta válida.

        Args:
            vehicle_id: Identificador a asignar

        Returns:
            Vehicle o None si la red no permite generar uno
        """
        node_ids = self.network.get_all_node_ids()
        if len(node_ids) < 2:
            logger.warning("No se puede generar %s: la red tiene menos de 2 nodos", vehicle_id)
            self.failed_generations += 1
            return None

        for _ in range(SimulatorConfig.MAX_GENERATION_ATTEMPTS):
            origin = self._pick_node(node_ids)
            destination = self._pick_node(node_ids)

            retries = 0
            while destination == origin and retries < SimulatorConfig.MAX_DISTINCT_NODE_RETRIES:
                destination = self._pick_node(node_ids)
                retries += 1

            if destination == origin:
                self.failed_attempts += 1
                continue

            route = self.route_finder.find_route(origin, destination)
            if not route:
                self.failed_attempts += 1
                continue

            self.total_vehicles_generated += 1
            logger.debug("Generado %s: %s → %s (%d nodos)",
                         vehicle_id, origin, destination, len(route))
            return Vehicle(vehicle_id, origin, destination, route)

        self.failed_generations += 1
        logger.warning("No se encontró ruta para %s tras %d intentos",
                       vehicle_id, SimulatorConfig.MAX_GENERATION_ATTEMPTS)
        return None

    def expected_vehicle_count(self, delta_time: float, rate: float) -> int:
        """
        Cantidad de vehículos a generar en un paso.

        Redondeo probabilístico de delta_time * rate: la parte entera más
        un ensayo de Bernoulli sobre la fracción, con lo que el promedio a
        largo plazo es exactamente rate vehículos por segundo.

        Args:
            delta_time: Paso de tiempo (segundos)
            rate: Vehículos por segundo

        Returns:
            int: Vehículos a generar en este paso
        """
        expected = delta_time * rate
        if expected <= 0:
            return 0
        whole = math.floor(expected)
        fraction = expected - whole
        if fraction > 0 and self.rng.random() < fraction:
            whole += 1
        return int(whole)

    def get_spawn_statistics(self) -> Dict:
        """
        Retorna estadísticas de generación.

        Returns:
            dict: Estadísticas de vehículos generados
        """
        return {
            'total_generated': self.total_vehicles_generated,
            'failed_attempts': self.failed_attempts,
            'failed_generations': self.failed_generations,
            'routes_computed': self.route_finder.routes_computed,
            'random_seed': self.random_seed
        }

    def reset(self):
        """Reinicia contadores y la secuencia aleatoria."""
        self.total_vehicles_generated = 0
        self.failed_attempts = 0
        self.failed_generations = 0
        self.set_random_seed(self.random_seed)
