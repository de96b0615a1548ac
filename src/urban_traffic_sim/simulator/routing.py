"""
Cálculo de rutas más cortas por tiempo de viaje.

Implementa Dijkstra con selección lineal del nodo más cercano (sin heap).
Las distancias se manejan en centésimas de segundo enteras para evitar
comparaciones de punto flotante.
"""

import math
from typing import Dict, List

from .traffic_network import TrafficNetwork

# Escala de tiempo de viaje a unidades enteras
TIME_SCALE = 100


class RouteFinder:
    """
    Buscador de rutas sobre una TrafficNetwork.

    La selección del próximo nodo recorre todos los nodos no visitados con
    distancia conocida. Ante empates gana el nodo que entró primero al
    conjunto de candidatos (orden de inserción del diccionario), lo que
    hace el resultado determinista.
    """

    def __init__(self, network: TrafficNetwork):
        """
        Args:
            network: Red vial sobre la que se calculan rutas
        """
        self.network = network
        self.routes_computed = 0

    def find_route(self, origin: str, destination: str) -> List[str]:
        """
        Calcula la ruta más rápida entre dos nodos.

        Args:
            origin: ID del nodo de origen
            destination: ID del nodo de destino

        Returns:
            Lista de IDs desde origen hasta destino (inclusive), o lista
            vacía si no hay ruta
        """
        if not self.network.contains_node(origin) or not self.network.contains_node(destination):
            return []

        self.routes_computed += 1

        if origin == destination:
            return [origin]

        distances: Dict[str, int] = {origin: 0}
        previous: Dict[str, str] = {}
        visited = set()
        # Candidatos: no visitados con distancia finita conocida
        frontier: Dict[str, int] = {origin: 0}

        while frontier:
            current = self._closest_unvisited(frontier)
            if current == destination:
                break

            del frontier[current]
            visited.add(current)

            node = self.network.get_node(current)
            for edge in node.edges:
                neighbor = edge.target
                if neighbor in visited:
                    continue
                if edge.travel_time <= 0 or edge.travel_time == math.inf:
                    continue

                new_distance = distances[current] + int(edge.travel_time * TIME_SCALE)
                if new_distance < distances.get(neighbor, math.inf):
                    distances[neighbor] = new_distance
                    previous[neighbor] = current
                    frontier[neighbor] = new_distance

        if destination not in previous:
            return []

        return self._build_path(previous, origin, destination)

    @staticmethod
    def _closest_unvisited(frontier: Dict[str, int]) -> str:
        closest = None
        min_distance = math.inf
        for node_id, distance in frontier.items():
            if distance < min_distance:
                min_distance = distance
                closest = node_id
        return closest

    @staticmethod
    def _build_path(previous: Dict[str, str], origin: str, destination: str) -> List[str]:
        path = [destination]
        current = destination
        while current != origin:
            current = previous.get(current)
            if current is None:
                return []
            path.append(current)
        path.reverse()
        return path
