"""
Modelo de red vial como grafo dirigido.

Este módulo implementa la representación de la red de calles como un grafo
dirigido donde los nodos son intersecciones y las aristas son tramos de
calle. Las calles doble mano se materializan como dos aristas dirigidas.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import networkx as nx

from ..utils.config import TrafficLightConfig

logger = logging.getLogger(__name__)


def parse_bool(value: Any) -> bool:
    """Interpreta booleanos del archivo de red, incluidos "true"/"false" como texto."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


class Node:
    """
    Representa una intersección de la red vial.

    Guarda sus aristas salientes para iterar la adyacencia en O(1) por
    vecino. Es inmutable después de la carga, salvo `has_signal`.
    """

    def __init__(self, node_id: str, latitude: float, longitude: float,
                 has_signal: bool = False):
        """
        Inicializa un nodo.

        Args:
            node_id: Identificador único del nodo
            latitude: Latitud
            longitude: Longitud
            has_signal: True si la intersección tiene semáforo
        """
        self.id = node_id
        self.latitude = latitude
        self.longitude = longitude
        self.has_signal = has_signal
        self.edges: List["Edge"] = []

    def add_edge(self, edge: "Edge"):
        """Registra una arista saliente."""
        self.edges.append(edge)

    def __str__(self) -> str:
        return f"Node({self.id})"

    def __repr__(self) -> str:
        return (f"Node(id='{self.id}', coords=({self.latitude:.5f}, {self.longitude:.5f}), "
                f"signal={self.has_signal})")


class Edge:
    """
    Representa un tramo de calle dirigido entre dos nodos.

    El tiempo de viaje se deriva de la longitud y la velocidad máxima;
    un tramo sin velocidad válida tiene tiempo infinito y nunca se usa
    para rutear.
    """

    def __init__(self, edge_id: str, source: str, target: str, length: float,
                 maxspeed: float, oneway: bool = False):
        """
        Inicializa una arista.

        Args:
            edge_id: Identificador de la arista
            source: ID del nodo de origen
            target: ID del nodo de destino
            length: Longitud en metros
            maxspeed: Velocidad máxima en km/h
            oneway: True si la calle es de una sola mano
        """
        self.id = edge_id
        self.source = source
        self.target = target
        self.length = length
        self.maxspeed = maxspeed
        self.oneway = oneway

        if maxspeed > 0:
            self.travel_time = length / (maxspeed * 1000.0 / 3600.0)
        else:
            self.travel_time = math.inf

        self.capacity = int(maxspeed / 10)

    def is_traversable(self) -> bool:
        """True si la arista puede usarse en una ruta."""
        return 0 < self.travel_time < math.inf

    def __str__(self) -> str:
        return f"Edge({self.source} → {self.target}, {self.length}m)"

    def __repr__(self) -> str:
        return (f"Edge(id='{self.id}', from='{self.source}', to='{self.target}', "
                f"length={self.length}m, maxspeed={self.maxspeed}km/h)")


class SignalSpec:
    """Semáforo declarado en la red, pendiente de crear por el simulador."""

    def __init__(self, node_id: str, direction_hint: str = TrafficLightConfig.UNKNOWN_DIRECTION):
        self.node_id = node_id
        self.direction_hint = (direction_hint or TrafficLightConfig.UNKNOWN_DIRECTION).lower()

    def __repr__(self) -> str:
        return f"SignalSpec(node='{self.node_id}', direction='{self.direction_hint}')"


class TrafficNetwork:
    """
    Representa la red vial completa como un grafo dirigido G = (V, E).

    Mantiene los nodos en orden de inserción, la lista de aristas, los
    semáforos declarados, y un espejo networkx para consultas de topología.
    """

    def __init__(self, network_file: Optional[str] = None):
        """
        Inicializa la red vial.

        Args:
            network_file: Ruta al archivo JSON con datos de la red.
                          Si es None, crea una red vacía.
        """
        self.graph = nx.DiGraph()
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self.signal_specs: List[SignalSpec] = []

        self.network_name = ""

        if network_file:
            self.load_from_file(network_file)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str = "") -> "TrafficNetwork":
        """
        Construye la red desde un documento con `nodes`, `edges` y
        `traffic_lights` opcionales.

        Args:
            data: Documento de la red
            name: Nombre descriptivo de la red

        Returns:
            TrafficNetwork: Red construida
        """
        network = cls()
        network.network_name = name or data.get("name", "")
        network._load_data(data)
        return network

    def load_from_file(self, filepath: str):
        """
        Carga la red desde un archivo JSON.

        Args:
            filepath: Ruta al archivo JSON con la definición de la red

        Raises:
            FileNotFoundError: Si el archivo no existe
            json.JSONDecodeError: Si el archivo no es JSON válido
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"No se encontró el archivo: {filepath}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        self.network_name = data.get("name", path.stem)
        self._load_data(data)

    def _load_data(self, data: Mapping[str, Any]):
        for node_data in data.get("nodes", []):
            self.add_node(Node(
                str(node_data["id"]),
                float(node_data.get("latitude", 0.0)),
                float(node_data.get("longitude", 0.0))
            ))

        for edge_data in data.get("edges", []):
            self.add_road(
                edge_id=str(edge_data["id"]),
                source=str(edge_data["source"]),
                target=str(edge_data["target"]),
                length=float(edge_data.get("length", 0.0)),
                maxspeed=float(edge_data.get("maxspeed", 0.0)),
                oneway=parse_bool(edge_data.get("oneway", False))
            )

        for light_data in data.get("traffic_lights", []):
            attributes = light_data.get("attributes") or {}
            self.add_signal_spec(
                str(light_data["id"]),
                attributes.get("traffic_signals:direction", TrafficLightConfig.UNKNOWN_DIRECTION)
            )

        logger.info("Red cargada: %s (%d nodos, %d aristas, %d semáforos)",
                    self.network_name or "sin nombre", len(self.nodes),
                    len(self.edges), len(self.signal_specs))

    def add_node(self, node: Node) -> Node:
        """
        Agrega un nodo a la red. Si el id ya existe no hace nada.

        Args:
            node: Nodo a agregar

        Returns:
            Node: El nodo almacenado bajo ese id
        """
        if node.id in self.nodes:
            return self.nodes[node.id]

        self.nodes[node.id] = node
        self.graph.add_node(node.id, lat=node.latitude, lon=node.longitude)
        return node

    def add_edge(self, edge: Edge) -> bool:
        """
        Agrega una arista dirigida (sin deduplicar).

        Args:
            edge: Arista a agregar

        Returns:
            bool: False si algún extremo no existe (la arista se ignora)
        """
        if edge.source not in self.nodes or edge.target not in self.nodes:
            logger.warning("Arista %s ignorada: nodo inexistente (%s → %s)",
                           edge.id, edge.source, edge.target)
            return False

        self.edges.append(edge)
        self.nodes[edge.source].add_edge(edge)

        # El espejo networkx conserva la arista más rápida entre dos nodos
        current = self.graph.get_edge_data(edge.source, edge.target)
        if current is None or edge.travel_time < current["travel_time"]:
            self.graph.add_edge(edge.source, edge.target, id=edge.id,
                                length=edge.length, travel_time=edge.travel_time)
        return True

    def add_road(self, edge_id: str, source: str, target: str, length: float,
                 maxspeed: float, oneway: bool = False) -> List[Edge]:
        """
        Agrega un tramo de calle tal como viene del archivo de red.

        Las calles doble mano generan además una arista inversa con el id
        sufijado.

        Args:
            edge_id: ID del tramo
            source: ID del nodo de origen
            target: ID del nodo de destino
            length: Longitud en metros
            maxspeed: Velocidad máxima en km/h
            oneway: True si es de una sola mano

        Returns:
            Lista de aristas creadas (vacía si algún extremo no existe)
        """
        if source not in self.nodes or target not in self.nodes:
            logger.warning("Arista %s ignorada: nodo inexistente (%s → %s)",
                           edge_id, source, target)
            return []

        forward = Edge(edge_id, source, target, length, maxspeed, oneway)
        self.add_edge(forward)
        created = [forward]

        if not oneway:
            reverse = Edge(edge_id + TrafficLightConfig.REVERSE_EDGE_SUFFIX,
                           target, source, length, maxspeed, False)
            self.add_edge(reverse)
            created.append(reverse)

        return created

    def add_signal_spec(self, node_id: str,
                        direction_hint: str = TrafficLightConfig.UNKNOWN_DIRECTION) -> Optional[SignalSpec]:
        """
        Declara un semáforo en un nodo y marca el nodo.

        Args:
            node_id: ID del nodo con semáforo
            direction_hint: Dirección de aproximación inicial sugerida

        Returns:
            SignalSpec creado, o None si el nodo no existe o ya tenía uno
        """
        node = self.nodes.get(node_id)
        if node is None:
            logger.warning("Semáforo %s ignorado: el nodo no existe", node_id)
            return None
        if node.has_signal:
            return None

        spec = SignalSpec(node_id, direction_hint)
        self.signal_specs.append(spec)
        node.has_signal = True
        return spec

    def get_node(self, node_id: str) -> Optional[Node]:
        """Retorna el nodo con el ID dado."""
        return self.nodes.get(node_id)

    def get_nodes(self) -> List[Node]:
        """Retorna los nodos en orden de inserción."""
        return list(self.nodes.values())

    def get_edges(self) -> List[Edge]:
        """Retorna las aristas en orden de inserción."""
        return list(self.edges)

    def get_all_node_ids(self) -> List[str]:
        """Retorna lista de todos los IDs de nodos."""
        return list(self.nodes.keys())

    def contains_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def contains_edge(self, source: str, target: str) -> bool:
        """
        Verifica si existe una arista source → target.

        Recorre la lista completa de aristas; no se usa en el ciclo por tick.
        """
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return True
        return False

    def get_edge(self, source: str, target: str) -> Optional[Edge]:
        """
        Retorna la arista source → target usando la adyacencia del nodo.

        Entre aristas paralelas gana la transitable más rápida; si ninguna
        es transitable se retorna la primera.

        Args:
            source: ID del nodo de origen
            target: ID del nodo de destino

        Returns:
            Edge o None si no existe
        """
        node = self.nodes.get(source)
        if node is None:
            return None
        best = None
        for edge in node.edges:
            if edge.target != target:
                continue
            if best is None:
                best = edge
            elif edge.is_traversable() and (not best.is_traversable() or
                                            edge.travel_time < best.travel_time):
                best = edge
        return best

    def get_neighbors(self, node_id: str) -> List[str]:
        """
        Retorna lista de nodos vecinos (conectados por salida).

        Args:
            node_id: ID del nodo

        Returns:
            Lista de IDs de nodos vecinos
        """
        if node_id not in self.graph:
            return []
        return list(self.graph.successors(node_id))

    def is_connected(self) -> bool:
        """True si todo nodo alcanza a todos los demás."""
        if self.graph.number_of_nodes() == 0:
            return False
        return nx.is_strongly_connected(self.graph)

    def get_path_length(self, path: List[str]) -> float:
        """
        Calcula la longitud total de una ruta en metros.

        Args:
            path: Lista de IDs de nodos

        Returns:
            float: Longitud total en metros
        """
        total_length = 0.0
        for i in range(len(path) - 1):
            edge = self.get_edge(path[i], path[i + 1])
            if edge:
                total_length += edge.length
        return total_length

    def get_path_travel_time(self, path: List[str]) -> float:
        """
        Calcula el tiempo de viaje ideal de una ruta en segundos.

        Args:
            path: Lista de IDs de nodos

        Returns:
            float: Tiempo en segundos (sin considerar semáforos ni colas)
        """
        total_time = 0.0
        for i in range(len(path) - 1):
            edge = self.get_edge(path[i], path[i + 1])
            if edge:
                total_time += edge.travel_time
        return total_time

    def get_network_stats(self) -> Dict:
        """
        Calcula estadísticas de la red.

        Returns:
            dict: Diccionario con estadísticas de la red
        """
        total_length = sum(edge.length for edge in self.edges)
        avg_edge_length = total_length / len(self.edges) if self.edges else 0

        return {
            'num_nodes': len(self.nodes),
            'num_edges': len(self.edges),
            'num_signals': len(self.signal_specs),
            'total_length_km': total_length / 1000,
            'avg_edge_length_m': avg_edge_length,
            'is_connected': self.is_connected(),
            'network_name': self.network_name
        }

    def __str__(self) -> str:
        return f"TrafficNetwork('{self.network_name}', {len(self.nodes)} nodes)"

    def __repr__(self) -> str:
        return (f"TrafficNetwork(name='{self.network_name}', "
                f"nodes={len(self.nodes)}, edges={len(self.edges)}, "
                f"signals={len(self.signal_specs)})")
