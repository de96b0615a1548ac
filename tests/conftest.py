"""
Fixtures compartidas: redes pequeñas para los tests.
"""

import pytest
import sys
from pathlib import Path

# Agregar src al path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from urban_traffic_sim.simulator.traffic_network import TrafficNetwork
from urban_traffic_sim.utils.config import SimulationConfig


def two_node_document(with_signal_at_b: bool = False, hint: str = "north"):
    """A al oeste, B al este, una calle doble mano de 100 m a 36 km/h (10 s)."""
    data = {
        "nodes": [
            {"id": "A", "latitude": 0.0, "longitude": 0.0},
            {"id": "B", "latitude": 0.0, "longitude": 0.001}
        ],
        "edges": [
            {"id": "e1", "source": "A", "target": "B", "oneway": False,
             "maxspeed": 36, "length": 100}
        ],
        "traffic_lights": []
    }
    if with_signal_at_b:
        data["traffic_lights"].append(
            {"id": "B", "attributes": {"traffic_signals:direction": hint}}
        )
    return data


def grid_document(size: int = 3, with_signals: bool = True):
    """Grilla size x size de calles doble mano de 100 m a 36 km/h."""
    step = 0.001
    nodes = []
    edges = []
    lights = []
    for row in range(size):
        for col in range(size):
            node_id = f"n{row}_{col}"
            nodes.append({"id": node_id, "latitude": row * step, "longitude": col * step})
            if col + 1 < size:
                edges.append({"id": f"h{row}_{col}", "source": node_id,
                              "target": f"n{row}_{col + 1}", "maxspeed": 36, "length": 100})
            if row + 1 < size:
                edges.append({"id": f"v{row}_{col}", "source": node_id,
                              "target": f"n{row + 1}_{col}", "maxspeed": 36, "length": 100})
            if with_signals and 0 < row < size - 1 and 0 < col < size - 1:
                lights.append({"id": node_id,
                               "attributes": {"traffic_signals:direction": "north"}})
    return {"nodes": nodes, "edges": edges, "traffic_lights": lights}


@pytest.fixture
def two_node_network():
    """Red A-B sin semáforos."""
    return TrafficNetwork.from_dict(two_node_document(), name="dos nodos")


@pytest.fixture
def signalled_network():
    """Red A-B con semáforo en B orientado a norte-sur."""
    return TrafficNetwork.from_dict(two_node_document(with_signal_at_b=True), name="dos nodos")


@pytest.fixture
def grid_network():
    """Grilla 3x3 con semáforo en el nodo central."""
    return TrafficNetwork.from_dict(grid_document(), name="grilla")


@pytest.fixture
def quiet_config():
    """Configuración sin generación automática de vehículos."""
    return SimulationConfig(vehicle_generation_rate=0.0, random_seed=42)
