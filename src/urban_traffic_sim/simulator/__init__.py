"""
Simulador de tráfico vehicular.

Este módulo contiene el motor de simulación que modela:
- Red vial como grafo dirigido
- Rutas más rápidas por tiempo de viaje
- Semáforos con colas por dirección
- Movimiento de vehículos y generación de tráfico
"""

from .traffic_network import TrafficNetwork, Node, Edge, SignalSpec
from .routing import RouteFinder
from .traffic_light import TrafficSignal, SignalPhase, LightState, PhaseChange, VehicleQueue
from .vehicle import Vehicle, VehicleState
from .traffic_generator import VehicleGenerator
from .traffic_simulator import (
    TrafficSimulator,
    SimulationSnapshot,
    VehicleView,
    SignalView,
    determine_direction
)

__all__ = [
    'TrafficNetwork',
    'Node',
    'Edge',
    'SignalSpec',
    'RouteFinder',
    'TrafficSignal',
    'SignalPhase',
    'LightState',
    'PhaseChange',
    'VehicleQueue',
    'Vehicle',
    'VehicleState',
    'VehicleGenerator',
    'TrafficSimulator',
    'SimulationSnapshot',
    'VehicleView',
    'SignalView',
    'determine_direction'
]
