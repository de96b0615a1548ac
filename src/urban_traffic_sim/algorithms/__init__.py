"""
Estrategias de control de semáforos.

Este módulo contiene las tres estrategias intercambiables:
- Tiempos fijos: baseline independiente del tráfico
- Cola adaptativa: el verde crece con la cola del eje
- Ahorro de energía: verdes mínimos con poco tráfico
"""

from ..utils.config import SignalMode, SimulationConfig
from .base import NEXT_PHASE, SignalController, next_phase
from .fixed_time import FixedTimeController
from .adaptive_queue import AdaptiveQueueController
from .energy_saving import EnergySavingController

_CONTROLLERS = {
    SignalMode.FIXED: FixedTimeController,
    SignalMode.ADAPTIVE: AdaptiveQueueController,
    SignalMode.ENERGY: EnergySavingController,
}


def create_controller(config: SimulationConfig) -> SignalController:
    """
    Crea la estrategia que corresponde a config.signal_mode.

    Args:
        config: Configuración de la simulación

    Returns:
        SignalController: Instancia nueva (una por semáforo)
    """
    mode = SignalMode.parse(config.signal_mode)
    return _CONTROLLERS[mode](config)


__all__ = [
    'SignalController',
    'FixedTimeController',
    'AdaptiveQueueController',
    'EnergySavingController',
    'NEXT_PHASE',
    'next_phase',
    'create_controller'
]
