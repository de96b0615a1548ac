"""
Configuración global del simulador de tráfico urbano.

Este módulo contiene las constantes del motor de simulación y el objeto
de configuración (SimulationConfig) que la capa de presentación completa
y que el núcleo trata como de solo lectura.
"""

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


# Parámetros del simulador
class SimulatorConfig:
    """Constantes del motor de simulación."""

    # Tiempo
    TIME_STEP = 1.0  # Paso de simulación en segundos (tiempo simulado)
    DEFAULT_SIMULATION_DURATION = 1200.0  # segundos

    # Ritmo en tiempo real
    MIN_SPEED_FACTOR = 0.1
    MAX_SPEED_FACTOR = 10.0
    SPEED_FACTOR_WARNING = 5.0  # Por encima de esto se avisa en el log
    JOIN_TIMEOUT = 1.0  # segundos de espera al detener el hilo

    # Consumo de combustible (litros por segundo)
    FUEL_RATE_MOVING = 0.0005
    FUEL_RATE_IDLE = 0.0002

    # Generación de vehículos
    MAX_GENERATION_ATTEMPTS = 50
    MAX_DISTINCT_NODE_RETRIES = 20

    # Estadísticas
    SAMPLE_INTERVAL = 1.0  # segundos simulados entre muestras de la serie


# Parámetros de semáforos
class TrafficLightConfig:
    """Constantes de semáforos y direcciones."""

    # Orden fijo de las colas (índices 0..3)
    DIRECTIONS = ("north", "east", "south", "west")
    NORTH_SOUTH = ("north", "south")
    EAST_WEST = ("east", "west")

    # Sufijo del id de la arista inversa en calles doble mano
    REVERSE_EDGE_SUFFIX = "_rev"

    # Pista de dirección cuando el archivo no trae ninguna
    UNKNOWN_DIRECTION = "unknown"

    # Historial de cambios de fase retenido por semáforo
    PHASE_HISTORY_SIZE = 50


# Logging
class LoggingConfig:
    """Configuración de logging."""

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SignalMode(Enum):
    """Estrategias de control de semáforos disponibles."""
    FIXED = 1
    ADAPTIVE = 2
    ENERGY = 3

    @classmethod
    def parse(cls, value: Union["SignalMode", int, str, None]) -> "SignalMode":
        """
        Convierte un valor de la interfaz de configuración en un SignalMode.

        Acepta el propio enum, el número de modo (1, 2, 3) o el nombre
        ("fixed", "adaptive", "energy"). Cualquier otro valor cae en FIXED.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            if key.isdigit():
                value = int(key)
        if isinstance(value, int):
            for mode in cls:
                if mode.value == value:
                    return mode
        return cls.FIXED


@dataclass
class SimulationConfig:
    """
    Bolsa plana de parámetros de la simulación.

    La completa la interfaz de configuración (fuera del núcleo); el motor
    solo la lee. Los valores fuera de rango se reemplazan por el valor por
    defecto documentado en vez de lanzar errores.
    """

    # Parámetros generales
    simulation_duration: float = SimulatorConfig.DEFAULT_SIMULATION_DURATION
    vehicle_generation_rate: float = 0.5  # vehículos por segundo
    vehicle_generation_stop_time: float = 800.0
    peak_hour: bool = False
    signal_mode: SignalMode = SignalMode.FIXED
    random_seed: Optional[int] = None

    # Modo tiempo fijo
    fixed_green_time: float = 13.0
    fixed_yellow_time: float = 1.5
    fixed_red_time: float = 13.0
    fixed_peak_bonus: float = 7.0

    # Modo cola adaptativa
    adaptive_base_green: float = 15.0
    adaptive_yellow_time: float = 2.0
    adaptive_min_green: float = 7.0
    adaptive_max_green: float = 35.0
    adaptive_min_red: float = 10.0
    adaptive_max_red: float = 40.0
    adaptive_increment: float = 1.5
    adaptive_queue_threshold: int = 2

    # Modo ahorro de energía
    energy_base_green: float = 20.0
    energy_yellow_time: float = 3.0
    energy_min_green: float = 7.0
    energy_max_green: float = 40.0
    energy_min_red: float = 10.0
    energy_max_red: float = 43.0
    energy_low_traffic_threshold: int = 1
    energy_increment: float = 0.5

    def __post_init__(self):
        self.signal_mode = SignalMode.parse(self.signal_mode)
        self.peak_hour = bool(self.peak_hour)

        # Valores negativos o no numéricos vuelven al valor por defecto
        for f in fields(self):
            if f.name in ("signal_mode", "peak_hour", "random_seed"):
                continue
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                setattr(self, f.name, f.default)

        if self.simulation_duration <= 0:
            self.simulation_duration = SimulatorConfig.DEFAULT_SIMULATION_DURATION

        # Pares mínimo/máximo invertidos se intercambian
        for low, high in (("adaptive_min_green", "adaptive_max_green"),
                          ("adaptive_min_red", "adaptive_max_red"),
                          ("energy_min_green", "energy_max_green"),
                          ("energy_min_red", "energy_max_red")):
            if getattr(self, low) > getattr(self, high):
                a, b = getattr(self, low), getattr(self, high)
                setattr(self, low, b)
                setattr(self, high, a)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationConfig":
        """
        Crea una configuración desde un diccionario.

        Las claves desconocidas se ignoran; las ausentes toman su valor
        por defecto.

        Args:
            data: Diccionario {nombre_parámetro: valor}

        Returns:
            SimulationConfig: Configuración validada
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Retorna la configuración como diccionario plano."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["signal_mode"] = self.signal_mode.name.lower()
        return result


def setup_logging(level: Optional[str] = None):
    """
    Configura el logging de la aplicación.

    Args:
        level: Nivel de logging (por defecto LoggingConfig.LOG_LEVEL)
    """
    logging.basicConfig(
        level=getattr(logging, (level or LoggingConfig.LOG_LEVEL).upper(), logging.INFO),
        format=LoggingConfig.LOG_FORMAT
    )
