"""
Motor principal de simulación de tráfico vehicular.

Este módulo implementa el simulador que coordina todos los componentes:
red vial, semáforos, vehículos, generación de tráfico y estadísticas.
El motor es el único que modifica el estado; cada paso publica una
instantánea inmutable para que otro hilo la lea.
"""

import logging
import threading
import time as timer
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import NetworkValidationError, RouteInconsistencyError
from ..utils.config import SimulationConfig, SimulatorConfig, TrafficLightConfig
from ..utils.metrics import StatisticsCollector
from .routing import RouteFinder
from .traffic_generator import VehicleGenerator
from .traffic_light import LightState, TrafficSignal
from .traffic_network import TrafficNetwork
from .vehicle import Vehicle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleView:
    """Vista de solo lectura de un vehículo."""
    vehicle_id: str
    current_node: str
    next_node: Optional[str]
    position: float


@dataclass(frozen=True)
class SignalView:
    """Vista de solo lectura de un semáforo."""
    node_id: str
    phase: str
    north_south: LightState
    east_west: LightState
    queue_sizes: Tuple[int, int, int, int]


@dataclass(frozen=True)
class SimulationSnapshot:
    """Estado publicado al final de cada paso."""
    time: float
    running: bool
    vehicles: Tuple[VehicleView, ...]
    signals: Tuple[SignalView, ...]
    congestion: float
    vehicles_generated: int
    vehicles_arrived: int

    @property
    def active_vehicles(self) -> int:
        return len(self.vehicles)


def determine_direction(network: TrafficNetwork, from_id: str, to_id: str) -> Optional[str]:
    """
    Dirección de movimiento entre dos nodos según sus coordenadas.

    Si la diferencia de latitud domina, la dirección es norte o sur según
    su signo; si no, este u oeste según el signo de la diferencia de
    longitud.

    Returns:
        str: "north", "south", "east" o "west" (None si falta algún nodo)
    """
    origin = network.get_node(from_id)
    target = network.get_node(to_id)
    if origin is None or target is None:
        return None

    d_lat = target.latitude - origin.latitude
    d_lon = target.longitude - origin.longitude

    if abs(d_lat) > abs(d_lon):
        return "north" if d_lat > 0 else "south"
    return "east" if d_lon > 0 else "west"


class TrafficSimulator:
    """
    Motor principal de simulación de tráfico.

    Coordina la interacción entre vehículos, semáforos y red vial,
    ejecutando la simulación paso a paso y recolectando estadísticas.
    Puede correr de forma sincrónica (run_for) o en un hilo propio
    (start/stop) con ritmo de tiempo real ajustable.
    """

    def __init__(self, network: TrafficNetwork, config: Optional[SimulationConfig] = None):
        """
        Inicializa el simulador.

        Args:
            network: Red vial (no puede estar vacía)
            config: Configuración de la corrida (default si es None)

        Raises:
            NetworkValidationError: Si la red no tiene nodos o aristas
        """
        if not network.get_nodes():
            raise NetworkValidationError("La red no tiene nodos")
        if not network.get_edges():
            raise NetworkValidationError("La red no tiene aristas")
        if not network.is_connected():
            logger.warning("La red %s no es fuertemente conexa; algunos pares no tendrán ruta",
                           network.network_name or "(sin nombre)")

        self.network = network
        self.config = config or SimulationConfig()
        self.dt = SimulatorConfig.TIME_STEP

        # Componentes
        self.route_finder = RouteFinder(network)
        self.generator = VehicleGenerator(network, self.route_finder, seed=self.config.random_seed)
        self.statistics = StatisticsCollector()

        # Semáforos
        self.signals: Dict[str, TrafficSignal] = {}
        self._initialize_signals()

        # Vehículos
        self.active_vehicles: List[Vehicle] = []

        # Estado de simulación
        self.current_time = 0.0
        self.generation_stopped = False
        self._error: Optional[Exception] = None

        # Control del hilo
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._speed_factor = 1.0

        self._snapshot_lock = threading.Lock()
        self._snapshot: Optional[SimulationSnapshot] = None

        self._record_congestion()
        self._publish_snapshot()

        logger.info("Simulador inicializado: %d nodos, %d aristas, %d semáforos, modo %s",
                    len(network.get_nodes()), len(network.get_edges()),
                    len(self.signals), self.config.signal_mode.name)

    def _initialize_signals(self):
        """Crea un semáforo por cada semáforo declarado en la red."""
        self.signals.clear()
        for spec in self.network.signal_specs:
            if spec.node_id in self.signals:
                continue
            self.signals[spec.node_id] = TrafficSignal(spec.node_id, spec.direction_hint, self.config)

    # Propiedades

    @property
    def speed_factor(self) -> float:
        return self._speed_factor

    @speed_factor.setter
    def speed_factor(self, value: float):
        clamped = max(SimulatorConfig.MIN_SPEED_FACTOR,
                      min(SimulatorConfig.MAX_SPEED_FACTOR, float(value)))
        if clamped > SimulatorConfig.SPEED_FACTOR_WARNING:
            logger.warning("Factor de velocidad %.1fx: la interfaz puede no acompañar", clamped)
        self._speed_factor = clamped

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def error(self) -> Optional[Exception]:
        """Error fatal que terminó la corrida, si lo hubo."""
        return self._error

    # Paso de simulación

    def step(self):
        """
        Ejecuta un paso de simulación de dt segundos.

        Raises:
            RouteInconsistencyError: Si la ruta de un vehículo ya no
            coincide con el grafo; el motor queda detenido
        """
        # 1. Avanzar tiempo
        self.current_time += self.dt
        self.statistics.update_current_time(self.current_time)
        if not self.generation_stopped and self.current_time > self.config.vehicle_generation_stop_time:
            self.generation_stopped = True
            logger.info("Generación de vehículos detenida en t=%.0fs", self.current_time)

        # 2. Generar nuevos vehículos
        if not self.generation_stopped:
            self._spawn_vehicles()

        # 3. Actualizar semáforos
        for signal in self.signals.values():
            signal.update(self.dt, self.config.peak_hour)

        # 4. Mover vehículos
        try:
            self._update_vehicles()
        except RouteInconsistencyError:
            self._running = False
            self._stop_event.set()
            raise

        # 5. Congestión y series
        self._record_congestion()

        # 6. Publicar
        self._publish_snapshot()

        logger.debug("t=%.0fs activos=%d congestión=%.1f%%", self.current_time,
                     len(self.active_vehicles), self.statistics.get_current_congestion())

    def _spawn_vehicles(self):
        """Genera los vehículos de este paso según la tasa configurada."""
        count = self.generator.expected_vehicle_count(self.dt, self.config.vehicle_generation_rate)
        for _ in range(count):
            vehicle_id = f"V{self.statistics.get_total_generated() + 1}"
            vehicle = self.generator.generate_vehicle(vehicle_id)
            if vehicle is not None:
                self.add_vehicle(vehicle)

    def add_vehicle(self, vehicle: Vehicle):
        """
        Incorpora un vehículo al conjunto activo y lo cuenta como generado.

        Args:
            vehicle: Vehículo con ruta ya calculada
        """
        self.active_vehicles.append(vehicle)
        self.statistics.vehicle_generated()

    def _update_vehicles(self):
        """Mueve todos los vehículos activos y retira los que llegaron."""
        arrived = []

        for vehicle in self.active_vehicles:
            if not vehicle.has_arrived():
                self._move_vehicle(vehicle)
            if vehicle.has_arrived():
                arrived.append(vehicle)

        for vehicle in arrived:
            self.active_vehicles.remove(vehicle)
            self.statistics.vehicle_arrived(vehicle.travel_time, vehicle.wait_time,
                                            vehicle.fuel_consumed)
            logger.debug("%s llegó a %s en %.0fs (espera %.0fs)",
                         vehicle.id, vehicle.destination, vehicle.travel_time, vehicle.wait_time)

    def _move_vehicle(self, vehicle: Vehicle):
        """
        Avanza un vehículo un paso.

        En un nodo con semáforo el vehículo sale solo con luz verde para su
        dirección; si no, queda (una sola vez) en la cola de esa dirección.
        Sobre una arista avanza dt / travel_time y al completar la arista
        queda parado en el nodo siguiente.
        """
        dt = self.dt
        vehicle.increment_travel_time(dt)

        next_id = vehicle.next_node()
        if next_id is None:
            return

        edge = self.network.get_edge(vehicle.current_node, next_id)
        if edge is None or not edge.is_traversable():
            raise RouteInconsistencyError(vehicle.id, vehicle.current_node, next_id)

        if vehicle.position == 0.0:
            signal = self.signals.get(vehicle.current_node)
            if signal is not None:
                direction = determine_direction(self.network, vehicle.current_node, next_id)
                if signal.state_for_approach(direction) != LightState.GREEN:
                    if not vehicle.is_queued:
                        signal.add_vehicle_to_queue(direction, vehicle)
                        vehicle.mark_waiting(vehicle.current_node, direction)
                    vehicle.increment_wait_time(dt)
                    vehicle.increment_fuel(dt, moving=False)
                    return
                if vehicle.is_queued:
                    signal.remove_vehicle_from_queue(vehicle.queued_at[1], vehicle)
            vehicle.depart((dt / 2) / edge.travel_time)
        else:
            vehicle.advance(dt / edge.travel_time)

        if vehicle.position >= 1.0:
            vehicle.advance_to(next_id)
            vehicle.increment_fuel(dt, moving=False)
        else:
            vehicle.increment_fuel(dt, moving=True)

    def get_total_queued(self) -> int:
        return sum(signal.get_total_vehicles_in_queues() for signal in self.signals.values())

    def _record_congestion(self):
        self.statistics.calculate_congestion(len(self.active_vehicles),
                                             len(self.network.get_nodes()),
                                             self.get_total_queued())

    def _publish_snapshot(self):
        vehicles = tuple(
            VehicleView(v.id, v.current_node, v.next_node(), v.position)
            for v in self.active_vehicles
        )
        signals = tuple(
            SignalView(
                node_id=node_id,
                phase=signal.current_phase.name,
                north_south=signal.state_for_approach(TrafficLightConfig.NORTH_SOUTH[0]),
                east_west=signal.state_for_approach(TrafficLightConfig.EAST_WEST[0]),
                queue_sizes=signal.get_all_queue_sizes()
            )
            for node_id, signal in self.signals.items()
        )
        snapshot = SimulationSnapshot(
            time=self.current_time,
            running=self._running,
            vehicles=vehicles,
            signals=signals,
            congestion=self.statistics.get_current_congestion(),
            vehicles_generated=self.statistics.get_total_generated(),
            vehicles_arrived=self.statistics.get_total_arrived()
        )
        with self._snapshot_lock:
            self._snapshot = snapshot

    def get_snapshot(self) -> SimulationSnapshot:
        with self._snapshot_lock:
            return self._snapshot

    # Ejecución

    def run(self) -> Dict:
        """
        Ejecuta la simulación hasta simulation_duration o hasta stop().

        Entre pasos duerme dt / speed_factor segundos; stop() interrumpe
        la espera. Un error fatal termina la corrida sin propagarse y
        queda en self.error.

        Returns:
            dict: Resumen final de la corrida
        """
        duration = self.config.simulation_duration
        self._running = True
        real_time_start = timer.time()
        logger.info("Iniciando simulación: %.0fs simulados, modo %s",
                    duration, self.config.signal_mode.name)

        try:
            while not self._stop_event.is_set() and self.current_time < duration:
                self.step()
                if self._stop_event.wait(self.dt / self._speed_factor):
                    break
        except RouteInconsistencyError as e:
            logger.error("Simulación abortada en t=%.0fs: %s", self.current_time, e)
            self._error = e

        self._running = False
        self._publish_snapshot()

        summary = self.get_summary()
        summary['computation_time'] = timer.time() - real_time_start
        self._log_summary(summary)
        return summary

    def run_for(self, duration: float) -> Dict:
        """
        Ejecuta pasos sin pausas durante duration segundos simulados.

        Pensado para corridas por lotes y tests; los errores fatales se
        propagan.

        Returns:
            dict: Resumen tras la última corrida
        """
        num_steps = int(round(duration / self.dt))
        for _ in range(num_steps):
            self.step()
        return self.get_summary()

    def start(self) -> bool:
        """
        Lanza run() en un hilo propio.

        Returns:
            bool: False si ya había un hilo corriendo
        """
        if self._thread is not None and self._thread.is_alive():
            logger.warning("La simulación ya está en ejecución")
            return False

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(target=self.run, name="traffic-simulation", daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = SimulatorConfig.JOIN_TIMEOUT) -> bool:
        """
        Pide detener la simulación y espera al hilo con un tiempo acotado.

        Args:
            timeout: Segundos máximos de espera

        Returns:
            bool: True si el hilo terminó (o no había hilo)
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            self._running = False
            return True

        thread.join(timeout)
        if thread.is_alive():
            logger.warning("El hilo de simulación no terminó en %.1fs", timeout)
            return False

        self._thread = None
        logger.info("Simulación detenida en t=%.0fs", self.current_time)
        return True

    def get_summary(self) -> Dict:
        """
        Retorna el resumen actual de la corrida.

        Returns:
            dict: Métricas del colector más el estado del motor
        """
        summary = self.statistics.summary()
        summary.update({
            'signal_mode': self.config.signal_mode.name,
            'vehicles_active': len(self.active_vehicles),
            'vehicles_queued': self.get_total_queued(),
            'phase_changes': sum(s.phase_changes for s in self.signals.values()),
            'generation_stopped': self.generation_stopped,
            'error': str(self._error) if self._error else None
        })
        return summary

    def _log_summary(self, summary: Dict):
        logger.info("Simulación completada en t=%.0fs (%s)",
                    summary['simulation_time'], summary['signal_mode'])
        logger.info("  Vehículos: generados=%d llegados=%d activos=%d (%.1f%%)",
                    summary['vehicles_generated'], summary['vehicles_arrived'],
                    summary['vehicles_active'], summary['arrival_rate'])
        logger.info("  Tiempos: viaje=%.1fs espera=%.1fs (máx %.1fs)",
                    summary['avg_travel_time'], summary['avg_wait_time'],
                    summary['max_wait_time'])
        logger.info("  Combustible total: %.3f L | Congestión pico: %.1f%%",
                    summary['total_fuel'], summary['peak_congestion'])

    def reset(self):
        """Reinicia el simulador al estado inicial (detiene el hilo si corría)."""
        if self._thread is not None:
            self.stop()

        self.current_time = 0.0
        self.generation_stopped = False
        self._error = None
        self.active_vehicles.clear()

        self.statistics.reset()
        self.generator.reset()
        self._initialize_signals()
        self._stop_event.clear()

        self._record_congestion()
        self._publish_snapshot()

    def get_current_state(self) -> Dict:
        """
        Retorna el estado actual completo de la simulación.

        Returns:
            dict: Estado actual
        """
        return {
            'time': self.current_time,
            'running': self._running,
            'active_vehicles': len(self.active_vehicles),
            'generation_stopped': self.generation_stopped,
            'signals': {
                node_id: {
                    'phase': signal.current_phase.name,
                    'time_remaining': signal.phase_timer,
                    'phase_changes': signal.phase_changes,
                    'queues': dict(zip(TrafficLightConfig.DIRECTIONS,
                                       signal.get_all_queue_sizes()))
                }
                for node_id, signal in self.signals.items()
            },
            'congestion': self.statistics.get_current_congestion()
        }
