"""
Estadísticas agregadas de la simulación.

Este módulo acumula los contadores de vehículos generados y llegados,
los totales de tiempo y combustible, el índice de congestión, y las
series temporales que consume la capa de presentación.
"""

import threading
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .config import SimulatorConfig

# Pesos del índice de congestión
DENSITY_WEIGHT = 0.4
QUEUE_WEIGHT = 0.6


class StatisticsCollector:
    """
    Colector de estadísticas de una corrida.

    Un único hilo escribe (el motor) y otro puede leer; todos los métodos
    toman el mismo lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_unlocked()

    def _reset_unlocked(self):
        self.current_time = 0.0

        self.total_generated = 0
        self.total_arrived = 0

        self.total_travel_time = 0.0
        self.total_wait_time = 0.0
        self.total_fuel = 0.0
        self.max_travel_time = 0.0
        self.max_wait_time = 0.0

        self.current_congestion = 0.0
        self.peak_congestion = 0.0

        # Series temporales
        self._time_series: List[float] = []
        self._congestion_series: List[float] = []
        self._active_series: List[int] = []
        self._avg_wait_series: List[float] = []
        self._fuel_series: List[float] = []
        self._last_sample_time: Optional[float] = None

    def reset(self):
        with self._lock:
            self._reset_unlocked()

    def vehicle_generated(self):
        with self._lock:
            self.total_generated += 1

    def vehicle_arrived(self, travel_time: float, wait_time: float, fuel: float):
        """
        Registra un vehículo que llegó a destino.

        Args:
            travel_time: Tiempo total de viaje (segundos)
            wait_time: Tiempo esperando en semáforos (segundos)
            fuel: Combustible consumido (litros)
        """
        with self._lock:
            self.total_arrived += 1
            self.total_travel_time += travel_time
            self.total_wait_time += wait_time
            self.total_fuel += fuel
            self.max_travel_time = max(self.max_travel_time, travel_time)
            self.max_wait_time = max(self.max_wait_time, wait_time)

    def update_current_time(self, time: float):
        with self._lock:
            self.current_time = time

    @staticmethod
    def congestion_index(active_vehicles: int, total_nodes: int, total_queued: int) -> float:
        """
        Índice de congestión en [0, 100].

        Combina la densidad (vehículos activos por nodo, saturada en 1) con
        la proporción de vehículos activos que están en cola.

        Args:
            active_vehicles: Vehículos en la red
            total_nodes: Nodos de la red
            total_queued: Vehículos esperando en semáforos

        Returns:
            float: Porcentaje de congestión
        """
        density = min(1.0, active_vehicles / total_nodes) if total_nodes > 0 else 0.0
        queued = min(1.0, total_queued / active_vehicles) if active_vehicles > 0 else 0.0
        value = 100.0 * (DENSITY_WEIGHT * density + QUEUE_WEIGHT * queued)
        return max(0.0, min(100.0, value))

    def calculate_congestion(self, active_vehicles: int, total_nodes: int,
                             total_queued: int) -> float:
        """
        Recalcula la congestión actual y agrega una muestra a las series.

        Se guarda como máximo una muestra por segundo simulado.

        Returns:
            float: Congestión actual
        """
        congestion = self.congestion_index(active_vehicles, total_nodes, total_queued)

        with self._lock:
            self.current_congestion = congestion
            self.peak_congestion = max(self.peak_congestion, congestion)

            due = (self._last_sample_time is None or
                   self.current_time - self._last_sample_time >= SimulatorConfig.SAMPLE_INTERVAL)
            if due:
                self._last_sample_time = self.current_time
                self._time_series.append(self.current_time)
                self._congestion_series.append(congestion)
                self._active_series.append(active_vehicles)
                self._avg_wait_series.append(self._average(self.total_wait_time))
                self._fuel_series.append(self.total_fuel)

        return congestion

    def _average(self, total: float) -> float:
        if self.total_arrived == 0:
            return 0.0
        return total / self.total_arrived

    # Getters

    def get_total_generated(self) -> int:
        with self._lock:
            return self.total_generated

    def get_total_arrived(self) -> int:
        with self._lock:
            return self.total_arrived

    def get_average_travel_time(self) -> float:
        with self._lock:
            return self._average(self.total_travel_time)

    def get_average_wait_time(self) -> float:
        with self._lock:
            return self._average(self.total_wait_time)

    def get_average_fuel(self) -> float:
        with self._lock:
            return self._average(self.total_fuel)

    def get_total_fuel(self) -> float:
        with self._lock:
            return self.total_fuel

    def get_max_travel_time(self) -> float:
        with self._lock:
            return self.max_travel_time

    def get_max_wait_time(self) -> float:
        with self._lock:
            return self.max_wait_time

    def get_current_congestion(self) -> float:
        with self._lock:
            return self.current_congestion

    def get_peak_congestion(self) -> float:
        with self._lock:
            return self.peak_congestion

    def get_average_congestion(self) -> float:
        with self._lock:
            if not self._congestion_series:
                return 0.0
            return float(np.mean(self._congestion_series))

    def get_arrival_rate(self) -> float:
        """Porcentaje de vehículos generados que llegaron a destino."""
        with self._lock:
            if self.total_generated == 0:
                return 0.0
            return 100.0 * self.total_arrived / self.total_generated

    def get_time_series(self) -> Dict[str, List]:
        """Copia de las series temporales."""
        with self._lock:
            return {
                'time': list(self._time_series),
                'congestion': list(self._congestion_series),
                'active_vehicles': list(self._active_series),
                'average_wait': list(self._avg_wait_series),
                'fuel': list(self._fuel_series)
            }

    def to_dataframe(self) -> pd.DataFrame:
        """
        Series temporales como DataFrame, una fila por muestra.

        Returns:
            pd.DataFrame: Columnas time, congestion, active_vehicles,
            average_wait y fuel
        """
        return pd.DataFrame(self.get_time_series())

    def summary(self) -> Dict:
        """
        Retorna todas las métricas escalares.

        Returns:
            dict: Resumen de la corrida
        """
        with self._lock:
            avg_congestion = float(np.mean(self._congestion_series)) if self._congestion_series else 0.0
            arrival_rate = (100.0 * self.total_arrived / self.total_generated
                            if self.total_generated else 0.0)
            return {
                'simulation_time': self.current_time,
                'vehicles_generated': self.total_generated,
                'vehicles_arrived': self.total_arrived,
                'arrival_rate': arrival_rate,
                'avg_travel_time': self._average(self.total_travel_time),
                'avg_wait_time': self._average(self.total_wait_time),
                'avg_fuel': self._average(self.total_fuel),
                'max_travel_time': self.max_travel_time,
                'max_wait_time': self.max_wait_time,
                'total_fuel': self.total_fuel,
                'current_congestion': self.current_congestion,
                'peak_congestion': self.peak_congestion,
                'avg_congestion': avg_congestion
            }

    @staticmethod
    def create_summary_dataframe(results: Dict[str, Dict]) -> pd.DataFrame:
        """
        Crea un DataFrame comparativo de varias corridas.

        Args:
            results: Dict {nombre_corrida: summary()}

        Returns:
            pd.DataFrame: Una fila por corrida, ordenado por espera promedio
        """
        data = []

        for name, metrics in results.items():
            data.append({
                'Mode': name,
                'Generated': metrics.get('vehicles_generated', 0),
                'Arrived': metrics.get('vehicles_arrived', 0),
                'Arrival Rate (%)': metrics.get('arrival_rate', 0),
                'Avg Travel (s)': metrics.get('avg_travel_time', 0),
                'Avg Wait (s)': metrics.get('avg_wait_time', 0),
                'Total Fuel (L)': metrics.get('total_fuel', 0),
                'Peak Congestion (%)': metrics.get('peak_congestion', 0)
            })

        df = pd.DataFrame(data)
        if not df.empty:
            df = df.sort_values('Avg Wait (s)')

        return df

    @staticmethod
    def calculate_improvement(baseline: Dict, candidate: Dict) -> Dict:
        """
        Mejoras porcentuales de una corrida respecto a otra.

        Args:
            baseline: summary() de referencia
            candidate: summary() a comparar

        Returns:
            dict: Mejora en % por métrica (positivo = mejor)
        """
        improvements = {}

        # Menor es mejor
        for metric in ['avg_travel_time', 'avg_wait_time', 'total_fuel', 'avg_congestion']:
            base = baseline.get(metric, 0)
            value = candidate.get(metric, 0)
            improvements[metric] = ((base - value) / base) * 100 if base > 0 else 0.0

        # Mayor es mejor
        for metric in ['vehicles_arrived', 'arrival_rate']:
            base = baseline.get(metric, 0)
            value = candidate.get(metric, 0)
            improvements[metric] = ((value - base) / base) * 100 if base > 0 else 0.0

        return improvements
