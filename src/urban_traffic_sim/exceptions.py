"""
Excepciones del motor de simulación.
"""


class SimulationError(RuntimeError):
    """Error base del simulador."""


class NetworkValidationError(SimulationError, ValueError):
    """La red vial no es apta para simular (sin nodos o sin aristas)."""


class RouteInconsistencyError(SimulationError):
    """
    La ruta de un vehículo y el grafo divergieron.

    Se lanza cuando un vehículo que ya está recorriendo un tramo no
    encuentra la arista entre su nodo actual y el siguiente de su ruta.
    Es fatal: el motor se detiene en lugar de adivinar.
    """

    def __init__(self, vehicle_id: str, source: str, target: str):
        self.vehicle_id = vehicle_id
        self.source = source
        self.target = target
        super().__init__(
            f"Vehículo {vehicle_id}: no existe arista entre {source} y {target}"
        )
