"""
Simulación microscópica de tráfico urbano con control de semáforos.

Paquetes:
- simulator: red vial, rutas, semáforos, vehículos y motor de simulación
- algorithms: estrategias de control de semáforos
- utils: configuración y estadísticas
"""

__version__ = "0.1.0"
