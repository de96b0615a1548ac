"""
Tests para el motor de simulación (TrafficSimulator).
"""

import dataclasses
import time

import pytest
import sys
from pathlib import Path

# Agregar src al path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from urban_traffic_sim.exceptions import NetworkValidationError, RouteInconsistencyError
from urban_traffic_sim.simulator.traffic_light import LightState, SignalPhase
from urban_traffic_sim.simulator.traffic_network import Node, TrafficNetwork
from urban_traffic_sim.simulator.traffic_simulator import TrafficSimulator, determine_direction
from urban_traffic_sim.simulator.vehicle import Vehicle
from urban_traffic_sim.utils.config import SignalMode, SimulationConfig


def _step_until_arrived(simulator, vehicle, max_steps=100):
    for _ in range(max_steps):
        simulator.step()
        if vehicle not in simulator.active_vehicles:
            return
    pytest.fail(f"{vehicle.id} no llegó en {max_steps} pasos")


class TestConstruction:
    """Tests de creación del simulador."""

    def test_empty_network_rejected(self):
        """Test de red sin nodos."""
        with pytest.raises(NetworkValidationError):
            TrafficSimulator(TrafficNetwork())

    def test_network_without_edges_rejected(self):
        """Test de red sin aristas."""
        network = TrafficNetwork()
        network.add_node(Node("A", 0.0, 0.0))

        with pytest.raises(NetworkValidationError):
            TrafficSimulator(network)

    def test_signals_from_network(self, grid_network, quiet_config):
        """Test de un semáforo por cada semáforo declarado."""
        simulator = TrafficSimulator(grid_network, quiet_config)

        assert list(simulator.signals) == ["n1_1"]
        assert simulator.signals["n1_1"].current_phase == SignalPhase.NS_GREEN_EW_RED

    def test_initial_state(self, two_node_network, quiet_config):
        """Test de estado inicial y primera muestra en t=0."""
        simulator = TrafficSimulator(two_node_network, quiet_config)

        assert simulator.current_time == 0.0
        assert not simulator.is_running
        assert simulator.statistics.get_time_series()['time'] == [0.0]
        assert simulator.get_snapshot().time == 0.0


class TestDirection:
    """Tests de dirección de aproximación."""

    def test_cardinal_directions(self, grid_network):
        """Test de direcciones según coordenadas."""
        assert determine_direction(grid_network, "n1_1", "n2_1") == "north"
        assert determine_direction(grid_network, "n1_1", "n0_1") == "south"
        assert determine_direction(grid_network, "n1_1", "n1_2") == "east"
        assert determine_direction(grid_network, "n1_1", "n1_0") == "west"
        assert determine_direction(grid_network, "n1_1", "nope") is None


class TestScenarios:
    """Escenarios de punta a punta."""

    def test_free_flow_trip(self, two_node_network, quiet_config):
        """Test de viaje sin semáforo: tiempo cercano al ideal y sin espera."""
        simulator = TrafficSimulator(two_node_network, quiet_config)
        vehicle = Vehicle("V1", "A", "B", simulator.route_finder.find_route("A", "B"))
        simulator.add_vehicle(vehicle)

        _step_until_arrived(simulator, vehicle)

        assert vehicle.has_arrived()
        assert abs(vehicle.travel_time - 10.0) <= 1.0
        assert vehicle.wait_time == 0.0
        assert vehicle.fuel_consumed > 0
        assert simulator.statistics.get_total_arrived() == 1
        assert simulator.statistics.get_average_wait_time() == 0.0

    def test_red_light_queues_vehicle(self, signalled_network):
        """Test de vehículo que espera en rojo y sale con verde."""
        config = SimulationConfig(vehicle_generation_rate=0.0, fixed_green_time=10,
                                  fixed_yellow_time=2)
        simulator = TrafficSimulator(signalled_network, config)
        signal = simulator.signals["B"]
        # B → A es hacia el oeste: eje este-oeste, en rojo al inicio
        vehicle = Vehicle("V1", "B", "A", ["B", "A"])
        simulator.add_vehicle(vehicle)

        waited_steps = 0
        for _ in range(30):
            simulator.step()
            if vehicle.position > 0 or vehicle.has_arrived():
                break
            waited_steps += 1
            assert signal.state_for_approach("west") != LightState.GREEN
            # Encolado una sola vez
            assert signal.get_all_queue_sizes() == (0, 0, 0, 1)

        assert waited_steps > 0
        assert vehicle.wait_time > 0
        assert vehicle.wait_time == waited_steps
        assert signal.state_for_approach("west") == LightState.GREEN
        assert signal.get_total_vehicles_in_queues() == 0
        assert not vehicle.is_queued

        _step_until_arrived(simulator, vehicle)
        assert simulator.statistics.get_max_wait_time() == vehicle.wait_time

    def test_green_light_passes(self, signalled_network, quiet_config):
        """Test de vehículo que encuentra verde y no espera."""
        simulator = TrafficSimulator(signalled_network, quiet_config)
        # Vecino al norte de B: eje norte-sur, en verde al inicio
        network = signalled_network
        network.add_node(Node("N", 0.001, 0.001))
        network.add_road("bn", "B", "N", 100, 36)
        vehicle = Vehicle("V1", "B", "N", ["B", "N"])
        simulator.add_vehicle(vehicle)

        simulator.step()

        assert vehicle.position > 0
        assert vehicle.wait_time == 0.0

    def test_generated_vehicles_arrive(self, two_node_network):
        """Test de que todo vehículo generado llega en una red libre."""
        config = SimulationConfig(vehicle_generation_rate=0.5,
                                  vehicle_generation_stop_time=50, random_seed=3)
        simulator = TrafficSimulator(two_node_network, config)

        summary = simulator.run_for(100)

        assert summary['vehicles_generated'] > 0
        assert summary['vehicles_arrived'] == summary['vehicles_generated']
        assert summary['vehicles_active'] == 0
        assert summary['arrival_rate'] == pytest.approx(100.0)


class TestParallelEdges:
    """Tests de aristas paralelas entre los mismos nodos."""

    def test_untraversable_duplicate_does_not_abort(self, quiet_config):
        """Test de viaje por la arista transitable con un duplicado sin velocidad."""
        network = TrafficNetwork.from_dict({
            "nodes": [{"id": "A", "latitude": 0.0, "longitude": 0.0},
                      {"id": "B", "latitude": 0.0, "longitude": 0.001}],
            "edges": [
                {"id": "slow", "source": "A", "target": "B", "oneway": True,
                 "maxspeed": 0, "length": 100},
                {"id": "fast", "source": "A", "target": "B", "oneway": True,
                 "maxspeed": 36, "length": 100},
                {"id": "back", "source": "B", "target": "A", "oneway": True,
                 "maxspeed": 36, "length": 100}
            ]
        })
        simulator = TrafficSimulator(network, quiet_config)
        route = simulator.route_finder.find_route("A", "B")
        vehicle = Vehicle("V1", "A", "B", route)
        simulator.add_vehicle(vehicle)

        _step_until_arrived(simulator, vehicle)

        assert route == ["A", "B"]
        assert simulator.error is None
        assert abs(vehicle.travel_time - 10.0) <= 1.0
        assert simulator.statistics.get_total_arrived() == 1

    def test_no_traversable_edge_is_fatal(self, quiet_config):
        """Test de error cuando ninguna arista paralela es transitable."""
        network = TrafficNetwork.from_dict({
            "nodes": [{"id": "A"}, {"id": "B"}],
            "edges": [
                {"id": "slow", "source": "A", "target": "B", "oneway": True,
                 "maxspeed": 0, "length": 100},
                {"id": "back", "source": "B", "target": "A", "oneway": True,
                 "maxspeed": 36, "length": 100}
            ]
        })
        simulator = TrafficSimulator(network, quiet_config)
        simulator.add_vehicle(Vehicle("V1", "A", "B", ["A", "B"]))

        with pytest.raises(RouteInconsistencyError):
            simulator.step()

    @pytest.mark.parametrize("mode", [SignalMode.ADAPTIVE, SignalMode.ENERGY])
    def test_queued_vehicle_departs_with_custom_red_bounds(self, signalled_network, mode):
        """Test de salida del vehículo en cola con límites de rojo no estándar."""
        config = SimulationConfig(vehicle_generation_rate=0.0, signal_mode=mode,
                                  adaptive_min_red=30, adaptive_max_red=60,
                                  energy_min_red=50, energy_max_red=60)
        simulator = TrafficSimulator(signalled_network, config)
        vehicle = Vehicle("V1", "B", "A", ["B", "A"])
        simulator.add_vehicle(vehicle)

        _step_until_arrived(simulator, vehicle, max_steps=120)

        assert vehicle.wait_time > 0
        assert simulator.signals["B"].get_total_vehicles_in_queues() == 0


class TestEngine:
    """Tests del ciclo del motor."""

    def test_generation_stop_latch(self, grid_network):
        """Test de corte de generación."""
        config = SimulationConfig(vehicle_generation_rate=1.0,
                                  vehicle_generation_stop_time=5, random_seed=1)
        simulator = TrafficSimulator(grid_network, config)

        simulator.run_for(20)

        assert simulator.generation_stopped
        assert simulator.statistics.get_total_generated() == 5

    def test_vehicle_ids(self, grid_network):
        """Test de IDs consecutivos."""
        config = SimulationConfig(vehicle_generation_rate=1.0, random_seed=1)
        simulator = TrafficSimulator(grid_network, config)

        simulator.run_for(3)

        ids = [view.vehicle_id for view in simulator.get_snapshot().vehicles]
        assert ids == ["V1", "V2", "V3"]

    @pytest.mark.parametrize("mode", list(SignalMode))
    def test_invariants_per_mode(self, grid_network, mode):
        """Test de invariantes en cada modo de semáforo."""
        config = SimulationConfig(signal_mode=mode, random_seed=11,
                                  vehicle_generation_rate=0.8)
        simulator = TrafficSimulator(grid_network, config)

        for _ in range(150):
            simulator.step()
            snapshot = simulator.get_snapshot()
            assert 0.0 <= snapshot.congestion <= 100.0
            assert snapshot.vehicles_arrived <= snapshot.vehicles_generated
            assert all(0.0 <= view.position < 1.0 for view in snapshot.vehicles)
            for view in snapshot.signals:
                assert LightState.RED in (view.north_south, view.east_west)

        summary = simulator.get_summary()
        assert summary['signal_mode'] == mode.name
        assert summary['vehicles_arrived'] > 0

    def test_deterministic_runs(self, grid_network):
        """Test de corridas idénticas con la misma semilla."""
        config = SimulationConfig(signal_mode=SignalMode.ADAPTIVE, random_seed=42)

        first = TrafficSimulator(grid_network, config).run_for(200)
        second = TrafficSimulator(grid_network, config).run_for(200)

        assert first == second

    def test_reset(self, grid_network):
        """Test de reinicio y repetición de la corrida."""
        config = SimulationConfig(random_seed=5)
        simulator = TrafficSimulator(grid_network, config)

        first = simulator.run_for(60)
        simulator.reset()

        assert simulator.current_time == 0.0
        assert simulator.active_vehicles == []
        assert simulator.statistics.get_total_generated() == 0
        assert simulator.run_for(60) == first

    def test_snapshot_is_immutable(self, grid_network):
        """Test de instantánea inmutable."""
        simulator = TrafficSimulator(grid_network, SimulationConfig(random_seed=2))
        simulator.run_for(5)
        snapshot = simulator.get_snapshot()

        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.time = 99.0

        simulator.step()
        assert snapshot.time == 5.0
        assert simulator.get_snapshot().time == 6.0

    def test_speed_factor_clamped(self, two_node_network, quiet_config):
        """Test de factor de velocidad acotado."""
        simulator = TrafficSimulator(two_node_network, quiet_config)

        simulator.speed_factor = 100
        assert simulator.speed_factor == 10.0
        simulator.speed_factor = 0
        assert simulator.speed_factor == 0.1
        simulator.speed_factor = 2.5
        assert simulator.speed_factor == 2.5

    def test_current_state(self, grid_network, quiet_config):
        """Test de estado actual."""
        simulator = TrafficSimulator(grid_network, quiet_config)
        simulator.step()

        state = simulator.get_current_state()

        assert state['time'] == 1.0
        assert state['signals']['n1_1']['queues'] == {
            'north': 0, 'east': 0, 'south': 0, 'west': 0
        }


class TestFatalError:
    """Tests de inconsistencia entre ruta y grafo."""

    def _departed_vehicle(self, simulator):
        vehicle = Vehicle("V1", "A", "B", ["A", "B"])
        simulator.add_vehicle(vehicle)
        simulator.step()
        assert vehicle.position > 0
        # La arista desaparece con el vehículo en camino
        simulator.network.get_node("A").edges.clear()
        return vehicle

    def test_step_raises(self, two_node_network, quiet_config):
        """Test de error fatal en un paso."""
        simulator = TrafficSimulator(two_node_network, quiet_config)
        self._departed_vehicle(simulator)

        with pytest.raises(RouteInconsistencyError) as excinfo:
            simulator.step()

        assert excinfo.value.vehicle_id == "V1"
        assert not simulator.is_running

    def test_run_records_error(self, two_node_network, quiet_config):
        """Test de error fatal durante run()."""
        simulator = TrafficSimulator(two_node_network, quiet_config)
        self._departed_vehicle(simulator)

        summary = simulator.run()

        assert isinstance(simulator.error, RouteInconsistencyError)
        assert summary['error'] is not None
        assert not simulator.is_running
        assert not simulator.get_snapshot().running


class TestThreading:
    """Tests de ejecución en hilo propio."""

    def test_start_and_stop(self, grid_network):
        """Test de arranque y detención acotada."""
        config = SimulationConfig(simulation_duration=10000, random_seed=1)
        simulator = TrafficSimulator(grid_network, config)
        simulator.speed_factor = 10

        assert simulator.start()
        assert not simulator.start()
        time.sleep(0.35)
        assert simulator.is_running

        assert simulator.stop(timeout=1.0)
        assert not simulator.is_running
        assert simulator.current_time > 0
        assert simulator.get_snapshot().time == simulator.current_time

    def test_run_ends_at_duration(self, two_node_network):
        """Test de fin de corrida al alcanzar la duración."""
        config = SimulationConfig(simulation_duration=3, random_seed=1)
        simulator = TrafficSimulator(two_node_network, config)
        simulator.speed_factor = 10

        summary = simulator.run()

        assert simulator.current_time == 3.0
        assert summary['simulation_time'] == 3.0
        assert 'computation_time' in summary
        assert simulator.error is None

    def test_stop_without_start(self, two_node_network, quiet_config):
        """Test de stop sin hilo."""
        simulator = TrafficSimulator(two_node_network, quiet_config)

        assert simulator.stop()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
