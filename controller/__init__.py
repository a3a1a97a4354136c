from .simulation_controller import SimulationController
