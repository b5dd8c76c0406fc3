"""HTTP front end for the battle simulator.

Usage:
    python -m ascendancy_sim.gui.run

Then POST scenarios to http://localhost:8000/api/simulate.
"""

__version__ = "0.1.0"
