"""
massflow/ - Byte-Quantized Grid Fluid
======================================
Exports the interfaces a renderer or event loop needs.

Event loop : MassFlowSimulation → step(), pour()
Renderer   : MassFlowSimulation → sample(), mass_field()
"""

from .grid import (GRID_WIDTH, GRID_HEIGHT, MassGrid,
                   OutOfBounds, InvalidConfiguration)
from .simulation import MassFlowSimulation
from .solver import MAX_EXCHANGE, NEUTRAL_FLOW

__all__ = [
    "GRID_WIDTH", "GRID_HEIGHT", "MassGrid", "MassFlowSimulation",
    "OutOfBounds", "InvalidConfiguration", "MAX_EXCHANGE", "NEUTRAL_FLOW",
]
