"""Derived views assembled from already parsed device data."""

from .clock_assembler import assemble_clock_info
from .electrical_assembler import assemble_electrical_parameters
from .timer_assembler import assemble_timers

__all__ = [
    "assemble_timers",
    "assemble_clock_info",
    "assemble_electrical_parameters",
]
