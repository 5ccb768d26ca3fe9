"""simlog-inspector: post-hoc inspection of simulation JSONL event logs.

Reconstructs entity, narrative and faction-operation histories from an
append-only event log without replaying the simulation, and validates
world snapshots for internal consistency.
"""

__version__ = "0.1.0"
