"""
Simulator factory.

Usage:
    from tradesim.sim.factory import create_simulator

    sim = create_simulator("futures", rng=np.random.default_rng(7))
"""

from typing import Dict, List, Type, Union

from .facades import (
    BaseSimulator,
    FuturesSimulator,
    MarginSimulator,
    MultiAssetSimulator,
    SpotSimulator,
)

Simulator = Union[BaseSimulator, MultiAssetSimulator]

SIMULATORS: Dict[str, Type] = {
    "spot": SpotSimulator,
    "margin": MarginSimulator,
    "futures": FuturesSimulator,
    "tradfi": MultiAssetSimulator,
}


def available_simulators() -> List[str]:
    return list(SIMULATORS)


def create_simulator(kind: str, **kwargs) -> Simulator:
    """
    Build a simulator by kind.

    Args:
        kind: spot | margin | futures | tradfi (case-insensitive)
        **kwargs: Passed to the simulator constructor (scheduler, rng, store, ...)

    Raises:
        KeyError: Unknown kind
    """
    key = kind.strip().lower()
    if key not in SIMULATORS:
        raise KeyError(f"Unknown simulator '{kind}'. Available: {available_simulators()}")
    return SIMULATORS[key](**kwargs)
