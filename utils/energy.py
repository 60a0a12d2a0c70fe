"""
Helpers for interval energy flow data.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple, Union

from models.billing import EnergyFlow, EnergyTotals

FlowInput = Union[EnergyFlow, dict]


def coerce_flows(energy_data: Iterable[FlowInput]) -> List[EnergyFlow]:
    """Accept EnergyFlow models or plain dicts (timestamp, production, consumption), sorted by time."""
    flows = [f if isinstance(f, EnergyFlow) else EnergyFlow(**f) for f in energy_data]
    return sorted(flows, key=lambda f: f.timestamp)


def total_energy(flows: Iterable[EnergyFlow]) -> EnergyTotals:
    totals = EnergyTotals()
    for flow in flows:
        totals.production += flow.production
        totals.consumption += flow.consumption
        totals.grid_import += flow.grid_import
        totals.grid_export += flow.grid_export
        totals.net_usage += flow.net_usage
    return totals


def group_by_month(flows: Iterable[EnergyFlow]) -> Dict[Tuple[int, int], List[EnergyFlow]]:
    """Flows keyed by (year, month), in calendar order."""
    groups: Dict[Tuple[int, int], List[EnergyFlow]] = defaultdict(list)
    for flow in flows:
        groups[(flow.timestamp.year, flow.timestamp.month)].append(flow)
    return dict(sorted(groups.items()))
