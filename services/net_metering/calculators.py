"""
Per-version NEM charge and export credit calculators.

NEM 1.0 and 2.0 net a month's import against its export and credit net
export at the retail rate; 2.0 adds non-bypassable charges on imported
energy. NEM 3.0 bills every imported kWh at retail, credits every exported
kWh at the avoided-cost rate and adds a grid benefits charge on system
capacity.
"""

from abc import ABC, abstractmethod
from typing import Dict, Type

from models.billing import EnergyTotals, NEMCharges, NEMRateData
from services.errors import ValidationError


class BaseNEMCalculator(ABC):
    """
    Abstract base class for net metering calculators.

    Each NEM version inherits from this class and implements how a month's
    energy is charged and how exports are credited.
    """

    version: str = ""

    def __init__(self, rates: NEMRateData, system_capacity_kw: float = 0.0):
        """
        Args:
            rates: Retail, non-bypassable, grid benefits and cash-out rates
            system_capacity_kw: Installed system size (used by NEM 3.0)
        """
        self.rates = rates
        self.system_capacity_kw = system_capacity_kw

    @abstractmethod
    def calculate_charges(self, month: EnergyTotals) -> NEMCharges:
        pass

    @abstractmethod
    def calculate_export_credit(self, month: EnergyTotals) -> float:
        pass

    def _net_energy_charge(self, month: EnergyTotals) -> float:
        return max(0.0, month.net_usage * self.rates.energy_rate)

    def _charges(self, energy: float, non_bypassable: float = 0.0, grid_benefits: float = 0.0) -> NEMCharges:
        fixed = self.rates.fixed_charge
        return NEMCharges(
            energy=energy,
            fixed=fixed,
            non_bypassable=non_bypassable,
            grid_benefits=grid_benefits,
            total=energy + fixed + non_bypassable + grid_benefits,
        )


class NEM1Calculator(BaseNEMCalculator):
    version = "1.0"

    def calculate_charges(self, month: EnergyTotals) -> NEMCharges:
        return self._charges(self._net_energy_charge(month))

    def calculate_export_credit(self, month: EnergyTotals) -> float:
        return max(0.0, -month.net_usage * self.rates.energy_rate)


class NEM2Calculator(NEM1Calculator):
    version = "2.0"

    def calculate_charges(self, month: EnergyTotals) -> NEMCharges:
        return self._charges(
            self._net_energy_charge(month),
            non_bypassable=month.grid_import * self.rates.non_bypassable_rate,
        )


class NEM3Calculator(BaseNEMCalculator):
    version = "3.0"

    @property
    def avoided_cost_rate(self) -> float:
        return self.rates.energy_rate * self.rates.avoided_cost_fraction

    def calculate_charges(self, month: EnergyTotals) -> NEMCharges:
        return self._charges(
            month.grid_import * self.rates.energy_rate,
            non_bypassable=month.grid_import * self.rates.non_bypassable_rate,
            grid_benefits=self.system_capacity_kw * self.rates.grid_benefits_rate,
        )

    def calculate_export_credit(self, month: EnergyTotals) -> float:
        return month.grid_export * self.avoided_cost_rate


NEM_CALCULATORS: Dict[str, Type[BaseNEMCalculator]] = {
    "1.0": NEM1Calculator,
    "2.0": NEM2Calculator,
    "3.0": NEM3Calculator,
}


def get_calculator(version: str, rates: NEMRateData, system_capacity_kw: float = 0.0) -> BaseNEMCalculator:
    """
    Raises:
        ValidationError: If no calculator handles the policy version
    """
    calculator_class = NEM_CALCULATORS.get(version)
    if calculator_class is None:
        raise ValidationError(
            f"Unsupported NEM version: {version}",
            [f"version must be one of {sorted(NEM_CALCULATORS)}"],
        )
    return calculator_class(rates, system_capacity_kw)
