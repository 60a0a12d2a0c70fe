"""
Compatibility matching engine.

Runs every compatibility check against a system configuration, scores
the result and filters equipment catalogues against buyer requirements.
"""

from typing import Dict, Iterable, List, Optional
import logging

from models.equipment import (
    BatteryStorage,
    CompatibilityIssue,
    CompatibilityResult,
    CompatibilityWarning,
    Equipment,
    EquipmentRequirements,
    Impact,
    Inverter,
    Severity,
    SolarPanel,
    SystemConfiguration,
)
from services.compatibility.checks import COMPATIBILITY_CHECKS, BaseCompatibilityCheck

logger = logging.getLogger(__name__)

ISSUE_PENALTIES: Dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
}

WARNING_PENALTIES: Dict[Impact, int] = {
    Impact.HIGH: 10,
    Impact.MEDIUM: 5,
    Impact.LOW: 2,
}


def calculate_compatibility_score(
    issues: List[CompatibilityIssue],
    warnings: List[CompatibilityWarning],
) -> int:
    """100 less the penalty for each issue and warning, floored at 0."""
    score = 100
    score -= sum(ISSUE_PENALTIES[i.severity] for i in issues)
    score -= sum(WARNING_PENALTIES[w.impact] for w in warnings)
    return max(0, score)


class CompatibilityEngine:
    """
    Usage:
        engine = CompatibilityEngine()
        result = engine.analyze_system_compatibility(config)
        if not result.is_compatible:
            ...
    """

    def __init__(self, checks: Optional[List[BaseCompatibilityCheck]] = None):
        self.checks = checks if checks is not None else COMPATIBILITY_CHECKS

    def analyze_system_compatibility(self, config: SystemConfiguration) -> CompatibilityResult:
        """
        Run all checks against a configuration.

        Args:
            config: Panel, inverter, optional battery/racking, balance of
                system, layout and installation site

        Returns:
            CompatibilityResult; compatible when no issue is critical
        """
        issues: List[CompatibilityIssue] = []
        warnings: List[CompatibilityWarning] = []
        recommendations: List[str] = []

        for check in self.checks:
            result = check.run(config)
            issues.extend(result.issues)
            warnings.extend(result.warnings)
            recommendations.extend(r for r in result.recommendations if r not in recommendations)

        is_compatible = not any(i.severity == Severity.CRITICAL for i in issues)
        score = calculate_compatibility_score(issues, warnings)

        logger.info(
            f"Compatibility of {config.panel.id} + {config.inverter.id}: score {score}, "
            f"{len(issues)} issue(s), {len(warnings)} warning(s), compatible={is_compatible}"
        )

        return CompatibilityResult(
            is_compatible=is_compatible,
            score=score,
            issues=issues,
            warnings=warnings,
            recommendations=recommendations,
        )

    def calculate_compatibility_score(
        self,
        issues: List[CompatibilityIssue],
        warnings: List[CompatibilityWarning],
    ) -> int:
        return calculate_compatibility_score(issues, warnings)

    def find_compatible_equipment(
        self,
        candidates: Iterable[Equipment],
        requirements: EquipmentRequirements,
    ) -> List[Equipment]:
        """
        Filter candidates by power range, efficiency, budget and tier.

        Power is panel wattage, inverter AC capacity or battery power in W.
        Efficiency is module, inverter or round-trip efficiency in percent.
        Budget and tier apply to panels only.
        """
        matches = [c for c in candidates if self._meets_requirements(c, requirements)]
        logger.debug(f"{len(matches)} candidate(s) meet requirements {requirements.model_dump(exclude_none=True)}")
        return matches

    def _meets_requirements(self, equipment: Equipment, req: EquipmentRequirements) -> bool:
        if isinstance(equipment, SolarPanel):
            power, efficiency = equipment.wattage, equipment.efficiency
        elif isinstance(equipment, Inverter):
            power, efficiency = equipment.capacity_w, equipment.efficiency
        elif isinstance(equipment, BatteryStorage):
            power, efficiency = equipment.power_kw * 1000, equipment.round_trip_efficiency
        else:
            return False

        if req.min_power_w is not None and power < req.min_power_w:
            return False
        if req.max_power_w is not None and power > req.max_power_w:
            return False
        if req.min_efficiency is not None and efficiency < req.min_efficiency:
            return False

        if isinstance(equipment, SolarPanel):
            if req.max_price_per_watt is not None and (
                equipment.price_per_watt is None or equipment.price_per_watt > req.max_price_per_watt
            ):
                return False
            if req.tier is not None and equipment.tier != req.tier:
                return False

        return True
