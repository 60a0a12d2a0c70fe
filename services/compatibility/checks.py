"""
Compatibility checks for a solar system configuration.

Each check covers one category (electrical, physical, environmental,
performance, regulatory) and reports issues, warnings and
recommendations. Issues are problems that need a resolution; warnings
describe an impact on performance, installation, cost or maintenance.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from models.equipment import (
    CompatibilityIssue,
    CompatibilityWarning,
    Impact,
    InverterType,
    IssueCategory,
    Severity,
    ShadingLevel,
    SystemConfiguration,
    WarningType,
)

logger = logging.getLogger(__name__)

MARINE_CLIMATES = {"marine", "coastal"}
HOT_CLIMATES = {"hot", "desert", "tropical"}

# Pa of wind uplift resistance required per wind zone
WIND_UPLIFT_PER_ZONE = 1200

SHADING_LOSS_PERCENT = {
    ShadingLevel.MINIMAL: 5,
    ShadingLevel.MODERATE: 15,
    ShadingLevel.SIGNIFICANT: 30,
}

PANEL_CERTIFICATIONS = ["IEC 61215", "IEC 61730", "UL 1703"]
INVERTER_CERTIFICATIONS = ["UL 1741", "IEEE 1547"]


def has_certification(certifications: List[str], required: str) -> bool:
    """Substring match ignoring spaces and case ("UL1741-SA" satisfies "UL 1741")."""
    needle = required.replace(" ", "").upper()
    return any(needle in c.replace(" ", "").upper() for c in certifications)


@dataclass
class CheckResult:
    issues: List[CompatibilityIssue] = field(default_factory=list)
    warnings: List[CompatibilityWarning] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


class BaseCompatibilityCheck(ABC):
    """
    Base class for compatibility checks.

    Subclasses set ``category`` and implement ``evaluate``; ``issue`` and
    ``warning`` append to the result being built.
    """

    category: IssueCategory

    def run(self, config: SystemConfiguration) -> CheckResult:
        result = CheckResult()
        self.evaluate(config, result)
        logger.debug(
            f"{self.category.value} check: {len(result.issues)} issue(s), "
            f"{len(result.warnings)} warning(s)"
        )
        return result

    @abstractmethod
    def evaluate(self, config: SystemConfiguration, result: CheckResult) -> None:
        pass

    def issue(self, result: CheckResult, severity: Severity, description: str, resolution: Optional[str] = None):
        result.issues.append(CompatibilityIssue(
            severity=severity,
            category=self.category,
            description=description,
            resolution=resolution,
        ))

    @staticmethod
    def warning(result: CheckResult, type: WarningType, description: str, impact: Impact):
        result.warnings.append(CompatibilityWarning(type=type, description=description, impact=impact))


class ElectricalCheck(BaseCompatibilityCheck):
    """String voltage, current, DC/AC ratio and MPPT channel count."""

    category = IssueCategory.ELECTRICAL

    def evaluate(self, config, result):
        panel, inverter, layout = config.panel, config.inverter, config.layout

        string_voltage = panel.voltage_vmp * layout.panels_per_string
        if string_voltage < inverter.min_dc_voltage:
            self.issue(
                result, Severity.CRITICAL,
                f"String voltage ({string_voltage:.0f}V) is below inverter minimum ({inverter.min_dc_voltage:.0f}V)",
                "Add more panels per string or choose an inverter with a lower start voltage",
            )
        elif string_voltage > inverter.max_dc_voltage:
            self.issue(
                result, Severity.CRITICAL,
                f"String voltage ({string_voltage:.0f}V) exceeds inverter maximum ({inverter.max_dc_voltage:.0f}V)",
                "Reduce panels per string or choose a higher voltage inverter",
            )

        if inverter.max_dc_current > 0 and panel.current_imp > inverter.max_dc_current:
            self.issue(
                result, Severity.HIGH,
                f"Panel current ({panel.current_imp:.1f}A) exceeds inverter input limit ({inverter.max_dc_current:.1f}A)",
                "Choose an inverter with a higher input current rating",
            )

        dc_power = panel.wattage * layout.total_panels
        dc_limit = inverter.max_dc_power_w or inverter.capacity_w
        ratio = dc_power / dc_limit
        if ratio > 1.5:
            self.issue(
                result, Severity.HIGH,
                f"DC/AC ratio of {ratio:.2f} exceeds the recommended maximum of 1.5",
                "Add inverter capacity or remove panels",
            )
        elif ratio > 1.3:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"DC/AC ratio of {ratio:.2f} will cause clipping losses at peak production",
                Impact.MEDIUM,
            )
        elif ratio < 0.8:
            self.warning(
                result, WarningType.COST_IMPACT,
                f"DC/AC ratio of {ratio:.2f} leaves the inverter undersized for its cost",
                Impact.LOW,
            )

        if inverter.mppt_channels and layout.strings_per_inverter > inverter.mppt_channels:
            self.warning(
                result, WarningType.INSTALLATION_COMPLEXITY,
                f"{layout.strings_per_inverter} strings exceed the inverter's {inverter.mppt_channels} MPPT channels; strings must be paralleled",
                Impact.MEDIUM,
            )


class PhysicalCheck(BaseCompatibilityCheck):
    """Panel fit on the racking, roof type and pitch, and clamp range."""

    category = IssueCategory.PHYSICAL

    def evaluate(self, config, result):
        panel, racking, site = config.panel, config.racking, config.installation
        if racking is None:
            return

        if not racking.panel_length_min_mm <= panel.length_mm <= racking.panel_length_max_mm:
            self.issue(
                result, Severity.HIGH,
                f"Panel length ({panel.length_mm:.0f}mm) is outside racking range "
                f"({racking.panel_length_min_mm:.0f}-{racking.panel_length_max_mm:.0f}mm)",
                "Select a racking system rated for this panel size",
            )
        if not racking.panel_width_min_mm <= panel.width_mm <= racking.panel_width_max_mm:
            self.issue(
                result, Severity.HIGH,
                f"Panel width ({panel.width_mm:.0f}mm) is outside racking range "
                f"({racking.panel_width_min_mm:.0f}-{racking.panel_width_max_mm:.0f}mm)",
                "Select a racking system rated for this panel size",
            )
        if not racking.panel_weight_min_kg <= panel.weight_kg <= racking.panel_weight_max_kg:
            self.issue(
                result, Severity.MEDIUM,
                f"Panel weight ({panel.weight_kg:.1f}kg) is outside racking range "
                f"({racking.panel_weight_min_kg:.1f}-{racking.panel_weight_max_kg:.1f}kg)",
                "Confirm load ratings with the racking manufacturer",
            )

        roof_types = {r.lower() for r in racking.roof_types}
        if site.roof_type.lower() not in roof_types:
            self.issue(
                result, Severity.CRITICAL,
                f"Racking is not rated for {site.roof_type} roofs",
                f"Choose racking that supports {site.roof_type} roofs",
            )

        if not racking.roof_pitch_min <= site.roof_pitch <= racking.roof_pitch_max:
            self.warning(
                result, WarningType.INSTALLATION_COMPLEXITY,
                f"Roof pitch ({site.roof_pitch:.0f}°) is outside racking range "
                f"({racking.roof_pitch_min:.0f}-{racking.roof_pitch_max:.0f}°)",
                Impact.MEDIUM,
            )

        for mount in config.mounting:
            if not mount.panel_thickness_min_mm <= panel.thickness_mm <= mount.panel_thickness_max_mm:
                self.issue(
                    result, Severity.HIGH,
                    f"Panel frame thickness ({panel.thickness_mm:.0f}mm) does not fit {mount.model} clamps "
                    f"({mount.panel_thickness_min_mm:.0f}-{mount.panel_thickness_max_mm:.0f}mm)",
                    "Use clamps sized for the panel frame",
                )


class EnvironmentalCheck(BaseCompatibilityCheck):
    """Corrosion, wind uplift and snow load for the site."""

    category = IssueCategory.ENVIRONMENTAL

    def evaluate(self, config, result):
        location = config.installation.location
        racking = config.racking

        if location.climate.lower() in MARINE_CLIMATES:
            if racking and racking.corrosion_resistance.lower() != "marine_grade":
                self.warning(
                    result, WarningType.MAINTENANCE_CONCERN,
                    "Racking is not marine grade; expect corrosion in a coastal environment",
                    Impact.HIGH,
                )
            if any(m.corrosion_resistance.lower() != "marine_grade" for m in config.mounting):
                self.warning(
                    result, WarningType.MAINTENANCE_CONCERN,
                    "Mounting hardware is not marine grade",
                    Impact.MEDIUM,
                )

        if racking is None:
            return

        if location.wind_zone > 3:
            required = location.wind_zone * WIND_UPLIFT_PER_ZONE
            if racking.wind_uplift_pa < required:
                self.issue(
                    result, Severity.CRITICAL,
                    f"Racking wind uplift rating ({racking.wind_uplift_pa:.0f}Pa) is below "
                    f"the {required}Pa required for wind zone {location.wind_zone}",
                    "Use a high wind rated racking system or add attachment points",
                )

        if location.snow_load_pa > 0 and racking.snow_load_pa < location.snow_load_pa:
            self.issue(
                result, Severity.HIGH,
                f"Racking snow load rating ({racking.snow_load_pa:.0f}Pa) is below "
                f"site snow load ({location.snow_load_pa:.0f}Pa)",
                "Choose racking rated for the site snow load",
            )


class PerformanceCheck(BaseCompatibilityCheck):
    """Orientation, shading, heat and inverter loading."""

    category = IssueCategory.PERFORMANCE

    def evaluate(self, config, result):
        site = config.installation
        latitude = site.location.latitude

        optimal_azimuth = 180 if latitude > 0 else 0
        azimuth_deviation = abs(site.azimuth - optimal_azimuth)
        azimuth_deviation = min(azimuth_deviation, 360 - azimuth_deviation)
        if azimuth_deviation > 45:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"Array faces {azimuth_deviation:.0f}° off the optimal azimuth "
                f"(about {azimuth_deviation * 0.5:.0f}% production loss)",
                Impact.HIGH,
            )
            result.recommendations.append("Consider a different roof face or a ground mount closer to optimal orientation")

        tilt_deviation = abs(site.tilt - abs(latitude))
        if tilt_deviation > 15:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"Tilt is {tilt_deviation:.0f}° from latitude (about {tilt_deviation * 0.3:.0f}% production loss)",
                Impact.MEDIUM,
            )

        if site.shading in SHADING_LOSS_PERCENT:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"{site.shading.value} shading may reduce system performance by up to "
                f"{SHADING_LOSS_PERCENT[site.shading]}%",
                Impact.HIGH if site.shading == ShadingLevel.SIGNIFICANT else Impact.MEDIUM,
            )
            if config.inverter.type == InverterType.STRING:
                result.recommendations.append("Use microinverters or power optimizers to limit shading losses")

        coefficient = config.panel.temperature_coefficient
        if site.location.climate.lower() in HOT_CLIMATES and coefficient is not None and coefficient < -0.4:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"Temperature coefficient of {coefficient}%/°C will lose output in a hot climate",
                Impact.MEDIUM,
            )

        load_ratio = config.layout.total_capacity_kw / (config.inverter.capacity_w / 1000)
        if load_ratio < 0.3:
            self.warning(
                result, WarningType.PERFORMANCE_IMPACT,
                f"Inverter runs at {load_ratio * 100:.0f}% of rating at array peak, lowering conversion efficiency",
                Impact.LOW,
            )

        if config.battery and config.inverter.type != InverterType.HYBRID:
            self.warning(
                result, WarningType.INSTALLATION_COMPLEXITY,
                "Battery needs its own inverter or a hybrid inverter",
                Impact.MEDIUM,
            )


class RegulatoryCheck(BaseCompatibilityCheck):
    """Listing certifications and NEC 690.12 rapid shutdown."""

    category = IssueCategory.REGULATORY

    def evaluate(self, config, result):
        for cert in PANEL_CERTIFICATIONS:
            if not has_certification(config.panel.certifications, cert):
                self.issue(
                    result, Severity.HIGH,
                    f"Panel is missing {cert} certification",
                    "Select a panel listed to current module safety standards",
                )

        for cert in INVERTER_CERTIFICATIONS:
            if not has_certification(config.inverter.certifications, cert):
                self.issue(
                    result, Severity.CRITICAL,
                    f"Inverter is missing {cert} certification required for interconnection",
                    "Select a grid-interactive listed inverter",
                )

        if config.inverter.type == InverterType.STRING:
            has_shutdown = any(
                c.category == "dc_disconnect" or c.rapid_shutdown for c in config.electrical
            )
            if not has_shutdown:
                self.issue(
                    result, Severity.HIGH,
                    "String inverter system has no rapid shutdown device (NEC 690.12)",
                    "Add module-level rapid shutdown or a DC disconnect",
                )


COMPATIBILITY_CHECKS: List[BaseCompatibilityCheck] = [
    ElectricalCheck(),
    PhysicalCheck(),
    EnvironmentalCheck(),
    PerformanceCheck(),
    RegulatoryCheck(),
]
