"""
Pydantic models for solar equipment and system compatibility analysis.
"""

from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# ENUMS
# =============================================================================

class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueCategory(str, Enum):
    ELECTRICAL = "electrical"
    PHYSICAL = "physical"
    ENVIRONMENTAL = "environmental"
    PERFORMANCE = "performance"
    REGULATORY = "regulatory"


class WarningType(str, Enum):
    PERFORMANCE_IMPACT = "performance_impact"
    INSTALLATION_COMPLEXITY = "installation_complexity"
    COST_IMPACT = "cost_impact"
    MAINTENANCE_CONCERN = "maintenance_concern"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InverterType(str, Enum):
    STRING = "string"
    MICRO = "micro"
    POWER_OPTIMIZER = "power_optimizer"
    HYBRID = "hybrid"
    CENTRAL = "central"


class ShadingLevel(str, Enum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"


# =============================================================================
# EQUIPMENT
# =============================================================================

class SolarPanel(BaseModel):
    id: str
    manufacturer: str
    model: str
    wattage: float = Field(..., description="STC rating (W)", gt=0)
    efficiency: float = Field(..., description="Module efficiency (%)", gt=0, le=100)
    voltage_vmp: float = Field(..., description="STC voltage at max power (V)", ge=0)
    current_imp: float = Field(..., description="STC current at max power (A)", ge=0)
    length_mm: float = 0.0
    width_mm: float = 0.0
    thickness_mm: float = 0.0
    weight_kg: float = 0.0
    temperature_coefficient: Optional[float] = Field(None, description="Power temperature coefficient (%/°C)")
    certifications: List[str] = Field(default_factory=list)
    price_per_watt: Optional[float] = None
    tier: Optional[int] = Field(None, ge=1, le=3)


class Inverter(BaseModel):
    id: str
    manufacturer: str
    model: str
    type: InverterType
    capacity_w: float = Field(..., description="AC output rating (W)", gt=0)
    max_dc_power_w: Optional[float] = Field(None, description="DC input limit (W); defaults to capacity_w")
    min_dc_voltage: float = 0.0
    max_dc_voltage: float = 1500.0
    max_dc_current: float = 0.0
    mppt_channels: Optional[int] = None
    efficiency: float = Field(97.0, description="CEC efficiency (%)", gt=0, le=100)
    certifications: List[str] = Field(default_factory=list)
    price: Optional[float] = None


class BatteryStorage(BaseModel):
    id: str
    manufacturer: str
    model: str
    capacity_kwh: float = Field(..., gt=0)
    power_kw: float = Field(..., gt=0)
    round_trip_efficiency: float = Field(90.0, description="%", gt=0, le=100)
    chemistry: str = "LFP"
    certifications: List[str] = Field(default_factory=list)
    price: Optional[float] = None


class RackingSystem(BaseModel):
    id: str
    manufacturer: str
    model: str
    roof_types: List[str] = Field(default_factory=list)
    panel_length_min_mm: float = 0.0
    panel_length_max_mm: float = 2500.0
    panel_width_min_mm: float = 0.0
    panel_width_max_mm: float = 1400.0
    panel_weight_min_kg: float = 0.0
    panel_weight_max_kg: float = 40.0
    roof_pitch_min: float = 0.0
    roof_pitch_max: float = 60.0
    corrosion_resistance: str = Field("standard", description="standard or marine_grade")
    wind_uplift_pa: float = Field(2400.0, description="Wind uplift rating (Pa)")
    snow_load_pa: float = Field(5400.0, description="Snow load rating (Pa)")


class MountingHardware(BaseModel):
    id: str
    model: str
    panel_thickness_min_mm: float = 30.0
    panel_thickness_max_mm: float = 40.0
    corrosion_resistance: str = "standard"


class ElectricalComponent(BaseModel):
    id: str
    category: str = Field(..., description="e.g. dc_disconnect, combiner, rapid_shutdown")
    rapid_shutdown: bool = False


# =============================================================================
# SYSTEM CONFIGURATION
# =============================================================================

class SystemLayout(BaseModel):
    panels_per_string: int = Field(..., gt=0)
    strings_per_inverter: int = Field(1, gt=0)
    total_panels: int = Field(..., gt=0)
    total_capacity_kw: float = Field(..., gt=0)


class SiteLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    climate: str = Field("temperate", description="e.g. hot, marine, coastal, temperate, cold")
    wind_zone: int = Field(1, ge=1, le=5)
    snow_load_pa: float = 0.0


class InstallationSite(BaseModel):
    roof_type: str
    roof_pitch: float = Field(..., description="degrees")
    azimuth: float = Field(..., description="degrees, 180 = due south")
    tilt: float = Field(..., description="degrees")
    shading: ShadingLevel = ShadingLevel.NONE
    location: SiteLocation


class SystemConfiguration(BaseModel):
    panel: SolarPanel
    inverter: Inverter
    battery: Optional[BatteryStorage] = None
    racking: Optional[RackingSystem] = None
    mounting: List[MountingHardware] = Field(default_factory=list)
    electrical: List[ElectricalComponent] = Field(default_factory=list)
    layout: SystemLayout
    installation: InstallationSite


# =============================================================================
# RESULTS
# =============================================================================

class CompatibilityIssue(BaseModel):
    severity: Severity
    category: IssueCategory
    description: str
    resolution: Optional[str] = None


class CompatibilityWarning(BaseModel):
    type: WarningType
    description: str
    impact: Impact


class CompatibilityResult(BaseModel):
    is_compatible: bool = Field(..., description="True when there are no critical issues")
    score: int = Field(..., ge=0, le=100)
    issues: List[CompatibilityIssue] = Field(default_factory=list)
    warnings: List[CompatibilityWarning] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "is_compatible": True,
                "score": 87,
                "issues": [],
                "warnings": [
                    {
                        "type": "performance_impact",
                        "description": "minimal shading may reduce system performance by up to 5%",
                        "impact": "medium",
                    }
                ],
                "recommendations": [],
            }
        }
    )


class EquipmentRequirements(BaseModel):
    min_power_w: Optional[float] = None
    max_power_w: Optional[float] = None
    min_efficiency: Optional[float] = None
    max_price_per_watt: Optional[float] = None
    tier: Optional[int] = None


Equipment = Union[SolarPanel, Inverter, BatteryStorage]
