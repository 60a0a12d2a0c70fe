"""
Pydantic models for the solar marketplace backend.

This module exports the data models used for marketplace records, utility
rates and bills, net metering, load profiling, equipment compatibility and
regulatory compliance.
"""

from .marketplace import (
    # Enums
    UserRole,
    RFQStatus,
    QuoteStatus,
    MaintenanceTaskType,
    MaintenanceFrequency,
    # Records
    MockUser,
    RFQCreate,
    RFQ,
    QuoteLineItem,
    QuoteCreate,
    Quote,
    PromotionPost,
    Product,
    MaintenanceTask,
)

from .rates import (
    RateType,
    CustomerClass,
    TOUPeriodType,
    RateSchedule,
    TimeOfUsePeriod,
    UsageRecord,
    BillCalculationResult,
    RateOptimizationResult,
)

from .billing import (
    CompensationMethod,
    PaymentMethod,
    BillingCycleStatus,
    EnergyFlow,
    NEMPolicy,
    NEMRateData,
    NEMCalculationResult,
    MonthlyUsage,
    MonthlyProduction,
    MonthlyBillDetail,
    BillingComparison,
    BillingRates,
    BillingCycle,
    TrueUpBill,
    BillingProjection,
)

from .optimization import (
    LoadProfile,
    RateOptimizationReport,
    TOUPerformance,
    LoadShiftingPlan,
    BatteryOptimization,
)

from .equipment import (
    SolarPanel,
    Inverter,
    BatteryStorage,
    RackingSystem,
    SystemConfiguration,
    CompatibilityResult,
    EquipmentRequirements,
)

from .compliance import (
    ComplianceStatus,
    RegulatoryProfile,
    SystemComplianceInput,
    ComplianceAssessment,
)

__all__ = [
    # Marketplace enums
    "UserRole",
    "RFQStatus",
    "QuoteStatus",
    "MaintenanceTaskType",
    "MaintenanceFrequency",
    # Marketplace records
    "MockUser",
    "RFQCreate",
    "RFQ",
    "QuoteLineItem",
    "QuoteCreate",
    "Quote",
    "PromotionPost",
    "Product",
    "MaintenanceTask",
    # Rates
    "RateType",
    "CustomerClass",
    "TOUPeriodType",
    "RateSchedule",
    "TimeOfUsePeriod",
    "UsageRecord",
    "BillCalculationResult",
    "RateOptimizationResult",
    # Billing and net metering
    "CompensationMethod",
    "PaymentMethod",
    "BillingCycleStatus",
    "EnergyFlow",
    "NEMPolicy",
    "NEMRateData",
    "NEMCalculationResult",
    "MonthlyUsage",
    "MonthlyProduction",
    "MonthlyBillDetail",
    "BillingComparison",
    "BillingRates",
    "BillingCycle",
    "TrueUpBill",
    "BillingProjection",
    # Optimization
    "LoadProfile",
    "RateOptimizationReport",
    "TOUPerformance",
    "LoadShiftingPlan",
    "BatteryOptimization",
    # Equipment
    "SolarPanel",
    "Inverter",
    "BatteryStorage",
    "RackingSystem",
    "SystemConfiguration",
    "CompatibilityResult",
    "EquipmentRequirements",
    # Compliance
    "ComplianceStatus",
    "RegulatoryProfile",
    "SystemComplianceInput",
    "ComplianceAssessment",
]
