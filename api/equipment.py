"""
API endpoints for equipment compatibility.

Checks a full system configuration (panels, inverter, racking, balance of
system and site) and filters candidate equipment against requirements.
"""

from typing import List
import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from middleware.rate_limiter import limiter, RATE_LIMITS
from models.equipment import (
    BatteryStorage,
    CompatibilityResult,
    EquipmentRequirements,
    Inverter,
    SolarPanel,
    SystemConfiguration,
)
from services.compatibility import CompatibilityEngine
from services.errors import SolarAppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/equipment", tags=["Equipment Compatibility"])

engine = CompatibilityEngine()


class EquipmentSearchRequest(BaseModel):
    """Request body for POST /api/equipment/search"""
    panels: List[SolarPanel] = Field(default_factory=list)
    inverters: List[Inverter] = Field(default_factory=list)
    batteries: List[BatteryStorage] = Field(default_factory=list)
    requirements: EquipmentRequirements = Field(default_factory=EquipmentRequirements)


class EquipmentSearchResponse(BaseModel):
    """Response model for POST /api/equipment/search"""
    panels: List[SolarPanel]
    inverters: List[Inverter]
    batteries: List[BatteryStorage]


@router.post("/compatibility", response_model=CompatibilityResult)
@limiter.limit(RATE_LIMITS["calculation"])
async def analyze_system_compatibility(request: Request, body: SystemConfiguration):
    """
    Check a system configuration for electrical, physical, environmental,
    performance and regulatory problems.

    Score = 100 - 25/15/8/3 per critical/high/medium/low issue
    - 10/5/2 per high/medium/low warning, floored at 0. The system is
    compatible when no issue is critical.
    """
    try:
        return engine.analyze_system_compatibility(body)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Compatibility analysis failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Compatibility analysis failed: {str(e)}")


@router.post("/search", response_model=EquipmentSearchResponse)
@limiter.limit(RATE_LIMITS["default"])
async def find_compatible_equipment(request: Request, body: EquipmentSearchRequest):
    """Filter candidate panels, inverters and batteries by power, efficiency, budget and tier."""
    try:
        return EquipmentSearchResponse(
            panels=engine.find_compatible_equipment(body.panels, body.requirements),
            inverters=engine.find_compatible_equipment(body.inverters, body.requirements),
            batteries=engine.find_compatible_equipment(body.batteries, body.requirements),
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Equipment search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Equipment search failed: {str(e)}")
