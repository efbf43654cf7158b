"""Import all models to register them with SQLAlchemy metadata."""
from app.models.base import Base
from app.models.vessel import Vessel
from app.models.vessel_position import VesselPosition
from app.models.fuel_record import FuelRecord
from app.models.certificate import Certificate
from app.models.vessel_alert import VesselAlert
from app.models.detection_cycle_run import DetectionCycleRun

__all__ = [
    "Base",
    "Vessel",
    "VesselPosition",
    "FuelRecord",
    "Certificate",
    "VesselAlert",
    "DetectionCycleRun",
]
