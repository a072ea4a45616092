# swiftdispatch/__init__.py

from .models import (
    Address,
    Coordinate,
    Delivery,
    DeliveryStatus,
    Driver,
    DriverStatus,
    PackageDetails,
    ProofOfDelivery,
    VehicleType,
)
from .errors import (
    ConflictError,
    DispatchError,
    InvalidTransitionError,
    NoCandidateError,
    NotFoundError,
)
from .dispatch import DispatchEngine, BatchResult, AssignmentFailure
from .ranking import NearestFirst, RoundRobin, rank_candidates
from .status import StatusMachine, TransitionEvent
from .store import InMemoryDeliveryStore, InMemoryDriverStore, load_sample_data
from .utils import distance, planar_distance

__version__ = "1.0.0"
__author__ = "SwiftShip Logistics"

__all__ = [
    # Models
    "Address",
    "Coordinate",
    "Delivery",
    "DeliveryStatus",
    "Driver",
    "DriverStatus",
    "PackageDetails",
    "ProofOfDelivery",
    "VehicleType",
    # Errors
    "DispatchError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConflictError",
    "NoCandidateError",
    # Core
    "DispatchEngine",
    "BatchResult",
    "AssignmentFailure",
    "StatusMachine",
    "TransitionEvent",
    "NearestFirst",
    "RoundRobin",
    "InMemoryDeliveryStore",
    "InMemoryDriverStore",
    # Functions
    "rank_candidates",
    "distance",
    "planar_distance",
    "load_sample_data",
]
