"""Studio record tables."""

from .active_session import ActiveFiringSession
from .firing_log import FiringLog
from .glaze_recipe import GlazeRecipe
from .kiln import Kiln
from .materials import ClayBody, RawMaterial
from .settings import StudioSettings

__all__ = [
    "ActiveFiringSession",
    "ClayBody",
    "FiringLog",
    "GlazeRecipe",
    "Kiln",
    "RawMaterial",
    "StudioSettings",
]
