from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import math

from ..config import MIN_RA_DEG, MAX_RA_DEG, MIN_DEC_DEG, MAX_DEC_DEG
from ..exceptions import InvalidPositionError


class ResolutionTier(Enum):
    """Tier of the cascade that produced (or failed to produce) an SAO number."""
    ALREADY_SET = "already_set"
    LOCAL_IDENTIFIER = "local_identifier"
    LOCAL_POSITION = "local_position"
    REMOTE_IDENTIFIER = "remote_identifier"
    REMOTE_CONE = "remote_cone"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class QueryPosition:
    """Equatorial position, J2000, in degrees.

    Args:
        ra_deg: Right ascension in degrees [0, 360]
        dec_deg: Declination in degrees [-90, 90]

    Raises:
        InvalidPositionError: If either coordinate is not finite or out of range.
    """
    ra_deg: float
    dec_deg: float

    def __post_init__(self):
        try:
            ra = float(self.ra_deg)
            dec = float(self.dec_deg)
        except (TypeError, ValueError) as e:
            raise InvalidPositionError(
                f"Position must be numeric, got ({self.ra_deg!r}, {self.dec_deg!r})"
            ) from e

        if not (math.isfinite(ra) and math.isfinite(dec)):
            raise InvalidPositionError(f"Position must be finite, got ({ra}, {dec})")
        if not (MIN_RA_DEG <= ra <= MAX_RA_DEG):
            raise InvalidPositionError(
                f"RA must be between {MIN_RA_DEG} and {MAX_RA_DEG} degrees, got {ra}"
            )
        if not (MIN_DEC_DEG <= dec <= MAX_DEC_DEG):
            raise InvalidPositionError(
                f"Dec must be between {MIN_DEC_DEG} and {MAX_DEC_DEG} degrees, got {dec}"
            )

        # Normalise numpy scalars and ints to plain floats
        object.__setattr__(self, 'ra_deg', ra)
        object.__setattr__(self, 'dec_deg', dec)


@dataclass(frozen=True)
class CrossMatchEntry:
    """A single SAO catalog entry. Immutable once constructed."""
    sao_number: int
    position: QueryPosition
    magnitude: Optional[float] = None
    spectral_type: Optional[str] = None
    name: Optional[str] = None


@dataclass
class CelestialObject:
    """A star as delivered by the primary astrometric provider.

    The resolver only ever writes ``sao_number``, and only through
    ``assign_sao_number``. Every other field belongs to the caller.
    """
    position: QueryPosition
    magnitude: float = float('nan')
    source_id: int = -1
    spectral_type: Optional[str] = None
    name: Optional[str] = None
    sao_number: Optional[int] = None
    parallax: Optional[float] = None
    pm_ra: Optional[float] = None
    pm_dec: Optional[float] = None
    color_index: Optional[float] = None

    @property
    def has_source_id(self) -> bool:
        return self.source_id is not None and self.source_id >= 0

    @property
    def has_sao_number(self) -> bool:
        return self.sao_number is not None

    def assign_sao_number(self, sao_number: int) -> bool:
        """Set the SAO number unless one is already present.

        Returns:
            True if the value was written, False if an existing value was kept.
        """
        if self.sao_number is not None:
            return False
        self.sao_number = int(sao_number)
        return True


# --- Collaborator interfaces ---

class CrossMatchStore(ABC):
    """Local Gaia-SAO cross-match store.

    Implementations answer "which SAO number belongs to this Gaia source / this
    position" without touching the network.
    """

    @abstractmethod
    def find_by_identifier(self, source_id: int) -> Optional[int]:
        """Return the SAO number cross-matched to a Gaia source_id, if any."""
        pass

    @abstractmethod
    def find_by_position(self, position: QueryPosition, radius_arcsec: float) -> Optional[int]:
        """Return the SAO number of the nearest entry within radius_arcsec, if any."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def statistics(self) -> str:
        """Human-readable summary of the store contents."""
        pass


class AstrometricProvider(ABC):
    """Primary astrometric catalog provider (cone, point and name lookups).

    Providers have a scoped lifecycle: ``open()`` acquires whatever the backend
    needs and ``close()`` releases it. They are also context managers.
    """

    @abstractmethod
    def open(self) -> bool:
        """Acquire the provider. Returns the resulting availability."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    async def query_cone(self, center: QueryPosition, radius_deg: float,
                         max_magnitude: float, max_results: int) -> List[CelestialObject]:
        """Return objects within radius_deg of center, brighter than max_magnitude."""
        pass

    @abstractmethod
    async def query_by_id(self, source_id: int) -> Optional[CelestialObject]:
        pass

    @abstractmethod
    async def query_by_name(self, name: str) -> Optional[CelestialObject]:
        """Resolve a proper name, Bayer/Flamsteed designation or catalog cross-reference."""
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
