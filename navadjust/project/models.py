# -*- coding: utf-8 -*-
"""Project data model for navigation adjustment.

Files, sections, crossings and ties live in dense lists and refer to each
other through integer handles: a file id is the index in
:attr:`Project.files`, a section id the index in :attr:`NavFile.sections`,
a crossing id the index in :attr:`Project.crossings` and a tie index the
index in :attr:`Crossing.ties`.

All serialization is handled by Pydantic's built-in methods.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from navadjust.constants import DEFAULT_SAVE_INTERVAL
from navadjust.constants import DEFAULT_SECTION_LENGTH
from navadjust.constants import DEFAULT_SMOOTHING
from navadjust.constants import DEFAULT_ZOFFSET_WIDTH
from navadjust.constants import GOOD_OVERLAP_THRESHOLD
from navadjust.constants import SIGMA_SMALL
from navadjust.constants import SIGMA_UNSET
from navadjust.constants import SIGMA_ZSMALL
from navadjust.constants import SNAV_NUM
from navadjust.enums import CrossingStatus
from navadjust.enums import FileStatus
from navadjust.enums import GridStatus
from navadjust.enums import InversionStatus
from navadjust.enums import TieStatus
from navadjust.errors import ProjectStructureError
from navadjust.geo_utils import coordinate_scale
from navadjust.models import Vector3D

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

Axis = tuple[float, float, float]


# --- Uncertainty ---


class UncertaintyEllipsoid(BaseModel):
    """Three orthogonal principal axes (east, north, up) with magnitudes.

    ``sigma1``/``axis1`` is the long, horizontal-ish axis, ``axis2`` the
    horizontal axis perpendicular to it and ``axis3`` the near-vertical one.
    """

    model_config = ConfigDict(frozen=True)

    sigma1: float = SIGMA_UNSET
    axis1: Axis = (1.0, 0.0, 0.0)
    sigma2: float = SIGMA_UNSET
    axis2: Axis = (0.0, 1.0, 0.0)
    sigma3: float = SIGMA_UNSET
    axis3: Axis = (0.0, 0.0, 1.0)

    @classmethod
    def unset(cls) -> UncertaintyEllipsoid:
        """The isotropic sentinel marking an uncertainty never estimated."""
        return cls()

    @classmethod
    def isotropic(cls, sigma_xy: float, sigma_z: float) -> UncertaintyEllipsoid:
        return cls(sigma1=sigma_xy, sigma2=sigma_xy, sigma3=sigma_z)

    @property
    def is_unset(self) -> bool:
        return (
            self.sigma1 == SIGMA_UNSET
            and self.sigma2 == SIGMA_UNSET
            and self.sigma3 == SIGMA_UNSET
        )

    @property
    def is_positive(self) -> bool:
        return self.sigma1 > 0.0 and self.sigma2 > 0.0 and self.sigma3 > 0.0

    @property
    def sigmas(self) -> tuple[float, float, float]:
        return (self.sigma1, self.sigma2, self.sigma3)

    @property
    def axes(self) -> tuple[Axis, Axis, Axis]:
        return (self.axis1, self.axis2, self.axis3)

    def floored(self) -> UncertaintyEllipsoid:
        """Copy with the magnitudes raised to the minimum sigma floors."""
        return self.model_copy(
            update={
                "sigma1": max(self.sigma1, SIGMA_SMALL),
                "sigma2": max(self.sigma2, SIGMA_SMALL),
                "sigma3": max(self.sigma3, SIGMA_ZSMALL),
            }
        )


# --- Navigation ---


class NavSample(BaseModel):
    """A representative navigation sample ("snav") of a section.

    The offsets are the unknowns filled in by the inversion: longitude and
    latitude offsets in degrees, the vertical offset in metres.
    """

    time_d: float
    lon: float
    lat: float
    lon_offset: float = 0.0
    lat_offset: float = 0.0
    z_offset: float = 0.0
    num_ties: int = Field(default=0, ge=0)

    def offset_m(self, scale: tuple[float, float]) -> Vector3D:
        """Current offset in metres, given ``(mtodeglon, mtodeglat)``."""
        mtodeglon, mtodeglat = scale
        return Vector3D(
            self.lon_offset / mtodeglon, self.lat_offset / mtodeglat, self.z_offset
        )

    def set_offset_m(self, offset: Vector3D, scale: tuple[float, float]) -> None:
        mtodeglon, mtodeglat = scale
        self.lon_offset = offset.x * mtodeglon
        self.lat_offset = offset.y * mtodeglat
        self.z_offset = offset.z


class TieBase(BaseModel):
    """Fields shared by ties and global ties.

    Offsets are stored both in degrees (``offset_x``, ``offset_y``) and in
    metres; the vertical offset is in metres only.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: TieStatus = TieStatus.XYZ
    offset_x: float = 0.0
    offset_y: float = 0.0
    offset_x_m: float = 0.0
    offset_y_m: float = 0.0
    offset_z_m: float = 0.0
    uncertainty: UncertaintyEllipsoid = Field(default_factory=UncertaintyEllipsoid)

    # Values cached by the last inversion run
    inversion_status: InversionStatus = InversionStatus.NONE
    inversion_offset_x: float = 0.0
    inversion_offset_y: float = 0.0
    inversion_offset_x_m: float = 0.0
    inversion_offset_y_m: float = 0.0
    inversion_offset_z_m: float = 0.0
    dx_m: float = 0.0
    dy_m: float = 0.0
    dz_m: float = 0.0
    sigma_m: float = 0.0
    dr1_m: float = 0.0
    dr2_m: float = 0.0
    dr3_m: float = 0.0
    rsigma_m: float = 0.0

    @property
    def offset_m(self) -> Vector3D:
        return Vector3D(self.offset_x_m, self.offset_y_m, self.offset_z_m)

    @property
    def inversion_offset_m(self) -> Vector3D:
        return Vector3D(
            self.inversion_offset_x_m,
            self.inversion_offset_y_m,
            self.inversion_offset_z_m,
        )

    def set_offset(self, offset: Vector3D, scale: tuple[float, float]) -> None:
        """Set the observed offset from metres, keeping degrees in step."""
        mtodeglon, mtodeglat = scale
        self.offset_x_m = offset.x
        self.offset_y_m = offset.y
        self.offset_z_m = offset.z
        self.offset_x = offset.x * mtodeglon
        self.offset_y = offset.y * mtodeglat

    def clear_inversion(self, status: InversionStatus = InversionStatus.NONE) -> None:
        """Zero the cached inversion offset and residual."""
        self.inversion_status = status
        self.inversion_offset_x = 0.0
        self.inversion_offset_y = 0.0
        self.inversion_offset_x_m = 0.0
        self.inversion_offset_y_m = 0.0
        self.inversion_offset_z_m = 0.0
        self.dx_m = self.dy_m = self.dz_m = 0.0
        self.sigma_m = 0.0
        self.dr1_m = self.dr2_m = self.dr3_m = 0.0
        self.rsigma_m = 0.0


class Tie(TieBase):
    """An observed offset between one sample in each section of a crossing."""

    snav_1: int = Field(ge=0, lt=SNAV_NUM)
    snav_1_time_d: float = 0.0
    snav_2: int = Field(ge=0, lt=SNAV_NUM)
    snav_2_time_d: float = 0.0


class GlobalTie(TieBase):
    """An observed offset between one section sample and a reference surface."""

    snav: int = Field(ge=0, lt=SNAV_NUM)
    snav_time_d: float = 0.0
    reference_grid: str | None = None


class Section(BaseModel):
    """A contiguous span of pings with its representative samples.

    ``continuity`` marks that the first sample continues the last sample of
    the previous section of the same file.
    """

    num_pings: int = 0
    continuity: bool = False
    samples: list[NavSample] = Field(default_factory=list)
    global_tie: GlobalTie | None = None

    @field_validator("samples")
    @classmethod
    def validate_samples(cls, v: list[NavSample]) -> list[NavSample]:
        if len(v) > SNAV_NUM:
            raise ValueError(f"A section holds at most {SNAV_NUM} samples, got {len(v)}")
        return v

    @property
    def num_snav(self) -> int:
        return len(self.samples)

    @property
    def btime_d(self) -> float:
        return self.samples[0].time_d if self.samples else 0.0

    @property
    def etime_d(self) -> float:
        return self.samples[-1].time_d if self.samples else 0.0

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(lon_min, lon_max, lat_min, lat_max) of the raw sample positions."""
        if not self.samples:
            return (0.0, 0.0, 0.0, 0.0)
        lons = [s.lon for s in self.samples]
        lats = [s.lat for s in self.samples]
        return (min(lons), max(lons), min(lats), max(lats))

    @property
    def has_global_tie(self) -> bool:
        return self.global_tie is not None


class Survey(BaseModel):
    """A block of files sharing one rigid offset in the block-average stage."""

    name: str = ""
    status: FileStatus = FileStatus.NORMAL


class NavFile(BaseModel):
    """A swath file split into sections."""

    path: str
    name: str = ""
    status: FileStatus = FileStatus.NORMAL
    survey: int = Field(default=0, ge=0)
    block_offset_x: float = 0.0
    block_offset_y: float = 0.0
    block_offset_z: float = 0.0
    sections: list[Section] = Field(default_factory=list)

    @property
    def num_sections(self) -> int:
        return len(self.sections)

    @property
    def block_offset(self) -> Vector3D:
        return Vector3D(self.block_offset_x, self.block_offset_y, self.block_offset_z)


class Crossing(BaseModel):
    """Two sections judged to overlap, with the ties picked between them."""

    file_id_1: int = Field(ge=0)
    section_1: int = Field(ge=0)
    file_id_2: int = Field(ge=0)
    section_2: int = Field(ge=0)
    status: CrossingStatus = CrossingStatus.NONE
    true_crossing: bool = False
    overlap: int = Field(default=0, ge=0, le=100)
    ties: list[Tie] = Field(default_factory=list)

    @property
    def num_ties(self) -> int:
        return len(self.ties)

    @property
    def is_good(self) -> bool:
        return self.overlap >= GOOD_OVERLAP_THRESHOLD

    def used_snav_1(self) -> set[int]:
        return {t.snav_1 for t in self.ties}

    def used_snav_2(self) -> set[int]:
        return {t.snav_2 for t in self.ties}

    def involves(self, file_id: int, section_id: int | None = None) -> bool:
        if section_id is None:
            return file_id in (self.file_id_1, self.file_id_2)
        return (file_id, section_id) in (
            (self.file_id_1, self.section_1),
            (self.file_id_2, self.section_2),
        )


# --- Main Project Model ---


class Project(BaseModel):
    """A navigation adjustment project.

    Counters are maintained incrementally by the mutating operations;
    :meth:`recount` rebuilds them from scratch after loading.

    Serialization is fully automatic via Pydantic:
        json_str = project.model_dump_json(indent=2)
        project = Project.model_validate_json(json_str)
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str = "1.0"
    name: str = ""
    surveys: list[Survey] = Field(default_factory=list)
    files: list[NavFile] = Field(default_factory=list)
    crossings: list[Crossing] = Field(default_factory=list)

    num_ties: int = 0
    num_global_ties: int = 0
    num_crossings_analyzed: int = 0
    num_goodcrossings: int = 0
    num_truecrossings: int = 0
    num_truecrossings_analyzed: int = 0

    inversion_status: InversionStatus = InversionStatus.NONE
    grid_status: GridStatus = GridStatus.NONE

    smoothing: float = DEFAULT_SMOOTHING
    section_length: float = Field(default=DEFAULT_SECTION_LENGTH, gt=0.0)
    zoffsetwidth: float = Field(default=DEFAULT_ZOFFSET_WIDTH, ge=0.0)
    save_interval: int = Field(default=DEFAULT_SAVE_INTERVAL, ge=1)

    @model_validator(mode="after")
    def pad_surveys(self) -> Project:
        """Create placeholder surveys for block ids that files refer to."""
        for nav_file in self.files:
            while len(self.surveys) <= nav_file.survey:
                self.surveys.append(Survey(name=f"survey {len(self.surveys)}"))
        return self

    @property
    def num_files(self) -> int:
        return len(self.files)

    @property
    def num_surveys(self) -> int:
        return len(self.surveys)

    @property
    def num_crossings(self) -> int:
        return len(self.crossings)

    @property
    def num_sections(self) -> int:
        return sum(f.num_sections for f in self.files)

    @property
    def num_samples(self) -> int:
        return sum(s.num_snav for f in self.files for s in f.sections)

    @property
    def mid_latitude(self) -> float:
        lats = [s.lat for f in self.files for sec in f.sections for s in sec.samples]
        if not lats:
            return 0.0
        return 0.5 * (min(lats) + max(lats))

    @property
    def scale(self) -> tuple[float, float]:
        """``(mtodeglon, mtodeglat)`` at the project mid-latitude."""
        return coordinate_scale(round(self.mid_latitude, 6))

    @property
    def mtodeglon(self) -> float:
        return self.scale[0]

    @property
    def mtodeglat(self) -> float:
        return self.scale[1]

    # --- Lookup ---

    def get_file(self, file_id: int) -> NavFile:
        if not 0 <= file_id < len(self.files):
            raise ProjectStructureError(f"No file with id {file_id}", file_id=file_id)
        return self.files[file_id]

    def get_section(self, file_id: int, section_id: int) -> Section:
        nav_file = self.get_file(file_id)
        if not 0 <= section_id < len(nav_file.sections):
            raise ProjectStructureError(
                f"No section {section_id} in file {file_id}",
                file_id=file_id,
                section_id=section_id,
            )
        return nav_file.sections[section_id]

    def get_crossing(self, crossing_id: int) -> Crossing:
        if not 0 <= crossing_id < len(self.crossings):
            raise ProjectStructureError(
                f"No crossing with id {crossing_id}", crossing_id=crossing_id
            )
        return self.crossings[crossing_id]

    def get_tie(self, crossing_id: int, tie_index: int) -> Tie:
        crossing = self.get_crossing(crossing_id)
        if not 0 <= tie_index < len(crossing.ties):
            raise ProjectStructureError(
                f"No tie {tie_index} on crossing {crossing_id}",
                crossing_id=crossing_id,
                tie_index=tie_index,
            )
        return crossing.ties[tie_index]

    def effective_status(self, file_id: int) -> FileStatus:
        """File status, or the survey status when the file itself is NORMAL."""
        nav_file = self.get_file(file_id)
        if nav_file.status != FileStatus.NORMAL:
            return nav_file.status
        if nav_file.survey < len(self.surveys):
            return self.surveys[nav_file.survey].status
        return FileStatus.NORMAL

    def iter_ties(self) -> Iterator[tuple[int, Crossing, int, Tie]]:
        for crossing_id, crossing in enumerate(self.crossings):
            for tie_index, tie in enumerate(crossing.ties):
                yield crossing_id, crossing, tie_index, tie

    def iter_global_ties(self) -> Iterator[tuple[int, int, Section, GlobalTie]]:
        for file_id, nav_file in enumerate(self.files):
            for section_id, section in enumerate(nav_file.sections):
                if section.global_tie is not None:
                    yield file_id, section_id, section, section.global_tie

    # --- Building ---

    def add_survey(self, name: str = "", status: FileStatus = FileStatus.NORMAL) -> int:
        self.surveys.append(Survey(name=name, status=status))
        return len(self.surveys) - 1

    def add_file(self, nav_file: NavFile) -> int:
        """Append a file, creating placeholder surveys up to its block id."""
        while len(self.surveys) <= nav_file.survey:
            self.add_survey(name=f"survey {len(self.surveys)}")
        self.files.append(nav_file)
        return len(self.files) - 1

    def add_crossing(self, crossing: Crossing) -> int:
        """Append a crossing and count it."""
        self.get_section(crossing.file_id_1, crossing.section_1)
        self.get_section(crossing.file_id_2, crossing.section_2)
        self.crossings.append(crossing)
        if crossing.is_good:
            self.num_goodcrossings += 1
        if crossing.true_crossing:
            self.num_truecrossings += 1
        if crossing.status != CrossingStatus.NONE:
            self.num_crossings_analyzed += 1
            if crossing.true_crossing:
                self.num_truecrossings_analyzed += 1
        return len(self.crossings) - 1

    # --- Bookkeeping ---

    def set_crossing_status(self, crossing_id: int, status: CrossingStatus) -> None:
        """Set a crossing status, keeping the analyzed counters in step."""
        crossing = self.get_crossing(crossing_id)
        was_analyzed = crossing.status != CrossingStatus.NONE
        is_analyzed = status != CrossingStatus.NONE
        crossing.status = status
        if was_analyzed == is_analyzed:
            return
        delta = 1 if is_analyzed else -1
        self.num_crossings_analyzed += delta
        if crossing.true_crossing:
            self.num_truecrossings_analyzed += delta

    def mark_inversion_old(self) -> None:
        if self.inversion_status == InversionStatus.CURRENT:
            self.inversion_status = InversionStatus.OLD

    def recount(self) -> None:
        """Rebuild every counter and sample reference count from the ties."""
        for nav_file in self.files:
            for section in nav_file.sections:
                for sample in section.samples:
                    sample.num_ties = 0

        self.num_ties = 0
        self.num_global_ties = 0
        self.num_crossings_analyzed = 0
        self.num_goodcrossings = 0
        self.num_truecrossings = 0
        self.num_truecrossings_analyzed = 0

        for crossing in self.crossings:
            section_1 = self.get_section(crossing.file_id_1, crossing.section_1)
            section_2 = self.get_section(crossing.file_id_2, crossing.section_2)
            for tie in crossing.ties:
                section_1.samples[tie.snav_1].num_ties += 1
                section_2.samples[tie.snav_2].num_ties += 1
            self.num_ties += crossing.num_ties
            if crossing.is_good:
                self.num_goodcrossings += 1
            if crossing.true_crossing:
                self.num_truecrossings += 1
            if crossing.status != CrossingStatus.NONE:
                self.num_crossings_analyzed += 1
                if crossing.true_crossing:
                    self.num_truecrossings_analyzed += 1

        for _, _, section, global_tie in self.iter_global_ties():
            section.samples[global_tie.snav].num_ties += 1
            self.num_global_ties += 1

        logger.debug(
            "Recounted project %r: %d ties, %d global ties, %d/%d crossings analyzed",
            self.name,
            self.num_ties,
            self.num_global_ties,
            self.num_crossings_analyzed,
            self.num_crossings,
        )
