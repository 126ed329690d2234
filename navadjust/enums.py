# -*- coding: utf-8 -*-
"""Enumerations for navigation adjustment projects.

This module contains the status enumerations attached to ties, crossings,
files and the project inversion state, together with the small state
machines that move a tie between its axis and fixed classes.
"""

from enum import Enum


class TieStatus(str, Enum):
    """Which offset components a tie constrains, and whether it is fixed.

    Attributes:
        XY: Horizontal components only
        Z: Vertical component only
        XYZ: All three components
        XY_FIXED: Horizontal components, fixed
        Z_FIXED: Vertical component, fixed
        XYZ_FIXED: All three components, fixed
    """

    XY = "xy"
    Z = "z"
    XYZ = "xyz"
    XY_FIXED = "xy_fixed"
    Z_FIXED = "z_fixed"
    XYZ_FIXED = "xyz_fixed"

    @property
    def is_fixed(self) -> bool:
        """True for the fixed class of statuses."""
        return self in (TieStatus.XY_FIXED, TieStatus.Z_FIXED, TieStatus.XYZ_FIXED)

    @property
    def has_xy(self) -> bool:
        """True if the horizontal components are enabled."""
        return self not in (TieStatus.Z, TieStatus.Z_FIXED)

    @property
    def has_z(self) -> bool:
        """True if the vertical component is enabled."""
        return self not in (TieStatus.XY, TieStatus.XY_FIXED)

    def axis_mask(self) -> tuple[float, float, float]:
        """Per-component activity (east, north, up) as 0/1 factors."""
        xy = 1.0 if self.has_xy else 0.0
        z = 1.0 if self.has_z else 0.0
        return (xy, xy, z)

    @classmethod
    def from_axes(cls, xy: bool, z: bool, fixed: bool = False) -> "TieStatus":
        """Build a status from enabled axis groups.

        Raises:
            ValueError: If neither axis group is enabled
        """
        if xy and z:
            return cls.XYZ_FIXED if fixed else cls.XYZ
        if xy:
            return cls.XY_FIXED if fixed else cls.XY
        if z:
            return cls.Z_FIXED if fixed else cls.Z
        raise ValueError("A tie must constrain at least one axis group")

    def with_axes(self, xy: bool, z: bool) -> "TieStatus":
        """Return the status with the given axis groups, keeping the fixed flag."""
        return TieStatus.from_axes(xy, z, fixed=self.is_fixed)

    def toggle_xy(self) -> "TieStatus":
        """Flip the horizontal group; disabling the only enabled group is a no-op."""
        if self.has_xy and not self.has_z:
            return self
        return self.with_axes(not self.has_xy, self.has_z)

    def toggle_z(self) -> "TieStatus":
        """Flip the vertical group; disabling the only enabled group is a no-op."""
        if self.has_z and not self.has_xy:
            return self
        return self.with_axes(self.has_xy, not self.has_z)

    def cycle(self) -> "TieStatus":
        """Advance XY -> Z -> XYZ -> XY, keeping the fixed flag."""
        if not self.has_z:
            return self.with_axes(False, True)
        if not self.has_xy:
            return self.with_axes(True, True)
        return self.with_axes(True, False)

    def fix(self) -> "TieStatus":
        """Return the fixed counterpart (no change if already fixed)."""
        if self.is_fixed:
            return self
        return TieStatus.from_axes(self.has_xy, self.has_z, fixed=True)

    def unfix(self) -> "TieStatus":
        """Return the unfixed counterpart (no change if already unfixed)."""
        if not self.is_fixed:
            return self
        return TieStatus.from_axes(self.has_xy, self.has_z, fixed=False)


class CrossingStatus(str, Enum):
    """Analysis state of a crossing.

    Attributes:
        NONE: Not analyzed yet
        SET: Has at least one tie
        SKIP: Analyzed and deliberately ignored
    """

    NONE = "none"
    SET = "set"
    SKIP = "skip"


class FileStatus(str, Enum):
    """Navigation quality of a file or survey.

    Attributes:
        NORMAL: Ordinary navigation
        POOR: Poor navigation, absorbs corrections preferentially
        FIXED_XYZ: Navigation and depth are fixed
        FIXED_XY: Horizontal navigation is fixed
        FIXED_Z: Depth is fixed
    """

    NORMAL = "normal"
    POOR = "poor"
    FIXED_XYZ = "fixed_xyz"
    FIXED_XY = "fixed_xy"
    FIXED_Z = "fixed_z"

    @property
    def is_poor(self) -> bool:
        return self == FileStatus.POOR

    @property
    def is_fixed(self) -> bool:
        """True if any component is fixed."""
        return self in (FileStatus.FIXED_XYZ, FileStatus.FIXED_XY, FileStatus.FIXED_Z)

    @property
    def fixed_xy(self) -> bool:
        return self in (FileStatus.FIXED_XYZ, FileStatus.FIXED_XY)

    @property
    def fixed_z(self) -> bool:
        return self in (FileStatus.FIXED_XYZ, FileStatus.FIXED_Z)

    def fixed_mask(self) -> tuple[bool, bool, bool]:
        """Which components (east, north, up) are held at zero offset."""
        return (self.fixed_xy, self.fixed_xy, self.fixed_z)


class NavQuality(str, Enum):
    """Per-component quality of a navigation sample used by chunk relaxation.

    Attributes:
        GOOD: Normal navigation
        POOR: Poor navigation
        FIXED: Held at zero offset
    """

    GOOD = "good"
    POOR = "poor"
    FIXED = "fixed"


class InversionStatus(str, Enum):
    """State of a navigation inversion relative to the current ties.

    Attributes:
        NONE: Never inverted
        OLD: Inverted, but ties changed since
        CURRENT: Inversion reflects the current ties
    """

    NONE = "none"
    OLD = "old"
    CURRENT = "current"


class GridStatus(str, Enum):
    """State of derived grids relative to the current navigation solution."""

    NONE = "none"
    OLD = "old"
    CURRENT = "current"


class Severity(str, Enum):
    """Severity level for operation messages.

    Attributes:
        INFO: Informational
        WARNING: Non-fatal problem
        ERROR: Operation failed
    """

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
