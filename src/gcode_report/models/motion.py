"""Parsed G-code command models."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


class CommandKind(Enum):
    """Classification of a parsed command line."""

    RAPID = "rapid"  # G0
    LINEAR = "linear"  # G1 (G2/G3 reduced to their endpoint)
    OTHER = "other"  # Anything else, kept verbatim


@dataclass(frozen=True)
class MotionCommand:
    """A single command line from a G-code file.

    Motion commands (RAPID/LINEAR) carry fully resolved absolute coordinates:
    axes missing from the line hold the last known value. OTHER commands have
    no coordinates, but their numeric parameters are kept in ``params``.

    Attributes:
        kind: Command classification
        code: Normalized command word, e.g. "G1" or "M104"
        line_index: 1-based line number in the source file
        raw: Verbatim source line without the line terminator
        x: Absolute X target in mm (motion only)
        y: Absolute Y target in mm (motion only)
        z: Absolute Z target in mm (motion only)
        e: Absolute logical extruder position in mm (motion only)
        e_delta: Extruder displacement performed by this move in mm
        feed_rate: Feed rate in effect for this move in mm/min
        comment: Inline comment text, if any
        params: Read-only numeric parameters as written on the line (relative
            values untouched)
        explicit_axes: Axes that were actually written on the line
    """

    kind: CommandKind
    code: str
    line_index: int
    raw: str
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    e: Optional[float] = None
    e_delta: float = 0.0
    feed_rate: Optional[float] = None
    comment: Optional[str] = None
    params: Mapping[str, float] = field(default_factory=dict, compare=False)
    explicit_axes: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        """Validate line index and motion coordinates."""
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        if self.line_index < 1:
            raise ValueError(f"line_index must be >= 1, got {self.line_index}")
        if self.is_motion and None in (self.x, self.y, self.z, self.e):
            raise ValueError(f"motion command on line {self.line_index} needs x, y, z and e")

    @property
    def is_motion(self) -> bool:
        """True for RAPID and LINEAR commands."""
        return self.kind is not CommandKind.OTHER

    @property
    def position(self) -> Optional[Tuple[float, float, float]]:
        """Target XYZ point, or None for OTHER commands."""
        if not self.is_motion:
            return None
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class CommentLine:
    """A comment-only source line (slicer markers live here)."""

    line_index: int
    text: str


@dataclass(frozen=True)
class ParseWarning:
    """Non-fatal problem found on a single line."""

    line_index: int
    token: str
    message: str


@dataclass(frozen=True)
class ParseResult:
    """Output of a single parse pass.

    Attributes:
        commands: Commands in source order (strictly increasing line_index)
        comments: Comment-only lines in source order
        warnings: Non-fatal parse warnings
        line_count: Number of lines in the source text
    """

    commands: Tuple[MotionCommand, ...]
    comments: Tuple[CommentLine, ...] = ()
    warnings: Tuple[ParseWarning, ...] = ()
    line_count: int = 0

    def motion_commands(self) -> Tuple[MotionCommand, ...]:
        """Only the RAPID and LINEAR commands."""
        return tuple(cmd for cmd in self.commands if cmd.is_motion)
