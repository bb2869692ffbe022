"""Line-oriented G-code parser.

Turns raw G-code text into an ordered sequence of MotionCommand values with
fully resolved absolute coordinates. The parser keeps the machine's modal
state while it reads:
- G90/G91 switch XYZ (and E) between absolute and relative mode
- M82/M83 switch only E between absolute and relative mode
- G92 redefines the logical position of the listed axes (all axes if none)
- G28 homes the listed axes (all axes if none) to 0
- The last feed rate (F) carries over to later moves

Malformed numbers never abort a parse. They produce a ParseWarning, the
affected axis keeps its carried value, and the command is still emitted.

Example:
    >>> from gcode_report.parser import parse_gcode
    >>> result = parse_gcode("G90\\nG1 X10 Y5 E0.4 F1800\\nG1 X20\\n")
    >>> [(cmd.x, cmd.y) for cmd in result.motion_commands()]
    [(10.0, 5.0), (20.0, 5.0)]
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from gcode_report.models.motion import (
    CommandKind,
    CommentLine,
    MotionCommand,
    ParseResult,
    ParseWarning,
)

logger = logging.getLogger(__name__)

RAPID_CODES = {"G0"}
LINEAR_CODES = {"G1", "G2", "G3"}

AXES = ("X", "Y", "Z", "E")

_PAREN_COMMENT = re.compile(r"\(([^)]*)\)")
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)"
_COMPACT_WORDS = re.compile(rf"(?:[A-Za-z]{_NUMBER})+")
_COMPACT_WORD = re.compile(rf"[A-Za-z]{_NUMBER}")
_LINE_NUMBER = re.compile(r"[Nn]\d+")


def _split_comment(line: str) -> Tuple[str, Optional[str]]:
    """Separate the code part of a line from its comment text.

    Both ``;`` comments and CNC-style ``( ... )`` comments are recognized.
    """
    code, sep, tail = line.partition(";")
    comment_parts = _PAREN_COMMENT.findall(code)
    code = _PAREN_COMMENT.sub(" ", code)
    if sep:
        comment_parts.append(tail)
    if not comment_parts:
        return code.strip(), None
    return code.strip(), " ".join(part.strip() for part in comment_parts).strip()


def _tokenize(code: str) -> List[str]:
    """Split the code part into words, expanding compact forms like ``G1X10Y5``.

    Line numbers (``N120``) and checksums (``*57``) are dropped.
    """
    words: List[str] = []
    for token in code.split("*")[0].split():
        if _COMPACT_WORDS.fullmatch(token):
            words.extend(_COMPACT_WORD.findall(token))
        else:
            words.append(token)
    if words and _LINE_NUMBER.fullmatch(words[0]):
        words = words[1:]
    return words


def _normalize_code(word: str) -> str:
    """Normalize a command word, e.g. ``g01`` -> ``G1``."""
    letter, number = word[0].upper(), word[1:]
    try:
        value = float(number)
    except ValueError:
        return word.upper()
    if value.is_integer():
        return f"{letter}{int(value)}"
    return f"{letter}{number}"


class MotionParser:
    """Stateful single-pass G-code parser.

    A parser instance can be reused: every call to ``parse`` starts from a fresh
    machine state (position 0, absolute mode, no feed rate).
    """

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.position: Dict[str, float] = {axis: 0.0 for axis in AXES}
        self.absolute_xyz = True
        self.absolute_e = True
        self.feed_rate: Optional[float] = None
        self._warnings: List[ParseWarning] = []

    def parse(self, text: str) -> ParseResult:
        """Parse G-code text.

        Args:
            text: Complete G-code file contents

        Returns:
            ParseResult with commands in source order. Line indices are 1-based
            and match the line numbering of ``text``.
        """
        self._reset()
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        commands: List[MotionCommand] = []
        comments: List[CommentLine] = []

        for line_index, raw in enumerate(lines, start=1):
            line = raw[:-1] if raw.endswith("\r") else raw
            code, comment = _split_comment(line)
            if not code:
                if comment is not None:
                    comments.append(CommentLine(line_index=line_index, text=comment))
                continue
            command = self._parse_command(line_index, line, code, comment)
            if command is not None:
                commands.append(command)

        return ParseResult(
            commands=tuple(commands),
            comments=tuple(comments),
            warnings=tuple(self._warnings),
            line_count=len(lines),
        )

    def _warn(self, line_index: int, token: str, message: str) -> None:
        logger.warning("Line %d: %s (%r)", line_index, message, token)
        self._warnings.append(ParseWarning(line_index=line_index, token=token, message=message))

    def _read_params(
        self, line_index: int, words: List[str], strict: bool
    ) -> Tuple[Dict[str, float], List[str]]:
        """Read numeric parameters from the words following the command word.

        Returns the parsed values and the letters that were present without a
        value. Malformed values become warnings when ``strict`` is set and are
        silently skipped otherwise (free text after M117 and friends).
        """
        params: Dict[str, float] = {}
        bare: List[str] = []
        for word in words:
            letter, value = word[0].upper(), word[1:]
            if not letter.isalpha():
                if strict:
                    self._warn(line_index, word, "unrecognized token")
                continue
            if value == "":
                bare.append(letter)
                continue
            try:
                params[letter] = float(value)
            except ValueError:
                if strict:
                    self._warn(line_index, word, f"malformed number for {letter}")
        return params, bare

    def _parse_command(
        self, line_index: int, line: str, code: str, comment: Optional[str]
    ) -> Optional[MotionCommand]:
        words = _tokenize(code)
        if not words:
            return None
        command_word = _normalize_code(words[0])
        kind = CommandKind.OTHER
        if command_word in RAPID_CODES:
            kind = CommandKind.RAPID
        elif command_word in LINEAR_CODES:
            kind = CommandKind.LINEAR

        strict = kind is not CommandKind.OTHER or command_word in ("G92", "G28")
        params, bare = self._read_params(line_index, words[1:], strict)

        if kind is CommandKind.OTHER:
            self._apply_modal(line_index, command_word, params, bare)
            return MotionCommand(
                kind=kind,
                code=command_word,
                line_index=line_index,
                raw=line,
                comment=comment,
                params=params,
            )

        for letter in bare:
            if letter in AXES or letter == "F":
                self._warn(line_index, letter, f"missing value for {letter}")

        for axis in ("X", "Y", "Z"):
            if axis in params:
                if self.absolute_xyz:
                    self.position[axis] = params[axis]
                else:
                    self.position[axis] += params[axis]

        e_delta = 0.0
        if "E" in params:
            previous_e = self.position["E"]
            if self.absolute_e:
                self.position["E"] = params["E"]
            else:
                self.position["E"] += params["E"]
            e_delta = self.position["E"] - previous_e

        if "F" in params:
            self.feed_rate = params["F"]

        return MotionCommand(
            kind=kind,
            code=command_word,
            line_index=line_index,
            raw=line,
            x=self.position["X"],
            y=self.position["Y"],
            z=self.position["Z"],
            e=self.position["E"],
            e_delta=e_delta,
            feed_rate=self.feed_rate,
            comment=comment,
            params=params,
            explicit_axes=frozenset(axis for axis in AXES if axis in params),
        )

    def _apply_modal(
        self, line_index: int, command_word: str, params: Dict[str, float], bare: List[str]
    ) -> None:
        """Update machine state for mode and position commands."""
        if command_word == "G90":
            self.absolute_xyz = True
            self.absolute_e = True
        elif command_word == "G91":
            self.absolute_xyz = False
            self.absolute_e = False
        elif command_word == "M82":
            self.absolute_e = True
        elif command_word == "M83":
            self.absolute_e = False
        elif command_word == "G92":
            axes = [axis for axis in AXES if axis in params]
            for letter in bare:
                if letter in AXES:
                    self._warn(line_index, letter, f"missing value for {letter}")
            if not axes and not bare:
                for axis in AXES:
                    self.position[axis] = 0.0
            for axis in axes:
                self.position[axis] = params[axis]
        elif command_word == "G28":
            homed = [axis for axis in ("X", "Y", "Z") if axis in params or axis in bare]
            for axis in homed or ("X", "Y", "Z"):
                self.position[axis] = 0.0


def parse_gcode(text: str) -> ParseResult:
    """Parse G-code text with a fresh MotionParser."""
    return MotionParser().parse(text)
