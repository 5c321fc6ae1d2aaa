"""
Back-face culling (BFC) winding state.

Each file being resolved owns one WindingState. It tracks the certification
and clipping meta state declared by the file, the declared vertex winding
and the inversion inherited from the parent reference. INVERTNEXT is a
one-shot flag consumed by the next geometry statement (sub-file, triangle
or quad).

Reference: https://www.ldraw.org/article/415.html
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Winding(Enum):
    """Declared vertex order of a file's polygons."""
    CCW = "CCW"
    CW = "CW"


class BfcCommand(Enum):
    """BFC meta commands."""
    CERTIFY = "CERTIFY"
    NOCERTIFY = "NOCERTIFY"
    CW = "CW"
    CCW = "CCW"
    CLIP = "CLIP"
    NOCLIP = "NOCLIP"
    INVERTNEXT = "INVERTNEXT"


@dataclass(frozen=True)
class BfcDirective:
    """A parsed `0 BFC ...` line."""
    command: BfcCommand
    winding: Optional[Winding] = None


# 0 BFC (NOCERTIFY | CERTIFY [CW|CCW] | CW | CCW | CLIP [CW|CCW] | NOCLIP | INVERTNEXT)
_BFC_RE = re.compile(
    r"^0\s+BFC\s+"
    r"(?:(?P<single>NOCERTIFY|NOCLIP|INVERTNEXT|CW|CCW)"
    r"|(?P<mode>CERTIFY|CLIP)(?:\s+(?P<winding>CW|CCW))?)$",
    re.IGNORECASE,
)


def parse_bfc(line: str) -> Optional[BfcDirective]:
    """Parse a BFC meta line.

    Args:
        line: trimmed LDraw line starting with `0`

    Returns:
        BfcDirective, or None for anything that is not a recognized BFC command
    """
    match = _BFC_RE.match(line.strip())
    if not match:
        return None

    if match.group("single"):
        return BfcDirective(BfcCommand(match.group("single").upper()))

    winding = match.group("winding")
    return BfcDirective(
        BfcCommand(match.group("mode").upper()),
        Winding(winding.upper()) if winding else None,
    )


@dataclass
class WindingState:
    """Winding state of one recursion frame.

    Attributes:
        invert: inversion inherited from the parent reference
        invert_next: one-shot flag set by `0 BFC INVERTNEXT`
        winding: declared vertex order, CCW unless the file says otherwise
        certified: True/False once the file declares CERTIFY/NOCERTIFY
        clip: culling enabled for this file
    """
    invert: bool = False
    invert_next: bool = False
    winding: Winding = Winding.CCW
    certified: Optional[bool] = None
    clip: bool = True

    def apply(self, directive: BfcDirective) -> None:
        """Update the state from a BFC directive."""
        command = directive.command
        if command is BfcCommand.CERTIFY:
            self.certified = True
            if directive.winding is not None:
                self.winding = directive.winding
        elif command is BfcCommand.NOCERTIFY:
            self.certified = False
        elif command is BfcCommand.CW:
            self.winding = Winding.CW
        elif command is BfcCommand.CCW:
            self.winding = Winding.CCW
        elif command is BfcCommand.CLIP:
            self.clip = True
            if directive.winding is not None:
                self.winding = directive.winding
        elif command is BfcCommand.NOCLIP:
            self.clip = False
        elif command is BfcCommand.INVERTNEXT:
            self.invert_next = True

    def consume_invert_next(self) -> bool:
        """Return the INVERTNEXT flag and reset it."""
        value = self.invert_next
        self.invert_next = False
        return value

    def emit_in_parse_order(self, invert_next: bool) -> bool:
        """Whether a polygon keeps its parsed vertex order.

        A CCW polygon under no inversion is reversed on emission; CW winding,
        inherited inversion and INVERTNEXT each flip that once.
        """
        return self.invert ^ invert_next ^ (self.winding is Winding.CW)

    def child_invert(self, invert_next: bool, local_transform) -> bool:
        """Inversion handed to a sub-file referenced with `local_transform`."""
        invert = self.invert ^ invert_next
        if local_transform.is_mirrored():
            invert = not invert
        return invert
