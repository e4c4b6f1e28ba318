"""
Unit conversion between screen pixels and Word document lengths.

Templates are laid out at 96 DPI. Word expresses page geometry in twips
(1/20 pt, "document units") and DrawingML offsets in EMU (1/914400 inch,
"fine units"). Both conversions are exact integer multiples of the pixel value.
"""

from typing import Union

from ..core.config import Config

Number = Union[int, float]


def px_to_twips(px: Number) -> int:
    """Convert pixels to twips (document units). 1px = 15 twips."""
    return int(round(px * Config.TWIPS_PER_PIXEL))


def px_to_emu(px: Number) -> int:
    """Convert pixels to EMU (fine units). 1px = 9525 EMU."""
    return int(round(px * Config.EMU_PER_PIXEL))


def twips_to_px(twips: Number) -> float:
    return twips / Config.TWIPS_PER_PIXEL
