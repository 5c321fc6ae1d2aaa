"""
Numeric constants shared by the resolver, the normal synthesizer and the
finalizer.

Values mirror the LDraw conventions:
- 1 LDU = 0.4 mm; meshes are emitted in metres.
- LDraw is Y-down; output meshes are Y-up.
"""

import numpy as np

# LDU -> output units (metres).
SCALE_FACTOR = 0.0004

# Smoothing threshold between two face normals at a shared position.
DEFAULT_SMOOTHING_ANGLE_DEG = 30.0

# Two vertices closer than this (unscaled LDU) count as the same position.
POSITION_EPSILON = 1e-4

# Squared cross-product magnitude below which a triangle is degenerate.
DEGENERATE_EPSILON = 1e-4

# Sub-file nesting bound; deeper references are skipped with a warning.
MAX_RECURSION_DEPTH = 64

# Fallback normal for degenerate faces and unreferenced vertices (Y-up).
UP = np.array([0.0, 1.0, 0.0], dtype=np.float64)

# Library sub-directories searched after the library root itself.
LIBRARY_SUBDIRS = ("parts", "p")

# Environment variable naming the LDraw library root.
LDRAW_DIR_ENV = "LDRAWDIR"

PART_EXTENSIONS = (".dat",)
MODEL_EXTENSIONS = (".ldr", ".mpd")
