"""
Affine transform algebra for LDraw sub-file references.

Provides:
- Transform class wrapping a 4x4 affine matrix
- Constructor from the 12 scalars of a type-1 line
- Composition (parent ∘ local), determinant sign, point transform
- Conversion of an LDraw placement rotation into the output convention

LDraw transforms are laid out as rows
    [a b c x]
    [d e f y]
    [g h i z]
    [0 0 0 1]
and are always applied to column vectors: p' = M @ p.

Reference: https://www.ldraw.org/article/218.html#lt1
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

logger = logging.getLogger(__name__)

# LDraw is Y-down, output meshes are Y-up.
Y_FLIP = np.diag([1.0, -1.0, 1.0])


@dataclass(frozen=True, eq=False)
class Transform:
    """4x4 affine transform with an implicit [0, 0, 0, 1] bottom row.

    Attributes:
        matrix: 4x4 float64 matrix
    """
    matrix: NDArray[np.float64]

    def __post_init__(self):
        """Validate and freeze the matrix."""
        matrix = np.array(self.matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform matrix must be 4x4, got {matrix.shape}")
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)

    @classmethod
    def identity(cls) -> 'Transform':
        """Create identity transform."""
        return cls(np.eye(4))

    @classmethod
    def from_ldraw(
        cls,
        x: float, y: float, z: float,
        a: float, b: float, c: float,
        d: float, e: float, f: float,
        g: float, h: float, i: float,
    ) -> 'Transform':
        """Build a transform from the 12 values of a type-1 line.

        Args:
            x, y, z: translation
            a..i: row-major 3x3 linear part

        Returns:
            Transform instance
        """
        return cls(np.array([
            [a, b, c, x],
            [d, e, f, y],
            [g, h, i, z],
            [0.0, 0.0, 0.0, 1.0],
        ]))

    @classmethod
    def scale(cls, sx: float, sy: float, sz: float) -> 'Transform':
        """Create axis-aligned scale transform."""
        return cls(np.diag([sx, sy, sz, 1.0]))

    @classmethod
    def y_flip(cls) -> 'Transform':
        """LDraw (Y-down) to output (Y-up) coordinate flip."""
        return cls.scale(1.0, -1.0, 1.0)

    @property
    def linear(self) -> NDArray[np.float64]:
        """3x3 linear (rotation/scale/shear) part."""
        return self.matrix[:3, :3]

    @property
    def translation(self) -> NDArray[np.float64]:
        """Translation column (x, y, z)."""
        return self.matrix[:3, 3]

    def compose(self, other: 'Transform') -> 'Transform':
        """Compose with another transform: self ∘ other.

        Result applies `other` first, then `self`. For sub-file references
        `self` is the parent's accumulated transform and `other` the local one.
        """
        return Transform(self.matrix @ other.matrix)

    def determinant(self) -> float:
        """Determinant of the linear part."""
        return float(np.linalg.det(self.linear))

    def is_mirrored(self) -> bool:
        """True when the transform flips handedness (negative determinant)."""
        return self.determinant() < 0

    def apply(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform a point or an Nx3 array of points.

        Args:
            points: (3,) or (N, 3) array

        Returns:
            Transformed array of the same shape
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            return self.linear @ points + self.translation
        return points @ self.linear.T + self.translation

    def is_identity(self, tol: float = 1e-9) -> bool:
        """Check if transform is identity."""
        return bool(np.allclose(self.matrix, np.eye(4), atol=tol))

    def __matmul__(self, other: 'Transform') -> 'Transform':
        """Composition operator."""
        return self.compose(other)


def orthonormalize(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Strip scale and shear from a 3x3 matrix using QR.

    The sign of each column is kept so a pure rotation comes back unchanged.
    A reflection stays a reflection (det = -1).

    Args:
        matrix: 3x3 matrix

    Returns:
        Orthonormal 3x3 matrix
    """
    q, r = np.linalg.qr(np.asarray(matrix, dtype=np.float64))
    signs = np.sign(np.diag(r))
    signs[signs == 0] = 1.0
    return q * signs


def ldraw_to_output_rotation(
    linear: NDArray[np.float64],
) -> Tuple[NDArray[np.float64], bool]:
    """Convert an LDraw placement rotation into an output-space quaternion.

    A part mesh is resolved under the Y flip F, so a placement R (LDraw space)
    acts on it as F R F. For a proper rotation with quaternion (x, y, z, w),
    F R F has quaternion (-x, y, -z, w), which equals (x, -y, z, -w).

    Mirrored placements have no rotation quaternion; their reflection is
    folded into the last axis before conversion and reported separately.

    Args:
        linear: 3x3 linear part of a type-1 line

    Returns:
        (quaternion as [x, y, z, w], mirrored flag)
    """
    flipped = Y_FLIP @ np.asarray(linear, dtype=np.float64) @ Y_FLIP
    ortho = orthonormalize(flipped)
    mirrored = bool(np.linalg.det(ortho) < 0)
    if mirrored:
        logger.debug("Mirrored placement, reflection folded into the Z axis")
        ortho[:, -1] *= -1
    quat = Rotation.from_matrix(ortho).as_quat()
    # Canonical hemisphere: w >= 0
    if quat[3] < 0:
        quat = -quat
    return quat, mirrored
