"""
Dense linear system solver.

Gaussian elimination with partial pivoting followed by back substitution.
Small enough (8 x 8 for a four-point homography) that a direct solver beats
a general least-squares routine, and it lets singular systems be reported
explicitly instead of leaking Inf/NaN into the pixel loop.
"""

import numpy as np

from quadwarp.errors import DegenerateGeometry, InvalidInput

PIVOT_EPSILON = 1e-10


def solve_linear_system(A, b) -> np.ndarray:
    """Solve ``A @ x = b`` for a square system.

    Parameters
    ----------
    A : array_like
        N x N coefficient matrix.
    b : array_like
        Length-N right-hand side.

    Returns
    -------
    np.ndarray
        Length-N solution vector.

    Raises
    ------
    InvalidInput
        If *A* is not square or *b* has the wrong length.
    DegenerateGeometry
        If a pivot vanishes after row selection (singular system).
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float).reshape(-1)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise InvalidInput(f"coefficient matrix must be square, got {A.shape}")
    n = A.shape[0]
    if b.shape[0] != n:
        raise InvalidInput(f"right-hand side has length {b.shape[0]}, expected {n}")

    # Private augmented copy; caller arrays stay untouched
    augmented = np.hstack([A, b[:, np.newaxis]])
    tolerance = PIVOT_EPSILON * max(1.0, float(np.max(np.abs(A))) if n else 1.0)

    # Forward elimination
    for i in range(n):
        max_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if abs(augmented[max_row, i]) < tolerance:
            raise DegenerateGeometry(
                f"singular system: pivot {augmented[max_row, i]:.3g} in column {i}"
            )
        if max_row != i:
            augmented[[i, max_row]] = augmented[[max_row, i]]

        for j in range(i + 1, n):
            factor = augmented[j, i] / augmented[i, i]
            augmented[j, i:] -= factor * augmented[i, i:]

    # Back substitution
    solution = np.zeros(n)
    for i in range(n - 1, -1, -1):
        total = augmented[i, n] - augmented[i, i + 1:n] @ solution[i + 1:]
        solution[i] = total / augmented[i, i]

    return solution
