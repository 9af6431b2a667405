"""Jacobian computation utilities."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class JacobianOptions:
    """Options for numerically differentiated residuals."""

    step: float = 1e-7
    method: str = "central"  # "forward", "backward", "central"


def finite_difference_jacobian(
    func: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    h: float = 1e-8,
    method: str = "central"
) -> np.ndarray:
    """Compute Jacobian using finite differences.

    Args:
        func: Function that takes x and returns residual vector
        x: Input parameters
        h: Step size for finite differences
        method: Finite difference method ("forward", "backward", "central")

    Returns:
        Jacobian matrix J where J[i,j] = df_i/dx_j
    """
    x = np.atleast_1d(np.asarray(x, dtype=float))
    f0 = np.atleast_1d(func(x))

    m, n = len(f0), len(x)
    J = np.zeros((m, n))

    if method == "forward":
        for j in range(n):
            x_plus = x.copy()
            x_plus[j] += h
            J[:, j] = (np.atleast_1d(func(x_plus)) - f0) / h

    elif method == "backward":
        for j in range(n):
            x_minus = x.copy()
            x_minus[j] -= h
            J[:, j] = (f0 - np.atleast_1d(func(x_minus))) / h

    elif method == "central":
        for j in range(n):
            x_plus = x.copy()
            x_minus = x.copy()
            x_plus[j] += h
            x_minus[j] -= h
            f_plus = np.atleast_1d(func(x_plus))
            f_minus = np.atleast_1d(func(x_minus))
            J[:, j] = (f_plus - f_minus) / (2 * h)

    else:
        raise ValueError(f"Unknown finite difference method: {method}")

    return J


def block_jacobians(
    func: Callable[[List[np.ndarray]], np.ndarray],
    blocks: Sequence[np.ndarray],
    options: Optional[JacobianOptions] = None
) -> List[np.ndarray]:
    """Finite difference Jacobians of ``func`` split per parameter block.

    Args:
        func: Function mapping a list of parameter blocks to a residual
        blocks: Current parameter blocks
        options: Step size and difference scheme

    Returns:
        One (residual_dim, block_size) matrix per block
    """
    options = options or JacobianOptions()
    blocks = [np.atleast_1d(np.asarray(b, dtype=float)) for b in blocks]
    sizes = [len(b) for b in blocks]
    offsets = np.cumsum([0] + sizes)

    def flat_func(params):
        return func([params[offsets[i]:offsets[i + 1]] for i in range(len(blocks))])

    J_full = finite_difference_jacobian(
        flat_func, np.concatenate(blocks), h=options.step, method=options.method
    )
    return [J_full[:, offsets[i]:offsets[i + 1]] for i in range(len(blocks))]


def check_jacobian(
    func: Callable[[List[np.ndarray]], np.ndarray],
    jacobians: Sequence[np.ndarray],
    blocks: Sequence[np.ndarray],
    options: Optional[JacobianOptions] = None,
    atol: float = 1e-5,
    rtol: float = 1e-5
) -> Tuple[bool, float]:
    """Check per-block analytic Jacobians against finite differences.

    Args:
        func: Function mapping a list of parameter blocks to a residual
        jacobians: Analytic Jacobians of ``func`` at ``blocks``, one per block
        blocks: Parameter blocks to check at
        options: Step size and difference scheme of the reference
        atol: Absolute tolerance
        rtol: Relative tolerance

    Returns:
        Tuple of (is_correct, max_error)
    """
    numeric = block_jacobians(func, blocks, options)
    if len(jacobians) != len(numeric):
        raise ValueError(f"Expected {len(numeric)} Jacobian blocks, got {len(jacobians)}")

    is_correct = True
    max_error = 0.0
    for i, (J_analytic, J_numeric) in enumerate(zip(jacobians, numeric)):
        J_analytic = np.asarray(J_analytic, dtype=float).reshape(J_numeric.shape)
        error = np.abs(J_analytic - J_numeric)
        if error.size:
            max_error = max(max_error, float(np.max(error)))
        if not np.allclose(J_analytic, J_numeric, atol=atol, rtol=rtol):
            logger.debug("Jacobian block %d mismatch, max error: %.2e", i, np.max(error))
            is_correct = False

    return is_correct, max_error
